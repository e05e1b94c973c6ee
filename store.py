"""
Credential store adapter.

Every database access of the request handlers goes through this module. A
failing statement never raises past it: the session is rolled back, the error
is logged and the caller receives ``Outcome(ok=False)``. Unique constraint
violations are reported with ``conflict=True``.
"""

import logging
from functools import wraps
from typing import Any, NamedTuple, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from extensions import db
from models import Comment, Post, User

log = logging.getLogger(__name__)


class Outcome(NamedTuple):
    ok: bool
    value: Any = None
    conflict: bool = False


def guarded(func):
    """Run ``func`` and wrap its result (or failure) into an :class:`Outcome`."""

    @wraps(func)
    def wrapped(*args, **kwargs) -> Outcome:
        try:
            return Outcome(True, func(*args, **kwargs))
        except IntegrityError as exc:
            db.session.rollback()
            log.warning("%s violated a constraint: %s", func.__name__, exc.orig)
            return Outcome(False, conflict=True)
        except SQLAlchemyError:
            db.session.rollback()
            log.exception("database access failed in %s", func.__name__)
            return Outcome(False)

    return wrapped


# ---------------------------------- users ---------------------------------- #
@guarded
def get_user(uid: int) -> Optional[User]:
    return db.session.get(User, uid)


@guarded
def get_user_by_name(name: str) -> Optional[User]:
    return User.query.filter_by(name=name).first()


@guarded
def list_users() -> list:
    return [u.to_dict() for u in User.query.order_by(User.uid).all()]


@guarded
def user_name_taken(name: str) -> bool:
    return db.session.query(User.uid).filter_by(name=name).first() is not None


@guarded
def add_user(name: str, password_hash: str, admin: bool = False) -> User:
    user = User(name=name, password=password_hash, admin=admin)
    db.session.add(user)
    db.session.commit()
    return user


@guarded
def update_user(uid: int, admin: Optional[bool] = None, password_hash: Optional[str] = None) -> None:
    user = db.session.get(User, uid)
    if admin is not None:
        user.admin = admin
    if password_hash is not None:
        user.password = password_hash
    db.session.commit()


@guarded
def delete_user(uid: int) -> None:
    # comments go first, they reference the user
    Comment.query.filter_by(uid=uid).delete()
    User.query.filter_by(uid=uid).delete()
    db.session.commit()


# ---------------------------------- posts ---------------------------------- #
@guarded
def get_post(pid: int) -> Optional[Post]:
    return db.session.get(Post, pid)


@guarded
def list_posts() -> list:
    return [p.to_dict() for p in Post.query.order_by(Post.date).all()]


@guarded
def save_post(pid: int, content: str) -> None:
    post = db.session.get(Post, pid)
    post.content = content
    db.session.commit()


# -------------------------------- comments --------------------------------- #
@guarded
def list_comments(pid: Optional[int] = None) -> list:
    query = Comment.query
    if pid is not None:
        query = query.filter_by(pid=pid)
    return [c.to_dict() for c in query.order_by(Comment.cid.desc()).all()]


@guarded
def has_commented(pid: int, uid: int) -> bool:
    return db.session.query(Comment.cid).filter_by(pid=pid, uid=uid).first() is not None


@guarded
def add_comment(pid: int, uid: int, text: str) -> Comment:
    comment = Comment(pid=pid, uid=uid, text=text)
    db.session.add(comment)
    db.session.commit()
    return comment


@guarded
def set_answer(cid: int, answer: str) -> Optional[dict]:
    comment = db.session.get(Comment, cid)
    if comment is None:
        return None
    comment.answer = answer
    db.session.commit()
    return comment.to_dict()


@guarded
def delete_comment(cid: int) -> bool:
    deleted = Comment.query.filter_by(cid=cid).delete()
    db.session.commit()
    return deleted > 0
