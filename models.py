"""
Shared SQLAlchemy models.

- User: an account; the one named ``admin`` is built in.
- Post: one entry per calendar day (date is unique), content edited by admins.
- Comment: one per (post, user), optionally answered by an admin.

Availability of a post depends on today's date:
- published (date <= today): content and comments can be read;
- open (date == today): comments can be written.
"""

from datetime import date
from typing import Optional

from flask_login import UserMixin
from sqlalchemy import UniqueConstraint

from extensions import db

ADMIN_NAME = "admin"


class User(UserMixin, db.Model):
    """Represents an account that can log in and comment."""

    __tablename__ = "users"

    uid = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(150), unique=True, nullable=False)
    password = db.Column(db.String(255), nullable=False)
    admin = db.Column(db.Boolean, nullable=False, default=False)

    def get_id(self) -> str:
        return str(self.uid)

    @property
    def is_admin_account(self) -> bool:
        """The built-in ``admin`` account, which can't be demoted or deleted."""
        return self.name == ADMIN_NAME

    def to_dict(self) -> dict:
        return {"uid": self.uid, "name": self.name, "admin": bool(self.admin)}

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"<User {self.name}>"


class Post(db.Model):
    __tablename__ = "posts"

    pid = db.Column(db.Integer, primary_key=True)
    date = db.Column(db.Date, unique=True, nullable=False)
    content = db.Column(db.Text, nullable=False, default="")

    def is_published(self, today: Optional[date] = None) -> bool:
        return self.date <= (today or date.today())

    def is_open(self, today: Optional[date] = None) -> bool:
        return self.date == (today or date.today())

    def to_dict(self) -> dict:
        return {"pid": self.pid, "date": self.date.isoformat(), "content": self.content}

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"<Post {self.date}>"


class Comment(db.Model):
    __tablename__ = "comments"
    __table_args__ = (UniqueConstraint("pid", "uid", name="uq_comment_post_user"),)

    cid = db.Column(db.Integer, primary_key=True)
    pid = db.Column(db.Integer, db.ForeignKey("posts.pid"), nullable=False, index=True)
    uid = db.Column(db.Integer, db.ForeignKey("users.uid"), nullable=False, index=True)
    text = db.Column(db.Text, nullable=False)
    answer = db.Column(db.Text, nullable=True)

    def to_dict(self) -> dict:
        data = {"cid": self.cid, "pid": self.pid, "uid": self.uid, "text": self.text}
        if self.answer is not None:
            data["answer"] = self.answer
        return data
