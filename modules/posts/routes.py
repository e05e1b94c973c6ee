"""HTTP routes for the daily posts and their comments."""

from http import HTTPStatus

from flask import current_app
from flask_login import login_required

import store
from dispatch import Message, register_routes
from permissions import admin_required, requester_uid
from schemas import AnswerBody, CommentBody, DeleteCommentBody, PostBody, has_query, query_int, with_body

from . import bp


def _load_post(pid):
    """(post, None) or (None, error message)."""
    if pid is None:
        return None, Message(HTTPStatus.BAD_REQUEST, text='"pid" must be an integer')
    found = store.get_post(pid)
    if not found.ok:
        return None, Message(HTTPStatus.INTERNAL_SERVER_ERROR)
    if found.value is None:
        return None, Message(HTTPStatus.NOT_FOUND, text="unknown post")
    return found.value, None


# ---------- Posts ----------
def get_post(pid: int):
    post, error = _load_post(pid)
    if error:
        return error
    if not post.is_published():
        current_app.logger.info("post %s (%s) is not published yet", post.pid, post.date)
        return Message(HTTPStatus.FORBIDDEN)
    return Message(json=post.to_dict())


@admin_required
def list_all_posts():
    posts = store.list_posts()
    if not posts.ok:
        return Message(HTTPStatus.INTERNAL_SERVER_ERROR)
    return Message(json=posts.value)


def get_posts():
    if has_query("pid"):
        return get_post(query_int("pid"))
    return list_all_posts()


def get_post_config():
    return Message(json={
        "start": current_app.config["SETUP_START"],
        "days": current_app.config["SETUP_DAYS"],
    })


@admin_required
@with_body(PostBody)
def save_post(body: PostBody):
    post, error = _load_post(query_int("pid"))
    if error:
        return error
    if not store.save_post(post.pid, body.text).ok:
        return Message(HTTPStatus.INTERNAL_SERVER_ERROR)
    return Message(json=post.to_dict())


# ---------- Comments ----------
def list_post_comments(pid: int):
    post, error = _load_post(pid)
    if error:
        return error
    if not post.is_published():
        return Message(HTTPStatus.FORBIDDEN)
    comments = store.list_comments(post.pid)
    if not comments.ok:
        return Message(HTTPStatus.INTERNAL_SERVER_ERROR)
    return Message(json=comments.value)


@admin_required
def list_all_comments():
    comments = store.list_comments()
    if not comments.ok:
        return Message(HTTPStatus.INTERNAL_SERVER_ERROR)
    return Message(json=comments.value)


def get_comments():
    if has_query("pid"):
        return list_post_comments(query_int("pid"))
    return list_all_comments()


@with_body(CommentBody)
def add_comment(body: CommentBody):
    post, error = _load_post(query_int("pid"))
    if error:
        return error

    # comments are only taken on the day of the post
    if not post.is_open():
        current_app.logger.info("post %s (%s) is not open for comments", post.pid, post.date)
        return Message(HTTPStatus.FORBIDDEN)

    uid = requester_uid()
    already = store.has_commented(post.pid, uid)
    if not already.ok:
        return Message(HTTPStatus.INTERNAL_SERVER_ERROR)
    if already.value:
        return Message(HTTPStatus.CONFLICT, text="user has already commented on post")

    created = store.add_comment(post.pid, uid, body.text)
    if created.conflict:
        return Message(HTTPStatus.CONFLICT, text="user has already commented on post")
    if not created.ok:
        return Message(HTTPStatus.INTERNAL_SERVER_ERROR)

    comments = store.list_comments(post.pid)
    if not comments.ok:
        return Message(HTTPStatus.INTERNAL_SERVER_ERROR)
    return Message(HTTPStatus.CREATED, json=comments.value)


@admin_required
@with_body(AnswerBody)
def add_answer(body: AnswerBody):
    cid = query_int("cid")
    if cid is None:
        return Message(HTTPStatus.BAD_REQUEST, text='"cid" must be an integer')

    answered = store.set_answer(cid, body.answer)
    if not answered.ok:
        return Message(HTTPStatus.INTERNAL_SERVER_ERROR)
    if answered.value is None:
        return Message(HTTPStatus.NOT_FOUND, text="unknown comment")
    return Message(json=answered.value)


@admin_required
@with_body(DeleteCommentBody)
def delete_comment(body: DeleteCommentBody):
    deleted = store.delete_comment(body.cid)
    if not deleted.ok:
        return Message(HTTPStatus.INTERNAL_SERVER_ERROR)
    if not deleted.value:
        return Message(HTTPStatus.NOT_FOUND, text="unknown comment")
    return Message(HTTPStatus.OK)


register_routes(bp, {
    "GET": {
        "posts": get_posts,
        "posts/config": get_post_config,
        "comments": get_comments,
    },
    "POST": {
        "post": save_post,
        "comment": add_comment,
        "comment/answer": add_answer,
    },
    "DELETE": {
        "comment": delete_comment,
    },
}, guard=login_required)
