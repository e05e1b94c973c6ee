"""HTTP routes for sessions and user management."""

from functools import wraps
from http import HTTPStatus

from flask import current_app
from flask_login import login_required
from werkzeug.security import check_password_hash, generate_password_hash

import store
from dispatch import Message, register_routes, send_response
from models import ADMIN_NAME
from permissions import (
    admin_required,
    current_uid,
    is_admin,
    is_protected_target,
    is_self_or_admin,
    request_credential,
    requester_uid,
)
from schemas import LoginBody, ModifyUserBody, NewUserBody, query_int, with_body
from session_codec import Credential, clear_session_cookie, get_codec, set_session_cookie

from . import bp

LOGGED_OUT = {"uid": 0, "name": "", "admin": False, "logged_in": False}
# checked instead of a stored hash when the name is unknown
UNKNOWN_USER_HASH = generate_password_hash("unknown user")


def _users_message(status: int = HTTPStatus.OK) -> Message:
    users = store.list_users()
    if not users.ok:
        return Message(HTTPStatus.INTERNAL_SERVER_ERROR)
    return Message(status, json=users.value)


def _registration_allowed(handler):
    """Open registration lets every logged in user add accounts, otherwise admins only."""

    @wraps(handler)
    def wrapped(*args, **kwargs):
        if current_app.config.get("OPEN_REGISTRATION", True):
            return handler(*args, **kwargs)
        return admin_required(handler)(*args, **kwargs)

    return wrapped


# --------------------------------- session --------------------------------- #
def welcome():
    credential = request_credential()
    if credential is None:
        return Message(json={"logged_in": False})

    user = None
    uid = current_uid(credential)
    if uid is not None:
        found = store.get_user(uid)
        if not found.ok:
            return Message(HTTPStatus.INTERNAL_SERVER_ERROR)
        user = found.value

    if user is None:
        # forged, expired or orphaned credential
        current_app.logger.info("welcome: dropping unusable session cookie")
        response = send_response(Message(json={"logged_in": False}))
        clear_session_cookie(response)
        return response

    return Message(json={**user.to_dict(), "logged_in": True})


@with_body(LoginBody)
def login(body: LoginBody):
    found = store.get_user_by_name(body.user)
    if not found.ok:
        return Message(HTTPStatus.INTERNAL_SERVER_ERROR)

    user = found.value
    password_hash = user.password if user is not None else UNKNOWN_USER_HASH
    if not check_password_hash(password_hash, body.password) or user is None:
        current_app.logger.info("failed login for %r", body.user)
        return Message(HTTPStatus.UNAUTHORIZED, text="unknown user or wrong password")

    credential = Credential(uid=user.uid, name=user.name, admin=bool(user.admin), token=get_codec().issue(user.uid))
    response = send_response(Message(json={**user.to_dict(), "logged_in": True}))
    set_session_cookie(response, credential)
    current_app.logger.info("user %s logged in", user.name)
    return response


def logout():
    response = send_response(Message(json=LOGGED_OUT))
    clear_session_cookie(response)
    return response


# ---------------------------------- users ---------------------------------- #
@admin_required
def list_users():
    return _users_message()


@_registration_allowed
@with_body(NewUserBody)
def add_user(body: NewUserBody):
    if body.name == ADMIN_NAME:
        current_app.logger.warning("refusing to register the reserved name %r", ADMIN_NAME)
        return Message(HTTPStatus.CONFLICT, text="user already exists")

    taken = store.user_name_taken(body.name)
    if not taken.ok:
        return Message(HTTPStatus.INTERNAL_SERVER_ERROR)
    if taken.value:
        return Message(HTTPStatus.CONFLICT, text="user already exists")

    created = store.add_user(body.name, generate_password_hash(body.password))
    if created.conflict:
        return Message(HTTPStatus.CONFLICT, text="user already exists")
    if not created.ok:
        return Message(HTTPStatus.INTERNAL_SERVER_ERROR)

    current_app.logger.info("user %s created by uid %s", body.name, requester_uid())
    if is_admin(requester_uid()):
        return _users_message(HTTPStatus.CREATED)
    return Message(HTTPStatus.CREATED, json=created.value.to_dict())


@admin_required
@with_body(ModifyUserBody)
def modify_user(body: ModifyUserBody):
    uid = query_int("uid")
    if uid is None:
        return Message(HTTPStatus.BAD_REQUEST, text='"uid" must be an integer')

    found = store.get_user(uid)
    if not found.ok:
        return Message(HTTPStatus.INTERNAL_SERVER_ERROR)
    target = found.value
    if target is None:
        return Message(HTTPStatus.NOT_FOUND, text="unknown user")

    credential = request_credential()

    admin_flag = body.admin
    if is_protected_target(uid, credential) and not admin_flag:
        current_app.logger.warning("refusing to demote uid %s (self or admin account)", uid)
        admin_flag = True

    password_hash = None
    if body.password:
        if target.is_admin_account and not is_self_or_admin(uid, credential):
            current_app.logger.warning('password of "admin" can only be changed by itself')
            return Message(HTTPStatus.FORBIDDEN)
        password_hash = generate_password_hash(body.password)

    if not store.update_user(uid, admin=admin_flag, password_hash=password_hash).ok:
        return Message(HTTPStatus.INTERNAL_SERVER_ERROR)
    return _users_message()


@admin_required
def delete_user():
    uid = query_int("uid")
    if uid is None:
        return Message(HTTPStatus.BAD_REQUEST, text='"uid" must be an integer')

    found = store.get_user(uid)
    if not found.ok:
        return Message(HTTPStatus.INTERNAL_SERVER_ERROR)
    if found.value is None:
        return Message(HTTPStatus.NOT_FOUND, text="unknown user")
    name = found.value.name

    if is_protected_target(uid, request_credential()):
        current_app.logger.warning("refusing to delete uid %s (self or admin account)", uid)
        return Message(HTTPStatus.FORBIDDEN)

    if not store.delete_user(uid).ok:
        return Message(HTTPStatus.INTERNAL_SERVER_ERROR)
    current_app.logger.info("user %s deleted together with its comments", name)
    return _users_message()


register_routes(bp, {
    "GET": {"welcome": welcome, "logout": logout},
    "POST": {"login": login},
})

register_routes(bp, {
    "GET": {"users": list_users},
    "POST": {"user": add_user, "user/modify": modify_user},
    "DELETE": {"user": delete_user},
}, guard=login_required)
