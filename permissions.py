# permissions.py
# -*- coding: utf-8 -*-
"""
Authorization for the API.

Checks on a credential (``session_codec.Credential``):
- authenticate(credential): the signed token verifies.
- current_uid(credential): uid inside the verified token.
- is_admin(uid): admin flag from the store.
- is_self_or_admin(target, credential): requester is the target or the ``admin`` account.
- is_protected_target(target, cred): target is the requester or the ``admin`` account.

Any store failure while checking resolves to "deny".

Decorators for views:
- login_required (Flask-Login): valid credential, 403 otherwise (see unauthorized()).
- admin_required: valid credential of an admin, 403 otherwise.
"""

from functools import wraps
from http import HTTPStatus
from typing import Optional

from flask import current_app, request
from flask_login import current_user

import store
from dispatch import Message, send_response
from extensions import login_manager
from models import ADMIN_NAME, User
from session_codec import Credential, get_codec, read_credential


# ------------------------------ CREDENTIAL CHECKS ---------------------------- #
def current_uid(credential: Optional[Credential]) -> Optional[int]:
    if credential is None:
        return None
    return get_codec().verify(credential.token)


def authenticate(credential: Optional[Credential]) -> bool:
    return current_uid(credential) is not None


def is_admin(uid: Optional[int]) -> bool:
    if uid is None:
        return False
    found = store.get_user(uid)
    if not found.ok or found.value is None:
        return False
    return bool(found.value.admin)


def _requester(credential: Optional[Credential]) -> Optional[User]:
    uid = current_uid(credential)
    if uid is None:
        return None
    found = store.get_user(uid)
    return found.value if found.ok else None


def is_self_or_admin(target_uid: int, credential: Optional[Credential]) -> bool:
    """True if the request acts on itself or comes from the ``admin`` account.

    The ``admin`` account may always act, whatever the target is.
    """
    uid = current_uid(credential)
    if uid is None:
        return False
    if uid == target_uid:
        return True
    requester = _requester(credential)
    return requester is not None and requester.name == ADMIN_NAME


def is_protected_target(target_uid: int, credential: Optional[Credential]) -> bool:
    """True if ``target_uid`` is the requester itself or the ``admin`` account.

    Protected accounts can't be deleted or demoted. When the store can't answer
    the target counts as protected.
    """
    uid = current_uid(credential)
    if uid is None or uid == target_uid:
        return True
    found = store.get_user(target_uid)
    if not found.ok:
        return True
    return found.value is not None and found.value.name == ADMIN_NAME


# ------------------------------- FLASK-LOGIN ------------------------------- #
@login_manager.request_loader
def load_user_from_request(req) -> Optional[User]:
    """Resolve ``current_user`` from the ``session`` cookie on every request."""

    uid = current_uid(read_credential(req))
    if uid is None:
        return None
    found = store.get_user(uid)
    return found.value if found.ok else None


@login_manager.unauthorized_handler
def unauthorized():
    current_app.logger.info("rejected unauthenticated %s %s", request.method, request.path)
    return send_response(Message(HTTPStatus.FORBIDDEN))


# ------------------------------- DECORATORS -------------------------------- #
def admin_required(view_func):
    """Let the view run only for an authenticated admin; 403 otherwise."""

    @wraps(view_func)
    def wrapped(*args, **kwargs):
        uid = current_uid(read_credential(request))
        if not is_admin(uid):
            current_app.logger.warning("user %s is no admin (%s %s)", uid, request.method, request.path)
            return Message(HTTPStatus.FORBIDDEN)
        return view_func(*args, **kwargs)

    return wrapped


def request_credential() -> Optional[Credential]:
    return read_credential(request)


def requester_uid() -> Optional[int]:
    if current_user.is_authenticated:
        return current_user.uid
    return current_uid(request_credential())
