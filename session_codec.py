"""
Session tokens and the ``session`` credential cookie.

The token is a HS256 JWT carrying the user id. Next to the signature it holds
``iat``/``exp`` claims, so an expired token is refused even if the browser keeps
the cookie longer than its max-age.

The cookie value is base64url(JSON) of ``{uid, name, admin, token}``. Only the
token is trusted; the other fields are display data for the client.
"""

import base64
import binascii
import json
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from flask import current_app

log = logging.getLogger(__name__)

COOKIE_NAME = "session"
ALGORITHM = "HS256"


@dataclass(frozen=True)
class Credential:
    uid: int
    name: str
    admin: bool
    token: str


class SessionCodec:
    def __init__(self, secret: str, expire: timedelta):
        if not secret:
            raise ValueError("session secret must not be empty")
        self._secret = secret
        self.expire = expire

    def issue(self, uid: int) -> str:
        now = datetime.now(tz=timezone.utc)
        payload = {"uid": uid, "iat": now, "exp": now + self.expire}
        return jwt.encode(payload, self._secret, algorithm=ALGORITHM)

    def verify(self, token) -> Optional[int]:
        """Return the uid inside ``token`` or ``None`` when it can't be trusted."""
        if not isinstance(token, str) or not token:
            return None
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[ALGORITHM],
                options={"require": ["uid", "exp"]},
            )
        except jwt.PyJWTError as exc:
            log.debug("rejected session token: %s", exc)
            return None

        uid = payload.get("uid")
        if isinstance(uid, bool) or not isinstance(uid, int):
            return None
        return uid


def get_codec() -> SessionCodec:
    return current_app.extensions["session_codec"]


# --------------------------------- cookie ---------------------------------- #
def encode_credential(credential: Credential) -> str:
    raw = json.dumps(
        {"uid": credential.uid, "name": credential.name, "admin": credential.admin, "token": credential.token},
        separators=(",", ":"),
    )
    return base64.urlsafe_b64encode(raw.encode("utf-8")).decode("ascii")


def decode_credential(value: Optional[str]) -> Optional[Credential]:
    if not value:
        return None
    try:
        data = json.loads(base64.urlsafe_b64decode(value.encode("ascii")))
    except (binascii.Error, ValueError, UnicodeError):
        return None
    if not isinstance(data, dict) or not isinstance(data.get("token"), str):
        return None

    uid = data.get("uid")
    return Credential(
        uid=uid if isinstance(uid, int) else 0,
        name=str(data.get("name", "")),
        admin=bool(data.get("admin", False)),
        token=data["token"],
    )


def read_credential(request) -> Optional[Credential]:
    return decode_credential(request.cookies.get(COOKIE_NAME))


def set_session_cookie(response, credential: Credential) -> None:
    response.set_cookie(
        COOKIE_NAME,
        encode_credential(credential),
        max_age=int(get_codec().expire.total_seconds()),
        httponly=True,
        secure=current_app.config.get("SESSION_COOKIE_SECURE_FLAG", True),
        samesite="Strict",
    )


def clear_session_cookie(response) -> None:
    response.delete_cookie(
        COOKIE_NAME,
        httponly=True,
        secure=current_app.config.get("SESSION_COOKIE_SECURE_FLAG", True),
        samesite="Strict",
    )
