"""
Response envelope and declarative route registration.

Handlers return a :class:`Message`; :func:`send_response` serializes it with the
priority json > raw > text > empty body.
"""

import re
from dataclasses import dataclass, field
from functools import wraps
from http import HTTPStatus
from typing import Any, Callable, Dict, Optional

from flask import Blueprint, Response, current_app, jsonify, request
from werkzeug.exceptions import HTTPException

Handler = Callable[..., "Message"]
RouteTable = Dict[str, Dict[str, Handler]]


@dataclass
class Message:
    status: int = HTTPStatus.OK
    json: Any = None
    raw: Optional[bytes] = None
    text: Optional[str] = None
    mimetype: Optional[str] = None
    headers: Dict[str, str] = field(default_factory=dict)


def send_response(message: Message) -> Response:
    if message.json is not None:
        response = jsonify(message.json)
    elif message.raw is not None:
        response = Response(message.raw, mimetype=message.mimetype or "application/octet-stream")
    elif message.text is not None:
        response = Response(message.text, mimetype=message.mimetype or "text/plain")
    else:
        response = Response(b"")

    response.status_code = int(message.status)
    for key, value in message.headers.items():
        response.headers[key] = value
    return response


def as_view(handler: Handler, guard: Optional[Callable] = None) -> Callable:
    """Wrap ``handler`` into a Flask view: log, authorize, serialize."""

    call = guard(handler) if guard is not None else handler

    @wraps(handler)
    def view(*args, **kwargs):
        current_app.logger.info("HTTP %s request: %s", request.method, request.full_path)
        result = call(*args, **kwargs)
        return send_response(result) if isinstance(result, Message) else result

    return view


def register_routes(bp: Blueprint, table: RouteTable, guard: Optional[Callable] = None) -> None:
    """Register ``{METHOD: {path: handler}}`` on ``bp``, every view behind ``guard``."""

    for method, paths in table.items():
        for path, handler in paths.items():
            endpoint = f"{method.lower()}_" + re.sub(r"[^0-9a-zA-Z]+", "_", path).strip("_")
            bp.add_url_rule(f"/{path}", endpoint, as_view(handler, guard), methods=[method])


def register_error_handlers(app) -> None:
    @app.errorhandler(HTTPException)
    def handle_http_error(exc: HTTPException):
        return send_response(Message(exc.code or HTTPStatus.INTERNAL_SERVER_ERROR, text=exc.name))

    @app.errorhandler(Exception)
    def handle_unexpected(exc: Exception):
        current_app.logger.exception("unhandled error on %s %s", request.method, request.path)
        return send_response(Message(HTTPStatus.INTERNAL_SERVER_ERROR))
