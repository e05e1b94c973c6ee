"""
Request bodies and query parameters.

Bodies are validated with pydantic before a handler runs; a handler wrapped in
``with_body(Model)`` receives the parsed model as ``body`` or never runs.
"""

from functools import wraps
from http import HTTPStatus
from typing import List, Literal, Optional

from flask import current_app, request
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, StrictBool, StrictInt, StrictStr, ValidationError

from dispatch import Message


class RequestBody(BaseModel):
    model_config = ConfigDict(extra="ignore")


class LoginBody(RequestBody):
    user: StrictStr
    password: StrictStr


class NewUserBody(RequestBody):
    name: StrictStr = Field(min_length=1, validation_alias=AliasChoices("name", "user"))
    password: StrictStr = Field(min_length=1)


class ModifyUserBody(RequestBody):
    admin: StrictBool
    password: StrictStr = ""


class PostBody(RequestBody):
    text: StrictStr = Field(validation_alias=AliasChoices("text", "content"))


class CommentBody(RequestBody):
    text: StrictStr = Field(min_length=1)


class AnswerBody(RequestBody):
    answer: StrictStr


class DeleteCommentBody(RequestBody):
    cid: StrictInt


# ------------------------------- file browser ------------------------------ #
class StorageItem(RequestBody):
    path: StrictStr
    type: Literal["file", "dir"] = "file"


class NewFolderBody(RequestBody):
    name: StrictStr = Field(min_length=1)


class RenameBody(RequestBody):
    item: StrictStr
    name: StrictStr = Field(min_length=1)


class MoveBody(RequestBody):
    item: StrictStr
    items: List[StorageItem]


class DeleteItemsBody(RequestBody):
    items: List[StorageItem]


def with_body(model):
    """Validate the JSON body against ``model`` and pass it on as ``body``."""

    def decorator(handler):
        @wraps(handler)
        def wrapped(*args, **kwargs):
            payload = request.get_json(silent=True)
            if payload is None:
                current_app.logger.info("%s: body is missing or not JSON", handler.__name__)
                return Message(HTTPStatus.BAD_REQUEST, text="body must be JSON")
            try:
                body = model.model_validate(payload)
            except ValidationError as exc:
                current_app.logger.info("%s: invalid body: %s", handler.__name__, exc.errors(include_url=False))
                return Message(HTTPStatus.BAD_REQUEST, text=f"invalid body for {model.__name__}")
            return handler(*args, body=body, **kwargs)

        return wrapped

    return decorator


def query_int(name: str) -> Optional[int]:
    """Integer query parameter, ``None`` when missing or not an integer."""
    try:
        return int(request.args.get(name, ""))
    except ValueError:
        return None


def has_query(name: str) -> bool:
    return request.args.get(name, "") != ""
