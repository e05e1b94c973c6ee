# -*- coding: utf-8 -*-
"""
File manager API over the upload folder (vuefinder protocol).

/api/storage/browse?q=<action>
- GET  index | preview | download | subfolders
- POST newfolder | rename | move | delete
/api/storage/upload: multipart "file" (+ optional "name") into ?path=
/api/storage/public/<path>: raw file

Paths arrive as "<ADAPTER>://<relative path>". Everything is admin only, and every
path goes through StorageGuard.resolve(): an escape answers 403 and touches nothing.
"""

from functools import wraps
from http import HTTPStatus

from flask import current_app, request
from flask_login import login_required

from dispatch import Message, register_routes
from permissions import admin_required
from schemas import DeleteItemsBody, MoveBody, NewFolderBody, RenameBody, with_body
from storage import PathEscape, StorageGuard, strip_adapter
from utils import media_type

from . import bp


# ---------- Helpers ----------
def _guard() -> StorageGuard:
    return current_app.extensions["storage_guard"]


def _adapter() -> str:
    adapter = request.args.get("adapter", "")
    if adapter in ("", "null", "undefined"):
        return current_app.config["STORAGE_ADAPTER"]
    return adapter


def _path(value) -> str:
    return strip_adapter(value or "", _adapter())


def storage_errors(handler):
    """Translate filesystem failures into responses."""

    @wraps(handler)
    def wrapped(*args, **kwargs):
        try:
            return handler(*args, **kwargs)
        except PathEscape:
            return Message(HTTPStatus.FORBIDDEN)
        except FileNotFoundError as exc:
            current_app.logger.info("%s: no such file %s", handler.__name__, exc)
            return Message(HTTPStatus.NOT_FOUND)
        except FileExistsError as exc:
            current_app.logger.info("%s: already exists %s", handler.__name__, exc)
            return Message(HTTPStatus.CONFLICT, text="target already exists")
        except (OSError, ValueError) as exc:
            current_app.logger.warning("%s failed: %s", handler.__name__, exc)
            return Message(HTTPStatus.BAD_REQUEST)

    return wrapped


# ---------- GET ----------
def list_files():
    adapter = _adapter()
    directory = _path(request.args.get("path"))
    entries = _guard().list(directory)
    return Message(json={
        "adapter": adapter,
        "storages": [adapter],
        "dirname": f"{adapter}://{directory}",
        "files": [e.to_resource(adapter) for e in entries],
    })


def preview_file(as_attachment: bool = False):
    if not request.args.get("path"):
        current_app.logger.info("query is missing 'path'")
        return Message(HTTPStatus.BAD_REQUEST)

    path = _path(request.args["path"])
    message = Message(raw=_guard().read(path), mimetype=media_type(path))
    if as_attachment:
        filename = path.rsplit("/", 1)[-1].replace('"', "")
        message.headers["Content-Disposition"] = f'attachment; filename="{filename}"'
    return message


def download_file():
    return preview_file(as_attachment=True)


def list_subfolders():
    adapter = _adapter()
    folders = _guard().subfolders(_path(request.args.get("path")))
    return Message(json={"folders": [f.to_resource(adapter) for f in folders]})


# ---------- POST ----------
@with_body(NewFolderBody)
def new_folder(body: NewFolderBody):
    _guard().create_dir(_path(request.args.get("path")), body.name)
    return list_files()


@with_body(RenameBody)
def rename_item(body: RenameBody):
    _guard().rename(_path(body.item), body.name)
    return list_files()


@with_body(MoveBody)
def move_items(body: MoveBody):
    _guard().move([_path(item.path) for item in body.items], _path(body.item))
    return list_files()


@with_body(DeleteItemsBody)
def delete_items(body: DeleteItemsBody):
    _guard().delete_many((_path(item.path), item.type == "dir") for item in body.items)
    return list_files()


BROWSE_ACTIONS = {
    "GET": {
        "index": list_files,
        "preview": preview_file,
        "download": download_file,
        "subfolders": list_subfolders,
    },
    "POST": {
        "newfolder": new_folder,
        "rename": rename_item,
        "move": move_items,
        "delete": delete_items,
    },
}


@admin_required
@storage_errors
def browse():
    action = request.args.get("q", "")
    handler = BROWSE_ACTIONS[request.method].get(action)
    if handler is None:
        current_app.logger.info('invalid value for "q" in query: %r', action)
        return Message(HTTPStatus.BAD_REQUEST, text='query needs a valid "q"')
    return handler()


@admin_required
@storage_errors
def upload():
    upload_file = request.files.get("file")
    if upload_file is None:
        return Message(HTTPStatus.BAD_REQUEST, text="no file uploaded")

    name = request.form.get("name") or upload_file.filename
    if not name:
        return Message(HTTPStatus.BAD_REQUEST, text="file has no name")

    _guard().save_upload(_path(request.args.get("path")), name, upload_file)
    return list_files()


@admin_required
@storage_errors
def public_file(filename: str):
    return Message(raw=_guard().read(filename), mimetype=media_type(filename))


register_routes(bp, {
    "GET": {"browse": browse, "public/<path:filename>": public_file},
    "POST": {"browse": browse, "upload": upload},
}, guard=login_required)
