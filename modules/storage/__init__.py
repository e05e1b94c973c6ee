"""Storage module package: file-manager API over the upload folder."""

from flask import Blueprint

bp = Blueprint("storage", __name__, url_prefix="/api/storage")

from . import routes  # noqa: E402  pylint: disable=wrong-import-position

__all__ = ["bp", "routes"]
