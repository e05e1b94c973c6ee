"""Posts module package: daily posts and their comments."""

from flask import Blueprint

bp = Blueprint("posts", __name__, url_prefix="/api")

from . import routes  # noqa: E402  pylint: disable=wrong-import-position

__all__ = ["bp", "routes"]
