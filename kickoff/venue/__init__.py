"""The venue blueprint."""

from flask import Blueprint

bp = Blueprint("venue", __name__, url_prefix="/api/venues")

from . import routes  # noqa: E402

__all__ = ["routes"]
