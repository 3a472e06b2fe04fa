"""Open Play event blueprint."""

from flask import Blueprint

bp = Blueprint("event", __name__, url_prefix="/open-play")

from . import routes  # noqa: E402, F401
from .models import OpenPlayEvent, OpenPlayMatch, SchedulingSettings  # noqa: E402
from .services import OpenPlayService  # noqa: E402
from .voting import VoteService  # noqa: E402

__all__ = [
    "OpenPlayEvent",
    "OpenPlayMatch",
    "OpenPlayService",
    "SchedulingSettings",
    "VoteService",
    "routes",
]
