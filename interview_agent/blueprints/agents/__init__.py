from flask import Blueprint

bp = Blueprint("agents", __name__)

from . import routes  # noqa: E402,F401
