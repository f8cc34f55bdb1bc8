from flask import Blueprint

store_bp = Blueprint("store", __name__, url_prefix="/api/v1")

from smartmark.store import routes  # noqa: E402,F401
