"""Health check endpoints."""
import logging

from flask import Blueprint, current_app

bp = Blueprint("health", __name__)

logger = logging.getLogger(__name__)

CLIENT_BUILDER_EXTENSION = "cfapi.client_builder"


@bp.route("/health")
def health_check():
    """Liveness: the process serves requests."""
    return ("ok", 200, {"Content-Type": "text/plain"})


@bp.route("/ready")
def readiness_check():
    """Readiness: the cluster configuration the scoped clients need is loadable."""
    builder = current_app.extensions.get(CLIENT_BUILDER_EXTENSION)
    check = getattr(builder, "ready", None)
    if check is not None and not check():
        return ("cluster configuration unavailable", 503, {"Content-Type": "text/plain"})
    return ("ready", 200, {"Content-Type": "text/plain"})
