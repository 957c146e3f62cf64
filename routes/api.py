"""
API routes (stock and health).

Handles:
- /api/stock         - Current stock snapshot summary
- /api/stock/refresh - Refetch stock now
- /health            - Health check endpoint
"""

from flask import (
    Blueprint,
    current_app,
    jsonify,
    request,
)

from core.exceptions import StockNotReadyError
from services.stock_service import FACTORY_VIEW, VIEWS
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

api_bp = Blueprint("api", __name__)


@api_bp.route("/api/stock", methods=["GET"])
def stock():
    """
    Stock snapshot for one view.

    Query: view=factory|dealer (default factory), units=1 to include units.

    This uses the STOCK SERVICE's cached data (refreshed in the background).
    """
    view = request.args.get("view", FACTORY_VIEW)
    if view not in VIEWS:
        return jsonify({"error": f"Unknown stock view: {view}", "details": {}}), 400

    include_units = request.args.get("units") == "1"
    stock_service = current_app.config["STOCK_SERVICE"]

    try:
        snapshot = stock_service.get_snapshot_or_raise(view)
    except StockNotReadyError as e:
        return jsonify({"error": e.message, "details": e.details}), 503

    return jsonify(snapshot.to_dict(include_units=include_units))


@api_bp.route("/api/stock/refresh", methods=["POST"])
def refresh_stock():
    """Refetch one view (or both) in the request thread."""
    view = request.args.get("view")
    if view is not None and view not in VIEWS:
        return jsonify({"error": f"Unknown stock view: {view}", "details": {}}), 400

    stock_service = current_app.config["STOCK_SERVICE"]
    refreshed = stock_service.force_refresh(view)

    if not refreshed:
        logger.warning(f"Manual stock refresh failed (view={view or 'all'})")
        return jsonify({"refreshed": False, "error": "Stock refresh failed"}), 502

    targets = (view,) if view else VIEWS
    return jsonify({
        "refreshed": True,
        "views": {v: len(stock_service.get_snapshot(v)) for v in targets},
    })


@api_bp.route("/health", methods=["GET"])
def health():
    """Health check endpoint with service status."""
    health_status = {
        "status": "ok",
        "environment": current_app.config.get("ENVIRONMENT", "unknown"),
        "checks": {}
    }

    # Check stock service
    stock_service = current_app.config.get("STOCK_SERVICE")
    if stock_service and stock_service.is_running:
        snapshot = stock_service.get_snapshot(FACTORY_VIEW)
        if snapshot.is_stale:
            health_status["checks"]["stock"] = "stale"
        else:
            health_status["checks"]["stock"] = "ok"
    else:
        health_status["checks"]["stock"] = "not_running"
        health_status["status"] = "degraded"

    # Check dispatch service
    dispatch_service = current_app.config.get("DISPATCH_SERVICE")
    if dispatch_service:
        health_status["checks"]["dispatch_service"] = "ok"
        health_status["checks"]["sessions"] = len(dispatch_service.sessions)
    else:
        health_status["checks"]["dispatch_service"] = "not_available"
        health_status["status"] = "degraded"

    status_code = 200 if health_status["status"] == "ok" else 503
    return health_status, status_code
