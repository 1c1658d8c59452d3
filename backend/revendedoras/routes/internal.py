"""
Rutas internas: sync del catálogo (llamable por cron o scheduler) y estado de la sync.
Protección: header X-Cron-Secret (o Authorization: Bearer) con CRON_SECRET, o solo localhost.
"""
import logging
import time
from datetime import datetime

from flask import Blueprint, current_app, request, jsonify

from revendedoras.services.catalog_service import get_sync_status
from revendedoras.tasks.sync_catalog import SyncInProgressError, run_sync_catalog

logger = logging.getLogger(__name__)
internal_bp = Blueprint("internal", __name__)


def _is_allowed():
    secret = current_app.config.get("CRON_SECRET")
    if secret:
        auth = request.headers.get("Authorization") or ""
        bearer = auth[7:] if auth.lower().startswith("bearer ") else None
        return secret in (request.headers.get("X-Cron-Secret"), bearer)
    return request.remote_addr in ("127.0.0.1", "::1", None)


@internal_bp.route("/sync-catalog", methods=["GET", "POST"])
def sync_catalog():
    """
    Reemplaza el caché del catálogo con el snapshot actual de Tiendanube.
    Cron: curl -H "X-Cron-Secret: TU_SECRET" http://localhost:5000/internal/sync-catalog
    """
    if not _is_allowed():
        return jsonify({"error": "Forbidden"}), 403

    start = time.monotonic()
    try:
        result = run_sync_catalog()
    except SyncInProgressError as e:
        return jsonify({"success": False, "error": str(e)}), 409
    except Exception as e:
        logger.exception("sync_catalog: %s", e)
        return jsonify({"success": False, "error": str(e)}), 500

    elapsed_ms = int((time.monotonic() - start) * 1000)
    return jsonify({
        "success": True,
        "count": result["count"],
        "categoryLevels": result["category_levels"],
        "duration": {"ms": elapsed_ms, "seconds": round(elapsed_ms / 1000, 2)},
        "timestamp": datetime.utcnow().isoformat(),
    })


@internal_bp.route("/sync-status", methods=["GET"])
def sync_status():
    if not _is_allowed():
        return jsonify({"error": "Forbidden"}), 403
    return jsonify(get_sync_status())
