"""
Administración: sync manual del catálogo, inicialización de gamificación,
seed de badges y marcas con programa de embajadoras. Requiere is_admin.
"""
import logging
import re
import time

from flask import Blueprint, current_app, request, jsonify
from flask_jwt_extended import jwt_required

from revendedoras.models import BrandAmbassador
from revendedoras.services import gamification
from revendedoras.services.catalog_formatter import build_categories_map, format_products
from revendedoras.services.catalog_service import get_sync_status
from revendedoras.services.tiendanube_client import TiendanubeClient, TiendanubeError
from revendedoras.tasks.sync_catalog import SyncInProgressError, run_sync_catalog
from revendedoras.utils import err, parse_bool, require_admin

logger = logging.getLogger(__name__)
admin_bp = Blueprint("admin", __name__)

_SLUG_RE = re.compile(r"^[a-z0-9-]{2,64}$")


def _brand_to_dict(b: BrandAmbassador) -> dict:
    return {
        "id": b.id,
        "brandSlug": b.brand_slug,
        "brandName": b.brand_name,
        "logoEmoji": b.logo_emoji,
        "logoUrl": b.logo_url,
        "isActive": b.is_active,
    }


@admin_bp.route("/force-sync", methods=["POST"])
@jwt_required()
def force_sync():
    user, error = require_admin()
    if error:
        return error
    start = time.monotonic()
    try:
        result = run_sync_catalog()
    except SyncInProgressError as e:
        return jsonify({"success": False, "error": str(e)}), 409
    except Exception as e:
        logger.exception("force_sync (admin %s): %s", user.id, e)
        return jsonify({"success": False, "error": str(e)}), 500
    logger.info("force_sync por admin %s: %d productos", user.id, result["count"])
    return jsonify({
        "success": True,
        "count": result["count"],
        "categoryLevels": result["category_levels"],
        "duration": {"ms": int((time.monotonic() - start) * 1000)},
    })


@admin_bp.route("/sync-status", methods=["GET"])
@jwt_required()
def sync_status():
    _, error = require_admin()
    if error:
        return error
    return jsonify(get_sync_status())


@admin_bp.route("/init-gamification", methods=["POST"])
@jwt_required()
def init_gamification():
    """Recalcula niveles y badges de todos los usuarios. Se puede correr más de una vez."""
    _, error = require_admin()
    if error:
        return error
    try:
        seeded = gamification.seed_badges()
        result = gamification.initialize_gamification()
    except Exception as e:
        logger.exception("init_gamification: %s", e)
        return err("Error al inicializar la gamificación", 500)
    return jsonify({"success": True, "badgesSeeded": seeded, **result})


@admin_bp.route("/seed-badges", methods=["POST"])
@jwt_required()
def seed_badges():
    _, error = require_admin()
    if error:
        return error
    try:
        count = gamification.seed_badges()
        brands = gamification.seed_brand_ambassadors()
    except Exception as e:
        logger.exception("seed_badges: %s", e)
        return err("Error al crear los badges", 500)
    return jsonify({"success": True, "badges": count, "brands": brands})


@admin_bp.route("/brands", methods=["GET", "POST"])
@jwt_required()
def brands():
    """
    GET  → marcas del programa de embajadoras.
    POST → crea o actualiza: {brandSlug, brandName, logoEmoji?, logoUrl?, isActive?}
    """
    _, error = require_admin()
    if error:
        return error

    if request.method == "GET":
        items = BrandAmbassador.query.order_by(BrandAmbassador.brand_name.asc()).all()
        return jsonify([_brand_to_dict(b) for b in items])

    data = request.get_json() or {}
    slug = (data.get("brandSlug") or "").strip().lower()
    name = (data.get("brandName") or "").strip()
    if not slug or not name:
        return err("brandSlug y brandName son requeridos")
    if not _SLUG_RE.match(slug):
        return err("brandSlug solo admite minúsculas, números y guiones")
    is_active = parse_bool(data.get("isActive"))

    gamification.seed_brand_ambassadors([{
        "brand_slug": slug,
        "brand_name": name,
        "logo_emoji": (data.get("logoEmoji") or "").strip() or None,
        "logo_url": (data.get("logoUrl") or "").strip() or None,
        "is_active": True if is_active is None else is_active,
    }])
    brand = BrandAmbassador.query.filter_by(brand_slug=slug).first()
    return jsonify({"success": True, "brand": _brand_to_dict(brand)})


# ── Consultas directas a Tiendanube ────────────────────────────────────────

def _tiendanube():
    return TiendanubeClient.from_config(current_app.config)


@admin_bp.route("/tiendanube/mas-vendidos", methods=["GET"])
@jwt_required()
def best_sellers():
    """Ranking de ventas según Tiendanube (en vivo, sin caché). ?limit= (1-200, default 20)."""
    _, error = require_admin()
    if error:
        return error
    try:
        limit = min(max(int(request.args.get("limit", 20)), 1), 200)
    except ValueError:
        return err("limit debe ser un número")
    client = _tiendanube()
    try:
        products = client.get_best_selling_products(limit=limit)
        categories = build_categories_map(client.get_all_categories())
    except TiendanubeError as e:
        logger.error("mas-vendidos: %s", e)
        return err(str(e), 502)
    return jsonify(format_products(products, categories))


@admin_bp.route("/tiendanube/productos/<product_id>", methods=["GET"])
@jwt_required()
def tiendanube_product(product_id):
    """Producto crudo de Tiendanube, para comparar contra el caché."""
    _, error = require_admin()
    if error:
        return error
    try:
        return jsonify(_tiendanube().get_product(product_id))
    except TiendanubeError as e:
        if e.status_code == 404:
            return err("Producto no encontrado en Tiendanube", 404)
        logger.error("producto %s: %s", product_id, e)
        return err(str(e), 502)
