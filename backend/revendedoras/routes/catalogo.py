"""
Catálogo: lectura del caché sincronizado desde Tiendanube.
Público (sin JWT): lo usan el catálogo y los catálogos digitales compartidos.
"""
import logging

from flask import Blueprint, request, jsonify

from revendedoras.services.catalog_service import (
    build_category_filter,
    filter_by_variant,
    get_brands,
    get_cache_stats,
    get_cached_products,
    get_category_tree,
    get_filter_options,
)
from revendedoras.utils import err

logger = logging.getLogger(__name__)
catalogo_bp = Blueprint("catalogo", __name__)


def _arg(name: str):
    return (request.args.get(name) or "").strip() or None


def _category_from_args():
    return build_category_filter(_arg("category"), _arg("subcategory"), _arg("productType"))


@catalogo_bp.route("", methods=["GET"])
@catalogo_bp.route("/", methods=["GET"])
def catalogo():
    """
    Query params:
      - brand: marca exacta
      - category / subcategory / productType: se unen en "A > B > C"
      - sex: Mujer | Hombre | Niños | Unisex
      - talle / color: al menos una variante con stock que coincida
      - search: nombre, marca o SKU
    """
    try:
        products = get_cached_products(
            brand=_arg("brand"),
            category=_category_from_args(),
            sex=_arg("sex"),
            search=_arg("search"),
        )
        products = filter_by_variant(products, talle=_arg("talle"), color=_arg("color"))
        return jsonify(products)
    except Exception as e:
        logger.exception("Catálogo error: %s", e)
        return err("Error al obtener productos", 500)


@catalogo_bp.route("/filtros", methods=["GET"])
def filtros():
    """Talles y colores disponibles (con stock) para los filtros de marca/categoría actuales."""
    try:
        products = get_cached_products(brand=_arg("brand"), category=_category_from_args())
        return jsonify(get_filter_options(products))
    except Exception as e:
        logger.exception("Filtros error: %s", e)
        return err("Error al obtener filtros", 500)


@catalogo_bp.route("/marcas", methods=["GET"])
def marcas():
    return jsonify(get_brands())


@catalogo_bp.route("/categorias", methods=["GET"])
def categorias():
    return jsonify(get_category_tree())


@catalogo_bp.route("/stats", methods=["GET"])
def stats():
    return jsonify(get_cache_stats())
