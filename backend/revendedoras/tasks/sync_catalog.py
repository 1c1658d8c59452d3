"""
Sincroniza el catálogo de Tiendanube hacia catalogo_cache.
Se ejecuta cada CATALOG_SYNC_MINUTES por APScheduler o vía /internal/sync-catalog (cron).

Orden estricto: traer productos → traer categorías → formatear → reemplazar el caché.
Cualquier error antes del reemplazo deja el caché anterior intacto; el borrado y la
inserción van en una sola transacción.
"""
import json
import logging
import threading
from datetime import datetime
from typing import Dict, Optional

from flask import current_app
from sqlalchemy import func

from revendedoras import db
from revendedoras.models import ESTADO_CANCELADO, CatalogoCache, Linea, Pedido
from revendedoras.services.catalog_formatter import (
    build_categories_map,
    category_depth_stats,
    format_products,
    infer_sex,
)
from revendedoras.services.tiendanube_client import TiendanubeClient

logger = logging.getLogger(__name__)

_sync_lock = threading.Lock()


class SyncInProgressError(Exception):
    """Ya hay una sincronización del catálogo corriendo en este proceso."""


def _sales_by_product() -> Dict[str, int]:
    """Unidades vendidas por product_id en pedidos no cancelados."""
    rows = (
        db.session.query(Linea.product_id, func.coalesce(func.sum(Linea.qty), 0))
        .join(Pedido, Pedido.id == Linea.pedido_id)
        .filter(Pedido.estado != ESTADO_CANCELADO)
        .group_by(Linea.product_id)
        .all()
    )
    return {str(pid): int(total) for pid, total in rows}


def _replace_cache(products: list) -> None:
    """Borra todo el caché e inserta el snapshot nuevo en una sola transacción."""
    now = datetime.utcnow()
    try:
        sales = _sales_by_product()
        db.session.query(CatalogoCache).delete(synchronize_session=False)
        db.session.add_all([
            CatalogoCache(
                product_id=str(p["id"]),
                data=json.dumps(p, ensure_ascii=False),
                brand=p["brand"],
                category=p["category"],
                sex=infer_sex(p["category"], p["name"]),
                sales_count=sales.get(str(p["id"]), 0),
                updated_at=now,
            )
            for p in _dedupe(products)
        ])
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise


def _dedupe(products: list) -> list:
    # Un product_id por fila; si Tiendanube lo repite entre páginas gana el último
    by_id = {}
    for p in products:
        by_id[str(p["id"])] = p
    return list(by_id.values())


def run_sync_catalog(client: Optional[TiendanubeClient] = None) -> dict:
    """
    Trae todo el catálogo y reemplaza el caché.
    Lanza SyncInProgressError si otra sincronización está corriendo.
    """
    if not _sync_lock.acquire(blocking=False):
        raise SyncInProgressError("Ya hay una sincronización del catálogo en curso")
    try:
        client = client or TiendanubeClient.from_config(current_app.config)
        logger.info("sync_catalog: iniciando sincronización del catálogo...")

        raw_products = client.get_all_products(only_published=True)
        categories = build_categories_map(client.get_all_categories())
        formatted = format_products(raw_products, categories)

        _replace_cache(formatted)

        count = CatalogoCache.query.count()
        levels = category_depth_stats(formatted)
        logger.info("sync_catalog: %d productos guardados en caché", count)
        return {"count": count, "category_levels": levels}
    finally:
        _sync_lock.release()
