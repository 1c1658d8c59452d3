"""
Lectura del caché del catálogo: filtros, opciones de filtro, marcas, árbol de
categorías y estado de la sincronización.
"""
import json
import logging
import re
from datetime import datetime, timedelta
from functools import cmp_to_key
from typing import Dict, Iterable, List, Optional

from sqlalchemy import desc, func

from revendedoras import db
from revendedoras.models import CatalogoCache
from revendedoras.services.catalog_formatter import PATH_SEPARATOR, SIN_CATEGORIA

logger = logging.getLogger(__name__)

CACHE_DURATION = timedelta(minutes=10)
SYNC_WARNING_AFTER = timedelta(minutes=30)
SYNC_ERROR_AFTER = timedelta(hours=2)


def build_category_filter(
    category: Optional[str] = None,
    subcategory: Optional[str] = None,
    product_type: Optional[str] = None,
) -> Optional[str]:
    """Une categoría / subcategoría / tipo en un solo filtro "A > B > C"."""
    parts = []
    for part in (category, subcategory, product_type):
        part = (part or "").strip()
        if not part:
            break
        parts.append(part)
    return PATH_SEPARATOR.join(parts) or None


def get_cached_products(
    brand: Optional[str] = None,
    category: Optional[str] = None,
    sex: Optional[str] = None,
    search: Optional[str] = None,
) -> List[dict]:
    """
    Productos normalizados del caché, más vendidos y más recientes primero.
    brand y sex son exactos; category es substring del path guardado, así
    "MUJER" trae todo lo que cuelga de MUJER. category distingue mayúsculas en
    cualquier motor: LIKE no lo hace en SQLite, por eso se vuelve a chequear en
    memoria. search se aplica en memoria sobre nombre, marca y SKU de las variantes.
    """
    q = CatalogoCache.query
    if brand:
        q = q.filter(CatalogoCache.brand == brand)
    if category:
        q = q.filter(CatalogoCache.category.contains(category, autoescape=True))
    if sex:
        q = q.filter(CatalogoCache.sex == sex)
    q = q.order_by(desc(CatalogoCache.sales_count), desc(CatalogoCache.updated_at))

    rows = q.all()
    if category:
        rows = [row for row in rows if category in row.category]
    products = [json.loads(row.data) for row in rows]

    if search:
        needle = search.strip().lower()
        products = [p for p in products if _matches_search(p, needle)]
    return products


def _matches_search(product: dict, needle: str) -> bool:
    if needle in (product.get("name") or "").lower():
        return True
    if needle in (product.get("brand") or "").lower():
        return True
    return any(needle in (v.get("sku") or "").lower() for v in product.get("variants") or [])


def filter_by_variant(
    products: Iterable[dict],
    talle: Optional[str] = None,
    color: Optional[str] = None,
) -> List[dict]:
    """Deja los productos con al menos una variante con stock que tenga ese talle/color."""
    products = list(products)
    if not talle and not color:
        return products

    def _ok(v: dict) -> bool:
        if (v.get("stock") or 0) <= 0:
            return False
        if talle and (v.get("talle") or "").strip() != talle:
            return False
        if color and (v.get("color") or "").strip() != color:
            return False
        return True

    return [p for p in products if any(_ok(v) for v in p.get("variants") or [])]


_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def _leading_int(value: str) -> Optional[int]:
    m = _LEADING_INT.match(value)
    return int(m.group(1)) if m else None


def _compare_talles(a: str, b: str) -> int:
    # Numérico si ambos empiezan con número (85, 90B, 100); si no, alfabético
    na, nb = _leading_int(a), _leading_int(b)
    if na is not None and nb is not None and na != nb:
        return -1 if na < nb else 1
    return (a > b) - (a < b)


def sort_talles(talles: Iterable[str]) -> List[str]:
    return sorted(talles, key=cmp_to_key(_compare_talles))


def get_filter_options(products: Iterable[dict]) -> Dict[str, List[str]]:
    """Talles y colores disponibles (solo variantes con stock) del set filtrado."""
    talles, colores = set(), set()
    for p in products:
        for v in p.get("variants") or []:
            if (v.get("stock") or 0) <= 0:
                continue
            talle = (v.get("talle") or "").strip()
            color = (v.get("color") or "").strip()
            if talle:
                talles.add(talle)
            if color:
                colores.add(color)
    return {"talles": sort_talles(talles), "colores": sorted(colores)}


def get_brands() -> List[dict]:
    rows = (
        db.session.query(CatalogoCache.brand, func.count(CatalogoCache.id))
        .group_by(CatalogoCache.brand)
        .order_by(desc(func.count(CatalogoCache.id)), CatalogoCache.brand)
        .all()
    )
    return [{"marca": brand, "cantidad": count} for brand, count in rows]


def get_category_tree() -> List[dict]:
    """
    Árbol categoría → subcategoría → tipo a partir de los paths del caché.
    [{"name": "MUJER", "count": 12, "children": [...]}]
    """
    rows = (
        db.session.query(CatalogoCache.category, func.count(CatalogoCache.id))
        .group_by(CatalogoCache.category)
        .all()
    )
    root: Dict[str, dict] = {}
    for path, count in rows:
        if not path or path == SIN_CATEGORIA:
            continue
        level = root
        for part in path.split(PATH_SEPARATOR)[:3]:
            node = level.setdefault(part, {"name": part, "count": 0, "children": {}})
            node["count"] += count
            level = node["children"]
    return _tree_to_list(root)


def _tree_to_list(level: Dict[str, dict]) -> List[dict]:
    return [
        {"name": node["name"], "count": node["count"], "children": _tree_to_list(node["children"])}
        for node in sorted(level.values(), key=lambda n: n["name"])
    ]


def _last_update() -> Optional[datetime]:
    return db.session.query(func.max(CatalogoCache.updated_at)).scalar()


def needs_update(now: Optional[datetime] = None) -> bool:
    last = _last_update()
    if last is None:
        return True
    return (now or datetime.utcnow()) - last > CACHE_DURATION


def get_cache_stats() -> dict:
    last = _last_update()
    return {
        "totalProducts": CatalogoCache.query.count(),
        "lastUpdate": last.isoformat() if last else None,
        "nextUpdate": (last + CACHE_DURATION).isoformat() if last else None,
        "needsUpdate": needs_update(),
    }


def get_sync_status(now: Optional[datetime] = None) -> dict:
    """Resumen para monitoreo: antigüedad de la última sync y estado ok/warning/error."""
    now = now or datetime.utcnow()
    last = _last_update()
    total = CatalogoCache.query.count()
    brands = get_brands()

    if last is None:
        estado, mensaje = "error", "El catálogo nunca se sincronizó"
        elapsed = None
    else:
        elapsed = now - last
        if elapsed > SYNC_ERROR_AFTER:
            estado, mensaje = "error", "Hace más de 2 horas - Revisar cron job"
        elif elapsed > SYNC_WARNING_AFTER:
            estado, mensaje = "warning", "Hace más de 30 minutos desde última sincronización"
        else:
            estado, mensaje = "ok", "Sincronización reciente"

    minutes = int(elapsed.total_seconds() // 60) if elapsed is not None else None
    return {
        "timestamp": now.isoformat(),
        "estado": estado,
        "mensaje": mensaje,
        "sincronizacion": {
            "ultima": last.isoformat() if last else None,
            "minutosAtras": minutes,
            "horasAtras": minutes // 60 if minutes is not None else None,
        },
        "productos": {"total": total, "marcasUnicas": len(brands)},
        "topMarcas": brands[:10],
    }
