"""
Normalización del catálogo de Tiendanube.

- build_category_path: reconstruye "MUJER > ROPA INTERIOR > BOMBACHAS" subiendo por
  los parent de una tabla plana de categorías. Tolera ids faltantes y ciclos.
- format_products: producto crudo → producto normalizado para el frontend y el caché.
- infer_sex: heurística por palabras clave (primera coincidencia gana).

El etiquetado de categorías en Tiendanube es inconsistente, así que nada de esto
lanza por datos malos: degrada a un path parcial o a "Sin categoría".
"""
import logging
from typing import Any, Dict, Iterable, List, Optional

logger = logging.getLogger(__name__)

SIN_CATEGORIA = "Sin categoría"
SIN_MARCA = "Sin marca"
SIN_NOMBRE = "Sin nombre"
PLACEHOLDER_IMAGE = "/placeholder.png"
PATH_SEPARATOR = " > "
MAX_CATEGORY_DEPTH = 10

# Orden = prioridad. Se compara contra "<categoría> <nombre>" en minúsculas.
SEX_KEYWORDS = (
    ("Mujer", ("mujer", "dama", "femenin")),
    ("Hombre", ("hombre", "masculin", "caballero")),
    ("Niños", ("niñ", "kid", "infant", "bebe")),
)
DEFAULT_SEX = "Unisex"


def localized(value: Any, lang: str = "es") -> str:
    """Tiendanube manda textos como {"es": "..."}; acepta también strings planos."""
    if value is None:
        return ""
    if isinstance(value, dict):
        text = value.get(lang)
        if text is None:
            text = next((v for v in value.values() if v), "")
        return str(text or "")
    return str(value)


def _parent_id(raw_parent: Any) -> Optional[int]:
    try:
        parent = int(raw_parent)
    except (TypeError, ValueError):
        return None
    return parent if parent > 0 else None


def build_categories_map(raw_categories: Iterable[dict]) -> Dict[int, dict]:
    """Lista cruda de /categories → {id: {"id", "name", "parent"}} (parent 0 → None)."""
    categories: Dict[int, dict] = {}
    for cat in raw_categories or []:
        try:
            cat_id = int(cat["id"])
        except (KeyError, TypeError, ValueError):
            logger.warning("Categoría sin id válido ignorada: %r", cat)
            continue
        categories[cat_id] = {
            "id": cat_id,
            "name": localized(cat.get("name")).strip(),
            "parent": _parent_id(cat.get("parent")),
        }
    return categories


def build_category_path(category_id: Any, categories_by_id: Dict[int, dict]) -> str:
    """
    Sube desde category_id hasta la raíz y devuelve los nombres unidos con " > ",
    raíz primero. Corta en: parent nulo/0, id inexistente (warning), id repetido
    (ciclo) o MAX_CATEGORY_DEPTH saltos. Nunca lanza.
    """
    path: List[str] = []
    visited = set()
    current = _parent_id(category_id)

    while current is not None and len(path) < MAX_CATEGORY_DEPTH:
        if current in visited:
            logger.warning("Ciclo de categorías detectado en id %s (inicio %s)", current, category_id)
            break
        visited.add(current)

        category = categories_by_id.get(current)
        if category is None:
            logger.warning("Categoría %s no encontrada (inicio %s)", current, category_id)
            break

        path.insert(0, category["name"])
        current = _parent_id(category.get("parent"))

    return PATH_SEPARATOR.join(path)


def _product_category(product: dict, categories_by_id: Dict[int, dict]) -> str:
    cats = product.get("categories") or []
    if not cats:
        return SIN_CATEGORIA
    first = cats[0]
    first_id = first.get("id") if isinstance(first, dict) else first
    return build_category_path(first_id, categories_by_id) or SIN_CATEGORIA


def _variant_value(values: List[Any], index: int) -> str:
    if index < len(values):
        return localized(values[index]).strip()
    return ""


def format_variant(variant: dict) -> dict:
    values = variant.get("values") or []
    try:
        price = float(variant.get("price") or 0)
    except (TypeError, ValueError):
        price = 0.0
    return {
        "id": variant.get("id"),
        "sku": variant.get("sku") or "",
        "price": price,
        "stock": variant.get("stock") or 0,
        "talle": _variant_value(values, 0),
        "color": _variant_value(values, 1),
    }


def format_product(product: dict, categories_by_id: Dict[int, dict]) -> dict:
    images = [img.get("src") for img in (product.get("images") or []) if img.get("src")]
    return {
        "id": product["id"],
        "name": localized(product.get("name")).strip() or SIN_NOMBRE,
        "brand": (product.get("brand") or "").strip() or SIN_MARCA,
        "category": _product_category(product, categories_by_id),
        "image": images[0] if images else PLACEHOLDER_IMAGE,
        "images": images,
        "variants": [format_variant(v) for v in (product.get("variants") or [])],
        "published": bool(product.get("published", True)),
    }


def category_depth(path: str) -> int:
    if not path or path == SIN_CATEGORIA:
        return 0
    return len(path.split(PATH_SEPARATOR))


def category_depth_stats(products: Iterable[dict]) -> Dict[str, int]:
    """Cuántos productos quedaron con 0/1/2/3/4+ niveles de categoría."""
    stats = {"0": 0, "1": 0, "2": 0, "3": 0, "4+": 0}
    for p in products:
        depth = category_depth(p.get("category", ""))
        stats["4+" if depth >= 4 else str(depth)] += 1
    return stats


def format_products(raw_products: Iterable[dict], categories_by_id: Dict[int, dict]) -> List[dict]:
    """
    Formatea todos los productos. Un producto que falla se loguea y se descarta;
    nunca aborta el lote.
    """
    formatted: List[dict] = []
    dropped = 0
    for product in raw_products or []:
        try:
            formatted.append(format_product(product, categories_by_id))
        except Exception as e:
            dropped += 1
            pid = product.get("id") if isinstance(product, dict) else None
            logger.warning("Error formateando producto %s: %s", pid, e)

    stats = category_depth_stats(formatted)
    logger.info(
        "Productos formateados: %d (descartados %d). Niveles de categoría: %s",
        len(formatted), dropped, stats,
    )
    if stats["0"]:
        logger.warning("%d productos quedaron como '%s'", stats["0"], SIN_CATEGORIA)
    return formatted


def infer_sex(category: str, name: str) -> str:
    """Mujer | Hombre | Niños | Unisex según palabras clave en categoría + nombre."""
    text = f"{category or ''} {name or ''}".lower()
    for sex, keywords in SEX_KEYWORDS:
        if any(k in text for k in keywords):
            return sex
    return DEFAULT_SEX
