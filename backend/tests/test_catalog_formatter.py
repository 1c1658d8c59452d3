"""Jerarquía de categorías, formato de productos e inferencia de sexo (sin BD)."""
from revendedoras.services.catalog_formatter import (
    SIN_CATEGORIA,
    build_categories_map,
    build_category_path,
    category_depth_stats,
    format_product,
    format_products,
    infer_sex,
    localized,
)

RAW = [
    {"id": 1, "name": {"es": "MUJER"}, "parent": None},
    {"id": 3, "name": {"es": "ROPA INTERIOR"}, "parent": 1},
    {"id": 5, "name": {"es": "BOMBACHAS"}, "parent": 3},
    {"id": 9, "name": {"es": "HUÉRFANA"}, "parent": 404},
    {"id": 10, "name": "PLANA", "parent": -1},
]


def _cats():
    return build_categories_map(RAW)


def test_localized():
    assert localized({"es": "Hola", "pt": "Olá"}) == "Hola"
    assert localized({"pt": "Olá"}) == "Olá"
    assert localized("texto") == "texto"
    assert localized(None) == ""


def test_categories_map_normalizes_parent():
    cats = _cats()
    assert cats[1]["parent"] is None
    assert cats[10]["parent"] is None
    assert cats[3]["parent"] == 1


def test_categories_map_skips_invalid_ids():
    cats = build_categories_map([{"name": "sin id"}, {"id": "x"}, {"id": "2", "name": "OK"}])
    assert list(cats) == [2]


def test_root_category_has_no_separator():
    assert build_category_path(1, _cats()) == "MUJER"
    assert build_category_path(10, _cats()) == "PLANA"


def test_full_chain_root_first():
    assert build_category_path(5, _cats()) == "MUJER > ROPA INTERIOR > BOMBACHAS"


def test_missing_parent_keeps_partial_path():
    assert build_category_path(9, _cats()) == "HUÉRFANA"


def test_unknown_start_id_returns_empty():
    assert build_category_path(999, _cats()) == ""
    assert build_category_path(None, _cats()) == ""
    assert build_category_path(0, _cats()) == ""


def test_cycle_terminates_without_repeats():
    cats = build_categories_map([
        {"id": 1, "name": "A", "parent": 2},
        {"id": 2, "name": "B", "parent": 1},
    ])
    assert build_category_path(1, cats) == "B > A"


def test_depth_is_capped():
    raw = [{"id": i, "name": f"C{i}", "parent": i - 1 if i > 1 else None} for i in range(1, 16)]
    path = build_category_path(15, build_categories_map(raw))
    segments = path.split(" > ")
    assert len(segments) == 10
    assert segments[-1] == "C15"


def test_format_product_variants_and_defaults():
    raw = {
        "id": 77,
        "name": {"es": " Corpiño Soft "},
        "brand": "",
        "categories": [{"id": 5}, {"id": 10}],
        "images": [],
        "variants": [
            {"id": 1, "sku": "CS-90", "price": "1500.50", "stock": None, "values": [{"es": "90"}, {"es": "Negro"}]},
            {"id": 2, "price": None, "values": [{"es": "95"}]},
        ],
    }
    p = format_product(raw, _cats())
    assert p["name"] == "Corpiño Soft"
    assert p["brand"] == "Sin marca"
    assert p["category"] == "MUJER > ROPA INTERIOR > BOMBACHAS"
    assert p["image"] == "/placeholder.png"
    assert p["variants"][0] == {
        "id": 1, "sku": "CS-90", "price": 1500.5, "stock": 0, "talle": "90", "color": "Negro",
    }
    assert p["variants"][1]["talle"] == "95"
    assert p["variants"][1]["color"] == ""
    assert p["variants"][1]["price"] == 0.0


def test_product_without_categories_is_sin_categoria():
    p = format_product({"id": 1, "name": {"es": "X"}, "categories": []}, _cats())
    assert p["category"] == SIN_CATEGORIA


def test_product_with_unresolvable_category_is_sin_categoria():
    p = format_product({"id": 1, "name": {"es": "X"}, "categories": [{"id": 999}]}, _cats())
    assert p["category"] == SIN_CATEGORIA


def test_format_products_drops_broken_items():
    raw = [
        {"id": 1, "name": {"es": "Ok"}, "categories": [{"id": 3}]},
        {"name": {"es": "Sin id"}},
        {"id": 2, "name": {"es": "Ok 2"}, "categories": []},
    ]
    result = format_products(raw, _cats())
    assert [p["id"] for p in result] == [1, 2]


def test_category_depth_stats():
    products = [
        {"category": SIN_CATEGORIA},
        {"category": "MUJER"},
        {"category": "MUJER > ROPA INTERIOR > BOMBACHAS"},
        {"category": "A > B > C > D > E"},
    ]
    assert category_depth_stats(products) == {"0": 1, "1": 1, "2": 0, "3": 1, "4+": 1}


def test_infer_sex_first_match_wins():
    assert infer_sex("MUJER > ROPA INTERIOR", "Bombacha") == "Mujer"
    assert infer_sex("HOMBRE > BOXERS", "Boxer") == "Hombre"
    assert infer_sex("NIÑOS", "Pijama") == "Niños"
    assert infer_sex("ACCESORIOS", "Bolsa de lavado") == "Unisex"
    # Mujer tiene prioridad sobre Hombre
    assert infer_sex("HOMBRE", "Regalo para mujer") == "Mujer"
