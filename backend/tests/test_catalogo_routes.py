"""Endpoints públicos del catálogo."""
import pytest

from revendedoras.tasks.sync_catalog import run_sync_catalog


@pytest.fixture
def synced(app, fake_tn):
    with app.app_context():
        run_sync_catalog(client=fake_tn)
    return app


def test_catalogo_all(client, synced):
    r = client.get("/catalogo")
    assert r.status_code == 200
    assert len(r.get_json()) == 4


def test_catalogo_hierarchical_params(client, synced):
    r = client.get("/catalogo", query_string={
        "category": "MUJER", "subcategory": "ROPA INTERIOR", "productType": "BOMBACHAS",
    })
    ids = sorted(p["id"] for p in r.get_json())
    assert ids == [101, 102, 103]


def test_catalogo_talle_color(client, synced):
    r = client.get("/catalogo", query_string={"talle": "90", "color": "Blanco"})
    assert [p["id"] for p in r.get_json()] == [102]


def test_filtros(client, synced):
    r = client.get("/catalogo/filtros", query_string={"brand": "Bésame", "category": "MUJER"})
    assert r.get_json() == {"talles": ["85", "XL"], "colores": ["Negro", "Nude"]}


def test_marcas_categorias_stats(client, synced):
    assert client.get("/catalogo/marcas").get_json()[0] == {"marca": "Bésame", "cantidad": 2}
    tree = client.get("/catalogo/categorias").get_json()
    assert [n["name"] for n in tree] == ["HOMBRE", "MUJER"]
    assert client.get("/catalogo/stats").get_json()["totalProducts"] == 4


def test_catalogo_empty_cache(client):
    r = client.get("/catalogo")
    assert r.status_code == 200
    assert r.get_json() == []
