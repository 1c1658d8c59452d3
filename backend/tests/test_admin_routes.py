"""Rutas de administración y de gamificación."""
import pytest

from revendedoras.services.tiendanube_client import TiendanubeError
from revendedoras.tasks import sync_catalog


def test_admin_routes_require_admin(client, user_headers):
    headers = user_headers["headers"]
    for method, url in (
        ("post", "/admin/force-sync"),
        ("post", "/admin/init-gamification"),
        ("post", "/admin/seed-badges"),
        ("get", "/admin/brands"),
        ("get", "/admin/sync-status"),
    ):
        r = getattr(client, method)(url, headers=headers)
        assert r.status_code == 403, url
        assert r.get_json() == {"error": "Solo administradores"}


def test_seed_badges_and_brands(client, admin_headers):
    headers = admin_headers["headers"]
    r = client.post("/admin/seed-badges", headers=headers)
    assert r.get_json() == {"success": True, "badges": 6, "brands": {"created": 3, "updated": 0}}

    brands = client.get("/admin/brands", headers=headers).get_json()
    assert [b["brandSlug"] for b in brands] == ["besame", "cocot", "promise"]
    assert [b["isActive"] for b in brands] == [True, False, False]


def test_create_and_update_brand(client, admin_headers):
    headers = admin_headers["headers"]
    r = client.post("/admin/brands", headers=headers, json={"brandSlug": "Lody", "brandName": "Lody"})
    assert r.status_code == 200
    assert r.get_json()["brand"]["brandSlug"] == "lody"
    assert r.get_json()["brand"]["isActive"] is True

    r = client.post("/admin/brands", headers=headers, json={
        "brandSlug": "lody", "brandName": "Lody Lencería", "isActive": False,
    })
    brand = r.get_json()["brand"]
    assert (brand["brandName"], brand["isActive"]) == ("Lody Lencería", False)

    assert client.post("/admin/brands", headers=headers, json={"brandSlug": "x y", "brandName": "X"}).status_code == 400
    assert client.post("/admin/brands", headers=headers, json={"brandSlug": "solo-slug"}).status_code == 400


def test_init_gamification(client, admin_headers):
    r = client.post("/admin/init-gamification", headers=admin_headers["headers"])
    body = r.get_json()
    assert body["success"] is True
    assert body["badgesSeeded"] == 6
    assert body["usersProcessed"] == 1


@pytest.fixture
def patched_client(monkeypatch, fake_tn):
    class _Factory:
        @staticmethod
        def from_config(_config):
            return fake_tn

    monkeypatch.setattr(sync_catalog, "TiendanubeClient", _Factory)
    return fake_tn


def test_force_sync(client, admin_headers, patched_client):
    headers = admin_headers["headers"]
    r = client.post("/admin/force-sync", headers=headers)
    assert r.status_code == 200
    assert r.get_json()["count"] == 4
    assert client.get("/admin/sync-status", headers=headers).get_json()["estado"] == "ok"


def test_force_sync_conflict(client, admin_headers, patched_client):
    sync_catalog._sync_lock.acquire()
    try:
        r = client.post("/admin/force-sync", headers=admin_headers["headers"])
    finally:
        sync_catalog._sync_lock.release()
    assert r.status_code == 409


# ── Gamificación ───────────────────────────────────────────────────────────

def test_gamification_stats(client, user_headers):
    r = client.get("/gamification/stats", headers=user_headers["headers"])
    assert r.status_code == 200
    body = r.get_json()
    assert body["level"]["currentLevel"] == "principiante"
    assert body["totalPoints"] == 0


def test_gamification_ranking(client, user_headers):
    r = client.get("/gamification/ranking", headers=user_headers["headers"])
    body = r.get_json()
    assert body["period"] == "month"
    assert body["ranking"][0]["isCurrentUser"] is True

    assert client.get("/gamification/ranking?period=all", headers=user_headers["headers"]).status_code == 200
    assert client.get("/gamification/ranking?period=year", headers=user_headers["headers"]).status_code == 400


# ── Consultas directas a Tiendanube ────────────────────────────────────────

@pytest.fixture
def admin_tn(monkeypatch, fake_tn):
    from revendedoras.routes import admin as admin_routes

    class _Factory:
        @staticmethod
        def from_config(_config):
            return fake_tn

    monkeypatch.setattr(admin_routes, "TiendanubeClient", _Factory)
    return fake_tn


def test_best_sellers_are_formatted(client, admin_headers, admin_tn):
    r = client.get("/admin/tiendanube/mas-vendidos?limit=2", headers=admin_headers["headers"])
    assert r.status_code == 200
    products = r.get_json()
    assert [p["id"] for p in products] == [101, 102]
    assert products[0]["category"] == "MUJER > ROPA INTERIOR > BOMBACHAS"
    assert client.get("/admin/tiendanube/mas-vendidos?limit=x", headers=admin_headers["headers"]).status_code == 400


def test_best_sellers_skip_malformed_products(client, admin_headers, admin_tn):
    admin_tn.products = [{"name": {"es": "Sin id"}}] + list(admin_tn.products)
    r = client.get("/admin/tiendanube/mas-vendidos?limit=3", headers=admin_headers["headers"])
    assert r.status_code == 200
    assert [p["id"] for p in r.get_json()] == [101, 102]


def test_best_sellers_upstream_error(client, admin_headers, admin_tn, monkeypatch):
    def _down(limit=50):
        raise TiendanubeError("TN API Error: 503 - caído", status_code=503)

    monkeypatch.setattr(admin_tn, "get_best_selling_products", _down)
    r = client.get("/admin/tiendanube/mas-vendidos", headers=admin_headers["headers"])
    assert r.status_code == 502


def test_single_tiendanube_product(client, admin_headers, admin_tn):
    headers = admin_headers["headers"]
    assert client.get("/admin/tiendanube/productos/103", headers=headers).get_json()["id"] == 103
    assert client.get("/admin/tiendanube/productos/999", headers=headers).status_code == 404
