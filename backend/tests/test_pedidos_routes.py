"""Pedidos: alta, listado, cambios de estado y disparo de gamificación."""
import pytest

from conftest import auth_headers, make_user
from revendedoras import db
from revendedoras.models import Pedido
from revendedoras.routes import pedidos as pedidos_routes

ITEM = {
    "productId": "101", "variantId": "1011", "sku": "BE-85", "brand": "Bésame",
    "name": "Bombacha Encaje", "talle": "85", "color": "Negro", "qty": 2, "mayorista": 1000,
}


def _create(client, headers, **overrides):
    body = {"cliente": "Laura", "telefono": "1122334455", "items": [ITEM], **overrides}
    return client.post("/pedidos", json=body, headers=headers)


@pytest.fixture
def pedido_id(client, user_headers):
    r = _create(client, user_headers["headers"])
    assert r.status_code == 201
    return r.get_json()["pedido"]["id"]


def test_create_uses_user_margin(client, user_headers):
    r = _create(client, user_headers["headers"])
    pedido = r.get_json()["pedido"]
    assert pedido["estado"] == "pendiente"
    assert pedido["lineas"][0]["venta"] == 1600
    assert pedido["totalVenta"] == 3200
    assert pedido["totalMayorista"] == 2000


def test_create_keeps_explicit_price(client, user_headers):
    r = _create(client, user_headers["headers"], items=[{**ITEM, "venta": 1750}])
    assert r.get_json()["pedido"]["lineas"][0]["venta"] == 1750


@pytest.mark.parametrize("overrides,message", [
    ({"cliente": ""}, "Faltan datos del cliente"),
    ({"items": []}, "El pedido debe tener al menos un producto"),
    ({"items": [{**ITEM, "qty": 0}]}, "qty debe ser mayor a 0 en Bombacha Encaje"),
    ({"items": [{**ITEM, "mayorista": None}]}, "mayorista inválido en Bombacha Encaje"),
    ({"items": [{"name": "Sin ids"}]}, "Cada item requiere productId, variantId y name"),
])
def test_create_validation(client, user_headers, overrides, message):
    r = _create(client, user_headers["headers"], **overrides)
    assert r.status_code == 400
    assert r.get_json() == {"error": message}


def test_list_only_own_orders(app, client, user_headers, pedido_id):
    with app.app_context():
        other = auth_headers(make_user(email="otra@example.com"))
    assert [p["id"] for p in client.get("/pedidos", headers=user_headers["headers"]).get_json()] == [pedido_id]
    assert client.get("/pedidos", headers=other).get_json() == []


def test_list_filter_by_estado(client, user_headers, pedido_id):
    headers = user_headers["headers"]
    assert len(client.get("/pedidos?estado=pendiente", headers=headers).get_json()) == 1
    assert client.get("/pedidos?estado=delivered", headers=headers).get_json() == []


def test_complete_order_triggers_gamification(app, client, user_headers, pedido_id):
    r = client.patch("/pedidos/update-status", headers=user_headers["headers"], json={
        "orderId": pedido_id, "orderStatus": "delivered", "paidByClient": True,
    })
    assert r.status_code == 200
    body = r.get_json()
    assert body["deliveredAt"] is not None
    assert body["paidByClientAt"] is not None
    gam = body["gamification"]
    assert gam["success"] is True
    assert gam["totalSales"] == 1
    # 3200 vendidos → 30 puntos + 50 por primera venta
    assert gam["points"] == 80


def test_status_change_without_completion_has_no_gamification(client, user_headers, pedido_id):
    r = client.patch("/pedidos/update-status", headers=user_headers["headers"], json={
        "orderId": pedido_id, "orderStatus": "sent_to_nadin", "paidToNadin": True,
    })
    body = r.get_json()
    assert body["estado"] == "sent_to_nadin"
    assert body["sentToNadinAt"] is not None
    assert body["paidToNadin"] is True
    assert body["gamification"] is None


def test_update_status_validation(app, client, user_headers, pedido_id):
    headers = user_headers["headers"]
    assert client.patch("/pedidos/update-status", headers=headers, json={}).status_code == 400
    r = client.patch("/pedidos/update-status", headers=headers, json={"orderId": pedido_id, "orderStatus": "perdido"})
    assert r.status_code == 400
    r = client.patch("/pedidos/update-status", headers=headers, json={"orderId": pedido_id, "paidByClient": "quizás"})
    assert r.status_code == 400
    assert client.patch("/pedidos/update-status", headers=headers, json={"orderId": 999}).status_code == 404

    with app.app_context():
        other = auth_headers(make_user(email="otra@example.com"))
    assert client.patch("/pedidos/update-status", headers=other, json={"orderId": pedido_id}).status_code == 404


def test_gamification_failure_keeps_order_update(app, client, user_headers, pedido_id, monkeypatch):
    def _boom(*_args, **_kwargs):
        raise RuntimeError("db caída")

    monkeypatch.setattr(pedidos_routes.gamification, "on_order_completed", _boom)
    r = client.patch("/pedidos/update-status", headers=user_headers["headers"], json={
        "orderId": pedido_id, "orderStatus": "delivered", "paidByClient": True,
    })
    assert r.status_code == 200
    assert r.get_json()["gamification"] == {"success": False, "error": "db caída"}
    with app.app_context():
        assert db.session.get(Pedido, pedido_id).estado == "delivered"


def test_cancel_completed_order(client, user_headers, pedido_id):
    headers = user_headers["headers"]
    client.patch("/pedidos/update-status", headers=headers, json={
        "orderId": pedido_id, "orderStatus": "delivered", "paidByClient": True,
    })
    r = client.post(f"/pedidos/{pedido_id}/cancelar", headers=headers)
    assert r.status_code == 200
    body = r.get_json()
    assert body["estado"] == "cancelado"
    assert body["cancelledAt"] is not None
    assert body["gamification"] == {"success": True, "level": "principiante", "totalSales": 0}

    again = client.post(f"/pedidos/{pedido_id}/cancelar", headers=headers)
    assert again.status_code == 400


def test_unpaying_completed_order_recalculates(client, user_headers, pedido_id):
    headers = user_headers["headers"]
    client.patch("/pedidos/update-status", headers=headers, json={
        "orderId": pedido_id, "orderStatus": "delivered", "paidByClient": True,
    })
    r = client.patch("/pedidos/update-status", headers=headers, json={
        "orderId": pedido_id, "paidByClient": False,
    })
    assert r.get_json()["gamification"]["totalSales"] == 0
