"""
Pedidos de clientas: alta, listado y cambios de estado/pago.
Los cambios de estado disparan la gamificación en el mismo request; si la
gamificación falla el pedido igual queda actualizado y el error se informa.
"""
import logging
from datetime import datetime

from flask import Blueprint, request, jsonify
from flask_jwt_extended import jwt_required

from revendedoras import db
from revendedoras.models import ESTADO_CANCELADO, ESTADO_PENDIENTE, ESTADOS_PEDIDO, Linea, Pedido
from revendedoras.services import gamification
from revendedoras.services.pricing import calcular_precio_venta
from revendedoras.utils import err, parse_bool, parse_float, require_user

logger = logging.getLogger(__name__)
pedidos_bp = Blueprint("pedidos", __name__)

# Estado → columna con la fecha en que se alcanzó
STATUS_TIMESTAMPS = {
    "sent_to_nadin": "sent_to_nadin_at",
    "received_nadin": "received_nadin_at",
    "sent_to_client": "sent_to_client_at",
    "delivered": "delivered_at",
    "entregado": "delivered_at",
    ESTADO_CANCELADO: "cancelled_at",
}


def _linea_to_dict(linea: Linea) -> dict:
    return {
        "id": linea.id,
        "productId": linea.product_id,
        "variantId": linea.variant_id,
        "sku": linea.sku,
        "brand": linea.brand,
        "name": linea.name,
        "talle": linea.talle,
        "color": linea.color,
        "qty": linea.qty,
        "mayorista": linea.mayorista,
        "venta": linea.venta,
    }


def _iso(value):
    return value.isoformat() if value else None


def _pedido_to_dict(p: Pedido) -> dict:
    return {
        "id": p.id,
        "cliente": p.cliente,
        "telefono": p.telefono,
        "nota": p.nota,
        "estado": p.estado,
        "descuentoTotal": p.descuento_total,
        "totalVenta": p.total_venta,
        "totalMayorista": p.total_mayorista,
        "paidToNadin": p.paid_to_nadin,
        "paidToNadinAt": _iso(p.paid_to_nadin_at),
        "paidByClient": p.paid_by_client,
        "paidByClientAt": _iso(p.paid_by_client_at),
        "sentToNadinAt": _iso(p.sent_to_nadin_at),
        "receivedNadinAt": _iso(p.received_nadin_at),
        "sentToClientAt": _iso(p.sent_to_client_at),
        "deliveredAt": _iso(p.delivered_at),
        "cancelledAt": _iso(p.cancelled_at),
        "createdAt": _iso(p.created_at),
        "lineas": [_linea_to_dict(linea) for linea in p.lineas],
    }


def _build_linea(item: dict, margen: float):
    """Devuelve (Linea, None) o (None, mensaje de error)."""
    if not isinstance(item, dict):
        return None, "Cada item debe ser un objeto"
    product_id = item.get("productId")
    variant_id = item.get("variantId")
    name = (item.get("name") or "").strip()
    if product_id in (None, "") or variant_id in (None, "") or not name:
        return None, "Cada item requiere productId, variantId y name"
    try:
        qty = int(item.get("qty", 1))
    except (TypeError, ValueError):
        return None, f"qty inválida en {name}"
    if qty <= 0:
        return None, f"qty debe ser mayor a 0 en {name}"
    mayorista = parse_float(item.get("mayorista"), default=-1)
    if mayorista < 0:
        return None, f"mayorista inválido en {name}"
    venta = item.get("venta")
    venta = parse_float(venta) if venta not in (None, "") else calcular_precio_venta(mayorista, margen)

    return Linea(
        product_id=str(product_id),
        variant_id=str(variant_id),
        sku=item.get("sku") or "",
        brand=item.get("brand") or "",
        name=name,
        talle=item.get("talle") or "",
        color=item.get("color") or "",
        qty=qty,
        mayorista=mayorista,
        venta=venta,
    ), None


@pedidos_bp.route("", methods=["GET"])
@jwt_required()
def list_pedidos():
    """Pedidos de la revendedora, más nuevos primero. ?estado= filtra por estado."""
    user, error = require_user()
    if error:
        return error
    q = Pedido.query.filter_by(user_id=user.id)
    estado = (request.args.get("estado") or "").strip()
    if estado:
        q = q.filter(Pedido.estado == estado)
    pedidos = q.order_by(Pedido.created_at.desc(), Pedido.id.desc()).all()
    return jsonify([_pedido_to_dict(p) for p in pedidos])


@pedidos_bp.route("", methods=["POST"])
@jwt_required()
def create_pedido():
    """
    Body: {cliente, telefono, nota?, descuentoTotal?, items: [{productId, variantId, sku,
    brand, name, talle, color, qty, mayorista, venta?}]}
    Si un item no trae venta se calcula con el margen de la revendedora.
    """
    user, error = require_user()
    if error:
        return error

    data = request.get_json() or {}
    cliente = (data.get("cliente") or "").strip()
    telefono = (data.get("telefono") or "").strip()
    items = data.get("items") or []
    if not cliente or not telefono:
        return err("Faltan datos del cliente")
    if not isinstance(items, list) or not items:
        return err("El pedido debe tener al menos un producto")

    lineas = []
    for item in items:
        linea, msg = _build_linea(item, user.margen)
        if msg:
            return err(msg)
        lineas.append(linea)

    pedido = Pedido(
        user_id=user.id,
        cliente=cliente,
        telefono=telefono,
        nota=(data.get("nota") or "").strip(),
        estado=ESTADO_PENDIENTE,
        descuento_total=parse_float(data.get("descuentoTotal")),
        lineas=lineas,
    )
    try:
        db.session.add(pedido)
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        logger.exception("Crear pedido: %s", e)
        return err("Error al crear pedido", 500)

    logger.info("Pedido %s creado (user %s, %d líneas)", pedido.id, user.id, len(lineas))
    return jsonify({"success": True, "pedido": _pedido_to_dict(pedido)}), 201


def _run_gamification(pedido: Pedido, was_completed: bool, was_cancelled: bool):
    """Dispara el evento que corresponda a la transición. Nunca lanza."""
    try:
        if pedido.is_completed and not was_completed:
            return {"success": True, **gamification.on_order_completed(pedido.user_id, pedido.total_venta)}
        if (pedido.estado == ESTADO_CANCELADO and not was_cancelled) or (was_completed and not pedido.is_completed):
            return {"success": True, **gamification.on_order_cancelled(pedido.user_id)}
    except Exception as e:
        logger.exception("Gamificación pedido %s: %s", pedido.id, e)
        return {"success": False, "error": str(e)}
    return None


def _owned_pedido(user, pedido_id):
    pedido = db.session.get(Pedido, pedido_id)
    if not pedido or (pedido.user_id != user.id and not user.is_admin):
        return None
    return pedido


@pedidos_bp.route("/update-status", methods=["PATCH"])
@jwt_required()
def update_status():
    """
    Body: {orderId, orderStatus?, paidToNadin?, paidByClient?}
    Cada estado/pago guarda su fecha. Al completarse (entregado + cobrado) o
    cancelarse se recalcula la gamificación.
    """
    user, error = require_user()
    if error:
        return error

    data = request.get_json() or {}
    order_id = data.get("orderId")
    if order_id in (None, ""):
        return err("orderId es requerido")
    try:
        pedido = _owned_pedido(user, int(order_id))
    except (TypeError, ValueError):
        return err("orderId inválido")
    if not pedido:
        return err("Pedido no encontrado", 404)

    status = data.get("orderStatus")
    if status is not None and status not in ESTADOS_PEDIDO:
        return err(f"orderStatus inválido: {status}")

    was_completed = pedido.is_completed
    was_cancelled = pedido.estado == ESTADO_CANCELADO
    now = datetime.utcnow()

    if status is not None and status != pedido.estado:
        pedido.estado = status
        column = STATUS_TIMESTAMPS.get(status)
        if column:
            setattr(pedido, column, now)

    for key, attr in (("paidToNadin", "paid_to_nadin"), ("paidByClient", "paid_by_client")):
        if key not in data:
            continue
        value = parse_bool(data.get(key))
        if value is None:
            return err(f"{key} debe ser booleano")
        setattr(pedido, attr, value)
        if value:
            setattr(pedido, f"{attr}_at", now)

    try:
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        logger.exception("Actualizar pedido %s: %s", pedido.id, e)
        return err("Error al actualizar el pedido", 500)

    logger.info("Pedido %s actualizado: estado=%s paidByClient=%s", pedido.id, pedido.estado, pedido.paid_by_client)
    result = _pedido_to_dict(pedido)
    result["gamification"] = _run_gamification(pedido, was_completed, was_cancelled)
    return jsonify(result)


@pedidos_bp.route("/<int:pedido_id>/cancelar", methods=["POST"])
@jwt_required()
def cancelar(pedido_id):
    user, error = require_user()
    if error:
        return error
    pedido = _owned_pedido(user, pedido_id)
    if not pedido:
        return err("Pedido no encontrado", 404)
    if pedido.estado == ESTADO_CANCELADO:
        return err("El pedido ya está cancelado")

    was_completed = pedido.is_completed
    pedido.estado = ESTADO_CANCELADO
    pedido.cancelled_at = datetime.utcnow()
    db.session.commit()

    result = _pedido_to_dict(pedido)
    result["gamification"] = _run_gamification(pedido, was_completed, was_cancelled=False)
    return jsonify(result)
