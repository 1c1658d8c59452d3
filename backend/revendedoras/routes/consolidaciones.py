import io
import logging

from flask import Blueprint, request, jsonify, send_file
from flask_jwt_extended import jwt_required

from revendedoras import db
from revendedoras.models import Consolidacion
from revendedoras.services.consolidation import (
    ConsolidationError,
    consolidacion_to_dict,
    create_consolidacion,
    register_payment,
)
from revendedoras.utils import err, parse_float, require_user

logger = logging.getLogger(__name__)
consolidaciones_bp = Blueprint("consolidaciones", __name__)


def _owned(user, consolidacion_id):
    c = db.session.get(Consolidacion, consolidacion_id)
    if not c or (c.user_id != user.id and not user.is_admin):
        return None
    return c


@consolidaciones_bp.route("", methods=["POST"])
@jwt_required()
def create():
    """
    Body: {pedidoIds: [..], formaPago, tipoEnvio, transporteNombre?, descuentoTotal?}
    Respuesta incluye el CSV para enviar al proveedor.
    """
    user, error = require_user()
    if error:
        return error

    data = request.get_json() or {}
    pedido_ids = data.get("pedidoIds") or []
    if not isinstance(pedido_ids, list):
        return err("pedidoIds debe ser una lista")

    try:
        c = create_consolidacion(
            user_id=user.id,
            pedido_ids=pedido_ids,
            forma_pago=(data.get("formaPago") or "").strip(),
            tipo_envio=(data.get("tipoEnvio") or "").strip(),
            transporte_nombre=(data.get("transporteNombre") or "").strip() or None,
            descuento_total=parse_float(data.get("descuentoTotal")),
        )
    except ConsolidationError as e:
        return err(str(e), e.code)
    except (TypeError, ValueError):
        return err("pedidoIds inválidos")
    except Exception as e:
        logger.exception("Crear consolidación: %s", e)
        return err("Error al crear la consolidación", 500)

    return jsonify({"success": True, "consolidacion": consolidacion_to_dict(c, include_csv=True)}), 201


@consolidaciones_bp.route("", methods=["GET"])
@jwt_required()
def list_consolidaciones():
    user, error = require_user()
    if error:
        return error
    items = (
        Consolidacion.query.filter_by(user_id=user.id)
        .order_by(Consolidacion.enviado_at.desc(), Consolidacion.id.desc())
        .all()
    )
    return jsonify([consolidacion_to_dict(c) for c in items])


@consolidaciones_bp.route("/<int:consolidacion_id>/csv", methods=["GET"])
@jwt_required()
def download_csv(consolidacion_id):
    user, error = require_user()
    if error:
        return error
    c = _owned(user, consolidacion_id)
    if not c:
        return err("Consolidación no encontrada", 404)
    return send_file(
        io.BytesIO((c.csv_content or "").encode("utf-8")),
        mimetype="text/csv",
        as_attachment=True,
        download_name=f"consolidacion_{c.id}.csv",
    )


@consolidaciones_bp.route("/<int:consolidacion_id>/pago", methods=["PATCH"])
@jwt_required()
def pago(consolidacion_id):
    """Body: {costoReal} → lo pagado realmente a Nadin; calcula gananciaNeta."""
    user, error = require_user()
    if error:
        return error
    c = _owned(user, consolidacion_id)
    if not c:
        return err("Consolidación no encontrada", 404)

    data = request.get_json() or {}
    costo_real = parse_float(data.get("costoReal"), default=-1)
    if costo_real < 0:
        return err("costoReal debe ser un número mayor o igual a 0")

    try:
        register_payment(c, costo_real)
    except Exception as e:
        db.session.rollback()
        logger.exception("Pago consolidación %s: %s", c.id, e)
        return err("Error al registrar el pago", 500)
    return jsonify({"success": True, "consolidacion": consolidacion_to_dict(c)})
