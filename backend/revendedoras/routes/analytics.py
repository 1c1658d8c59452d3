"""
Analytics de la revendedora: métricas por período y seguimiento de clientas.
No incluye pedidos cancelados.
"""
import logging

from flask import Blueprint, request, jsonify
from flask_jwt_extended import jwt_required

from revendedoras.services.analytics import PERIODS, get_analytics, get_clienta_detail, get_clientas
from revendedoras.utils import err, require_user

logger = logging.getLogger(__name__)
analytics_bp = Blueprint("analytics", __name__)


@analytics_bp.route("", methods=["GET"])
@jwt_required()
def overview():
    """?period=all (default) | month | year"""
    user, error = require_user()
    if error:
        return error
    period = (request.args.get("period") or "all").strip().lower()
    if period not in PERIODS:
        return err("period debe ser all, month o year")
    try:
        return jsonify(get_analytics(user.id, period=period))
    except Exception as e:
        logger.exception("Analytics user %s: %s", user.id, e)
        return err("Error al obtener analytics", 500)


@analytics_bp.route("/clientas", methods=["GET"])
@jwt_required()
def clientas():
    user, error = require_user()
    if error:
        return error
    try:
        return jsonify({"clientas": get_clientas(user.id)})
    except Exception as e:
        logger.exception("Clientas user %s: %s", user.id, e)
        return err("Error al obtener clientas", 500)


@analytics_bp.route("/clientas/<path:cliente>", methods=["GET"])
@jwt_required()
def clienta_detail(cliente):
    user, error = require_user()
    if error:
        return error
    detail = get_clienta_detail(user.id, cliente)
    if detail is None:
        return err("Clienta no encontrada", 404)
    return jsonify(detail)
