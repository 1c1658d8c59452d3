import logging

from flask import Blueprint, request, jsonify
from flask_jwt_extended import jwt_required

from revendedoras.services.gamification import get_ranking, get_user_stats
from revendedoras.utils import err, require_user

logger = logging.getLogger(__name__)
gamification_bp = Blueprint("gamification", __name__)

PERIODS = ("month", "all")


@gamification_bp.route("/stats", methods=["GET"])
@jwt_required()
def stats():
    """Nivel, puntos y badges (bloqueados y desbloqueados) de la revendedora."""
    user, error = require_user()
    if error:
        return error
    try:
        return jsonify(get_user_stats(user.id))
    except Exception as e:
        logger.exception("Stats gamificación user %s: %s", user.id, e)
        return err("Error al obtener estadísticas", 500)


@gamification_bp.route("/ranking", methods=["GET"])
@jwt_required()
def ranking():
    """?period=month (default) | all"""
    user, error = require_user()
    if error:
        return error
    period = (request.args.get("period") or "month").strip().lower()
    if period not in PERIODS:
        return err("period debe ser month o all")
    try:
        return jsonify({"period": period, "ranking": get_ranking(user.id, period=period)})
    except Exception as e:
        logger.exception("Ranking: %s", e)
        return err("Error al obtener el ranking", 500)
