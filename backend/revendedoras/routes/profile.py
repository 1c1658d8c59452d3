from flask import Blueprint, jsonify

from revendedoras.models import User
from revendedoras.services.gamification import get_public_profile
from revendedoras.utils import err

profile_bp = Blueprint("profile", __name__)


@profile_bp.route("/<handle>", methods=["GET"])
def public_profile(handle):
    """Perfil público por handle (acepta @handle). Sin login."""
    user = User.query.filter_by(handle=handle.strip().lstrip("@").lower()).first()
    if not user:
        return err("Perfil no encontrado", 404)
    return jsonify(get_public_profile(user))
