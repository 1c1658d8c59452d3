"""
Helpers compartidos por todos los blueprints: respuestas de error, acceso a usuario,
parseo de parámetros.
"""
from __future__ import annotations

import logging
import re
from typing import Any, Optional, Tuple

from flask import jsonify
from flask_jwt_extended import get_jwt_identity

from revendedoras import db
from revendedoras.models import User

logger = logging.getLogger(__name__)


# ── Respuestas de error ────────────────────────────────────────────────────

def err(message: str, code: int = 400) -> Tuple[Any, int]:
    """Devuelve una respuesta JSON de error estándar: {"error": message}."""
    return jsonify({"error": message}), code


# ── Acceso a usuario ───────────────────────────────────────────────────────

def current_user() -> Optional[User]:
    """Devuelve el User del JWT actual, o None si no existe."""
    try:
        uid = int(get_jwt_identity())
    except (TypeError, ValueError):
        return None
    return db.session.get(User, uid)


def require_user() -> Tuple[Optional[User], Optional[Tuple]]:
    """
    Devuelve (user, None) si el usuario existe, o (None, error_response) si no.
    Uso:
        user, error = require_user()
        if error:
            return error
    """
    user = current_user()
    if not user:
        return None, err("Usuario no encontrado", 404)
    return user, None


def require_admin() -> Tuple[Optional[User], Optional[Tuple]]:
    """Igual que require_user, pero exige is_admin."""
    user, error = require_user()
    if error:
        return None, error
    if not user.is_admin:
        return None, err("Solo administradores", 403)
    return user, None


# ── Parseo ─────────────────────────────────────────────────────────────────

def parse_bool(value: Any) -> Optional[bool]:
    """Acepta bool, 1/0 y "true"/"false". Devuelve None si no se puede interpretar."""
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    s = str(value).strip().lower()
    if s in ("1", "true", "yes", "si", "sí"):
        return True
    if s in ("0", "false", "no"):
        return False
    return None


def parse_float(value: Any, default: float = 0.0) -> float:
    """float() tolerante: None, "" o basura → default."""
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


# ── URL segura (sin contraseñas) ───────────────────────────────────────────

def safe_db_url(url: str) -> str:
    """Oculta la contraseña de una DATABASE_URL para loguear."""
    return re.sub(r":([^/@]+)@", ":***@", url)
