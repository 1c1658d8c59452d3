"""
Auth: registro, login con JWT y perfil de la revendedora (nombre, handle, margen).
Contraseñas: werkzeug generate_password_hash.
"""
import logging
import re

from flask import Blueprint, request, jsonify
from flask_jwt_extended import create_access_token, jwt_required
from werkzeug.security import check_password_hash, generate_password_hash

from revendedoras import db
from revendedoras.models import User
from revendedoras.utils import err, parse_float, require_user

logger = logging.getLogger(__name__)
auth_bp = Blueprint("auth", __name__)

_HANDLE_RE = re.compile(r"^[a-z0-9_.]{3,64}$")


def _make_token(user: User) -> dict:
    return {
        # flask-jwt-extended exige que sub sea string
        "access_token": create_access_token(identity=str(user.id)),
        "user_id": user.id,
        "email": user.email,
    }


def _user_to_dict(user: User) -> dict:
    return {
        "id": user.id,
        "email": user.email,
        "name": user.name,
        "handle": user.handle,
        "margen": user.margen,
        "is_admin": user.is_admin,
    }


def _clean_handle(raw) -> str:
    return (raw or "").strip().lstrip("@").lower()


@auth_bp.route("/register", methods=["OPTIONS", "POST"])
def register():
    if request.method == "OPTIONS":
        return "", 204

    data = request.get_json() or {}
    email = (data.get("email") or "").strip().lower()
    password = data.get("password") or ""
    name = (data.get("name") or "").strip()
    handle = _clean_handle(data.get("handle")) or None

    if not email or not password:
        return err("email y password son requeridos")
    if len(password) < 6:
        return err("El password debe tener al menos 6 caracteres")
    if handle and not _HANDLE_RE.match(handle):
        return err("El handle solo admite letras, números, punto y guión bajo (3-64)")
    if User.query.filter_by(email=email).first():
        return err("El email ya está registrado", 409)
    if handle and User.query.filter_by(handle=handle).first():
        return err("El handle ya está en uso", 409)

    user = User(
        email=email,
        password_hash=generate_password_hash(password),
        name=name,
        handle=handle,
    )
    db.session.add(user)
    db.session.commit()

    return jsonify({**_make_token(user), "message": "Usuario registrado"}), 201


@auth_bp.route("/login", methods=["OPTIONS", "POST"])
def login():
    if request.method == "OPTIONS":
        return "", 204

    try:
        data = request.get_json() or {}
        email = (data.get("email") or "").strip().lower()
        password = data.get("password") or ""

        user = User.query.filter_by(email=email).first()
        if not user or not check_password_hash(user.password_hash, password):
            return err("Credenciales inválidas", 401)

        return jsonify(_make_token(user))

    except Exception as e:
        logger.exception("Login error: %s", e)
        return err("Error interno en login", 500)


@auth_bp.route("/me", methods=["GET", "PUT"])
@jwt_required()
def me():
    """
    GET → perfil.
    PUT → actualiza name, handle y/o margen (porcentaje sobre mayorista, 0-500).
    """
    user, error = require_user()
    if error:
        return error

    if request.method == "GET":
        return jsonify(_user_to_dict(user))

    data = request.get_json() or {}
    if "name" in data:
        user.name = (data.get("name") or "").strip()
    if "handle" in data:
        handle = _clean_handle(data.get("handle")) or None
        if handle and not _HANDLE_RE.match(handle):
            return err("El handle solo admite letras, números, punto y guión bajo (3-64)")
        if handle and User.query.filter(User.handle == handle, User.id != user.id).first():
            return err("El handle ya está en uso", 409)
        user.handle = handle
    if "margen" in data:
        margen = parse_float(data.get("margen"), default=-1)
        if not 0 <= margen <= 500:
            return err("margen debe ser un número entre 0 y 500")
        user.margen = margen

    db.session.commit()
    return jsonify({"message": "Perfil actualizado", **_user_to_dict(user)})
