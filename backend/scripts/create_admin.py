#!/usr/bin/env python3
"""
Crear o promover un usuario admin. Uso (desde backend/):
  ADMIN_EMAIL=admin@nadin.com ADMIN_PASSWORD=secreto python scripts/create_admin.py

O desde flask shell:
  >>> from scripts.create_admin import create_admin_user
  >>> create_admin_user("admin@nadin.com", "secreto")
"""
import logging
import os
import sys

# Permite correr desde backend/ (scripts/create_admin.py) o desde la raíz
_this_dir = os.path.dirname(os.path.abspath(__file__))
backend_dir = os.path.dirname(_this_dir)
if backend_dir not in sys.path:
    sys.path.insert(0, backend_dir)

logger = logging.getLogger("create_admin")


def create_admin_user(email: str, password: str, name: str = "Admin"):
    from werkzeug.security import generate_password_hash

    from revendedoras import create_app, db
    from revendedoras.models import User

    app = create_app({"SCHEDULER_ENABLED": False})
    with app.app_context():
        email = email.strip().lower()
        user = User.query.filter_by(email=email).first()
        pw_hash = generate_password_hash(password)
        if user:
            user.password_hash = pw_hash
            user.is_admin = True
            db.session.commit()
            logger.info("Admin actualizado: %s", user.email)
        else:
            user = User(email=email, password_hash=pw_hash, name=name, is_admin=True)
            db.session.add(user)
            db.session.commit()
            logger.info("Admin creado: %s", user.email)
        return user.id


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    email = os.environ.get("ADMIN_EMAIL")
    password = os.environ.get("ADMIN_PASSWORD")
    if not email or not password:
        sys.exit("Definir ADMIN_EMAIL y ADMIN_PASSWORD")
    create_admin_user(email, password)
