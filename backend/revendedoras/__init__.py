"""
Nadin Lencería – Revendedoras: Flask Application Factory.
"""
import logging
import os

from flask import Flask, jsonify
from flask_cors import CORS
from flask_jwt_extended import JWTManager
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
migrate = Migrate()
jwt = JWTManager()
logger = logging.getLogger(__name__)


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def create_app(config: dict | None = None) -> Flask:
    app = Flask(__name__)

    # ── Configuración ──────────────────────────────────────────────────────
    app.config.from_mapping(
        SECRET_KEY=os.environ.get("SECRET_KEY", "dev-secret-key"),
        JWT_SECRET_KEY=os.environ.get(
            "JWT_SECRET_KEY", os.environ.get("SECRET_KEY", "jwt-secret")
        ),
        JWT_ACCESS_TOKEN_EXPIRES=3600 * 24,  # 24 h
        SQLALCHEMY_DATABASE_URI=_database_url(),
        SQLALCHEMY_TRACK_MODIFICATIONS=False,
        # ── Tiendanube ─────────────────────────────────────────────────────
        TN_API_BASE=os.environ.get("TN_API_BASE", "https://api.tiendanube.com/v1"),
        TN_STORE_ID=os.environ.get("TN_STORE_ID"),
        TN_ACCESS_TOKEN=os.environ.get("TN_ACCESS_TOKEN"),
        TN_USER_AGENT=os.environ.get("TN_USER_AGENT", "Nadin App"),
        TN_PER_PAGE=int(os.environ.get("TN_PER_PAGE", 200)),  # máximo de Tiendanube
        TN_MAX_PAGES=int(os.environ.get("TN_MAX_PAGES", 100)),
        TN_PAGE_DELAY=float(os.environ.get("TN_PAGE_DELAY", 0.5)),
        # ── Sincronización ─────────────────────────────────────────────────
        CRON_SECRET=os.environ.get("CRON_SECRET"),
        CATALOG_SYNC_MINUTES=int(os.environ.get("CATALOG_SYNC_MINUTES", 15)),
        SCHEDULER_ENABLED=_env_bool("SCHEDULER_ENABLED", True),
    )

    if config:
        app.config.update(config)

    # pool_pre_ping: testea la conexión antes de usarla del pool → evita
    # "connection already closed" tras reinicios de Docker o inactividad.
    # SQLite (tests) usa su propio pool y no acepta estas opciones.
    if not app.config["SQLALCHEMY_DATABASE_URI"].startswith("sqlite"):
        app.config.setdefault("SQLALCHEMY_ENGINE_OPTIONS", {
            "pool_pre_ping": True,
            "pool_recycle": 280,     # recicla conexiones cada ~5 min
            "pool_timeout": 20,
            "pool_size": 5,
            "max_overflow": 10,
        })

    _warn_short_secret(app)

    from revendedoras.utils import safe_db_url
    logger.info("DB: %s", safe_db_url(app.config["SQLALCHEMY_DATABASE_URI"]))

    # ── Extensiones ────────────────────────────────────────────────────────
    _setup_cors(app)
    db.init_app(app)
    migrate.init_app(app, db)
    jwt.init_app(app)

    # ── JWT errors → siempre JSON (evita 422) ──────────────────────────────
    @jwt.expired_token_loader
    def _expired(_header, _payload):
        return jsonify({"error": "Token expirado. Vuelve a iniciar sesión."}), 401

    @jwt.invalid_token_loader
    def _invalid(_err):
        return jsonify({"error": "Token inválido. Vuelve a iniciar sesión."}), 401

    @jwt.unauthorized_loader
    def _missing(_err):
        return jsonify({"error": "Autenticación requerida."}), 401

    # ── Error handlers globales ────────────────────────────────────────────
    @app.errorhandler(404)
    def _not_found(_e):
        return jsonify({"error": "Recurso no encontrado"}), 404

    @app.errorhandler(405)
    def _method_not_allowed(_e):
        return jsonify({"error": "Método no permitido"}), 405

    @app.errorhandler(500)
    def _server_error(e):
        logger.exception("Unhandled error: %s", e)
        return jsonify({"error": "Error interno del servidor"}), 500

    # ── Blueprints ─────────────────────────────────────────────────────────
    from revendedoras.routes import (
        admin_bp,
        analytics_bp,
        auth_bp,
        catalogo_bp,
        consolidaciones_bp,
        gamification_bp,
        internal_bp,
        pedidos_bp,
        profile_bp,
    )

    app.register_blueprint(auth_bp,            url_prefix="/auth")
    app.register_blueprint(catalogo_bp,        url_prefix="/catalogo")
    app.register_blueprint(pedidos_bp,         url_prefix="/pedidos")
    app.register_blueprint(consolidaciones_bp, url_prefix="/consolidaciones")
    app.register_blueprint(gamification_bp,    url_prefix="/gamification")
    app.register_blueprint(analytics_bp,       url_prefix="/analytics")
    app.register_blueprint(profile_bp,         url_prefix="/profile")
    app.register_blueprint(admin_bp,           url_prefix="/admin")
    app.register_blueprint(internal_bp,        url_prefix="/internal")

    # ── Health ─────────────────────────────────────────────────────────────
    @app.route("/health")
    def health():
        try:
            db.session.execute(db.text("SELECT 1"))
            return jsonify({"status": "ok", "db": "ok"})
        except Exception as e:
            logger.error("Health DB check failed: %s", e)
            return jsonify({"status": "error", "db": str(e)}), 500

    # ── Scheduler (sincronización periódica del catálogo) ──────────────────
    if app.config["SCHEDULER_ENABLED"] and not app.config.get("TESTING"):
        _start_scheduler(app)

    return app


# ── Helpers privados ───────────────────────────────────────────────────────

def _database_url() -> str:
    url = os.environ.get("DATABASE_URL", "postgresql://localhost/revendedoras")
    # Heroku/Render todavía entregan el esquema viejo
    return url.replace("postgres://", "postgresql://", 1)


def _warn_short_secret(app: Flask) -> None:
    secret = app.config.get("JWT_SECRET_KEY") or ""
    if len(secret) < 32:
        logger.warning(
            "JWT_SECRET_KEY tiene %d caracteres (mínimo recomendado: 32). "
            "Genera una con: python -c \"import secrets; print(secrets.token_hex(32))\"",
            len(secret),
        )


def _setup_cors(app: Flask) -> None:
    frontend_origin = os.environ.get("FRONTEND_URL", "http://localhost:3000").rstrip("/")
    origins = [frontend_origin]
    if "localhost:3000" in frontend_origin:
        origins.append("http://127.0.0.1:3000")
    CORS(
        app,
        origins=origins,
        supports_credentials=True,
        allow_headers=["Content-Type", "Authorization", "X-Cron-Secret"],
        methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    )


def _start_scheduler(app: Flask) -> None:
    minutes = app.config["CATALOG_SYNC_MINUTES"]
    try:
        from apscheduler.schedulers.background import BackgroundScheduler
        from revendedoras.tasks.sync_catalog import SyncInProgressError, run_sync_catalog

        scheduler = BackgroundScheduler()

        def _job():
            with app.app_context():
                try:
                    run_sync_catalog()
                except SyncInProgressError:
                    logger.info("sync_catalog: ya hay una sincronización en curso, se omite.")
                except Exception as e:
                    logger.exception("sync_catalog programado falló: %s", e)

        scheduler.add_job(_job, "interval", minutes=minutes, id="sync_catalog")
        scheduler.start()
        logger.info("Scheduler iniciado: sync_catalog cada %d min.", minutes)
    except Exception as e:
        logger.warning(
            "Scheduler no iniciado: %s. "
            "Usa cron: GET /internal/sync-catalog cada %d min.",
            e,
            minutes,
        )
