# Alembic env - usa el mismo db y modelos que la app
from logging.config import fileConfig
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
from revendedoras import create_app, db
import revendedoras.models  # noqa: F401  registra las tablas en db.metadata
from alembic import context

config = context.config
# alembic.ini vive en la raíz del backend, no dentro de migrations/
config_ini = config.config_file_name
if config_ini and not os.path.isabs(config_ini):
    root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    candidate = os.path.join(root, "alembic.ini")
    if os.path.isfile(candidate):
        config_ini = candidate
if config_ini and os.path.isfile(config_ini):
    fileConfig(config_ini)

# Sin scheduler: las migraciones no deben disparar la sync del catálogo
app = create_app({"SCHEDULER_ENABLED": False})
target_metadata = db.metadata


def run_migrations_offline():
    url = config.get_main_option("sqlalchemy.url") or app.config["SQLALCHEMY_DATABASE_URI"]
    context.configure(url=url, target_metadata=target_metadata, literal_binds=True)
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online():
    with app.app_context():
        engine = db.engine
        with engine.connect() as connection:
            context.configure(connection=connection, target_metadata=target_metadata)
            with context.begin_transaction():
                context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
