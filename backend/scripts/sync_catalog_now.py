#!/usr/bin/env python3
"""
Sincroniza el catálogo de Tiendanube una vez, sin levantar el servidor.
Uso (desde backend/): python scripts/sync_catalog_now.py
Requiere TN_STORE_ID y TN_ACCESS_TOKEN (o un .env).
"""
import logging
import os
import sys

_this_dir = os.path.dirname(os.path.abspath(__file__))
backend_dir = os.path.dirname(_this_dir)
if backend_dir not in sys.path:
    sys.path.insert(0, backend_dir)

from dotenv import load_dotenv

load_dotenv()

from revendedoras import create_app
from revendedoras.tasks.sync_catalog import run_sync_catalog

logger = logging.getLogger("sync_catalog_now")


def main() -> int:
    logging.basicConfig(level=logging.INFO)
    app = create_app({"SCHEDULER_ENABLED": False})
    with app.app_context():
        try:
            result = run_sync_catalog()
        except Exception as e:
            logger.error("Sincronización fallida: %s", e)
            return 1
    logger.info("Productos en caché: %d", result["count"])
    for depth, count in result["category_levels"].items():
        logger.info("  %s niveles de categoría: %d productos", depth, count)
    return 0


if __name__ == "__main__":
    sys.exit(main())
