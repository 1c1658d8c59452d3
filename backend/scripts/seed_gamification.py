#!/usr/bin/env python3
"""
Crea badges y marcas de embajadoras, y opcionalmente inicializa la gamificación
de todos los usuarios a partir de sus ventas completadas.
Uso (desde backend/):
  python scripts/seed_gamification.py          # solo badges y marcas
  python scripts/seed_gamification.py --init   # además recalcula niveles/badges/puntos
"""
import argparse
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
from revendedoras.services import gamification

logger = logging.getLogger("seed_gamification")


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("--init", action="store_true", help="inicializar niveles, badges y puntos")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO)
    app = create_app({"SCHEDULER_ENABLED": False})
    with app.app_context():
        logger.info("Badges de ventas: %d", gamification.seed_badges())
        logger.info("Marcas: %s", gamification.seed_brand_ambassadors())
        if args.init:
            logger.info("Inicialización: %s", gamification.initialize_gamification())
    return 0


if __name__ == "__main__":
    sys.exit(main())
