# Blueprints
from revendedoras.routes.admin import admin_bp
from revendedoras.routes.analytics import analytics_bp
from revendedoras.routes.auth import auth_bp
from revendedoras.routes.catalogo import catalogo_bp
from revendedoras.routes.consolidaciones import consolidaciones_bp
from revendedoras.routes.gamification import gamification_bp
from revendedoras.routes.internal import internal_bp
from revendedoras.routes.pedidos import pedidos_bp
from revendedoras.routes.profile import profile_bp

__all__ = [
    "admin_bp",
    "analytics_bp",
    "auth_bp",
    "catalogo_bp",
    "consolidaciones_bp",
    "gamification_bp",
    "internal_bp",
    "pedidos_bp",
    "profile_bp",
]
