"""
Modelos de base de datos - PostgreSQL con SQLAlchemy.
El caché del catálogo se reemplaza completo en cada sincronización; el ledger de
puntos es append-only.
"""
from datetime import datetime
from revendedoras import db

# Estados de pedido. "entregado" es el nombre legado de "delivered".
ESTADO_PENDIENTE = "pendiente"
ESTADO_ENVIADO = "enviado"
ESTADO_CANCELADO = "cancelado"
ESTADOS_ENTREGADO = ("delivered", "entregado")
ESTADOS_PEDIDO = (
    ESTADO_PENDIENTE,
    ESTADO_ENVIADO,
    "sent_to_nadin",
    "received_nadin",
    "sent_to_client",
    "delivered",
    "entregado",
    ESTADO_CANCELADO,
)


class User(db.Model):
    __tablename__ = "users"
    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    name = db.Column(db.String(120), nullable=False, default="")
    handle = db.Column(db.String(64), unique=True, nullable=True)  # perfil público
    margen = db.Column(db.Float, nullable=False, default=60.0)  # % sobre mayorista
    is_admin = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    pedidos = db.relationship("Pedido", backref="user", lazy="dynamic")
    level = db.relationship("UserLevel", backref="user", uselist=False)


class CatalogoCache(db.Model):
    __tablename__ = "catalogo_cache"
    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.String(64), unique=True, nullable=False)
    data = db.Column(db.Text, nullable=False)  # producto normalizado en JSON
    brand = db.Column(db.String(255), nullable=False, index=True)
    category = db.Column(db.String(500), nullable=False, index=True)  # "MUJER > ROPA INTERIOR > ..."
    sex = db.Column(db.String(20), nullable=False, default="Unisex")  # Mujer | Hombre | Niños | Unisex
    sales_count = db.Column(db.Integer, nullable=False, default=0)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)


class Pedido(db.Model):
    __tablename__ = "pedidos"
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    cliente = db.Column(db.String(255), nullable=False)
    telefono = db.Column(db.String(64), nullable=False)
    nota = db.Column(db.Text, nullable=False, default="")
    estado = db.Column(db.String(32), nullable=False, default=ESTADO_PENDIENTE)
    descuento_total = db.Column(db.Float, nullable=False, default=0)
    paid_to_nadin = db.Column(db.Boolean, nullable=False, default=False)
    paid_to_nadin_at = db.Column(db.DateTime, nullable=True)
    paid_by_client = db.Column(db.Boolean, nullable=False, default=False)
    paid_by_client_at = db.Column(db.DateTime, nullable=True)
    sent_to_nadin_at = db.Column(db.DateTime, nullable=True)
    received_nadin_at = db.Column(db.DateTime, nullable=True)
    sent_to_client_at = db.Column(db.DateTime, nullable=True)
    delivered_at = db.Column(db.DateTime, nullable=True)
    cancelled_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    lineas = db.relationship(
        "Linea", backref="pedido", lazy="selectin", cascade="all, delete-orphan"
    )

    @property
    def total_venta(self) -> float:
        return sum(linea.venta * linea.qty for linea in self.lineas)

    @property
    def total_mayorista(self) -> float:
        return sum(linea.mayorista * linea.qty for linea in self.lineas)

    @property
    def is_completed(self) -> bool:
        """Venta completada: entregada, cobrada a la clienta y no cancelada."""
        return (
            self.estado in ESTADOS_ENTREGADO
            and bool(self.paid_by_client)
            and self.estado != ESTADO_CANCELADO
        )


class Linea(db.Model):
    __tablename__ = "lineas"
    id = db.Column(db.Integer, primary_key=True)
    pedido_id = db.Column(db.Integer, db.ForeignKey("pedidos.id"), nullable=False, index=True)
    product_id = db.Column(db.String(64), nullable=False, index=True)
    variant_id = db.Column(db.String(64), nullable=False)
    sku = db.Column(db.String(120), nullable=False, default="")
    brand = db.Column(db.String(255), nullable=False, default="")
    name = db.Column(db.String(500), nullable=False)
    talle = db.Column(db.String(64), nullable=False, default="")
    color = db.Column(db.String(64), nullable=False, default="")
    qty = db.Column(db.Integer, nullable=False, default=1)
    mayorista = db.Column(db.Float, nullable=False)  # precio unitario mayorista
    venta = db.Column(db.Float, nullable=False)  # precio unitario de reventa


class Consolidacion(db.Model):
    __tablename__ = "consolidaciones"
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    pedido_ids = db.Column(db.Text, nullable=False)  # JSON: [1, 2, 3]
    forma_pago = db.Column(db.String(64), nullable=False)
    tipo_envio = db.Column(db.String(64), nullable=False)
    transporte_nombre = db.Column(db.String(255), nullable=True)
    total_mayorista = db.Column(db.Float, nullable=False, default=0)
    total_venta = db.Column(db.Float, nullable=False, default=0)
    descuento_total = db.Column(db.Float, nullable=False, default=0)
    ganancia = db.Column(db.Float, nullable=False, default=0)
    costo_real = db.Column(db.Float, nullable=True)
    ganancia_neta = db.Column(db.Float, nullable=True)
    csv_content = db.Column(db.Text, nullable=True)
    enviado_at = db.Column(db.DateTime, default=datetime.utcnow)


# ── Gamificación ───────────────────────────────────────────────────────────

class UserLevel(db.Model):
    __tablename__ = "user_levels"
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), unique=True, nullable=False)
    current_level = db.Column(db.String(20), nullable=False, default="principiante")
    current_xp = db.Column(db.Integer, nullable=False, default=0)
    total_sales = db.Column(db.Integer, nullable=False, default=0)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class Point(db.Model):
    """Ledger append-only: los puntos totales son la suma de amount."""
    __tablename__ = "points"
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    amount = db.Column(db.Integer, nullable=False)
    reason = db.Column(db.String(20), nullable=False)  # sale | badge | level_up | init | cancel
    description = db.Column(db.String(255), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)


class Badge(db.Model):
    __tablename__ = "badges"
    id = db.Column(db.Integer, primary_key=True)
    slug = db.Column(db.String(120), unique=True, nullable=False)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.String(500), nullable=False, default="")
    icon = db.Column(db.String(255), nullable=False, default="")
    category = db.Column(db.String(32), nullable=False, default="ventas")
    condition = db.Column(db.Text, nullable=False, default="{}")  # JSON
    points = db.Column(db.Integer, nullable=False, default=0)
    rarity = db.Column(db.String(20), nullable=False, default="common")


class UserBadge(db.Model):
    __tablename__ = "user_badges"
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    badge_id = db.Column(db.Integer, db.ForeignKey("badges.id"), nullable=False)
    unlocked_at = db.Column(db.DateTime, default=datetime.utcnow)

    # Un badge se desbloquea una sola vez por usuario
    __table_args__ = (db.UniqueConstraint("user_id", "badge_id", name="uq_user_badge"),)

    badge = db.relationship("Badge")


class BrandAmbassador(db.Model):
    __tablename__ = "brand_ambassadors"
    id = db.Column(db.Integer, primary_key=True)
    brand_slug = db.Column(db.String(120), unique=True, nullable=False)
    brand_name = db.Column(db.String(255), nullable=False)
    logo_emoji = db.Column(db.String(16), nullable=False, default="🏷️")
    logo_url = db.Column(db.String(500), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)


class UserBrandSales(db.Model):
    __tablename__ = "user_brand_sales"
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    brand_slug = db.Column(db.String(120), nullable=False)
    sales_count = db.Column(db.Integer, nullable=False, default=0)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (db.UniqueConstraint("user_id", "brand_slug", name="uq_user_brand"),)
