"""
Gamificación de revendedoras: niveles, puntos, badges, embajadoras de marca y ranking.

Una venta cuenta solo si el pedido está entregado ("delivered" o el legado
"entregado"), cobrado a la clienta (paid_by_client) y no cancelado. El nivel y
totalSales se recalculan siempre desde cero con un count, nunca se incrementan.

Política: los badges y los puntos ya otorgados son permanentes. Una cancelación
baja el nivel si corresponde y deja una fila de 0 puntos en el ledger, pero no
revoca badges ni descuenta puntos.
"""
import json
import logging
import math
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy import func

from revendedoras import db
from revendedoras.models import (
    ESTADO_CANCELADO,
    ESTADOS_ENTREGADO,
    Badge,
    BrandAmbassador,
    Linea,
    Pedido,
    Point,
    User,
    UserBadge,
    UserBrandSales,
    UserLevel,
)

logger = logging.getLogger(__name__)

# De mayor a menor: gana el umbral más alto alcanzado
LEVEL_THRESHOLDS = (
    (500, "leyenda"),
    (200, "diamante"),
    (100, "oro"),
    (50, "plata"),
    (10, "bronce"),
    (0, "principiante"),
)
LEVEL_ORDER = [name for _, name in reversed(LEVEL_THRESHOLDS)]
LEVEL_UP_POINTS = 100
FIRST_SALE_BONUS = 50
INIT_POINTS_PER_SALE = 10

REASON_SALE = "sale"
REASON_BADGE = "badge"
REASON_LEVEL_UP = "level_up"
REASON_INIT = "init"
REASON_CANCEL = "cancel"

BADGE_DEFINITIONS = [
    {"slug": "primera-venta", "name": "Primera Venta", "description": "¡Tu primera venta exitosa!",
     "icon": "🎉", "min_sales": 1, "points": 50, "rarity": "common"},
    {"slug": "10-ventas", "name": "10 Ventas", "description": "Alcanzaste 10 ventas",
     "icon": "⭐", "min_sales": 10, "points": 100, "rarity": "common"},
    {"slug": "50-ventas", "name": "50 Ventas", "description": "Alcanzaste 50 ventas",
     "icon": "🌟", "min_sales": 50, "points": 200, "rarity": "rare"},
    {"slug": "100-ventas", "name": "100 Ventas", "description": "Alcanzaste 100 ventas",
     "icon": "💫", "min_sales": 100, "points": 300, "rarity": "rare"},
    {"slug": "200-ventas", "name": "200 Ventas", "description": "Alcanzaste 200 ventas",
     "icon": "✨", "min_sales": 200, "points": 500, "rarity": "epic"},
    {"slug": "500-ventas", "name": "500 Ventas", "description": "Alcanzaste 500 ventas - ¡Eres una leyenda!",
     "icon": "👑", "min_sales": 500, "points": 1000, "rarity": "legendary"},
]

BRAND_LEVELS = [
    {"level": "bronce", "min_sales": 10, "points": 150, "emoji": "🥉", "rarity": "common"},
    {"level": "plata", "min_sales": 25, "points": 300, "emoji": "🥈", "rarity": "rare"},
    {"level": "oro", "min_sales": 50, "points": 500, "emoji": "🥇", "rarity": "epic"},
    {"level": "diamante", "min_sales": 100, "points": 1000, "emoji": "💎", "rarity": "legendary"},
]

INITIAL_BRANDS = [
    {"brand_slug": "besame", "brand_name": "Bésame", "logo_emoji": "💋", "is_active": True},
    {"brand_slug": "cocot", "brand_name": "Cocot", "logo_emoji": "🌸", "is_active": False},
    {"brand_slug": "promise", "brand_name": "Promise", "logo_emoji": "💖", "is_active": False},
]


# ── Reglas puras ───────────────────────────────────────────────────────────

def calculate_user_level(sales_count: int) -> str:
    for threshold, level in LEVEL_THRESHOLDS:
        if sales_count >= threshold:
            return level
    return "principiante"


def calculate_sale_points(amount: float, is_first_sale: bool) -> int:
    """10 puntos por cada $1000 vendidos, +50 si es la primera venta."""
    base = int(math.floor((amount or 0) / 1000)) * 10
    return base + (FIRST_SALE_BONUS if is_first_sale else 0)


def next_level(level: str) -> Optional[dict]:
    idx = LEVEL_ORDER.index(level) if level in LEVEL_ORDER else 0
    if idx + 1 >= len(LEVEL_ORDER):
        return None
    name = LEVEL_ORDER[idx + 1]
    min_sales = next(t for t, n in LEVEL_THRESHOLDS if n == name)
    return {"level": name, "minSales": min_sales}


# ── Consultas ──────────────────────────────────────────────────────────────

def completed_conditions():
    """Condiciones SQL de una venta completada."""
    return (
        Pedido.estado.in_(ESTADOS_ENTREGADO),
        Pedido.paid_by_client.is_(True),
        Pedido.estado != ESTADO_CANCELADO,
    )


def count_completed_sales(user_id: int, since: Optional[datetime] = None) -> int:
    q = Pedido.query.filter(Pedido.user_id == user_id, *completed_conditions())
    if since is not None:
        q = q.filter(func.coalesce(Pedido.delivered_at, Pedido.created_at) >= since)
    return q.count()


def get_total_points(user_id: int) -> int:
    total = db.session.query(func.coalesce(func.sum(Point.amount), 0)).filter(Point.user_id == user_id).scalar()
    return int(total or 0)


# ── Escrituras ─────────────────────────────────────────────────────────────

def _add_points(user_id: int, amount: int, reason: str, description: str) -> Point:
    point = Point(user_id=user_id, amount=amount, reason=reason, description=description)
    db.session.add(point)
    return point


def _upsert_level(user_id: int, sales_count: int):
    """Crea o actualiza UserLevel. Devuelve (nivel anterior o None, nivel nuevo)."""
    new_level = calculate_user_level(sales_count)
    user_level = UserLevel.query.filter_by(user_id=user_id).first()
    old_level = user_level.current_level if user_level else None
    if not user_level:
        user_level = UserLevel(user_id=user_id)
        db.session.add(user_level)
    user_level.current_level = new_level
    user_level.current_xp = sales_count
    user_level.total_sales = sales_count
    return old_level, new_level


def _unlock_badge(user_id: int, badge: Badge, description: Optional[str] = None) -> bool:
    """Asigna el badge si el usuario no lo tiene. Devuelve True si lo desbloqueó."""
    if UserBadge.query.filter_by(user_id=user_id, badge_id=badge.id).first():
        return False
    db.session.add(UserBadge(user_id=user_id, badge_id=badge.id))
    _add_points(user_id, badge.points, REASON_BADGE, description or f"¡Badge desbloqueado: {badge.name}!")
    logger.info("Badge desbloqueado user %s: %s (+%d pts)", user_id, badge.slug, badge.points)
    return True


def check_and_assign_badges(user_id: int, total_sales: int) -> List[str]:
    """Desbloquea los badges de ventas cuyo umbral se alcanzó. Nunca revoca."""
    unlocked = []
    for definition in BADGE_DEFINITIONS:
        if total_sales < definition["min_sales"]:
            continue
        badge = Badge.query.filter_by(slug=definition["slug"]).first()
        if badge is None:
            logger.warning("Badge %s no existe; correr seed de badges", definition["slug"])
            continue
        if _unlock_badge(user_id, badge):
            unlocked.append(badge.slug)
    return unlocked


def _brand_badge(brand: BrandAmbassador, cfg: dict) -> Badge:
    slug = f"embajadora-{brand.brand_slug}-{cfg['level']}"
    badge = Badge.query.filter_by(slug=slug).first()
    if badge:
        return badge
    icon = f"{brand.logo_url}|{cfg['emoji']}" if brand.logo_url else f"{brand.logo_emoji}{cfg['emoji']}"
    badge = Badge(
        slug=slug,
        name=f"Embajadora {brand.brand_name} {cfg['emoji']}",
        description=f"Alcanzaste {cfg['min_sales']} ventas de {brand.brand_name}",
        icon=icon,
        category="embajadora",
        condition=json.dumps(
            {"type": "brand_sales", "brandSlug": brand.brand_slug, "minSales": cfg["min_sales"]}
        ),
        points=cfg["points"],
        rarity=cfg["rarity"],
    )
    db.session.add(badge)
    db.session.flush()
    logger.info("Badge creado: %s", badge.slug)
    return badge


def track_brand_sales(user_id: int, assign_badges: bool = True) -> List[str]:
    """
    Recuenta ventas completadas por marca activa (líneas de pedidos completados) y,
    si assign_badges, desbloquea los badges de embajadora alcanzados.
    """
    unlocked = []
    for brand in BrandAmbassador.query.filter_by(is_active=True).all():
        count = (
            Linea.query.join(Pedido, Pedido.id == Linea.pedido_id)
            .filter(Pedido.user_id == user_id, Linea.brand == brand.brand_name, *completed_conditions())
            .count()
        )
        row = UserBrandSales.query.filter_by(user_id=user_id, brand_slug=brand.brand_slug).first()
        if not row:
            row = UserBrandSales(user_id=user_id, brand_slug=brand.brand_slug)
            db.session.add(row)
        row.sales_count = count

        if not assign_badges:
            continue
        for cfg in BRAND_LEVELS:
            if count < cfg["min_sales"]:
                continue
            badge = _brand_badge(brand, cfg)
            desc = f"¡Embajadora {cfg['level']} desbloqueada! {badge.name}"
            if _unlock_badge(user_id, badge, desc):
                unlocked.append(badge.slug)
    return unlocked


# ── Eventos de pedido ──────────────────────────────────────────────────────

def on_order_completed(user_id: int, sale_amount: float) -> dict:
    """Recalcula nivel, suma puntos de la venta y desbloquea badges."""
    try:
        sales = count_completed_sales(user_id)
        old_level, new_level = _upsert_level(user_id, sales)

        level_up = (
            old_level is not None
            and old_level != new_level
            and LEVEL_ORDER.index(new_level) > LEVEL_ORDER.index(old_level)
        )
        if level_up:
            _add_points(user_id, LEVEL_UP_POINTS, REASON_LEVEL_UP, f"¡Subiste a nivel {new_level}!")
            logger.info("User %s subió de nivel: %s → %s", user_id, old_level, new_level)

        sale_points = calculate_sale_points(sale_amount, is_first_sale=sales == 1)
        _add_points(user_id, sale_points, REASON_SALE, f"Venta de ${sale_amount:.0f}")

        badges = check_and_assign_badges(user_id, sales)
        badges += track_brand_sales(user_id)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    logger.info("Gamificación user %s: %d ventas, nivel %s, +%d pts", user_id, sales, new_level, sale_points)
    return {
        "level": new_level,
        "totalSales": sales,
        "points": sale_points,
        "levelUp": level_up,
        "badgesUnlocked": badges,
    }


def on_order_cancelled(user_id: int) -> dict:
    """Recalcula nivel hacia abajo si corresponde. No revoca badges ni puntos."""
    try:
        sales = count_completed_sales(user_id)
        old_level, new_level = _upsert_level(user_id, sales)
        if old_level and old_level != new_level:
            logger.info("User %s cambió de nivel por cancelación: %s → %s", user_id, old_level, new_level)

        track_brand_sales(user_id, assign_badges=False)
        _add_points(user_id, 0, REASON_CANCEL, "Pedido cancelado - gamificación recalculada automáticamente")
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return {"level": new_level, "totalSales": sales}


# ── Administración ─────────────────────────────────────────────────────────

def seed_badges() -> int:
    """Crea o actualiza los badges de ventas."""
    for definition in BADGE_DEFINITIONS:
        badge = Badge.query.filter_by(slug=definition["slug"]).first()
        if not badge:
            badge = Badge(slug=definition["slug"])
            db.session.add(badge)
        badge.name = definition["name"]
        badge.description = definition["description"]
        badge.icon = definition["icon"]
        badge.category = "ventas"
        badge.condition = json.dumps({"minSales": definition["min_sales"]})
        badge.points = definition["points"]
        badge.rarity = definition["rarity"]
    db.session.commit()
    return len(BADGE_DEFINITIONS)


def seed_brand_ambassadors(brands: Optional[List[dict]] = None) -> dict:
    created = updated = 0
    for data in brands or INITIAL_BRANDS:
        brand = BrandAmbassador.query.filter_by(brand_slug=data["brand_slug"]).first()
        if brand:
            updated += 1
        else:
            brand = BrandAmbassador(brand_slug=data["brand_slug"])
            db.session.add(brand)
            created += 1
        brand.brand_name = data["brand_name"]
        brand.logo_emoji = data.get("logo_emoji") or brand.logo_emoji or "🏷️"
        brand.logo_url = data.get("logo_url")
        brand.is_active = bool(data.get("is_active", True))
    db.session.commit()
    return {"created": created, "updated": updated}


def initialize_gamification() -> dict:
    """
    Inicializa niveles, badges y puntos de todos los usuarios a partir de sus
    ventas completadas. Los puntos "init" se otorgan una sola vez por usuario.
    """
    users_processed = badges_assigned = points_added = 0
    try:
        for user in User.query.all():
            sales = count_completed_sales(user.id)
            _upsert_level(user.id, sales)

            for slug in check_and_assign_badges(user.id, sales):
                badges_assigned += 1
                points_added += Badge.query.filter_by(slug=slug).first().points

            has_init = Point.query.filter_by(user_id=user.id, reason=REASON_INIT).first()
            if sales > 0 and not has_init:
                amount = sales * INIT_POINTS_PER_SALE
                _add_points(user.id, amount, REASON_INIT, f"Puntos iniciales por {sales} ventas")
                points_added += amount
            users_processed += 1
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    logger.info(
        "Gamificación inicializada: %d usuarios, %d badges, %d puntos",
        users_processed, badges_assigned, points_added,
    )
    return {
        "usersProcessed": users_processed,
        "badgesAssigned": badges_assigned,
        "pointsAdded": points_added,
    }


# ── Lectura ────────────────────────────────────────────────────────────────

def get_user_stats(user_id: int) -> dict:
    user_level = UserLevel.query.filter_by(user_id=user_id).first()
    if not user_level:
        user_level = UserLevel(user_id=user_id, current_level="principiante", current_xp=0, total_sales=0)
        db.session.add(user_level)
        db.session.commit()

    all_badges = Badge.query.order_by(Badge.category.asc(), Badge.points.asc()).all()
    unlocked: Dict[int, UserBadge] = {
        ub.badge_id: ub for ub in UserBadge.query.filter_by(user_id=user_id).all()
    }

    return {
        "totalPoints": get_total_points(user_id),
        "badgesUnlocked": len(unlocked),
        "totalBadges": len(all_badges),
        "level": {
            "currentLevel": user_level.current_level,
            "currentXP": user_level.current_xp,
            "totalSales": user_level.total_sales,
            "next": next_level(user_level.current_level),
        },
        "badges": [
            {
                "id": b.id,
                "slug": b.slug,
                "name": b.name,
                "description": b.description,
                "icon": b.icon,
                "category": b.category,
                "points": b.points,
                "rarity": b.rarity,
                "unlocked": b.id in unlocked,
                "unlockedAt": unlocked[b.id].unlocked_at.isoformat()
                if b.id in unlocked and unlocked[b.id].unlocked_at else None,
            }
            for b in all_badges
        ],
    }


def get_ranking(current_user_id: int, period: str = "month", limit: int = 50,
                now: Optional[datetime] = None) -> List[dict]:
    """
    Ranking por ventas completadas (desempate por puntos). period="month" cuenta
    solo ventas del mes en curso. Devuelve el top `limit` y, si la usuaria actual
    quedó afuera, la agrega al final con su posición real.
    """
    now = now or datetime.utcnow()
    sales_q = db.session.query(Pedido.user_id, func.count(Pedido.id)).filter(*completed_conditions())
    if period == "month":
        start = datetime(now.year, now.month, 1)
        sales_q = sales_q.filter(func.coalesce(Pedido.delivered_at, Pedido.created_at) >= start)
    sales = dict(sales_q.group_by(Pedido.user_id).all())
    points = dict(
        db.session.query(Point.user_id, func.coalesce(func.sum(Point.amount), 0))
        .group_by(Point.user_id).all()
    )
    badges = dict(
        db.session.query(UserBadge.user_id, func.count(UserBadge.id)).group_by(UserBadge.user_id).all()
    )

    entries = []
    for user in User.query.all():
        entries.append({
            "userId": user.id,
            "userName": user.name,
            "userHandle": user.handle,
            "level": user.level.current_level if user.level else "principiante",
            "totalSales": int(sales.get(user.id, 0)),
            "totalPoints": int(points.get(user.id, 0)),
            "badgesCount": int(badges.get(user.id, 0)),
            "isCurrentUser": user.id == current_user_id,
        })

    entries.sort(key=lambda e: (-e["totalSales"], -e["totalPoints"], e["userId"]))
    for position, entry in enumerate(entries, start=1):
        entry["position"] = position

    ranking = entries[:limit]
    me = next((e for e in entries if e["isCurrentUser"]), None)
    if me and me["position"] > limit:
        ranking.append(me)
    return ranking


def get_public_profile(user: User) -> dict:
    """Lo que cualquiera puede ver de una revendedora: nombre, nivel, puntos y badges ganados."""
    user_level = user.level
    badges = (
        UserBadge.query.filter_by(user_id=user.id)
        .order_by(UserBadge.unlocked_at.asc(), UserBadge.id.asc())
        .all()
    )
    level = user_level.current_level if user_level else "principiante"
    return {
        "name": user.name,
        "handle": user.handle,
        "level": level,
        "totalSales": user_level.total_sales if user_level else 0,
        "totalPoints": get_total_points(user.id),
        "badges": [
            {
                "slug": ub.badge.slug,
                "name": ub.badge.name,
                "icon": ub.badge.icon,
                "rarity": ub.badge.rarity,
                "unlockedAt": ub.unlocked_at.isoformat() if ub.unlocked_at else None,
            }
            for ub in badges
        ],
    }
