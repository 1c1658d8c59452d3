"""Niveles, puntos, badges, embajadoras y ranking."""
from datetime import datetime

import pytest

from conftest import make_user
from revendedoras import db
from revendedoras.models import Badge, Linea, Pedido, Point, UserBadge, UserBrandSales, UserLevel
from revendedoras.services import gamification as g


def _completed_order(user_id, venta=1600.0, brand="Bésame", delivered_at=None):
    pedido = Pedido(
        user_id=user_id,
        cliente="Clienta",
        telefono="1122334455",
        estado="delivered",
        paid_by_client=True,
        delivered_at=delivered_at or datetime.utcnow(),
        lineas=[Linea(product_id="101", variant_id="1011", name="Bombacha", brand=brand,
                      qty=1, mayorista=1000, venta=venta)],
    )
    db.session.add(pedido)
    db.session.commit()
    return pedido


def _complete_n(user_id, n):
    result = None
    for _ in range(n):
        _completed_order(user_id)
        result = g.on_order_completed(user_id, 1600)
    return result


# ── Reglas puras ───────────────────────────────────────────────────────────

@pytest.mark.parametrize("sales,level", [
    (0, "principiante"), (9, "principiante"), (10, "bronce"), (49, "bronce"),
    (50, "plata"), (100, "oro"), (200, "diamante"), (499, "diamante"), (500, "leyenda"),
])
def test_calculate_user_level(sales, level):
    assert g.calculate_user_level(sales) == level


def test_calculate_sale_points():
    assert g.calculate_sale_points(1600, is_first_sale=True) == 60
    assert g.calculate_sale_points(999, is_first_sale=False) == 0
    assert g.calculate_sale_points(25000, is_first_sale=False) == 250


def test_next_level():
    assert g.next_level("principiante") == {"level": "bronce", "minSales": 10}
    assert g.next_level("diamante") == {"level": "leyenda", "minSales": 500}
    assert g.next_level("leyenda") is None


# ── Eventos de pedido ──────────────────────────────────────────────────────

def test_nine_sales_is_principiante(ctx):
    uid = make_user()
    result = _complete_n(uid, 9)
    assert result["level"] == "principiante"
    assert result["totalSales"] == 9
    assert result["levelUp"] is False


def test_ten_sales_is_bronce_with_level_up(ctx):
    uid = make_user()
    g.seed_badges()
    result = _complete_n(uid, 10)

    assert result["level"] == "bronce"
    assert result["levelUp"] is True
    assert result["badgesUnlocked"] == ["10-ventas"]
    level = UserLevel.query.filter_by(user_id=uid).one()
    assert (level.current_level, level.total_sales) == ("bronce", 10)
    # ventas 60 + 9*10, badges 50 + 100, subida de nivel 100
    assert g.get_total_points(uid) == 400


def test_first_sale_unlocks_badge_once(ctx):
    uid = make_user()
    g.seed_badges()
    first = _complete_n(uid, 1)
    assert first["points"] == 60
    assert first["badgesUnlocked"] == ["primera-venta"]
    second = _complete_n(uid, 1)
    assert second["points"] == 10
    assert second["badgesUnlocked"] == []
    assert UserBadge.query.filter_by(user_id=uid).count() == 1


def test_cancellation_lowers_level_but_keeps_badges_and_points(ctx):
    uid = make_user()
    g.seed_badges()
    _complete_n(uid, 10)
    points_before = g.get_total_points(uid)
    badges_before = UserBadge.query.filter_by(user_id=uid).count()

    pedido = Pedido.query.filter_by(user_id=uid).first()
    pedido.estado = "cancelado"
    db.session.commit()
    result = g.on_order_cancelled(uid)

    assert result == {"level": "principiante", "totalSales": 9}
    assert UserLevel.query.filter_by(user_id=uid).one().current_level == "principiante"
    assert UserBadge.query.filter_by(user_id=uid).count() == badges_before == 2
    assert g.get_total_points(uid) == points_before
    cancel_rows = Point.query.filter_by(user_id=uid, reason="cancel").all()
    assert [p.amount for p in cancel_rows] == [0]
    assert Point.query.filter(Point.amount < 0).count() == 0


def test_total_points_is_ledger_sum(ctx):
    uid = make_user()
    g.seed_badges()
    _complete_n(uid, 3)
    g.on_order_cancelled(uid)
    ledger = sum(p.amount for p in Point.query.filter_by(user_id=uid).all())
    assert g.get_total_points(uid) == ledger


def test_unpaid_or_pending_orders_do_not_count(ctx):
    uid = make_user()
    db.session.add_all([
        Pedido(user_id=uid, cliente="A", telefono="1", estado="delivered", paid_by_client=False),
        Pedido(user_id=uid, cliente="B", telefono="1", estado="sent_to_client", paid_by_client=True),
        Pedido(user_id=uid, cliente="C", telefono="1", estado="entregado", paid_by_client=True),
    ])
    db.session.commit()
    assert g.count_completed_sales(uid) == 1


def test_missing_badges_are_skipped(ctx):
    uid = make_user()
    result = _complete_n(uid, 1)
    assert result["badgesUnlocked"] == []
    assert Badge.query.count() == 0


def test_brand_ambassador_badge(ctx):
    uid = make_user()
    g.seed_brand_ambassadors()
    result = _complete_n(uid, 10)

    assert "embajadora-besame-bronce" in result["badgesUnlocked"]
    badge = Badge.query.filter_by(slug="embajadora-besame-bronce").one()
    assert badge.points == 150
    assert badge.category == "embajadora"
    assert UserBrandSales.query.filter_by(user_id=uid, brand_slug="besame").one().sales_count == 10
    # Marcas inactivas no se cuentan
    assert UserBrandSales.query.filter_by(user_id=uid, brand_slug="cocot").first() is None


def test_brand_sales_drop_on_cancel_without_revoking(ctx):
    uid = make_user()
    g.seed_brand_ambassadors()
    _complete_n(uid, 10)
    pedido = Pedido.query.filter_by(user_id=uid).first()
    pedido.estado = "cancelado"
    db.session.commit()
    g.on_order_cancelled(uid)

    assert UserBrandSales.query.filter_by(user_id=uid, brand_slug="besame").one().sales_count == 9
    assert UserBadge.query.join(Badge).filter(Badge.slug == "embajadora-besame-bronce").count() == 1


# ── Administración ─────────────────────────────────────────────────────────

def test_seed_is_idempotent(ctx):
    assert g.seed_badges() == 6
    assert g.seed_badges() == 6
    assert Badge.query.count() == 6
    assert g.seed_brand_ambassadors() == {"created": 3, "updated": 0}
    assert g.seed_brand_ambassadors() == {"created": 0, "updated": 3}


def test_initialize_gamification_once(ctx):
    uid = make_user()
    make_user(email="sin.ventas@example.com", name="Sin ventas")
    g.seed_badges()
    for _ in range(3):
        _completed_order(uid)

    first = g.initialize_gamification()
    assert first == {"usersProcessed": 2, "badgesAssigned": 1, "pointsAdded": 50 + 30}
    second = g.initialize_gamification()
    assert second == {"usersProcessed": 2, "badgesAssigned": 0, "pointsAdded": 0}
    assert g.get_total_points(uid) == 80
    assert UserLevel.query.count() == 2


def test_user_stats(ctx):
    uid = make_user()
    g.seed_badges()
    _complete_n(uid, 1)
    stats = g.get_user_stats(uid)
    assert stats["totalPoints"] == 110
    assert stats["badgesUnlocked"] == 1
    assert stats["totalBadges"] == 6
    assert stats["level"]["currentLevel"] == "principiante"
    assert stats["level"]["next"] == {"level": "bronce", "minSales": 10}
    unlocked = [b["slug"] for b in stats["badges"] if b["unlocked"]]
    assert unlocked == ["primera-venta"]


def test_user_stats_creates_level(ctx):
    uid = make_user()
    stats = g.get_user_stats(uid)
    assert stats["level"]["currentLevel"] == "principiante"
    assert stats["totalPoints"] == 0
    assert UserLevel.query.filter_by(user_id=uid).count() == 1


# ── Ranking ────────────────────────────────────────────────────────────────

def test_ranking_month_and_all(ctx):
    now = datetime(2026, 10, 19, 12, 0)
    ana = make_user(email="ana@example.com", name="Ana")
    bea = make_user(email="bea@example.com", name="Bea")
    cami = make_user(email="cami@example.com", name="Cami")
    for _ in range(2):
        _completed_order(ana, delivered_at=datetime(2026, 10, 3))
    for _ in range(3):
        _completed_order(bea, delivered_at=datetime(2026, 9, 20))
    _completed_order(bea, delivered_at=datetime(2026, 10, 1))

    month = g.get_ranking(cami, period="month", now=now)
    assert [(e["userName"], e["totalSales"], e["position"]) for e in month] == [
        ("Ana", 2, 1), ("Bea", 1, 2), ("Cami", 0, 3),
    ]
    assert [e["isCurrentUser"] for e in month] == [False, False, True]

    all_time = g.get_ranking(cami, period="all", now=now)
    assert [e["userName"] for e in all_time] == ["Bea", "Ana", "Cami"]


def test_ranking_appends_current_user_outside_top(ctx):
    ana = make_user(email="ana@example.com", name="Ana")
    make_user(email="bea@example.com", name="Bea")
    cami = make_user(email="cami@example.com", name="Cami")
    _completed_order(ana)

    ranking = g.get_ranking(cami, period="all", limit=1)
    assert [(e["userName"], e["position"]) for e in ranking] == [("Ana", 1), ("Cami", 3)]
