"""
Fixtures compartidas: app con SQLite en memoria, sin scheduler.
Ejecutar desde la raíz: pytest -v
"""
import pytest
from flask_jwt_extended import create_access_token
from werkzeug.security import generate_password_hash

from revendedoras import create_app, db
from revendedoras.models import User

CRON_SECRET = "cron-secret-de-test"


@pytest.fixture
def app():
    app = create_app({
        "TESTING": True,
        "SQLALCHEMY_DATABASE_URI": "sqlite://",
        "JWT_SECRET_KEY": "jwt-secret-de-test-con-mas-de-32-caracteres",
        "SCHEDULER_ENABLED": False,
        "CRON_SECRET": CRON_SECRET,
        "TN_STORE_ID": "123456",
        "TN_ACCESS_TOKEN": "token-de-test",
        "TN_PAGE_DELAY": 0,
    })
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    with app.test_client() as c:
        yield c


@pytest.fixture
def ctx(app):
    """App context para tests que usan servicios y modelos directamente."""
    with app.app_context():
        yield app


def make_user(email="ana@example.com", name="Ana", is_admin=False, margen=60.0) -> int:
    """Crea un usuario (requiere app context) y devuelve su id."""
    user = User(
        email=email,
        name=name,
        password_hash=generate_password_hash("secreto123"),
        is_admin=is_admin,
        margen=margen,
    )
    db.session.add(user)
    db.session.commit()
    return user.id


def auth_headers(user_id: int) -> dict:
    return {"Authorization": f"Bearer {create_access_token(identity=str(user_id))}"}


@pytest.fixture
def user_headers(app):
    with app.app_context():
        uid = make_user()
        return {"user_id": uid, "headers": auth_headers(uid)}


@pytest.fixture
def admin_headers(app):
    with app.app_context():
        uid = make_user(email="admin@example.com", name="Admin", is_admin=True)
        return {"user_id": uid, "headers": auth_headers(uid)}


# ── Tiendanube falso ───────────────────────────────────────────────────────

CATEGORIES = [
    {"id": 1, "name": {"es": "MUJER"}, "parent": None},
    {"id": 3, "name": {"es": "ROPA INTERIOR"}, "parent": 1},
    {"id": 5, "name": {"es": "BOMBACHAS"}, "parent": 3},
    {"id": 7, "name": {"es": "HOMBRE"}, "parent": 0},
    {"id": 8, "name": {"es": "BOXERS"}, "parent": 7},
]


def tn_product(pid, name, brand="Bésame", category_id=5, variants=None):
    return {
        "id": pid,
        "name": {"es": name},
        "brand": brand,
        "published": True,
        "categories": [{"id": category_id}] if category_id is not None else [],
        "images": [{"src": f"https://cdn.example.com/{pid}.jpg"}],
        "variants": variants if variants is not None else [
            {"id": pid * 10, "sku": f"SKU-{pid}", "price": "1000.00", "stock": 5,
             "values": [{"es": "90"}, {"es": "Negro"}]},
        ],
    }


PRODUCTS = [
    tn_product(101, "Bombacha Encaje", variants=[
        {"id": 1011, "sku": "BE-85", "price": "1000", "stock": 3, "values": [{"es": "85"}, {"es": "Negro"}]},
        {"id": 1012, "sku": "BE-100", "price": "1000", "stock": 0, "values": [{"es": "100"}, {"es": "Rojo"}]},
    ]),
    tn_product(102, "Bombacha Algodón", brand="Cocot", variants=[
        {"id": 1021, "sku": "BA-90", "price": "800", "stock": 2, "values": [{"es": "90"}, {"es": "Blanco"}]},
    ]),
    tn_product(103, "Culotte Microfibra", variants=[
        {"id": 1031, "sku": "CM-XL", "price": "1200", "stock": 1, "values": [{"es": "XL"}, {"es": "Nude"}]},
    ]),
    tn_product(201, "Boxer Hombre Clásico", brand="Promise", category_id=8),
]


class FakeTiendanube:
    """Fuente remota en memoria con la misma interfaz que TiendanubeClient."""

    def __init__(self, products=None, categories=None, fail=False):
        self.products = PRODUCTS if products is None else products
        self.categories = CATEGORIES if categories is None else categories
        self.fail = fail
        self.calls = 0

    def get_all_products(self, only_published=True, sort_by=None):
        self.calls += 1
        if self.fail:
            from revendedoras.services.tiendanube_client import TiendanubeError
            raise TiendanubeError("TN API Error: 503 - Service Unavailable", status_code=503)
        return list(self.products)

    def get_all_categories(self):
        return list(self.categories)

    def get_best_selling_products(self, limit=50):
        return list(self.products)[:limit]

    def get_product(self, product_id):
        from revendedoras.services.tiendanube_client import TiendanubeError
        for p in self.products:
            if str(p["id"]) == str(product_id):
                return p
        raise TiendanubeError("TN API Error: 404 - Not Found", status_code=404)


@pytest.fixture
def fake_tn():
    return FakeTiendanube()
