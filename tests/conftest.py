from typing import Any, Callable, Dict, List, Optional

import pytest
from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, Session, create_engine

import storefront.models  # noqa: F401  registers the cart table
from storefront.core.config import settings
from storefront.db.session import get_session
from storefront.main import app
from storefront.services.backend import BackendError, get_backend
from storefront.services.cache import QueryCache, get_query_cache
from storefront.services.cart import CartRepository, open_cart


def _matches(row: dict, filters: Optional[Dict[str, str]]) -> bool:
    for key, condition in (filters or {}).items():
        op, _, expected = condition.partition(".")
        assert op == "eq", f"unsupported filter {condition}"
        if str(row.get(key)).lower() != expected.lower():
            return False
    return True


class FakeBackend:
    """In-memory stand-in for BackendClient that records every call"""

    def __init__(self):
        self.tables: Dict[str, List[dict]] = {
            "products": [],
            "categories": [],
            "settings": [],
            "orders": [],
            "order_items": [],
            "coupons": [],
            "user_roles": [],
        }
        self.rpc_handlers: Dict[str, Any] = {}
        self.calls: List[tuple] = []
        self.failing_tables: set = set()
        self.access_token: Optional[str] = None

    def with_token(self, access_token: str) -> "FakeBackend":
        self.access_token = access_token
        return self

    def rpc_calls(self, function: str) -> List[dict]:
        return [payload for kind, name, payload in self.calls if kind == "rpc" and name == function]

    def table_calls(self, kind: str, table: str) -> List[Any]:
        return [payload for k, name, payload in self.calls if k == kind and name == table]

    def _check(self, kind: str, table: str) -> None:
        if table in self.failing_tables:
            raise BackendError(f"{kind} on {table} failed", 503)

    def rpc(self, function: str, params: Optional[dict] = None) -> Any:
        self.calls.append(("rpc", function, params))
        if function not in self.rpc_handlers:
            raise BackendError(f"RPC function {function} not mocked", 404)
        handler = self.rpc_handlers[function]
        if callable(handler):
            return handler(params)
        return handler

    def select(self, table, columns="*", filters=None, order=None, limit=None) -> List[dict]:
        self.calls.append(("select", table, filters))
        self._check("select", table)
        rows = [dict(row) for row in self.tables.get(table, []) if _matches(row, filters)]
        if order:
            column, _, direction = order.partition(".")
            rows.sort(key=lambda row: str(row.get(column) or ""), reverse=direction == "desc")
        if limit is not None:
            rows = rows[:limit]
        return rows

    def insert(self, table, values) -> List[dict]:
        self.calls.append(("insert", table, values))
        self._check("insert", table)
        row = dict(values)
        row.setdefault("id", f"{table}-{len(self.tables[table]) + 1}")
        self.tables[table].append(row)
        return [dict(row)]

    def update(self, table, values, filters) -> List[dict]:
        self.calls.append(("update", table, (values, filters)))
        self._check("update", table)
        updated = []
        for row in self.tables.get(table, []):
            if _matches(row, filters):
                row.update(values)
                updated.append(dict(row))
        return updated

    def delete(self, table, filters) -> List[dict]:
        self.calls.append(("delete", table, filters))
        self._check("delete", table)
        removed = [row for row in self.tables.get(table, []) if _matches(row, filters)]
        self.tables[table] = [row for row in self.tables.get(table, []) if not _matches(row, filters)]
        return removed


def validate_coupon_rpc(params: dict) -> List[dict]:
    """PROMO10 is 10% off, FIXE20 is 20 off, everything else is expired"""
    total = params["p_order_total"]
    if params["p_coupon_code"] == "PROMO10":
        return [{"valid": True, "discount_type": "percentage", "discount_value": 10, "discount_amount": round(total * 0.10, 2)}]
    if params["p_coupon_code"] == "FIXE20":
        return [{"valid": True, "discount_type": "fixed", "discount_value": 20, "discount_amount": 20}]
    return [{"valid": False, "message": "Ce code promo a expiré"}]


PRODUCTS = [
    {
        "id": "prod-aviator",
        "name": "Ray-Ban Aviator Classic",
        "slug": "ray-ban-aviator-classic",
        "description": "Lunettes de soleil aviateur",
        "price": 50.0,
        "stock": 10,
        "images": ["https://cdn.example.com/aviator.jpg"],
        "category_id": "cat-solaire",
        "is_published": True,
        "is_featured": True,
        "created_at": "2024-03-02T10:00:00+00:00",
    },
    {
        "id": "prod-wayfarer",
        "name": "Wayfarer Optique",
        "slug": "wayfarer-optique",
        "price": 35.5,
        "stock": 3,
        "images": [],
        "category_id": "cat-optique",
        "is_published": True,
        "created_at": "2024-03-01T10:00:00+00:00",
    },
    {
        "id": "prod-draft",
        "name": "Monture brouillon",
        "slug": "monture-brouillon",
        "price": 20.0,
        "stock": 0,
        "images": [],
        "is_published": False,
        "created_at": "2024-02-01T10:00:00+00:00",
    },
]


@pytest.fixture
def fake_backend() -> FakeBackend:
    backend = FakeBackend()
    backend.tables["products"] = [dict(product) for product in PRODUCTS]
    backend.tables["categories"] = [
        {"id": "cat-solaire", "name": "Solaire", "slug": "solaire"},
        {"id": "cat-optique", "name": "Optique", "slug": "optique"},
    ]
    backend.tables["settings"] = [
        {"key": "delivery_price", "value": "7.00"},
        {"key": "shop_phone", "value": "+216 00 000 000"},
    ]
    backend.tables["user_roles"] = [{"user_id": "admin-1", "role": "admin"}]
    backend.rpc_handlers.update({
        "validate_coupon": validate_coupon_rpc,
        "create_order": [{"id": "order-123", "order_number": "ORD-001"}],
        "create_order_item": None,
        "increment_coupon_usage": None,
    })
    return backend


@pytest.fixture
def cache() -> QueryCache:
    return QueryCache()


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def make_cart(session) -> Callable:
    def factory(cart_id: str = "cart-test-0001"):
        return open_cart(CartRepository(session), cart_id)
    return factory


@pytest.fixture
def client(engine, fake_backend, cache):
    def override_session():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_session] = override_session
    app.dependency_overrides[get_backend] = lambda: fake_backend
    app.dependency_overrides[get_query_cache] = lambda: cache
    yield TestClient(app)
    app.dependency_overrides.clear()


def bearer(user_id: str, role: str = "authenticated") -> Dict[str, str]:
    token = jwt.encode(
        {"sub": user_id, "email": f"{user_id}@optique.tn", "role": role},
        settings.SUPABASE_JWT_SECRET,
        algorithm=settings.ALGORITHM,
    )
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers() -> Dict[str, str]:
    return bearer("admin-1")


@pytest.fixture
def shopper_headers() -> Dict[str, str]:
    """Signed in, but without an admin row in user_roles"""
    return bearer("shopper-42")
