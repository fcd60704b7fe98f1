import pytest

from storefront.services.stock import StockService, stock_badge_variant, stock_status


@pytest.fixture
def service(fake_backend, cache):
    return StockService(fake_backend, cache)


def stock_of(fake_backend, product_id):
    return next(row["stock"] for row in fake_backend.tables["products"] if row["id"] == product_id)


def test_decrement_with_enough_stock(service, fake_backend):
    result = service.update_stock("prod-aviator", 3)

    assert result.success is True
    assert result.new_stock == 7
    assert result.error is None
    assert stock_of(fake_backend, "prod-aviator") == 7


def test_stock_can_reach_zero(service, fake_backend):
    result = service.update_stock("prod-wayfarer", 3)

    assert result.success is True
    assert result.new_stock == 0


def test_refuses_to_go_negative(service, fake_backend):
    result = service.update_stock("prod-wayfarer", 5)

    assert result.success is False
    assert result.error == "Insufficient stock available"
    assert stock_of(fake_backend, "prod-wayfarer") == 3
    assert fake_backend.table_calls("update", "products") == []


def test_unknown_product(service):
    result = service.update_stock("invalid-id", 1)

    assert result.success is False
    assert result.error == "Product not found"


def test_write_is_guarded_by_the_value_read(service, fake_backend):
    service.update_stock("prod-aviator", 1)

    values, filters = fake_backend.table_calls("update", "products")[0]
    assert values["stock"] == 9
    assert values["updated_at"].endswith("+00:00")
    assert filters == {"id": "eq.prod-aviator", "stock": "eq.10"}


def test_concurrent_change_is_reported(service, fake_backend):
    original_select = fake_backend.select

    def select_then_someone_else_writes(table, *args, **kwargs):
        rows = original_select(table, *args, **kwargs)
        # Another admin saves between our read and our write
        fake_backend.tables["products"][0]["stock"] = 4
        return rows

    fake_backend.select = select_then_someone_else_writes

    result = service.update_stock("prod-aviator", 2)

    assert result.success is False
    assert result.error == "Stock was modified concurrently"
    assert stock_of(fake_backend, "prod-aviator") == 4


def test_successful_update_invalidates_product_views(service, cache):
    cache.get_or_fetch(("admin-products",), lambda: ["stale"])
    cache.get_or_fetch(("product", "ray-ban-aviator-classic"), lambda: "stale")
    cache.get_or_fetch(("settings",), lambda: {"delivery_price": "7"})

    service.update_stock("prod-aviator", 1)

    assert ("admin-products",) not in cache
    assert ("product", "ray-ban-aviator-classic") not in cache
    assert ("settings",) in cache


@pytest.mark.parametrize("stock, variant", [(0, "destructive"), (1, "outline"), (5, "outline"), (6, "secondary"), (100, "secondary")])
def test_badge_variant(stock, variant):
    assert stock_badge_variant(stock) == variant


def test_status_text():
    assert stock_status(0) == "Rupture de stock"
    assert stock_status(3) == "Stock faible (3)"
    assert stock_status(12) == "12 en stock"
