import logging
from datetime import datetime, timezone
from storefront.models.product import StockUpdateResult
from storefront.services.backend import BackendClient, BackendError, eq
from storefront.services.cache import QueryCache, invalidate_product_queries

logger = logging.getLogger(__name__)

LOW_STOCK_THRESHOLD = 5


def stock_badge_variant(stock: int) -> str:
    """Badge variant for the admin product list"""
    if stock == 0:
        return "destructive"
    if stock <= LOW_STOCK_THRESHOLD:
        return "outline"
    return "secondary"


def stock_status(stock: int) -> str:
    if stock == 0:
        return "Rupture de stock"
    if stock <= LOW_STOCK_THRESHOLD:
        return f"Stock faible ({stock})"
    return f"{stock} en stock"


class StockService:
    """
    Manual stock adjustments from the back-office.

    Customer orders never come through here: the backend decrements stock
    itself when an order item is created.
    """

    def __init__(self, backend: BackendClient, cache: QueryCache):
        self.backend = backend
        self.cache = cache

    def update_stock(self, product_id: str, purchased_qty: int) -> StockUpdateResult:
        """Subtract purchased_qty from a product's stock, refusing to go below zero.

        The write only applies if stock still holds the value read, so two
        admins adjusting the same product cannot silently overwrite each other.
        """
        if purchased_qty < 0:
            return StockUpdateResult(success=False, error="Quantity must not be negative")

        try:
            rows = self.backend.select("products", "stock", {"id": eq(product_id)}, limit=1)
        except BackendError as e:
            return StockUpdateResult(success=False, error=e.message)
        if not rows:
            return StockUpdateResult(success=False, error="Product not found")

        current_stock = int(rows[0].get("stock") or 0)
        new_stock = current_stock - purchased_qty
        if new_stock < 0:
            return StockUpdateResult(success=False, error="Insufficient stock available")

        try:
            updated = self.backend.update(
                "products",
                {"stock": new_stock, "updated_at": datetime.now(timezone.utc).isoformat()},
                {"id": eq(product_id), "stock": eq(current_stock)},
            )
        except BackendError as e:
            return StockUpdateResult(success=False, error=e.message)
        if not updated:
            logger.warning(f"Stock of product {product_id} changed since it was read ({current_stock})")
            return StockUpdateResult(success=False, error="Stock was modified concurrently")

        invalidate_product_queries(self.cache)
        return StockUpdateResult(success=True, new_stock=new_stock)
