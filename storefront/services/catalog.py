from typing import List, Optional
from fastapi import HTTPException
from pydantic import ValidationError
from storefront.models.product import Product
from storefront.services.backend import BackendClient, BackendError, eq
from storefront.services.cache import QueryCache

PRODUCT_COLUMNS = "*, category:categories(id, name, slug)"

class CatalogService:
    def __init__(self, backend: BackendClient, cache: QueryCache):
        self.backend = backend
        self.cache = cache

    def _parse(self, rows: List[dict]) -> List[Product]:
        try:
            return [Product.model_validate(row) for row in rows]
        except ValidationError as e:
            raise BackendError(f"Unexpected product payload: {e}") from e

    def list_products(self, category_slug: Optional[str] = None) -> List[Product]:
        """Published products, newest first, optionally restricted to a category"""
        def fetch():
            filters = {"is_published": eq("true")}
            if category_slug:
                categories = self.backend.select("categories", "id", {"slug": eq(category_slug)}, limit=1)
                if categories:
                    filters["category_id"] = eq(categories[0]["id"])
            rows = self.backend.select("products", PRODUCT_COLUMNS, filters, order="created_at.desc")
            return self._parse(rows)

        return self._read(("products", category_slug), fetch)

    def get_product(self, slug: str) -> Product:
        def fetch():
            rows = self.backend.select("products", PRODUCT_COLUMNS, {"slug": eq(slug)}, limit=1)
            return self._parse(rows)[0] if rows else None

        product = self._read(("product", slug), fetch)
        if not product:
            raise HTTPException(status_code=404, detail="Produit introuvable")
        return product

    def get_product_by_id(self, product_id: str) -> Product:
        def fetch():
            rows = self.backend.select("products", PRODUCT_COLUMNS, {"id": eq(product_id)}, limit=1)
            return self._parse(rows)[0] if rows else None

        product = self._read(("product", f"id:{product_id}"), fetch)
        if not product:
            raise HTTPException(status_code=404, detail="Produit introuvable")
        return product

    def list_admin_products(self) -> List[Product]:
        """Every product, published or not"""
        def fetch():
            rows = self.backend.select("products", PRODUCT_COLUMNS, order="created_at.desc")
            return self._parse(rows)

        return self._read(("admin-products",), fetch)

    def _read(self, key, fetch):
        try:
            return self.cache.get_or_fetch(key, fetch)
        except BackendError:
            raise HTTPException(status_code=502, detail="Impossible de charger le catalogue")
