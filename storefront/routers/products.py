from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException
from storefront.models.product import Product
from storefront.routers.cart import get_catalog_service
from storefront.services.catalog import CatalogService

router = APIRouter()

@router.get("/", response_model=List[Product])
def read_products(category: Optional[str] = None, catalog: CatalogService = Depends(get_catalog_service)):
    return catalog.list_products(category)

@router.get("/{slug}", response_model=Product)
def read_product(slug: str, catalog: CatalogService = Depends(get_catalog_service)):
    product = catalog.get_product(slug)
    if not product.is_published:
        raise HTTPException(status_code=404, detail="Produit introuvable")
    return product
