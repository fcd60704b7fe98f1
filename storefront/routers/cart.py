import re
import uuid
from typing import List, Optional
from fastapi import APIRouter, Depends, Header, HTTPException, Response
from sqlmodel import Session
from pydantic import BaseModel, Field
from storefront.core.config import settings
from storefront.db.session import get_session
from storefront.models.cart import CartLine
from storefront.services.backend import BackendClient, get_backend
from storefront.services.cache import QueryCache, get_query_cache
from storefront.services.cart import CartRepository, CartStore, open_cart
from storefront.services.catalog import CatalogService

router = APIRouter()

CART_ID_PATTERN = re.compile(r"^[A-Za-z0-9-]{8,64}$")

class CartItemCreate(BaseModel):
    product_id: str
    quantity: int = Field(default=1, ge=1)

class CartItemUpdate(BaseModel):
    quantity: int

class CartResponse(BaseModel):
    cart_id: str
    items: List[CartLine]
    item_count: int
    subtotal: float
    currency: str

def get_cart_id(response: Response, x_cart_id: Optional[str] = Header(None, alias="X-Cart-Id")) -> str:
    """Cart token sent by the shopper; a fresh one is issued when absent"""
    if x_cart_id and not CART_ID_PATTERN.match(x_cart_id):
        raise HTTPException(status_code=400, detail="Invalid cart id")
    cart_id = x_cart_id or uuid.uuid4().hex
    response.headers["X-Cart-Id"] = cart_id
    return cart_id

def get_cart_store(cart_id: str = Depends(get_cart_id), session: Session = Depends(get_session)) -> CartStore:
    return open_cart(CartRepository(session), cart_id)

def get_catalog_service(
    backend: BackendClient = Depends(get_backend),
    cache: QueryCache = Depends(get_query_cache),
) -> CatalogService:
    return CatalogService(backend, cache)

def cart_response(store: CartStore) -> CartResponse:
    return CartResponse(
        cart_id=store.cart_id,
        items=store.items,
        item_count=store.item_count,
        subtotal=store.subtotal,
        currency=settings.CURRENCY,
    )

@router.get("/", response_model=CartResponse)
def get_cart(store: CartStore = Depends(get_cart_store)):
    """Get the shopper's cart"""
    return cart_response(store)

@router.post("/add", response_model=CartResponse)
def add_to_cart(
    cart_item: CartItemCreate,
    store: CartStore = Depends(get_cart_store),
    catalog: CatalogService = Depends(get_catalog_service),
):
    """Add item to cart"""
    product = catalog.get_product_by_id(cart_item.product_id)
    if not product.is_published:
        raise HTTPException(status_code=404, detail="Produit introuvable")

    # Stock is only checked by the backend when the order is placed
    store.add_item(product.id, product.name, product.price, product.image_url, cart_item.quantity)
    return cart_response(store)

@router.put("/update/{product_id}", response_model=CartResponse)
def update_cart_item(
    product_id: str,
    cart_update: CartItemUpdate,
    store: CartStore = Depends(get_cart_store),
):
    """Update cart item quantity (0 removes it)"""
    store.update_quantity(product_id, cart_update.quantity)
    return cart_response(store)

@router.delete("/remove/{product_id}", response_model=CartResponse)
def remove_from_cart(product_id: str, store: CartStore = Depends(get_cart_store)):
    """Remove item from cart"""
    store.remove_item(product_id)
    return cart_response(store)

@router.delete("/clear", response_model=CartResponse)
def clear_cart(store: CartStore = Depends(get_cart_store)):
    """Clear entire cart"""
    store.clear()
    return cart_response(store)
