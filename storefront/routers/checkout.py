from typing import List, Optional
from fastapi import APIRouter, Depends
from pydantic import BaseModel
from storefront.core.config import settings
from storefront.models.order import CheckoutForm
from storefront.routers.cart import get_cart_store
from storefront.routers.settings import get_shop_settings_service
from storefront.services.backend import BackendClient, get_backend
from storefront.services.cache import QueryCache, get_query_cache
from storefront.services.cart import CartStore
from storefront.services.order import OrderSubmitter
from storefront.services.shop_settings import ShopSettingsService

router = APIRouter()

NEXT_STEPS = [
    "Notre équipe va examiner votre commande et vous contacter pour confirmer les détails.",
    "Nous vous informerons quand votre commande sera prête (retrait) ou expédiée (livraison).",
    "Le paiement se fait à la réception de votre commande.",
]

class CheckoutResponse(BaseModel):
    order_number: str
    confirmation_url: str
    subtotal: float
    discount_amount: float
    delivery_fee: float
    total: float
    coupon_code: Optional[str] = None
    currency: str

class Confirmation(BaseModel):
    order_number: str
    message: str
    next_steps: List[str]

def get_order_submitter(
    store: CartStore = Depends(get_cart_store),
    backend: BackendClient = Depends(get_backend),
    shop_settings: ShopSettingsService = Depends(get_shop_settings_service),
    cache: QueryCache = Depends(get_query_cache),
) -> OrderSubmitter:
    return OrderSubmitter(backend, store, shop_settings, cache)

@router.post("/", response_model=CheckoutResponse)
def place_order(form: CheckoutForm, submitter: OrderSubmitter = Depends(get_order_submitter)):
    """Create the order from the shopper's cart"""
    result = submitter.submit(form)
    return CheckoutResponse(
        order_number=result.order_number,
        confirmation_url=f"{settings.SITE_URL.rstrip('/')}/confirmation/{result.order_number}",
        subtotal=result.subtotal,
        discount_amount=result.discount_amount,
        delivery_fee=result.delivery_fee,
        total=result.total,
        coupon_code=result.coupon.code if result.coupon else None,
        currency=settings.CURRENCY,
    )

@router.get("/confirmation/{order_number}", response_model=Confirmation)
def confirmation(order_number: str):
    # The number is displayed as given, no lookup
    return Confirmation(
        order_number=order_number,
        message="Merci pour votre commande. Nous avons bien reçu votre demande.",
        next_steps=NEXT_STEPS,
    )
