from fastapi import APIRouter, Depends
from pydantic import BaseModel
from storefront.models.coupon import AppliedCoupon
from storefront.routers.cart import get_cart_store
from storefront.services.backend import BackendClient, get_backend
from storefront.services.cart import CartStore
from storefront.services.coupon import CouponValidator

router = APIRouter()

class CouponApply(BaseModel):
    code: str

class CouponPreview(BaseModel):
    coupon: AppliedCoupon
    subtotal: float
    total: float

def get_coupon_validator(backend: BackendClient = Depends(get_backend)) -> CouponValidator:
    return CouponValidator(backend)

@router.post("/validate", response_model=CouponPreview)
def validate_coupon(
    data: CouponApply,
    store: CartStore = Depends(get_cart_store),
    validator: CouponValidator = Depends(get_coupon_validator),
):
    """Check a code against the current cart subtotal"""
    subtotal = store.subtotal
    coupon = validator.validate(data.code, subtotal)
    return CouponPreview(
        coupon=coupon,
        subtotal=subtotal,
        total=round(max(0.0, subtotal - coupon.discount_amount), 2),
    )
