# Import all models; CartItem registers the local table with SQLModel
from storefront.models.cart import CartItem, CartLine
from storefront.models.product import Product, CategoryRef, StockUpdateResult
from storefront.models.coupon import Coupon, CouponForm, CouponValidationRow, AppliedCoupon, DiscountType
from storefront.models.order import (
    Order,
    OrderItem,
    OrderStatus,
    DeliveryMethod,
    CheckoutForm,
    CheckoutResult,
    CreatedOrder,
    FailedOrderItem,
    SubmissionState,
)

__all__ = [
    "CartItem",
    "CartLine",
    "Product",
    "CategoryRef",
    "StockUpdateResult",
    "Coupon",
    "CouponForm",
    "CouponValidationRow",
    "AppliedCoupon",
    "DiscountType",
    "Order",
    "OrderItem",
    "OrderStatus",
    "DeliveryMethod",
    "CheckoutForm",
    "CheckoutResult",
    "CreatedOrder",
    "FailedOrderItem",
    "SubmissionState",
]
