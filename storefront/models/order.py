from typing import List, Optional
from datetime import datetime
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field
from storefront.models.coupon import AppliedCoupon

PHONE_PATTERN = r"^[+]?[0-9\s-]*[0-9][0-9\s-]*$"

class DeliveryMethod(str, Enum):
    PICKUP = "pickup"
    DELIVERY = "delivery"

class OrderStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"

class SubmissionState(str, Enum):
    IDLE = "idle"
    SUBMITTING = "submitting"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class CheckoutForm(BaseModel):
    """Shopper details. Fields are trimmed before the length and format checks."""
    model_config = ConfigDict(str_strip_whitespace=True)

    customer_name: str = Field(min_length=2, max_length=100)
    customer_phone: str = Field(min_length=8, max_length=20, pattern=PHONE_PATTERN)
    customer_address: Optional[str] = None
    delivery_method: DeliveryMethod = DeliveryMethod.PICKUP
    notes: Optional[str] = Field(default=None, max_length=500)
    coupon_code: Optional[str] = None

    @property
    def missing_address(self) -> bool:
        return self.delivery_method == DeliveryMethod.DELIVERY and not (self.customer_address or "").strip()

    @property
    def order_address(self) -> Optional[str]:
        # Pickup orders never carry an address
        if self.delivery_method == DeliveryMethod.PICKUP:
            return None
        return (self.customer_address or "").strip() or None

    @property
    def order_notes(self) -> Optional[str]:
        return (self.notes or "").strip() or None


class CreatedOrder(BaseModel):
    """Row returned by the create_order procedure"""
    model_config = ConfigDict(coerce_numbers_to_str=True)

    id: str
    order_number: str


class OrderItem(BaseModel):
    """Line of the remote order_items table"""
    model_config = ConfigDict(coerce_numbers_to_str=True)

    id: Optional[str] = None
    order_id: str
    product_id: Optional[str] = None  # null for deleted or custom products
    product_name: str
    quantity: int
    price_at_purchase: float


class Order(BaseModel):
    """Row of the remote orders table"""
    model_config = ConfigDict(coerce_numbers_to_str=True)

    id: str
    order_number: str
    customer_name: str
    customer_phone: str
    customer_address: Optional[str] = None
    delivery_method: DeliveryMethod
    notes: Optional[str] = None
    total: float
    coupon_code: Optional[str] = None
    discount_amount: float = 0.0
    status: OrderStatus = OrderStatus.PENDING
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    items: List[OrderItem] = []


class FailedOrderItem(BaseModel):
    product_id: Optional[str]
    product_name: str
    error: str


class CheckoutResult(BaseModel):
    state: SubmissionState
    order_id: str
    order_number: str
    subtotal: float
    discount_amount: float = 0.0
    delivery_fee: float = 0.0
    total: float
    coupon: Optional[AppliedCoupon] = None
    failed_items: List[FailedOrderItem] = []
