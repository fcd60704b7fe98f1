from typing import Optional
from datetime import datetime
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field, field_validator

class DiscountType(str, Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


class CouponValidationRow(BaseModel):
    """One row returned by the validate_coupon procedure"""
    valid: bool
    discount_type: Optional[DiscountType] = None
    discount_value: Optional[float] = None
    discount_amount: Optional[float] = None
    message: Optional[str] = None


class AppliedCoupon(BaseModel):
    """Discount accepted for the current checkout attempt"""
    code: str
    discount_type: DiscountType
    discount_value: float  # Percentage (0-100) or fixed amount
    discount_amount: float  # Server-computed against the subtotal


class Coupon(BaseModel):
    """Row of the remote coupons table"""
    model_config = ConfigDict(coerce_numbers_to_str=True)

    id: str
    code: str
    description: Optional[str] = None

    # Discount
    discount_type: DiscountType = DiscountType.PERCENTAGE
    discount_value: float

    # Usage Limits
    min_order_amount: float = 0.0
    max_uses: Optional[int] = None  # null = unlimited
    used_count: int = 0

    # Validity
    is_active: bool = True
    valid_from: Optional[datetime] = None
    valid_until: Optional[datetime] = None

    created_at: Optional[datetime] = None


class CouponForm(BaseModel):
    """Admin create/update payload"""
    code: str = Field(min_length=3, max_length=20)
    description: Optional[str] = Field(default=None, max_length=200)
    discount_type: DiscountType = DiscountType.PERCENTAGE
    discount_value: float = Field(gt=0)
    min_order_amount: float = Field(default=0.0, ge=0)
    max_uses: Optional[int] = Field(default=None, gt=0)
    valid_until: Optional[datetime] = None

    @field_validator("code")
    @classmethod
    def normalize_code(cls, value: str) -> str:
        return value.strip().upper()

    @field_validator("description")
    @classmethod
    def blank_to_none(cls, value: Optional[str]) -> Optional[str]:
        return value or None
