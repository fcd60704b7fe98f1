from typing import Optional
from datetime import datetime, timezone
from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel
from pydantic import BaseModel, computed_field

def utc_now() -> datetime:
    return datetime.now(timezone.utc)

class CartItem(SQLModel, table=True):
    """Stored cart line, one row per product in a cart."""
    __table_args__ = (UniqueConstraint("cart_id", "product_id"),)

    id: Optional[int] = Field(default=None, primary_key=True)

    # References
    cart_id: str = Field(index=True)
    product_id: str

    # Snapshot shown to the shopper
    name: str
    price: float
    image: Optional[str] = None

    # Cart Details
    quantity: int = Field(default=1, ge=1)
    position: int = Field(default=0)

    # Timestamps
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


class CartLine(BaseModel):
    """In-memory cart line owned by a CartStore"""
    product_id: str
    name: str
    price: float
    quantity: int = 1
    image: Optional[str] = None

    @computed_field
    @property
    def total(self) -> float:
        return round(self.price * self.quantity, 2)
