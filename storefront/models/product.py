from typing import Optional, List
from datetime import datetime
from pydantic import BaseModel, ConfigDict, computed_field

class CategoryRef(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    id: str
    name: str
    slug: str


class Product(BaseModel):
    """Row of the remote products table"""
    model_config = ConfigDict(coerce_numbers_to_str=True)

    id: str

    # Basic Info
    name: str
    slug: str
    description: Optional[str] = None

    # Images
    images: List[str] = []

    # Pricing
    price: float

    # Inventory
    stock: int = 0

    # Catalog
    category_id: Optional[str] = None
    brand_id: Optional[str] = None
    category: Optional[CategoryRef] = None

    # Metadata
    is_published: bool = True
    is_featured: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @computed_field
    @property
    def image_url(self) -> Optional[str]:
        return self.images[0] if self.images else None

    @computed_field
    @property
    def in_stock(self) -> bool:
        return self.stock > 0


class StockUpdateResult(BaseModel):
    success: bool
    new_stock: Optional[int] = None
    error: Optional[str] = None
