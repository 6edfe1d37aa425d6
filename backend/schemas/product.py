# backend/schemas/product.py
from datetime import datetime
from typing import List, Optional

from pydantic import Field

from schemas.common import CamelModel


# Shared base attributes for product entities
class ProductBase(CamelModel):
    reference: str = Field(min_length=1, max_length=50)
    name: str = Field(min_length=1, max_length=255)
    slug: Optional[str] = None
    description: Optional[str] = None
    price: float = Field(ge=0)
    promo_price: Optional[float] = Field(default=None, ge=0)
    tax_rate: float = Field(default=20.0, ge=0, le=100, alias="tva")
    unit: str = "pièce"
    stock_quantity: int = Field(default=0, ge=0, alias="stock")
    low_stock_threshold: int = Field(default=10, ge=0)
    image_url: Optional[str] = None
    labels: List[str] = Field(default_factory=list)
    origin: Optional[str] = None
    is_active: bool = True
    is_featured: bool = False
    category_id: Optional[int] = None


# Schema for creating a new product
class ProductCreate(ProductBase):
    pass


# Schema for partial product updates
class ProductUpdate(CamelModel):
    reference: Optional[str] = Field(default=None, min_length=1, max_length=50)
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    slug: Optional[str] = None
    description: Optional[str] = None
    price: Optional[float] = Field(default=None, ge=0)
    promo_price: Optional[float] = Field(default=None, ge=0)
    tax_rate: Optional[float] = Field(default=None, ge=0, le=100, alias="tva")
    unit: Optional[str] = None
    stock_quantity: Optional[int] = Field(default=None, ge=0, alias="stock")
    low_stock_threshold: Optional[int] = Field(default=None, ge=0)
    image_url: Optional[str] = None
    labels: Optional[List[str]] = None
    origin: Optional[str] = None
    is_active: Optional[bool] = None
    is_featured: Optional[bool] = None
    category_id: Optional[int] = None


class StockUpdate(CamelModel):
    quantity: int
    operation: str = Field(default="set", pattern="^(set|add|subtract)$")


# Full product representation
class ProductOut(CamelModel):
    id: int
    reference: str
    name: str
    slug: str
    description: Optional[str] = None
    price: float
    promo_price: Optional[float] = None
    effective_price: float
    is_on_sale: bool
    tax_rate: float = Field(alias="tva")
    unit: str
    stock_quantity: int = Field(alias="stock")
    low_stock_threshold: int
    image_url: Optional[str] = None
    labels: Optional[List[str]] = None
    origin: Optional[str] = None
    is_active: bool
    is_featured: bool
    category_id: Optional[int] = None
    category_name: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
