from datetime import datetime
from typing import List, Optional

from pydantic import Field, StrictInt

from schemas.common import CamelModel

MAX_CART_QUANTITY = 9999


# Request schema for adding an item to the cart
class CartAddItem(CamelModel):
    product_id: int
    quantity: StrictInt = Field(default=1, ge=1, le=MAX_CART_QUANTITY)


# Request schema for updating cart item quantity
class CartUpdateItem(CamelModel):
    quantity: StrictInt = Field(ge=1, le=MAX_CART_QUANTITY)


# A cart line joined with live product data
class CartItemOut(CamelModel):
    id: int
    product_id: int
    quantity: int
    unit_price: float
    added_at: Optional[datetime] = None
    name: str
    reference: str
    slug: str
    image_url: Optional[str] = None
    unit: str
    price: float
    promo_price: Optional[float] = None
    effective_price: float
    is_on_sale: bool
    tax_rate: float = Field(alias="tva")
    stock: int
    is_active: bool
    subtotal: float
    tva_amount: float
    total: float


class CartSummary(CamelModel):
    item_count: int = 0
    total_quantity: int = 0
    subtotal_ht: float = Field(default=0.0, alias="subtotalHT")
    total_tva: float = Field(default=0.0, alias="totalTVA")
    total_ttc: float = Field(default=0.0, alias="totalTTC")


class CartIssue(CamelModel):
    type: str
    message: str
    item_id: Optional[int] = None
    product_id: Optional[int] = None
    product_name: Optional[str] = None
    available: Optional[int] = None
    requested: Optional[int] = None


# Response schema for the entire cart
class CartOut(CamelModel):
    id: int
    user_id: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    items: List[CartItemOut] = []
    summary: CartSummary
    warnings: Optional[List[CartIssue]] = None


class CartItemResult(CamelModel):
    item: Optional[CartItemOut] = None
    cart: CartOut


class CartCount(CamelModel):
    count: int
    display_count: str


class CartValidation(CamelModel):
    is_valid: bool
    errors: List[CartIssue]
    warnings: List[CartIssue]
    cart: Optional[CartOut] = None


class CartChange(CamelModel):
    type: str
    product_name: str
    reason: str
    old_quantity: Optional[int] = None
    new_quantity: Optional[int] = None


class CartFixResult(CamelModel):
    cart: Optional[CartOut] = None
    changes: List[CartChange]
