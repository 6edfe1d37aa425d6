from datetime import datetime
from typing import List, Optional

from pydantic import Field, StrictInt

from schemas.common import CamelModel
from schemas.cart import MAX_CART_QUANTITY


class Address(CamelModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    company: Optional[str] = None
    street: Optional[str] = None
    street2: Optional[str] = None
    postal_code: Optional[str] = None
    city: Optional[str] = None
    country: str = "France"
    phone: Optional[str] = None


class OrderLineInput(CamelModel):
    product_id: int
    quantity: StrictInt = Field(ge=1, le=MAX_CART_QUANTITY)


# Input schema for creating a new order from an explicit line list
class OrderCreate(CamelModel):
    lines: List[OrderLineInput] = Field(default_factory=list)
    shipping_address: Address
    billing_address: Optional[Address] = None
    payment_mode: str = Field(default="CARD", pattern="^(CARD|TRANSFER|CHECK|CASH)$")
    notes: Optional[str] = Field(default=None, max_length=1000)


# Same as OrderCreate but the lines come from the user's cart
class OrderFromCart(CamelModel):
    shipping_address: Address
    billing_address: Optional[Address] = None
    payment_mode: str = Field(default="CARD", pattern="^(CARD|TRANSFER|CHECK|CASH)$")
    notes: Optional[str] = Field(default=None, max_length=1000)


class OrderLineOut(CamelModel):
    id: int
    product_id: Optional[int] = None
    product_name: str
    quantity: int
    unit_price_ht: float = Field(alias="unitPriceHT")
    tax_rate: float = Field(alias="tva")
    total_ht: float = Field(alias="totalHT")
    tax_amount: float
    total_ttc: float = Field(alias="totalTTC")


# Output schema representing the full order details
class OrderOut(CamelModel):
    id: int
    order_number: str
    user_id: Optional[int] = None
    status: str
    status_label: Optional[str] = None
    shipping_address: Address
    billing_address: Optional[Address] = None
    payment_mode: str
    subtotal_ht: float = Field(alias="subtotalHT")
    tax_total: float = Field(alias="totalTVA")
    shipping_fee: float
    total_ttc: float = Field(alias="totalTTC")
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    lines: List[OrderLineOut] = []
    possible_transitions: List[str] = []
    customer_email: Optional[str] = None
    customer_name: Optional[str] = None


# Schema for updating order status
class OrderStatusPatch(CamelModel):
    status: str = Field(pattern="^(EN_ATTENTE|CONFIRMEE|PAYEE|EN_PREPARATION|EXPEDIEE|LIVREE|ANNULEE)$")
    notes: Optional[str] = Field(default=None, max_length=1000)


class OrderStats(CamelModel):
    total_orders: int
    total_revenue: float
    average_basket: float
    by_status: dict
