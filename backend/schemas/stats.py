from datetime import datetime
from typing import Optional

from pydantic import Field

from schemas.common import CamelModel


class DashboardStats(CamelModel):
    period: str
    revenue: float
    revenue_previous: float
    revenue_change: Optional[float] = None
    orders: int
    orders_previous: int
    average_basket: float
    new_clients: int
    total_clients: int
    active_products: int
    low_stock_products: int
    pending_orders: int


class DailyRevenue(CamelModel):
    date: str
    revenue: float
    orders: int


class TopProduct(CamelModel):
    product_id: Optional[int] = None
    product_name: str
    quantity_sold: int
    revenue: float


class TopCategory(CamelModel):
    category_id: Optional[int] = None
    category_name: str
    quantity_sold: int
    revenue: float


class RecentOrder(CamelModel):
    id: int
    order_number: str
    status: str
    total_ttc: float = Field(alias="totalTTC")
    created_at: Optional[datetime] = None
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None


class LowStockProduct(CamelModel):
    id: int
    reference: str
    name: str
    stock_quantity: int = Field(alias="stock")
    low_stock_threshold: int


class GlobalStats(CamelModel):
    orders_by_status: dict
    total_orders: int
    total_revenue: float
    total_clients: int
    business_clients: int
    individual_clients: int
    total_products: int
    active_products: int
    total_categories: int


class ClientStats(CamelModel):
    total: int
    active: int
    inactive: int
    business: int
    individual: int
    new_this_month: int


