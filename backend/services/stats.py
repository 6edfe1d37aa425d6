# backend/services/stats.py
from datetime import datetime, timedelta
from typing import List, Tuple

from models.order import OrderStatus
from repositories.category import CategoryRepository
from repositories.product import ProductRepository
from repositories.stats import StatsRepository
from repositories.user import UserRepository
from schemas.stats import (
    DailyRevenue, DashboardStats, GlobalStats, LowStockProduct, RecentOrder, TopCategory, TopProduct,
)
from utils.errors import ApiError
from utils.pricing import round_money

PERIODS = {"day": 1, "week": 7, "month": 30, "quarter": 90, "year": 365}


def period_bounds(period: str, now: datetime = None) -> Tuple[datetime, datetime, datetime]:
    """(previous period start, current period start, now) for a named period."""
    if period not in PERIODS:
        raise ApiError.bad_request(f"Période invalide: {period}. Valeurs possibles: {', '.join(PERIODS)}")
    now = now or datetime.now()
    length = timedelta(days=PERIODS[period])
    start = now - length
    return start - length, start, now


class StatsService:
    def __init__(self, stats: StatsRepository, users: UserRepository,
                 products: ProductRepository, categories: CategoryRepository):
        self.stats = stats
        self.users = users
        self.products = products
        self.categories = categories

    def get_dashboard(self, period: str = "month") -> DashboardStats:
        previous_start, start, _ = period_bounds(period)
        revenue, orders = self.stats.revenue_and_orders(start, None)
        previous_revenue, previous_orders = self.stats.revenue_and_orders(previous_start, start)
        change = None
        if previous_revenue:
            change = round_money((revenue - previous_revenue) / previous_revenue * 100)
        return DashboardStats(
            period=period,
            revenue=round_money(revenue),
            revenue_previous=round_money(previous_revenue),
            revenue_change=change,
            orders=orders,
            orders_previous=previous_orders,
            average_basket=round_money(revenue / orders) if orders else 0.0,
            new_clients=self.users.count_clients(since=start),
            total_clients=self.users.count_clients(),
            active_products=self.products.count(active_only=True),
            low_stock_products=len(self.products.find_low_stock()),
            pending_orders=self.stats.count_orders_with_status(OrderStatus.EN_ATTENTE.value),
        )

    def get_evolution(self, days: int = 30) -> List[DailyRevenue]:
        if not 1 <= days <= 365:
            raise ApiError.bad_request("Le nombre de jours doit être compris entre 1 et 365")
        start = (datetime.now() - timedelta(days=days - 1)).replace(hour=0, minute=0, second=0, microsecond=0)
        rows = {str(day): (revenue, count) for day, revenue, count in self.stats.daily_revenue(start)}
        out = []
        for i in range(days):
            day = (start + timedelta(days=i)).date().isoformat()
            revenue, count = rows.get(day, (0, 0))
            out.append(DailyRevenue(date=day, revenue=round_money(revenue), orders=int(count)))
        return out

    def get_top_products(self, limit: int = 10, period: str = None) -> List[TopProduct]:
        start = period_bounds(period)[1] if period else None
        return [
            TopProduct(product_id=pid, product_name=name, quantity_sold=int(qty or 0), revenue=round_money(rev))
            for pid, name, qty, rev in self.stats.top_products(limit, start)
        ]

    def get_top_categories(self, limit: int = 10, period: str = None) -> List[TopCategory]:
        start = period_bounds(period)[1] if period else None
        return [
            TopCategory(category_id=cid, category_name=name, quantity_sold=int(qty or 0), revenue=round_money(rev))
            for cid, name, qty, rev in self.stats.top_categories(limit, start)
        ]

    def get_recent_orders(self, limit: int = 10) -> List[RecentOrder]:
        out = []
        for order, user in self.stats.recent_orders(limit):
            out.append(RecentOrder(
                id=order.id,
                order_number=order.order_number,
                status=order.status,
                total_ttc=order.total_ttc,
                created_at=order.created_at,
                customer_name=" ".join(p for p in (user.first_name, user.last_name) if p) if user else None,
                customer_email=user.email if user else None,
            ))
        return out

    def get_low_stock(self, limit: int = 20) -> List[LowStockProduct]:
        return [LowStockProduct.model_validate(p) for p in self.products.find_low_stock(limit)]

    def get_global(self) -> GlobalStats:
        by_status = self.stats.orders_by_status()
        revenue, orders = self.stats.revenue_and_orders()
        return GlobalStats(
            orders_by_status={s.value: by_status.get(s.value, 0) for s in OrderStatus},
            total_orders=orders,
            total_revenue=round_money(revenue),
            total_clients=self.users.count_clients(),
            business_clients=self.users.count_clients(client_type="BUSINESS"),
            individual_clients=self.users.count_clients(client_type="INDIVIDUAL"),
            total_products=self.products.count(),
            active_products=self.products.count(active_only=True),
            total_categories=self.categories.count(),
        )
