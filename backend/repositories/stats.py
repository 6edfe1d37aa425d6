# backend/repositories/stats.py
from datetime import datetime
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from models.category import Category
from models.order import Order, OrderLine, OrderStatus
from models.product import Product
from models.users import User

NOT_CANCELLED = Order.status != OrderStatus.ANNULEE.value


class StatsRepository:
    def __init__(self, db: Session):
        self.db = db

    def _period(self, query, start: Optional[datetime], end: Optional[datetime]):
        if start is not None:
            query = query.filter(Order.created_at >= start)
        if end is not None:
            query = query.filter(Order.created_at < end)
        return query

    def revenue_and_orders(self, start: Optional[datetime] = None, end: Optional[datetime] = None):
        query = self.db.query(func.coalesce(func.sum(Order.total_ttc), 0), func.count(Order.id)).filter(NOT_CANCELLED)
        revenue, count = self._period(query, start, end).one()
        return float(revenue or 0), int(count or 0)

    def count_orders_with_status(self, status: str) -> int:
        return self.db.query(Order).filter(Order.status == status).count()

    def orders_by_status(self) -> dict:
        rows = self.db.query(Order.status, func.count(Order.id)).group_by(Order.status).all()
        return {status: count for status, count in rows}

    def daily_revenue(self, start: datetime, end: Optional[datetime] = None) -> List[tuple]:
        day = func.date(Order.created_at)
        query = (
            self.db.query(day.label("day"), func.coalesce(func.sum(Order.total_ttc), 0), func.count(Order.id))
            .filter(NOT_CANCELLED)
        )
        query = self._period(query, start, end)
        return query.group_by(day).order_by(day.asc()).all()

    def top_products(self, limit: int = 10, start: Optional[datetime] = None) -> List[tuple]:
        quantity = func.sum(OrderLine.quantity)
        query = (
            self.db.query(
                OrderLine.product_id,
                OrderLine.product_name,
                quantity.label("quantity_sold"),
                func.coalesce(func.sum(OrderLine.total_ttc), 0).label("revenue"),
            )
            .join(Order, Order.id == OrderLine.order_id)
            .filter(NOT_CANCELLED)
        )
        query = self._period(query, start, None)
        return (
            query.group_by(OrderLine.product_id, OrderLine.product_name)
            .order_by(quantity.desc())
            .limit(limit)
            .all()
        )

    def top_categories(self, limit: int = 10, start: Optional[datetime] = None) -> List[tuple]:
        revenue = func.coalesce(func.sum(OrderLine.total_ttc), 0)
        query = (
            self.db.query(
                Category.id,
                Category.name,
                func.sum(OrderLine.quantity).label("quantity_sold"),
                revenue.label("revenue"),
            )
            .select_from(OrderLine)
            .join(Order, Order.id == OrderLine.order_id)
            .join(Product, Product.id == OrderLine.product_id)
            .join(Category, Category.id == Product.category_id)
            .filter(NOT_CANCELLED)
        )
        query = self._period(query, start, None)
        return (
            query.group_by(Category.id, Category.name)
            .order_by(revenue.desc())
            .limit(limit)
            .all()
        )

    def recent_orders(self, limit: int = 10) -> List[tuple]:
        return (
            self.db.query(Order, User)
            .outerjoin(User, User.id == Order.user_id)
            .order_by(Order.created_at.desc(), Order.id.desc())
            .limit(limit)
            .all()
        )
