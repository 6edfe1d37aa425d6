# backend/repositories/order.py
import logging
from datetime import datetime, date, timedelta
from typing import List, Optional, Tuple

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session, joinedload

from database import supports_sequences, transaction
from models.order import Order, OrderLine, OrderStatus, order_number_seq
from models.product import Product
from models.users import User
from utils.errors import ApiError

logger = logging.getLogger(__name__)

ORDER_NUMBER_PREFIX = "CMD"

SORT_MAP = {
    "createdAt": Order.created_at,
    "created_at": Order.created_at,
    "total": Order.total_ttc,
    "totalTTC": Order.total_ttc,
    "status": Order.status,
    "number": Order.order_number,
    "orderNumber": Order.order_number,
}


class OrderRepository:
    def __init__(self, db: Session):
        self.db = db

    def _base_query(self):
        return self.db.query(Order).options(joinedload(Order.lines), joinedload(Order.user))

    def next_order_number(self, now: Optional[datetime] = None) -> str:
        """CMD-<YYYYMMDD>-<NNNN>: date from the wall clock, counter from the global sequence."""
        now = now or datetime.now()
        day = now.strftime("%Y%m%d")
        if supports_sequences(self.db):
            counter = self.db.execute(select(order_number_seq.next_value())).scalar_one()
        else:
            # No sequence support: today's order count + 1
            counter = (
                self.db.query(func.count(Order.id))
                .filter(Order.order_number.like(f"{ORDER_NUMBER_PREFIX}-{day}-%"))
                .scalar()
            ) + 1
        return f"{ORDER_NUMBER_PREFIX}-{day}-{counter:04d}"

    def create_with_lines(self, *, user_id: Optional[int], order_data: dict, lines: List[dict]) -> Order:
        """Insert the order and its frozen lines and decrement stock, all in one transaction.

        `lines` carry product_id, product_name, quantity, unit_price_ht, tax_rate,
        total_ht, tax_amount and total_ttc. Stock is re-checked under row locks.
        """
        with transaction(self.db):
            products = self._lock_products(line["product_id"] for line in lines)
            for line in lines:
                product = products.get(line["product_id"])
                if product is None:
                    raise ApiError.not_found(f"Produit {line['product_id']} non trouvé")
                if line["quantity"] > product.stock_quantity:
                    raise ApiError.bad_request(
                        f"Stock insuffisant pour \"{product.name}\" (disponible: {product.stock_quantity})"
                    )

            order = Order(
                order_number=self.next_order_number(),
                user_id=user_id,
                status=OrderStatus.EN_ATTENTE.value,
                **order_data,
            )
            for line in lines:
                order.lines.append(OrderLine(**line))
            self.db.add(order)

            for line in lines:
                product = products[line["product_id"]]
                product.stock_quantity = max(0, product.stock_quantity - line["quantity"])

            self.db.flush()
            order_id = order.id
        logger.info(f"Order {order.order_number} created for user {user_id}")
        return self.find_by_id(order_id)

    def _lock_products(self, product_ids) -> dict:
        # Row locks taken in id order
        ids = sorted(set(product_ids))
        rows = (
            self.db.query(Product)
            .filter(Product.id.in_(ids))
            .order_by(Product.id.asc())
            .with_for_update()
            .all()
        )
        return {p.id: p for p in rows}

    def cancel_and_restore_stock(self, order: Order) -> Order:
        # Each line's quantity goes back to its product, then the order is cancelled
        with transaction(self.db):
            products = self._lock_products(l.product_id for l in order.lines if l.product_id is not None)
            for line in order.lines:
                product = products.get(line.product_id)
                if product is not None:
                    product.stock_quantity = product.stock_quantity + line.quantity
            order.status = OrderStatus.ANNULEE.value
            order.updated_at = func.now()
        return self.find_by_id(order.id)

    def update_status(self, order: Order, status: str, notes: Optional[str] = None) -> Order:
        with transaction(self.db):
            order.status = status
            if notes is not None:
                order.notes = notes
            order.updated_at = func.now()
        return self.find_by_id(order.id)

    def find_by_id(self, order_id: int) -> Optional[Order]:
        return self._base_query().filter(Order.id == order_id).first()

    def find_by_number(self, order_number: str) -> Optional[Order]:
        return self._base_query().filter(Order.order_number == order_number).first()

    def find_all(
        self,
        *,
        page: int = 1,
        limit: int = 20,
        user_id: Optional[int] = None,
        status: Optional[str] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        search: Optional[str] = None,
        sort_by: str = "createdAt",
        sort_dir: str = "desc",
    ) -> Tuple[List[Order], int]:
        query = self.db.query(Order)

        if user_id is not None:
            query = query.filter(Order.user_id == user_id)
        if status:
            query = query.filter(Order.status == status)
        if date_from:
            query = query.filter(Order.created_at >= datetime.combine(date_from, datetime.min.time()))
        if date_to:
            query = query.filter(Order.created_at < datetime.combine(date_to + timedelta(days=1), datetime.min.time()))
        if search:
            like = f"%{search.strip()}%"
            query = query.outerjoin(User, User.id == Order.user_id).filter(or_(
                Order.order_number.ilike(like),
                User.email.ilike(like),
                User.last_name.ilike(like),
                User.company_name.ilike(like),
            ))

        total = query.count()

        col = SORT_MAP.get(sort_by, Order.created_at)
        query = query.order_by(col.desc() if sort_dir == "desc" else col.asc(), Order.id.desc())
        items = (
            query.options(joinedload(Order.lines), joinedload(Order.user))
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return items, total

    def count_by_status(self, date_from: Optional[date] = None, date_to: Optional[date] = None) -> dict:
        query = self.db.query(Order.status, func.count(Order.id))
        if date_from:
            query = query.filter(Order.created_at >= datetime.combine(date_from, datetime.min.time()))
        if date_to:
            query = query.filter(Order.created_at < datetime.combine(date_to + timedelta(days=1), datetime.min.time()))
        return {status: count for status, count in query.group_by(Order.status).all()}

    def revenue(self, date_from: Optional[date] = None, date_to: Optional[date] = None,
                user_id: Optional[int] = None) -> Tuple[float, int]:
        # Revenue and order count, cancelled orders excluded
        query = self.db.query(func.coalesce(func.sum(Order.total_ttc), 0), func.count(Order.id)).filter(
            Order.status != OrderStatus.ANNULEE.value
        )
        if user_id is not None:
            query = query.filter(Order.user_id == user_id)
        if date_from:
            query = query.filter(Order.created_at >= datetime.combine(date_from, datetime.min.time()))
        if date_to:
            query = query.filter(Order.created_at < datetime.combine(date_to + timedelta(days=1), datetime.min.time()))
        total, count = query.one()
        return float(total or 0), int(count or 0)
