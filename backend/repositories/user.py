# backend/repositories/user.py
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from database import transaction
from models.cart import Cart
from models.order import Order, OrderStatus
from models.users import ClientType, User, UserRole

SORT_MAP = {
    "createdAt": User.created_at,
    "created_at": User.created_at,
    "email": User.email,
    "lastName": User.last_name,
    "last_name": User.last_name,
    "lastLoginAt": User.last_login_at,
}

DELETED_PASSWORD = "DELETED"


class UserRepository:
    def __init__(self, db: Session):
        self.db = db

    def find_by_id(self, user_id: int) -> Optional[User]:
        return self.db.query(User).filter(User.id == user_id).first()

    def find_by_email(self, email: str) -> Optional[User]:
        return self.db.query(User).filter(func.lower(User.email) == email.strip().lower()).first()

    def find_by_reset_token_hash(self, token_hash: str) -> Optional[User]:
        return self.db.query(User).filter(User.reset_token_hash == token_hash).first()

    def create(self, data: dict) -> User:
        with transaction(self.db):
            user = User(**data)
            self.db.add(user)
        self.db.refresh(user)
        return user

    def update(self, user: User, data: dict) -> User:
        with transaction(self.db):
            for field, value in data.items():
                setattr(user, field, value)
        self.db.refresh(user)
        return user

    def touch_last_login(self, user: User) -> None:
        self.update(user, {"last_login_at": datetime.now(timezone.utc)})

    def anonymize(self, user: User) -> None:
        """Overwrite personal data, remove carts and deactivate; orders keep their user reference."""
        with transaction(self.db):
            self.db.query(Cart).filter(Cart.user_id == user.id).delete(synchronize_session=False)
            user.email = f"supprime_{user.id}@deleted.local"
            user.first_name = "Utilisateur"
            user.last_name = "Supprimé"
            user.phone = None
            user.tax_id = None
            user.company_name = None
            user.vat_number = None
            user.accepts_newsletter = False
            user.password_hash = DELETED_PASSWORD
            user.reset_token_hash = None
            user.reset_token_expires_at = None
            user.is_active = False
        self.db.expire_all()

    def find_clients(
        self,
        *,
        page: int = 1,
        limit: int = 20,
        search: Optional[str] = None,
        client_type: Optional[str] = None,
        is_active: Optional[bool] = None,
        sort_by: str = "createdAt",
        sort_dir: str = "desc",
    ) -> Tuple[List[tuple], int]:
        """Clients with their order count and non-cancelled revenue."""
        order_totals = (
            self.db.query(
                Order.user_id.label("user_id"),
                func.count(Order.id).label("order_count"),
                func.coalesce(func.sum(Order.total_ttc), 0).label("total_spent"),
            )
            .filter(Order.status != OrderStatus.ANNULEE.value)
            .group_by(Order.user_id)
            .subquery()
        )
        query = (
            self.db.query(
                User,
                func.coalesce(order_totals.c.order_count, 0),
                func.coalesce(order_totals.c.total_spent, 0),
            )
            .outerjoin(order_totals, order_totals.c.user_id == User.id)
            .filter(User.role == UserRole.CLIENT.value)
        )

        if search:
            like = f"%{search.strip()}%"
            query = query.filter(or_(
                User.email.ilike(like),
                User.first_name.ilike(like),
                User.last_name.ilike(like),
                User.company_name.ilike(like),
                User.tax_id.ilike(like),
            ))
        if client_type:
            query = query.filter(User.client_type == client_type)
        if is_active is not None:
            query = query.filter(User.is_active.is_(is_active))

        total = query.count()
        col = SORT_MAP.get(sort_by, User.created_at)
        query = query.order_by(col.desc() if sort_dir == "desc" else col.asc(), User.id.desc())
        rows = query.offset((page - 1) * limit).limit(limit).all()
        return rows, total

    def client_stats(self) -> dict:
        clients = self.db.query(User).filter(User.role == UserRole.CLIENT.value)
        month_start = datetime.now(timezone.utc).replace(day=1, hour=0, minute=0, second=0, microsecond=0)
        return {
            "total": clients.count(),
            "active": clients.filter(User.is_active.is_(True)).count(),
            "inactive": clients.filter(User.is_active.is_(False)).count(),
            "business": clients.filter(User.client_type == ClientType.BUSINESS.value).count(),
            "individual": clients.filter(User.client_type == ClientType.INDIVIDUAL.value).count(),
            "new_this_month": clients.filter(User.created_at >= month_start).count(),
        }

    def count_clients(self, since: Optional[datetime] = None, client_type: Optional[str] = None) -> int:
        query = self.db.query(User).filter(User.role == UserRole.CLIENT.value)
        if since is not None:
            query = query.filter(User.created_at >= since)
        if client_type:
            query = query.filter(User.client_type == client_type)
        return query.count()
