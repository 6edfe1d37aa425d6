# backend/services/client.py
import logging
from typing import List, Tuple

from models.users import User, UserRole
from repositories.order import OrderRepository
from repositories.user import UserRepository
from schemas.common import Pagination
from schemas.order import OrderOut
from schemas.stats import ClientStats
from schemas.user import ClientAdminUpdate, ClientSummary
from services.order import order_to_out
from utils.errors import ApiError
from utils.pricing import round_money

logger = logging.getLogger(__name__)


class ClientService:
    """Admin-side management of customer accounts."""

    def __init__(self, users: UserRepository, orders: OrderRepository):
        self.users = users
        self.orders = orders

    def _get(self, client_id: int) -> User:
        user = self.users.find_by_id(client_id)
        if user is None or user.role != UserRole.CLIENT.value:
            raise ApiError.not_found("Client non trouvé")
        return user

    def get_stats(self) -> ClientStats:
        return ClientStats(**self.users.client_stats())

    def list_clients(self, *, page: int = 1, limit: int = 20, **filters) -> Tuple[List[ClientSummary], Pagination]:
        rows, total = self.users.find_clients(page=page, limit=limit, **filters)
        items = []
        for user, order_count, total_spent in rows:
            summary = ClientSummary.model_validate(user)
            summary.order_count = int(order_count or 0)
            summary.total_spent = round_money(total_spent)
            items.append(summary)
        return items, Pagination.build(page, limit, total)

    def get_client(self, client_id: int) -> dict:
        user = self._get(client_id)
        recent, _ = self.orders.find_all(page=1, limit=5, user_id=user.id)
        revenue, counted = self.orders.revenue(user_id=user.id)
        summary = ClientSummary.model_validate(user)
        summary.order_count = counted
        summary.total_spent = round_money(revenue)
        return {"client": summary, "recent_orders": [order_to_out(o) for o in recent]}

    def update_client(self, client_id: int, payload: ClientAdminUpdate) -> ClientSummary:
        user = self._get(client_id)
        data = payload.model_dump(exclude_unset=True)
        if not data:
            raise ApiError.bad_request("Aucune donnée à mettre à jour")
        updated = self.users.update(user, data)
        logger.info(f"Client {client_id} updated by admin: {sorted(data)}")
        return ClientSummary.model_validate(updated)

    def toggle_status(self, client_id: int) -> ClientSummary:
        user = self._get(client_id)
        updated = self.users.update(user, {"is_active": not user.is_active})
        logger.info(f"Client {client_id} {'activated' if updated.is_active else 'deactivated'}")
        return ClientSummary.model_validate(updated)

    def delete_client(self, client_id: int) -> None:
        user = self._get(client_id)
        self.users.anonymize(user)
        logger.info(f"Client {client_id} anonymized by admin")

    def get_client_orders(self, client_id: int, *, page: int = 1, limit: int = 10) -> Tuple[List[OrderOut], Pagination]:
        user = self._get(client_id)
        orders, total = self.orders.find_all(page=page, limit=limit, user_id=user.id)
        return [order_to_out(o) for o in orders], Pagination.build(page, limit, total)
