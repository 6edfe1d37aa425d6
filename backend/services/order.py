# backend/services/order.py
import logging
import re
from datetime import date
from typing import List, Optional, Tuple

from models.order import Order, OrderStatus
from repositories.cart import CartRepository
from repositories.order import OrderRepository
from repositories.product import ProductRepository
from schemas.common import Pagination
from schemas.order import OrderCreate, OrderFromCart, OrderLineOut, OrderOut, OrderStats
from services.settings import SettingsService
from utils.errors import ApiError
from utils.pricing import line_amounts, round_money

logger = logging.getLogger(__name__)

S = OrderStatus

# Legal status moves: source -> allowed targets
TRANSITIONS = {
    S.EN_ATTENTE.value: [S.PAYEE.value, S.ANNULEE.value],
    S.PAYEE.value: [S.EN_PREPARATION.value, S.ANNULEE.value],
    S.CONFIRMEE.value: [S.EN_PREPARATION.value, S.ANNULEE.value],
    S.EN_PREPARATION.value: [S.EXPEDIEE.value, S.ANNULEE.value],
    S.EXPEDIEE.value: [S.LIVREE.value],
    S.LIVREE.value: [],
    S.ANNULEE.value: [],
}

STATUS_LABELS = {
    S.EN_ATTENTE.value: "En attente",
    S.CONFIRMEE.value: "Confirmée",
    S.PAYEE.value: "Payée",
    S.EN_PREPARATION.value: "En préparation",
    S.EXPEDIEE.value: "Expédiée",
    S.LIVREE.value: "Livrée",
    S.ANNULEE.value: "Annulée",
}

POSTAL_CODE_RE = re.compile(r"^[0-9]{5}$")

REQUIRED_ADDRESS_FIELDS = (
    ("first_name", "prénom"),
    ("last_name", "nom"),
    ("street", "adresse"),
    ("postal_code", "code postal"),
    ("city", "ville"),
)


def get_possible_transitions(status: str) -> List[str]:
    return list(TRANSITIONS.get(status, []))


def can_transition(current: str, target: str) -> bool:
    return target in TRANSITIONS.get(current, [])


def get_status_label(status: str) -> str:
    return STATUS_LABELS.get(status, status)


def validate_address(address: dict, prefix: str = "shippingAddress"):
    for field, label in REQUIRED_ADDRESS_FIELDS:
        value = address.get(field)
        if value is None or not str(value).strip():
            raise ApiError.bad_request(f"Adresse incomplète: le champ {label} est requis",
                                       details={"field": f"{prefix}.{field}"})
    if not POSTAL_CODE_RE.match(address["postal_code"].strip()):
        raise ApiError.bad_request("Code postal invalide (5 chiffres attendus)",
                                   details={"field": f"{prefix}.postal_code"})


def order_to_out(order: Order) -> OrderOut:
    user = order.user
    return OrderOut(
        id=order.id,
        order_number=order.order_number,
        user_id=order.user_id,
        status=order.status,
        status_label=get_status_label(order.status),
        shipping_address=order.shipping_address or {},
        billing_address=order.billing_address,
        payment_mode=order.payment_mode,
        subtotal_ht=order.subtotal_ht,
        tax_total=order.tax_total,
        shipping_fee=order.shipping_fee,
        total_ttc=order.total_ttc,
        notes=order.notes,
        created_at=order.created_at,
        updated_at=order.updated_at,
        lines=[OrderLineOut.model_validate(line) for line in order.lines],
        possible_transitions=get_possible_transitions(order.status),
        customer_email=user.email if user else None,
        customer_name=" ".join(p for p in (user.first_name, user.last_name) if p) if user else None,
    )


class OrderService:
    def __init__(
        self,
        orders: OrderRepository,
        products: ProductRepository,
        carts: CartRepository,
        settings: SettingsService,
    ):
        self.orders = orders
        self.products = products
        self.carts = carts
        self.settings = settings

    def _price_lines(self, requested: List[Tuple[int, int]]) -> Tuple[list, float, float]:
        lines, subtotal, tax_total = [], 0.0, 0.0
        for product_id, quantity in requested:
            product = self.products.find_by_id(product_id)
            if product is None:
                raise ApiError.not_found(f"Produit {product_id} non trouvé")
            if not product.is_active:
                raise ApiError.bad_request(f"Le produit \"{product.name}\" n'est plus disponible")
            if quantity > product.stock_quantity:
                raise ApiError.bad_request(
                    f"Stock insuffisant pour \"{product.name}\" (disponible: {product.stock_quantity})",
                    details={"productId": product.id, "available": product.stock_quantity, "requested": quantity},
                )
            unit_price = product.effective_price
            total_ht, tax, total_ttc = line_amounts(unit_price, quantity, product.tax_rate)
            subtotal += total_ht
            tax_total += tax
            lines.append({
                "product_id": product.id,
                "product_name": product.name,
                "quantity": quantity,
                "unit_price_ht": unit_price,
                "tax_rate": product.tax_rate,
                "total_ht": round_money(total_ht),
                "tax_amount": round_money(tax),
                "total_ttc": round_money(total_ttc),
            })
        return lines, subtotal, tax_total

    def create_order(self, user_id: Optional[int], payload: OrderCreate) -> dict:
        if not payload.lines:
            raise ApiError.bad_request("La commande doit contenir au moins un article")

        lines, subtotal, tax_total = self._price_lines([(l.product_id, l.quantity) for l in payload.lines])
        shipping_fee = self.settings.get_delivery_fee(subtotal)

        shipping = payload.shipping_address.model_dump()
        validate_address(shipping)
        billing = payload.billing_address.model_dump() if payload.billing_address else shipping

        order = self.orders.create_with_lines(
            user_id=user_id,
            order_data={
                "shipping_address": shipping,
                "billing_address": billing,
                "payment_mode": payload.payment_mode,
                "notes": payload.notes,
                "subtotal_ht": round_money(subtotal),
                "tax_total": round_money(tax_total),
                "shipping_fee": round_money(shipping_fee),
                "total_ttc": round_money(subtotal + tax_total + shipping_fee),
            },
            lines=lines,
        )
        return {"order": order_to_out(order), "message": f"Commande {order.order_number} créée avec succès"}

    def create_order_from_cart(self, user_id: int, payload: OrderFromCart) -> dict:
        cart = self.carts.get_or_create_cart(user_id)
        if not cart.items:
            raise ApiError.bad_request("Votre panier est vide")
        order_payload = OrderCreate(
            lines=[{"product_id": it.product_id, "quantity": it.quantity} for it in cart.items],
            shipping_address=payload.shipping_address,
            billing_address=payload.billing_address,
            payment_mode=payload.payment_mode,
            notes=payload.notes,
        )
        result = self.create_order(user_id, order_payload)
        self.carts.clear_cart(cart.id)
        return result

    def _load(self, order_id: int, user_id: Optional[int] = None) -> Order:
        order = self.orders.find_by_id(order_id)
        if order is None:
            raise ApiError.not_found("Commande non trouvée")
        if user_id is not None and order.user_id != user_id:
            raise ApiError.forbidden("Accès non autorisé à cette commande")
        return order

    def get_order_by_id(self, order_id: int, user_id: Optional[int] = None) -> OrderOut:
        return order_to_out(self._load(order_id, user_id))

    def get_order_by_number(self, order_number: str, user_id: Optional[int] = None) -> OrderOut:
        order = self.orders.find_by_number(order_number)
        if order is None:
            raise ApiError.not_found("Commande non trouvée")
        if user_id is not None and order.user_id != user_id:
            raise ApiError.forbidden("Accès non autorisé à cette commande")
        return order_to_out(order)

    def get_user_orders(self, user_id: int, *, page: int = 1, limit: int = 10,
                        status: Optional[str] = None) -> Tuple[List[OrderOut], Pagination]:
        orders, total = self.orders.find_all(page=page, limit=limit, user_id=user_id, status=status)
        return [order_to_out(o) for o in orders], Pagination.build(page, limit, total)

    def get_all_orders(self, *, page: int = 1, limit: int = 20, **filters) -> Tuple[List[OrderOut], Pagination]:
        orders, total = self.orders.find_all(page=page, limit=limit, **filters)
        return [order_to_out(o) for o in orders], Pagination.build(page, limit, total)

    def update_order_status(self, order_id: int, new_status: str, notes: Optional[str] = None) -> dict:
        order = self._load(order_id)
        current = order.status
        if not can_transition(current, new_status):
            allowed = get_possible_transitions(current)
            raise ApiError.bad_request(
                f"Transition de statut invalide: {current} -> {new_status}. "
                f"Transitions autorisées: {', '.join(allowed) if allowed else 'aucune'}",
                details={"current": current, "attempted": new_status, "allowed": allowed},
            )
        if new_status == S.ANNULEE.value:
            # Cancellation restores stock
            return self.cancel_order(order_id, user_id=None, is_admin=True, notes=notes)

        updated = self.orders.update_status(order, new_status, notes)
        logger.info(f"Order {updated.order_number}: {current} -> {new_status}")
        return {
            "order": order_to_out(updated),
            "previous_status": current,
            "message": f"Statut de la commande {updated.order_number} mis à jour: {get_status_label(new_status)}",
        }

    def cancel_order(self, order_id: int, user_id: Optional[int], is_admin: bool = False,
                     notes: Optional[str] = None) -> dict:
        order = self._load(order_id)
        if not is_admin:
            if order.user_id != user_id:
                raise ApiError.forbidden("Accès non autorisé à cette commande")
            if order.status != S.EN_ATTENTE.value:
                raise ApiError.bad_request("Seules les commandes en attente peuvent être annulées")
        current = order.status
        if not can_transition(current, S.ANNULEE.value):
            raise ApiError.bad_request(
                f"La commande ne peut pas être annulée depuis le statut {current}",
                details={"current": current, "allowed": get_possible_transitions(current)},
            )
        if notes is not None:
            order.notes = notes
        cancelled = self.orders.cancel_and_restore_stock(order)
        logger.info(f"Order {cancelled.order_number} cancelled, stock restored ({len(cancelled.lines)} line(s))")
        return {
            "order": order_to_out(cancelled),
            "previous_status": current,
            "message": f"Commande {cancelled.order_number} annulée",
        }

    def get_order_stats(self, date_from: Optional[date] = None, date_to: Optional[date] = None) -> OrderStats:
        by_status = self.orders.count_by_status(date_from, date_to)
        revenue, count = self.orders.revenue(date_from, date_to)
        return OrderStats(
            total_orders=count,
            total_revenue=round_money(revenue),
            average_basket=round_money(revenue / count) if count else 0.0,
            by_status={s.value: by_status.get(s.value, 0) for s in S},
        )
