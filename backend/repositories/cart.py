# backend/repositories/cart.py
import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from database import transaction
from models.cart import Cart, CartItem
from models.users import User
from schemas.cart import CartItemOut, CartOut, CartSummary
from utils.errors import ApiError
from utils.pricing import line_amounts, round_money, summarize

logger = logging.getLogger(__name__)


def _latest(a, b):
    if a is None:
        return b
    if b is None:
        return a
    return max(a, b)


# Map a cart line joined with its product to the API view
def map_cart_item(item: CartItem) -> CartItemOut:
    product = item.product
    price = product.effective_price
    subtotal, tax, total = line_amounts(price, item.quantity, product.tax_rate)
    return CartItemOut(
        id=item.id,
        product_id=item.product_id,
        quantity=item.quantity,
        unit_price=item.unit_price,
        added_at=item.added_at,
        name=product.name,
        reference=product.reference,
        slug=product.slug,
        image_url=product.image_url,
        unit=product.unit,
        price=product.price,
        promo_price=product.promo_price,
        effective_price=price,
        is_on_sale=product.is_on_sale,
        tax_rate=product.tax_rate,
        stock=product.stock_quantity,
        is_active=product.is_active,
        subtotal=round_money(subtotal),
        tva_amount=round_money(tax),
        total=round_money(total),
    )


def calculate_summary(items) -> CartSummary:
    return CartSummary(**summarize(
        (it.quantity, it.effective_price, it.tax_rate) for it in items
    ))


class CartRepository:
    def __init__(self, db: Session):
        self.db = db

    def _items_query(self):
        return self.db.query(CartItem).options(joinedload(CartItem.product))

    def _load_items(self, cart_id: int):
        return (
            self._items_query()
            .filter(CartItem.cart_id == cart_id)
            .order_by(CartItem.added_at.desc(), CartItem.id.desc())
            .all()
        )

    def _touch(self, cart_id: int):
        self.db.query(Cart).filter(Cart.id == cart_id).update(
            {Cart.updated_at: datetime.now(timezone.utc)}, synchronize_session=False
        )

    def _merge_duplicates(self, survivor: Cart, duplicates: list):
        # Upsert every duplicate line into the survivor: quantities summed, newest add date, incoming price
        by_product = {item.product_id: item for item in survivor.items}
        for dup in duplicates:
            for item in dup.items:
                target = by_product.get(item.product_id)
                if target is not None:
                    target.quantity = target.quantity + item.quantity
                    target.unit_price = item.unit_price
                    target.added_at = _latest(target.added_at, item.added_at)
                else:
                    target = CartItem(
                        product_id=item.product_id,
                        quantity=item.quantity,
                        unit_price=item.unit_price,
                        added_at=item.added_at,
                    )
                    survivor.items.append(target)
                    by_product[item.product_id] = target
            self.db.delete(dup)
        survivor.updated_at = datetime.now(timezone.utc)
        self.db.flush()
        logger.warning(
            f"Merged duplicate carts for user {survivor.user_id}: kept {survivor.id}, "
            f"merged {[d.id for d in duplicates]}"
        )

    def build_view(self, cart: Cart) -> CartOut:
        items = [map_cart_item(it) for it in self._load_items(cart.id)]
        return CartOut(
            id=cart.id,
            user_id=cart.user_id,
            created_at=cart.created_at,
            updated_at=cart.updated_at,
            items=items,
            summary=calculate_summary(items),
        )

    def get_or_create_cart(self, user_id: int) -> CartOut:
        """Return the user's single cart with items and summary, creating it or merging duplicates as needed.

        The user row is locked for the duration of the transaction so concurrent
        calls for the same user are serialized.
        """
        with transaction(self.db):
            user = self.db.query(User).filter(User.id == user_id).with_for_update().first()
            if user is None:
                raise ApiError.not_found("Utilisateur non trouvé")

            carts = (
                self.db.query(Cart)
                .filter(Cart.user_id == user_id)
                .order_by(Cart.created_at.asc(), Cart.id.asc())
                .all()
            )
            if not carts:
                cart = Cart(user_id=user_id)
                self.db.add(cart)
                self.db.flush()
                self.db.refresh(cart)
            else:
                cart = carts[0]
                if len(carts) > 1:
                    self._merge_duplicates(cart, carts[1:])

            view = self.build_view(cart)
        return view

    def get_item(self, item_id: int) -> Optional[CartItemOut]:
        item = self._items_query().filter(CartItem.id == item_id).first()
        return map_cart_item(item) if item else None

    def find_item(self, cart_id: int, product_id: int) -> Optional[CartItem]:
        return (
            self.db.query(CartItem)
            .filter(CartItem.cart_id == cart_id, CartItem.product_id == product_id)
            .first()
        )

    def add_item(self, cart_id: int, product_id: int, quantity: int, unit_price: float) -> CartItemOut:
        # Existing line: quantity becomes existing + quantity, unit price is overwritten
        with transaction(self.db):
            item = self.find_item(cart_id, product_id)
            if item is not None:
                item.quantity = item.quantity + quantity
                item.unit_price = unit_price
            else:
                item = CartItem(cart_id=cart_id, product_id=product_id, quantity=quantity, unit_price=unit_price)
                self.db.add(item)
            self._touch(cart_id)
            self.db.flush()
            item_id = item.id
        return self.get_item(item_id)

    def update_item_quantity(self, item_id: int, quantity: int) -> Optional[CartItemOut]:
        with transaction(self.db):
            item = self.db.query(CartItem).filter(CartItem.id == item_id).first()
            if item is None:
                return None
            item.quantity = quantity
            self._touch(item.cart_id)
        return self.get_item(item_id)

    def remove_item(self, item_id: int) -> bool:
        with transaction(self.db):
            item = self.db.query(CartItem).filter(CartItem.id == item_id).first()
            if item is None:
                return False
            cart_id = item.cart_id
            self.db.delete(item)
            self._touch(cart_id)
        return True

    def clear_cart(self, cart_id: int) -> bool:
        with transaction(self.db):
            if self.db.query(Cart.id).filter(Cart.id == cart_id).first() is None:
                return False
            self.db.query(CartItem).filter(CartItem.cart_id == cart_id).delete(synchronize_session=False)
            self._touch(cart_id)
        self.db.expire_all()
        return True

    def is_item_owned_by_user(self, item_id: int, user_id: int) -> bool:
        row = (
            self.db.query(CartItem.id)
            .join(Cart, Cart.id == CartItem.cart_id)
            .filter(CartItem.id == item_id, Cart.user_id == user_id)
            .first()
        )
        return row is not None

    def get_item_count(self, user_id: int) -> int:
        total = (
            self.db.query(func.coalesce(func.sum(CartItem.quantity), 0))
            .join(Cart, Cart.id == CartItem.cart_id)
            .filter(Cart.user_id == user_id)
            .scalar()
        )
        return int(total or 0)
