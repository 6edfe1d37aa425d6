# backend/services/cart.py
import logging

from repositories.cart import CartRepository
from repositories.product import ProductRepository
from schemas.cart import (
    MAX_CART_QUANTITY, CartChange, CartCount, CartFixResult, CartIssue,
    CartItemResult, CartOut, CartValidation,
)
from services.settings import SettingsService
from utils.errors import ApiError
from utils.pricing import round_money

logger = logging.getLogger(__name__)


def _check_quantity(quantity) -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or not 1 <= quantity <= MAX_CART_QUANTITY:
        raise ApiError.bad_request(f"La quantité doit être un entier entre 1 et {MAX_CART_QUANTITY}")
    return quantity


class CartService:
    def __init__(self, carts: CartRepository, products: ProductRepository, settings: SettingsService):
        self.carts = carts
        self.products = products
        self.settings = settings

    def _stock_issues(self, cart: CartOut) -> list:
        warnings = []
        for item in cart.items:
            if not item.is_active:
                warnings.append(CartIssue(
                    type="PRODUCT_INACTIVE", item_id=item.id, product_id=item.product_id,
                    product_name=item.name, message=f"Le produit \"{item.name}\" n'est plus disponible",
                ))
            elif item.quantity > item.stock:
                warnings.append(CartIssue(
                    type="INSUFFICIENT_STOCK", item_id=item.id, product_id=item.product_id,
                    product_name=item.name, available=item.stock, requested=item.quantity,
                    message=f"Stock insuffisant pour \"{item.name}\" ({item.stock} disponible(s))",
                ))
        return warnings

    def get_cart(self, user_id: int) -> CartOut:
        cart = self.carts.get_or_create_cart(user_id)
        warnings = self._stock_issues(cart)
        if warnings:
            cart.warnings = warnings
        return cart

    def add_item(self, user_id: int, product_id: int, quantity: int = 1) -> CartItemResult:
        _check_quantity(quantity)
        product = self.products.find_by_id(product_id)
        if product is None:
            raise ApiError.not_found("Produit non trouvé")
        if not product.is_active:
            raise ApiError.bad_request(f"Le produit \"{product.name}\" n'est plus disponible")

        cart = self.carts.get_or_create_cart(user_id)
        existing = self.carts.find_item(cart.id, product_id)

        if not self.settings.allows_backorder():
            if existing is not None:
                if existing.quantity + quantity > product.stock_quantity:
                    can_add = max(0, product.stock_quantity - existing.quantity)
                    raise ApiError.bad_request(
                        f"Stock insuffisant pour \"{product.name}\". Vous avez déjà {existing.quantity} "
                        f"dans votre panier, vous pouvez encore en ajouter {can_add}",
                        details={"available": product.stock_quantity, "inCart": existing.quantity},
                    )
            elif quantity > product.stock_quantity:
                raise ApiError.bad_request(
                    f"Stock insuffisant pour \"{product.name}\" ({product.stock_quantity} disponible(s))",
                    details={"available": product.stock_quantity},
                )

        item = self.carts.add_item(cart.id, product.id, quantity, product.effective_price)
        logger.info(f"User {user_id} added product {product.id} x{quantity} to cart {cart.id}")
        return CartItemResult(item=item, cart=self.carts.get_or_create_cart(user_id))

    def _owned_item(self, user_id: int, item_id: int):
        if not self.carts.is_item_owned_by_user(item_id, user_id):
            raise ApiError.not_found("Article non trouvé dans votre panier")
        item = self.carts.get_item(item_id)
        if item is None:
            raise ApiError.not_found("Article non trouvé dans votre panier")
        return item

    def update_item_quantity(self, user_id: int, item_id: int, quantity: int) -> CartItemResult:
        _check_quantity(quantity)
        item = self._owned_item(user_id, item_id)
        if not item.is_active:
            raise ApiError.bad_request(f"Le produit \"{item.name}\" n'est plus disponible")
        if not self.settings.allows_backorder() and quantity > item.stock:
            raise ApiError.bad_request(
                f"Stock insuffisant pour \"{item.name}\" ({item.stock} disponible(s))",
                details={"available": item.stock},
            )
        updated = self.carts.update_item_quantity(item_id, quantity)
        if updated is None:
            raise ApiError.not_found("Article non trouvé dans votre panier")
        return CartItemResult(item=updated, cart=self.carts.get_or_create_cart(user_id))

    def remove_item(self, user_id: int, item_id: int) -> CartOut:
        self._owned_item(user_id, item_id)
        if not self.carts.remove_item(item_id):
            raise ApiError.not_found("Article non trouvé dans votre panier")
        return self.carts.get_or_create_cart(user_id)

    def clear_cart(self, user_id: int) -> CartOut:
        cart = self.carts.get_or_create_cart(user_id)
        if not cart.items:
            raise ApiError.bad_request("Le panier est déjà vide")
        self.carts.clear_cart(cart.id)
        return self.carts.get_or_create_cart(user_id)

    def get_item_count(self, user_id: int) -> CartCount:
        count = self.carts.get_item_count(user_id)
        return CartCount(count=count, display_count="99+" if count > 99 else str(count))

    def validate_cart(self, user_id: int) -> CartValidation:
        cart = self.carts.get_or_create_cart(user_id)
        errors, warnings = [], []

        if not cart.items:
            errors.append(CartIssue(type="EMPTY_CART", message="Votre panier est vide"))
            return CartValidation(is_valid=False, errors=errors, warnings=warnings, cart=cart)

        for item in cart.items:
            if not item.is_active:
                errors.append(CartIssue(
                    type="PRODUCT_INACTIVE", item_id=item.id, product_id=item.product_id, product_name=item.name,
                    message=f"Le produit \"{item.name}\" n'est plus disponible",
                ))
            elif item.stock <= 0:
                errors.append(CartIssue(
                    type="OUT_OF_STOCK", item_id=item.id, product_id=item.product_id, product_name=item.name,
                    available=0, requested=item.quantity,
                    message=f"Le produit \"{item.name}\" est en rupture de stock",
                ))
            elif item.quantity > item.stock:
                warnings.append(CartIssue(
                    type="INSUFFICIENT_STOCK", item_id=item.id, product_id=item.product_id, product_name=item.name,
                    available=item.stock, requested=item.quantity,
                    message=f"Seulement {item.stock} \"{item.name}\" disponible(s), vous en demandez {item.quantity}",
                ))

        minimum = self.settings.get_min_order_amount()
        if minimum > 0 and cart.summary.total_ttc < minimum:
            missing = round_money(minimum - cart.summary.total_ttc)
            errors.append(CartIssue(
                type="MINIMUM_NOT_REACHED",
                message=f"Le montant minimum de commande est de {minimum:.2f} €. Il vous manque {missing:.2f} €",
            ))

        return CartValidation(is_valid=not errors, errors=errors, warnings=warnings, cart=cart)

    def apply_validation_suggestions(self, user_id: int) -> CartFixResult:
        cart = self.carts.get_or_create_cart(user_id)
        changes = []
        for item in cart.items:
            if not item.is_active:
                self.carts.remove_item(item.id)
                changes.append(CartChange(type="REMOVED", product_name=item.name, reason="Produit indisponible",
                                          old_quantity=item.quantity))
            elif item.stock <= 0:
                self.carts.remove_item(item.id)
                changes.append(CartChange(type="REMOVED", product_name=item.name, reason="Rupture de stock",
                                          old_quantity=item.quantity))
            elif item.quantity > item.stock:
                self.carts.update_item_quantity(item.id, item.stock)
                changes.append(CartChange(type="QUANTITY_ADJUSTED", product_name=item.name,
                                          reason="Stock insuffisant", old_quantity=item.quantity,
                                          new_quantity=item.stock))
        if changes:
            logger.info(f"Cart of user {user_id} adjusted: {len(changes)} change(s)")
        return CartFixResult(cart=self.carts.get_or_create_cart(user_id), changes=changes)

