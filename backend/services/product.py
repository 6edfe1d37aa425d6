# backend/services/product.py
import logging
from typing import List, Optional, Tuple

from models.product import Product
from repositories.category import CategoryRepository
from repositories.product import ProductRepository
from schemas.common import Pagination
from schemas.product import ProductCreate, ProductOut, ProductUpdate, StockUpdate
from utils.errors import ApiError
from utils.text import slugify

logger = logging.getLogger(__name__)


class ProductService:
    def __init__(self, products: ProductRepository, categories: CategoryRepository):
        self.products = products
        self.categories = categories

    def _unique_slug(self, base: str, exclude_id: Optional[int] = None) -> str:
        slug = slugify(base)
        candidate, n = slug, 2
        while self.products.slug_exists(candidate, exclude_id):
            candidate = f"{slug}-{n}"
            n += 1
        return candidate

    def _check_promo(self, price: float, promo_price: Optional[float]):
        if promo_price is not None and promo_price >= price:
            raise ApiError.bad_request("Le prix promotionnel doit être inférieur au prix normal")

    def _check_category(self, category_id: Optional[int]):
        if category_id is not None and self.categories.find_by_id(category_id) is None:
            raise ApiError.bad_request("Catégorie inexistante")

    def list_products(self, *, page: int = 1, limit: int = 20, **filters) -> Tuple[List[ProductOut], Pagination]:
        items, total = self.products.find_all(page=page, limit=limit, **filters)
        return [ProductOut.model_validate(p) for p in items], Pagination.build(page, limit, total)

    def get_promotions(self, limit: int = 12) -> List[ProductOut]:
        items, _ = self.products.find_all(page=1, limit=limit, on_sale=True, order_by="name")
        return [ProductOut.model_validate(p) for p in items]

    def get_featured(self, limit: int = 8) -> List[ProductOut]:
        items, _ = self.products.find_all(page=1, limit=limit, featured=True, order_by="name")
        return [ProductOut.model_validate(p) for p in items]

    def get_new(self, limit: int = 8) -> List[ProductOut]:
        return [ProductOut.model_validate(p) for p in self.products.find_new(limit)]

    def _get(self, product_id: int, public: bool = True) -> Product:
        product = self.products.find_by_id(product_id)
        if product is None or (public and not product.is_active):
            raise ApiError.not_found("Produit non trouvé")
        return product

    def get_by_id(self, product_id: int, public: bool = True) -> ProductOut:
        return ProductOut.model_validate(self._get(product_id, public))

    def get_by_slug(self, slug: str) -> ProductOut:
        product = self.products.find_by_slug(slug)
        if product is None or not product.is_active:
            raise ApiError.not_found("Produit non trouvé")
        return ProductOut.model_validate(product)

    def create(self, payload: ProductCreate) -> ProductOut:
        data = payload.model_dump()
        if self.products.find_by_reference(data["reference"]) is not None:
            raise ApiError.conflict(f"La référence {data['reference']} existe déjà")
        self._check_promo(data["price"], data.get("promo_price"))
        self._check_category(data.get("category_id"))
        data["slug"] = self._unique_slug(data.get("slug") or data["name"])
        product = self.products.create(data)
        logger.info(f"Product {product.reference} created")
        return ProductOut.model_validate(self.products.find_by_id(product.id))

    def update(self, product_id: int, payload: ProductUpdate) -> ProductOut:
        product = self._get(product_id, public=False)
        data = payload.model_dump(exclude_unset=True)
        if "reference" in data and data["reference"] != product.reference:
            if self.products.find_by_reference(data["reference"]) is not None:
                raise ApiError.conflict(f"La référence {data['reference']} existe déjà")
        self._check_promo(data.get("price", product.price), data.get("promo_price", product.promo_price))
        if "category_id" in data:
            self._check_category(data["category_id"])
        if data.get("slug"):
            data["slug"] = self._unique_slug(data["slug"], exclude_id=product.id)
        elif "name" in data and data["name"] != product.name:
            data["slug"] = self._unique_slug(data["name"], exclude_id=product.id)
        else:
            data.pop("slug", None)
        self.products.update(product, data)
        return ProductOut.model_validate(self.products.find_by_id(product_id))

    def update_stock(self, product_id: int, payload: StockUpdate) -> ProductOut:
        product = self._get(product_id, public=False)
        if payload.quantity < 0:
            raise ApiError.bad_request("La quantité doit être positive")
        updated = self.products.update_stock(product, payload.quantity, payload.operation)
        logger.info(f"Stock of {updated.reference} {payload.operation} {payload.quantity} -> {updated.stock_quantity}")
        return ProductOut.model_validate(self.products.find_by_id(product_id))

    def deactivate(self, product_id: int) -> ProductOut:
        product = self._get(product_id, public=False)
        self.products.soft_delete(product)
        return ProductOut.model_validate(self.products.find_by_id(product_id))

    def delete_permanently(self, product_id: int) -> None:
        product = self._get(product_id, public=False)
        self.products.hard_delete(product)
        logger.info(f"Product {product_id} permanently deleted")

    def get_low_stock(self, limit: Optional[int] = None) -> List[ProductOut]:
        return [ProductOut.model_validate(p) for p in self.products.find_low_stock(limit)]
