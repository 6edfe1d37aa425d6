import logging
from typing import List, Tuple

from repositories.category import CategoryRepository
from repositories.product import ProductRepository
from schemas.category import CategoryCreate, CategoryOut, CategoryReorder, CategoryUpdate
from schemas.common import Pagination
from schemas.product import ProductOut
from utils.errors import ApiError
from utils.text import slugify

logger = logging.getLogger(__name__)


def _to_out(category, product_count: int = 0) -> CategoryOut:
    out = CategoryOut.model_validate(category)
    out.product_count = int(product_count or 0)
    return out


class CategoryService:
    def __init__(self, categories: CategoryRepository, products: ProductRepository):
        self.categories = categories
        self.products = products

    def list_categories(self, include_inactive: bool = False) -> List[CategoryOut]:
        return [_to_out(c, n) for c, n in self.categories.find_all(include_inactive)]

    def _get(self, category_id: int):
        category = self.categories.find_by_id(category_id)
        if category is None:
            raise ApiError.not_found("Catégorie non trouvée")
        return category

    def get_by_id(self, category_id: int) -> CategoryOut:
        category = self._get(category_id)
        return _to_out(category, self.categories.count_active_products(category.id))

    def get_by_slug(self, slug: str) -> CategoryOut:
        category = self.categories.find_by_slug(slug)
        if category is None or not category.is_active:
            raise ApiError.not_found("Catégorie non trouvée")
        return _to_out(category, self.categories.count_active_products(category.id))

    def get_products(self, category_id: int, *, page: int = 1, limit: int = 20,
                     **filters) -> Tuple[List[ProductOut], Pagination]:
        self._get(category_id)
        items, total = self.products.find_all(page=page, limit=limit, category=str(category_id), **filters)
        return [ProductOut.model_validate(p) for p in items], Pagination.build(page, limit, total)

    def create(self, payload: CategoryCreate) -> CategoryOut:
        data = payload.model_dump()
        data["slug"] = slugify(data.get("slug") or data["name"])
        if self.categories.slug_exists(data["slug"]):
            raise ApiError.conflict(f"Une catégorie avec le slug {data['slug']} existe déjà")
        if not data.get("position"):
            data["position"] = self.categories.next_position()
        category = self.categories.create(data)
        logger.info(f"Category {category.slug} created")
        return _to_out(category)

    def update(self, category_id: int, payload: CategoryUpdate) -> CategoryOut:
        category = self._get(category_id)
        data = payload.model_dump(exclude_unset=True)
        if data.get("slug") or ("name" in data and data["name"] != category.name):
            data["slug"] = slugify(data.get("slug") or data["name"])
            if self.categories.slug_exists(data["slug"], exclude_id=category.id):
                raise ApiError.conflict(f"Une catégorie avec le slug {data['slug']} existe déjà")
        else:
            data.pop("slug", None)
        updated = self.categories.update(category, data)
        return _to_out(updated, self.categories.count_active_products(updated.id))

    def delete(self, category_id: int) -> None:
        category = self._get(category_id)
        active = self.categories.count_active_products(category.id)
        if active:
            raise ApiError.bad_request(
                f"Impossible de supprimer une catégorie contenant {active} produit(s) actif(s)"
            )
        self.categories.delete(category)

    def toggle(self, category_id: int) -> CategoryOut:
        category = self._get(category_id)
        updated = self.categories.update(category, {"is_active": not category.is_active})
        return _to_out(updated, self.categories.count_active_products(updated.id))

    def reorder(self, payload: CategoryReorder) -> List[CategoryOut]:
        self.categories.reorder([(c.id, c.position) for c in payload.categories])
        return self.list_categories(include_inactive=True)
