from typing import List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from database import transaction
from models.category import Category
from models.product import Product


class CategoryRepository:
    def __init__(self, db: Session):
        self.db = db

    def _with_counts(self):
        active_count = (
            self.db.query(Product.category_id, func.count(Product.id).label("product_count"))
            .filter(Product.is_active.is_(True))
            .group_by(Product.category_id)
            .subquery()
        )
        return (
            self.db.query(Category, func.coalesce(active_count.c.product_count, 0))
            .outerjoin(active_count, active_count.c.category_id == Category.id)
        )

    def find_all(self, include_inactive: bool = False) -> List[Tuple[Category, int]]:
        query = self._with_counts()
        if not include_inactive:
            query = query.filter(Category.is_active.is_(True))
        return query.order_by(Category.position.asc(), Category.name.asc()).all()

    def find_by_id(self, category_id: int) -> Optional[Category]:
        return self.db.query(Category).filter(Category.id == category_id).first()

    def find_by_slug(self, slug: str) -> Optional[Category]:
        return self.db.query(Category).filter(Category.slug == slug).first()

    def slug_exists(self, slug: str, exclude_id: Optional[int] = None) -> bool:
        query = self.db.query(Category.id).filter(Category.slug == slug)
        if exclude_id is not None:
            query = query.filter(Category.id != exclude_id)
        return query.first() is not None

    def count_active_products(self, category_id: int) -> int:
        return (
            self.db.query(Product)
            .filter(Product.category_id == category_id, Product.is_active.is_(True))
            .count()
        )

    def next_position(self) -> int:
        current = self.db.query(func.max(Category.position)).scalar()
        return (current or 0) + 1

    def create(self, data: dict) -> Category:
        with transaction(self.db):
            category = Category(**data)
            self.db.add(category)
        self.db.refresh(category)
        return category

    def update(self, category: Category, data: dict) -> Category:
        with transaction(self.db):
            for field, value in data.items():
                setattr(category, field, value)
        self.db.refresh(category)
        return category

    def delete(self, category: Category) -> None:
        with transaction(self.db):
            self.db.delete(category)

    def reorder(self, positions: List[Tuple[int, int]]) -> None:
        with transaction(self.db):
            for category_id, position in positions:
                self.db.query(Category).filter(Category.id == category_id).update(
                    {Category.position: position}, synchronize_session=False
                )
        self.db.expire_all()

    def count(self) -> int:
        return self.db.query(Category).count()
