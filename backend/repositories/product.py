# backend/repositories/product.py
from typing import List, Optional, Tuple

from sqlalchemy import String, and_, cast, case, or_
from sqlalchemy.orm import Session, joinedload

from database import transaction
from models.category import Category
from models.product import Product

# Effective price expression used for price-range filters and sorting
EFFECTIVE_PRICE = case(
    (and_(Product.promo_price.isnot(None), Product.promo_price < Product.price), Product.promo_price),
    else_=Product.price,
)

SORT_MAP = {
    "name": Product.name,
    "price": EFFECTIVE_PRICE,
    "createdAt": Product.created_at,
    "created_at": Product.created_at,
    "stock": Product.stock_quantity,
    "reference": Product.reference,
}


class ProductRepository:
    def __init__(self, db: Session):
        self.db = db

    def _base_query(self):
        return self.db.query(Product).options(joinedload(Product.category))

    def find_all(
        self,
        *,
        page: int = 1,
        limit: int = 20,
        category: Optional[str] = None,
        search: Optional[str] = None,
        min_price: Optional[float] = None,
        max_price: Optional[float] = None,
        in_stock: Optional[bool] = None,
        labels: Optional[List[str]] = None,
        featured: Optional[bool] = None,
        on_sale: Optional[bool] = None,
        include_inactive: bool = False,
        order_by: str = "name",
        order_dir: str = "asc",
    ) -> Tuple[List[Product], int]:
        query = self._base_query()

        if not include_inactive:
            query = query.filter(Product.is_active.is_(True))

        # Category by id or slug
        if category:
            if str(category).isdigit():
                query = query.filter(Product.category_id == int(category))
            else:
                query = query.join(Category, Category.id == Product.category_id).filter(Category.slug == category)

        if search:
            like = f"%{search.strip()}%"
            query = query.filter(or_(
                Product.name.ilike(like),
                Product.reference.ilike(like),
                Product.description.ilike(like),
            ))

        if min_price is not None:
            query = query.filter(EFFECTIVE_PRICE >= min_price)
        if max_price is not None:
            query = query.filter(EFFECTIVE_PRICE <= max_price)

        if in_stock:
            query = query.filter(Product.stock_quantity > 0)

        # Every requested label must be present in the JSON list
        for label in labels or []:
            query = query.filter(cast(Product.labels, String).like(f'%"{label}"%'))

        if featured is not None:
            query = query.filter(Product.is_featured.is_(featured))

        if on_sale:
            query = query.filter(Product.promo_price.isnot(None), Product.promo_price < Product.price)

        col = SORT_MAP.get(order_by, Product.name)
        query = query.order_by(col.desc() if order_dir == "desc" else col.asc(), Product.id.asc())

        total = query.count()
        items = query.offset((page - 1) * limit).limit(limit).all()
        return items, total

    def find_new(self, limit: int = 8) -> List[Product]:
        return (
            self._base_query()
            .filter(Product.is_active.is_(True))
            .order_by(Product.created_at.desc(), Product.id.desc())
            .limit(limit)
            .all()
        )

    def find_by_id(self, product_id: int) -> Optional[Product]:
        return self._base_query().filter(Product.id == product_id).first()

    def find_by_slug(self, slug: str) -> Optional[Product]:
        return self._base_query().filter(Product.slug == slug).first()

    def find_by_reference(self, reference: str) -> Optional[Product]:
        return self.db.query(Product).filter(Product.reference == reference).first()

    def slug_exists(self, slug: str, exclude_id: Optional[int] = None) -> bool:
        query = self.db.query(Product.id).filter(Product.slug == slug)
        if exclude_id is not None:
            query = query.filter(Product.id != exclude_id)
        return query.first() is not None

    def find_low_stock(self, limit: Optional[int] = None) -> List[Product]:
        query = (
            self.db.query(Product)
            .filter(Product.is_active.is_(True), Product.stock_quantity <= Product.low_stock_threshold)
            .order_by(Product.stock_quantity.asc(), Product.name.asc())
        )
        if limit:
            query = query.limit(limit)
        return query.all()

    def create(self, data: dict) -> Product:
        with transaction(self.db):
            product = Product(**data)
            self.db.add(product)
        self.db.refresh(product)
        return product

    def update(self, product: Product, data: dict) -> Product:
        with transaction(self.db):
            for field, value in data.items():
                setattr(product, field, value)
        self.db.refresh(product)
        return product

    def update_stock(self, product: Product, quantity: int, operation: str = "set") -> Product:
        with transaction(self.db):
            locked = self.db.query(Product).filter(Product.id == product.id).with_for_update().one()
            if operation == "add":
                locked.stock_quantity = locked.stock_quantity + quantity
            elif operation == "subtract":
                locked.stock_quantity = max(0, locked.stock_quantity - quantity)
            else:
                locked.stock_quantity = max(0, quantity)
        self.db.refresh(locked)
        return locked

    def soft_delete(self, product: Product) -> Product:
        return self.update(product, {"is_active": False})

    def hard_delete(self, product: Product) -> None:
        with transaction(self.db):
            self.db.delete(product)

    def count(self, active_only: bool = False) -> int:
        query = self.db.query(Product)
        if active_only:
            query = query.filter(Product.is_active.is_(True))
        return query.count()
