# backend/models/product.py
from sqlalchemy import Column, Integer, String, Float, Boolean, DateTime, ForeignKey, CheckConstraint, JSON, func
from sqlalchemy.orm import relationship
from database import Base

from utils.pricing import DEFAULT_TAX_RATE

# Catalog product with pricing, tax rate and live stock level
class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    reference = Column(String, unique=True, nullable=False, index=True)
    name = Column(String, nullable=False, index=True)
    slug = Column(String, unique=True, nullable=False, index=True)
    description = Column(String, nullable=True)

    # Prices are excluding tax
    price = Column(Float, CheckConstraint("price >= 0"), nullable=False)
    promo_price = Column(Float, CheckConstraint("promo_price IS NULL OR promo_price >= 0"), nullable=True)
    tax_rate = Column(Float, CheckConstraint("tax_rate >= 0 AND tax_rate <= 100"), nullable=False, default=DEFAULT_TAX_RATE)
    unit = Column(String, nullable=False, default="pièce")

    stock_quantity = Column(Integer, CheckConstraint("stock_quantity >= 0"), nullable=False, default=0)
    low_stock_threshold = Column(Integer, nullable=False, default=10)

    image_url = Column(String, nullable=True)
    labels = Column(JSON, nullable=True)
    origin = Column(String, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    is_featured = Column(Boolean, nullable=False, default=False)

    category_id = Column(Integer, ForeignKey("categories.id", ondelete="SET NULL"), nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    category = relationship("Category", back_populates="products")

    @property
    def is_on_sale(self) -> bool:
        return self.promo_price is not None and self.promo_price < self.price

    @property
    def effective_price(self) -> float:
        return self.promo_price if self.is_on_sale else self.price

    @property
    def category_name(self):
        return self.category.name if self.category else None
