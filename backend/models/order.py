from sqlalchemy import Column, Integer, String, Float, ForeignKey, DateTime, JSON, Sequence, func
from sqlalchemy.orm import relationship
from database import Base
import enum

class OrderStatus(str, enum.Enum):
    EN_ATTENTE = "EN_ATTENTE"
    CONFIRMEE = "CONFIRMEE"
    PAYEE = "PAYEE"
    EN_PREPARATION = "EN_PREPARATION"
    EXPEDIEE = "EXPEDIEE"
    LIVREE = "LIVREE"
    ANNULEE = "ANNULEE"

class PaymentMode(str, enum.Enum):
    CARD = "CARD"
    TRANSFER = "TRANSFER"
    CHECK = "CHECK"
    CASH = "CASH"

# Global counter behind the NNNN part of order numbers (PostgreSQL)
order_number_seq = Sequence("order_number_seq", start=1, metadata=Base.metadata)

# A placed order; totals are frozen at creation
class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    order_number = Column(String(20), unique=True, nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    status = Column(String, nullable=False, default=OrderStatus.EN_ATTENTE.value, index=True)

    shipping_address = Column(JSON, nullable=False)
    billing_address = Column(JSON, nullable=True)
    payment_mode = Column(String, nullable=False, default=PaymentMode.CARD.value)

    subtotal_ht = Column(Float, nullable=False)
    tax_total = Column(Float, nullable=False)
    shipping_fee = Column(Float, nullable=False, default=0)
    total_ttc = Column(Float, nullable=False)

    notes = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="orders")
    lines = relationship("OrderLine", back_populates="order", cascade="all, delete-orphan", order_by="OrderLine.id")


# Frozen copy of a product line at order time
class OrderLine(Base):
    __tablename__ = "order_lines"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="SET NULL"), nullable=True, index=True)
    product_name = Column(String, nullable=False)
    quantity = Column(Integer, nullable=False)
    unit_price_ht = Column(Float, nullable=False)
    tax_rate = Column(Float, nullable=False)
    total_ht = Column(Float, nullable=False)
    tax_amount = Column(Float, nullable=False)
    total_ttc = Column(Float, nullable=False)

    order = relationship("Order", back_populates="lines")
    product = relationship("Product")
