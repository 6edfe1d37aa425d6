from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, JSON, func
from sqlalchemy.orm import relationship
from database import Base

# One row per audited action: cart edits, orders, auth events, admin changes
class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)

    action = Column(String(50), nullable=False, index=True)   # e.g. ORDER_CREATE
    resource = Column(String(50), nullable=False)              # cart, orders, auth...
    status = Column(String(20), nullable=False, default="SUCCESS")
    ip = Column(String(64), nullable=True)
    details = Column(JSON, nullable=True)

    user = relationship("User")
