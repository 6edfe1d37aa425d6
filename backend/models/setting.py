from sqlalchemy import Column, Integer, String, Text, DateTime, func
from database import Base

# Site-wide configuration value stored as text with its declared type
class Setting(Base):
    __tablename__ = "settings"

    id = Column(Integer, primary_key=True, index=True)
    key = Column(String, unique=True, nullable=False, index=True)
    value = Column(Text, nullable=True)
    type = Column(String(20), nullable=False, default="string")
    category = Column(String(50), nullable=False, default="general", index=True)
    description = Column(String, nullable=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
