from datetime import datetime
from typing import List, Optional

from pydantic import Field

from schemas.common import CamelModel


class CategoryCreate(CamelModel):
    name: str = Field(min_length=1, max_length=100)
    slug: Optional[str] = None
    description: Optional[str] = None
    color: Optional[str] = Field(default=None, pattern="^#[0-9A-Fa-f]{6}$")
    icon: Optional[str] = None
    position: int = 0
    is_active: bool = True


class CategoryUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    slug: Optional[str] = None
    description: Optional[str] = None
    color: Optional[str] = Field(default=None, pattern="^#[0-9A-Fa-f]{6}$")
    icon: Optional[str] = None
    position: Optional[int] = None
    is_active: Optional[bool] = None


class CategoryOut(CamelModel):
    id: int
    name: str
    slug: str
    description: Optional[str] = None
    color: Optional[str] = None
    icon: Optional[str] = None
    position: int
    is_active: bool
    product_count: int = 0
    created_at: Optional[datetime] = None


class CategoryPosition(CamelModel):
    id: int
    position: int


class CategoryReorder(CamelModel):
    categories: List[CategoryPosition]
