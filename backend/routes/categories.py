from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from database import get_db
from dependencies import get_category_service
from models.users import User
from schemas.category import CategoryCreate, CategoryOut, CategoryReorder, CategoryUpdate
from schemas.common import ApiResponse
from schemas.product import ProductOut
from services.category import CategoryService
from utils.audit import client_ip, write_log
from utils.tokenJWT import require_admin

router = APIRouter(prefix="/api/categories", tags=["Categories"])


@router.get("", response_model=ApiResponse[List[CategoryOut]])
def list_categories(categories: CategoryService = Depends(get_category_service)):
    return {"success": True, "data": categories.list_categories()}


@router.get("/admin/all", response_model=ApiResponse[List[CategoryOut]])
def admin_list_categories(
    admin: User = Depends(require_admin),
    categories: CategoryService = Depends(get_category_service),
):
    return {"success": True, "data": categories.list_categories(include_inactive=True)}


@router.get("/slug/{slug}", response_model=ApiResponse[CategoryOut])
def get_category_by_slug(slug: str, categories: CategoryService = Depends(get_category_service)):
    return {"success": True, "data": categories.get_by_slug(slug)}


# Position changes for several categories at once
@router.put("/reorder", response_model=ApiResponse[List[CategoryOut]])
def reorder_categories(
    payload: CategoryReorder,
    admin: User = Depends(require_admin),
    categories: CategoryService = Depends(get_category_service),
):
    return {"success": True, "message": "Ordre des catégories mis à jour", "data": categories.reorder(payload)}


@router.get("/{category_id}", response_model=ApiResponse[CategoryOut])
def get_category(category_id: int, categories: CategoryService = Depends(get_category_service)):
    return {"success": True, "data": categories.get_by_id(category_id)}


@router.get("/{category_id}/products", response_model=ApiResponse[List[ProductOut]])
def list_category_products(
    category_id: int,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    order_by: Literal["name", "price", "createdAt", "stock", "reference"] = Query("name", alias="orderBy"),
    order_dir: Literal["asc", "desc"] = Query("asc", alias="orderDir"),
    in_stock: Optional[bool] = Query(None, alias="inStock"),
    categories: CategoryService = Depends(get_category_service),
):
    items, pagination = categories.get_products(
        category_id, page=page, limit=limit, order_by=order_by, order_dir=order_dir, in_stock=in_stock,
    )
    return {"success": True, "data": items, "pagination": pagination}


@router.post("", response_model=ApiResponse[CategoryOut], status_code=status.HTTP_201_CREATED)
def create_category(
    payload: CategoryCreate,
    request: Request,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
    categories: CategoryService = Depends(get_category_service),
):
    category = categories.create(payload)
    write_log(db, user_id=admin.id, action="CATEGORY_CREATE", resource="categories", status="SUCCESS",
              ip=client_ip(request), meta={"category_id": category.id, "slug": category.slug})
    return {"success": True, "message": "Catégorie créée", "data": category}


@router.put("/{category_id}", response_model=ApiResponse[CategoryOut])
def update_category(
    category_id: int,
    payload: CategoryUpdate,
    admin: User = Depends(require_admin),
    categories: CategoryService = Depends(get_category_service),
):
    return {"success": True, "message": "Catégorie mise à jour", "data": categories.update(category_id, payload)}


@router.patch("/{category_id}/toggle", response_model=ApiResponse[CategoryOut])
def toggle_category(
    category_id: int,
    admin: User = Depends(require_admin),
    categories: CategoryService = Depends(get_category_service),
):
    category = categories.toggle(category_id)
    message = "Catégorie activée" if category.is_active else "Catégorie désactivée"
    return {"success": True, "message": message, "data": category}


@router.delete("/{category_id}", response_model=ApiResponse[None])
def delete_category(
    category_id: int,
    request: Request,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
    categories: CategoryService = Depends(get_category_service),
):
    categories.delete(category_id)
    write_log(db, user_id=admin.id, action="CATEGORY_DELETE", resource="categories", status="SUCCESS",
              ip=client_ip(request), meta={"category_id": category_id})
    return {"success": True, "message": "Catégorie supprimée"}
