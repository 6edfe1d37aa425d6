# backend/routes/products.py
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from database import get_db
from dependencies import get_product_service
from models.users import User
from schemas.common import ApiResponse
from schemas.product import ProductCreate, ProductOut, ProductUpdate, StockUpdate
from services.product import ProductService
from utils.audit import client_ip, write_log
from utils.tokenJWT import require_admin

router = APIRouter(prefix="/api/products", tags=["Products"])


def _labels(labels: Optional[str]) -> Optional[List[str]]:
    # "bio,local" -> ["bio", "local"]
    if not labels:
        return None
    return [l.strip() for l in labels.split(",") if l.strip()]


# =========================
# CATALOG
# =========================
@router.get("", response_model=ApiResponse[List[ProductOut]])
def list_products(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    category: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    min_price: Optional[float] = Query(None, ge=0, alias="minPrice"),
    max_price: Optional[float] = Query(None, ge=0, alias="maxPrice"),
    in_stock: Optional[bool] = Query(None, alias="inStock"),
    labels: Optional[str] = Query(None),
    featured: Optional[bool] = Query(None),
    order_by: Literal["name", "price", "createdAt", "stock", "reference"] = Query("name", alias="orderBy"),
    order_dir: Literal["asc", "desc"] = Query("asc", alias="orderDir"),
    products: ProductService = Depends(get_product_service),
):
    items, pagination = products.list_products(
        page=page, limit=limit, category=category, search=search, min_price=min_price,
        max_price=max_price, in_stock=in_stock, labels=_labels(labels), featured=featured,
        order_by=order_by, order_dir=order_dir,
    )
    return {"success": True, "data": items, "pagination": pagination}


@router.get("/promos", response_model=ApiResponse[List[ProductOut]])
def list_promotions(limit: int = Query(12, ge=1, le=50), products: ProductService = Depends(get_product_service)):
    return {"success": True, "data": products.get_promotions(limit)}


@router.get("/new", response_model=ApiResponse[List[ProductOut]])
def list_new_products(limit: int = Query(8, ge=1, le=50), products: ProductService = Depends(get_product_service)):
    return {"success": True, "data": products.get_new(limit)}


@router.get("/featured", response_model=ApiResponse[List[ProductOut]])
def list_featured(limit: int = Query(8, ge=1, le=50), products: ProductService = Depends(get_product_service)):
    return {"success": True, "data": products.get_featured(limit)}


@router.get("/slug/{slug}", response_model=ApiResponse[ProductOut])
def get_product_by_slug(slug: str, products: ProductService = Depends(get_product_service)):
    return {"success": True, "data": products.get_by_slug(slug)}


# =========================
# ADMIN
# =========================
@router.get("/admin/low-stock", response_model=ApiResponse[List[ProductOut]])
def list_low_stock(
    limit: Optional[int] = Query(None, ge=1, le=500),
    admin: User = Depends(require_admin),
    products: ProductService = Depends(get_product_service),
):
    return {"success": True, "data": products.get_low_stock(limit)}


@router.get("/admin/all", response_model=ApiResponse[List[ProductOut]])
def admin_list_products(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=200),
    category: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    order_by: Literal["name", "price", "createdAt", "stock", "reference"] = Query("name", alias="orderBy"),
    order_dir: Literal["asc", "desc"] = Query("asc", alias="orderDir"),
    admin: User = Depends(require_admin),
    products: ProductService = Depends(get_product_service),
):
    items, pagination = products.list_products(
        page=page, limit=limit, category=category, search=search, include_inactive=True,
        order_by=order_by, order_dir=order_dir,
    )
    return {"success": True, "data": items, "pagination": pagination}


@router.get("/{product_id}", response_model=ApiResponse[ProductOut])
def get_product(product_id: int, products: ProductService = Depends(get_product_service)):
    return {"success": True, "data": products.get_by_id(product_id)}


@router.post("", response_model=ApiResponse[ProductOut], status_code=status.HTTP_201_CREATED)
def create_product(
    payload: ProductCreate,
    request: Request,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
    products: ProductService = Depends(get_product_service),
):
    product = products.create(payload)
    write_log(db, user_id=admin.id, action="PRODUCT_CREATE", resource="products", status="SUCCESS",
              ip=client_ip(request), meta={"product_id": product.id, "reference": product.reference})
    return {"success": True, "message": "Produit créé", "data": product}


@router.put("/{product_id}", response_model=ApiResponse[ProductOut])
def update_product(
    product_id: int,
    payload: ProductUpdate,
    request: Request,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
    products: ProductService = Depends(get_product_service),
):
    product = products.update(product_id, payload)
    write_log(db, user_id=admin.id, action="PRODUCT_UPDATE", resource="products", status="SUCCESS",
              ip=client_ip(request),
              meta={"product_id": product_id, "fields": sorted(payload.model_dump(exclude_unset=True))})
    return {"success": True, "message": "Produit mis à jour", "data": product}


@router.patch("/{product_id}/stock", response_model=ApiResponse[ProductOut])
def update_product_stock(
    product_id: int,
    payload: StockUpdate,
    request: Request,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
    products: ProductService = Depends(get_product_service),
):
    product = products.update_stock(product_id, payload)
    write_log(db, user_id=admin.id, action="STOCK_UPDATE", resource="products", status="SUCCESS",
              ip=client_ip(request),
              meta={"product_id": product_id, "operation": payload.operation, "quantity": payload.quantity})
    return {"success": True, "message": "Stock mis à jour", "data": product}


# Soft delete: the product is deactivated
@router.delete("/{product_id}", response_model=ApiResponse[ProductOut])
def deactivate_product(
    product_id: int,
    request: Request,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
    products: ProductService = Depends(get_product_service),
):
    product = products.deactivate(product_id)
    write_log(db, user_id=admin.id, action="PRODUCT_DEACTIVATE", resource="products", status="SUCCESS",
              ip=client_ip(request), meta={"product_id": product_id})
    return {"success": True, "message": "Produit désactivé", "data": product}


@router.delete("/{product_id}/permanent", response_model=ApiResponse[None])
def delete_product(
    product_id: int,
    request: Request,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
    products: ProductService = Depends(get_product_service),
):
    products.delete_permanently(product_id)
    write_log(db, user_id=admin.id, action="PRODUCT_DELETE", resource="products", status="SUCCESS",
              ip=client_ip(request), meta={"product_id": product_id})
    return {"success": True, "message": "Produit supprimé définitivement"}
