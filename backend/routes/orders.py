# backend/routes/orders.py
import logging
from datetime import date
from typing import List, Literal, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request, status
from sqlalchemy.orm import Session

from database import get_db
from dependencies import get_email_service, get_order_service
from models.users import User
from schemas.common import ApiResponse
from schemas.order import OrderCreate, OrderFromCart, OrderOut, OrderStats, OrderStatusPatch
from services.email import EmailService
from services.order import OrderService
from utils.audit import client_ip, write_log
from utils.tokenJWT import get_current_user, require_admin

router = APIRouter(prefix="/api/orders", tags=["Orders"])
admin_router = APIRouter(prefix="/api/admin/orders", tags=["Admin Orders"])
logger = logging.getLogger(__name__)

STATUS_PATTERN = "^(EN_ATTENTE|CONFIRMEE|PAYEE|EN_PREPARATION|EXPEDIEE|LIVREE|ANNULEE)$"


def _notify_status(background_tasks: BackgroundTasks, emails: EmailService, order: OrderOut):
    if order.customer_email:
        background_tasks.add_task(
            emails.send_order_status_email, order.customer_email, order.customer_name,
            order.order_number, order.status, order.status_label,
        )


# Place an order from an explicit line list
@router.post("", response_model=ApiResponse[OrderOut], status_code=status.HTTP_201_CREATED)
def create_order(
    payload: OrderCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    orders: OrderService = Depends(get_order_service),
):
    result = orders.create_order(current_user.id, payload)
    order = result["order"]
    write_log(db, user_id=current_user.id, action="ORDER_CREATE", resource="orders", status="SUCCESS",
              ip=client_ip(request), meta={"order_id": order.id, "number": order.order_number,
                                           "total": order.total_ttc})
    return {"success": True, "message": result["message"], "data": order}


# Place an order from the current cart, then empty the cart
@router.post("/from-cart", response_model=ApiResponse[OrderOut], status_code=status.HTTP_201_CREATED)
def create_order_from_cart(
    payload: OrderFromCart,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    orders: OrderService = Depends(get_order_service),
):
    result = orders.create_order_from_cart(current_user.id, payload)
    order = result["order"]
    write_log(db, user_id=current_user.id, action="ORDER_CREATE", resource="orders", status="SUCCESS",
              ip=client_ip(request), meta={"order_id": order.id, "number": order.order_number,
                                           "total": order.total_ttc, "from_cart": True})
    return {"success": True, "message": result["message"], "data": order}


@router.get("", response_model=ApiResponse[List[OrderOut]])
def list_my_orders(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status_filter: Optional[str] = Query(None, alias="status", pattern=STATUS_PATTERN),
    current_user: User = Depends(get_current_user),
    orders: OrderService = Depends(get_order_service),
):
    items, pagination = orders.get_user_orders(current_user.id, page=page, limit=limit, status=status_filter)
    return {"success": True, "data": items, "pagination": pagination}


@router.get("/number/{order_number}", response_model=ApiResponse[OrderOut])
def get_my_order_by_number(
    order_number: str,
    current_user: User = Depends(get_current_user),
    orders: OrderService = Depends(get_order_service),
):
    return {"success": True, "data": orders.get_order_by_number(order_number, user_id=current_user.id)}


@router.get("/{order_id}", response_model=ApiResponse[OrderOut])
def get_my_order(
    order_id: int,
    current_user: User = Depends(get_current_user),
    orders: OrderService = Depends(get_order_service),
):
    return {"success": True, "data": orders.get_order_by_id(order_id, user_id=current_user.id)}


# Clients may cancel their own pending orders; stock is restored
@router.post("/{order_id}/cancel", response_model=ApiResponse[OrderOut])
def cancel_my_order(
    order_id: int,
    request: Request,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    orders: OrderService = Depends(get_order_service),
    emails: EmailService = Depends(get_email_service),
):
    result = orders.cancel_order(order_id, user_id=current_user.id, is_admin=current_user.is_admin)
    order = result["order"]
    write_log(db, user_id=current_user.id, action="ORDER_CANCEL", resource="orders", status="SUCCESS",
              ip=client_ip(request), meta={"order_id": order.id, "previous": result["previous_status"]})
    _notify_status(background_tasks, emails, order)
    return {"success": True, "message": result["message"], "data": order}


# ---- ADMIN ----

@admin_router.get("", response_model=ApiResponse[List[OrderOut]])
def admin_list_orders(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    status_filter: Optional[str] = Query(None, alias="status", pattern=STATUS_PATTERN),
    user_id: Optional[int] = Query(None, alias="userId"),
    date_from: Optional[date] = Query(None, alias="dateFrom"),
    date_to: Optional[date] = Query(None, alias="dateTo"),
    search: Optional[str] = Query(None),
    sort_by: Literal["createdAt", "total", "status", "number"] = Query("createdAt", alias="sortBy"),
    sort_dir: Literal["asc", "desc"] = Query("desc", alias="sortDir"),
    admin: User = Depends(require_admin),
    orders: OrderService = Depends(get_order_service),
):
    items, pagination = orders.get_all_orders(
        page=page, limit=limit, status=status_filter, user_id=user_id, date_from=date_from,
        date_to=date_to, search=search, sort_by=sort_by, sort_dir=sort_dir,
    )
    return {"success": True, "data": items, "pagination": pagination}


@admin_router.get("/stats", response_model=ApiResponse[OrderStats])
def admin_order_stats(
    date_from: Optional[date] = Query(None, alias="dateFrom"),
    date_to: Optional[date] = Query(None, alias="dateTo"),
    admin: User = Depends(require_admin),
    orders: OrderService = Depends(get_order_service),
):
    return {"success": True, "data": orders.get_order_stats(date_from, date_to)}


@admin_router.get("/{order_id}", response_model=ApiResponse[OrderOut])
def admin_get_order(
    order_id: int,
    admin: User = Depends(require_admin),
    orders: OrderService = Depends(get_order_service),
):
    return {"success": True, "data": orders.get_order_by_id(order_id)}


@admin_router.patch("/{order_id}/status", response_model=ApiResponse[OrderOut])
def admin_update_status(
    order_id: int,
    payload: OrderStatusPatch,
    request: Request,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
    orders: OrderService = Depends(get_order_service),
    emails: EmailService = Depends(get_email_service),
):
    result = orders.update_order_status(order_id, payload.status, payload.notes)
    order = result["order"]
    write_log(db, user_id=admin.id, action="ORDER_STATUS", resource="orders", status="SUCCESS",
              ip=client_ip(request),
              meta={"order_id": order.id, "from": result["previous_status"], "to": order.status})
    _notify_status(background_tasks, emails, order)
    return {"success": True, "message": result["message"], "data": order}
