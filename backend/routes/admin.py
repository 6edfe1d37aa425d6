# backend/routes/admin.py
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from database import get_db
from dependencies import get_client_service
from models.users import User
from schemas.common import ApiResponse
from schemas.order import OrderOut
from schemas.stats import ClientStats
from schemas.user import ClientAdminUpdate, ClientSummary
from services.client import ClientService
from utils.audit import client_ip, write_log
from utils.errors import ApiError
from utils.tokenJWT import require_admin

router = APIRouter(prefix="/api/admin/clients", tags=["Admin Clients"])


@router.get("/stats", response_model=ApiResponse[ClientStats])
def get_client_stats(
    admin: User = Depends(require_admin),
    clients: ClientService = Depends(get_client_service),
):
    return {"success": True, "data": clients.get_stats()}


# Retrieve clients with filtering, sorting, and pagination
@router.get("", response_model=ApiResponse[List[ClientSummary]])
def list_clients(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    search: Optional[str] = Query(None, description="Email, nom, entreprise ou SIRET"),
    client_type: Optional[Literal["INDIVIDUAL", "BUSINESS"]] = Query(None, alias="typeClient"),
    is_active: Optional[bool] = Query(None, alias="isActive"),
    sort_by: Literal["createdAt", "email", "lastName", "lastLoginAt"] = Query("createdAt", alias="sortBy"),
    sort_dir: Literal["asc", "desc"] = Query("desc", alias="sortDir"),
    admin: User = Depends(require_admin),
    clients: ClientService = Depends(get_client_service),
):
    items, pagination = clients.list_clients(
        page=page, limit=limit, search=search, client_type=client_type, is_active=is_active,
        sort_by=sort_by, sort_dir=sort_dir,
    )
    return {"success": True, "data": items, "pagination": pagination}


# Client profile with totals and the five latest orders
@router.get("/{client_id}", response_model=ApiResponse[dict])
def get_client(
    client_id: int,
    admin: User = Depends(require_admin),
    clients: ClientService = Depends(get_client_service),
):
    detail = clients.get_client(client_id)
    return {
        "success": True,
        "data": {
            "client": detail["client"].model_dump(by_alias=True),
            "recentOrders": [o.model_dump(by_alias=True) for o in detail["recent_orders"]],
        },
    }


@router.patch("/{client_id}", response_model=ApiResponse[ClientSummary])
def update_client(
    client_id: int,
    payload: ClientAdminUpdate,
    request: Request,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
    clients: ClientService = Depends(get_client_service),
):
    if client_id == admin.id and payload.is_active is False:
        raise ApiError.bad_request("Vous ne pouvez pas désactiver votre propre compte")
    client = clients.update_client(client_id, payload)
    write_log(db, user_id=admin.id, action="CLIENT_UPDATE", resource="clients", status="SUCCESS",
              ip=client_ip(request),
              meta={"client_id": client_id, "fields": sorted(payload.model_dump(exclude_unset=True))})
    return {"success": True, "message": "Client mis à jour", "data": client}


@router.patch("/{client_id}/toggle-status", response_model=ApiResponse[ClientSummary])
def toggle_client_status(
    client_id: int,
    request: Request,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
    clients: ClientService = Depends(get_client_service),
):
    client = clients.toggle_status(client_id)
    write_log(db, user_id=admin.id, action="CLIENT_TOGGLE", resource="clients", status="SUCCESS",
              ip=client_ip(request), meta={"client_id": client_id, "is_active": client.is_active})
    message = "Compte activé" if client.is_active else "Compte désactivé"
    return {"success": True, "message": message, "data": client}


# Anonymizes the account; orders are kept
@router.delete("/{client_id}", response_model=ApiResponse[None])
def delete_client(
    client_id: int,
    request: Request,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
    clients: ClientService = Depends(get_client_service),
):
    clients.delete_client(client_id)
    write_log(db, user_id=admin.id, action="CLIENT_DELETE", resource="clients", status="SUCCESS",
              ip=client_ip(request), meta={"client_id": client_id})
    return {"success": True, "message": "Client supprimé (données anonymisées)"}


@router.get("/{client_id}/orders", response_model=ApiResponse[List[OrderOut]])
def list_client_orders(
    client_id: int,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    admin: User = Depends(require_admin),
    clients: ClientService = Depends(get_client_service),
):
    items, pagination = clients.get_client_orders(client_id, page=page, limit=limit)
    return {"success": True, "data": items, "pagination": pagination}
