from typing import Any, Dict

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from database import get_db
from dependencies import get_settings_service
from models.users import User
from schemas.common import ApiResponse
from schemas.settings import SettingsBulkUpdate, SettingsCategoryUpdate
from services.settings import SettingsService
from utils.audit import client_ip, write_log
from utils.tokenJWT import require_admin

router = APIRouter(prefix="/api/settings", tags=["Settings"])


# Storefront-visible settings (site identity, delivery, order rules)
@router.get("/public", response_model=ApiResponse[Dict[str, Dict[str, Any]]])
def get_public_settings(settings_service: SettingsService = Depends(get_settings_service)):
    return {"success": True, "data": settings_service.get_public_settings()}


@router.get("", response_model=ApiResponse[Dict[str, Dict[str, Any]]])
def get_all_settings(
    admin: User = Depends(require_admin),
    settings_service: SettingsService = Depends(get_settings_service),
):
    return {"success": True, "data": settings_service.get_all()}


@router.put("", response_model=ApiResponse[Dict[str, Dict[str, Any]]])
def update_all_settings(
    payload: SettingsBulkUpdate,
    request: Request,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
    settings_service: SettingsService = Depends(get_settings_service),
):
    data = settings_service.update_all(payload.settings)
    write_log(db, user_id=admin.id, action="SETTINGS_UPDATE", resource="settings", status="SUCCESS",
              ip=client_ip(request), meta={"categories": sorted(payload.settings)})
    return {"success": True, "message": "Paramètres mis à jour", "data": data}


@router.post("/cache/invalidate", response_model=ApiResponse[None])
def invalidate_settings_cache(
    admin: User = Depends(require_admin),
    settings_service: SettingsService = Depends(get_settings_service),
):
    settings_service.invalidate()
    return {"success": True, "message": "Cache des paramètres invalidé"}


@router.get("/{category}", response_model=ApiResponse[Dict[str, Any]])
def get_category_settings(
    category: str,
    admin: User = Depends(require_admin),
    settings_service: SettingsService = Depends(get_settings_service),
):
    return {"success": True, "data": settings_service.get_by_category(category)}


@router.put("/{category}", response_model=ApiResponse[Dict[str, Any]])
def update_category_settings(
    category: str,
    payload: SettingsCategoryUpdate,
    request: Request,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
    settings_service: SettingsService = Depends(get_settings_service),
):
    data = settings_service.update_category(category, payload.settings)
    write_log(db, user_id=admin.id, action="SETTINGS_UPDATE", resource="settings", status="SUCCESS",
              ip=client_ip(request), meta={"category": category, "keys": sorted(payload.settings)})
    return {"success": True, "message": "Paramètres mis à jour", "data": data}
