# backend/routes/stats.py
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, Query

from dependencies import get_stats_service
from models.users import User
from schemas.common import ApiResponse
from schemas.stats import (
    DailyRevenue, DashboardStats, GlobalStats, LowStockProduct, RecentOrder, TopCategory, TopProduct,
)
from services.stats import StatsService
from utils.tokenJWT import require_admin

router = APIRouter(prefix="/api/admin/stats", tags=["Admin Stats"])

Period = Literal["day", "week", "month", "quarter", "year"]


# === Dashboard Summary ===
@router.get("/dashboard", response_model=ApiResponse[DashboardStats])
def get_dashboard(
    period: Period = Query("month"),
    admin: User = Depends(require_admin),
    stats: StatsService = Depends(get_stats_service),
):
    return {"success": True, "data": stats.get_dashboard(period)}


# === Daily revenue over the last N days ===
@router.get("/evolution", response_model=ApiResponse[List[DailyRevenue]])
def get_evolution(
    days: int = Query(30, ge=1, le=365),
    admin: User = Depends(require_admin),
    stats: StatsService = Depends(get_stats_service),
):
    return {"success": True, "data": stats.get_evolution(days)}


@router.get("/top-products", response_model=ApiResponse[List[TopProduct]])
def get_top_products(
    limit: int = Query(10, ge=1, le=50),
    period: Optional[Period] = Query(None),
    admin: User = Depends(require_admin),
    stats: StatsService = Depends(get_stats_service),
):
    return {"success": True, "data": stats.get_top_products(limit, period)}


@router.get("/top-categories", response_model=ApiResponse[List[TopCategory]])
def get_top_categories(
    limit: int = Query(10, ge=1, le=50),
    period: Optional[Period] = Query(None),
    admin: User = Depends(require_admin),
    stats: StatsService = Depends(get_stats_service),
):
    return {"success": True, "data": stats.get_top_categories(limit, period)}


@router.get("/recent-orders", response_model=ApiResponse[List[RecentOrder]])
def get_recent_orders(
    limit: int = Query(10, ge=1, le=50),
    admin: User = Depends(require_admin),
    stats: StatsService = Depends(get_stats_service),
):
    return {"success": True, "data": stats.get_recent_orders(limit)}


@router.get("/low-stock", response_model=ApiResponse[List[LowStockProduct]])
def get_low_stock(
    limit: int = Query(20, ge=1, le=100),
    admin: User = Depends(require_admin),
    stats: StatsService = Depends(get_stats_service),
):
    return {"success": True, "data": stats.get_low_stock(limit)}


@router.get("/global", response_model=ApiResponse[GlobalStats])
def get_global_stats(
    admin: User = Depends(require_admin),
    stats: StatsService = Depends(get_stats_service),
):
    return {"success": True, "data": stats.get_global()}
