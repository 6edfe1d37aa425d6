# backend/dependencies.py
from fastapi import Depends
from sqlalchemy.orm import Session

from config import settings
from database import get_db
from repositories.cart import CartRepository
from repositories.category import CategoryRepository
from repositories.order import OrderRepository
from repositories.product import ProductRepository
from repositories.settings import SettingsRepository
from repositories.stats import StatsRepository
from repositories.user import UserRepository
from services.auth import AuthService
from services.cart import CartService
from services.category import CategoryService
from services.client import ClientService
from services.email import EmailService
from services.order import OrderService
from services.product import ProductService
from services.settings import SettingsService
from services.stats import StatsService
from utils.brevo_client import brevo_client
from utils.cache import JsonCache, MemoryCacheClient

# Process-wide default; swap through app.dependency_overrides[get_cache_client]
_cache_client = MemoryCacheClient()


def get_cache_client():
    return _cache_client


def get_settings_cache(client=Depends(get_cache_client)) -> JsonCache:
    return JsonCache(client, settings.SETTINGS_CACHE_TTL)


def get_settings_service(db: Session = Depends(get_db), cache: JsonCache = Depends(get_settings_cache)):
    return SettingsService(SettingsRepository(db), cache)


def get_email_service() -> EmailService:
    return EmailService(brevo_client)


def get_auth_service(db: Session = Depends(get_db)) -> AuthService:
    return AuthService(UserRepository(db))


def get_cart_service(
    db: Session = Depends(get_db),
    settings_service: SettingsService = Depends(get_settings_service),
) -> CartService:
    return CartService(CartRepository(db), ProductRepository(db), settings_service)


def get_order_service(
    db: Session = Depends(get_db),
    settings_service: SettingsService = Depends(get_settings_service),
) -> OrderService:
    return OrderService(OrderRepository(db), ProductRepository(db), CartRepository(db), settings_service)


def get_product_service(db: Session = Depends(get_db)) -> ProductService:
    return ProductService(ProductRepository(db), CategoryRepository(db))


def get_category_service(db: Session = Depends(get_db)) -> CategoryService:
    return CategoryService(CategoryRepository(db), ProductRepository(db))


def get_stats_service(db: Session = Depends(get_db)) -> StatsService:
    return StatsService(StatsRepository(db), UserRepository(db), ProductRepository(db), CategoryRepository(db))


def get_client_service(db: Session = Depends(get_db)) -> ClientService:
    return ClientService(UserRepository(db), OrderRepository(db))
