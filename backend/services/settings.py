# backend/services/settings.py
import logging
from typing import Any, Dict

from email_validator import EmailNotValidError, validate_email

from repositories.settings import SettingsRepository
from utils.cache import JsonCache
from utils.errors import ApiError

logger = logging.getLogger(__name__)

SETTINGS_CACHE_KEY = "app:settings"
PUBLIC_SETTINGS_CACHE_KEY = "app:settings:public"

CATEGORIES = ("site", "delivery", "order", "email")

# Fallbacks used when a key has never been saved
DEFAULTS = {
    "delivery_free_threshold": 150,
    "delivery_standard_fee": 15,
    "order_min_amount": 0,
    "order_allow_backorder": False,
    "order_default_tax_rate": 20,
    "order_low_stock_alert": 10,
}


class SettingsService:
    """Typed site settings behind a read-through cache."""

    def __init__(self, repository: SettingsRepository, cache: JsonCache):
        self.repository = repository
        self.cache = cache

    def get_all(self) -> Dict[str, Dict[str, Any]]:
        cached = self.cache.get(SETTINGS_CACHE_KEY)
        if cached is not None:
            return cached
        grouped = self.repository.get_grouped()
        self.cache.set(SETTINGS_CACHE_KEY, grouped)
        return grouped

    def get_public_settings(self) -> Dict[str, Dict[str, Any]]:
        cached = self.cache.get(PUBLIC_SETTINGS_CACHE_KEY)
        if cached is not None:
            return cached
        public = self.repository.get_public()
        self.cache.set(PUBLIC_SETTINGS_CACHE_KEY, public)
        return public

    def get_by_category(self, category: str) -> Dict[str, Any]:
        self._check_category(category)
        return self.get_all().get(category, {})

    def get(self, key: str, default: Any = None) -> Any:
        for values in self.get_all().values():
            if key in values and values[key] is not None:
                return values[key]
        return DEFAULTS.get(key, default) if default is None else default

    def update_category(self, category: str, values: Dict[str, Any]) -> Dict[str, Any]:
        self._check_category(category)
        self._validate(category, values)
        self.repository.upsert_category(category, values)
        self.invalidate()
        logger.info(f"Settings category '{category}' updated: {sorted(values)}")
        return self.get_by_category(category)

    def update_all(self, grouped: Dict[str, Dict[str, Any]]) -> Dict[str, Dict[str, Any]]:
        for category, values in grouped.items():
            self._check_category(category)
            self._validate(category, values)
        self.repository.upsert_many(grouped)
        self.invalidate()
        return self.get_all()

    def invalidate(self) -> None:
        self.cache.delete(SETTINGS_CACHE_KEY, PUBLIC_SETTINGS_CACHE_KEY)

    def get_delivery_fee(self, amount: float) -> float:
        threshold = float(self.get("delivery_free_threshold"))
        if amount >= threshold:
            return 0.0
        return float(self.get("delivery_standard_fee"))

    def get_min_order_amount(self) -> float:
        return float(self.get("order_min_amount") or 0)

    def allows_backorder(self) -> bool:
        return bool(self.get("order_allow_backorder"))

    def _check_category(self, category: str):
        if category not in CATEGORIES:
            raise ApiError.bad_request(f"Catégorie de paramètres inconnue: {category}")

    def _validate(self, category: str, values: Dict[str, Any]):
        errors = []
        if category == "delivery":
            for key in ("delivery_free_threshold", "delivery_standard_fee", "delivery_express_fee"):
                if key in values and not _is_non_negative_number(values[key]):
                    errors.append({"field": key, "message": "Doit être un nombre positif ou nul"})
        elif category == "order":
            if "order_min_amount" in values and not _is_non_negative_number(values["order_min_amount"]):
                errors.append({"field": "order_min_amount", "message": "Doit être un nombre positif ou nul"})
            rate = values.get("order_default_tax_rate")
            if rate is not None and not (_is_non_negative_number(rate) and rate <= 100):
                errors.append({"field": "order_default_tax_rate", "message": "Doit être compris entre 0 et 100"})
            if "order_allow_backorder" in values and not isinstance(values["order_allow_backorder"], bool):
                errors.append({"field": "order_allow_backorder", "message": "Doit être un booléen"})
        elif category in ("email", "site"):
            for key, value in values.items():
                if key.endswith("_email") and value:
                    try:
                        validate_email(str(value), check_deliverability=False)
                    except EmailNotValidError:
                        errors.append({"field": key, "message": "Adresse e-mail invalide"})
        if errors:
            raise ApiError.bad_request("Paramètres invalides", details=errors)


def _is_non_negative_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and value >= 0
