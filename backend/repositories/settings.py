# backend/repositories/settings.py
import json
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from database import transaction
from models.setting import Setting

# Categories readable without authentication
PUBLIC_CATEGORIES = ("site", "delivery", "order")


def parse_value(raw: Optional[str], value_type: str) -> Any:
    if raw is None:
        return None
    if value_type == "number":
        number = float(raw)
        return int(number) if number.is_integer() else number
    if value_type == "boolean":
        return raw.strip().lower() in ("true", "1", "yes")
    if value_type == "json":
        return json.loads(raw)
    return raw


def serialize_value(value: Any) -> Tuple[Optional[str], str]:
    if isinstance(value, bool):
        return ("true" if value else "false"), "boolean"
    if isinstance(value, (int, float)):
        return str(value), "number"
    if isinstance(value, (dict, list)):
        return json.dumps(value), "json"
    if value is None:
        return None, "string"
    return str(value), "string"


class SettingsRepository:
    def __init__(self, db: Session):
        self.db = db

    def find_all(self, categories: Optional[List[str]] = None) -> List[Setting]:
        query = self.db.query(Setting)
        if categories:
            query = query.filter(Setting.category.in_(categories))
        return query.order_by(Setting.category.asc(), Setting.key.asc()).all()

    def get_grouped(self, categories: Optional[List[str]] = None) -> Dict[str, Dict[str, Any]]:
        grouped: Dict[str, Dict[str, Any]] = {}
        for row in self.find_all(categories):
            grouped.setdefault(row.category, {})[row.key] = parse_value(row.value, row.type)
        return grouped

    def get_public(self) -> Dict[str, Dict[str, Any]]:
        return self.get_grouped(list(PUBLIC_CATEGORIES))

    def find_by_key(self, key: str) -> Optional[Setting]:
        return self.db.query(Setting).filter(Setting.key == key).first()

    def upsert_category(self, category: str, values: Dict[str, Any]) -> None:
        with transaction(self.db):
            for key, value in values.items():
                self._upsert(category, key, value)

    def upsert_many(self, grouped: Dict[str, Dict[str, Any]]) -> None:
        with transaction(self.db):
            for category, values in grouped.items():
                for key, value in values.items():
                    self._upsert(category, key, value)

    def _upsert(self, category: str, key: str, value: Any) -> Setting:
        text, value_type = serialize_value(value)
        row = self.find_by_key(key)
        if row is None:
            row = Setting(key=key, category=category)
            self.db.add(row)
        elif row.type == "string" and value_type == "number":
            # Existing text settings keep their type (e.g. phone numbers)
            value_type = "string"
        row.value = text
        row.type = value_type
        row.category = category
        self.db.flush()
        return row
