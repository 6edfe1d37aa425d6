from typing import Any, Dict

from schemas.common import CamelModel


# Values for one settings category, keyed by setting key
class SettingsCategoryUpdate(CamelModel):
    settings: Dict[str, Any]


# Values for several categories at once: {category: {key: value}}
class SettingsBulkUpdate(CamelModel):
    settings: Dict[str, Dict[str, Any]]
