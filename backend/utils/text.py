import re
import unicodedata


def slugify(value: str) -> str:
    # "Épices & Condiments" -> "epices-condiments"
    normalized = unicodedata.normalize("NFKD", value or "").encode("ascii", "ignore").decode("ascii")
    slug = re.sub(r"[^a-z0-9]+", "-", normalized.lower()).strip("-")
    return slug or "item"
