import os
import sys

# Add 'backend' folder to Python path
sys.path.append(os.path.abspath(os.path.dirname(__file__)))

from database import SessionLocal, init_db
from models.category import Category
from models.product import Product
from models.users import User, UserRole
from repositories.settings import SettingsRepository
from utils.hashing import get_password_hash
from utils.text import slugify

# Configuration
ADMIN_EMAIL = os.getenv("SEED_ADMIN_EMAIL", "admin@jana-distribution.fr")
ADMIN_PASSWORD = os.getenv("SEED_ADMIN_PASSWORD", "Admin123!")

CATEGORIES = [
    ("Épicerie salée", "#8d6e63", "pantry"),
    ("Épices & Condiments", "#e65100", "spice"),
    ("Boissons", "#0277bd", "drink"),
    ("Produits frais", "#2e7d32", "fresh"),
    ("Surgelés", "#4fc3f7", "frozen"),
]

# (reference, name, category index, price HT, promo, tax rate, unit, stock, labels)
PRODUCTS = [
    ("EPI-001", "Riz basmati 5 kg", 0, 12.50, None, 5.5, "sac", 120, ["halal"]),
    ("EPI-002", "Semoule fine 1 kg", 0, 2.20, 1.90, 5.5, "paquet", 300, []),
    ("EPI-003", "Pois chiches 800 g", 0, 1.60, None, 5.5, "boîte", 8, ["bio"]),
    ("EPC-001", "Ras el hanout 500 g", 1, 9.80, None, 5.5, "pot", 45, []),
    ("EPC-002", "Harissa 380 g", 1, 3.10, 2.60, 5.5, "boîte", 60, []),
    ("BOI-001", "Thé vert menthe 200 g", 2, 4.90, None, 5.5, "boîte", 80, ["bio"]),
    ("BOI-002", "Jus de mangue 1 L", 2, 2.40, None, 5.5, "bouteille", 0, []),
    ("BOI-003", "Soda citron 33 cl x24", 2, 14.00, 12.00, 20.0, "pack", 25, []),
    ("FRA-001", "Fromage blanc 1 kg", 3, 3.70, None, 5.5, "pot", 15, []),
    ("SUR-001", "Feuilles de brick x10", 4, 2.90, None, 5.5, "paquet", 5, ["halal"]),
]

# category -> {key: value}
DEFAULT_SETTINGS = {
    "site": {
        "site_name": "Jana Distribution",
        "site_email": "contact@jana-distribution.fr",
        "site_phone": "01 23 45 67 89",
        "site_address": "12 rue du Commerce, 93100 Montreuil",
    },
    "delivery": {
        "delivery_free_threshold": 150,
        "delivery_standard_fee": 15,
        "delivery_express_fee": 25,
        "delivery_zones": ["Île-de-France"],
    },
    "order": {
        "order_min_amount": 0,
        "order_allow_backorder": False,
        "order_default_tax_rate": 20,
        "order_low_stock_alert": 10,
    },
    "email": {
        "email_sender_name": "Jana Distribution",
        "email_admin_email": "admin@jana-distribution.fr",
        "email_notify_new_order": True,
    },
}


def seed():
    init_db()
    session = SessionLocal()
    try:
        if not session.query(User).filter(User.email == ADMIN_EMAIL).first():
            session.add(User(
                email=ADMIN_EMAIL,
                password_hash=get_password_hash(ADMIN_PASSWORD),
                first_name="Admin",
                last_name="Jana",
                role=UserRole.ADMIN.value,
                accepts_terms=True,
            ))
            print(f"Admin {ADMIN_EMAIL} created")

        categories = []
        for position, (name, color, icon) in enumerate(CATEGORIES, start=1):
            slug = slugify(name)
            category = session.query(Category).filter(Category.slug == slug).first()
            if category is None:
                category = Category(name=name, slug=slug, color=color, icon=icon, position=position)
                session.add(category)
                session.flush()
            categories.append(category)

        created = 0
        for ref, name, cat_idx, price, promo, rate, unit, stock, labels in PRODUCTS:
            if session.query(Product).filter(Product.reference == ref).first():
                continue
            session.add(Product(
                reference=ref, name=name, slug=slugify(name), price=price, promo_price=promo, tax_rate=rate,
                unit=unit, stock_quantity=stock, labels=labels, category_id=categories[cat_idx].id,
                is_featured=promo is not None,
            ))
            created += 1
        session.commit()
        print(f"{len(categories)} categories, {created} new products")

        # Only missing keys are written; existing values are left untouched
        repo = SettingsRepository(session)
        existing = {row.key for row in repo.find_all()}
        missing = {
            category: {k: v for k, v in values.items() if k not in existing}
            for category, values in DEFAULT_SETTINGS.items()
        }
        repo.upsert_many({c: v for c, v in missing.items() if v})
        print("Default settings ensured")
    finally:
        session.close()


if __name__ == "__main__":
    seed()
