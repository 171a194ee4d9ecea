# schoolshop/data/seed.py
import os
from decimal import Decimal

from schoolshop.data.database import SessionLocal, init_db
from schoolshop.data.models import CategoryModel, ProductModel
from schoolshop.services.auth_service import AuthService
from schoolshop.services.storage import create_storage
from schoolshop.utils.logging import get_logger

logger = get_logger(__name__)

CATEGORIES = {
    "Alat Tulis": [
        ("Pensil 2B", "PEN-2B", Decimal("3500"), 120),
        ("Penghapus", "PHP-01", Decimal("2000"), 80),
        ("Krayon 12 Warna", "KRY-12", Decimal("25000"), 30),
    ],
    "Buku": [
        ("Buku Gambar A4", "BKG-A4", Decimal("8000"), 60),
        ("Buku Tulis 38 Lembar", "BKT-38", Decimal("5000"), 200),
    ],
    "Mainan Edukasi": [
        ("Puzzle Huruf", "PZL-AB", Decimal("45000"), 8),
    ],
}


def seed():
    init_db()
    db = SessionLocal()
    try:
        # not forcing: only seed if empty
        if db.query(CategoryModel).first() is None:
            for name, products in CATEGORIES.items():
                category = CategoryModel(name=name, is_active=True)
                db.add(category)
                db.flush()
                for product_name, sku, price, stock in products:
                    db.add(
                        ProductModel(
                            name=product_name,
                            sku=sku,
                            price=price,
                            stock=stock,
                            category_id=category.id,
                        )
                    )
            db.commit()
            logger.info("Seeded catalog")

        email = os.getenv("SEED_ADMIN_EMAIL")
        password = os.getenv("SEED_ADMIN_PASSWORD")
        if email and password:
            AuthService(db, create_storage()).create_admin(email, "Administrator", password)
            logger.info(f"Admin account {email} ready")
    finally:
        db.close()


if __name__ == "__main__":
    seed()
