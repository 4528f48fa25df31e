# kibbledrop/data/seed.py
from decimal import Decimal

from kibbledrop.data.database import SessionLocal, init_db
from kibbledrop.data.models import UserModel, ProductModel, WeightVariantModel
from kibbledrop.repos.user_repo import UserRepo
from kibbledrop.services.auth_service import hash_password
from kibbledrop.utils.settings import ADMIN_EMAIL, ADMIN_PASSWORD
from kibbledrop.utils.logging import get_logger

logger = get_logger(__name__)

PRODUCTS = [
    {
        "name": "Premium Adult Dog Food",
        "description": "Complete nutrition for adult dogs with real chicken as the first ingredient.",
        "price": Decimal("449.99"),
        "category": "dry-food",
        "pet_type": "dog",
        "brand": "KibbleDrop",
        "life_stage": "adult",
        "food_type": "dry",
        "protein": "26%",
        "fat": "16%",
        "fiber": "4%",
        "moisture": "10%",
        "featured": True,
        "variants": [("2kg", "189.99"), ("7kg", "449.99"), ("15kg", "849.99")],
    },
    {
        "name": "Puppy Growth Formula",
        "description": "DHA-rich kibble for healthy brain and eye development.",
        "price": Decimal("399.99"),
        "category": "dry-food",
        "pet_type": "dog",
        "brand": "KibbleDrop",
        "life_stage": "puppy",
        "food_type": "dry",
        "featured": True,
        "variants": [("2kg", "169.99"), ("7kg", "399.99")],
    },
    {
        "name": "Indoor Cat Formula",
        "description": "Hairball control and weight management for indoor cats.",
        "price": Decimal("329.99"),
        "category": "dry-food",
        "pet_type": "cat",
        "brand": "KibbleDrop",
        "life_stage": "adult",
        "food_type": "dry",
        "featured": False,
        "variants": [("1.5kg", "149.99"), ("4kg", "329.99")],
    },
    {
        "name": "Salmon Pate",
        "description": "Grain free wet food with wild salmon.",
        "price": Decimal("24.99"),
        "category": "wet-food",
        "pet_type": "cat",
        "food_type": "wet",
        "featured": False,
        "variants": [],
    },
]


def seed():
    db = SessionLocal()
    try:
        users = UserRepo(db)
        if not users.get_by_email(ADMIN_EMAIL):
            users.add(
                UserModel(
                    email=ADMIN_EMAIL,
                    name="KibbleDrop Admin",
                    password_hash=hash_password(ADMIN_PASSWORD),
                    role="admin",
                )
            )
            logger.info(f"Seeded admin user {ADMIN_EMAIL}")

        # not forcing: products only seeded into an empty catalog
        if db.query(ProductModel).first() is None:
            for data in PRODUCTS:
                data = dict(data)
                variants = data.pop("variants")
                product = ProductModel(**data)
                product.variants = [
                    WeightVariantModel(weight=w, price=Decimal(p)) for w, p in variants
                ]
                db.add(product)
            logger.info(f"Seeded {len(PRODUCTS)} products")

        db.commit()
    finally:
        db.close()


if __name__ == "__main__":
    init_db()
    seed()
