# kibbledrop/services/product_service.py
from decimal import Decimal
from sqlalchemy.orm import Session

from kibbledrop.data.models.product import ProductModel, WeightVariantModel
from kibbledrop.domain.errors import NotFoundError
from kibbledrop.domain.schemas import ProductIn
from kibbledrop.repos.product_repo import ProductRepo
from kibbledrop.utils.logging import get_logger

logger = get_logger(__name__)

REQUIRED_FIELDS = ("name", "description", "price", "category", "pet_type")


class ProductService:
    """
    Catalog reads for everybody, writes for the admin routers.
    A product row and its weight variants are always written in one commit.
    """

    def __init__(self, db: Session):
        self.repo = ProductRepo(db)

    def list_products(self, pet_type: str | None = None, category: str | None = None,
                      featured: bool | None = None) -> list[ProductModel]:
        return self.repo.list_products(pet_type=pet_type, category=category, featured=featured)

    def get_product(self, product_id: int) -> ProductModel:
        product = self.repo.get_product(product_id)
        if not product:
            raise NotFoundError("Product not found")
        return product

    def create_product(self, payload: ProductIn) -> ProductModel:
        data = self._validated(payload)
        variants = data.pop("variants")

        try:
            product = ProductModel(**data)
            product.variants = [WeightVariantModel(**v) for v in variants]
            self.repo.add(product)
            self.repo.commit()
        except Exception:
            self.repo.rollback()
            raise

        self.repo.refresh(product)
        logger.info(f"Product {product.id} created with {len(product.variants)} variants")
        return product

    def update_product(self, product_id: int, payload: ProductIn) -> ProductModel:
        product = self.get_product(product_id)
        data = self._validated(payload)
        variants = data.pop("variants")

        try:
            for field, value in data.items():
                setattr(product, field, value)
            # delete-orphan drops the old rows
            product.variants = [WeightVariantModel(**v) for v in variants]
            self.repo.db.flush()
            self.repo.commit()
        except Exception:
            self.repo.rollback()
            raise

        self.repo.refresh(product)
        logger.info(f"Product {product.id} updated, variants replaced ({len(product.variants)})")
        return product

    def delete_product(self, product_id: int):
        product = self.get_product(product_id)

        if self.repo.subscription_reference_count(product_id):
            raise ValueError("Cannot delete product that is part of active subscriptions")

        try:
            self.repo.detach_product(product_id)
            self.repo.delete(product)
            self.repo.commit()
        except Exception:
            self.repo.rollback()
            raise

        logger.info(f"Product {product_id} deleted")

    @staticmethod
    def _validated(payload: ProductIn) -> dict:
        data = payload.model_dump()
        missing = [f for f in REQUIRED_FIELDS if data.get(f) in (None, "")]
        if missing:
            raise ValueError(f"Missing required fields: {', '.join(missing)}")
        if Decimal(data["price"]) <= 0:
            raise ValueError("Price must be greater than 0")

        labels = [v["weight"] for v in data["variants"]]
        if len(labels) != len(set(labels)):
            raise ValueError("Duplicate weight variant")
        return data
