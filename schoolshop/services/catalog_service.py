# schoolshop/services/catalog_service.py
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from schoolshop.data.models.category import CategoryModel
from schoolshop.data.models.product import ProductModel
from schoolshop.domain.errors import (
    FileStorageError,
    NotFoundError,
    PersistenceError,
    ProductNotFoundError,
    ValidationError,
)
from schoolshop.repos.catalog_repo import CatalogRepo
from schoolshop.services.file_storage import FileStorageClient
from schoolshop.utils.logging import get_logger

logger = get_logger(__name__)

IMAGE_FOLDER = "product-images"


class CatalogService:
    def __init__(self, db: Session, file_storage: FileStorageClient | None = None):
        self.repo = CatalogRepo(db)
        self.file_storage = file_storage

    # query
    def get_product(self, product_id: int) -> ProductModel:
        try:
            product = self.repo.get_product(product_id)
        except SQLAlchemyError as e:
            logger.error(f"Catalog read failed for product {product_id}: {e}")
            raise PersistenceError("Catalog unavailable") from e
        if product is None:
            raise ProductNotFoundError(product_id)
        return product

    def get_products(self, product_ids) -> dict[int, ProductModel]:
        try:
            return self.repo.get_products(product_ids)
        except SQLAlchemyError as e:
            logger.error(f"Catalog read failed: {e}")
            raise PersistenceError("Catalog unavailable") from e

    def list_products(self, **filters):
        try:
            return self.repo.list_products(**filters)
        except SQLAlchemyError as e:
            logger.error(f"Catalog listing failed: {e}")
            raise PersistenceError("Catalog unavailable") from e

    def list_categories(self):
        try:
            return self.repo.list_categories()
        except SQLAlchemyError as e:
            logger.error(f"Category listing failed: {e}")
            raise PersistenceError("Catalog unavailable") from e

    # commands (admin)
    def create_category(self, name: str, description: str | None = None) -> CategoryModel:
        try:
            return self.repo.add(CategoryModel(name=name, description=description, is_active=True))
        except IntegrityError as e:
            self.repo.rollback()
            raise ValidationError(f"Category '{name}' already exists") from e

    def _check_category(self, category_id: int | None) -> None:
        if category_id is not None and self.repo.db.get(CategoryModel, category_id) is None:
            raise NotFoundError(f"Category {category_id} not found")

    def create_product(self, data: dict) -> ProductModel:
        self._check_category(data.get("category_id"))
        try:
            product = self.repo.add(ProductModel(**data))
        except IntegrityError as e:
            self.repo.rollback()
            raise ValidationError(f"Product with SKU '{data.get('sku')}' already exists") from e
        logger.info(f"Product {product.id} created")
        return product

    def update_product(self, product_id: int, changes: dict) -> ProductModel:
        product = self.get_product(product_id)
        if "category_id" in changes:
            self._check_category(changes["category_id"])
        for name, value in changes.items():
            setattr(product, name, value)
        try:
            product = self.repo.save(product)
        except IntegrityError as e:
            self.repo.rollback()
            raise ValidationError("Product update conflicts with an existing product") from e
        logger.info(f"Product {product_id} updated: {sorted(changes)}")
        return product

    def delete_product(self, product_id: int) -> None:
        product = self.get_product(product_id)
        image = product.image
        try:
            self.repo.delete(product)
        except IntegrityError as e:
            self.repo.rollback()
            raise ValidationError(
                f"Product {product_id} has orders, deactivate it instead of deleting"
            ) from e

        if image:
            self._remove_image(image)
        logger.info(f"Product {product_id} deleted")

    def set_product_image(self, product_id: int, data: bytes, content_type: str) -> ProductModel:
        product = self.get_product(product_id)
        extension = content_type.split("/")[-1] if "/" in content_type else "bin"
        path = self.file_storage.upload(
            data,
            folder=IMAGE_FOLDER,
            prefix=f"product-{product_id}",
            extension=extension,
            content_type=content_type,
        )
        old = product.image
        product.image = path
        product = self.repo.save(product)
        if old and old != path:
            self._remove_image(old)
        return product

    def _remove_image(self, path: str) -> None:
        # stary plik w storage nie blokuje operacji na produkcie
        try:
            self.file_storage.delete(path)
        except FileStorageError as e:
            logger.warning(f"Could not remove image {path}: {e}")
