# schoolshop/repos/catalog_repo.py
from typing import Iterable, Sequence

from sqlalchemy import or_, func
from sqlalchemy.orm import Session, selectinload

from schoolshop.data.models.category import CategoryModel
from schoolshop.data.models.product import ProductModel
from schoolshop.utils.retry import db_read_retry

SORTABLE_FIELDS = {"name", "price", "stock", "created_at"}


class CatalogRepo:
    def __init__(self, db: Session):
        self.db = db

    # odczyty - jedna ponowna proba przy bledzie polaczenia
    @db_read_retry()
    def get_product(self, product_id: int) -> ProductModel | None:
        return self.db.get(ProductModel, product_id)

    @db_read_retry()
    def get_products(self, product_ids: Iterable[int]) -> dict[int, ProductModel]:
        ids = list(product_ids)
        if not ids:
            return {}
        rows = (
            self.db.query(ProductModel)
            .filter(ProductModel.id.in_(ids))
            .all()
        )
        return {p.id: p for p in rows}

    @db_read_retry()
    def list_products(
        self,
        search: str | None = None,
        category_id: int | None = None,
        sort_by: str = "name",
        ascending: bool = True,
        page: int = 1,
        per_page: int = 12,
        only_active: bool = True,
    ) -> tuple[Sequence[ProductModel], int]:
        query = self.db.query(ProductModel).options(selectinload(ProductModel.category))

        if only_active:
            query = query.filter(ProductModel.is_active.is_(True))
        if search:
            pattern = f"%{search.lower()}%"
            query = query.filter(
                or_(
                    func.lower(ProductModel.name).like(pattern),
                    func.lower(ProductModel.description).like(pattern),
                )
            )
        if category_id:
            query = query.filter(ProductModel.category_id == category_id)

        total = query.count()

        column = getattr(ProductModel, sort_by if sort_by in SORTABLE_FIELDS else "name")
        query = query.order_by(column.asc() if ascending else column.desc(), ProductModel.id)

        offset = (max(page, 1) - 1) * per_page
        return query.offset(offset).limit(per_page).all(), total

    @db_read_retry()
    def list_categories(self) -> Sequence[CategoryModel]:
        return (
            self.db.query(CategoryModel)
            .filter(CategoryModel.is_active.is_(True))
            .order_by(CategoryModel.name)
            .all()
        )

    @db_read_retry()
    def list_low_stock(self, threshold: int, limit: int = 10) -> Sequence[ProductModel]:
        return (
            self.db.query(ProductModel)
            .filter(ProductModel.stock < threshold)
            .order_by(ProductModel.stock.asc())
            .limit(limit)
            .all()
        )

    @db_read_retry()
    def all_products(self) -> Sequence[ProductModel]:
        return self.db.query(ProductModel).all()

    # zapisy
    def add(self, obj):
        self.db.add(obj)
        self.db.commit()
        self.db.refresh(obj)
        return obj

    def save(self, obj):
        self.db.commit()
        self.db.refresh(obj)
        return obj

    def delete(self, obj) -> None:
        self.db.delete(obj)
        self.db.commit()

    def rollback(self) -> None:
        self.db.rollback()
