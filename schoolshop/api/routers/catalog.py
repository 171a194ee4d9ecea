# schoolshop/api/routers/catalog.py
from typing import List, Literal

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from schoolshop.api.deps import get_file_storage
from schoolshop.api.errors import raise_http
from schoolshop.data.database import get_db
from schoolshop.domain.errors import ProductNotFoundError, ShopError
from schoolshop.domain.schemas import CategoryOut, ProductOut, ProductPage
from schoolshop.services.catalog_service import CatalogService
from schoolshop.services.file_storage import FileStorageClient

router = APIRouter(tags=["catalog"])


def product_out(product, file_storage: FileStorageClient) -> ProductOut:
    out = ProductOut.model_validate(product)
    out.image_url = file_storage.public_url(product.image)
    return out


@router.get("/products", response_model=ProductPage)
def list_products(
    search: str | None = Query(None, max_length=100),
    category_id: int | None = Query(None, gt=0),
    sort_by: Literal["name", "price", "stock", "created_at"] = "name",
    direction: Literal["asc", "desc"] = "asc",
    page: int = Query(1, ge=1),
    per_page: int = Query(12, ge=1, le=100),
    db: Session = Depends(get_db),
    file_storage: FileStorageClient = Depends(get_file_storage),
):
    try:
        products, total = CatalogService(db).list_products(
            search=search,
            category_id=category_id,
            sort_by=sort_by,
            ascending=direction == "asc",
            page=page,
            per_page=per_page,
        )
    except ShopError as e:
        raise_http(e)

    return ProductPage(
        items=[product_out(p, file_storage) for p in products],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.get("/products/{product_id}", response_model=ProductOut)
def get_product(
    product_id: int,
    db: Session = Depends(get_db),
    file_storage: FileStorageClient = Depends(get_file_storage),
):
    try:
        product = CatalogService(db).get_product(product_id)
    except ShopError as e:
        raise_http(e)
    if not product.is_active:
        raise_http(ProductNotFoundError(product_id))
    return product_out(product, file_storage)


@router.get("/categories", response_model=List[CategoryOut])
def list_categories(db: Session = Depends(get_db)):
    try:
        return CatalogService(db).list_categories()
    except ShopError as e:
        raise_http(e)
