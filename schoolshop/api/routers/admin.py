# schoolshop/api/routers/admin.py
from typing import List, Literal

from fastapi import APIRouter, Depends, Header, Request
from sqlalchemy.orm import Session

from schoolshop.api.deps import bearer_token, get_file_storage, get_storage, require_admin
from schoolshop.api.errors import raise_http
from schoolshop.api.routers.catalog import product_out
from schoolshop.data.database import get_db
from schoolshop.data.models.admin_user import AdminUserModel
from schoolshop.domain.errors import ShopError, ValidationError
from schoolshop.domain.schemas import (
    AdminAccountCreate,
    AdminAccountOut,
    AdminAccountUpdate,
    CategoryCreate,
    CategoryOut,
    DashboardOut,
    LoginIn,
    LoginOut,
    OrderOut,
    PaymentStatusIn,
    ProductCreate,
    ProductOut,
    ProductUpdate,
    SweepOut,
)
from schoolshop.services.auth_service import AuthService
from schoolshop.services.catalog_service import CatalogService
from schoolshop.services.file_storage import FileStorageClient
from schoolshop.services.order_expiry import sweep_expired_orders
from schoolshop.services.order_service import OrderService
from schoolshop.services.storage import KeyValueStorage

router = APIRouter(prefix="/admin", tags=["admin"])

MAX_UPLOAD_BYTES = 5 * 1024 * 1024
IMAGE_TYPES = {"image/png", "image/jpeg", "image/webp"}


async def _read_image(request: Request, content_type: str | None) -> tuple[bytes, str]:
    content_type = (content_type or "").split(";")[0].strip().lower()
    if content_type not in IMAGE_TYPES:
        raise ValidationError(f"Unsupported image type: {content_type or 'missing'}")
    data = await request.body()
    if not data:
        raise ValidationError("Empty upload")
    if len(data) > MAX_UPLOAD_BYTES:
        raise ValidationError("Image is larger than 5 MB")
    return data, content_type


# --- tozsamosc ---

@router.post("/login", response_model=LoginOut)
def login(
    payload: LoginIn,
    db: Session = Depends(get_db),
    storage: KeyValueStorage = Depends(get_storage),
):
    try:
        token, user = AuthService(db, storage).sign_in(payload.email, payload.password)
    except ShopError as e:
        raise_http(e)
    return LoginOut(token=token, role=user.role, email=user.email)


@router.post("/logout", status_code=204)
def logout(
    token: str | None = Depends(bearer_token),
    db: Session = Depends(get_db),
    storage: KeyValueStorage = Depends(get_storage),
):
    if not token:
        return
    try:
        AuthService(db, storage).sign_out(token)
    except ShopError as e:
        raise_http(e)


# --- konta administratorow ---

@router.get("/accounts", response_model=List[AdminAccountOut], dependencies=[Depends(require_admin)])
def list_accounts(
    db: Session = Depends(get_db),
    storage: KeyValueStorage = Depends(get_storage),
):
    return AuthService(db, storage).list_accounts()


@router.post("/accounts", response_model=AdminAccountOut, status_code=201, dependencies=[Depends(require_admin)])
def create_account(
    payload: AdminAccountCreate,
    db: Session = Depends(get_db),
    storage: KeyValueStorage = Depends(get_storage),
):
    try:
        return AuthService(db, storage).create_account(payload.email, payload.name, payload.password)
    except ShopError as e:
        raise_http(e)


@router.patch("/accounts/{user_id}", response_model=AdminAccountOut, dependencies=[Depends(require_admin)])
def update_account(
    user_id: int,
    payload: AdminAccountUpdate,
    db: Session = Depends(get_db),
    storage: KeyValueStorage = Depends(get_storage),
):
    try:
        return AuthService(db, storage).update_account(user_id, **payload.model_dump(exclude_unset=True))
    except ShopError as e:
        raise_http(e)


@router.delete("/accounts/{user_id}", status_code=204)
def delete_account(
    user_id: int,
    admin: AdminUserModel = Depends(require_admin),
    db: Session = Depends(get_db),
    storage: KeyValueStorage = Depends(get_storage),
):
    try:
        AuthService(db, storage).delete_account(user_id, acting_user=admin)
    except ShopError as e:
        raise_http(e)


# --- zamowienia ---

@router.get("/orders", response_model=List[OrderOut], dependencies=[Depends(require_admin)])
def list_orders(
    payment_status: Literal["pending", "paid", "failed"] | None = None,
    db: Session = Depends(get_db),
):
    try:
        return OrderService(db).list_orders(payment_status)
    except ShopError as e:
        raise_http(e)


@router.patch(
    "/orders/{order_number}/payment",
    response_model=OrderOut,
    dependencies=[Depends(require_admin)],
)
def update_payment(
    order_number: str,
    payload: PaymentStatusIn,
    db: Session = Depends(get_db),
):
    try:
        return OrderService(db).update_payment_status(
            order_number, payload.payment_status, payload.payment_proof
        )
    except ShopError as e:
        raise_http(e)


@router.post(
    "/orders/{order_number}/payment-proof",
    response_model=OrderOut,
    dependencies=[Depends(require_admin)],
)
async def upload_payment_proof(
    order_number: str,
    request: Request,
    content_type: str | None = Header(default=None),
    db: Session = Depends(get_db),
    file_storage: FileStorageClient = Depends(get_file_storage),
):
    try:
        data, content_type = await _read_image(request, content_type)
        return OrderService(db, file_storage).attach_payment_proof(order_number, data, content_type)
    except ShopError as e:
        raise_http(e)


@router.delete("/orders/{order_id}", status_code=204, dependencies=[Depends(require_admin)])
def delete_order(order_id: int, db: Session = Depends(get_db)):
    try:
        OrderService(db).delete_order(order_id)
    except ShopError as e:
        raise_http(e)


@router.post("/orders/sweep", response_model=SweepOut, dependencies=[Depends(require_admin)])
def sweep(db: Session = Depends(get_db)):
    result = sweep_expired_orders(db)
    return SweepOut(success=result.success, deleted_count=result.deleted_count, error=result.error)


@router.get("/dashboard", response_model=DashboardOut, dependencies=[Depends(require_admin)])
def dashboard(
    db: Session = Depends(get_db),
    file_storage: FileStorageClient = Depends(get_file_storage),
):
    stats = OrderService(db).dashboard()
    stats["low_stock_products"] = [product_out(p, file_storage) for p in stats["low_stock_products"]]
    return stats


# --- katalog ---

@router.post("/categories", response_model=CategoryOut, status_code=201, dependencies=[Depends(require_admin)])
def create_category(payload: CategoryCreate, db: Session = Depends(get_db)):
    try:
        return CatalogService(db).create_category(payload.name, payload.description)
    except ShopError as e:
        raise_http(e)


@router.post("/products", response_model=ProductOut, status_code=201, dependencies=[Depends(require_admin)])
def create_product(
    payload: ProductCreate,
    db: Session = Depends(get_db),
    file_storage: FileStorageClient = Depends(get_file_storage),
):
    try:
        product = CatalogService(db, file_storage).create_product(payload.model_dump())
    except ShopError as e:
        raise_http(e)
    return product_out(product, file_storage)


@router.patch("/products/{product_id}", response_model=ProductOut, dependencies=[Depends(require_admin)])
def update_product(
    product_id: int,
    payload: ProductUpdate,
    db: Session = Depends(get_db),
    file_storage: FileStorageClient = Depends(get_file_storage),
):
    try:
        product = CatalogService(db, file_storage).update_product(
            product_id, payload.model_dump(exclude_unset=True)
        )
    except ShopError as e:
        raise_http(e)
    return product_out(product, file_storage)


@router.delete("/products/{product_id}", status_code=204, dependencies=[Depends(require_admin)])
def delete_product(
    product_id: int,
    db: Session = Depends(get_db),
    file_storage: FileStorageClient = Depends(get_file_storage),
):
    try:
        CatalogService(db, file_storage).delete_product(product_id)
    except ShopError as e:
        raise_http(e)


@router.post("/products/{product_id}/image", response_model=ProductOut, dependencies=[Depends(require_admin)])
async def upload_product_image(
    product_id: int,
    request: Request,
    content_type: str | None = Header(default=None),
    db: Session = Depends(get_db),
    file_storage: FileStorageClient = Depends(get_file_storage),
):
    try:
        data, content_type = await _read_image(request, content_type)
        product = CatalogService(db, file_storage).set_product_image(product_id, data, content_type)
    except ShopError as e:
        raise_http(e)
    return product_out(product, file_storage)
