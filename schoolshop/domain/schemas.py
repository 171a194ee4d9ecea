# schoolshop/domain/schemas.py
from pydantic import BaseModel, Field, ConfigDict, EmailStr
from typing import List, Literal
from decimal import Decimal
from datetime import datetime


class CategoryOut(BaseModel):
    id: int
    name: str
    description: str | None = None

    model_config = ConfigDict(from_attributes=True)


class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: str | None = None


class ProductOut(BaseModel):
    """Produkt z katalogu (response)."""

    id: int
    name: str
    description: str | None = None
    sku: str | None = None
    price: Decimal
    stock: int
    image: str | None = None
    image_url: str | None = None
    is_active: bool
    category: CategoryOut | None = None

    model_config = ConfigDict(from_attributes=True)


class ProductPage(BaseModel):
    items: List[ProductOut]
    total: int
    page: int
    per_page: int


class ProductCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: str | None = None
    sku: str | None = None
    price: Decimal = Field(..., ge=0)
    stock: int = Field(0, ge=0)
    category_id: int | None = None
    is_active: bool = True


class ProductUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = None
    sku: str | None = None
    price: Decimal | None = Field(None, ge=0)
    stock: int | None = Field(None, ge=0)
    category_id: int | None = None
    is_active: bool | None = None


class CartItemIn(BaseModel):
    """Dodanie produktu do koszyka."""

    product_id: int = Field(..., gt=0)


class QuantityIn(BaseModel):
    # <= 0 usuwa pozycje
    quantity: int


class CartLineOut(BaseModel):
    product_id: int
    quantity: int
    price: Decimal
    subtotal: Decimal
    name: str | None = None
    available_stock: int


class CartOut(BaseModel):
    """Koszyk sesji (response)."""

    session_id: str
    items: List[CartLineOut]
    total_quantity: int
    total_amount: Decimal


class CustomerInfo(BaseModel):
    customer_name: str = Field(..., min_length=1, max_length=200)
    customer_email: EmailStr
    customer_phone: str = Field(..., min_length=6, max_length=30)


class CheckoutIn(CustomerInfo):
    notes: str | None = Field(None, max_length=1000)


class CustomerPrefill(BaseModel):
    customer_name: str = ""
    customer_email: str = ""
    customer_phone: str = ""


class OrderItemOut(BaseModel):
    product_id: int
    quantity: int
    price: Decimal
    total: Decimal
    product_name: str | None = None


class OrderOut(BaseModel):
    """Zamowienie (response)."""

    id: int
    order_number: str
    session_id: str
    customer_name: str
    customer_email: str
    customer_phone: str
    notes: str | None = None
    status: str
    payment_status: str
    payment_proof: str | None = None
    total_amount: Decimal
    created_at: datetime
    paid_at: datetime | None = None
    items: List[OrderItemOut]


class ReceiptOut(BaseModel):
    filename: str
    content_type: str
    verification_token: str
    image_base64: str


class CheckoutOut(BaseModel):
    order: OrderOut
    receipt: ReceiptOut | None = None
    handoff_url: str | None = None
    warnings: List[str] = []


class PaymentStatusIn(BaseModel):
    payment_status: Literal["paid", "failed"]
    payment_proof: str | None = None


class LoginIn(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class LoginOut(BaseModel):
    token: str
    role: str
    email: str


class SweepOut(BaseModel):
    success: bool
    deleted_count: int
    error: str | None = None


class DashboardOut(BaseModel):
    total_products: int
    low_stock: int
    out_of_stock: int
    total_stock_value: Decimal
    total_orders: int
    pending_orders: int
    paid_orders: int
    total_revenue: Decimal
    today_orders: int
    today_revenue: Decimal
    low_stock_products: List[ProductOut]


class AdminAccountOut(BaseModel):
    id: int
    email: str
    name: str
    role: str

    model_config = ConfigDict(from_attributes=True)


class AdminAccountCreate(BaseModel):
    email: EmailStr
    name: str = Field(..., min_length=1, max_length=200)
    password: str = Field(..., min_length=6, max_length=72)


class AdminAccountUpdate(BaseModel):
    """Pola pominiete zostaja bez zmian; password zmienia haslo."""

    email: EmailStr | None = None
    name: str | None = Field(None, min_length=1, max_length=200)
    password: str | None = Field(None, min_length=6, max_length=72)
