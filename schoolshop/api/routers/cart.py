# schoolshop/api/routers/cart.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from schoolshop.api.deps import get_cart_store
from schoolshop.api.errors import raise_http
from schoolshop.data.database import get_db
from schoolshop.domain.errors import ProductNotFoundError, ShopError
from schoolshop.domain.schemas import CartItemIn, CartOut, QuantityIn
from schoolshop.services.cart_store import CartStore
from schoolshop.services.catalog_service import CatalogService

router = APIRouter(prefix="/cart", tags=["cart"])


def cart_out(cart: CartStore, catalog: CatalogService) -> CartOut:
    items = cart.get_cart_items()
    products = catalog.get_products(items.keys())

    lines = []
    for pid, item in items.items():
        product = products.get(pid)
        lines.append(
            {
                "product_id": pid,
                "quantity": item.quantity,
                "price": item.price,
                "subtotal": item.subtotal,
                "name": product.name if product else None,
                # produkt usuniety z katalogu = stan 0
                "available_stock": product.stock if product and product.is_active else 0,
            }
        )

    return CartOut(
        session_id=cart.session_id,
        items=lines,
        total_quantity=cart.get_total_quantity(),
        total_amount=cart.get_total_amount(),
    )


def _live_stock(catalog: CatalogService, product_id: int) -> int:
    try:
        product = catalog.get_product(product_id)
    except ProductNotFoundError:
        return 0
    return product.stock if product.is_active else 0


@router.get("", response_model=CartOut)
def get_cart(cart: CartStore = Depends(get_cart_store), db: Session = Depends(get_db)):
    try:
        return cart_out(cart, CatalogService(db))
    except ShopError as e:
        raise_http(e)


@router.post("/items", response_model=CartOut)
def add_item(
    payload: CartItemIn,
    cart: CartStore = Depends(get_cart_store),
    db: Session = Depends(get_db),
):
    catalog = CatalogService(db)
    try:
        product = catalog.get_product(payload.product_id)
        if not product.is_active:
            raise ProductNotFoundError(payload.product_id)
        cart.add_to_cart(product)
        return cart_out(cart, catalog)
    except ShopError as e:
        raise_http(e)


@router.put("/items/{product_id}", response_model=CartOut)
def update_item(
    product_id: int,
    payload: QuantityIn,
    cart: CartStore = Depends(get_cart_store),
    db: Session = Depends(get_db),
):
    catalog = CatalogService(db)
    try:
        cart.update_quantity(product_id, payload.quantity, _live_stock(catalog, product_id))
        return cart_out(cart, catalog)
    except ShopError as e:
        raise_http(e)


@router.post("/items/{product_id}/increment", response_model=CartOut)
def increment_item(
    product_id: int,
    cart: CartStore = Depends(get_cart_store),
    db: Session = Depends(get_db),
):
    catalog = CatalogService(db)
    try:
        cart.increment_quantity(product_id, _live_stock(catalog, product_id))
        return cart_out(cart, catalog)
    except ShopError as e:
        raise_http(e)


@router.post("/items/{product_id}/decrement", response_model=CartOut)
def decrement_item(
    product_id: int,
    cart: CartStore = Depends(get_cart_store),
    db: Session = Depends(get_db),
):
    try:
        cart.decrement_quantity(product_id)
        return cart_out(cart, CatalogService(db))
    except ShopError as e:
        raise_http(e)


@router.delete("/items/{product_id}", response_model=CartOut)
def remove_item(
    product_id: int,
    cart: CartStore = Depends(get_cart_store),
    db: Session = Depends(get_db),
):
    try:
        cart.remove_from_cart(product_id)
        return cart_out(cart, CatalogService(db))
    except ShopError as e:
        raise_http(e)


@router.delete("", response_model=CartOut)
def clear_cart(cart: CartStore = Depends(get_cart_store), db: Session = Depends(get_db)):
    try:
        cart.clear_cart()
        return cart_out(cart, CatalogService(db))
    except ShopError as e:
        raise_http(e)
