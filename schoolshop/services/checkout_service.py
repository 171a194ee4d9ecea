# schoolshop/services/checkout_service.py
import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from schoolshop.data.models.order import OrderModel
from schoolshop.data.models.product import ProductModel
from schoolshop.domain.errors import (
    CartConflictError,
    CartEmptyError,
    CartPersistenceError,
    InsufficientStockError,
    OrderPersistenceError,
    PersistenceError,
    RenderError,
    ValidationError,
)
from schoolshop.repos.catalog_repo import CatalogRepo
from schoolshop.repos.order_repo import OrderDraft, OrderLine, OrderRepo
from schoolshop.services.cart_store import CartStore, LineItem
from schoolshop.services.handoff import build_handoff_url
from schoolshop.services.receipt import Receipt, ReceiptLine, render_receipt
from schoolshop.services.storage import KeyValueStorage, StorageError
from schoolshop.utils.settings import VERIFY_CATALOG_PRICES
from schoolshop.utils.logging import get_logger

logger = get_logger(__name__)

CONTACT_FIELDS = ("customer_name", "customer_email", "customer_phone")


class CheckoutStep(str, Enum):
    CART_NOT_EMPTY = "cart_not_empty"
    STOCK_VALIDATED = "stock_validated"
    ORDER_PERSISTED = "order_persisted"
    RECEIPT_GENERATED = "receipt_generated"
    RECEIPT_DOWNLOADED = "receipt_downloaded"  # nota dolaczona do odpowiedzi
    HANDOFF_COMPOSED = "handoff_composed"
    CART_CLEARED = "cart_cleared"


@dataclass
class CheckoutResult:
    order: OrderModel
    receipt: Receipt | None = None
    handoff_url: str | None = None
    warnings: List[str] = field(default_factory=list)
    completed: List[CheckoutStep] = field(
        default_factory=lambda: [
            CheckoutStep.CART_NOT_EMPTY,
            CheckoutStep.STOCK_VALIDATED,
            CheckoutStep.ORDER_PERSISTED,
        ]
    )

    @property
    def step(self) -> CheckoutStep:
        """Ostatni krok, ktory sie udal."""
        return self.completed[-1]

    def advance(self, step: CheckoutStep) -> None:
        self.completed.append(step)


def customer_key(session_id: str) -> str:
    return f"customer_{session_id}"


def load_customer_prefill(storage: KeyValueStorage, session_id: str) -> dict:
    try:
        raw = storage.get(customer_key(session_id))
        data = json.loads(raw) if raw else {}
    except (StorageError, ValueError) as e:
        logger.warning(f"Cannot read customer prefill for {session_id}: {e}")
        return {}
    if not isinstance(data, dict):
        return {}
    return {k: str(data.get(k, "")) for k in CONTACT_FIELDS}


class CheckoutService:
    """
    Zamiana koszyka w zamowienie, liniowo:
    CART_NOT_EMPTY -> STOCK_VALIDATED -> ORDER_PERSISTED -> RECEIPT_GENERATED
    -> RECEIPT_DOWNLOADED -> HANDOFF_COMPOSED -> CART_CLEARED

    Bledy przed zapisem zamowienia koncza probe i zostawiaja koszyk.
    Bledy po zapisie (nota, link) tylko dopisuja ostrzezenie - zamowienie istnieje.
    """

    def __init__(
        self,
        db: Session,
        cart: CartStore,
        storage: KeyValueStorage,
        verify_prices: bool = VERIFY_CATALOG_PRICES,
        renderer: Callable[..., Receipt] = render_receipt,
    ):
        self.cart = cart
        self.storage = storage
        self.catalog = CatalogRepo(db)
        self.orders = OrderRepo(db, verify_prices=verify_prices)
        self.renderer = renderer

    def submit_checkout(self, customer, notes: str | None = None) -> CheckoutResult:
        session_id = self.cart.session_id

        if self.cart.is_empty():
            raise CartEmptyError()
        for name in CONTACT_FIELDS:
            if not str(getattr(customer, name, "") or "").strip():
                raise ValidationError(f"Missing required field: {name}")

        items = self.cart.get_cart_items()

        # 1. stan magazynu z katalogu, nie z koszyka
        products = self._load_products(items)
        self._validate_stock(items, products)
        logger.info(f"Checkout {session_id}: {CheckoutStep.STOCK_VALIDATED.value}")

        self._remember_customer(customer)

        # 2. zapis zamowienia - bez ponawiania, zeby nie dublowac zamowien
        draft = OrderDraft(
            session_id=session_id,
            customer_name=customer.customer_name.strip(),
            customer_email=str(customer.customer_email).strip(),
            customer_phone=customer.customer_phone.strip(),
            notes=(notes or "").strip() or None,
            total_amount=self.cart.get_total_amount(),
            items=[
                OrderLine(product_id=i.product_id, quantity=i.quantity, price=i.price)
                for i in items.values()
            ],
        )
        try:
            order = self.orders.create_order(draft)
        except SQLAlchemyError as e:
            logger.error(f"Checkout {session_id}: order creation failed: {e}")
            raise OrderPersistenceError("Could not create order, please try again") from e

        result = CheckoutResult(order=order)
        logger.info(f"Checkout {session_id}: order {order.order_number} created")

        lines = [
            ReceiptLine(name=products[pid].name, quantity=item.quantity, price=item.price)
            for pid, item in items.items()
        ]

        # 3. nota
        try:
            receipt = self.renderer(order, lines)
            result.advance(CheckoutStep.RECEIPT_GENERATED)
            # nota wraca do klienta w odpowiedzi na checkout
            result.receipt = receipt
            result.advance(CheckoutStep.RECEIPT_DOWNLOADED)
        except RenderError as e:
            logger.warning(f"Checkout {session_id}: receipt skipped for {order.order_number}: {e}")
            result.warnings.append(
                "Receipt could not be generated, download it later from the order history"
            )

        # 4. link do WhatsApp
        try:
            result.handoff_url = build_handoff_url(order, lines)
            result.advance(CheckoutStep.HANDOFF_COMPOSED)
        except ValueError as e:
            logger.warning(f"Checkout {session_id}: handoff skipped for {order.order_number}: {e}")
            result.warnings.append("Payment message could not be prepared, contact the shop directly")

        # 5. czyszczenie koszyka - zamowienie jest juz zapisane
        try:
            self.cart.clear_cart()
            result.advance(CheckoutStep.CART_CLEARED)
        except (CartPersistenceError, CartConflictError) as e:
            logger.warning(f"Checkout {session_id}: cart not cleared: {e}")
            result.warnings.append("Cart could not be cleared, remove the items manually")

        return result

    def _load_products(self, items: Dict[int, LineItem]) -> Dict[int, ProductModel]:
        try:
            return self.catalog.get_products(items.keys())
        except SQLAlchemyError as e:
            logger.error(f"Catalog read failed during checkout: {e}")
            raise PersistenceError("Could not verify stock, please try again") from e

    @staticmethod
    def _validate_stock(items: Dict[int, LineItem], products: Dict[int, ProductModel]) -> None:
        for pid, item in items.items():
            product = products.get(pid)
            # produkt usuniety z katalogu = stan 0
            available = product.stock if product is not None and product.is_active else 0
            if item.quantity > available:
                raise InsufficientStockError(
                    pid,
                    available,
                    item.quantity,
                    product.name if product is not None else None,
                )

    def _remember_customer(self, customer) -> None:
        data = {name: str(getattr(customer, name)).strip() for name in CONTACT_FIELDS}
        try:
            self.storage.set(customer_key(self.cart.session_id), json.dumps(data))
        except StorageError as e:
            logger.warning(f"Cannot store customer prefill: {e}")
