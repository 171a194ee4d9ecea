# schoolshop/services/order_service.py
from datetime import datetime, timezone
from decimal import Decimal
from typing import Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from schoolshop.data.models.order import OrderModel
from schoolshop.domain.errors import OrderNotFoundError, PersistenceError
from schoolshop.repos.catalog_repo import CatalogRepo
from schoolshop.repos.order_repo import OrderRepo
from schoolshop.services.file_storage import FileStorageClient
from schoolshop.services.order_expiry import sweep_expired_orders
from schoolshop.services.receipt import Receipt, ReceiptLine, render_receipt
from schoolshop.utils.settings import LOW_STOCK_THRESHOLD
from schoolshop.utils.logging import get_logger

logger = get_logger(__name__)

PAYMENT_STATUSES = ("pending", "paid", "failed")
PROOF_FOLDER = "payment-proofs"


def order_to_dict(order: OrderModel) -> dict:
    return {
        "id": order.id,
        "order_number": order.order_number,
        "session_id": order.session_id,
        "customer_name": order.customer_name,
        "customer_email": order.customer_email,
        "customer_phone": order.customer_phone,
        "notes": order.notes,
        "status": order.status,
        "payment_status": order.payment_status,
        "payment_proof": order.payment_proof,
        "total_amount": order.total_amount,
        "created_at": order.created_at,
        "paid_at": order.paid_at,
        "items": [
            {
                "product_id": i.product_id,
                "quantity": i.quantity,
                "price": i.price,
                "total": i.total,
                "product_name": i.product.name if i.product is not None else None,
            }
            for i in order.items
        ],
    }


def _same_day(value: datetime, today) -> bool:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).date() == today


class OrderService:
    """
    Serwis domeny zamowien (poza samym checkoutem):
    -historia zamowien sesji
    -listy dla administratora i zmiana statusu platnosci
    -dowody wplat i statystyki
    Widoki list uruchamiaja przy wejsciu sweep wygaslych zamowien.
    """

    def __init__(self, db: Session, file_storage: FileStorageClient | None = None):
        self.db = db
        self.repo = OrderRepo(db)
        self.catalog = CatalogRepo(db)
        self.file_storage = file_storage

    def _sweep_on_entry(self) -> None:
        result = sweep_expired_orders(self.db)
        if not result.success:
            logger.warning(f"Opportunistic sweep failed: {result.error}")

    def _list(self, **filters) -> Sequence[OrderModel]:
        try:
            return self.repo.list_orders(**filters)
        except SQLAlchemyError as e:
            logger.error(f"Listing orders failed: {e}")
            raise PersistenceError("Could not load orders") from e

    # queries
    def list_session_orders(self, session_id: str) -> list[dict]:
        self._sweep_on_entry()
        return [order_to_dict(o) for o in self._list(session_id=session_id)]

    def list_orders(self, payment_status: str | None = None) -> list[dict]:
        if payment_status is not None and payment_status not in PAYMENT_STATUSES:
            raise ValueError(f"Unknown payment status: {payment_status}")
        self._sweep_on_entry()
        return [order_to_dict(o) for o in self._list(payment_status=payment_status)]

    def get_session_order(self, order_number: str, session_id: str) -> OrderModel:
        order = self.repo.get_by_number(order_number)
        # cudze zamowienie wyglada jak nieistniejace
        if order is None or order.session_id != session_id:
            raise OrderNotFoundError(order_number)
        return order

    def session_receipt(self, order_number: str, session_id: str) -> Receipt:
        order = self.get_session_order(order_number, session_id)
        lines = [
            ReceiptLine(
                name=i.product.name if i.product is not None else f"Produk #{i.product_id}",
                quantity=i.quantity,
                price=i.price,
            )
            for i in order.items
        ]
        return render_receipt(order, lines)

    # commands
    def update_payment_status(
        self, order_number: str, payment_status: str, payment_proof: str | None = None
    ) -> dict:
        try:
            order = self.repo.update_payment_status(order_number, payment_status, payment_proof)
        except SQLAlchemyError as e:
            logger.error(f"Updating payment status of {order_number} failed: {e}")
            raise PersistenceError("Could not update order") from e

        logger.info(f"Order {order_number} payment status -> {payment_status}")
        return order_to_dict(order)

    def attach_payment_proof(self, order_number: str, data: bytes, content_type: str) -> dict:
        if self.repo.get_by_number(order_number) is None:
            raise OrderNotFoundError(order_number)

        extension = content_type.split("/")[-1] if "/" in content_type else "bin"
        path = self.file_storage.upload(
            data,
            folder=PROOF_FOLDER,
            prefix="payment-proof",
            extension=extension,
            content_type=content_type,
        )
        order = self.repo.set_payment_proof(order_number, path)
        logger.info(f"Payment proof {path} attached to order {order_number}")
        return order_to_dict(order)

    def delete_order(self, order_id: int) -> None:
        if not self.repo.delete_order(order_id):
            raise OrderNotFoundError(order_id)
        logger.info(f"Order {order_id} deleted")

    def dashboard(self, now: datetime | None = None) -> dict:
        now = now or datetime.now(timezone.utc)
        today = now.date()

        products = self.catalog.all_products()
        orders = self.repo.all_orders()
        paid = [o for o in orders if o.payment_status == "paid"]
        paid_today = [o for o in paid if _same_day(o.created_at, today)]

        return {
            "total_products": len(products),
            "low_stock": sum(1 for p in products if p.stock < LOW_STOCK_THRESHOLD),
            "out_of_stock": sum(1 for p in products if p.stock <= 0),
            "total_stock_value": sum((p.price * p.stock for p in products), Decimal("0.00")),
            "total_orders": len(orders),
            "pending_orders": sum(1 for o in orders if o.payment_status == "pending"),
            "paid_orders": len(paid),
            "total_revenue": sum((o.total_amount for o in paid), Decimal("0.00")),
            "today_orders": len(paid_today),
            "today_revenue": sum((o.total_amount for o in paid_today), Decimal("0.00")),
            "low_stock_products": self.catalog.list_low_stock(LOW_STOCK_THRESHOLD),
        }
