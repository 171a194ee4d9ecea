# schoolshop/repos/order_repo.py
import secrets
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Sequence

from sqlalchemy.orm import Session, selectinload

from schoolshop.data.models.order import OrderModel
from schoolshop.data.models.order_item import OrderItemModel
from schoolshop.data.models.product import ProductModel
from schoolshop.domain.errors import (
    InsufficientStockError,
    InvalidTransitionError,
    OrderNotFoundError,
    PriceMismatchError,
    TotalMismatchError,
)
from schoolshop.utils.retry import db_read_retry


@dataclass
class OrderLine:
    product_id: int
    quantity: int
    price: Decimal

    @property
    def total(self) -> Decimal:
        return self.price * self.quantity


@dataclass
class OrderDraft:
    session_id: str
    customer_name: str
    customer_email: str
    customer_phone: str
    total_amount: Decimal
    notes: str | None = None
    items: List[OrderLine] = field(default_factory=list)


def generate_order_number(now: datetime | None = None) -> str:
    now = now or datetime.now(timezone.utc)
    return f"ORD-{now:%Y%m%d}-{secrets.token_hex(3).upper()}"


class OrderRepo:
    def __init__(self, db: Session, verify_prices: bool = True):
        self.db = db
        self.verify_prices = verify_prices

    def _with_items(self):
        return self.db.query(OrderModel).options(
            selectinload(OrderModel.items).selectinload(OrderItemModel.product)
        )

    def create_order(self, draft: OrderDraft) -> OrderModel:
        """
        Naglowek i pozycje w jednej transakcji - nie ma zamowien bez pozycji.
        Suma jest przeliczana z pozycji, niezgodnosc odrzuca zamowienie.
        """
        computed = sum((line.total for line in draft.items), Decimal("0.00"))
        if Decimal(str(draft.total_amount)) != computed:
            raise TotalMismatchError(draft.total_amount, computed)

        if self.verify_prices:
            products = {
                p.id: p
                for p in self.db.query(ProductModel)
                .filter(ProductModel.id.in_([line.product_id for line in draft.items]))
                .all()
            }
            for line in draft.items:
                product = products.get(line.product_id)
                if product is None:
                    raise InsufficientStockError(line.product_id, 0, line.quantity)
                if Decimal(str(product.price)) != Decimal(str(line.price)):
                    raise PriceMismatchError(line.product_id, line.price, product.price)

        order = OrderModel(
            order_number=generate_order_number(),
            session_id=draft.session_id,
            customer_name=draft.customer_name,
            customer_email=draft.customer_email,
            customer_phone=draft.customer_phone,
            notes=draft.notes,
            total_amount=computed,
            status="pending",
            payment_status="pending",
        )
        order.items = [
            OrderItemModel(
                product_id=line.product_id,
                quantity=line.quantity,
                price=line.price,
                total=line.total,
            )
            for line in draft.items
        ]

        try:
            self.db.add(order)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(order)
        return order

    @db_read_retry()
    def get_by_number(self, order_number: str) -> OrderModel | None:
        return self._with_items().filter(OrderModel.order_number == order_number).one_or_none()

    @db_read_retry()
    def list_orders(
        self,
        session_id: str | None = None,
        payment_status: str | None = None,
        limit: int | None = None,
    ) -> Sequence[OrderModel]:
        query = self._with_items()
        if session_id is not None:
            query = query.filter(OrderModel.session_id == session_id)
        if payment_status is not None:
            query = query.filter(OrderModel.payment_status == payment_status)
        query = query.order_by(OrderModel.created_at.desc(), OrderModel.id.desc())
        if limit:
            query = query.limit(limit)
        return query.all()

    def update_payment_status(
        self,
        order_number: str,
        payment_status: str,
        payment_proof: str | None = None,
    ) -> OrderModel:
        """
        pending -> paid | failed, bez powrotu.
        Przy oplaceniu stan magazynu jest ponownie sprawdzany i zmniejszany.
        """
        order = self.get_by_number(order_number)
        if order is None:
            raise OrderNotFoundError(order_number)

        if order.payment_status != "pending":
            raise InvalidTransitionError(order_number, order.payment_status, payment_status)

        try:
            if payment_status == "paid":
                for item in order.items:
                    product = self.db.get(ProductModel, item.product_id, with_for_update=True)
                    available = product.stock if product else 0
                    if available < item.quantity:
                        raise InsufficientStockError(
                            item.product_id,
                            available,
                            item.quantity,
                            product.name if product else None,
                        )
                    product.stock = available - item.quantity

                order.status = "processing"
                order.paid_at = datetime.now(timezone.utc)
                if payment_proof:
                    order.payment_proof = payment_proof
            else:
                order.status = "cancelled"

            order.payment_status = payment_status
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(order)
        return order

    def set_payment_proof(self, order_number: str, path: str) -> OrderModel:
        order = self.get_by_number(order_number)
        if order is None:
            raise OrderNotFoundError(order_number)
        order.payment_proof = path
        self.db.commit()
        self.db.refresh(order)
        return order

    def delete_order(self, order_id: int) -> bool:
        order = self.db.get(OrderModel, order_id)
        if order is None:
            return False
        self.db.delete(order)
        self.db.commit()
        return True

    def delete_expired_pending(self, cutoff: datetime) -> int:
        """Usuwa nieoplacone zamowienia starsze niz cutoff; pozycje znikaja przez ON DELETE CASCADE."""
        try:
            # predykat liczony w chwili DELETE - zamowienie oplacone w miedzyczasie zostaje
            deleted = (
                self.db.query(OrderModel)
                .filter(
                    OrderModel.payment_status == "pending",
                    OrderModel.created_at < cutoff,
                )
                .delete(synchronize_session=False)
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        return deleted

    @db_read_retry()
    def all_orders(self) -> Sequence[OrderModel]:
        return self.db.query(OrderModel).all()
