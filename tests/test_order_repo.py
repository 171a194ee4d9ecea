import re
from decimal import Decimal

import pytest

from schoolshop.data.models import OrderItemModel, OrderModel
from schoolshop.domain.errors import (
    InsufficientStockError,
    InvalidTransitionError,
    OrderNotFoundError,
    PriceMismatchError,
    TotalMismatchError,
)
from schoolshop.repos.order_repo import OrderDraft, OrderLine, OrderRepo, generate_order_number


def _draft(*lines, total=None, session_id="session_1_abc") -> OrderDraft:
    items = [OrderLine(product_id=p.id, quantity=q, price=Decimal(str(p.price))) for p, q in lines]
    return OrderDraft(
        session_id=session_id,
        customer_name="Pak Budi",
        customer_email="budi@gmail.com",
        customer_phone="0811111111",
        total_amount=total if total is not None else sum((i.total for i in items), Decimal("0")),
        items=items,
    )


def test_generate_order_number_format() -> None:
    assert re.fullmatch(r"ORD-\d{8}-[0-9A-F]{6}", generate_order_number())


def test_create_order_writes_header_and_items(db, make_product) -> None:
    pencil = make_product(price="1000", stock=5)
    book = make_product(name="Buku Tulis", price="4500", stock=5)

    order = OrderRepo(db).create_order(_draft((pencil, 2), (book, 1)))

    assert order.total_amount == Decimal("6500")
    assert order.status == "pending"
    assert [(i.product_id, i.quantity, i.total) for i in order.items] == [
        (pencil.id, 2, Decimal("2000")),
        (book.id, 1, Decimal("4500")),
    ]
    # stan magazynu zmienia sie dopiero przy oplaceniu
    db.refresh(pencil)
    assert pencil.stock == 5


def test_total_mismatch_rejects_whole_order(db, make_product) -> None:
    pencil = make_product(price="1000", stock=5)

    with pytest.raises(TotalMismatchError):
        OrderRepo(db).create_order(_draft((pencil, 2), total=Decimal("1500")))

    assert db.query(OrderModel).count() == 0
    assert db.query(OrderItemModel).count() == 0


def test_price_verification_rejects_stale_price(db, make_product) -> None:
    pencil = make_product(price="1000", stock=5)
    draft = _draft((pencil, 1))
    draft.items[0].price = Decimal("900")
    draft.total_amount = Decimal("900")

    with pytest.raises(PriceMismatchError):
        OrderRepo(db).create_order(draft)
    assert OrderRepo(db, verify_prices=False).create_order(draft).total_amount == Decimal("900")


def test_mark_paid_decrements_stock(db, make_product) -> None:
    pencil = make_product(price="1000", stock=5)
    repo = OrderRepo(db)
    order = repo.create_order(_draft((pencil, 2)))

    paid = repo.update_payment_status(order.order_number, "paid", "payment-proofs/a.png")

    assert paid.payment_status == "paid"
    assert paid.status == "processing"
    assert paid.paid_at is not None
    assert paid.payment_proof == "payment-proofs/a.png"
    db.refresh(pencil)
    assert pencil.stock == 3


def test_mark_paid_with_insufficient_stock_leaves_order_pending(db, make_product) -> None:
    pencil = make_product(price="1000", stock=5)
    book = make_product(name="Buku Tulis", price="4500", stock=5)
    repo = OrderRepo(db)
    order = repo.create_order(_draft((book, 1), (pencil, 3)))

    pencil.stock = 2
    db.commit()

    with pytest.raises(InsufficientStockError):
        repo.update_payment_status(order.order_number, "paid")

    db.expire_all()
    assert repo.get_by_number(order.order_number).payment_status == "pending"
    assert db.get(type(book), book.id).stock == 5


def test_mark_failed_cancels_order_without_touching_stock(db, make_product) -> None:
    pencil = make_product(price="1000", stock=5)
    repo = OrderRepo(db)
    order = repo.create_order(_draft((pencil, 2)))

    failed = repo.update_payment_status(order.order_number, "failed")

    assert failed.payment_status == "failed"
    assert failed.status == "cancelled"
    db.refresh(pencil)
    assert pencil.stock == 5


def test_settled_order_cannot_change_again(db, make_product) -> None:
    pencil = make_product(price="1000", stock=5)
    repo = OrderRepo(db)
    order = repo.create_order(_draft((pencil, 1)))
    repo.update_payment_status(order.order_number, "failed")

    with pytest.raises(InvalidTransitionError):
        repo.update_payment_status(order.order_number, "paid")


def test_unknown_order_is_not_found(db) -> None:
    with pytest.raises(OrderNotFoundError):
        OrderRepo(db).update_payment_status("ORD-00000000-000000", "paid")


def test_list_orders_filters_by_session_and_status(db, make_product) -> None:
    pencil = make_product(price="1000", stock=10)
    repo = OrderRepo(db)
    mine = repo.create_order(_draft((pencil, 1)))
    repo.create_order(_draft((pencil, 1), session_id="session_2_def"))
    repo.update_payment_status(mine.order_number, "paid")

    assert [o.order_number for o in repo.list_orders(session_id="session_1_abc")] == [mine.order_number]
    assert len(repo.list_orders(payment_status="pending")) == 1
    assert len(repo.list_orders()) == 2


def test_delete_order_removes_items(db, make_product) -> None:
    pencil = make_product(price="1000", stock=10)
    repo = OrderRepo(db)
    order = repo.create_order(_draft((pencil, 1)))

    assert repo.delete_order(order.id) is True
    assert repo.delete_order(order.id) is False
    assert db.query(OrderItemModel).count() == 0
