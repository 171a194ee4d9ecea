# schoolshop/api/routers/orders.py
from typing import List

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from schoolshop.api.deps import get_session_id
from schoolshop.api.errors import raise_http
from schoolshop.data.database import get_db
from schoolshop.domain.errors import ShopError
from schoolshop.domain.schemas import OrderOut, SweepOut
from schoolshop.services.order_expiry import sweep_expired_orders
from schoolshop.services.order_service import OrderService, order_to_dict

router = APIRouter(prefix="/orders", tags=["orders"])


@router.get("", response_model=List[OrderOut])
def order_history(
    session_id: str = Depends(get_session_id),
    db: Session = Depends(get_db),
):
    """Historia zamowien tej przegladarki."""
    try:
        return OrderService(db).list_session_orders(session_id)
    except ShopError as e:
        raise_http(e)


@router.post("/sweep", response_model=SweepOut)
def trigger_sweep(db: Session = Depends(get_db)):
    result = sweep_expired_orders(db)
    return SweepOut(success=result.success, deleted_count=result.deleted_count, error=result.error)


@router.get("/{order_number}", response_model=OrderOut)
def get_order(
    order_number: str,
    session_id: str = Depends(get_session_id),
    db: Session = Depends(get_db),
):
    try:
        return order_to_dict(OrderService(db).get_session_order(order_number, session_id))
    except ShopError as e:
        raise_http(e)


@router.get("/{order_number}/receipt")
def download_receipt(
    order_number: str,
    session_id: str = Depends(get_session_id),
    db: Session = Depends(get_db),
):
    try:
        receipt = OrderService(db).session_receipt(order_number, session_id)
    except ShopError as e:
        raise_http(e)

    return Response(
        content=receipt.image,
        media_type=receipt.content_type,
        headers={
            "Content-Disposition": f'attachment; filename="{receipt.filename}"',
            "X-Receipt-Token": receipt.verification_token,
        },
    )
