# schoolshop/api/routers/checkout.py
import base64

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from schoolshop.api.deps import get_cart_store, get_session_id, get_storage
from schoolshop.api.errors import raise_http
from schoolshop.data.database import get_db
from schoolshop.domain.errors import ShopError
from schoolshop.domain.schemas import CheckoutIn, CheckoutOut, CustomerPrefill, ReceiptOut
from schoolshop.services.cart_store import CartStore
from schoolshop.services.checkout_service import CheckoutService, load_customer_prefill
from schoolshop.services.order_service import order_to_dict
from schoolshop.services.storage import KeyValueStorage

router = APIRouter(prefix="/checkout", tags=["checkout"])


@router.get("/prefill", response_model=CustomerPrefill)
def prefill(
    session_id: str = Depends(get_session_id),
    storage: KeyValueStorage = Depends(get_storage),
):
    return CustomerPrefill(**load_customer_prefill(storage, session_id))


@router.post("", response_model=CheckoutOut, status_code=201)
def submit_checkout(
    payload: CheckoutIn,
    cart: CartStore = Depends(get_cart_store),
    storage: KeyValueStorage = Depends(get_storage),
    db: Session = Depends(get_db),
):
    """
    Tworzy zamowienie z koszyka sesji.
    Zwraca zamowienie, note (PNG base64) i link WhatsApp do potwierdzenia platnosci.
    """
    svc = CheckoutService(db, cart, storage)
    try:
        result = svc.submit_checkout(payload, notes=payload.notes)
    except ShopError as e:
        raise_http(e)

    receipt = None
    if result.receipt is not None:
        receipt = ReceiptOut(
            filename=result.receipt.filename,
            content_type=result.receipt.content_type,
            verification_token=result.receipt.verification_token,
            image_base64=base64.b64encode(result.receipt.image).decode("ascii"),
        )

    return CheckoutOut(
        order=order_to_dict(result.order),
        receipt=receipt,
        handoff_url=result.handoff_url,
        warnings=result.warnings,
    )
