# schoolshop/services/handoff.py
from typing import List
from urllib.parse import quote

from schoolshop.services.receipt import ReceiptLine, format_rupiah
from schoolshop.utils import settings


def compose_order_message(order, lines: List[ReceiptLine]) -> str:
    products = "\n".join(
        f"- {line.name} ({line.quantity}x) - {format_rupiah(line.total)}" for line in lines
    )
    notes = f"\n\nCatatan: {order.notes}" if order.notes else ""
    return (
        "*PESANAN BARU*\n\n"
        "*Detail Pesanan:*\n"
        f"Nomor Pesanan: {order.order_number}\n"
        f"Nama: {order.customer_name}\n"
        f"Email: {order.customer_email}\n"
        f"Telepon: {order.customer_phone}\n"
        f"Total: {format_rupiah(order.total_amount)}\n\n"
        "*Produk:*\n"
        f"{products}"
        f"{notes}\n\n"
        "*Silakan transfer ke rekening berikut:*\n"
        f"{settings.PAYMENT_BANK}: {settings.PAYMENT_ACCOUNT}\n"
        f"A/N: {settings.PAYMENT_ACCOUNT_NAME}\n\n"
        "Kirim bukti transfer beserta nota pesanan yang sudah terunduh ke WhatsApp ini."
    )


def whatsapp_url(message: str, phone: str | None = None) -> str:
    phone = "".join(ch for ch in (phone or settings.WHATSAPP_NUMBER) if ch.isdigit())
    if not phone:
        raise ValueError("WhatsApp number is not configured")
    return f"https://wa.me/{phone}?text={quote(message, safe='')}"


def build_handoff_url(order, lines: List[ReceiptLine]) -> str:
    return whatsapp_url(compose_order_message(order, lines))
