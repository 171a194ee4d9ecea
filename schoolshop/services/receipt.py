# schoolshop/services/receipt.py
"""Nota zamowienia jako obraz PNG.

Nota ma znak wodny i token weryfikacyjny (skrot z pol nota), zeby reczna
edycja obrazu byla widoczna. Token nie jest podpisem kryptograficznym.
"""
import hashlib
import io
import json
import textwrap
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import List

from PIL import Image, ImageDraw, ImageFont

from schoolshop.domain.errors import RenderError
from schoolshop.utils import settings
from schoolshop.utils.logging import get_logger

logger = get_logger(__name__)

WIDTH = 800
MARGIN = 40
LINE_HEIGHT = 28


@dataclass
class ReceiptLine:
    name: str
    quantity: int
    price: Decimal

    @property
    def total(self) -> Decimal:
        return self.price * self.quantity


@dataclass
class Receipt:
    filename: str
    image: bytes
    verification_token: str
    data: dict = field(default_factory=dict)
    content_type: str = "image/png"


def format_rupiah(amount) -> str:
    value = Decimal(str(amount))
    if value == value.to_integral_value():
        text = f"{int(value):,}".replace(",", ".")
    else:
        whole, frac = f"{value:,.2f}".split(".")
        text = f"{whole.replace(',', '.')},{frac}"
    return f"Rp {text}"


def receipt_payload(order, lines: List[ReceiptLine], generated_at: datetime) -> dict:
    return {
        "order_number": order.order_number,
        "customer_name": order.customer_name,
        "total_amount": str(order.total_amount),
        "timestamp": generated_at.isoformat(),
        "items": [
            {
                "name": line.name,
                "quantity": line.quantity,
                "price": str(line.price),
                "total": str(line.total),
            }
            for line in lines
        ],
    }


def verification_token(payload: dict) -> str:
    canonical = json.dumps(payload, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:16].upper()


def _text_rows(order, lines: List[ReceiptLine], generated_at: datetime, token: str) -> list[tuple[str, str]]:
    # (styl, tekst)
    rows = [
        ("title", "NOTA PESANAN"),
        ("center", settings.SHOP_NAME),
        ("center", generated_at.strftime("%d/%m/%Y %H:%M:%S UTC")),
        ("rule", ""),
        ("text", f"No. Pesanan: {order.order_number}"),
        ("text", f"Nama: {order.customer_name}"),
        ("text", f"Email: {order.customer_email}"),
        ("text", f"Telepon: {order.customer_phone}"),
        ("rule", ""),
    ]
    for line in lines:
        rows.append(("text", line.name))
        rows.append(
            ("right", f"{line.quantity} x {format_rupiah(line.price)} = {format_rupiah(line.total)}")
        )
    rows += [
        ("rule", ""),
        ("bold", f"TOTAL: {format_rupiah(order.total_amount)}"),
    ]
    if order.notes:
        rows += [("text", "Catatan:"), ("text", order.notes)]
    rows += [
        ("rule", ""),
        ("bold", "INFORMASI PEMBAYARAN"),
        ("text", f"{settings.PAYMENT_BANK}: {settings.PAYMENT_ACCOUNT}"),
        ("text", f"A/N: {settings.PAYMENT_ACCOUNT_NAME}"),
        ("text", "Harap transfer sesuai nominal total di atas"),
        ("rule", ""),
        ("center", "DOKUMEN RESMI - TIDAK BOLEH DIUBAH"),
        ("center", f"Kode verifikasi: {token}"),
    ]
    return rows


def wrap_text(text: str, font, max_width: int, measure: ImageDraw.ImageDraw) -> list[str]:
    """Dzieli tekst na linie mieszczace sie w max_width pikseli."""
    if not text or measure.textlength(text, font=font) <= max_width:
        return [text]
    chars = max(1, int(len(text) * max_width / measure.textlength(text, font=font)))
    while True:
        lines = textwrap.wrap(text, width=chars) or [""]
        if chars == 1 or all(measure.textlength(line, font=font) <= max_width for line in lines):
            return lines
        chars -= 1


def _layout(rows: list[tuple[str, str]], font, measure: ImageDraw.ImageDraw) -> list[tuple[str, str]]:
    laid_out = []
    for style, text in rows:
        if style == "rule":
            laid_out.append((style, text))
            continue
        laid_out.extend((style, line) for line in wrap_text(text, font, WIDTH - 2 * MARGIN, measure))
    return laid_out


def _draw(rows: list[tuple[str, str]]) -> bytes:
    font = ImageFont.load_default()
    rows = _layout(rows, font, ImageDraw.Draw(Image.new("RGB", (1, 1))))

    height = MARGIN * 2 + LINE_HEIGHT * len(rows)
    image = Image.new("RGB", (WIDTH, height), "white")
    draw = ImageDraw.Draw(image)

    draw.rectangle([4, 4, WIDTH - 5, height - 5], outline="black", width=3)

    # znak wodny
    mark = Image.new("RGBA", (WIDTH, height), (255, 255, 255, 0))
    ImageDraw.Draw(mark).text((WIDTH // 3, height // 2), "ORIGINAL", fill=(255, 0, 0, 40), font=font)
    image.paste(mark.rotate(30), (0, 0), mark.rotate(30))

    y = MARGIN
    for style, text in rows:
        if style == "rule":
            draw.line([MARGIN, y + LINE_HEIGHT // 2, WIDTH - MARGIN, y + LINE_HEIGHT // 2], fill="black", width=1)
        else:
            left, _, right, _ = draw.textbbox((0, 0), text, font=font)
            text_width = right - left
            if style in ("title", "center"):
                x = (WIDTH - text_width) // 2
            elif style == "right":
                x = WIDTH - MARGIN - text_width
            else:
                x = MARGIN
            draw.text((x, y), text, fill="black", font=font)
            if style in ("title", "bold"):
                draw.text((x + 1, y), text, fill="black", font=font)
        y += LINE_HEIGHT

    buf = io.BytesIO()
    image.save(buf, format="PNG")
    return buf.getvalue()


def render_receipt(order, lines: List[ReceiptLine], generated_at: datetime | None = None) -> Receipt:
    generated_at = generated_at or datetime.now(timezone.utc)
    payload = receipt_payload(order, lines, generated_at)
    token = verification_token(payload)

    try:
        image = _draw(_text_rows(order, lines, generated_at, token))
    except (OSError, ValueError) as e:
        logger.error(f"Receipt rendering failed for order {order.order_number}: {e}")
        raise RenderError(f"Could not render receipt: {e}") from e

    return Receipt(
        filename=f"nota_{order.order_number}.png",
        image=image,
        verification_token=token,
        data=payload,
    )
