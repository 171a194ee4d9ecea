import io
from datetime import datetime, timezone
from decimal import Decimal
from types import SimpleNamespace
from urllib.parse import parse_qs, urlparse

import pytest
from PIL import Image, ImageDraw, ImageFont

from schoolshop.domain.errors import RenderError
from schoolshop.services import receipt as receipt_module
from schoolshop.services.handoff import build_handoff_url, compose_order_message, whatsapp_url
from schoolshop.services.receipt import (
    ReceiptLine,
    format_rupiah,
    receipt_payload,
    render_receipt,
    verification_token,
    wrap_text,
)

GENERATED_AT = datetime(2026, 10, 19, 9, 30, tzinfo=timezone.utc)


@pytest.fixture
def order():
    return SimpleNamespace(
        order_number="ORD-20261019-ABC123",
        customer_name="Bu Sari",
        customer_email="sari@gmail.com",
        customer_phone="081234567890",
        total_amount=Decimal("6500.00"),
        notes="Kelas 3B & 3C",
    )


@pytest.fixture
def lines():
    return [
        ReceiptLine(name="Pensil 2B", quantity=2, price=Decimal("1000.00")),
        ReceiptLine(name="Buku Tulis", quantity=1, price=Decimal("4500.00")),
    ]


def test_format_rupiah() -> None:
    assert format_rupiah(Decimal("4500")) == "Rp 4.500"
    assert format_rupiah(Decimal("1250000.00")) == "Rp 1.250.000"
    assert format_rupiah(Decimal("2500.50")) == "Rp 2.500,50"
    assert format_rupiah(0) == "Rp 0"


def test_render_receipt_produces_png(order, lines) -> None:
    receipt = render_receipt(order, lines, generated_at=GENERATED_AT)

    assert receipt.image.startswith(b"\x89PNG\r\n\x1a\n")
    assert receipt.filename == "nota_ORD-20261019-ABC123.png"
    assert receipt.content_type == "image/png"
    assert receipt.data["total_amount"] == "6500.00"
    assert [i["total"] for i in receipt.data["items"]] == ["2000.00", "4500.00"]


def test_verification_token_is_deterministic(order, lines) -> None:
    first = render_receipt(order, lines, generated_at=GENERATED_AT)
    second = render_receipt(order, lines, generated_at=GENERATED_AT)

    assert first.verification_token == second.verification_token
    assert len(first.verification_token) == 16
    assert first.verification_token == first.verification_token.upper()


def test_verification_token_changes_with_content(order, lines) -> None:
    original = verification_token(receipt_payload(order, lines, GENERATED_AT))
    order.total_amount = Decimal("650.00")
    tampered = verification_token(receipt_payload(order, lines, GENERATED_AT))

    assert original != tampered


def test_render_failure_is_wrapped(order, lines, monkeypatch) -> None:
    def _broken(rows):
        raise OSError("cannot open font resource")

    monkeypatch.setattr(receipt_module, "_draw", _broken)

    with pytest.raises(RenderError):
        render_receipt(order, lines)


def test_order_message_lists_products_and_payment(order, lines) -> None:
    message = compose_order_message(order, lines)

    assert "Nomor Pesanan: ORD-20261019-ABC123" in message
    assert "- Pensil 2B (2x) - Rp 2.000" in message
    assert "Total: Rp 6.500" in message
    assert "Catatan: Kelas 3B & 3C" in message


def test_whatsapp_url_encodes_whole_message() -> None:
    url = whatsapp_url("Halo & selamat\npagi #1 ?", phone="+62 812-3456")

    assert url.startswith("https://wa.me/628123456?text=")
    encoded = url.split("?text=", 1)[1]
    for ch in " &\n#?":
        assert ch not in encoded
    assert parse_qs(urlparse(url).query)["text"] == ["Halo & selamat\npagi #1 ?"]


def test_whatsapp_url_requires_number() -> None:
    with pytest.raises(ValueError):
        whatsapp_url("Halo", phone="---")


def test_build_handoff_url_round_trips_message(order, lines, monkeypatch) -> None:
    from schoolshop.utils import settings

    monkeypatch.setattr(settings, "WHATSAPP_NUMBER", "6281200000000")
    url = build_handoff_url(order, lines)

    assert url.startswith("https://wa.me/6281200000000?text=")
    assert parse_qs(urlparse(url).query)["text"] == [compose_order_message(order, lines)]


def test_wrap_text_fits_width() -> None:
    font = ImageFont.load_default()
    measure = ImageDraw.Draw(Image.new("RGB", (1, 1)))
    text = "Mohon dibungkus terpisah untuk setiap kelas " * 20 + "X" * 300

    lines = wrap_text(text, font, 720, measure)

    assert len(lines) > 1
    assert all(measure.textlength(line, font=font) <= 720 for line in lines)
    assert "".join(lines).replace(" ", "") == text.replace(" ", "")
    assert wrap_text("Pendek", font, 720, measure) == ["Pendek"]


def test_long_notes_make_receipt_taller_not_wider(order, lines) -> None:
    short = render_receipt(order, lines, generated_at=GENERATED_AT)
    order.notes = "Tolong kirim sebelum jam 10 pagi ke ruang guru. " * 20
    order.customer_name = "Ibu " + "Sri Wahyuningsih " * 12

    long = render_receipt(order, lines, generated_at=GENERATED_AT)

    short_size = Image.open(io.BytesIO(short.image)).size
    long_size = Image.open(io.BytesIO(long.image)).size
    assert long_size[0] == short_size[0] == 800
    assert long_size[1] > short_size[1]
