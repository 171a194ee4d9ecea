import base64
from decimal import Decimal

from schoolshop.data.models import OrderModel

CUSTOMER = {
    "customer_name": "Bu Sari",
    "customer_email": "sari@gmail.com",
    "customer_phone": "081234567890",
}


def test_health(client) -> None:
    response = client.get("/health")
    assert response.status_code == 200


def test_catalog_lists_only_active_products(client, make_product) -> None:
    make_product(name="Pensil 2B", price="1000", stock=5)
    make_product(name="Buku Tulis", price="4500", stock=5)
    make_product(name="Spidol Lama", price="3000", stock=5, is_active=False)

    body = client.get("/products", params={"sort_by": "price", "direction": "desc"}).json()

    assert body["total"] == 2
    assert [p["name"] for p in body["items"]] == ["Buku Tulis", "Pensil 2B"]
    assert client.get("/products", params={"search": "pensil"}).json()["total"] == 1


def test_inactive_product_is_not_found(client, make_product) -> None:
    hidden = make_product(is_active=False)
    assert client.get(f"/products/{hidden.id}").status_code == 404
    assert client.get("/products/9999").status_code == 404


def test_session_cookie_is_issued_once(client) -> None:
    first = client.get("/cart")
    session_id = first.json()["session_id"]

    assert session_id.startswith("session_")
    assert client.cookies.get("session_id") == session_id
    assert client.get("/cart").json()["session_id"] == session_id


def test_add_to_cart_updates_badge_header(client, make_product) -> None:
    pencil = make_product(price="1000", stock=2)

    first = client.post("/cart/items", json={"product_id": pencil.id})
    second = client.post("/cart/items", json={"product_id": pencil.id})

    assert first.status_code == 200
    assert first.headers["X-Cart-Count"] == "1"
    assert second.headers["X-Cart-Count"] == "2"
    line = second.json()["items"][0]
    assert line["quantity"] == 2
    assert Decimal(line["subtotal"]) == Decimal("2000")
    assert line["available_stock"] == 2


def test_add_beyond_stock_is_conflict(client, make_product) -> None:
    pencil = make_product(stock=1)
    client.post("/cart/items", json={"product_id": pencil.id})

    response = client.post("/cart/items", json={"product_id": pencil.id})

    assert response.status_code == 409
    assert response.json()["detail"]["available"] == 1
    assert client.get("/cart").json()["total_quantity"] == 1


def test_update_quantity_is_clamped_to_live_stock(client, make_product) -> None:
    pencil = make_product(stock=5)
    client.post("/cart/items", json={"product_id": pencil.id})

    body = client.put(f"/cart/items/{pencil.id}", json={"quantity": 999}).json()
    assert body["items"][0]["quantity"] == 5

    body = client.put(f"/cart/items/{pencil.id}", json={"quantity": 0}).json()
    assert body["items"] == []


def test_increment_decrement_and_remove(client, make_product) -> None:
    pencil = make_product(stock=2)
    book = make_product(name="Buku Tulis", price="4500", stock=3)
    client.post("/cart/items", json={"product_id": pencil.id})
    client.post("/cart/items", json={"product_id": book.id})

    assert client.post(f"/cart/items/{pencil.id}/increment").status_code == 200
    assert client.post(f"/cart/items/{pencil.id}/increment").status_code == 409

    body = client.post(f"/cart/items/{book.id}/decrement").json()
    assert [i["product_id"] for i in body["items"]] == [pencil.id]

    body = client.delete(f"/cart/items/{pencil.id}").json()
    assert body["total_quantity"] == 0
    assert client.delete(f"/cart/items/{pencil.id}").status_code == 200


def test_clear_cart(client, make_product) -> None:
    client.post("/cart/items", json={"product_id": make_product().id})
    response = client.delete("/cart")
    assert response.json()["total_quantity"] == 0
    assert response.headers["X-Cart-Count"] == "0"


def test_checkout_end_to_end(client, db, make_product) -> None:
    pencil = make_product(price="1000", stock=5)
    client.post("/cart/items", json={"product_id": pencil.id})
    client.post("/cart/items", json={"product_id": pencil.id})

    response = client.post("/checkout", json={**CUSTOMER, "notes": "Untuk kelas 2A"})

    assert response.status_code == 201
    body = response.json()
    order = body["order"]
    assert order["payment_status"] == "pending"
    assert Decimal(order["total_amount"]) == Decimal("2000")
    assert order["items"][0]["product_name"] == "Pensil 2B"
    assert base64.b64decode(body["receipt"]["image_base64"]).startswith(b"\x89PNG")
    assert body["handoff_url"].startswith("https://wa.me/")
    assert body["warnings"] == []
    assert response.headers["X-Cart-Count"] == "0"

    assert client.get("/cart").json()["items"] == []
    assert db.query(OrderModel).count() == 1

    history = client.get("/orders").json()
    assert [o["order_number"] for o in history] == [order["order_number"]]

    receipt = client.get(f"/orders/{order['order_number']}/receipt")
    assert receipt.status_code == 200
    assert receipt.headers["content-type"] == "image/png"
    assert order["order_number"] in receipt.headers["content-disposition"]
    assert len(receipt.headers["X-Receipt-Token"]) == 16

    prefill = client.get("/checkout/prefill").json()
    assert prefill == CUSTOMER


def test_checkout_with_stale_quantity_is_conflict(client, db, make_product) -> None:
    pencil = make_product(price="1000", stock=5)
    client.post("/cart/items", json={"product_id": pencil.id})
    client.post("/cart/items", json={"product_id": pencil.id})

    pencil.stock = 1
    db.commit()

    response = client.post("/checkout", json=CUSTOMER)

    assert response.status_code == 409
    detail = response.json()["detail"]
    assert detail["product_id"] == pencil.id
    assert detail["available"] == 1
    assert detail["requested"] == 2
    assert client.get("/cart").json()["total_quantity"] == 2
    assert db.query(OrderModel).count() == 0


def test_checkout_with_empty_cart_is_rejected(client) -> None:
    assert client.post("/checkout", json=CUSTOMER).status_code == 400


def test_checkout_validates_contact_fields(client, make_product) -> None:
    client.post("/cart/items", json={"product_id": make_product().id})
    response = client.post("/checkout", json={**CUSTOMER, "customer_email": "bukan-email"})
    assert response.status_code == 422


def test_orders_of_other_sessions_are_hidden(client, make_product) -> None:
    client.post("/cart/items", json={"product_id": make_product().id})
    number = client.post("/checkout", json=CUSTOMER).json()["order"]["order_number"]

    client.cookies.clear()

    assert client.get("/orders").json() == []
    assert client.get(f"/orders/{number}").status_code == 404
    assert client.get(f"/orders/{number}/receipt").status_code == 404


def test_public_sweep_reports_result(client) -> None:
    response = client.post("/orders/sweep")
    assert response.status_code == 200
    assert response.json() == {"success": True, "deleted_count": 0, "error": None}
