"""
Order API tests.

Verifies:
- POST /api/orders dispatches to multi-item and point-of-sale placement
- Envelope shape and camelCase fields
- Cancel, status update and visibility rules over HTTP
"""

import pytest

from marketplace.models import Order


def _place(client, headers, product, quantity=3, address="1 Market St"):
    return client.post(
        "/api/orders",
        json={
            "products": [{"productId": product.id, "quantity": quantity}],
            "shippingAddress": address,
        },
        headers=headers,
    )


# =============================================================================
# PLACEMENT
# =============================================================================


class TestCreateOrder:

    def test_requires_auth(self, client, product):
        resp = _place(client, {}, product)
        assert resp.status_code == 401
        assert resp.json["status"] == "fail"

    def test_places_pending_order(self, client, db_session, auth_headers, buyer, product):
        resp = _place(client, auth_headers(buyer), product, quantity=3)

        assert resp.status_code == 201
        body = resp.json
        assert body["status"] == "success"
        order = body["data"]["order"]
        assert order["status"] == "pending"
        assert order["totalAmount"] == "30.00"
        assert order["shippingAddress"] == "1 Market St"
        assert order["userId"] == buyer.id
        assert len(order["orderItems"]) == 1
        item = order["orderItems"][0]
        assert item["productId"] == product.id
        assert item["quantity"] == 3
        assert item["price"] == "10.00"
        assert item["label"] == "Carrots"

        assert product.stock == 2

    def test_insufficient_stock(self, client, db_session, auth_headers, buyer, product):
        resp = _place(client, auth_headers(buyer), product, quantity=10)

        assert resp.status_code == 400
        assert resp.json["status"] == "fail"
        assert "Insufficient stock" in resp.json["message"]
        assert product.stock == 5
        assert db_session.query(Order).count() == 0

    def test_unknown_product(self, client, db_session, auth_headers, buyer, product):
        resp = client.post(
            "/api/orders",
            json={"products": [{"productId": 9999, "quantity": 1}], "shippingAddress": "x"},
            headers=auth_headers(buyer),
        )
        assert resp.status_code == 404
        assert resp.json["status"] == "fail"

    @pytest.mark.parametrize(
        "payload",
        [
            {},
            {"products": [], "shippingAddress": "1 Market St"},
            {"products": [{"productId": 1, "quantity": 1}]},
            {"shippingAddress": "1 Market St"},
        ],
    )
    def test_incomplete_payload(self, client, auth_headers, buyer, product, payload):
        resp = client.post("/api/orders", json=payload, headers=auth_headers(buyer))
        assert resp.status_code == 400
        assert resp.json["status"] == "fail"

    def test_point_of_sale(self, client, db_session, auth_headers, buyer, product):
        resp = client.post(
            "/api/orders",
            json={"productId": product.id, "quantity": 5},
            headers=auth_headers(buyer),
        )

        assert resp.status_code == 201
        order = resp.json["data"]["order"]
        assert order["status"] == "delivered"
        assert order["shippingAddress"] is None
        assert product.stock == 0
        assert product.status == "unavailable"


# =============================================================================
# READS
# =============================================================================


class TestReadOrders:

    def test_my_orders(self, client, auth_headers, buyer, outsider, product):
        buyer_headers = auth_headers(buyer)
        _place(client, buyer_headers, product, quantity=1)
        _place(client, auth_headers(outsider), product, quantity=1)

        resp = client.get("/api/orders/my-orders", headers=buyer_headers)

        assert resp.status_code == 200
        assert resp.json["results"] == 1
        assert resp.json["data"]["orders"][0]["userId"] == buyer.id

    def test_detail_visible_to_producer(self, client, auth_headers, buyer, producer, product):
        order_id = _place(client, auth_headers(buyer), product).json["data"]["order"]["id"]

        resp = client.get(f"/api/orders/{order_id}", headers=auth_headers(producer))

        assert resp.status_code == 200
        assert resp.json["data"]["order"]["buyer"]["email"] == buyer.email

    def test_detail_forbidden_to_stranger(self, client, auth_headers, buyer, outsider, product):
        order_id = _place(client, auth_headers(buyer), product).json["data"]["order"]["id"]

        resp = client.get(f"/api/orders/{order_id}", headers=auth_headers(outsider))

        assert resp.status_code == 403
        assert resp.json["status"] == "fail"

    def test_detail_missing(self, client, auth_headers, buyer):
        resp = client.get("/api/orders/12345", headers=auth_headers(buyer))
        assert resp.status_code == 404

    def test_admin_list_with_status_filter(self, client, auth_headers, buyer, admin, product):
        buyer_headers = auth_headers(buyer)
        _place(client, buyer_headers, product, quantity=1)
        second = _place(client, buyer_headers, product, quantity=1).json["data"]["order"]["id"]
        client.patch(f"/api/orders/{second}/cancel", headers=buyer_headers)

        admin_headers = auth_headers(admin)
        all_orders = client.get("/api/orders", headers=admin_headers)
        cancelled = client.get("/api/orders?status=cancelled", headers=admin_headers)

        assert all_orders.json["results"] == 2
        assert cancelled.json["results"] == 1
        assert cancelled.json["data"]["orders"][0]["id"] == second

    def test_list_requires_admin(self, client, auth_headers, buyer):
        resp = client.get("/api/orders", headers=auth_headers(buyer))
        assert resp.status_code == 403

    def test_deleted_product_keeps_snapshot(self, client, auth_headers, buyer, producer, product):
        order_id = _place(client, auth_headers(buyer), product, quantity=1).json["data"]["order"]["id"]

        resp = client.delete(f"/api/products/{product.id}", headers=auth_headers(producer))
        assert resp.status_code == 204

        item = client.get(f"/api/orders/{order_id}", headers=auth_headers(buyer)).json["data"]["order"]["orderItems"][0]
        assert item["productId"] is None
        assert item["product"] is None
        assert item["label"] == "Carrots (no longer available)"
        assert item["price"] == "10.00"


# =============================================================================
# CANCEL / STATUS
# =============================================================================


class TestOrderTransitions:

    def test_cancel_then_cancel_again(self, client, auth_headers, buyer, product):
        headers = auth_headers(buyer)
        order_id = _place(client, headers, product, quantity=3).json["data"]["order"]["id"]
        assert product.stock == 2

        first = client.patch(f"/api/orders/{order_id}/cancel", headers=headers)
        assert first.status_code == 200
        assert first.json["data"]["order"]["status"] == "cancelled"
        assert product.stock == 5

        second = client.patch(f"/api/orders/{order_id}/cancel", headers=headers)
        assert second.status_code == 400
        assert second.json["status"] == "fail"
        assert product.stock == 5

    def test_stranger_cannot_cancel(self, client, auth_headers, buyer, outsider, product):
        order_id = _place(client, auth_headers(buyer), product).json["data"]["order"]["id"]

        resp = client.patch(f"/api/orders/{order_id}/cancel", headers=auth_headers(outsider))

        assert resp.status_code == 403
        assert product.stock == 2

    def test_admin_status_update(self, client, auth_headers, buyer, admin, product):
        order_id = _place(client, auth_headers(buyer), product).json["data"]["order"]["id"]
        admin_headers = auth_headers(admin)

        resp = client.patch(f"/api/orders/{order_id}/status", json={"status": "shipped"}, headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json["data"]["order"]["status"] == "shipped"

        bad = client.patch(f"/api/orders/{order_id}/status", json={"status": "teleported"}, headers=admin_headers)
        assert bad.status_code == 400

    def test_status_update_requires_admin(self, client, auth_headers, buyer, product):
        headers = auth_headers(buyer)
        order_id = _place(client, headers, product).json["data"]["order"]["id"]

        resp = client.patch(f"/api/orders/{order_id}/status", json={"status": "delivered"}, headers=headers)
        assert resp.status_code == 403

    def test_terminal_status_is_final(self, client, auth_headers, buyer, admin, product):
        order_id = _place(client, auth_headers(buyer), product).json["data"]["order"]["id"]
        admin_headers = auth_headers(admin)
        client.patch(f"/api/orders/{order_id}/status", json={"status": "delivered"}, headers=admin_headers)

        resp = client.patch(f"/api/orders/{order_id}/status", json={"status": "pending"}, headers=admin_headers)
        assert resp.status_code == 400

    def test_shipped_order_cannot_go_back_to_pending(self, client, auth_headers, buyer, admin, product):
        order_id = _place(client, auth_headers(buyer), product).json["data"]["order"]["id"]
        admin_headers = auth_headers(admin)
        client.patch(f"/api/orders/{order_id}/status", json={"status": "shipped"}, headers=admin_headers)

        resp = client.patch(f"/api/orders/{order_id}/status", json={"status": "pending"}, headers=admin_headers)

        assert resp.status_code == 400
        assert resp.json["status"] == "fail"
