"""Integration tests for cart, coupon, address and order endpoints via TestClient."""


def _place(client, cart_id, address_id, payment_method="cod", key="api-idem-001"):
    return client.post(
        "/orders",
        json={
            "customer_id": "cust-001",
            "cart_id": cart_id,
            "payment_method": payment_method,
            "idempotency_key": key,
            "address_id": address_id,
        },
    )


class TestCartAPI:
    def test_priced_cart(self, client, cart_id):
        response = client.get(f"/carts/{cart_id}")
        assert response.status_code == 200

        data = response.json()
        assert data["status"] == "active"
        assert data["lines"][0]["line_total"] == 799.0
        assert data["pricing"]["shipping_amount"] == 0.0
        assert data["pricing"]["tax_amount"] == 144.0
        assert data["pricing"]["total_amount"] == 943.0
        assert data["pricing"]["free_shipping"] is True

    def test_small_cart_pays_shipping(self, client):
        cart_id = client.post("/carts", json={"customer_id": "cust-001"}).json()["cart_id"]
        client.post(f"/carts/{cart_id}/items", json={"product_id": "prod-009", "name": "Bookmark", "unit_price": 99.0})

        pricing = client.get(f"/carts/{cart_id}").json()["pricing"]
        assert pricing["shipping_amount"] == 49.0
        assert pricing["free_shipping"] is False

    def test_update_and_remove_items(self, client, cart_id):
        line_id = client.get(f"/carts/{cart_id}").json()["lines"][0]["line_id"]

        assert client.put(f"/carts/{cart_id}/items/{line_id}", json={"new_quantity": 2}).status_code == 200
        assert client.get(f"/carts/{cart_id}").json()["pricing"]["subtotal"] == 1598.0

        assert client.delete(f"/carts/{cart_id}/items/{line_id}").status_code == 200
        assert client.get(f"/carts/{cart_id}").json()["lines"] == []

    def test_zero_quantity_rejected(self, client, cart_id):
        line_id = client.get(f"/carts/{cart_id}").json()["lines"][0]["line_id"]
        assert client.put(f"/carts/{cart_id}/items/{line_id}", json={"new_quantity": 0}).status_code == 422

    def test_over_stock_rejected(self, client, cart_id):
        response = client.post(
            f"/carts/{cart_id}/items",
            json={"product_id": "prod-002", "name": "Silk Scarf", "unit_price": 450.0, "quantity": 3, "stock": 2},
        )
        assert response.status_code == 400

    def test_unknown_cart(self, client):
        assert client.get("/carts/cart-missing").status_code == 404


class TestCouponAPI:
    def _create(self, client, **overrides):
        body = {"code": "WELCOME10", "coupon_type": "percentage", "value": 10, "maximum_discount": 200}
        body.update(overrides)
        response = client.post("/coupons", json=body)
        assert response.status_code == 201
        return response.json()["coupon_id"]

    def test_validate_valid_code(self, client):
        self._create(client)
        response = client.post("/coupons/validate", json={"code": "welcome10", "subtotal": 1000})

        assert response.status_code == 200
        assert response.json() == {
            "valid": True,
            "normalized_code": "WELCOME10",
            "discount_amount": 100.0,
            "error": None,
        }

    def test_validate_unknown_code(self, client):
        response = client.post("/coupons/validate", json={"code": "nope", "subtotal": 1000})

        data = response.json()
        assert response.status_code == 200
        assert data["valid"] is False
        assert data["normalized_code"] == "NOPE"
        assert data["error"] == "Invalid coupon code"

    def test_validate_minimum(self, client):
        self._create(client, minimum_amount=500)
        data = client.post("/coupons/validate", json={"code": "WELCOME10", "subtotal": 200}).json()
        assert data["error"] == "Minimum order amount not met"

    def test_apply_to_cart(self, client, cart_id):
        self._create(client)
        response = client.post(f"/carts/{cart_id}/coupon", json={"coupon_code": " welcome10"})

        assert response.status_code == 200
        assert response.json() == {"coupon_code": "WELCOME10", "discount_amount": 79.9}
        assert client.get(f"/carts/{cart_id}").json()["pricing"]["discount_amount"] == 79.9

    def test_apply_invalid_code(self, client, cart_id):
        response = client.post(f"/carts/{cart_id}/coupon", json={"coupon_code": "NOPE"})
        assert response.status_code == 400

    def test_admin_lifecycle(self, client):
        coupon_id = self._create(client)

        assert client.put(f"/coupons/{coupon_id}", json={"value": 20}).status_code == 200
        assert client.put(f"/coupons/{coupon_id}/deactivate").json() == {"status": "inactive"}
        assert client.get(f"/coupons/{coupon_id}").json()["status"] == "Inactive"
        assert client.put(f"/coupons/{coupon_id}/activate").json() == {"status": "active"}

        coupon = client.get(f"/coupons/{coupon_id}").json()
        assert coupon["value"] == 20
        assert coupon["status"] == "Active"

        assert client.delete(f"/coupons/{coupon_id}").status_code == 200
        assert client.get(f"/coupons/{coupon_id}").status_code == 404

    def test_list(self, client):
        self._create(client)
        self._create(client, code="FLAT50", coupon_type="fixed", value=50)
        codes = {c["code"] for c in client.get("/coupons").json()}
        assert codes == {"WELCOME10", "FLAT50"}


class TestAddressAPI:
    def test_list_addresses(self, client, address_id):
        addresses = client.get("/customers/cust-001/addresses").json()
        assert len(addresses) == 1
        assert addresses[0]["address_id"] == address_id
        assert addresses[0]["is_default"] is True

    def test_no_addresses(self, client):
        assert client.get("/customers/cust-404/addresses").json() == []

    def test_update_unknown_customer(self, client):
        response = client.put("/customers/cust-404/addresses/addr-1", json={"city": "Pune"})
        assert response.status_code == 404


class TestOrderAPI:
    def test_place_cod_order(self, client, cart_id, address_id):
        response = _place(client, cart_id, address_id)

        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "confirmed"
        assert data["payment_status"] == "pending"
        assert data["order_number"].startswith("ORD-")

        order = client.get(f"/orders/{data['order_id']}").json()
        assert order["total_amount"] == 943.0
        assert order["items"][0]["product_sku"] == "KUR-001"
        assert order["shipping_address"]["city"] == "Bengaluru"

    def test_double_submit_returns_same_order(self, client, cart_id, address_id):
        first = _place(client, cart_id, address_id, payment_method="razorpay")
        second = _place(client, cart_id, address_id, payment_method="razorpay")
        assert first.json()["order_id"] == second.json()["order_id"]

    def test_inline_shipping_address(self, client, cart_id, shipping_address):
        response = client.post(
            "/orders",
            json={
                "customer_id": "cust-001",
                "cart_id": cart_id,
                "payment_method": "cod",
                "idempotency_key": "api-inline",
                "shipping_address": shipping_address,
            },
        )
        assert response.status_code == 201

    def test_missing_address(self, client, cart_id):
        response = _place(client, cart_id, None)
        assert response.status_code == 400

    def test_empty_cart(self, client, address_id):
        cart_id = client.post("/carts", json={"customer_id": "cust-001"}).json()["cart_id"]
        assert _place(client, cart_id, address_id).status_code == 400

    def test_unsupported_payment_method(self, client, cart_id, address_id):
        assert _place(client, cart_id, address_id, payment_method="upi_collect").status_code == 400

    def test_fulfillment_flow(self, client, cart_id, address_id):
        order_id = _place(client, cart_id, address_id).json()["order_id"]

        assert client.put(f"/orders/{order_id}/processing").json() == {"status": "processing"}
        assert client.put(f"/orders/{order_id}/ship").json() == {"status": "shipped"}
        assert client.put(f"/orders/{order_id}/deliver").json() == {"status": "delivered"}
        assert client.get(f"/orders/{order_id}").json()["delivered_at"] is not None

    def test_cancel(self, client, cart_id, address_id):
        order_id = _place(client, cart_id, address_id).json()["order_id"]
        response = client.put(f"/orders/{order_id}/cancel", json={"reason": "Ordered by mistake"})

        assert response.status_code == 200
        order = client.get(f"/orders/{order_id}").json()
        assert order["status"] == "cancelled"
        assert order["cancellation_reason"] == "Ordered by mistake"

    def test_cancel_shipped_rejected(self, client, cart_id, address_id):
        order_id = _place(client, cart_id, address_id).json()["order_id"]
        client.put(f"/orders/{order_id}/processing")
        client.put(f"/orders/{order_id}/ship")

        response = client.put(f"/orders/{order_id}/cancel", json={})
        assert response.status_code == 400

    def test_unknown_order(self, client):
        assert client.get("/orders/ord-missing").status_code == 404
