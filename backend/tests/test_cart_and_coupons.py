"""
Cart, item listing and coupon tests.
"""

from datetime import timedelta

import pytest

from marketplace.errors import NotFound, ValidationFailed
from marketplace.models import Coupon
from marketplace.services import cart_service, coupon_service
from marketplace.time_utils import utcnow


class TestCart:

    def test_set_replaces_quantity(self, db_session, customer, item):
        cart_service.set_cart_quantity(customer.id, item.id, 2)
        cart_service.set_cart_quantity(customer.id, item.id, 4)

        summary = cart_service.cart_summary(customer.id)
        assert [line["quantity"] for line in summary["lines"]] == [4]
        assert summary["subtotal_cents"] == 4000

    def test_cart_does_not_hold_stock(self, db_session, customer, item, stock_of):
        cart_service.set_cart_quantity(customer.id, item.id, 50)
        assert stock_of(item.id) == 5

    @pytest.mark.parametrize("quantity", [0, -2, 1001, "3"])
    def test_bad_quantity(self, db_session, customer, item, quantity):
        with pytest.raises(ValidationFailed):
            cart_service.set_cart_quantity(customer.id, item.id, quantity)

    def test_unknown_item(self, db_session, customer):
        with pytest.raises(NotFound):
            cart_service.set_cart_quantity(customer.id, 999, 1)

    def test_remove_over_http(self, client, customer, item, headers_for):
        headers = headers_for(customer)
        client.post("/api/cart", json={"item_id": item.id, "quantity": 1}, headers=headers)

        assert client.delete(f"/api/cart/{item.id}", headers=headers).status_code == 200
        assert client.delete(f"/api/cart/{item.id}", headers=headers).status_code == 404


class TestItems:

    def test_vendor_lists_item(self, client, vendor, headers_for):
        resp = client.post(
            "/api/items",
            json={"name": "Mug", "price_cents": 450, "stock": 12},
            headers=headers_for(vendor),
        )
        assert resp.status_code == 201
        assert resp.json["item"]["vendor_id"] == vendor.id

        public = client.get(f"/api/items/{resp.json['item']['id']}")
        assert public.json["item"]["stock"] == 12

    def test_negative_price_rejected(self, client, vendor, headers_for):
        resp = client.post(
            "/api/items",
            json={"name": "Mug", "price_cents": -1},
            headers=headers_for(vendor),
        )
        assert resp.status_code == 400

    def test_restock_over_http(self, client, vendor, other_vendor, item, headers_for):
        resp = client.post(f"/api/items/{item.id}/restock", json={"quantity": 5}, headers=headers_for(vendor))
        assert resp.json["item"]["stock"] == 10

        resp = client.post(f"/api/items/{item.id}/restock", json={"quantity": 5}, headers=headers_for(other_vendor))
        assert resp.status_code == 403


class TestCoupons:

    def _coupon(self, **overrides):
        data = {"code": "save10", "discount_type": "PERCENTAGE", "discount_value": 1000}
        data.update(overrides)
        return coupon_service.create_coupon(data)

    def test_code_is_case_insensitive(self, db_session):
        coupon = self._coupon()
        assert coupon.code == "SAVE10"
        assert coupon_service.resolve_coupon("Save10", 5000)[1] == 500

    def test_percentage_rounds_half_up(self, db_session):
        coupon = self._coupon(discount_value=1250)
        # 12.5% of 1.99 = 24.875 cents
        assert coupon_service.compute_discount(coupon, 199) == 25

    def test_fixed_amount_capped_at_subtotal(self, db_session):
        coupon = self._coupon(code="flat", discount_type="FIXED_AMOUNT", discount_value=5000)
        assert coupon_service.compute_discount(coupon, 1200) == 1200

    def test_expired(self, db_session):
        self._coupon(expires_at=(utcnow() - timedelta(days=1)).isoformat())
        with pytest.raises(ValidationFailed, match="expired"):
            coupon_service.resolve_coupon("SAVE10", 5000)

    def test_not_started(self, db_session):
        self._coupon(starts_at=(utcnow() + timedelta(days=1)).isoformat() + "Z")
        with pytest.raises(ValidationFailed, match="not valid yet"):
            coupon_service.resolve_coupon("SAVE10", 5000)

    def test_minimum_subtotal(self, db_session):
        self._coupon(min_subtotal_cents=10_000)
        with pytest.raises(ValidationFailed) as exc:
            coupon_service.resolve_coupon("SAVE10", 5000)
        assert exc.value.details == {"min_subtotal_cents": 10_000}

    def test_unknown_or_inactive(self, db_session):
        self._coupon(is_active=False)
        for code in ("SAVE10", "NOPE"):
            with pytest.raises(ValidationFailed, match="Invalid coupon"):
                coupon_service.resolve_coupon(code, 5000)

    @pytest.mark.parametrize(
        "overrides",
        [
            {"code": ""},
            {"discount_type": "BOGO"},
            {"discount_value": 0},
            {"discount_value": 10_001},
            {"min_subtotal_cents": -5},
            {"expires_at": "next tuesday"},
            {"code": 42},
            {"discount_type": 1},
        ],
    )
    def test_invalid_coupon_payloads(self, db_session, overrides):
        with pytest.raises(ValidationFailed):
            self._coupon(**overrides)
        assert db_session.query(Coupon).count() == 0

    def test_duplicate_code(self, db_session):
        self._coupon()
        with pytest.raises(ValidationFailed):
            self._coupon(code="SAVE10")

    def test_checkout_applies_coupon(self, db_session, customer, item, place_order):
        self._coupon()
        order = place_order(customer, [(item, 3)], coupon_code="save10")

        assert order.coupon_code == "SAVE10"
        assert order.subtotal_cents == 3000
        assert order.discount_cents == 300
        assert order.total_cents == 2700

    def test_bad_coupon_aborts_checkout(self, db_session, customer, item, place_order, stock_of):
        with pytest.raises(ValidationFailed):
            place_order(customer, [(item, 1)], coupon_code="NOPE")
        assert stock_of(item.id) == 5

    def test_admin_creates_coupon_over_http(self, client, admin, headers_for):
        resp = client.post(
            "/api/admin/coupons",
            json={"code": "spring", "discount_type": "FIXED_AMOUNT", "discount_value": 300},
            headers=headers_for(admin),
        )
        assert resp.status_code == 201
        assert resp.json["coupon"]["code"] == "SPRING"
