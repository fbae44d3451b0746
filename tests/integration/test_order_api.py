"""Integration tests for the Order endpoints.

Covers:
- Checkout 201 with frozen tier prices; 400/404/409 business errors.
- Idempotency-Key replays.
- Customers only see their own orders; the OTP is shown to the owner only.
- Staff status changes and partial-delivery edits.
- OTP delivery confirmation, including throttling of guesses.
- Customer cancellation.
"""

from __future__ import annotations

import pytest

from modules.orders.constants import OrderStatus
from modules.orders.models import Order

pytestmark = pytest.mark.integration

URL = "/api/v1/orders/"


def _url(order, action=""):
    return f"{URL}{order.id}/{action}"


def _wrong_otp(order):
    return "000000" if order.otp != "000000" else "111111"


@pytest.fixture()
def order(place_order, rice, dal):
    return place_order([(rice, 7), (dal, 3)])


@pytest.fixture()
def shipped_order(order, order_service):
    return order_service.set_status(order.id, OrderStatus.SHIPPED)


@pytest.fixture()
def partial_order(shipped_order, order_service):
    return order_service.set_status(shipped_order.id, OrderStatus.PARTIAL)


def _item_id(order, name):
    return str(next(item.id for item in order.items.all() if item.name == name))


# ===========================================================================
# Checkout
# ===========================================================================


class TestCheckout:
    def test_create_order(self, customer_client, rice, dal):
        payload = {
            "items": [
                {"product_id": str(rice.id), "quantity": 12},
                {"product_id": str(dal.id), "quantity": 1},
            ],
            "phone": "9876543210",
            "address": "12 MG Road, Pune",
        }
        response = customer_client.post(URL, payload, format="json")
        assert response.status_code == 201
        data = response.json()
        assert data["status"] == OrderStatus.PENDING
        assert data["total"] == "9800.00"
        assert len(data["otp"]) == 6
        assert data["otp_verified"] is False
        prices = {item["name"]: item["price"] for item in data["items"]}
        assert prices == {"Basmati Rice": "800.00", "Toor Dal": "200.00"}
        rice.refresh_from_db()
        assert rice.pieces_left == 38

    def test_empty_cart(self, customer_client):
        response = customer_client.post(URL, {"items": []}, format="json")
        assert response.status_code == 400
        assert Order.objects.count() == 0

    def test_unknown_product(self, customer_client):
        payload = {
            "items": [{"product_id": "018f0000-0000-7000-8000-000000000000", "quantity": 1}]
        }
        response = customer_client.post(URL, payload, format="json")
        assert response.status_code == 404

    def test_insufficient_stock(self, customer_client, rice):
        payload = {"items": [{"product_id": str(rice.id), "quantity": 51}]}
        response = customer_client.post(URL, payload, format="json")
        assert response.status_code == 409
        rice.refresh_from_db()
        assert rice.pieces_left == 50

    def test_duplicate_product_lines(self, customer_client, rice):
        payload = {
            "items": [
                {"product_id": str(rice.id), "quantity": 1},
                {"product_id": str(rice.id), "quantity": 2},
            ]
        }
        response = customer_client.post(URL, payload, format="json")
        assert response.status_code == 400
        detail = response.json()["detail"]
        assert detail == "Duplicate product IDs are not allowed in the same cart."
        assert "input_value" not in detail
        assert "errors.pydantic.dev" not in detail

    def test_zero_quantity(self, customer_client, rice):
        payload = {"items": [{"product_id": str(rice.id), "quantity": 0}]}
        response = customer_client.post(URL, payload, format="json")
        assert response.status_code == 400

    def test_idempotency_key_replay(self, customer_client, rice):
        payload = {"items": [{"product_id": str(rice.id), "quantity": 2}]}
        first = customer_client.post(
            URL, payload, format="json", HTTP_IDEMPOTENCY_KEY="cart-42"
        )
        second = customer_client.post(
            URL, payload, format="json", HTTP_IDEMPOTENCY_KEY="cart-42"
        )
        assert first.status_code == 201
        assert second.status_code == 201
        assert first.json()["id"] == second.json()["id"]
        rice.refresh_from_db()
        assert rice.pieces_left == 48

    def test_idempotency_key_is_scoped_to_customer(self, customer_client, other_client, rice, dal):
        first = customer_client.post(
            URL,
            {
                "items": [{"product_id": str(rice.id), "quantity": 1}],
                "address": "12 MG Road, Agra",
            },
            format="json",
            HTTP_IDEMPOTENCY_KEY="k-1",
        )
        second = other_client.post(
            URL,
            {"items": [{"product_id": str(dal.id), "quantity": 2}]},
            format="json",
            HTTP_IDEMPOTENCY_KEY="k-1",
        )
        assert first.status_code == 201
        assert second.status_code == 201
        data = second.json()
        assert data["id"] != first.json()["id"]
        assert data["address"] != "12 MG Road, Agra"
        assert [item["name"] for item in data["items"]] == ["Toor Dal"]
        assert Order.objects.filter(idempotency_key="k-1").count() == 2

    def test_requires_authentication(self, api_client, rice):
        payload = {"items": [{"product_id": str(rice.id), "quantity": 1}]}
        response = api_client.post(URL, payload, format="json")
        assert response.status_code == 401


# ===========================================================================
# Reads
# ===========================================================================


class TestReads:
    def test_customer_lists_own_orders(self, customer_client, place_order, rice, other_customer):
        mine = place_order([(rice, 1)])
        place_order([(rice, 1)], customer=other_customer)
        response = customer_client.get(URL)
        assert response.status_code == 200
        assert [o["id"] for o in response.json()["results"]] == [str(mine.id)]

    def test_admin_lists_all_orders(self, admin_client, place_order, rice, other_customer):
        place_order([(rice, 1)])
        place_order([(rice, 1)], customer=other_customer)
        response = admin_client.get(URL)
        assert response.json()["count"] == 2

    def test_filter_by_status(self, admin_client, order, place_order, rice, order_service):
        order_service.set_status(order.id, OrderStatus.CANCELLED)
        place_order([(rice, 1)])
        response = admin_client.get(URL, {"status": OrderStatus.CANCELLED})
        assert [o["id"] for o in response.json()["results"]] == [str(order.id)]

    def test_filter_by_several_statuses(self, admin_client, order, place_order, rice, order_service):
        order_service.set_status(order.id, OrderStatus.SHIPPED)
        cancelled = place_order([(rice, 1)])
        order_service.set_status(cancelled.id, OrderStatus.CANCELLED)
        place_order([(rice, 1)])
        response = admin_client.get(
            URL, {"status": [OrderStatus.SHIPPED, OrderStatus.CANCELLED]}
        )
        assert {o["id"] for o in response.json()["results"]} == {
            str(order.id),
            str(cancelled.id),
        }

    def test_filter_by_product(self, admin_client, place_order, rice, dal):
        with_dal = place_order([(rice, 1), (dal, 2)])
        place_order([(rice, 1)])
        response = admin_client.get(URL, {"product": str(dal.id)})
        assert [o["id"] for o in response.json()["results"]] == [str(with_dal.id)]

    def test_owner_sees_otp(self, customer_client, order):
        response = customer_client.get(_url(order))
        assert response.status_code == 200
        data = response.json()
        assert data["otp"] == order.otp
        assert len(data["status_history"]) == 1

    def test_admin_does_not_see_otp(self, admin_client, order):
        response = admin_client.get(_url(order))
        assert response.status_code == 200
        assert response.json()["otp"] is None

    def test_other_customer_gets_404(self, other_client, order):
        response = other_client.get(_url(order))
        assert response.status_code == 404

    def test_invalid_id(self, customer_client):
        response = customer_client.get(f"{URL}not-a-uuid/")
        assert response.status_code == 404


# ===========================================================================
# Status (staff)
# ===========================================================================


class TestSetStatus:
    def test_admin_ships_order(self, admin_client, order):
        response = admin_client.post(
            _url(order, "status/"), {"status": OrderStatus.SHIPPED}, format="json"
        )
        assert response.status_code == 200
        assert response.json()["status"] == OrderStatus.SHIPPED

    def test_invalid_transition(self, admin_client, order):
        response = admin_client.post(
            _url(order, "status/"), {"status": OrderStatus.PARTIAL}, format="json"
        )
        assert response.status_code == 409
        order.refresh_from_db()
        assert order.status == OrderStatus.PENDING

    def test_delivered_requires_otp(self, admin_client, shipped_order):
        response = admin_client.post(
            _url(shipped_order, "status/"),
            {"status": OrderStatus.DELIVERED},
            format="json",
        )
        assert response.status_code == 409

    def test_unknown_status_value(self, admin_client, order):
        response = admin_client.post(
            _url(order, "status/"), {"status": "LOST"}, format="json"
        )
        assert response.status_code == 400

    def test_customer_forbidden(self, customer_client, order):
        response = customer_client.post(
            _url(order, "status/"), {"status": OrderStatus.SHIPPED}, format="json"
        )
        assert response.status_code == 403

    def test_cancel_restores_stock(self, admin_client, order, rice):
        admin_client.post(
            _url(order, "status/"), {"status": OrderStatus.CANCELLED}, format="json"
        )
        rice.refresh_from_db()
        assert rice.pieces_left == 50


# ===========================================================================
# Partial delivery edits (staff)
# ===========================================================================


class TestEditItems:
    def test_edit_partial_order(self, admin_client, partial_order, rice):
        payload = {"items": [{"item_id": _item_id(partial_order, "Basmati Rice"), "quantity": 4}]}
        response = admin_client.post(_url(partial_order, "edit/"), payload, format="json")
        assert response.status_code == 200
        data = response.json()
        assert data["total"] == "4200.00"
        rice_item = next(i for i in data["items"] if i["name"] == "Basmati Rice")
        assert rice_item["quantity"] == 4
        assert rice_item["price"] == "900.00"
        rice.refresh_from_db()
        assert rice.pieces_left == 46

    def test_no_changes(self, admin_client, partial_order):
        payload = {"items": [{"item_id": _item_id(partial_order, "Basmati Rice"), "quantity": 7}]}
        response = admin_client.post(_url(partial_order, "edit/"), payload, format="json")
        assert response.status_code == 400

    def test_negative_quantity(self, admin_client, partial_order):
        payload = {"items": [{"item_id": _item_id(partial_order, "Toor Dal"), "quantity": -1}]}
        response = admin_client.post(_url(partial_order, "edit/"), payload, format="json")
        assert response.status_code == 400

    def test_foreign_item(self, admin_client, partial_order):
        payload = {"items": [{"item_id": "018f0000-0000-7000-8000-000000000000", "quantity": 1}]}
        response = admin_client.post(_url(partial_order, "edit/"), payload, format="json")
        assert response.status_code == 400

    def test_shipped_order_not_editable(self, admin_client, shipped_order):
        payload = {"items": [{"item_id": _item_id(shipped_order, "Toor Dal"), "quantity": 1}]}
        response = admin_client.post(_url(shipped_order, "edit/"), payload, format="json")
        assert response.status_code == 409

    def test_customer_forbidden(self, customer_client, partial_order):
        payload = {"items": [{"item_id": _item_id(partial_order, "Toor Dal"), "quantity": 1}]}
        response = customer_client.post(_url(partial_order, "edit/"), payload, format="json")
        assert response.status_code == 403


# ===========================================================================
# OTP delivery confirmation
# ===========================================================================


class TestVerifyOtp:
    def test_customer_confirms_delivery(self, customer_client, shipped_order):
        response = customer_client.post(
            _url(shipped_order, "verify-otp/"), {"otp": shipped_order.otp}, format="json"
        )
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == OrderStatus.DELIVERED
        assert data["otp_verified"] is True

    def test_partial_order_confirmed(self, customer_client, partial_order):
        response = customer_client.post(
            _url(partial_order, "verify-otp/"), {"otp": partial_order.otp}, format="json"
        )
        assert response.status_code == 200
        assert response.json()["status"] == OrderStatus.DELIVERED

    def test_wrong_code(self, customer_client, shipped_order):
        response = customer_client.post(
            _url(shipped_order, "verify-otp/"),
            {"otp": _wrong_otp(shipped_order)},
            format="json",
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid OTP."
        shipped_order.refresh_from_db()
        assert shipped_order.status == OrderStatus.SHIPPED

    def test_second_confirmation_conflicts(self, customer_client, shipped_order):
        url = _url(shipped_order, "verify-otp/")
        customer_client.post(url, {"otp": shipped_order.otp}, format="json")
        response = customer_client.post(url, {"otp": shipped_order.otp}, format="json")
        assert response.status_code == 409

    def test_pending_order_conflicts(self, customer_client, order):
        response = customer_client.post(
            _url(order, "verify-otp/"), {"otp": order.otp}, format="json"
        )
        assert response.status_code == 409

    def test_code_must_have_six_digits(self, customer_client, shipped_order):
        response = customer_client.post(
            _url(shipped_order, "verify-otp/"), {"otp": "123"}, format="json"
        )
        assert response.status_code == 400

    def test_other_customer_gets_404(self, other_client, shipped_order):
        response = other_client.post(
            _url(shipped_order, "verify-otp/"), {"otp": shipped_order.otp}, format="json"
        )
        assert response.status_code == 404

    def test_guesses_are_throttled(self, customer_client, shipped_order):
        url = _url(shipped_order, "verify-otp/")
        wrong = _wrong_otp(shipped_order)
        codes = [customer_client.post(url, {"otp": wrong}, format="json").status_code for _ in range(11)]
        assert codes[:10] == [400] * 10
        assert codes[10] == 429


# ===========================================================================
# Customer cancellation
# ===========================================================================


class TestCancel:
    def test_customer_cancels_pending_order(self, customer_client, order, rice):
        response = customer_client.post(
            _url(order, "cancel/"), {"notes": "Ordered by mistake"}, format="json"
        )
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == OrderStatus.CANCELLED
        assert data["status_history"][0]["notes"] == "Ordered by mistake"
        rice.refresh_from_db()
        assert rice.pieces_left == 50

    def test_shipped_order_conflicts(self, customer_client, shipped_order):
        response = customer_client.post(_url(shipped_order, "cancel/"), {}, format="json")
        assert response.status_code == 409

    def test_other_customer_gets_404(self, other_client, order):
        response = other_client.post(_url(order, "cancel/"), {}, format="json")
        assert response.status_code == 404
