"""Integration tests for the cart totals endpoint."""

from __future__ import annotations

import pytest

pytestmark = pytest.mark.integration

URL = "/api/v1/cart/totals/"


class TestCartTotals:
    def test_quote(self, customer_client, rice, dal):
        response = customer_client.post(
            URL,
            {
                "items": [
                    {"product_id": str(rice.id), "quantity": 7},
                    {"product_id": str(dal.id), "quantity": 3},
                ]
            },
            format="json",
        )
        assert response.status_code == 200
        data = response.json()
        assert data["subtotal"] == "7600.00"
        assert data["discount"] == "700.00"
        assert data["total"] == "6900.00"
        rice_line = data["lines"][0]
        assert rice_line["product_id"] == str(rice.id)
        assert rice_line["unit_price"] == "900.00"
        assert rice_line["applied_tier"] == 5
        assert rice_line["line_total"] == "6300.00"

    def test_quote_does_not_reserve_stock(self, customer_client, rice):
        customer_client.post(
            URL,
            {"items": [{"product_id": str(rice.id), "quantity": 5}]},
            format="json",
        )
        rice.refresh_from_db()
        assert rice.pieces_left == 50

    def test_empty_cart(self, customer_client):
        response = customer_client.post(URL, {"items": []}, format="json")
        assert response.status_code == 200
        assert response.json()["total"] == "0.00"

    def test_unknown_product(self, customer_client):
        response = customer_client.post(
            URL,
            {"items": [{"product_id": "018f0000-0000-7000-8000-000000000000", "quantity": 1}]},
            format="json",
        )
        assert response.status_code == 404

    def test_zero_quantity(self, customer_client, rice):
        response = customer_client.post(
            URL,
            {"items": [{"product_id": str(rice.id), "quantity": 0}]},
            format="json",
        )
        assert response.status_code == 400

    def test_requires_authentication(self, api_client, rice):
        response = api_client.post(
            URL,
            {"items": [{"product_id": str(rice.id), "quantity": 1}]},
            format="json",
        )
        assert response.status_code == 401

    def test_duplicate_product_lines_rejected_like_checkout(self, customer_client, rice):
        items = [
            {"product_id": str(rice.id), "quantity": 3},
            {"product_id": str(rice.id), "quantity": 3},
        ]
        quote = customer_client.post(URL, {"items": items}, format="json")
        checkout = customer_client.post("/api/v1/orders/", {"items": items}, format="json")
        assert quote.status_code == 400
        assert checkout.status_code == 400
        assert quote.json()["detail"] == (
            "Duplicate product IDs are not allowed in the same cart."
        )

    def test_six_pieces_on_one_line_reach_the_five_piece_tier(self, customer_client, rice):
        response = customer_client.post(
            URL,
            {"items": [{"product_id": str(rice.id), "quantity": 6}]},
            format="json",
        )
        assert response.json()["total"] == "5400.00"
