"""Integration tests for the booking and cancellation endpoints.

Run with: pytest tests/test_api.py -v
"""

import uuid
from decimal import Decimal

import pytest
from rest_framework.test import APIClient

from bookings import models
from tests.factories import fund_wallet, make_occurrence


def book(api_client: APIClient, occurrence, customer_id=None, payment_method="card", **extra):
    payload = {
        "occurrence_id": str(occurrence.id),
        "customer_id": str(customer_id or uuid.uuid4()),
        "payment_method": payment_method,
        **extra,
    }
    return api_client.post("/api/bookings", payload, format="json")


@pytest.mark.django_db
class TestPaymentOptions:
    """Tests for GET /api/occurrences/{id}/payment-options"""

    def test_lists_wallet_when_balance_covers_price(self, api_client: APIClient):
        """Given a funded wallet, wallet is offered next to external methods."""
        occurrence = make_occurrence()
        customer = uuid.uuid4()
        fund_wallet(customer, "50.00")

        response = api_client.get(
            f"/api/occurrences/{occurrence.id}/payment-options", {"customer_id": str(customer)}
        )

        assert response.status_code == 200
        body = response.json()
        assert body["price"] == "40.00"
        assert body["seats_left"] == 10
        keys = [option["key"] for option in body["options"]]
        assert keys == ["wallet", "twint", "card"]
        assert body["options"][0]["available_balance"] == "50.00"

    def test_missing_customer_id(self, api_client: APIClient):
        """Given no customer_id, returns 400."""
        occurrence = make_occurrence()

        response = api_client.get(f"/api/occurrences/{occurrence.id}/payment-options")

        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_ID"

    def test_occurrence_not_found(self, api_client: APIClient):
        """Given occurrence does not exist, returns 404."""
        response = api_client.get(
            f"/api/occurrences/{uuid.uuid4()}/payment-options", {"customer_id": str(uuid.uuid4())}
        )

        assert response.status_code == 404
        assert response.json()["code"] == "OCCURRENCE_NOT_FOUND"


@pytest.mark.django_db
class TestCreateBooking:
    """Tests for POST /api/bookings"""

    def test_card_booking_is_confirmed(self, api_client: APIClient):
        occurrence = make_occurrence()

        response = book(api_client, occurrence)

        assert response.status_code == 201
        body = response.json()
        assert body["status"] == "confirmed"
        assert body["amount_paid"] == "40.00"
        assert body["waitlist_position"] == ""

    def test_full_class_joins_waitlist(self, api_client: APIClient):
        occurrence = make_occurrence(capacity=0)

        response = book(api_client, occurrence)

        assert response.status_code == 201
        assert response.json()["status"] == "waitlisted"
        assert response.json()["waitlist_position"] == "#1 on the waitlist"

    def test_full_class_without_waitlist(self, api_client: APIClient):
        occurrence = make_occurrence(capacity=0)

        response = book(api_client, occurrence, allow_waitlist=False)

        assert response.status_code == 409
        assert response.json()["code"] == "CAPACITY_EXCEEDED"
        assert not models.Registration.objects.exists()

    def test_wallet_without_balance_is_payment_required(self, api_client: APIClient):
        occurrence = make_occurrence()
        customer = uuid.uuid4()
        fund_wallet(customer, "5.00")

        response = book(api_client, occurrence, customer, payment_method="wallet")

        assert response.status_code == 402
        assert response.json()["code"] == "PAYMENT_INSTRUMENT_INSUFFICIENT"

    def test_second_booking_for_same_customer_conflicts(self, api_client: APIClient):
        occurrence = make_occurrence()
        customer = uuid.uuid4()
        book(api_client, occurrence, customer)

        response = book(api_client, occurrence, customer)

        assert response.status_code == 409
        assert response.json()["code"] == "ALREADY_REGISTERED"

    def test_missing_payment_method(self, api_client: APIClient):
        occurrence = make_occurrence()

        response = api_client.post(
            "/api/bookings",
            {"occurrence_id": str(occurrence.id), "customer_id": str(uuid.uuid4())},
            format="json",
        )

        assert response.status_code == 400
        assert "payment_method" in response.json()


@pytest.mark.django_db
class TestCancelRegistration:
    """Tests for POST /api/registrations/{id}/cancel"""

    def test_customer_cancellation_returns_breakdown(self, api_client: APIClient):
        occurrence = make_occurrence(hours_from_now=15)
        registration_id = book(api_client, occurrence).json()["id"]

        response = api_client.post(f"/api/registrations/{registration_id}/cancel", format="json")

        assert response.status_code == 200
        body = response.json()
        assert body["applied"] is True
        assert body["breakdown"]["refund_amount"] == "17.50"
        assert body["breakdown"]["credit_amount"] == "20.00"
        assert body["breakdown"]["processing_fee"] == "2.50"

    def test_instructor_cancellation_type(self, api_client: APIClient):
        occurrence = make_occurrence(hours_from_now=1)
        registration_id = book(api_client, occurrence).json()["id"]

        response = api_client.post(
            f"/api/registrations/{registration_id}/cancel",
            {"cancellation_type": "instructor"},
            format="json",
        )

        assert response.json()["breakdown"]["refund_amount"] == "40.00"
        assert models.RefundOrder.objects.get().amount == -40

    def test_repeat_cancellation_is_not_applied_again(self, api_client: APIClient):
        occurrence = make_occurrence(hours_from_now=15)
        registration_id = book(api_client, occurrence).json()["id"]
        api_client.post(f"/api/registrations/{registration_id}/cancel", format="json")

        response = api_client.post(f"/api/registrations/{registration_id}/cancel", format="json")

        assert response.status_code == 200
        assert response.json()["applied"] is False
        assert models.WalletTransaction.objects.count() == 1

    def test_unknown_cancellation_type(self, api_client: APIClient):
        response = api_client.post(
            f"/api/registrations/{uuid.uuid4()}/cancel", {"cancellation_type": "flood"}, format="json"
        )

        assert response.status_code == 400

    def test_registration_not_found(self, api_client: APIClient):
        response = api_client.post(f"/api/registrations/{uuid.uuid4()}/cancel", format="json")

        assert response.status_code == 404
        assert response.json()["code"] == "REGISTRATION_NOT_FOUND"

    def test_invalid_id_format(self, api_client: APIClient):
        response = api_client.post("/api/registrations/not-a-uuid/cancel", format="json")

        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_ID"


@pytest.mark.django_db
class TestCancelOccurrence:
    """Tests for POST /api/occurrences/{id}/cancel and /api/occurrences/bulk-cancel"""

    def test_cancel_refunds_confirmed_registrations(self, api_client: APIClient):
        occurrence = make_occurrence(price=Decimal("30.00"))
        for _ in range(2):
            customer = uuid.uuid4()
            fund_wallet(customer, "30.00")
            book(api_client, occurrence, customer, payment_method="wallet")

        response = api_client.post(
            f"/api/occurrences/{occurrence.id}/cancel", {"reason": "Instructor sick"}, format="json"
        )

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "cancelled"
        assert body["affected_registrations"] == 2
        assert body["refunds"] == {"successful": 2, "failed": 0, "failures": []}
        occurrence.refresh_from_db()
        assert occurrence.cancellation_reason == "Instructor sick"

    def test_cancel_unknown_occurrence(self, api_client: APIClient):
        response = api_client.post(f"/api/occurrences/{uuid.uuid4()}/cancel", format="json")

        assert response.status_code == 404

    def test_bulk_cancel_reports_each_failure(self, api_client: APIClient):
        occurrence = make_occurrence()

        response = api_client.post(
            "/api/occurrences/bulk-cancel",
            {"occurrence_ids": [str(occurrence.id), "garbage"], "reason": "Studio closed"},
            format="json",
        )

        assert response.status_code == 200
        body = response.json()
        assert body["successful"] == 1
        assert body["failed"] == 1
        assert body["failures"][0]["item_id"] == "garbage"
        assert body["failures"][0]["code"] == "INVALID_ID"

    def test_bulk_cancel_requires_ids(self, api_client: APIClient):
        response = api_client.post(
            "/api/occurrences/bulk-cancel", {"occurrence_ids": []}, format="json"
        )

        assert response.status_code == 400
