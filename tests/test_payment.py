"""Tests for the payment service and the payment and venue APIs."""

from __future__ import annotations

import datetime
import unittest
from unittest.mock import patch

from kickoff import create_app
from kickoff.errors import InvalidStateError, NotFoundError, ValidationError
from kickoff.payment.services import PaymentService
from tests.mock_utils import NOW, FakeMatchStore, make_match, roster_entry


def _seed(store: FakeMatchStore) -> None:
    store.add_document("users", "p2", {"name": "Alex", "email": "alex@example.com"})
    store.add_document(
        "payments",
        "pay1",
        {
            "userId": "p2",
            "matchId": "m1",
            "amount": 5.0,
            "method": "cash",
            "status": "completed",
            "date": NOW,
        },
    )
    store.add_document(
        "payments",
        "pay2",
        {
            "userId": "creator",
            "matchId": "m1",
            "amount": 5.0,
            "method": "transfer",
            "status": "pending",
            "date": NOW + datetime.timedelta(hours=1),
        },
    )


class PaymentServiceTestCase(unittest.TestCase):
    """Tests for PaymentService."""

    def setUp(self) -> None:
        """Seed a match whose two players have both paid."""
        self.store = FakeMatchStore(
            make_match(
                filledSlots=2,
                roster=[
                    roster_entry("creator", hasPaid=True),
                    roster_entry("p2", hasPaid=True),
                ],
            )
        )
        _seed(self.store)

    def test_list_payments(self) -> None:
        """Payments come newest first with player and match summaries."""
        payments = PaymentService.list_payments(self.store, match_id="m1")
        self.assertEqual([p["id"] for p in payments], ["pay2", "pay1"])
        self.assertEqual(payments[1]["user"], {"name": "Alex", "id": "p2"})
        self.assertIsNone(payments[0]["user"])
        self.assertEqual(payments[1]["match"]["title"], "Thursday five-a-side")

    def test_list_payments_for_user(self) -> None:
        """Payments can be narrowed to one player."""
        payments = PaymentService.list_payments(self.store, user_id="p2")
        self.assertEqual([p["id"] for p in payments], ["pay1"])

    def test_get_payment(self) -> None:
        """A payment is fetched by id, and a missing one is NotFound."""
        self.assertEqual(PaymentService.get_payment(self.store, "pay1")["amount"], 5.0)
        with self.assertRaises(NotFoundError):
            PaymentService.get_payment(self.store, "nope")

    def test_complete_pending_payment(self) -> None:
        """Confirming a payment leaves the player marked as paid."""
        payment = PaymentService.update_payment_status(self.store, "pay2", "completed")
        self.assertEqual(payment["status"], "completed")
        self.assertIn("updatedAt", payment)
        stored = self.store.documents["payments"]["pay2"]
        self.assertEqual(stored["status"], "completed")
        self.assertEqual(stored["method"], "transfer")
        self.assertEqual(self.store.writes, [])

    def test_refund_clears_has_paid(self) -> None:
        """A refund flips the player's hasPaid flag in the same commit."""
        PaymentService.update_payment_status(self.store, "pay1", "refunded")
        self.assertEqual(self.store.documents["payments"]["pay1"]["status"], "refunded")
        roster = self.store.matches["m1"]["roster"]
        self.assertEqual([e["hasPaid"] for e in roster], [True, False])

    def test_refunded_is_final(self) -> None:
        """A refunded payment cannot be revived."""
        PaymentService.update_payment_status(self.store, "pay1", "refunded")
        with self.assertRaises(InvalidStateError):
            PaymentService.update_payment_status(self.store, "pay1", "completed")

    def test_same_status_writes_nothing(self) -> None:
        """Setting the current status again is a no-op."""
        payment = PaymentService.update_payment_status(self.store, "pay1", "completed")
        self.assertNotIn("updatedAt", payment)
        self.assertNotIn("updatedAt", self.store.documents["payments"]["pay1"])

    def test_unknown_status(self) -> None:
        """Only known statuses are accepted."""
        with self.assertRaises(ValidationError):
            PaymentService.update_payment_status(self.store, "pay1", "lost")

    def test_refund_on_missing_match(self) -> None:
        """A refund whose match is gone is not half-applied."""
        del self.store.matches["m1"]
        with self.assertRaises(NotFoundError):
            PaymentService.update_payment_status(self.store, "pay1", "refunded")
        stored = self.store.documents["payments"]["pay1"]
        self.assertEqual(stored["status"], "completed")


class PaymentRoutesTestCase(unittest.TestCase):
    """Test case for the payment and venue APIs."""

    def setUp(self):
        """Set up a test client backed by an in-memory store."""
        self.store = FakeMatchStore(
            make_match(
                filledSlots=2,
                roster=[roster_entry("creator"), roster_entry("p2", hasPaid=True)],
            )
        )
        _seed(self.store)
        self.store.add_document("venues", "v2", {"name": "Riverside Pitch"})
        self.store.add_document("venues", "v1", {"name": "Park Lane Courts"})
        for target in ("kickoff.payment.routes", "kickoff.venue.routes"):
            patcher = patch(f"{target}._get_store", return_value=self.store)
            patcher.start()
            self.addCleanup(patcher.stop)

        self.client = create_app({"TESTING": True}).test_client()

    def test_list_payments(self):
        """Payments can be filtered by query string."""
        response = self.client.get("/api/payments?userId=creator")
        self.assertEqual(response.status_code, 200)
        self.assertEqual([p["id"] for p in response.get_json()["payments"]], ["pay2"])

    def test_view_payment(self):
        """A payment is returned by id; an unknown id is a 404."""
        response = self.client.get("/api/payments/pay1")
        self.assertEqual(response.get_json()["payment"]["method"], "cash")

        response = self.client.get("/api/payments/nope")
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.get_json()["code"], "not_found")

    def test_update_status(self):
        """A refund through the API clears the player's paid flag."""
        response = self.client.patch("/api/payments/pay1", json={"status": "refunded"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json()["payment"]["status"], "refunded")
        self.assertFalse(self.store.matches["m1"]["roster"][1]["hasPaid"])

        response = self.client.patch("/api/payments/pay1", json={"status": "pending"})
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.get_json()["code"], "invalid_state")

    def test_update_status_invalid(self):
        """An unknown or missing status is a validation error."""
        for body in ({"status": "lost"}, {}):
            with self.subTest(body=body):
                response = self.client.patch("/api/payments/pay1", json=body)
                self.assertEqual(response.status_code, 400)
                self.assertEqual(response.get_json()["code"], "validation_error")

    def test_list_venues(self):
        """Venues are listed by name."""
        response = self.client.get("/api/venues")
        self.assertEqual(response.status_code, 200)
        venues = response.get_json()["venues"]
        self.assertEqual([v["id"] for v in venues], ["v1", "v2"])
