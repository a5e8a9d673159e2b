"""Service layer for payment lookups and status changes."""

from __future__ import annotations

import datetime
import logging
from typing import TYPE_CHECKING, Any, Optional, cast

from kickoff.core.constants import (
    MATCHES_COLLECTION,
    PAYMENT_REFUNDED,
    PAYMENT_STATUSES,
    PAYMENTS_COLLECTION,
    USERS_COLLECTION,
)
from kickoff.errors import InvalidStateError, NotFoundError, ValidationError
from kickoff.match.models import Payment
from kickoff.match.services import USER_SUMMARY_FIELDS, summary
from kickoff.match.store import UpdateArrayElements

if TYPE_CHECKING:
    from kickoff.match.store import MatchStore

logger = logging.getLogger(__name__)

MATCH_SUMMARY_FIELDS = ("title", "startTime", "status")


class PaymentService:
    """Service class for payment-related operations."""

    @staticmethod
    def list_payments(
        store: MatchStore,
        match_id: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> list[Payment]:
        """List payments, newest first, with their player and match details."""
        filters = []
        if match_id:
            filters.append(("matchId", "==", match_id))
        if user_id:
            filters.append(("userId", "==", user_id))
        payments = store.list_documents(
            PAYMENTS_COLLECTION, filters, order_by="date", descending=True
        )

        users = store.get_documents(
            USERS_COLLECTION, [p.get("userId") for p in payments]
        )
        matches = store.get_documents(
            MATCHES_COLLECTION, [p.get("matchId") for p in payments]
        )
        for payment in payments:
            user = users.get(payment.get("userId"))
            match = matches.get(payment.get("matchId"))
            payment["user"] = summary(user, USER_SUMMARY_FIELDS) if user else None
            payment["match"] = summary(match, MATCH_SUMMARY_FIELDS) if match else None
        return cast("list[Payment]", payments)

    @staticmethod
    def get_payment(store: MatchStore, payment_id: str) -> Payment:
        """Fetch a single payment, raising if it does not exist."""
        payment = store.get_document(PAYMENTS_COLLECTION, payment_id)
        if payment is None:
            raise NotFoundError("Payment not found.")
        return cast(Payment, payment)

    @staticmethod
    def update_payment_status(
        store: MatchStore, payment_id: str, status: str
    ) -> Payment:
        """Move a payment to ``status``.

        A refund clears the player's ``hasPaid`` flag in the same transaction,
        so the player can pay again. Refunded payments are final.
        """
        if status not in PAYMENT_STATUSES:
            raise ValidationError(f"Unknown payment status: {status}.")

        payment = PaymentService.get_payment(store, payment_id)
        current = payment.get("status")
        if current == status:
            return payment
        if current == PAYMENT_REFUNDED:
            raise InvalidStateError("A refunded payment cannot change status.")

        changes: dict[str, Any] = {
            "status": status,
            "updatedAt": datetime.datetime.now(datetime.timezone.utc),
        }
        transaction = store.transaction()
        if status == PAYMENT_REFUNDED:
            transaction.patch(
                payment["matchId"],
                [
                    UpdateArrayElements(
                        "roster", "userId", payment["userId"], {"hasPaid": False}
                    )
                ],
            )
        transaction.update(PAYMENTS_COLLECTION, payment_id, changes)
        transaction.commit()

        logger.info(f"Payment {payment_id} moved from {current} to {status}")
        return cast(Payment, {**payment, **changes})
