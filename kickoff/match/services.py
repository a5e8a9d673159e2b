"""Service layer for match data access and orchestration."""

from __future__ import annotations

import datetime
import logging
from typing import TYPE_CHECKING, Any, Optional, cast

from firebase_admin import firestore

from kickoff.core.constants import (
    PAYMENT_PENDING,
    PAYMENT_STATUSES,
    PAYMENTS_COLLECTION,
    STATUS_CANCELLED,
    STATUS_SCHEDULED,
    TERMINAL_STATUSES,
    USERS_COLLECTION,
    VENUES_COLLECTION,
)
from kickoff.errors import (
    DuplicateResourceError,
    InvalidStateError,
    NotAMemberError,
    NotFoundError,
    ValidationError,
)

from .models import Match, MatchSubmission, Payment, new_roster_entry
from .queue_processor import QueueProcessor
from .store import PatchOp, SetField, UpdateArrayElements

if TYPE_CHECKING:
    from .store import MatchStore

logger = logging.getLogger(__name__)

USER_SUMMARY_FIELDS = ("name", "profileImage", "preferredPosition", "skillLevel")
VENUE_SUMMARY_FIELDS = ("name", "address", "hourlyRate", "amenities")
EDITABLE_FIELDS = (
    "title",
    "startTime",
    "venueId",
    "matchType",
    "totalSlots",
    "totalCost",
    "durationMinutes",
    "visibility",
    "notes",
)


def summary(doc: dict[str, Any], fields: tuple[str, ...]) -> dict[str, Any]:
    """Pick the listed fields of a related document, plus its id."""
    picked = {key: doc[key] for key in fields if key in doc}
    picked["id"] = doc["id"]
    return picked


class MatchService:
    """Service class for match-related operations."""

    @staticmethod
    def create_match(store: MatchStore, submission: MatchSubmission) -> Match:
        """Create a match with its creator as the first roster entry."""
        submission.validate()

        data: dict[str, Any] = {
            "title": submission.title,
            "startTime": submission.start_time,
            "venueId": submission.venue_id,
            "matchType": submission.match_type,
            "totalSlots": submission.total_slots,
            "filledSlots": 1,
            "roster": [
                new_roster_entry(submission.created_by, submission.creator_position)
            ],
            "queue": [],
            "status": STATUS_SCHEDULED,
            "visibility": submission.visibility,
            "createdBy": submission.created_by,
            "createdAt": firestore.SERVER_TIMESTAMP,
        }
        if submission.total_cost is not None:
            data["totalCost"] = submission.total_cost
            data["costPerPlayer"] = round(
                submission.total_cost / submission.total_slots, 2
            )
        if submission.duration_minutes:
            data["durationMinutes"] = submission.duration_minutes
        if submission.notes:
            data["notes"] = submission.notes

        match = store.create(data)
        logger.info(f"Match {match['id']} created by {submission.created_by}")
        return match

    @staticmethod
    def get_match_by_id(store: MatchStore, match_id: str) -> Optional[Match]:
        """Fetch a single match by its ID, without related documents."""
        return store.get(match_id)

    @staticmethod
    def get_match(store: MatchStore, match_id: str) -> Match:
        """Fetch a match aggregate with venue, creator and player summaries."""
        match = store.get(match_id)
        if match is None:
            raise NotFoundError("Match not found.")

        roster = match.get("roster") or []
        user_ids = [match.get("createdBy", "")]
        user_ids += [entry.get("userId", "") for entry in roster]
        users = store.get_documents(USERS_COLLECTION, user_ids)

        venue_id = match.get("venueId")
        if venue_id:
            venues = store.get_documents(VENUES_COLLECTION, [venue_id])
            if venue_id in venues:
                match["venue"] = summary(venues[venue_id], VENUE_SUMMARY_FIELDS)

        creator = users.get(match.get("createdBy", ""))
        if creator:
            match["creator"] = summary(creator, USER_SUMMARY_FIELDS)

        for entry in roster:
            user = users.get(entry.get("userId", ""))
            if user:
                entry["user"] = summary(user, USER_SUMMARY_FIELDS)

        return match

    @staticmethod
    def list_matches(store: MatchStore) -> list[Match]:
        """Fetch all matches, newest first."""
        return store.query(order_by="startTime", descending=True)

    @staticmethod
    def list_user_matches(store: MatchStore, user_id: str) -> list[Match]:
        """Fetch matches the user created or plays in, newest first."""
        matches = store.query(order_by="startTime", descending=True)
        return [
            m
            for m in matches
            if m.get("createdBy") == user_id
            or any(e.get("userId") == user_id for e in m.get("roster") or [])
        ]

    @staticmethod
    def cancel_match(store: MatchStore, match_id: str, user_id: str) -> Match:
        """Cancel a match that has not finished, on behalf of its creator."""

        def plan(match: Match) -> list[PatchOp]:
            if match.get("createdBy") != user_id:
                raise PermissionError("Only the match creator can cancel the match.")
            status = match.get("status")
            if status in TERMINAL_STATUSES:
                raise InvalidStateError(f"Cannot cancel a match that is {status}.")
            return [SetField("status", STATUS_CANCELLED)]

        match = store.mutate(match_id, plan)
        logger.info(f"Match {match_id} cancelled by {user_id}")
        return match

    @staticmethod
    def update_match(
        store: MatchStore, match_id: str, user_id: str, changes: dict[str, Any]
    ) -> Match:
        """Edit a scheduled match on behalf of its creator.

        Shrinking ``totalSlots`` below the number of players is refused.
        Growing it hands the new slots to the queue straight away.
        """
        unknown = sorted(set(changes) - set(EDITABLE_FIELDS))
        if unknown:
            raise ValidationError(f"Fields cannot be edited: {', '.join(unknown)}.")
        if not changes:
            raise ValidationError("No changes given.")

        def plan(match: Match) -> list[PatchOp]:
            if match.get("createdBy") != user_id:
                raise PermissionError("Only the match creator can edit the match.")
            status = match.get("status")
            if status != STATUS_SCHEDULED:
                raise InvalidStateError(f"Cannot edit a match that is {status}.")

            occupied = len(match.get("roster") or [])
            total_slots = changes.get("totalSlots", match.get("totalSlots", 0))
            if total_slots < occupied:
                raise InvalidStateError(
                    f"Cannot reduce the match to {total_slots} slots; "
                    f"{occupied} players have already joined."
                )

            ops: list[PatchOp] = [SetField(k, v) for k, v in changes.items()]
            total_cost = changes.get("totalCost", match.get("totalCost"))
            if total_cost is not None and (
                "totalCost" in changes or "totalSlots" in changes
            ):
                cost_per_player = round(total_cost / total_slots, 2)
                ops.append(SetField("costPerPlayer", cost_per_player))
            return ops

        match = store.mutate(match_id, plan)
        logger.info(f"Match {match_id} updated by {user_id}: {sorted(changes)}")

        occupied = len(match.get("roster") or [])
        if match.get("queue") and occupied < match.get("totalSlots", 0):
            result = QueueProcessor.process_queue(store, match_id)
            match = result.match or match
        return match

    @staticmethod
    def record_payment(  # noqa: PLR0913
        store: MatchStore,
        match_id: str,
        user_id: str,
        amount: float,
        method: str,
        notes: Optional[str] = None,
        status: str = PAYMENT_PENDING,
    ) -> Payment:
        """Record a payment and mark the player as paid, together.

        The payment starts out ``pending`` unless another status is given.
        """
        if status not in PAYMENT_STATUSES:
            raise ValidationError(f"Unknown payment status: {status}.")

        def plan(match: Match) -> list[PatchOp]:
            entry = next(
                (e for e in match.get("roster") or [] if e.get("userId") == user_id),
                None,
            )
            if entry is None:
                raise NotAMemberError()
            if entry.get("hasPaid"):
                raise DuplicateResourceError(
                    "A payment has already been recorded for this player."
                )
            return [UpdateArrayElements("roster", "userId", user_id, {"hasPaid": True})]

        payment: dict[str, Any] = {
            "userId": user_id,
            "matchId": match_id,
            "amount": amount,
            "method": method,
            "status": status,
            "date": datetime.datetime.now(datetime.timezone.utc),
        }
        if notes:
            payment["notes"] = notes

        transaction = store.transaction()
        transaction.mutate(match_id, plan)
        payment_id = transaction.create(PAYMENTS_COLLECTION, payment)
        transaction.commit()

        logger.info(f"Payment {payment_id} recorded for {user_id} in match {match_id}")
        return cast(Payment, {**payment, "id": payment_id})
