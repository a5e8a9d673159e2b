"""Roster and waiting-queue membership changes."""

from __future__ import annotations

import datetime
import logging
from typing import TYPE_CHECKING, Optional

from kickoff.core.constants import STATUS_SCHEDULED
from kickoff.errors import (
    AlreadyMemberError,
    AlreadyQueuedError,
    CreatorCannotLeaveError,
    InvalidStateError,
    NotAMemberError,
    NotQueuedError,
)

from .models import Match, QueueEntry, new_roster_entry, queue_user_ids, roster_user_ids
from .store import (
    AppendToArray,
    IncrementField,
    PatchOp,
    RemoveArrayElements,
    SetField,
)

if TYPE_CHECKING:
    from .store import MatchStore

logger = logging.getLogger(__name__)


def slot_ops(match: Match, delta: int) -> list[PatchOp]:
    """Return the ops that move ``filledSlots`` along with a roster change.

    A consistent counter is incremented. A drifted counter is overwritten
    with the value the roster will have once the change is applied.
    """
    occupied = len(match.get("roster") or [])
    if match.get("filledSlots") == occupied:
        return [IncrementField("filledSlots", delta)]
    logger.warning(
        f"Match {match.get('id')} has filledSlots={match.get('filledSlots')} "
        f"but {occupied} players; resetting with this update"
    )
    return [SetField("filledSlots", occupied + delta)]


def _queue_entry(user_id: str, now: Optional[datetime.datetime]) -> QueueEntry:
    return {
        "userId": user_id,
        "joinedAt": now or datetime.datetime.now(datetime.timezone.utc),
    }


class RosterService:
    """Join, leave and queue operations on a single match."""

    @staticmethod
    def join_match(
        store: MatchStore,
        match_id: str,
        user_id: str,
        now: Optional[datetime.datetime] = None,
    ) -> Match:
        """Add a user to the roster, or to the queue when the match is full."""
        redirected = False

        def plan(match: Match) -> list[PatchOp]:
            nonlocal redirected
            status = match.get("status")
            if status != STATUS_SCHEDULED:
                raise InvalidStateError(f"Cannot join a match that is {status}.")
            if user_id in roster_user_ids(match):
                raise AlreadyMemberError()
            if user_id in queue_user_ids(match):
                raise AlreadyQueuedError()

            occupied = len(match.get("roster") or [])
            if occupied >= match.get("totalSlots", 0):
                redirected = True
                return [AppendToArray("queue", [_queue_entry(user_id, now)])]

            redirected = False
            return [
                AppendToArray("roster", [new_roster_entry(user_id)]),
                *slot_ops(match, 1),
            ]

        updated = store.mutate(match_id, plan)
        if redirected:
            logger.info(f"Match {match_id} is full; user {user_id} added to queue")
        else:
            logger.info(f"User {user_id} joined match {match_id}")
        return updated

    @staticmethod
    def leave_match(store: MatchStore, match_id: str, user_id: str) -> Match:
        """Remove a user from the roster.

        Freed slots are not filled here; run the queue processor afterwards.
        """

        def plan(match: Match) -> list[PatchOp]:
            if match.get("createdBy") == user_id:
                raise CreatorCannotLeaveError()
            if user_id not in roster_user_ids(match):
                raise NotAMemberError()
            status = match.get("status")
            if status != STATUS_SCHEDULED:
                raise InvalidStateError(f"Cannot leave a match that is {status}.")
            return [
                RemoveArrayElements("roster", "userId", [user_id]),
                *slot_ops(match, -1),
            ]

        updated = store.mutate(match_id, plan)
        logger.info(f"User {user_id} left match {match_id}")
        return updated

    @staticmethod
    def join_queue(
        store: MatchStore,
        match_id: str,
        user_id: str,
        now: Optional[datetime.datetime] = None,
    ) -> Match:
        """Reserve a place in the waiting queue."""

        def plan(match: Match) -> list[PatchOp]:
            if user_id in queue_user_ids(match):
                raise AlreadyQueuedError()
            if user_id in roster_user_ids(match):
                raise AlreadyMemberError()
            return [AppendToArray("queue", [_queue_entry(user_id, now)])]

        updated = store.mutate(match_id, plan)
        logger.info(f"User {user_id} joined the queue for match {match_id}")
        return updated

    @staticmethod
    def leave_queue(store: MatchStore, match_id: str, user_id: str) -> Match:
        """Give up a place in the waiting queue."""

        def plan(match: Match) -> list[PatchOp]:
            if user_id not in queue_user_ids(match):
                raise NotQueuedError()
            return [RemoveArrayElements("queue", "userId", [user_id])]

        updated = store.mutate(match_id, plan)
        logger.info(f"User {user_id} left the queue for match {match_id}")
        return updated
