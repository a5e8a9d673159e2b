"""Promotion of queued users into freed roster slots."""

from __future__ import annotations

import datetime
import logging
from typing import TYPE_CHECKING, Any

from kickoff.core.constants import STATUS_SCHEDULED

from .locks import match_lock
from .models import Match, QueueEntry, QueueResult, new_roster_entry
from .store import AppendToArray, PatchOp, RemoveArrayElements, SetField

if TYPE_CHECKING:
    from .store import MatchStore

logger = logging.getLogger(__name__)

_EPOCH = datetime.datetime.min.replace(tzinfo=datetime.timezone.utc)


def _joined_at(entry: QueueEntry) -> Any:
    return entry.get("joinedAt") or _EPOCH


def oldest_first(queue: list[QueueEntry]) -> list[QueueEntry]:
    """Sort the queue by join time; ties keep their stored order."""
    return sorted(queue, key=_joined_at)


class QueueProcessor:
    """Moves the oldest queue entries onto the roster while slots are free."""

    @staticmethod
    def plan_promotion(match: Match) -> tuple[list[PatchOp], QueueResult]:
        """Decide which entries to promote for a freshly read match."""
        queue = list(match.get("queue") or [])
        if match.get("status") != STATUS_SCHEDULED:
            return [], QueueResult(promoted=0, remaining=len(queue), match=match)

        # Never trust the stored counter for the capacity calculation.
        occupied = len(match.get("roster") or [])
        available = match.get("totalSlots", 0) - occupied

        if available <= 0 or not queue:
            return [], QueueResult(promoted=0, remaining=len(queue), match=match)

        to_promote = oldest_first(queue)[: min(available, len(queue))]
        promoted_ids = [entry.get("userId") for entry in to_promote]

        ops: list[PatchOp] = [
            AppendToArray("roster", [new_roster_entry(uid) for uid in promoted_ids]),
            RemoveArrayElements("queue", "userId", promoted_ids),
            SetField("filledSlots", occupied + len(promoted_ids)),
        ]
        result = QueueResult(
            promoted=len(promoted_ids), remaining=len(queue) - len(promoted_ids)
        )
        return ops, result

    @staticmethod
    def process_queue(store: MatchStore, match_id: str) -> QueueResult:
        """Promote queued users into free slots, oldest first.

        The read, the choice of entries and the write happen in one store
        transaction while holding the per-match lock, so concurrent runs
        cannot promote the same slot twice. Re-running on a settled match is
        a no-op.
        """
        outcome = QueueResult(promoted=0, remaining=0)

        def plan(match: Match) -> list[PatchOp]:
            nonlocal outcome
            ops, outcome = QueueProcessor.plan_promotion(match)
            return ops

        with match_lock(match_id):
            updated = store.mutate(match_id, plan)

        outcome.match = updated
        if outcome.promoted:
            logger.info(
                f"Promoted {outcome.promoted} player(s) from the queue of match "
                f"{match_id}; {outcome.remaining} still waiting"
            )
        return outcome
