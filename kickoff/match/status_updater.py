"""Batch pass that settles match counters, statuses and queues."""

from __future__ import annotations

import datetime
import logging
from typing import TYPE_CHECKING, Optional

from kickoff.core.constants import MATCH_DURATION, STATUS_CANCELLED, STATUS_SCHEDULED

from .consistency import ConsistencyVerifier
from .lifecycle import LifecycleScheduler
from .models import Match, MatchStatusResult, StatusPassResult
from .queue_processor import QueueProcessor

if TYPE_CHECKING:
    from .store import MatchStore

logger = logging.getLogger(__name__)


def _has_waiting_players(match: Match) -> bool:
    occupied = len(match.get("roster") or [])
    return bool(match.get("queue")) and occupied < match.get("totalSlots", 0)


class StatusUpdateJob:
    """Runs the consistency check, lifecycle update and queue promotion.

    Triggered on demand (the update-statuses endpoint); there is no timer.
    One failing match never stops the pass: it is logged, counted as
    skipped and picked up again by the next run.
    """

    def __init__(
        self,
        store: MatchStore,
        now: Optional[datetime.datetime] = None,
        default_duration: datetime.timedelta = MATCH_DURATION,
    ) -> None:
        """Bind the job to a store and, for tests, a fixed clock."""
        self.store = store
        self.now = now
        self.default_duration = default_duration

    def _clock(self) -> datetime.datetime:
        return self.now or datetime.datetime.now(datetime.timezone.utc)

    def _settle(self, match_id: str, now: datetime.datetime) -> StatusPassResult:
        """Process one match and return its contribution to the totals."""
        tally = StatusPassResult()

        verified = ConsistencyVerifier.verify(self.store, match_id)
        if verified.fixed:
            tally.consistencyFixed = 1

        current = verified.match
        if current.get("status") == STATUS_CANCELLED:
            tally.skipped = 1
            return tally

        new_status = LifecycleScheduler.apply(
            self.store, match_id, now, self.default_duration
        )
        if new_status:
            tally.updated = 1
        else:
            tally.skipped = 1

        status = new_status or current.get("status")
        if status == STATUS_SCHEDULED and _has_waiting_players(current):
            tally.queueProcessed = QueueProcessor.process_queue(
                self.store, match_id
            ).promoted

        return tally

    def run(self) -> StatusPassResult:
        """Settle every match and return aggregate counts."""
        logger.info("Running automatic match status and queue updates...")
        now = self._clock()
        result = StatusPassResult()

        matches = self.store.query(order_by="startTime", descending=True)
        if not matches:
            logger.info("No matches found to update")
            return result

        for match in matches:
            match_id = match["id"]
            try:
                tally = self._settle(match_id, now)
            except Exception as e:  # noqa: BLE001
                logger.error(f"Error updating match {match_id}: {e}")
                result.skipped += 1
                continue

            result.updated += tally.updated
            result.skipped += tally.skipped
            result.queueProcessed += tally.queueProcessed
            result.consistencyFixed += tally.consistencyFixed

        logger.info(
            f"Match status updates complete. Updated: {result.updated}, "
            f"Skipped: {result.skipped}, Queue Processed: {result.queueProcessed}, "
            f"Consistency Fixed: {result.consistencyFixed}"
        )
        return result

    def run_for_match(self, match_id: str) -> MatchStatusResult:
        """Settle a single match; store and lookup errors propagate."""
        verified = ConsistencyVerifier.verify(self.store, match_id)
        current = verified.match
        if current.get("status") == STATUS_CANCELLED:
            return MatchStatusResult(updated=False)

        new_status = LifecycleScheduler.apply(
            self.store, match_id, self._clock(), self.default_duration
        )
        status = new_status or current.get("status")
        if status == STATUS_SCHEDULED and _has_waiting_players(current):
            QueueProcessor.process_queue(self.store, match_id)

        return MatchStatusResult(updated=new_status is not None, newStatus=new_status)
