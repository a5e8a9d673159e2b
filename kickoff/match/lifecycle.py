"""Time-driven match status transitions."""

from __future__ import annotations

import datetime
import logging
from typing import TYPE_CHECKING, Any, Optional

from kickoff.core.constants import (
    MATCH_DURATION,
    STATUS_COMPLETED,
    STATUS_IN_PROGRESS,
    STATUS_SCHEDULED,
    TERMINAL_STATUSES,
)

from .models import Match
from .store import PatchOp, SetField

if TYPE_CHECKING:
    from .store import MatchStore

logger = logging.getLogger(__name__)


def as_utc(value: Any) -> Optional[datetime.datetime]:
    """Coerce a stored timestamp (datetime or ISO string) to an aware datetime."""
    if value is None:
        return None
    if isinstance(value, str):
        value = datetime.datetime.fromisoformat(value.replace("Z", "+00:00"))
    if not isinstance(value, datetime.datetime):
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=datetime.timezone.utc)
    return value


class LifecycleScheduler:
    """Derives scheduled -> in-progress -> completed from the clock."""

    @staticmethod
    def duration(
        match: Match, default: datetime.timedelta = MATCH_DURATION
    ) -> datetime.timedelta:
        """Return how long the match lasts."""
        minutes = match.get("durationMinutes")
        if minutes:
            return datetime.timedelta(minutes=minutes)
        return default

    @staticmethod
    def next_status(
        match: Match,
        now: datetime.datetime,
        default_duration: datetime.timedelta = MATCH_DURATION,
    ) -> Optional[str]:
        """Return the status the match should move to, or None to stay put."""
        status = match.get("status")
        if status in TERMINAL_STATUSES:
            return None

        start = as_utc(match.get("startTime"))
        if start is None:
            return None
        end = start + LifecycleScheduler.duration(match, default_duration)

        if now >= end:
            return STATUS_COMPLETED
        if status == STATUS_SCHEDULED and start <= now:
            return STATUS_IN_PROGRESS
        return None

    @staticmethod
    def apply(
        store: MatchStore,
        match_id: str,
        now: Optional[datetime.datetime] = None,
        default_duration: datetime.timedelta = MATCH_DURATION,
    ) -> Optional[str]:
        """Move a match forward if its time has come; return the new status."""
        now = now or datetime.datetime.now(datetime.timezone.utc)
        new_status: Optional[str] = None
        old_status: Optional[str] = None

        def plan(match: Match) -> list[PatchOp]:
            nonlocal new_status, old_status
            old_status = match.get("status")
            new_status = LifecycleScheduler.next_status(match, now, default_duration)
            if new_status is None:
                return []
            return [SetField("status", new_status)]

        store.mutate(match_id, plan)
        if new_status:
            logger.info(
                f"Updating match {match_id} status: {old_status} -> {new_status}"
            )
        return new_status
