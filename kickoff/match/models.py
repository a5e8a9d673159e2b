"""Data models for the match blueprint."""

from __future__ import annotations

import datetime
from dataclasses import asdict, dataclass
from typing import Any, Optional, TypedDict

from kickoff.core.constants import POSITION_UNASSIGNED
from kickoff.core.types import FirestoreDocument


class RosterEntry(TypedDict, total=False):
    """A confirmed participant in a match."""

    userId: str
    confirmed: bool
    hasPaid: bool
    assignedPosition: str

    # Denormalized user data added by the match accessor
    user: dict[str, Any]


class QueueEntry(TypedDict, total=False):
    """A user waiting for a roster spot."""

    userId: str
    joinedAt: Any


class Match(FirestoreDocument, total=False):
    """A match document in Firestore."""

    title: str
    startTime: Any
    durationMinutes: int
    venueId: str
    matchType: str
    totalSlots: int
    filledSlots: int
    totalCost: float
    costPerPlayer: float
    status: str
    visibility: str
    createdBy: str
    notes: str
    roster: list[RosterEntry]
    queue: list[QueueEntry]

    # Denormalized sub-documents added by the match accessor
    venue: dict[str, Any]
    creator: dict[str, Any]


class Payment(FirestoreDocument, total=False):
    """A payment document in Firestore."""

    userId: str
    matchId: str
    amount: float
    method: str
    status: str
    notes: str
    date: Any
    updatedAt: Any


def new_roster_entry(
    user_id: str, assigned_position: str = POSITION_UNASSIGNED
) -> RosterEntry:
    """Build the roster entry given to a user who joins or is promoted."""
    return {
        "userId": user_id,
        "confirmed": True,
        "hasPaid": False,
        "assignedPosition": assigned_position,
    }


def roster_user_ids(match: Match) -> list[str]:
    """Return the user ids currently on the roster."""
    return [entry.get("userId", "") for entry in match.get("roster") or []]


def queue_user_ids(match: Match) -> list[str]:
    """Return the user ids currently waiting in the queue."""
    return [entry.get("userId", "") for entry in match.get("queue") or []]


@dataclass
class MatchSubmission:
    """Dataclass for match creation submission."""

    title: str
    start_time: datetime.datetime
    venue_id: str
    match_type: str
    total_slots: int
    created_by: str
    visibility: str = "public"
    total_cost: Optional[float] = None
    duration_minutes: Optional[int] = None
    notes: Optional[str] = None
    creator_position: str = POSITION_UNASSIGNED

    def validate(self) -> None:
        """Validate the match submission for obvious errors."""
        if self.total_slots < 1:
            raise ValueError("A match needs at least one slot.")
        if self.total_cost is not None and self.total_cost < 0:
            raise ValueError("Total cost cannot be negative.")
        if self.duration_minutes is not None and self.duration_minutes <= 0:
            raise ValueError("Duration must be positive.")
        if self.start_time.tzinfo is None:
            raise ValueError("Start time must be timezone-aware.")


@dataclass
class QueueResult:
    """Outcome of a queue processing run."""

    promoted: int
    remaining: int
    match: Optional[Match] = None

    def to_dict(self) -> dict[str, int]:
        """Return the counts without the match payload."""
        return {"promoted": self.promoted, "remaining": self.remaining}


@dataclass
class VerifyResult:
    """Outcome of a consistency check."""

    fixed: bool
    match: Match


@dataclass
class StatusPassResult:
    """Aggregate counts of a status update pass over all matches."""

    updated: int = 0
    skipped: int = 0
    queueProcessed: int = 0  # noqa: N815
    consistencyFixed: int = 0  # noqa: N815

    def to_dict(self) -> dict[str, int]:
        """Return the counts as a plain dict."""
        return asdict(self)


@dataclass
class MatchStatusResult:
    """Outcome of a status update pass over a single match."""

    updated: bool
    newStatus: Optional[str] = None  # noqa: N815

    def to_dict(self) -> dict[str, Any]:
        """Return the result as a plain dict."""
        return asdict(self)
