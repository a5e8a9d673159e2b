"""Repair of drift between ``filledSlots`` and the roster."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .models import Match, VerifyResult
from .store import PatchOp, SetField

if TYPE_CHECKING:
    from .store import MatchStore

logger = logging.getLogger(__name__)


class ConsistencyVerifier:
    """Keeps the cached slot counter equal to the roster length."""

    @staticmethod
    def plan_repair(match: Match) -> list[PatchOp]:
        """Return the op that fixes a drifted counter, if any."""
        actual = len(match.get("roster") or [])
        if match.get("filledSlots") == actual:
            return []
        logger.warning(
            f"Fixing player count mismatch for match {match.get('id')}: "
            f"filledSlots={match.get('filledSlots')}, actual={actual}"
        )
        return [SetField("filledSlots", actual)]

    @staticmethod
    def verify(store: MatchStore, match_id: str) -> VerifyResult:
        """Check one match and repair its counter if it drifted."""
        fixed = False

        def plan(match: Match) -> list[PatchOp]:
            nonlocal fixed
            ops = ConsistencyVerifier.plan_repair(match)
            fixed = bool(ops)
            return ops

        match = store.mutate(match_id, plan)
        return VerifyResult(fixed=fixed, match=match)
