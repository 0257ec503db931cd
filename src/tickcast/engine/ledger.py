from __future__ import annotations

import logging
from collections import OrderedDict

from tickcast.models.prediction import Prediction

logger = logging.getLogger(__name__)

DEFAULT_RESOLVED_HISTORY = 100


class PredictionLedger:
    """Id-keyed store of predictions in creation order.

    Pending entries are kept until resolved. Resolved entries are retained
    as history, capped at ``resolved_history`` (oldest dropped first).
    """

    def __init__(self, resolved_history: int = DEFAULT_RESOLVED_HISTORY) -> None:
        self._entries: OrderedDict[str, Prediction] = OrderedDict()
        self._resolved_history = resolved_history

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, prediction_id: object) -> bool:
        return prediction_id in self._entries

    def add(self, prediction: Prediction) -> None:
        if prediction.id in self._entries:
            raise ValueError(f"Duplicate prediction id {prediction.id}")
        self._entries[prediction.id] = prediction

    def get(self, prediction_id: str) -> Prediction | None:
        return self._entries.get(prediction_id)

    def pending(self) -> list[Prediction]:
        """Unresolved predictions, soonest expiry first."""
        return sorted(
            (p for p in self._entries.values() if not p.resolved),
            key=lambda p: p.expires_at,
        )

    def due(self, now: int) -> list[Prediction]:
        return [p for p in self.pending() if p.expires_at <= now]

    def resolved(self) -> list[Prediction]:
        """Resolved predictions, newest first (ties: latest inserted first)."""
        items = [p for p in reversed(self._entries.values()) if p.resolved]
        return sorted(items, key=lambda p: p.created_at, reverse=True)

    def prune(self) -> int:
        """Drop the oldest resolved entries beyond the history cap."""
        resolved_ids = [pid for pid, p in self._entries.items() if p.resolved]
        excess = len(resolved_ids) - self._resolved_history
        if excess <= 0:
            return 0
        oldest = sorted(resolved_ids, key=lambda pid: self._entries[pid].created_at)
        for pid in oldest[:excess]:
            del self._entries[pid]
        logger.debug("Pruned %d resolved predictions from ledger", excess)
        return excess

    def clear(self) -> None:
        self._entries.clear()
