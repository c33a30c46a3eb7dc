from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Deque, Dict, List, Optional

from gas_dashboard.models.samples import PRICE_SERIES, Sample


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UnknownSeriesError(KeyError):
    """Raised when a series id is not one of the series fixed at startup."""

    def __init__(self, series_id: str):
        super().__init__(series_id)
        self.series_id = series_id

    def __str__(self) -> str:
        return f"Unknown series '{self.series_id}'"


@dataclass
class SeriesStore:
    """
    In-memory bounded history per series.

    history[series_id] -> samples in insertion order (latest N)

    The set of series is fixed when the store is built: one per chain plus
    the quote-price series. Appends happen on the event loop only, so reads
    never see a half-written series.
    """
    chains: List[str]
    retention_cap: int = 1000
    history: Dict[str, Deque[Sample]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.retention_cap <= 0:
            raise ValueError(f"retention_cap must be positive, got {self.retention_cap}")
        for series_id in self.series_ids:
            self.history.setdefault(series_id, deque(maxlen=self.retention_cap))

    @property
    def series_ids(self) -> List[str]:
        return [*self.chains, PRICE_SERIES]

    def _series(self, series_id: str) -> Deque[Sample]:
        try:
            return self.history[series_id]
        except KeyError:
            raise UnknownSeriesError(series_id) from None

    def has_series(self, series_id: str) -> bool:
        return series_id in self.history

    def append(self, series_id: str, sample: Sample) -> None:
        """Append one sample; the deque drops the oldest once the cap is hit."""
        self._series(series_id).append(sample)

    def latest(self, series_id: str) -> Optional[Sample]:
        hist = self._series(series_id)
        return hist[-1] if hist else None

    def latest_all(self) -> List[Sample]:
        """Latest sample of every chain series, skipping chains with no data yet."""
        out: List[Sample] = []
        for chain in self.chains:
            sample = self.latest(chain)
            if sample is not None:
                out.append(sample)
        return out

    def range(
        self,
        series_id: str,
        since: timedelta,
        now: Optional[datetime] = None,
    ) -> List[Sample]:
        """
        Samples with timestamp >= now - since, oldest first.

        Walks backwards from the newest sample and stops at the first one
        outside the window, so the result is always a contiguous suffix.
        """
        cutoff = (now or utcnow()) - since
        window: List[Sample] = []
        for sample in reversed(self._series(series_id)):
            if sample.timestamp < cutoff:
                break
            window.append(sample)
        window.reverse()
        return window

    def count(self, series_id: str) -> int:
        return len(self._series(series_id))
