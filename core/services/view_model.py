"""
Dashboard view model: the single owner of roster, view and trend state.

Two derivations are exposed to presentation:
- ``rows``: the filtered and sorted table, a memoized pure function of
  (roster, view state)
- ``chart_records()``: the bounded trend buffer flattened into chart records
"""

import math
from collections import deque
from collections.abc import Callable
from datetime import UTC, datetime
from functools import cmp_to_key, lru_cache
from typing import Any, Literal

import structlog

from core.domain.models import (
    AnnotatedReading,
    Metric,
    Snapshot,
    SortKey,
    TrendSample,
    TrendTick,
    ViewState,
)
from core.domain.thresholds import DEFAULT_THRESHOLDS, ThresholdTable
from core.services.classifier import annotate_snapshot
from core.services.roster_fetcher import NetworkError

logger = structlog.get_logger(__name__)

CHART_TIME_KEY = "time"
CHART_SERIES: tuple[str, ...] = tuple(m.value for m in Metric)

DashboardStatus = Literal["loading", "error", "ready"]


def utc_now() -> datetime:
    return datetime.now(UTC)


def _sortable(value: str | float) -> tuple[bool, str | float]:
    # NaN sorts after every number; NaNs tie with each other
    if isinstance(value, float) and math.isnan(value):
        return (True, 0.0)
    return (False, value)


def _three_way(a: str | float, b: str | float) -> int:
    left, right = _sortable(a), _sortable(b)
    if left < right:
        return -1
    if left > right:
        return 1
    return 0


@lru_cache(maxsize=32)
def derive_rows(
    roster: tuple[AnnotatedReading, ...], view_state: ViewState
) -> tuple[AnnotatedReading, ...]:
    """
    Filter by case-insensitive id substring, then stable-sort on the sort key.

    Ties keep fetch order; missing (NaN) values sort last.
    """
    needle = view_state.filter_text.lower()
    kept = [row for row in roster if needle in row.soldier_id.lower()]
    key = view_state.sort_key
    return tuple(
        sorted(
            kept,
            key=cmp_to_key(
                lambda a, b: _three_way(a.reading.sort_value(key), b.reading.sort_value(key))
            ),
        )
    )


class DashboardViewModel:
    """
    Holds the latest annotated roster, the user's view state and the trend buffer.

    Implements the scheduler's SnapshotSink protocol. All mutation happens on
    the event loop thread; the roster is swapped in a single assignment so
    readers never see a half-updated table.
    """

    def __init__(
        self,
        thresholds: ThresholdTable = DEFAULT_THRESHOLDS,
        trend_capacity_ticks: int = 120,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        if trend_capacity_ticks <= 0:
            raise ValueError("trend_capacity_ticks must be positive")
        self.thresholds = thresholds
        self._clock = clock
        self.logger = logger.bind(component="dashboard_view_model")

        self._roster: tuple[AnnotatedReading, ...] = ()
        self._view_state = ViewState()
        self._trend: deque[TrendTick] = deque(maxlen=trend_capacity_ticks)
        self._loading = True
        self._error: NetworkError | None = None
        self._last_applied_sequence = 0

    # Fetch outcomes

    def apply_snapshot(self, snapshot: Snapshot) -> None:
        roster = annotate_snapshot(snapshot, self.thresholds)

        timestamp = self._clock()
        if self._trend and timestamp < self._trend[-1].timestamp:
            # Keep the buffer monotonic if the wall clock steps backwards
            timestamp = self._trend[-1].timestamp
        tick = TrendTick(
            timestamp=timestamp,
            samples=tuple(TrendSample.from_reading(r, timestamp) for r in snapshot.readings),
        )

        self._roster = roster
        self._trend.append(tick)
        self._last_applied_sequence = snapshot.sequence
        self._loading = False
        had_error = self._error is not None
        self._error = None

        self.logger.info(
            "snapshot_applied",
            sequence=snapshot.sequence,
            soldiers=len(roster),
            alerts=sum(1 for row in roster if row.alert),
            error_cleared=had_error,
        )

    def apply_failure(self, error: NetworkError) -> None:
        self._error = error
        self._loading = False
        self.logger.warning("fetch_failure_applied", error=str(error))

    # User actions

    def set_sort_key(self, sort_key: SortKey | str) -> None:
        self._view_state = self._view_state.model_copy(update={"sort_key": SortKey(sort_key)})

    def set_filter_text(self, filter_text: str) -> None:
        self._view_state = self._view_state.model_copy(update={"filter_text": filter_text})

    # Derived outputs

    @property
    def view_state(self) -> ViewState:
        return self._view_state

    @property
    def roster(self) -> tuple[AnnotatedReading, ...]:
        """The latest annotated roster in fetch order."""
        return self._roster

    @property
    def rows(self) -> tuple[AnnotatedReading, ...]:
        return derive_rows(self._roster, self._view_state)

    @property
    def loading(self) -> bool:
        return self._loading

    @property
    def error(self) -> NetworkError | None:
        return self._error

    @property
    def status(self) -> DashboardStatus:
        if self._error is not None:
            return "error"
        if self._loading:
            return "loading"
        return "ready"

    @property
    def alert_count(self) -> int:
        return sum(1 for row in self._roster if row.alert)

    @property
    def last_applied_sequence(self) -> int:
        return self._last_applied_sequence

    @property
    def trend_ticks(self) -> tuple[TrendTick, ...]:
        return tuple(self._trend)

    @property
    def trend_samples(self) -> tuple[TrendSample, ...]:
        return tuple(sample for tick in self._trend for sample in tick.samples)

    def chart_records(self) -> list[dict[str, Any]]:
        """One record per trend sample, keyed the way the chart expects."""
        return [
            {
                CHART_TIME_KEY: sample.timestamp.astimezone().strftime("%H:%M:%S"),
                "SoldierID": sample.soldier_id,
                Metric.BODY_TEMPERATURE.value: sample.body_temperature,
                Metric.HEART_RATE.value: sample.heart_rate,
                Metric.RESPIRATION_RATE.value: sample.respiration_rate,
            }
            for sample in self.trend_samples
        ]
