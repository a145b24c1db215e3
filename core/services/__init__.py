"""
Core services for the application.

This package contains the roster fetching, anomaly classification,
refresh scheduling and dashboard view-model implementations.
"""

from .classifier import annotate, annotate_snapshot, classify
from .roster_fetcher import (
    HttpRosterFetcher,
    NetworkError,
    Result,
    RosterSource,
    SimulatedRosterSource,
)
from .scheduler import RefreshScheduler, SchedulerState, SnapshotSink
from .view_model import CHART_SERIES, DashboardViewModel, derive_rows

__all__ = [
    "CHART_SERIES",
    "DashboardViewModel",
    "HttpRosterFetcher",
    "NetworkError",
    "RefreshScheduler",
    "Result",
    "RosterSource",
    "SchedulerState",
    "SimulatedRosterSource",
    "SnapshotSink",
    "annotate",
    "annotate_snapshot",
    "classify",
    "derive_rows",
]
