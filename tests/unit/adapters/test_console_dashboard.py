"""
Tests for the rich terminal dashboard.

Renderables are printed to a recording Console so assertions run on text.
"""

import math
from unittest.mock import patch

import pytest
from rich.console import Console

from adapters.console.dashboard import (
    build_source,
    format_cell,
    render_dashboard,
    render_table,
    run_dashboard,
)
from core.config import AppConfig, DashboardConfig, LoggingConfig
from core.domain.models import Metric, Reading, Snapshot, SortKey
from core.services.classifier import annotate
from core.services.roster_fetcher import (
    HttpRosterFetcher,
    NetworkError,
    Result,
    SimulatedRosterSource,
)
from core.services.view_model import DashboardViewModel


def _render(renderable: object) -> str:
    console = Console(record=True, width=140)
    console.print(renderable)
    return console.export_text()


def _reading(soldier_id: str, temp: float = 36.6, hr: float = 72, rr: float = 16) -> Reading:
    return Reading(soldier_id=soldier_id, body_temperature=temp, heart_rate=hr, respiration_rate=rr)


class StaticRosterSource:
    source_name = "static"

    def __init__(self, snapshot: Snapshot) -> None:
        self.snapshot = snapshot

    async def fetch_roster(self) -> Result[Snapshot, NetworkError]:
        return Result.ok(self.snapshot)


def test_loading_panel() -> None:
    assert "Loading..." in _render(render_dashboard(DashboardViewModel()))


def test_error_panel_replaces_dashboard() -> None:
    view_model = DashboardViewModel()
    view_model.apply_failure(NetworkError("connection refused"))

    text = _render(render_dashboard(view_model))

    assert "Error fetching data: connection refused" in text


def test_ready_dashboard_shows_rows_and_alerts() -> None:
    view_model = DashboardViewModel()
    view_model.apply_snapshot(Snapshot(readings=(_reading("S1", temp=39), _reading("S2"))))

    text = _render(render_dashboard(view_model))

    assert "2 soldiers, 1 on alert" in text
    assert "S1" in text and "S2" in text
    assert "39 °C ⚠" in text
    assert "Health Trends" in text


def test_table_title_reflects_view_state() -> None:
    view_model = DashboardViewModel()
    view_model.apply_snapshot(Snapshot(readings=(_reading("A1-alpha"), _reading("B2-bravo"))))
    view_model.set_sort_key(SortKey.HEART_RATE)
    view_model.set_filter_text("a1")

    text = _render(render_table(view_model))

    assert "Sorted by HeartRate" in text
    assert "filter: 'a1'" in text
    assert "A1-alpha" in text
    assert "B2-bravo" not in text


def test_format_cell_marks_warnings_and_missing_values() -> None:
    row = annotate(_reading("S1", hr=120, rr=math.nan))

    assert format_cell(row, Metric.HEART_RATE).plain == "120 bpm ⚠"
    assert format_cell(row, Metric.BODY_TEMPERATURE).plain == "36.6 °C"
    assert format_cell(row, Metric.RESPIRATION_RATE).plain == "n/a breaths/min ⚠"


def test_build_source_follows_config() -> None:
    simulated = AppConfig(dashboard=DashboardConfig(roster_source="simulated"))
    http = AppConfig(dashboard=DashboardConfig(roster_source="http"))

    assert isinstance(build_source(simulated), SimulatedRosterSource)
    assert isinstance(build_source(http), HttpRosterFetcher)


@pytest.mark.asyncio
async def test_run_dashboard_polls_until_duration() -> None:
    config = AppConfig(
        dashboard=DashboardConfig(refresh_interval_seconds=0.1, trend_capacity_ticks=50),
        logging=LoggingConfig(level="WARNING"),
    )
    source = StaticRosterSource(Snapshot(readings=(_reading("S1"), _reading("S2"))))
    refreshes: list[str] = []

    with patch("adapters.console.dashboard.console", Console(record=True, width=140)):
        view_model = await run_dashboard(
            config,
            source=source,
            duration_seconds=0.6,
            on_refresh=lambda vm: refreshes.append(vm.status),
        )

    assert view_model.status == "ready"
    assert len(view_model.trend_ticks) >= 3
    assert len(view_model.trend_samples) == 2 * len(view_model.trend_ticks)
    assert refreshes and refreshes[-1] == "ready"


@pytest.mark.asyncio
async def test_run_dashboard_opens_with_configured_view_state() -> None:
    config = AppConfig(
        dashboard=DashboardConfig(
            refresh_interval_seconds=0.1,
            initial_sort_key=SortKey.HEART_RATE,
            initial_filter_text="alpha",
        ),
        logging=LoggingConfig(level="WARNING"),
    )
    source = StaticRosterSource(
        Snapshot(
            readings=(
                _reading("ALPHA-2", hr=90),
                _reading("BRAVO-1", hr=50),
                _reading("ALPHA-1", hr=65),
            )
        )
    )

    with patch("adapters.console.dashboard.console", Console(record=True, width=140)):
        view_model = await run_dashboard(config, source=source, duration_seconds=0.3)

    assert view_model.view_state.sort_key == SortKey.HEART_RATE
    assert view_model.view_state.filter_text == "alpha"
    assert [row.soldier_id for row in view_model.rows] == ["ALPHA-1", "ALPHA-2"]
