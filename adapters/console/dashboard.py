"""
Terminal dashboard for soldier health monitoring.

Renders the view model with rich: a roster table with per-cell warning
markers and alert rows, plus a compact trend summary of the last ticks.

Run with: python -m adapters.console.dashboard
"""

import asyncio
import math
from collections.abc import Callable

from rich.console import Console, Group, RenderableType
from rich.live import Live
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from core.config import AppConfig, configure_logging, get_config
from core.domain.models import AnnotatedReading, Metric
from core.services.roster_fetcher import HttpRosterFetcher, RosterSource, SimulatedRosterSource
from core.services.scheduler import RefreshScheduler
from core.services.view_model import CHART_SERIES, CHART_TIME_KEY, DashboardViewModel

console = Console()

_UNITS: dict[Metric, str] = {
    Metric.BODY_TEMPERATURE: "°C",
    Metric.HEART_RATE: "bpm",
    Metric.RESPIRATION_RATE: "breaths/min",
}

_WARNING_MARK = " ⚠"


def format_cell(row: AnnotatedReading, metric: Metric) -> Text:
    value = row.reading.value_of(metric)
    shown = "n/a" if math.isnan(value) else f"{value:g}"
    text = Text(f"{shown} {_UNITS[metric]}")
    if row.flags.for_metric(metric):
        text.append(_WARNING_MARK, style="bold yellow")
    return text


def render_table(view_model: DashboardViewModel) -> Table:
    state = view_model.view_state
    title = f"Sorted by {state.sort_key.value}"
    if state.filter_text:
        title += f" | filter: {state.filter_text!r}"

    table = Table(title=title)
    table.add_column("Soldier ID", style="cyan")
    for metric in Metric:
        table.add_column(metric.value, justify="right")

    for row in view_model.rows:
        table.add_row(
            row.soldier_id,
            *(format_cell(row, metric) for metric in Metric),
            style="bold red" if row.alert else None,
        )
    return table


def render_trends(view_model: DashboardViewModel, last_ticks: int = 5) -> Table:
    """Per-tick roster averages; a text stand-in for the line chart."""
    table = Table(title=f"Health Trends (last {last_ticks} ticks)")
    table.add_column(CHART_TIME_KEY, style="magenta")
    for series in CHART_SERIES:
        table.add_column(f"avg {series}", justify="right", style="green")

    for tick in view_model.trend_ticks[-last_ticks:]:
        if not tick.samples:
            continue
        averages = [
            sum(s.value_of(Metric(series)) for s in tick.samples) / len(tick.samples)
            for series in CHART_SERIES
        ]
        table.add_row(
            tick.timestamp.astimezone().strftime("%H:%M:%S"),
            *(f"{avg:.1f}" for avg in averages),
        )
    return table


def render_dashboard(view_model: DashboardViewModel) -> RenderableType:
    if view_model.status == "loading":
        return Panel("Loading...", title="Soldier Health Monitoring")
    if view_model.status == "error":
        return Panel(
            Text(f"Error fetching data: {view_model.error}", style="red"),
            title="Soldier Health Monitoring",
        )

    summary = Text(
        f"{len(view_model.roster)} soldiers, {view_model.alert_count} on alert",
        style="bold red" if view_model.alert_count else "green",
    )
    return Panel(
        Group(summary, render_table(view_model), render_trends(view_model)),
        title="Soldier Health Monitoring",
    )


def build_source(config: AppConfig) -> RosterSource:
    if config.dashboard.roster_source == "simulated":
        return SimulatedRosterSource()
    return HttpRosterFetcher(config.dashboard)


async def run_dashboard(
    config: AppConfig | None = None,
    source: RosterSource | None = None,
    duration_seconds: float | None = None,
    on_refresh: Callable[[DashboardViewModel], None] | None = None,
) -> DashboardViewModel:
    """
    Poll the roster and redraw until cancelled or ``duration_seconds`` elapse.

    Returns the view model so callers can inspect the final state.
    """
    config = config or get_config()
    configure_logging(config.logging)
    owns_source = source is None
    source = source or build_source(config)

    view_model = DashboardViewModel(trend_capacity_ticks=config.dashboard.trend_capacity_ticks)
    view_model.set_sort_key(config.dashboard.initial_sort_key)
    view_model.set_filter_text(config.dashboard.initial_filter_text)
    scheduler = RefreshScheduler(
        source, view_model, interval_seconds=config.dashboard.refresh_interval_seconds
    )
    loop = asyncio.get_running_loop()
    deadline = None if duration_seconds is None else loop.time() + duration_seconds

    try:
        with Live(render_dashboard(view_model), console=console, refresh_per_second=4) as live:
            async with scheduler:
                while deadline is None or loop.time() < deadline:
                    await asyncio.sleep(0.25)
                    if on_refresh is not None:
                        on_refresh(view_model)
                    live.update(render_dashboard(view_model))
            await scheduler.wait_for_in_flight()
    finally:
        if owns_source and isinstance(source, HttpRosterFetcher):
            await source.aclose()

    return view_model


if __name__ == "__main__":
    try:
        asyncio.run(run_dashboard())
    except KeyboardInterrupt:
        console.print("\nDashboard stopped by user", style="yellow")
