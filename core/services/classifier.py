"""
Threshold-based anomaly classification for soldier readings.

Every function here is pure: the same reading and threshold table always
produce the same flags.
"""

import math
from collections.abc import Iterable

from core.domain.models import AnnotatedReading, AnomalyFlags, Metric, Reading, Snapshot
from core.domain.thresholds import DEFAULT_THRESHOLDS, ThresholdTable


def _out_of_range(value: float, metric: Metric, thresholds: ThresholdTable) -> bool:
    # Non-finite values are never treated as safe
    if not math.isfinite(value):
        return True
    return not thresholds.range_for(metric).contains(value)


def classify(reading: Reading, thresholds: ThresholdTable = DEFAULT_THRESHOLDS) -> AnomalyFlags:
    """
    Flag each metric of ``reading`` that falls strictly outside its safe range.

    Bounds themselves are safe. NaN and infinite values raise the metric's
    warning and are also listed in ``invalid_metrics``.
    """
    invalid = tuple(m for m in Metric if not math.isfinite(reading.value_of(m)))
    return AnomalyFlags(
        temperature_warning=_out_of_range(
            reading.body_temperature, Metric.BODY_TEMPERATURE, thresholds
        ),
        heart_rate_warning=_out_of_range(reading.heart_rate, Metric.HEART_RATE, thresholds),
        respiration_warning=_out_of_range(
            reading.respiration_rate, Metric.RESPIRATION_RATE, thresholds
        ),
        invalid_metrics=invalid,
    )


def annotate(reading: Reading, thresholds: ThresholdTable = DEFAULT_THRESHOLDS) -> AnnotatedReading:
    return AnnotatedReading(reading=reading, flags=classify(reading, thresholds))


def annotate_snapshot(
    snapshot: Snapshot | Iterable[Reading], thresholds: ThresholdTable = DEFAULT_THRESHOLDS
) -> tuple[AnnotatedReading, ...]:
    """Annotate every reading, preserving fetch order."""
    readings = snapshot.readings if isinstance(snapshot, Snapshot) else snapshot
    return tuple(annotate(reading, thresholds) for reading in readings)
