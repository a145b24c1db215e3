"""
Safe-range thresholds for soldier vital signs.

The table is built once at process start and never mutated afterwards.
"""

from collections.abc import Iterable, Iterator, Mapping
from types import MappingProxyType

from pydantic import BaseModel, ConfigDict, Field, model_validator

from core.domain.models import Metric


class Threshold(BaseModel):
    """Inclusive safe range for a single metric."""

    model_config = ConfigDict(frozen=True)

    metric: Metric
    min: float = Field(description="Lowest safe value (inclusive)")
    max: float = Field(description="Highest safe value (inclusive)")

    @model_validator(mode="after")
    def min_not_above_max(self) -> "Threshold":
        if self.min > self.max:
            raise ValueError(f"{self.metric.value}: min {self.min} is above max {self.max}")
        return self

    def contains(self, value: float) -> bool:
        return self.min <= value <= self.max


class ThresholdTable:
    """Lookup of metric -> safe range covering every known metric."""

    def __init__(self, thresholds: Iterable[Threshold]) -> None:
        table: dict[Metric, Threshold] = {}
        for threshold in thresholds:
            if threshold.metric in table:
                raise ValueError(f"Duplicate threshold for {threshold.metric.value}")
            table[threshold.metric] = threshold

        missing = [m.value for m in Metric if m not in table]
        if missing:
            raise ValueError(f"Thresholds missing for: {', '.join(missing)}")

        self._table: Mapping[Metric, Threshold] = MappingProxyType(table)

    @classmethod
    def default(cls) -> "ThresholdTable":
        return cls(
            [
                Threshold(metric=Metric.BODY_TEMPERATURE, min=35, max=38),
                Threshold(metric=Metric.HEART_RATE, min=60, max=100),
                Threshold(metric=Metric.RESPIRATION_RATE, min=12, max=20),
            ]
        )

    def range_for(self, metric: Metric | str) -> Threshold:
        """Return the safe range for ``metric``; raises KeyError for unknown names."""
        try:
            key = Metric(metric)
        except ValueError:
            raise KeyError(metric) from None
        return self._table[key]

    def __iter__(self) -> Iterator[Threshold]:
        return iter(self._table[m] for m in Metric)

    def __len__(self) -> int:
        return len(self._table)


DEFAULT_THRESHOLDS = ThresholdTable.default()
