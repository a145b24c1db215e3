"""
Domain models for soldier vital-sign monitoring.

These models represent the core business concepts and are framework-agnostic.
They use Pydantic for validation and wire-format aliasing; all of them are
frozen so a roster handed to the view layer can never be mutated underneath it.
"""

import math
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator, model_validator


class Metric(str, Enum):
    """Vital signs carried by every reading. Values are the wire field names."""

    BODY_TEMPERATURE = "BodyTemperature"
    HEART_RATE = "HeartRate"
    RESPIRATION_RATE = "RespirationRate"


class SortKey(str, Enum):
    """Columns the roster table can be ordered by."""

    SOLDIER_ID = "SoldierID"
    BODY_TEMPERATURE = "BodyTemperature"
    HEART_RATE = "HeartRate"
    RESPIRATION_RATE = "RespirationRate"


_METRIC_ATTRIBUTES: dict[Metric, str] = {
    Metric.BODY_TEMPERATURE: "body_temperature",
    Metric.HEART_RATE: "heart_rate",
    Metric.RESPIRATION_RATE: "respiration_rate",
}


class Reading(BaseModel):
    """
    One soldier's vitals as reported by the roster endpoint.

    Vitals are strict numbers: ints are accepted, bools and numeric strings are not.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    soldier_id: str = Field(alias="SoldierID", min_length=1, strict=True)
    body_temperature: float = Field(
        alias="BodyTemperature", strict=True, description="Degrees Celsius"
    )
    heart_rate: float = Field(alias="HeartRate", strict=True, description="Beats per minute")
    respiration_rate: float = Field(
        alias="RespirationRate", strict=True, description="Breaths per minute"
    )

    @field_validator("body_temperature", "heart_rate", "respiration_rate", mode="before")
    @classmethod
    def missing_metric_as_nan(cls, v: Any) -> Any:
        # The backend sends null when a sensor drops out
        return math.nan if v is None else v

    def value_of(self, metric: Metric) -> float:
        return getattr(self, _METRIC_ATTRIBUTES[Metric(metric)])

    def sort_value(self, key: SortKey) -> str | float:
        if key == SortKey.SOLDIER_ID:
            return self.soldier_id
        return self.value_of(Metric(key.value))


class Snapshot(BaseModel):
    """The complete roster returned by a single fetch."""

    model_config = ConfigDict(frozen=True)

    readings: tuple[Reading, ...] = ()
    sequence: int = Field(default=0, ge=0, description="Fetch sequence number")
    fetched_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @model_validator(mode="after")
    def soldier_ids_unique(self) -> "Snapshot":
        seen: set[str] = set()
        for reading in self.readings:
            if reading.soldier_id in seen:
                raise ValueError(f"duplicate SoldierID in roster: {reading.soldier_id}")
            seen.add(reading.soldier_id)
        return self

    def __len__(self) -> int:
        return len(self.readings)


class AnomalyFlags(BaseModel):
    """Per-metric out-of-range markers derived from a reading."""

    model_config = ConfigDict(frozen=True)

    temperature_warning: bool = False
    heart_rate_warning: bool = False
    respiration_warning: bool = False
    invalid_metrics: tuple[Metric, ...] = Field(
        default=(), description="Metrics whose value was NaN or infinite"
    )

    @computed_field  # type: ignore[prop-decorator]
    @property
    def alert(self) -> bool:
        return self.temperature_warning or self.heart_rate_warning or self.respiration_warning

    def for_metric(self, metric: Metric) -> bool:
        return {
            Metric.BODY_TEMPERATURE: self.temperature_warning,
            Metric.HEART_RATE: self.heart_rate_warning,
            Metric.RESPIRATION_RATE: self.respiration_warning,
        }[Metric(metric)]


class AnnotatedReading(BaseModel):
    """A reading paired with its anomaly flags; one table row."""

    model_config = ConfigDict(frozen=True)

    reading: Reading
    flags: AnomalyFlags

    @property
    def soldier_id(self) -> str:
        return self.reading.soldier_id

    @property
    def alert(self) -> bool:
        return self.flags.alert


class TrendSample(BaseModel):
    """One soldier's vitals at one refresh tick."""

    model_config = ConfigDict(frozen=True)

    timestamp: datetime
    soldier_id: str
    body_temperature: float
    heart_rate: float
    respiration_rate: float

    def value_of(self, metric: Metric) -> float:
        return getattr(self, _METRIC_ATTRIBUTES[Metric(metric)])

    @classmethod
    def from_reading(cls, reading: Reading, timestamp: datetime) -> "TrendSample":
        return cls(
            timestamp=timestamp,
            soldier_id=reading.soldier_id,
            body_temperature=reading.body_temperature,
            heart_rate=reading.heart_rate,
            respiration_rate=reading.respiration_rate,
        )


class TrendTick(BaseModel):
    """All samples appended by one applied snapshot, sharing one capture instant."""

    model_config = ConfigDict(frozen=True)

    timestamp: datetime
    samples: tuple[TrendSample, ...] = ()


class ViewState(BaseModel):
    """User-controlled table configuration."""

    model_config = ConfigDict(frozen=True)

    sort_key: SortKey = SortKey.SOLDIER_ID
    filter_text: str = ""
