"""
Roster retrieval from the soldier data backend.

Key patterns:
- Protocol-based dependency injection (HTTP backend, simulator, test doubles)
- Explicit Result type so a failed fetch is a value, not a crash
- Async context managers for client lifecycle
"""

import asyncio
import random
from collections.abc import Sequence
from types import TracebackType
from typing import Generic, Protocol, TypeVar

import httpx
import structlog
from pydantic import TypeAdapter, ValidationError

from core.config import DashboardConfig, LoggingConfig, configure_logging
from core.domain.models import Reading, Snapshot

# Configure structured logging (JSON by default, overridable at startup)
configure_logging(LoggingConfig())

logger = structlog.get_logger(__name__)

# Generic Result type for explicit error handling
ValueT = TypeVar("ValueT")
ErrorT = TypeVar("ErrorT", bound=BaseException)


class Result(Generic[ValueT, ErrorT]):
    """
    Explicit error handling without exceptions for expected failures.

    A roster fetch either yields a full snapshot or an error; there is no
    partial result.
    """

    def __init__(self, value: ValueT | None = None, error: ErrorT | None = None) -> None:
        if value is not None and error is not None:
            raise ValueError("Result cannot have both value and error")
        if value is None and error is None:
            raise ValueError("Result must have either value or error")
        self._value: ValueT | None = value
        self._error: ErrorT | None = error

    @classmethod
    def ok(cls, value: ValueT) -> "Result[ValueT, ErrorT]":
        return cls(value=value)

    @classmethod
    def err(cls, error: ErrorT) -> "Result[ValueT, ErrorT]":
        return cls(error=error)

    def is_ok(self) -> bool:
        return self._error is None

    def is_err(self) -> bool:
        return self._error is not None

    def unwrap(self) -> ValueT:
        if self._error is not None:
            raise self._error
        return self._value  # type: ignore

    def unwrap_or(self, default: ValueT) -> ValueT:
        return self._value if self._error is None else default  # type: ignore

    def unwrap_err(self) -> ErrorT:
        if self._error is None:
            raise ValueError("Called unwrap_err() on an Ok value")
        return self._error


class NetworkError(Exception):
    """Transport failure, non-success response, or a payload of the wrong shape."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class RosterSource(Protocol):
    """
    Protocol defining how a roster snapshot is obtained.

    Implementations must not raise for expected failures; they return
    ``Result.err(NetworkError(...))`` instead.
    """

    source_name: str

    async def fetch_roster(self) -> Result[Snapshot, NetworkError]:
        ...


_ROSTER_ADAPTER = TypeAdapter(list[Reading])


def parse_roster(payload: object) -> Snapshot:
    """Validate a decoded JSON payload into a Snapshot; raises NetworkError."""
    if not isinstance(payload, list):
        raise NetworkError(f"Expected a JSON array of soldiers, got {type(payload).__name__}")
    try:
        readings = _ROSTER_ADAPTER.validate_python(payload)
        return Snapshot(readings=tuple(readings))
    except ValidationError as e:
        raise NetworkError(f"Malformed roster payload: {e.error_count()} validation error(s)") from e


class HttpRosterFetcher:
    """
    Fetches the roster from the backend with a single GET.

    No retries: the next scheduled tick is the retry mechanism.
    """

    def __init__(self, config: DashboardConfig, client: httpx.AsyncClient | None = None) -> None:
        self.config = config
        self.source_name = config.roster_url
        self._client = client or httpx.AsyncClient(timeout=config.request_timeout_seconds)
        self._owns_client = client is None
        self.logger = logger.bind(source=self.source_name)

    async def __aenter__(self) -> "HttpRosterFetcher":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def fetch_roster(self) -> Result[Snapshot, NetworkError]:
        try:
            response = await self._client.get(self.config.roster_url)
            response.raise_for_status()
            snapshot = parse_roster(response.json())
        except httpx.HTTPStatusError as e:
            error = NetworkError(
                f"Roster request failed with status {e.response.status_code}",
                status_code=e.response.status_code,
            )
            self.logger.warning("roster_fetch_failed", error=str(error))
            return Result.err(error)
        except httpx.TimeoutException as e:
            error = NetworkError(f"Roster request timed out: {e}")
            self.logger.warning("roster_fetch_failed", error=str(error))
            return Result.err(error)
        except httpx.HTTPError as e:
            error = NetworkError(f"Roster request failed: {e}")
            self.logger.warning("roster_fetch_failed", error=str(error))
            return Result.err(error)
        except NetworkError as e:
            self.logger.warning("roster_fetch_failed", error=str(e))
            return Result.err(e)
        except ValueError as e:
            # Body was not valid JSON
            error = NetworkError(f"Roster response is not JSON: {e}")
            self.logger.warning("roster_fetch_failed", error=str(error))
            return Result.err(error)

        self.logger.info("roster_fetched", count=len(snapshot))
        return Result.ok(snapshot)


class SimulatedRosterSource:
    """
    Offline roster generator for demos and manual runs.

    Produces plausible vitals with occasional excursions outside the safe
    ranges, and fails at ``failure_rate`` to exercise the error path.
    """

    def __init__(
        self,
        soldier_ids: Sequence[str] = ("A1-alpha", "A2-alpha", "B1-bravo", "B2-bravo", "C1-charlie"),
        failure_rate: float = 0.05,
        source_name: str = "simulated-roster",
    ) -> None:
        if not 0.0 <= failure_rate <= 1.0:
            raise ValueError("failure_rate must be between 0 and 1")
        self.soldier_ids = tuple(soldier_ids)
        self.failure_rate = failure_rate
        self.source_name = source_name
        self.logger = logger.bind(source=source_name)

    async def fetch_roster(self) -> Result[Snapshot, NetworkError]:
        # Simulate network delay
        await asyncio.sleep(random.uniform(0.05, 0.3))

        if random.random() < self.failure_rate:
            error = NetworkError(f"Failed to connect to {self.source_name}")
            self.logger.warning("roster_fetch_failed", error=str(error))
            return Result.err(error)

        readings = tuple(
            Reading(
                soldier_id=soldier_id,
                body_temperature=round(random.uniform(35.2, 38.6), 1),
                heart_rate=round(random.uniform(55, 115)),
                respiration_rate=round(random.uniform(10, 22)),
            )
            for soldier_id in self.soldier_ids
        )
        self.logger.info("roster_fetched", count=len(readings))
        return Result.ok(Snapshot(readings=readings))
