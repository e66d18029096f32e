"""
Typed results for external data source adapters.

Adapters never raise for transport or payload problems: they return either a
`FetchOk` carrying the normalized payload or a `FetchError` naming what went
wrong, so callers decide how a failure is counted.
"""
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Generic, Optional, TypeVar, Union

import requests

T = TypeVar("T")


class FetchErrorKind(str, Enum):
    NETWORK = "network"
    TIMEOUT = "timeout"
    AUTH = "auth"
    MALFORMED = "malformed"
    NOT_CONFIGURED = "not_configured"


@dataclass(frozen=True)
class FetchOk(Generic[T]):
    value: T


@dataclass(frozen=True)
class FetchError:
    kind: FetchErrorKind
    message: str

    def __str__(self) -> str:
        return f"{self.kind.value}: {self.message}"


FetchResult = Union[FetchOk[T], FetchError]


def error_from_exception(exc: Exception) -> FetchError:
    """Classify a transport or parsing exception."""
    if isinstance(exc, requests.Timeout):
        return FetchError(FetchErrorKind.TIMEOUT, str(exc))
    if isinstance(exc, requests.HTTPError):
        status = exc.response.status_code if exc.response is not None else None
        if status in (401, 403):
            return FetchError(FetchErrorKind.AUTH, str(exc))
        return FetchError(FetchErrorKind.NETWORK, str(exc))
    if isinstance(exc, requests.RequestException):
        return FetchError(FetchErrorKind.NETWORK, str(exc))
    if isinstance(exc, (KeyError, TypeError, ValueError, IndexError)):
        return FetchError(FetchErrorKind.MALFORMED, f"{type(exc).__name__}: {exc}")
    return FetchError(FetchErrorKind.NETWORK, f"{type(exc).__name__}: {exc}")


@dataclass
class RawTelemetrySample:
    """One normalized inverter observation; energies in kWh for the sample period."""

    timestamp: datetime
    generation: Optional[float] = None
    consumption: Optional[float] = None
    grid_import: Optional[float] = None
    grid_export: Optional[float] = None
    battery_charge: Optional[float] = None
    battery_discharge: Optional[float] = None
    temperature: Optional[float] = None
    irradiance: Optional[float] = None


@dataclass
class WeatherReading:
    """Current conditions at a site's coordinates."""

    timestamp: datetime
    temperature: Optional[float] = None
    humidity: Optional[float] = None
    pressure: Optional[float] = None
    wind_speed: Optional[float] = None
    wind_direction: Optional[float] = None
    cloud_cover: Optional[float] = None
    visibility: Optional[float] = None
    uv_index: Optional[float] = None
    description: str = ""
