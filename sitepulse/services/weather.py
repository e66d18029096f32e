import logging
import requests

from sitepulse.core.database import utcnow
from sitepulse.services.results import (
    FetchError,
    FetchErrorKind,
    FetchOk,
    FetchResult,
    WeatherReading,
    error_from_exception,
)

logger = logging.getLogger(__name__)

OPENWEATHERMAP_URL = "https://api.openweathermap.org/data/2.5/weather"


class OpenWeatherMapAdapter:
    """Weather adapter over the OpenWeatherMap current-conditions endpoint."""

    def __init__(self, api_key: str | None = None, timeout: float = 20.0, clock=utcnow):
        self.api_key = api_key
        self.timeout = timeout
        self._clock = clock
        if not api_key:
            logger.warning("OpenWeatherMap API key not configured")

    def fetch_current(self, latitude: float, longitude: float) -> FetchResult[WeatherReading]:
        if not self.api_key:
            return FetchError(FetchErrorKind.NOT_CONFIGURED, "OpenWeatherMap API key required")

        params = {"lat": latitude, "lon": longitude, "appid": self.api_key, "units": "metric"}
        try:
            resp = requests.get(OPENWEATHERMAP_URL, params=params, timeout=self.timeout)
            resp.raise_for_status()
            reading = parse_current_weather(resp.json(), self._clock())
        except Exception as e:
            logger.warning("Weather fetch failed for (%s, %s): %s", latitude, longitude, e)
            return error_from_exception(e)
        return FetchOk(reading)


def parse_current_weather(data: dict, timestamp) -> WeatherReading:
    """Map an OpenWeatherMap `weather` response onto a `WeatherReading`."""
    main = data["main"]
    wind = data.get("wind") or {}
    clouds = data.get("clouds") or {}
    conditions = data.get("weather") or [{}]
    return WeatherReading(
        timestamp=timestamp,
        temperature=float(main["temp"]),
        humidity=main.get("humidity"),
        pressure=main.get("pressure"),
        wind_speed=wind.get("speed", 0),
        wind_direction=wind.get("deg", 0),
        cloud_cover=clouds.get("all", 0),
        visibility=data.get("visibility", 10000),
        # Not available from the current weather endpoint
        uv_index=0,
        description=conditions[0].get("description") or "Clear",
    )
