import logging
import re
import threading
from datetime import timedelta
from typing import List, Optional

import numpy as np
import pandas as pd
import foxesscloud.openapi as f

from sitepulse.core.database import utc_naive, utcnow
from sitepulse.services.results import (
    FetchError,
    FetchErrorKind,
    FetchOk,
    FetchResult,
    RawTelemetrySample,
    error_from_exception,
)

logger = logging.getLogger(__name__)

# FoxESS history variable -> sample field
HISTORY_VARS = {
    "pvPower": "generation",
    "loadsPower": "consumption",
    "gridConsumptionPower": "grid_import",
    "feedinPower": "grid_export",
    "batChargePower": "battery_charge",
    "batDischargePower": "battery_discharge",
    "ambientTemperation": "temperature",
}
POWER_FIELDS = ["generation", "consumption", "grid_import", "grid_export", "battery_charge", "battery_discharge"]
GRANULARITY_FREQ = {"hour": "1h", "day": "1D"}

# foxesscloud keeps the key and device in module globals
_api_lock = threading.Lock()

# "2025-09-20 00:05:00 BST+0100" -> "2025-09-20 00:05:00+0100"
_ZONE_NAME = re.compile(r"\s+[A-Z]{2,5}(?=[+-]\d{2}:?\d{2}$)")


def _parse_times(times: pd.Series) -> pd.Series:
    cleaned = times.astype(str).str.replace(_ZONE_NAME, "", regex=True)
    return pd.to_datetime(cleaned, utc=True, errors="coerce")


def _num(value) -> Optional[float]:
    if value is None or (isinstance(value, float) and np.isnan(value)):
        return None
    return float(value)


def history_to_frame(raw: list, freq: str = "1h") -> pd.DataFrame:
    """Convert FoxESS history series into per-period energy (kWh).

    Power variables (kW) are integrated over the gap to the previous reading
    and summed per period; temperature is averaged. Periods with no readings
    are absent from the result rather than zero-filled.
    """
    rows = []
    for series in raw:
        variable = series["variable"]
        if variable not in HISTORY_VARS:
            continue
        for point in series.get("data") or []:
            rows.append({"field": HISTORY_VARS[variable], "time": point["time"], "value": point["value"]})
    points = pd.DataFrame(rows, columns=["field", "time", "value"])
    if points.empty:
        return pd.DataFrame(columns=list(HISTORY_VARS.values()))

    points["time"] = _parse_times(points["time"])
    points["value"] = pd.to_numeric(points["value"], errors="coerce")
    points = points.dropna(subset=["time", "value"])
    if points.empty:
        return pd.DataFrame(columns=list(HISTORY_VARS.values()))

    wide = points.pivot_table(index="time", columns="field", values="value", aggfunc="mean").sort_index()
    dt_hours = wide.index.to_series().diff().dt.total_seconds().div(3600)

    power_cols = [c for c in POWER_FIELDS if c in wide.columns]
    energy = wide[power_cols].shift(1).mul(dt_hours, axis=0)
    periods = energy.resample(freq, label="right", closed="right").sum(min_count=1)
    if "temperature" in wide.columns:
        periods["temperature"] = wide["temperature"].resample(freq, label="right", closed="right").mean()
    return periods.dropna(how="all")


def frame_to_samples(frame: pd.DataFrame) -> List[RawTelemetrySample]:
    samples = []
    for ts, row in frame.iterrows():
        samples.append(RawTelemetrySample(
            timestamp=utc_naive(ts.to_pydatetime()),
            generation=_num(row.get("generation")),
            consumption=_num(row.get("consumption")),
            grid_import=_num(row.get("grid_import")),
            grid_export=_num(row.get("grid_export")),
            battery_charge=_num(row.get("battery_charge")),
            battery_discharge=_num(row.get("battery_discharge")),
            temperature=_num(row.get("temperature")),
        ))
    return samples


def _days(start, end):
    day = start.date()
    while day <= end.date():
        yield day
        day += timedelta(days=1)


class FoxessTelemetryAdapter:
    """Telemetry adapter over the FoxESS cloud open API."""

    def __init__(self, api_key: str | None = None, timeout: float = 20.0, clock=utcnow):
        self.api_key = api_key
        self.timeout = timeout
        self._clock = clock

    def _select(self, api_key: str, device_sn: str):
        f.api_key = api_key
        f.device_sn = device_sn
        f.http_timeout = self.timeout

    def fetch_history(self, api_key: str | None, device_sn: str | None, start, end,
                      granularity: str = "hour") -> FetchResult[List[RawTelemetrySample]]:
        """Return per-period samples with timestamps in (start, end], oldest first."""
        if granularity not in GRANULARITY_FREQ:
            raise ValueError(f"Unsupported granularity: {granularity}")
        if not api_key:
            return FetchError(FetchErrorKind.NOT_CONFIGURED, "FoxESS API key required")
        if not device_sn:
            return FetchError(FetchErrorKind.NOT_CONFIGURED, "FoxESS device serial number required")

        start, end = utc_naive(start), utc_naive(end)
        try:
            raw = []
            with _api_lock:
                self._select(api_key, device_sn)
                for day in _days(start, end):
                    chunk = f.get_history('day', d=day.strftime("%Y-%m-%d"), v=list(HISTORY_VARS))
                    if chunk is None:
                        return FetchError(FetchErrorKind.NETWORK,
                                          f"FoxESS returned no history for {device_sn} on {day}")
                    raw.extend(chunk)
            frame = history_to_frame(raw, GRANULARITY_FREQ[granularity])
            if not frame.empty:
                index = frame.index.tz_convert("UTC").tz_localize(None)
                frame = frame.loc[(index > start) & (index <= end)]
            samples = frame_to_samples(frame)
        except Exception as e:
            logger.warning("FoxESS history fetch failed for %s: %s", device_sn, e)
            return error_from_exception(e)
        return FetchOk(samples)

    def fetch_latest(self, device_sn: str, api_key: str | None = None) -> FetchResult[Optional[RawTelemetrySample]]:
        """Return the last completed hour for a device, or None when it reported nothing.

        `api_key` is the site's own key; the adapter-wide key is used when it is unset.
        """
        end = self._clock().replace(minute=0, second=0, microsecond=0)
        start = end - timedelta(hours=1)
        result = self.fetch_history(api_key or self.api_key, device_sn, start, end, "hour")
        if isinstance(result, FetchError):
            return result
        samples = result.value
        return FetchOk(samples[-1] if samples else None)
