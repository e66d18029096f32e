"""
Predictive analytics over a site's hourly generation history.

`analyze_site_performance` pulls the last 90 days from the telemetry adapter and
runs four independent analyses (degradation trend, equipment anomalies,
maintenance schedule, seasonal weather impact). Each returns a `Prediction` or
None. The thresholds below are business rules rather than tunables.
"""
import html
import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta
from typing import List, Optional

from sitepulse.core.config import AnalyticsConfig
from sitepulse.core.database import SessionLocal, session_scope, utcnow
from sitepulse.core.statistics import (
    daily_means,
    detect_anomalies,
    linear_trend,
    season_for,
    seasonal_factor,
)
from sitepulse.models.schemas import (
    ComponentHealth,
    EstimatedImpact,
    Prediction,
    PredictionType,
    Severity,
    SiteHealth,
)
from sitepulse.services.results import FetchError
from sitepulse.services.store import MetricsStore

logger = logging.getLogger(__name__)

# Degradation
MIN_DAILY_POINTS = 7
DEGRADATION_SLOPE_THRESHOLD = -0.02
PEAK_SUN_HOURS = 4
# Equipment health
MIN_HOURLY_POINTS = 24
EQUIPMENT_WINDOW_HOURS = 168
ANOMALY_COUNT_THRESHOLD = 10
# Maintenance
MAINTENANCE_INTERVAL_MONTHS = 6
MAINTENANCE_LOSS_FRACTION = 0.05
DAYS_PER_MONTH = 30
# Weather impact
WEATHER_WINDOW_DAYS = 30
WEATHER_PERFORMANCE_RATIO = 0.7

SEVERITY_PENALTY = {Severity.CRITICAL: 30, Severity.HIGH: 20, Severity.MEDIUM: 10}
ALERT_SEVERITIES = (Severity.CRITICAL, Severity.HIGH)


class SiteNotFoundError(ValueError):
    pass


class SiteNotConfiguredError(ValueError):
    """The site lacks the telemetry credentials needed for a history pull."""


class TelemetryUnavailableError(RuntimeError):
    pass


def degradation_severity(annual_pct: float) -> Severity:
    if annual_pct > 5:
        return Severity.HIGH
    if annual_pct > 2:
        return Severity.MEDIUM
    return Severity.LOW


def equipment_severity(anomaly_count: int) -> Severity:
    if anomaly_count > 50:
        return Severity.CRITICAL
    if anomaly_count > 25:
        return Severity.HIGH
    return Severity.MEDIUM


def analyze_performance_degradation(site, samples, tariff: float) -> Optional[Prediction]:
    daily = daily_means((s.timestamp.date(), s.generation) for s in samples)
    if len(daily) < MIN_DAILY_POINTS:
        return None

    trend = linear_trend(daily)
    if trend.slope >= DEGRADATION_SLOPE_THRESHOLD:
        return None

    annual_degradation = abs(trend.slope * 12 * 100)
    energy_loss = site.capacity_kw * 365 * PEAK_SUN_HOURS * (annual_degradation / 100)
    return Prediction(
        site_id=site.id,
        site_name=site.name,
        prediction_type=PredictionType.PERFORMANCE_DEGRADATION,
        severity=degradation_severity(annual_degradation),
        confidence=min(95.0, abs(trend.correlation) * 100),
        description=f"System showing {annual_degradation:.1f}% annual performance degradation",
        recommended_action="Schedule comprehensive system inspection and cleaning",
        estimated_impact=EstimatedImpact(
            energy_loss_kwh=energy_loss,
            financial_impact=energy_loss * tariff,
            timeframe="12 months",
        ),
    )


def analyze_equipment_health(site, samples, tariff: float, now: datetime) -> Optional[Prediction]:
    hourly = [s.generation for s in samples if s.generation is not None]
    if len(hourly) < MIN_HOURLY_POINTS:
        return None

    recent = hourly[-EQUIPMENT_WINDOW_HOURS:]
    anomalies = detect_anomalies(recent)
    if anomalies.count <= ANOMALY_COUNT_THRESHOLD:
        return None

    energy_loss = anomalies.average_impact * 24 * 30
    return Prediction(
        site_id=site.id,
        site_name=site.name,
        prediction_type=PredictionType.EQUIPMENT_FAILURE,
        severity=equipment_severity(anomalies.count),
        confidence=min(90.0, (anomalies.count / len(recent)) * 100 * 2),
        description=f"{anomalies.count} performance anomalies detected in the last week",
        recommended_action="Immediate equipment inspection required - potential inverter or panel issues",
        estimated_impact=EstimatedImpact(
            energy_loss_kwh=energy_loss,
            financial_impact=energy_loss * tariff,
            timeframe="30 days",
        ),
        predicted_date=now + timedelta(days=7),
    )


def months_since_maintenance(site, now: datetime) -> Optional[float]:
    reference = site.last_maintenance_date or site.install_date
    if reference is None:
        return None
    return (now.date() - reference).days / DAYS_PER_MONTH


def analyze_maintenance_needs(site, tariff: float, now: datetime) -> Optional[Prediction]:
    months = months_since_maintenance(site, now)
    # stays due on every analysis until last_maintenance_date is updated
    if months is None or months < MAINTENANCE_INTERVAL_MONTHS - 1:
        return None

    energy_loss = site.capacity_kw * 24 * 30 * MAINTENANCE_LOSS_FRACTION
    return Prediction(
        site_id=site.id,
        site_name=site.name,
        prediction_type=PredictionType.MAINTENANCE_REQUIRED,
        severity=Severity.MEDIUM,
        confidence=85.0,
        description="Scheduled maintenance due based on system age and performance trends",
        recommended_action="Schedule preventive maintenance: panel cleaning, connection checks, inverter inspection",
        estimated_impact=EstimatedImpact(
            energy_loss_kwh=energy_loss,
            financial_impact=energy_loss * tariff,
            timeframe="30 days",
        ),
        predicted_date=now + timedelta(days=14),
    )


def analyze_weather_impact(site, samples, tariff: float, now: datetime) -> Optional[Prediction]:
    if not site.capacity_kw or site.capacity_kw <= 0:
        return None
    window_start = now - timedelta(days=WEATHER_WINDOW_DAYS)
    total_generation = sum(s.generation for s in samples if s.generation is not None and s.timestamp > window_start)
    if not total_generation:
        return None

    expected = seasonal_factor(season_for(now.month, site.latitude))
    period_capacity = site.capacity_kw * 24 * WEATHER_WINDOW_DAYS
    actual = total_generation / period_capacity
    if actual >= WEATHER_PERFORMANCE_RATIO * expected:
        return None

    energy_loss = (expected - actual) * period_capacity
    return Prediction(
        site_id=site.id,
        site_name=site.name,
        prediction_type=PredictionType.WEATHER_IMPACT,
        severity=Severity.MEDIUM,
        confidence=70.0,
        description="Performance significantly below seasonal expectations - possible weather-related issues",
        recommended_action="Monitor weather conditions and consider protective measures",
        estimated_impact=EstimatedImpact(
            energy_loss_kwh=energy_loss,
            financial_impact=energy_loss * tariff,
            timeframe="Current period",
        ),
    )


def health_score(predictions: List[Prediction]) -> int:
    score = 100
    for p in predictions:
        score -= SEVERITY_PENALTY.get(p.severity, 0)
    return max(0, score)


def component_breakdown(score: int) -> ComponentHealth:
    if score > 80:
        return ComponentHealth(inverters=95, panels=90, monitoring=95, grid=98)
    if score > 60:
        return ComponentHealth(inverters=80, panels=75, monitoring=95, grid=85)
    return ComponentHealth(inverters=60, panels=55, monitoring=95, grid=70)


def render_alert_email(predictions: List[Prediction]) -> str:
    items = []
    for p in predictions:
        items.append(
            "<li>"
            f"<strong>{html.escape(p.site_name)}</strong> - {html.escape(p.description)}"
            f"<br>Severity: {p.severity.value.upper()}"
            f"<br>Recommended Action: {html.escape(p.recommended_action)}"
            f"<br>Estimated Impact: {p.estimated_impact.energy_loss_kwh:.0f} kWh "
            f"({p.estimated_impact.financial_impact:.2f})"
            "</li>"
        )
    return (
        "<h2>SitePulse System Alert</h2>"
        "<p>Critical issues have been detected that require immediate attention:</p>"
        f"<ul>{''.join(items)}</ul>"
        "<p>Please log into the SitePulse portal for detailed analysis and recommendations.</p>"
    )


class PredictiveAnalyticsService:
    """Turn a site's history into predictions, health scores and alerts."""

    def __init__(self, telemetry, notifier=None, session_factory=SessionLocal,
                 config: AnalyticsConfig | None = None, clock=utcnow):
        self.telemetry = telemetry
        self.notifier = notifier
        self.config = config or AnalyticsConfig()
        self._session_factory = session_factory
        self._clock = clock

    def _load_site(self, site_id):
        with session_scope(self._session_factory) as session:
            site = MetricsStore(session).get_site(site_id)
        if site is None:
            raise SiteNotFoundError(f"Site {site_id} not found")
        if not site.inverter_api_key or not site.inverter_device_sn:
            raise SiteNotConfiguredError(f"Site {site_id} has no FoxESS credentials configured")
        return site

    def analyze_site_performance(self, site_id) -> List[Prediction]:
        site = self._load_site(site_id)
        now = self._clock()
        start = now - timedelta(days=self.config.history_days)

        result = self.telemetry.fetch_history(site.inverter_api_key, site.inverter_device_sn, start, now, "hour")
        if isinstance(result, FetchError):
            logger.error("Failed to analyze site performance for %s: %s", site_id, result)
            raise TelemetryUnavailableError(str(result))
        samples = result.value
        tariff = self.config.feed_in_tariff

        analyses = [
            ("performance degradation", lambda: analyze_performance_degradation(site, samples, tariff)),
            ("equipment health", lambda: analyze_equipment_health(site, samples, tariff, now)),
            ("maintenance needs", lambda: analyze_maintenance_needs(site, tariff, now)),
            ("weather impact", lambda: analyze_weather_impact(site, samples, tariff, now)),
        ]
        predictions = []
        for name, analysis in analyses:
            try:
                prediction = analysis()
            except Exception:
                logger.exception("Failed to analyze %s for site %s", name, site_id)
                continue
            if prediction is not None:
                predictions.append(prediction)
        return predictions

    def _site_health(self, site) -> SiteHealth:
        try:
            predictions = self.analyze_site_performance(site.id)
        except Exception as e:
            logger.error("Failed to get health for site %s: %s", site.id, e)
            return SiteHealth(
                site_id=site.id,
                overall_health=50,
                components=ComponentHealth(inverters=50, panels=50, monitoring=50, grid=50),
                alerts=0,
                last_update=self._clock(),
            )
        score = health_score(predictions)
        return SiteHealth(
            site_id=site.id,
            overall_health=score,
            components=component_breakdown(score),
            alerts=len(predictions),
            last_update=self._clock(),
        )

    def get_system_health_overview(self, organization_id) -> List[SiteHealth]:
        with session_scope(self._session_factory) as session:
            sites = MetricsStore(session).list_active_sites(organization_id)
        if not sites:
            return []
        with ThreadPoolExecutor(max_workers=self.config.max_workers) as pool:
            return list(pool.map(self._site_health, sites))

    def send_alert_notifications(self, predictions: List[Prediction], site_id) -> int:
        """Email critical/high findings to the site's operations users; returns messages sent."""
        alerts = [p for p in predictions if p.severity in ALERT_SEVERITIES]
        if not alerts:
            return 0
        if self.notifier is None:
            logger.warning("No notification sink configured, %d alerts for site %s not sent", len(alerts), site_id)
            return 0

        sent = 0
        try:
            with session_scope(self._session_factory) as session:
                recipients = MetricsStore(session).operations_recipients(site_id)
            subject = "SitePulse Alert: Critical Issues Detected"
            body = render_alert_email(alerts)
            for email in recipients:
                if self.notifier.send(email, subject, body):
                    sent += 1
            logger.info("Alert notifications sent for site %s: %d alerts, %d/%d recipients",
                        site_id, len(alerts), sent, len(recipients))
        except Exception:
            logger.exception("Failed to send alert notifications for site %s", site_id)
        return sent

    def run_alert_sweep(self) -> int:
        """Analyze every active site and dispatch alerts; returns messages sent."""
        with session_scope(self._session_factory) as session:
            sites = MetricsStore(session).list_active_sites()
        sent = 0
        for site in sites:
            try:
                predictions = self.analyze_site_performance(site.id)
            except SiteNotConfiguredError:
                logger.debug("Skipping alert sweep for unconfigured site %s", site.id)
                continue
            except Exception as e:
                logger.error("Alert sweep failed for site %s: %s", site.id, e)
                continue
            sent += self.send_alert_notifications(predictions, site.id)
        logger.info("Alert sweep completed over %d sites, %d messages sent", len(sites), sent)
        return sent
