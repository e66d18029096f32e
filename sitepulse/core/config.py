"""
Application configuration.

Settings are grouped into pydantic sections and populated from environment
variables by `load_config`. A module-level `app_config` is built at import time
for the application entry point; tests construct their own sections directly.
"""
import os
from typing import Mapping, Optional
from pydantic import BaseModel


class DatabaseConfig(BaseModel):
    """Database connection settings."""

    url: str = "sqlite:///./sitepulse.db"
    echo: bool = False


class SyncConfig(BaseModel):
    """Ingestion scheduling settings."""

    interval_minutes: int = 60
    warmup_seconds: int = 60
    # Hour (UTC) of the daily analytics alert sweep, None disables it
    analytics_sweep_hour: Optional[int] = 6


class AnalyticsConfig(BaseModel):
    """Predictive analytics settings."""

    history_days: int = 90
    feed_in_tariff: float = 0.85
    max_workers: int = 4


class ProviderConfig(BaseModel):
    """External data source credentials."""

    foxess_api_key: Optional[str] = None
    openweathermap_api_key: Optional[str] = None
    timeout_seconds: float = 20.0


class SmtpConfig(BaseModel):
    """Outgoing mail settings for alert notifications."""

    host: str = ""
    port: int = 587
    user: str = ""
    password: str = ""
    use_ssl: bool = False
    from_email: str = ""
    from_name: str = "SitePulse Alerts"
    timeout: float = 20.0

    @property
    def is_configured(self) -> bool:
        return all([self.host, self.port, self.user, self.password, self.from_email])


class APIConfig(BaseModel):
    """HTTP surface settings."""

    title: str = "SitePulse API"
    allow_origins: list = ["http://localhost:3000", "http://localhost:8000"]


class ApplicationConfig(BaseModel):
    """Main application configuration."""

    database: DatabaseConfig = DatabaseConfig()
    sync: SyncConfig = SyncConfig()
    analytics: AnalyticsConfig = AnalyticsConfig()
    providers: ProviderConfig = ProviderConfig()
    smtp: SmtpConfig = SmtpConfig()
    api: APIConfig = APIConfig()
    log_level: str = "INFO"


def _env(env: Mapping[str, str], name: str, default: str = "") -> str:
    return (env.get(name) or default).strip()


def _env_bool(env: Mapping[str, str], name: str, default: str = "false") -> bool:
    return _env(env, name, default).lower() in ("1", "true", "yes", "y", "on")


def _env_optional_int(env: Mapping[str, str], name: str, default: Optional[int]) -> Optional[int]:
    raw = _env(env, name)
    if not raw:
        return default
    if raw.lower() in ("none", "off", "disabled"):
        return None
    return int(raw)


def load_config(env: Optional[Mapping[str, str]] = None) -> ApplicationConfig:
    """Build an `ApplicationConfig` from environment variables."""
    if env is None:
        env = os.environ

    smtp_port = int(_env(env, "SMTP_PORT", "587"))
    # Configure allowed origins via FRONTEND_ORIGINS env var (comma-separated).
    raw_origins = _env(env, "FRONTEND_ORIGINS", "http://localhost:3000,http://localhost:8000")
    origins = [o.strip() for o in raw_origins.split(",") if o.strip()]

    return ApplicationConfig(
        database=DatabaseConfig(
            url=_env(env, "DATABASE_URL", DatabaseConfig().url),
            echo=_env_bool(env, "DATABASE_ECHO"),
        ),
        sync=SyncConfig(
            interval_minutes=int(_env(env, "SYNC_INTERVAL_MINUTES", "60")),
            warmup_seconds=int(_env(env, "SYNC_WARMUP_SECONDS", "60")),
            analytics_sweep_hour=_env_optional_int(env, "ANALYTICS_SWEEP_HOUR", 6),
        ),
        analytics=AnalyticsConfig(
            history_days=int(_env(env, "ANALYTICS_HISTORY_DAYS", "90")),
            feed_in_tariff=float(_env(env, "FEED_IN_TARIFF", "0.85")),
            max_workers=int(_env(env, "ANALYTICS_MAX_WORKERS", "4")),
        ),
        providers=ProviderConfig(
            foxess_api_key=_env(env, "FOXESS_API_KEY") or None,
            openweathermap_api_key=_env(env, "OPENWEATHERMAP_API_KEY") or None,
            timeout_seconds=float(_env(env, "PROVIDER_TIMEOUT_SECONDS", "20")),
        ),
        smtp=SmtpConfig(
            host=_env(env, "SMTP_HOST"),
            port=smtp_port,
            user=_env(env, "SMTP_USER"),
            password=_env(env, "SMTP_PASS"),
            # Port 465 => implicit TLS, anything else => STARTTLS
            use_ssl=_env_bool(env, "SMTP_SSL", "true" if smtp_port == 465 else "false"),
            from_email=_env(env, "FROM_EMAIL"),
            from_name=_env(env, "FROM_NAME", "SitePulse Alerts"),
            timeout=float(_env(env, "SMTP_TIMEOUT", "20")),
        ),
        api=APIConfig(allow_origins=origins or ["*"]),
        log_level=_env(env, "LOG_LEVEL", "INFO").upper(),
    )


# Global configuration instance
app_config = load_config()
