from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from sitepulse.api.routes import router
from sitepulse.core.config import ApplicationConfig, app_config
from sitepulse.core.database import SessionLocal
from sitepulse.core.log_config import configure_logging
from sitepulse.services.analytics import PredictiveAnalyticsService
from sitepulse.services.foxess import FoxessTelemetryAdapter
from sitepulse.services.notifications import EmailNotifier
from sitepulse.services.sync import SyncService
from sitepulse.services.weather import OpenWeatherMapAdapter
from sitepulse.tasks.scheduler import SyncScheduler


def build_services(config: ApplicationConfig, session_factory=SessionLocal):
    """Wire adapters, sync, analytics and the scheduler from configuration."""
    providers = config.providers
    telemetry = FoxessTelemetryAdapter(providers.foxess_api_key, timeout=providers.timeout_seconds)
    weather = OpenWeatherMapAdapter(providers.openweathermap_api_key, timeout=providers.timeout_seconds)

    sync_service = SyncService(telemetry, weather, session_factory=session_factory)
    analytics = PredictiveAnalyticsService(
        telemetry,
        notifier=EmailNotifier(config.smtp),
        session_factory=session_factory,
        config=config.analytics,
    )
    scheduler = SyncScheduler(
        sync_service,
        interval_minutes=config.sync.interval_minutes,
        analytics=analytics,
        analytics_sweep_hour=config.sync.analytics_sweep_hour,
        warmup_seconds=config.sync.warmup_seconds,
    )
    return scheduler, analytics


def create_app(config: ApplicationConfig = app_config, scheduler=None, analytics=None) -> FastAPI:
    configure_logging(config.log_level)
    if scheduler is None or analytics is None:
        built_scheduler, built_analytics = build_services(config)
        scheduler = scheduler or built_scheduler
        analytics = analytics or built_analytics

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        scheduler.start()
        try:
            yield
        finally:
            scheduler.stop()

    app = FastAPI(title=config.api.title, lifespan=lifespan)
    app.state.scheduler = scheduler
    app.state.analytics = analytics

    # Configure allowed origins via FRONTEND_ORIGINS env var (comma-separated).
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.api.allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(router)
    return app


app = create_app()
