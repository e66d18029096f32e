"""Value types returned by the sync and analytics services."""
import uuid
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel


class PredictionType(str, Enum):
    PERFORMANCE_DEGRADATION = "performance_degradation"
    EQUIPMENT_FAILURE = "equipment_failure"
    MAINTENANCE_REQUIRED = "maintenance_required"
    WEATHER_IMPACT = "weather_impact"


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class EstimatedImpact(BaseModel):
    energy_loss_kwh: float
    financial_impact: float
    timeframe: str


class Prediction(BaseModel):
    site_id: uuid.UUID
    site_name: str
    prediction_type: PredictionType
    severity: Severity
    confidence: float  # 0-100
    description: str
    recommended_action: str
    estimated_impact: EstimatedImpact
    predicted_date: Optional[datetime] = None


class ComponentHealth(BaseModel):
    inverters: int
    panels: int
    monitoring: int
    grid: int


class SiteHealth(BaseModel):
    site_id: uuid.UUID
    overall_health: int  # 0-100
    components: ComponentHealth
    alerts: int
    last_update: datetime


class SyncRunStats(BaseModel):
    sites_processed: int = 0
    records_updated: int = 0
    errors: int = 0
    duration_ms: float = 0.0
    last_sync: Optional[datetime] = None


class SyncResult(BaseModel):
    success: bool
    message: str
    stats: Optional[SyncRunStats] = None


class IntervalUpdateResult(BaseModel):
    success: bool
    message: str
    interval_minutes: Optional[int] = None
    cadence: Optional[str] = None
