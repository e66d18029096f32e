import uuid
from sqlalchemy import Column, DateTime, Float, ForeignKey, UniqueConstraint, Uuid
from sitepulse.core.database import Base


class TelemetryReading(Base):
    __tablename__ = "telemetry_readings"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    site_id = Column(Uuid(as_uuid=True), ForeignKey("sites.id"), nullable=False)
    timestamp = Column(DateTime, nullable=False)

    generation_kwh = Column(Float, nullable=False, default=0.0)
    consumption_kwh = Column(Float, nullable=False, default=0.0)
    grid_import_kwh = Column(Float, nullable=True)
    grid_export_kwh = Column(Float, nullable=False, default=0.0)
    battery_charge_kwh = Column(Float, nullable=False, default=0.0)
    battery_discharge_kwh = Column(Float, nullable=False, default=0.0)
    temperature_c = Column(Float, nullable=True)
    irradiance = Column(Float, nullable=True)

    __table_args__ = (
        UniqueConstraint('site_id', 'timestamp', name='uq_telemetry_site_timestamp'),
    )
