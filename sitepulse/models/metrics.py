import uuid
from sqlalchemy import Column, Date, DateTime, Float, ForeignKey, UniqueConstraint, Uuid
from sitepulse.core.database import Base


class DailySiteMetric(Base):
    __tablename__ = "daily_site_metrics"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    site_id = Column(Uuid(as_uuid=True), ForeignKey("sites.id"), nullable=False)
    date = Column(Date, nullable=False)

    total_generation = Column(Float, nullable=False)
    total_consumption = Column(Float, nullable=False)
    total_grid_import = Column(Float, nullable=False)
    total_grid_export = Column(Float, nullable=False)
    average_efficiency = Column(Float, nullable=True)
    capacity_factor = Column(Float, nullable=False)
    availability = Column(Float, nullable=False)
    average_temperature = Column(Float, nullable=False)
    last_updated = Column(DateTime, nullable=False)

    __table_args__ = (
        UniqueConstraint('site_id', 'date', name='uq_metric_site_date'),
    )
