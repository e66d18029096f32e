import uuid
from sqlalchemy import Column, DateTime, Float, Integer, Uuid
from sitepulse.core.database import Base


class SyncRun(Base):
    __tablename__ = "sync_runs"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    timestamp = Column(DateTime, nullable=False)
    sites_processed = Column(Integer, nullable=False)
    records_updated = Column(Integer, nullable=False)
    errors = Column(Integer, nullable=False)
    duration_ms = Column(Float, nullable=False)
