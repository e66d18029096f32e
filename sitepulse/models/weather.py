import uuid
from sqlalchemy import Column, DateTime, Float, ForeignKey, String, Uuid
from sitepulse.core.database import Base


class WeatherObservation(Base):
    __tablename__ = "weather_observations"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    site_id = Column(Uuid(as_uuid=True), ForeignKey("sites.id"), nullable=False)
    timestamp = Column(DateTime, nullable=False)

    temperature = Column(Float, nullable=True)
    humidity = Column(Float, nullable=True)
    wind_speed = Column(Float, nullable=True)
    wind_direction = Column(Float, nullable=True)
    pressure = Column(Float, nullable=True)
    visibility = Column(Float, nullable=True)
    uv_index = Column(Float, nullable=True)
    cloud_cover = Column(Float, nullable=True)
    description = Column(String, nullable=True)
