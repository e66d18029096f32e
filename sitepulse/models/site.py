import uuid
from sqlalchemy import Boolean, Column, Date, Float, ForeignKey, String, Uuid
from sqlalchemy.orm import relationship
from sitepulse.core.database import Base


class Organization(Base):
    __tablename__ = "organizations"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String, nullable=False)

    sites = relationship("Site", back_populates="organization")


class Site(Base):
    __tablename__ = "sites"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    organization_id = Column(Uuid(as_uuid=True), ForeignKey("organizations.id"), nullable=False)
    name = Column(String, nullable=False)

    capacity_kw = Column(Float, nullable=False, default=0.0)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)

    install_date = Column(Date, nullable=True)
    last_maintenance_date = Column(Date, nullable=True)

    # FoxESS cloud identifiers; the device serial number drives ingestion,
    # the per-site key is required for history pulls.
    inverter_device_sn = Column(String, nullable=True)
    inverter_api_key = Column(String, nullable=True)

    organization = relationship("Organization", back_populates="sites")
