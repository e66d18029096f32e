import uuid
from sqlalchemy import Column, ForeignKey, String, UniqueConstraint, Uuid
from sitepulse.core.database import Base

OPERATIONS_ROLE = "om_provider"


class User(Base):
    __tablename__ = "users"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    email = Column(String, nullable=False, unique=True)
    name = Column(String, nullable=True)


class OrganizationMember(Base):
    __tablename__ = "organization_members"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False)
    organization_id = Column(Uuid(as_uuid=True), ForeignKey("organizations.id"), nullable=False)
    role = Column(String, nullable=False)

    __table_args__ = (
        UniqueConstraint('user_id', 'organization_id', name='uq_member_user_org'),
    )
