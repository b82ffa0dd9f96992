import uuid
from sqlalchemy import Column, String, Date, DateTime, Boolean, ForeignKey, Index, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from .base import Base, now_utc


class Household(Base):
    __tablename__ = 'households'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    code = Column(String(50), nullable=False, unique=True)
    household_head_id = Column(UUID(as_uuid=True), ForeignKey('residents.id', ondelete='SET NULL'), nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)

    head = relationship("Resident", foreign_keys=[household_head_id])
    members = relationship(
        "HouseholdMember", back_populates="household", cascade="all, delete-orphan", passive_deletes=True,
    )
    aggregate = relationship(
        "HouseholdAggregate", back_populates="household", uselist=False, cascade="all, delete-orphan", passive_deletes=True,
    )


class HouseholdMember(Base):
    __tablename__ = 'household_members'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    household_id = Column(UUID(as_uuid=True), ForeignKey('households.id', ondelete='CASCADE'), nullable=False)
    resident_id = Column(UUID(as_uuid=True), ForeignKey('residents.id', ondelete='CASCADE'), nullable=False)
    relationship_to_head = Column(String(50), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    move_in_date = Column(Date, nullable=True)
    move_out_date = Column(Date, nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc)

    household = relationship("Household", back_populates="members")
    resident = relationship("Resident", back_populates="memberships")

    __table_args__ = (
        Index('idx_household_members_household_active', 'household_id', 'is_active'),
        # At most one active membership per resident
        Index(
            'uq_household_members_active_resident',
            'resident_id',
            unique=True,
            postgresql_where=text('is_active'),
            sqlite_where=text('is_active = 1'),
        ),
    )
