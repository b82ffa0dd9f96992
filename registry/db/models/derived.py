from sqlalchemy import Column, String, Date, DateTime, Boolean, Integer, Numeric, ForeignKey, Index
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from .base import Base, now_utc


class ResidentSectoralProfile(Base):
    """Derived sectoral flags; overwritten wholesale by the recomputation engine."""
    __tablename__ = 'resident_sectoral_profiles'
    resident_id = Column(UUID(as_uuid=True), ForeignKey('residents.id', ondelete='CASCADE'), primary_key=True)
    is_labor_force_employed = Column(Boolean, nullable=False, default=False)
    is_unemployed = Column(Boolean, nullable=False, default=False)
    is_out_of_school_children = Column(Boolean, nullable=False, default=False)
    is_out_of_school_youth = Column(Boolean, nullable=False, default=False)
    is_senior_citizen = Column(Boolean, nullable=False, default=False)
    is_registered_senior_citizen = Column(Boolean, nullable=False, default=False)
    is_solo_parent = Column(Boolean, nullable=False, default=False)
    is_indigenous_people = Column(Boolean, nullable=False, default=False)
    is_person_with_disability = Column(Boolean, nullable=False, default=False)
    is_overseas_filipino_worker = Column(Boolean, nullable=False, default=False)
    is_migrant = Column(Boolean, nullable=False, default=False)
    as_of = Column(Date, nullable=False)
    computed_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)

    resident = relationship("Resident", back_populates="sectoral_profile")


class HouseholdAggregate(Base):
    """Derived household totals; overwritten wholesale by the recomputation engine."""
    __tablename__ = 'household_aggregates'
    household_id = Column(UUID(as_uuid=True), ForeignKey('households.id', ondelete='CASCADE'), primary_key=True)
    member_count = Column(Integer, nullable=False, default=0)
    migrant_count = Column(Integer, nullable=False, default=0)
    total_monthly_income = Column(Numeric(14, 2), nullable=False, default=0)
    income_class = Column(String(32), nullable=False)
    household_name = Column(String(100), nullable=True)
    as_of = Column(Date, nullable=False)
    computed_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)

    household = relationship("Household", back_populates="aggregate")

    __table_args__ = (
        Index('idx_household_aggregates_income_class', 'income_class'),
    )
