import uuid
from sqlalchemy import Column, String, Text, Date, DateTime, Boolean, Integer, Numeric, ForeignKey, Index, CheckConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from .base import Base, now_utc


class Resident(Base):
    __tablename__ = 'residents'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    first_name = Column(String(100), nullable=False)
    middle_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=False)
    birthdate = Column(Date, nullable=False)
    # employed|self_employed|underemployed|unemployed|looking_for_work|student|retired|homemaker|unable_to_work|not_in_labor_force
    employment_status = Column(String(32), nullable=False, default='not_in_labor_force')
    # currently_studying|not_studying|graduated|dropped_out
    education_status = Column(String(32), nullable=True)
    # no_formal_education|elementary|high_school|vocational|college|post_graduate
    education_attainment = Column(String(32), nullable=True)
    salary = Column(Numeric(12, 2), nullable=True)
    is_registered_senior_citizen = Column(Boolean, nullable=False, default=False)
    is_solo_parent = Column(Boolean, nullable=False, default=False)
    is_indigenous_people = Column(Boolean, nullable=False, default=False)
    is_person_with_disability = Column(Boolean, nullable=False, default=False)
    is_overseas_filipino_worker = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=now_utc)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)

    migration_info = relationship(
        "MigrationInfo", back_populates="resident", uselist=False, cascade="all, delete-orphan", passive_deletes=True,
    )
    memberships = relationship(
        "HouseholdMember", back_populates="resident", cascade="all, delete-orphan", passive_deletes=True,
    )
    sectoral_profile = relationship(
        "ResidentSectoralProfile", back_populates="resident", uselist=False, cascade="all, delete-orphan", passive_deletes=True,
    )

    __table_args__ = (
        Index('idx_residents_last_name', 'last_name'),
        Index('idx_residents_birthdate', 'birthdate'),
        CheckConstraint("salary IS NULL OR salary >= 0", name='ck_residents_salary_non_negative'),
    )


class MigrationInfo(Base):
    """Previous-residence details; presence alone marks the resident as a migrant."""
    __tablename__ = 'resident_migrant_info'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    resident_id = Column(UUID(as_uuid=True), ForeignKey('residents.id', ondelete='CASCADE'), nullable=False, unique=True)
    previous_barangay_code = Column(String(10), nullable=True)
    previous_city_municipality_code = Column(String(10), nullable=True)
    previous_province_code = Column(String(10), nullable=True)
    previous_region_code = Column(String(10), nullable=True)
    previous_country = Column(String(100), nullable=True)
    date_of_transfer = Column(Date, nullable=True)
    reason_for_leaving = Column(Text, nullable=True)
    reason_for_transferring = Column(Text, nullable=True)
    length_of_stay_previous_months = Column(Integer, nullable=True)
    duration_of_stay_current_months = Column(Integer, nullable=True)
    is_intending_to_return = Column(Boolean, nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)

    resident = relationship("Resident", back_populates="migration_info")
