import uuid
from sqlalchemy import Column, Text, Date, DateTime, Integer, Index
from sqlalchemy.dialects.postgresql import UUID, JSONB
from .base import Base, now_utc


class ReconciliationRun(Base):
    __tablename__ = 'reconciliation_runs'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    status = Column(Text, nullable=False, default='pending')  # pending|running|completed|failed|cancelled
    as_of = Column(Date, nullable=False)
    residents_checked = Column(Integer, nullable=False, default=0)
    households_checked = Column(Integer, nullable=False, default=0)
    profile_corrections = Column(Integer, nullable=False, default=0)
    aggregate_corrections = Column(Integer, nullable=False, default=0)
    error_count = Column(Integer, nullable=False, default=0)
    error_log = Column(JSONB, nullable=True)
    started_at = Column(DateTime(timezone=True), nullable=True)
    finished_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)

    __table_args__ = (
        Index('ix_reconciliation_runs_created_at', 'created_at'),
    )
