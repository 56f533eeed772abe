"""
Payroll Run - immutable snapshot of a finalized month.
The salary report itself is always recomputed from raw rows; a run only
freezes what was paid out.
"""
from sqlalchemy import Column, Integer, String, DateTime, JSON, UniqueConstraint
from database import Base
import datetime


class PayrollRun(Base):
    __tablename__ = "payroll_runs"

    id = Column(Integer, primary_key=True, index=True)
    period_start = Column(DateTime, nullable=False)
    period_end = Column(DateTime, nullable=False)

    # Audit Trail
    finalized_at = Column(DateTime, default=datetime.datetime.utcnow)
    finalized_by = Column(String(100), default="admin")

    # Full report list as returned by /api/v1/salary
    report = Column(JSON, default=list)

    __table_args__ = (
        UniqueConstraint('period_start', name='uq_payroll_run_period'),
    )
