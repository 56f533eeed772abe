from sqlalchemy import Column, Integer, String, Float, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from database import Base
import datetime

class DailyCollection(Base):
    __tablename__ = "daily_collections"

    id = Column(Integer, primary_key=True, index=True)
    date = Column(DateTime, nullable=False, index=True)
    teacher_id = Column(Integer, ForeignKey("teachers.id"), nullable=False, index=True)
    class_id = Column(Integer, ForeignKey("classes.id"), nullable=False)

    # Collection Details
    amount = Column(Float, default=0.0)             # Total money collected that day
    student_count = Column(Integer, default=0)
    tute_cost_per_student = Column(Float, default=0.0)
    postal_fee_per_student = Column(Float, default=0.0)

    created_at = Column(DateTime, default=datetime.datetime.utcnow)

    # Relationships
    teacher = relationship("models.masters.Teacher")
    class_val = relationship("models.masters.ClassMaster")


class Deduction(Base):
    __tablename__ = "deductions"

    id = Column(Integer, primary_key=True, index=True)
    teacher_id = Column(Integer, ForeignKey("teachers.id"), nullable=False, index=True)
    type = Column(String(50), nullable=False)       # ADVANCE, TUTE, PENALTY ...
    amount = Column(Float, default=0.0)
    date = Column(DateTime, nullable=False, index=True)
    description = Column(String(255), nullable=True)

    created_at = Column(DateTime, default=datetime.datetime.utcnow)

    teacher = relationship("models.masters.Teacher")
