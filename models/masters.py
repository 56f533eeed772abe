from sqlalchemy import Column, Integer, String, Float, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from database import Base
import datetime

# 1. CLASS TABLE
class ClassMaster(Base):
    __tablename__ = "classes"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), unique=True, index=True, nullable=False)
    fee_per_student = Column(Float, default=0.0)
    institute_fee_percentage = Column(Float, default=0.0)  # 0-100, kept by the institute
    created_at = Column(DateTime, default=datetime.datetime.utcnow)

# 2. TEACHER TABLE
class Teacher(Base):
    __tablename__ = "teachers"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    phone = Column(String(20))
    address = Column(String(255), nullable=True)
    image = Column(String(255), nullable=True)

    # Teacher portal login
    username = Column(String(100), unique=True, index=True)
    password_hash = Column(String(255))

    created_at = Column(DateTime, default=datetime.datetime.utcnow)

    rates = relationship("TeacherRate", back_populates="teacher", cascade="all, delete-orphan")

# 3. TEACHER RATE (commission % per class - stored, not used by salary calculation)
class TeacherRate(Base):
    __tablename__ = "teacher_rates"
    id = Column(Integer, primary_key=True, index=True)
    teacher_id = Column(Integer, ForeignKey("teachers.id"), nullable=False)
    class_id = Column(Integer, ForeignKey("classes.id"), nullable=False)
    percentage = Column(Float, default=0.0)

    __table_args__ = (
        UniqueConstraint('teacher_id', 'class_id', name='uq_teacher_class_rate'),
    )

    teacher = relationship("Teacher", back_populates="rates")
    class_val = relationship("ClassMaster")

# 4. ADMIN / STAFF USERS
class User(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(100), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(10), default="STAFF")  # ADMIN, STAFF
