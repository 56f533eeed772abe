"""
Daily Collection + Manual Deduction Router
Staff enter one collection per class session; admins enter deductions
(advances, penalties). Salary reports read both tables.
"""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session, joinedload
from database import get_db
from models.masters import ClassMaster, Teacher
from models.transactions import DailyCollection, Deduction
from routers.auth import require_roles, ADMIN, STAFF
from routers.salary import sql_backend_only
from services.errors import InvalidInput
from services.salary import resolve_period
from services.stores import to_naive_datetime
from pydantic import BaseModel, Field, field_validator
from typing import List, Optional
from datetime import datetime, timedelta
import logging

logger = logging.getLogger("payroll.collections")

router = APIRouter(prefix="/api/v1", tags=["Collections & Deductions"])

admin_only = require_roles(ADMIN)
admin_or_staff = require_roles(ADMIN, STAFF)
# Rows the salary report reads; frozen while reports come from the memory store
report_inputs = [Depends(sql_backend_only)]

# =====================
# PYDANTIC SCHEMAS
# =====================

class DatedEntry(BaseModel):
    """Offset timestamps are stored as naive UTC, the same as the memory store reads them."""

    @field_validator("date", check_fields=False)
    @classmethod
    def naive_utc(cls, value):
        return to_naive_datetime(value) if value is not None else value

class CollectionCreate(DatedEntry):
    date: datetime
    teacher_id: int
    class_id: int
    amount: float = Field(..., ge=0)
    student_count: int = Field(..., ge=0)
    tute_cost_per_student: float = Field(0.0, ge=0)
    postal_fee_per_student: float = Field(0.0, ge=0)

class CollectionUpdate(DatedEntry):
    date: Optional[datetime] = None
    teacher_id: Optional[int] = None
    class_id: Optional[int] = None
    amount: Optional[float] = Field(None, ge=0)
    student_count: Optional[int] = Field(None, ge=0)
    tute_cost_per_student: Optional[float] = Field(None, ge=0)
    postal_fee_per_student: Optional[float] = Field(None, ge=0)

class NamedRef(BaseModel):
    id: int
    name: str

    class Config:
        from_attributes = True

class CollectionOut(BaseModel):
    id: int
    date: datetime
    teacher_id: int
    class_id: int
    amount: float
    student_count: int
    tute_cost_per_student: float
    postal_fee_per_student: float
    teacher: Optional[NamedRef] = None
    class_val: Optional[NamedRef] = None

    class Config:
        from_attributes = True

class DeductionCreate(DatedEntry):
    teacher_id: int
    type: str
    amount: float = Field(..., ge=0)
    date: datetime
    description: Optional[str] = None

class DeductionOut(BaseModel):
    id: int
    teacher_id: int
    type: str
    amount: float
    date: datetime
    description: Optional[str] = None

    class Config:
        from_attributes = True

# =====================
# HELPER FUNCTIONS
# =====================

def check_references(db: Session, teacher_id: Optional[int], class_id: Optional[int]):
    if teacher_id is not None and not db.query(Teacher).filter(Teacher.id == teacher_id).first():
        raise HTTPException(status_code=404, detail="Teacher not found")
    if class_id is not None and not db.query(ClassMaster).filter(ClassMaster.id == class_id).first():
        raise HTTPException(status_code=404, detail="Class not found")

def parse_day(date_str: str) -> datetime:
    try:
        return datetime.strptime(date_str.strip(), "%Y-%m-%d")
    except ValueError:
        raise InvalidInput(f"Invalid date: {date_str}")


# =====================
# COLLECTION APIs
# =====================

@router.get("/collections", response_model=List[CollectionOut])
def list_collections(date: Optional[str] = None, db: Session = Depends(get_db), _=Depends(admin_or_staff)):
    """All collections, or only the given day (YYYY-MM-DD)"""
    query = db.query(DailyCollection).options(
        joinedload(DailyCollection.teacher),
        joinedload(DailyCollection.class_val)
    )
    if date:
        day = parse_day(date)
        query = query.filter(DailyCollection.date >= day, DailyCollection.date < day + timedelta(days=1))
    return query.order_by(DailyCollection.date, DailyCollection.id).all()

@router.post("/collections", response_model=CollectionOut, dependencies=report_inputs)
def create_collection(item: CollectionCreate, db: Session = Depends(get_db), user=Depends(admin_or_staff)):
    check_references(db, item.teacher_id, item.class_id)

    collection = DailyCollection(**item.model_dump())
    db.add(collection)
    db.commit()
    db.refresh(collection)
    logger.info("Collection %s added by %s: teacher=%s class=%s amount=%s",
                collection.id, user.username, item.teacher_id, item.class_id, item.amount)
    return collection

@router.patch("/collections/{collection_id}", response_model=CollectionOut, dependencies=report_inputs)
def update_collection(collection_id: int, item: CollectionUpdate, db: Session = Depends(get_db),
                      _=Depends(admin_or_staff)):
    collection = db.query(DailyCollection).filter(DailyCollection.id == collection_id).first()
    if not collection:
        raise HTTPException(status_code=404, detail="Collection not found")

    changes = item.model_dump(exclude_unset=True)
    check_references(db, changes.get("teacher_id"), changes.get("class_id"))
    for field, value in changes.items():
        setattr(collection, field, value)
    db.commit()
    db.refresh(collection)
    return collection

@router.delete("/collections/{collection_id}", dependencies=report_inputs)
def delete_collection(collection_id: int, db: Session = Depends(get_db), _=Depends(admin_or_staff)):
    collection = db.query(DailyCollection).filter(DailyCollection.id == collection_id).first()
    if not collection:
        raise HTTPException(status_code=404, detail="Collection not found")
    db.delete(collection)
    db.commit()
    return {"success": True}


# =====================
# DEDUCTION APIs
# =====================

@router.get("/deductions", response_model=List[DeductionOut])
def list_deductions(teacher_id: Optional[int] = None, date: Optional[str] = None,
                    db: Session = Depends(get_db), _=Depends(admin_only)):
    """Filter by teacher and/or month (any day of the month)"""
    query = db.query(Deduction)
    if teacher_id:
        query = query.filter(Deduction.teacher_id == teacher_id)
    if date:
        period = resolve_period(date)
        query = query.filter(Deduction.date >= period.start, Deduction.date <= period.end)
    return query.order_by(Deduction.date, Deduction.id).all()

@router.post("/deductions", response_model=DeductionOut, dependencies=report_inputs)
def create_deduction(item: DeductionCreate, db: Session = Depends(get_db), user=Depends(admin_only)):
    check_references(db, item.teacher_id, None)

    deduction = Deduction(**item.model_dump())
    db.add(deduction)
    db.commit()
    db.refresh(deduction)
    logger.info("Deduction %s (%s %.2f) added for teacher %s by %s",
                deduction.id, item.type, item.amount, item.teacher_id, user.username)
    return deduction

@router.delete("/deductions/{deduction_id}", dependencies=report_inputs)
def delete_deduction(deduction_id: int, db: Session = Depends(get_db), _=Depends(admin_only)):
    deduction = db.query(Deduction).filter(Deduction.id == deduction_id).first()
    if not deduction:
        raise HTTPException(status_code=404, detail="Deduction not found")
    db.delete(deduction)
    db.commit()
    return {"success": True}
