from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session, joinedload
from database import get_db
from models.masters import ClassMaster, Teacher, TeacherRate
from models.transactions import DailyCollection, Deduction
from routers.auth import require_roles, hash_password, ADMIN, STAFF
from routers.salary import sql_backend_only
from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime

router = APIRouter(prefix="/api/v1", tags=["Master Records"])

admin_only = require_roles(ADMIN)
admin_or_staff = require_roles(ADMIN, STAFF)
# Rows the salary report reads; frozen while reports come from the memory store
report_inputs = [Depends(sql_backend_only)]

# =======================
# 1. PYDANTIC SCHEMAS
# =======================
class ClassCreate(BaseModel):
    name: str
    fee_per_student: float = Field(0.0, ge=0)
    institute_fee_percentage: float = Field(0.0, ge=0, le=100)

class ClassUpdate(BaseModel):
    name: Optional[str] = None
    fee_per_student: Optional[float] = Field(None, ge=0)
    institute_fee_percentage: Optional[float] = Field(None, ge=0, le=100)

class ClassOut(BaseModel):
    id: int
    name: str
    fee_per_student: float
    institute_fee_percentage: float

    class Config:
        from_attributes = True

class TeacherCreate(BaseModel):
    name: str
    phone: str
    address: Optional[str] = None
    image: Optional[str] = None

class TeacherUpdate(BaseModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    image: Optional[str] = None

class CredentialsUpdate(BaseModel):
    username: str
    password: str

class RateUpsert(BaseModel):
    teacher_id: int
    class_id: int
    percentage: float = Field(..., ge=0, le=100)

class RateOut(BaseModel):
    id: int
    teacher_id: int
    class_id: int
    percentage: float
    class_val: Optional[ClassOut] = None

    class Config:
        from_attributes = True

class TeacherOut(BaseModel):
    id: int
    name: str
    phone: Optional[str] = None
    address: Optional[str] = None
    image: Optional[str] = None
    username: Optional[str] = None
    created_at: Optional[datetime] = None
    rates: List[RateOut] = []

    class Config:
        from_attributes = True

# =======================
# 2. CLASS APIs
# =======================
@router.get("/classes", response_model=List[ClassOut])
def list_classes(db: Session = Depends(get_db), _=Depends(admin_or_staff)):
    return db.query(ClassMaster).order_by(ClassMaster.id).all()

@router.post("/classes", response_model=ClassOut, dependencies=report_inputs)
def create_class(item: ClassCreate, db: Session = Depends(get_db), _=Depends(admin_only)):
    existing = db.query(ClassMaster).filter(ClassMaster.name == item.name).first()
    if existing:
        raise HTTPException(status_code=400, detail="Class already exists")

    new_class = ClassMaster(**item.model_dump())
    db.add(new_class)
    db.commit()
    db.refresh(new_class)
    return new_class

@router.patch("/classes/{class_id}", response_model=ClassOut, dependencies=report_inputs)
def update_class(class_id: int, item: ClassUpdate, db: Session = Depends(get_db), _=Depends(admin_only)):
    cls = db.query(ClassMaster).filter(ClassMaster.id == class_id).first()
    if not cls:
        raise HTTPException(status_code=404, detail="Class not found")

    for field, value in item.model_dump(exclude_unset=True).items():
        setattr(cls, field, value)
    db.commit()
    db.refresh(cls)
    return cls

@router.delete("/classes/{class_id}", dependencies=report_inputs)
def delete_class(class_id: int, db: Session = Depends(get_db), _=Depends(admin_only)):
    cls = db.query(ClassMaster).filter(ClassMaster.id == class_id).first()
    if not cls:
        raise HTTPException(status_code=404, detail="Class not found")

    in_use = db.query(DailyCollection).filter(DailyCollection.class_id == class_id).first() or \
        db.query(TeacherRate).filter(TeacherRate.class_id == class_id).first()
    if in_use:
        raise HTTPException(status_code=400, detail="Class is used by collections or teacher rates")

    db.delete(cls)
    db.commit()
    return {"success": True}

# =======================
# 3. TEACHER APIs
# =======================
@router.get("/teachers", response_model=List[TeacherOut])
def list_teachers(db: Session = Depends(get_db), _=Depends(admin_or_staff)):
    return db.query(Teacher).options(
        joinedload(Teacher.rates).joinedload(TeacherRate.class_val)
    ).order_by(Teacher.id).all()

@router.post("/teachers", response_model=TeacherOut, dependencies=report_inputs)
def create_teacher(item: TeacherCreate, db: Session = Depends(get_db), _=Depends(admin_only)):
    # Default portal login: username = name, password = phone
    if db.query(Teacher).filter(Teacher.username == item.name).first():
        raise HTTPException(status_code=400, detail="A teacher with this name already exists")

    teacher = Teacher(
        **item.model_dump(),
        username=item.name,
        password_hash=hash_password(item.phone),
    )
    db.add(teacher)
    db.commit()
    db.refresh(teacher)
    return teacher

@router.get("/teachers/{teacher_id}", response_model=TeacherOut)
def get_teacher(teacher_id: int, db: Session = Depends(get_db), _=Depends(admin_or_staff)):
    teacher = db.query(Teacher).options(
        joinedload(Teacher.rates).joinedload(TeacherRate.class_val)
    ).filter(Teacher.id == teacher_id).first()
    if not teacher:
        raise HTTPException(status_code=404, detail="Teacher not found")
    return teacher

@router.patch("/teachers/{teacher_id}", response_model=TeacherOut, dependencies=report_inputs)
def update_teacher(teacher_id: int, item: TeacherUpdate, db: Session = Depends(get_db), _=Depends(admin_only)):
    teacher = db.query(Teacher).filter(Teacher.id == teacher_id).first()
    if not teacher:
        raise HTTPException(status_code=404, detail="Teacher not found")

    for field, value in item.model_dump(exclude_unset=True).items():
        setattr(teacher, field, value)
    db.commit()
    db.refresh(teacher)
    return teacher

@router.delete("/teachers/{teacher_id}", dependencies=report_inputs)
def delete_teacher(teacher_id: int, db: Session = Depends(get_db), _=Depends(admin_only)):
    teacher = db.query(Teacher).filter(Teacher.id == teacher_id).first()
    if not teacher:
        raise HTTPException(status_code=404, detail="Teacher not found")

    has_history = db.query(DailyCollection).filter(DailyCollection.teacher_id == teacher_id).first() or \
        db.query(Deduction).filter(Deduction.teacher_id == teacher_id).first()
    if has_history:
        raise HTTPException(status_code=400, detail="Teacher has collections or deductions on record")

    db.delete(teacher)  # rates go with it (cascade)
    db.commit()
    return {"success": True}

@router.put("/teachers/{teacher_id}/credentials")
def update_teacher_credentials(teacher_id: int, item: CredentialsUpdate, db: Session = Depends(get_db),
                               _=Depends(admin_only)):
    teacher = db.query(Teacher).filter(Teacher.id == teacher_id).first()
    if not teacher:
        raise HTTPException(status_code=404, detail="Teacher not found")

    taken = db.query(Teacher).filter(Teacher.username == item.username, Teacher.id != teacher_id).first()
    if taken:
        raise HTTPException(status_code=400, detail="Username already taken")

    teacher.username = item.username
    teacher.password_hash = hash_password(item.password)
    db.commit()
    return {"message": "Credentials Updated", "username": teacher.username}

# =======================
# 4. RATE APIs
# =======================
@router.post("/rates", response_model=RateOut)
def upsert_rate(item: RateUpsert, db: Session = Depends(get_db), _=Depends(admin_only)):
    if not db.query(Teacher).filter(Teacher.id == item.teacher_id).first():
        raise HTTPException(status_code=404, detail="Teacher not found")
    if not db.query(ClassMaster).filter(ClassMaster.id == item.class_id).first():
        raise HTTPException(status_code=404, detail="Class not found")

    rate = db.query(TeacherRate).filter(
        TeacherRate.teacher_id == item.teacher_id,
        TeacherRate.class_id == item.class_id
    ).first()

    if rate:
        rate.percentage = item.percentage
    else:
        rate = TeacherRate(**item.model_dump())
        db.add(rate)

    db.commit()
    db.refresh(rate)
    return rate

@router.delete("/rates/{rate_id}")
def delete_rate(rate_id: int, db: Session = Depends(get_db), _=Depends(admin_only)):
    rate = db.query(TeacherRate).filter(TeacherRate.id == rate_id).first()
    if not rate:
        raise HTTPException(status_code=404, detail="Rate not found")
    db.delete(rate)
    db.commit()
    return {"success": True}
