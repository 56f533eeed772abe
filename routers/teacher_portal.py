"""
Teacher Portal - a logged-in teacher sees only their own profile and pay.
"""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from database import get_db
from models.masters import Teacher
from routers.auth import require_roles, CurrentUser, TEACHER
from routers.masters import TeacherOut
from routers.salary import get_aggregator
from schemas.payroll import SalaryReport
from services.salary import SalaryAggregator
from typing import Optional

router = APIRouter(prefix="/api/v1/teacher", tags=["Teacher Portal"])

teacher_only = require_roles(TEACHER)

@router.get("/me", response_model=TeacherOut)
def my_profile(db: Session = Depends(get_db), user: CurrentUser = Depends(teacher_only)):
    teacher = db.query(Teacher).filter(Teacher.id == user.id).first()
    if not teacher:
        raise HTTPException(status_code=404, detail="Teacher not found")
    return teacher

@router.get("/me/salary", response_model=SalaryReport)
def my_salary(date: Optional[str] = None, aggregator: SalaryAggregator = Depends(get_aggregator),
              user: CurrentUser = Depends(teacher_only)):
    """Monthly payment record for the logged-in teacher"""
    report = aggregator.teacher_report(user.id, date)
    if report is None:
        raise HTTPException(status_code=404, detail="Teacher not found")
    return report
