"""
Salary Router - monthly salary reports, printable pay slips, payroll runs.
Every report is recomputed from raw collections and deductions.
"""
from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from database import get_db
from models.payroll import PayrollRun
from routers.auth import require_roles, ADMIN
from schemas.payroll import SalaryReport, PayrollRunOut, PayrollRunDetail
from services.errors import StoreUnavailable
from services.salary import SalaryAggregator, resolve_period
from services.stores import MemoryDB, PayrollStores, memory_stores, sql_stores
from config import config
from typing import List, Optional
import os
import logging

logger = logging.getLogger("payroll.salary.api")

router = APIRouter(tags=["Salary"])
templates = Jinja2Templates(directory=os.path.join(os.path.dirname(os.path.dirname(__file__)), "templates"))

admin_only = require_roles(ADMIN)

_memory_db: Optional[MemoryDB] = None
_memory_mtime: Optional[float] = None


def get_memory_db() -> MemoryDB:
    """Offline/demo store, reloaded whenever the exported document changes on disk."""
    global _memory_db, _memory_mtime
    path = config.MEMORY_STORE_PATH
    if not path:
        if _memory_db is None:
            _memory_db = MemoryDB()
        return _memory_db

    try:
        mtime = os.path.getmtime(path)
    except OSError as e:
        raise StoreUnavailable(f"Could not read memory store {path}") from e
    if _memory_db is None or mtime != _memory_mtime:
        _memory_db = MemoryDB.load(path)
        _memory_mtime = mtime
    return _memory_db


def sql_backend_only():
    """Data entry writes to SQL, which memory-mode reports never read."""
    if config.PAYROLL_BACKEND == "memory":
        raise HTTPException(
            status_code=409,
            detail="Read-only in memory mode: edit the exported store document instead",
        )


def get_stores(db: Session = Depends(get_db)) -> PayrollStores:
    if config.PAYROLL_BACKEND == "memory":
        return memory_stores(get_memory_db())
    return sql_stores(db)


def get_aggregator(stores: PayrollStores = Depends(get_stores)) -> SalaryAggregator:
    return SalaryAggregator(stores)


# ===========================
#      SALARY REPORT APIs
# ===========================

@router.get("/api/v1/salary", response_model=List[SalaryReport])
def get_salary(date: Optional[str] = None, aggregator: SalaryAggregator = Depends(get_aggregator),
               _=Depends(admin_only)):
    """Salary for every teacher for the month containing `date`"""
    return aggregator.monthly_reports(date)

@router.get("/api/v1/salary-report", response_model=List[SalaryReport])
def get_salary_report(date: Optional[str] = None, aggregator: SalaryAggregator = Depends(get_aggregator),
                      _=Depends(admin_only)):
    """Reports page alias of /api/v1/salary (same numbers, same shape)"""
    return aggregator.monthly_reports(date)

@router.get("/api/v1/salary/runs", response_model=List[PayrollRunOut])
def list_payroll_runs(db: Session = Depends(get_db), _=Depends(admin_only)):
    return db.query(PayrollRun).order_by(PayrollRun.period_start.desc()).all()

@router.get("/api/v1/salary/runs/{run_id}", response_model=PayrollRunDetail)
def get_payroll_run(run_id: int, db: Session = Depends(get_db), _=Depends(admin_only)):
    run = db.query(PayrollRun).filter(PayrollRun.id == run_id).first()
    if not run:
        raise HTTPException(status_code=404, detail="Payroll run not found")
    return run

@router.get("/api/v1/salary/{teacher_id}", response_model=SalaryReport)
def get_teacher_salary(teacher_id: int, date: Optional[str] = None,
                       aggregator: SalaryAggregator = Depends(get_aggregator), _=Depends(admin_only)):
    report = aggregator.teacher_report(teacher_id, date)
    if report is None:
        raise HTTPException(status_code=404, detail="Teacher not found")
    return report


# ===========================
#       PAYROLL RUNS
# ===========================

@router.post("/api/v1/salary/finalize", response_model=PayrollRunDetail)
def finalize_period(date: Optional[str] = None, aggregator: SalaryAggregator = Depends(get_aggregator),
                    db: Session = Depends(get_db), user=Depends(admin_only)):
    """Freeze the month's reports into an immutable PayrollRun"""
    period = resolve_period(date)
    existing = db.query(PayrollRun).filter(PayrollRun.period_start == period.start).first()
    if existing:
        raise HTTPException(status_code=409, detail="Period already finalized")

    reports = aggregator.monthly_reports(date)
    run = PayrollRun(
        period_start=period.start,
        period_end=period.end,
        finalized_by=user.username,
        report=[r.model_dump(mode="json", by_alias=True) for r in reports],
    )
    db.add(run)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail="Period already finalized")
    db.refresh(run)

    logger.info("Payroll run %s finalized for %s by %s", run.id, period.start.strftime("%Y-%m"), user.username)
    return run


# ===========================
#     PRINTABLE PAY SLIPS
# ===========================

@router.get("/salary/print", response_class=HTMLResponse)
def print_pay_slips(request: Request, date: Optional[str] = None, teacher_id: Optional[int] = None,
                    aggregator: SalaryAggregator = Depends(get_aggregator), _=Depends(admin_only)):
    if teacher_id is not None:
        report = aggregator.teacher_report(teacher_id, date)
        if report is None:
            raise HTTPException(status_code=404, detail="Teacher not found")
        reports = [report]
    else:
        reports = aggregator.monthly_reports(date)

    return templates.TemplateResponse(request, "payslip.html", {
        "reports": reports,
        "institute_name": config.INSTITUTE_NAME,
        "month_label": resolve_period(date).start.strftime("%B %Y"),
    })
