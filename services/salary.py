"""
Monthly Salary Calculation
==========================

For every teacher and one calendar month:

    grossPay            = total collection (teacher receives 100% before deductions)
    automaticDeductions = tute cost + postal fee + institute % fee
    totalDeductions     = automaticDeductions + manual deductions
    netPay              = grossPay - totalDeductions   (may go negative)
    instituteRetained   = automaticDeductions

Tute and postal costs use the per-entry rates stored on each collection, the
institute fee uses the class's percentage. No rounding happens here; the pay
slip template formats money for display.

Teacher commission rates (TeacherRate.percentage) are NOT applied to gross
pay. They are stored for reference only.
"""
import calendar
import logging
from datetime import datetime
from typing import Dict, List, Optional

from schemas.payroll import (
    ClassSummary, CollectionRecord, DeductionItem, DeductionRecord, Period,
    SalaryDetails, SalaryReport, SalaryStats, TeacherRecord,
)
from services.errors import InvalidInput
from services.stores import PayrollStores

logger = logging.getLogger("payroll.salary")

DATE_FORMATS = ["%Y-%m-%d", "%Y-%m", "%Y-%m-%dT%H:%M:%S", "%Y-%m-%d %H:%M:%S"]


# =====================
# PERIOD RESOLUTION
# =====================

def parse_month(date_str: Optional[str]) -> datetime:
    """Any date inside the month selects the month (YYYY-MM-DD, YYYY-MM or ISO datetime)."""
    if not date_str or not str(date_str).strip():
        raise InvalidInput("Date is required")

    value = str(date_str).strip()
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(value, fmt)
        except ValueError:
            continue
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        raise InvalidInput(f"Invalid date: {value}") from None


def month_period(target: datetime) -> Period:
    """Closed interval: first day 00:00:00 .. last day 23:59:59.999999."""
    last_day = calendar.monthrange(target.year, target.month)[1]
    return Period(
        start=datetime(target.year, target.month, 1),
        end=datetime(target.year, target.month, last_day, 23, 59, 59, 999999),
    )


def resolve_period(date_str: Optional[str]) -> Period:
    return month_period(parse_month(date_str))


# =====================
# THE FOLD
# =====================

def build_salary_report(
    teacher: TeacherRecord,
    period: Period,
    collections: List[CollectionRecord],
    deductions: List[DeductionRecord],
) -> SalaryReport:
    """Pure fold of one teacher's month. Inputs must already be limited to the period."""
    stats = SalaryStats()
    by_class: Dict[int, ClassSummary] = {}  # insertion order = first seen

    for collection in collections:
        cls = collection.class_info
        if cls is None:
            logger.warning(
                "Skipping collection %s for teacher %s: class %s not found",
                collection.id, teacher.id, collection.class_id,
            )
            continue

        student_count = collection.student_count or 0
        tute_cost = student_count * (collection.tute_cost_per_student or 0)
        postal_fee = student_count * (collection.postal_fee_per_student or 0)
        institute_fee = collection.amount * ((cls.institute_fee_percentage or 0) / 100)

        stats.total_collection += collection.amount
        stats.total_students += student_count
        stats.total_tute_cost += tute_cost
        stats.total_postal_fee += postal_fee
        stats.total_institute_fee += institute_fee

        # Group by class id; name is display only (same-name classes stay separate)
        summary = by_class.get(cls.id)
        if summary is None:
            summary = by_class[cls.id] = ClassSummary(
                class_id=cls.id,
                class_name=cls.name,
                fee_per_student=cls.fee_per_student or 0,
                tute_cost_per_student=collection.tute_cost_per_student or 0,
                postal_fee_per_student=collection.postal_fee_per_student or 0,
                institute_fee_percentage=cls.institute_fee_percentage or 0,
            )
        summary.total_collection += collection.amount
        summary.total_students += student_count
        summary.total_tute_cost += tute_cost
        summary.total_postal_fee += postal_fee
        summary.total_institute_fee += institute_fee
        summary.gross_pay = summary.total_collection

    stats.manual_deductions = sum((d.amount for d in deductions), 0.0)
    stats.gross_pay = stats.total_collection
    stats.automatic_deductions = stats.total_tute_cost + stats.total_postal_fee + stats.total_institute_fee
    stats.total_deductions = stats.automatic_deductions + stats.manual_deductions
    stats.net_pay = stats.gross_pay - stats.total_deductions
    stats.institute_retained = stats.automatic_deductions

    return SalaryReport(
        teacher_id=teacher.id,
        teacher=teacher,
        period=period,
        stats=stats,
        details=SalaryDetails(
            by_class=list(by_class.values()),
            deductions=[
                DeductionItem(type=d.type, amount=d.amount, date=d.date, description=d.description)
                for d in deductions
            ],
        ),
    )


# =====================
# AGGREGATOR
# =====================

class SalaryAggregator:
    """Read-only: fetches each teacher's rows for the month and folds them."""

    def __init__(self, stores: PayrollStores):
        self.stores = stores

    def report_for_teacher(self, teacher: TeacherRecord, period: Period) -> SalaryReport:
        collections = self.stores.collections.find_by_teacher_and_period(teacher.id, period.start, period.end)
        deductions = self.stores.deductions.find_by_teacher_and_period(teacher.id, period.start, period.end)
        return build_salary_report(teacher, period, collections, deductions)

    def monthly_reports(self, date_str: Optional[str]) -> List[SalaryReport]:
        period = resolve_period(date_str)
        teachers = self.stores.teachers.find_all()
        reports = [self.report_for_teacher(t, period) for t in teachers]
        logger.info(
            "Salary computed for %d teacher(s), period %s - %s",
            len(reports), period.start.date(), period.end.date(),
        )
        return reports

    def teacher_report(self, teacher_id: int, date_str: Optional[str]) -> Optional[SalaryReport]:
        """None when the teacher does not exist."""
        period = resolve_period(date_str)
        teacher = self.stores.teachers.find_by_id(teacher_id)
        if teacher is None:
            return None
        return self.report_for_teacher(teacher, period)
