from fastapi import APIRouter, Depends
from routers.auth import require_roles, ADMIN
from routers.salary import get_aggregator
from schemas.payroll import ClassRevenue, DashboardSummary
from services.salary import SalaryAggregator, resolve_period
from typing import Dict, Optional
from datetime import date as date_cls

router = APIRouter(prefix="/api/v1/dashboard", tags=["Dashboard"])

TOP_CLASSES = 5

@router.get("", response_model=DashboardSummary)
def dashboard_view(date: Optional[str] = None, aggregator: SalaryAggregator = Depends(get_aggregator),
                   _=Depends(require_roles(ADMIN))):
    # Defaults to the current month
    date = date or date_cls.today().isoformat()
    reports = aggregator.monthly_reports(date)

    # 1. Institute totals
    total_collection = sum(r.stats.total_collection for r in reports)
    total_students = sum(r.stats.total_students for r in reports)
    total_net_pay = sum(r.stats.net_pay for r in reports)
    total_manual = sum(r.stats.manual_deductions for r in reports)
    total_retained = sum(r.stats.institute_retained for r in reports)

    # 2. Top classes by revenue (merged across teachers by class id)
    revenue: Dict[int, ClassRevenue] = {}
    for r in reports:
        for c in r.details.by_class:
            entry = revenue.get(c.class_id)
            if entry is None:
                revenue[c.class_id] = ClassRevenue(
                    class_id=c.class_id,
                    class_name=c.class_name,
                    total_collection=c.total_collection,
                    total_students=c.total_students,
                )
            else:
                entry.total_collection += c.total_collection
                entry.total_students += c.total_students

    top_classes = sorted(revenue.values(), key=lambda c: c.total_collection, reverse=True)[:TOP_CLASSES]

    return DashboardSummary(
        period=resolve_period(date),
        teacher_count=len(reports),
        total_collection=total_collection,
        total_students=total_students,
        total_net_pay=total_net_pay,
        total_manual_deductions=total_manual,
        total_institute_retained=total_retained,
        top_classes=top_classes,
    )
