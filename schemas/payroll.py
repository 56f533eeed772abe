from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from datetime import datetime
from typing import List, Optional

# Salary report JSON is camelCase (dashboards and print views read it as-is)
class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# 1. STORE RECORDS (backend-neutral rows fed into the aggregator)
class TeacherRecord(CamelModel):
    id: int
    name: str

class ClassRecord(CamelModel):
    id: int
    name: str
    fee_per_student: float = 0.0
    institute_fee_percentage: float = 0.0

class CollectionRecord(CamelModel):
    id: int
    date: datetime
    teacher_id: int
    class_id: int
    amount: float = 0.0
    student_count: int = 0
    tute_cost_per_student: float = 0.0
    postal_fee_per_student: float = 0.0
    class_info: Optional[ClassRecord] = None  # None = class row missing

class DeductionRecord(CamelModel):
    id: int
    teacher_id: int
    type: str
    amount: float = 0.0
    date: datetime
    description: Optional[str] = None


# 2. SALARY REPORT (derived, never stored except inside a PayrollRun)
class Period(CamelModel):
    start: datetime
    end: datetime

class SalaryStats(CamelModel):
    total_collection: float = 0.0
    total_students: int = 0
    gross_pay: float = 0.0
    total_tute_cost: float = 0.0
    total_postal_fee: float = 0.0
    total_institute_fee: float = 0.0
    automatic_deductions: float = 0.0
    manual_deductions: float = 0.0
    total_deductions: float = 0.0
    net_pay: float = 0.0
    institute_retained: float = 0.0

class ClassSummary(CamelModel):
    class_id: int
    class_name: str
    total_collection: float = 0.0
    total_students: int = 0
    fee_per_student: float = 0.0
    tute_cost_per_student: float = 0.0
    postal_fee_per_student: float = 0.0
    institute_fee_percentage: float = 0.0
    total_tute_cost: float = 0.0
    total_postal_fee: float = 0.0
    total_institute_fee: float = 0.0
    gross_pay: float = 0.0

class DeductionItem(CamelModel):
    type: str
    amount: float
    date: datetime
    description: Optional[str] = None

class SalaryDetails(CamelModel):
    by_class: List[ClassSummary] = []
    deductions: List[DeductionItem] = []

class SalaryReport(CamelModel):
    teacher_id: int
    teacher: TeacherRecord
    period: Period
    stats: SalaryStats
    details: SalaryDetails


# 3. DASHBOARD + PAYROLL RUNS
class ClassRevenue(CamelModel):
    class_id: int
    class_name: str
    total_collection: float
    total_students: int

class DashboardSummary(CamelModel):
    period: Period
    teacher_count: int
    total_collection: float
    total_students: int
    total_net_pay: float
    total_manual_deductions: float
    total_institute_retained: float
    top_classes: List[ClassRevenue]

class PayrollRunOut(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: int
    period_start: datetime
    period_end: datetime
    finalized_at: datetime
    finalized_by: str

class PayrollRunDetail(PayrollRunOut):
    report: List[SalaryReport]
