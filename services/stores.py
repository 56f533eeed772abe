"""
Collection / Deduction / Teacher stores.

The salary aggregator only ever talks to these interfaces. Two adapters ship:
  - Sql*Store     : SQLAlchemy session (server mode)
  - Memory*Store  : read-only key-value tables (offline / demo mode) loaded
                    from an exported JSON document laid out like the browser
                    local-storage tables.
"""
import copy
import json
import logging
from abc import ABC, abstractmethod
from datetime import date, datetime, timezone
from typing import Any, Dict, List, NamedTuple, Optional

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from models.masters import ClassMaster, Teacher
from models.transactions import DailyCollection, Deduction
from schemas.payroll import ClassRecord, CollectionRecord, DeductionRecord, TeacherRecord
from services.errors import StoreUnavailable

logger = logging.getLogger("payroll.stores")


# =====================
# STORE INTERFACES
# =====================

class TeacherStore(ABC):
    @abstractmethod
    def find_all(self) -> List[TeacherRecord]: ...

    @abstractmethod
    def find_by_id(self, teacher_id: int) -> Optional[TeacherRecord]: ...


class CollectionStore(ABC):
    @abstractmethod
    def find_by_teacher_and_period(self, teacher_id: int, start: datetime, end: datetime) -> List[CollectionRecord]:
        """Collections dated within [start, end], each joined with its class (None if missing)."""


class DeductionStore(ABC):
    @abstractmethod
    def find_by_teacher_and_period(self, teacher_id: int, start: datetime, end: datetime) -> List[DeductionRecord]:
        """Manual deductions dated within [start, end]."""


class PayrollStores(NamedTuple):
    teachers: TeacherStore
    collections: CollectionStore
    deductions: DeductionStore


# =====================
# SQL ADAPTER
# =====================

def _class_record(cls: ClassMaster) -> ClassRecord:
    return ClassRecord(
        id=cls.id,
        name=cls.name,
        fee_per_student=cls.fee_per_student or 0.0,
        institute_fee_percentage=cls.institute_fee_percentage or 0.0,
    )


class SqlTeacherStore(TeacherStore):
    def __init__(self, db: Session):
        self.db = db

    def find_all(self) -> List[TeacherRecord]:
        try:
            teachers = self.db.query(Teacher).order_by(Teacher.id).all()
        except SQLAlchemyError as e:
            raise StoreUnavailable("Teacher store failed") from e
        return [TeacherRecord(id=t.id, name=t.name) for t in teachers]

    def find_by_id(self, teacher_id: int) -> Optional[TeacherRecord]:
        try:
            teacher = self.db.query(Teacher).filter(Teacher.id == teacher_id).first()
        except SQLAlchemyError as e:
            raise StoreUnavailable("Teacher store failed") from e
        return TeacherRecord(id=teacher.id, name=teacher.name) if teacher else None


class SqlCollectionStore(CollectionStore):
    def __init__(self, db: Session):
        self.db = db

    def find_by_teacher_and_period(self, teacher_id, start, end):
        try:
            rows = self.db.query(DailyCollection, ClassMaster)\
                .outerjoin(ClassMaster, DailyCollection.class_id == ClassMaster.id)\
                .filter(
                    DailyCollection.teacher_id == teacher_id,
                    DailyCollection.date >= start,
                    DailyCollection.date <= end,
                )\
                .order_by(DailyCollection.date, DailyCollection.id).all()
        except SQLAlchemyError as e:
            raise StoreUnavailable("Collection store failed") from e

        return [
            CollectionRecord(
                id=c.id,
                date=c.date,
                teacher_id=c.teacher_id,
                class_id=c.class_id,
                amount=c.amount or 0.0,
                student_count=c.student_count or 0,
                tute_cost_per_student=c.tute_cost_per_student or 0.0,
                postal_fee_per_student=c.postal_fee_per_student or 0.0,
                class_info=_class_record(cls) if cls else None,
            )
            for c, cls in rows
        ]


class SqlDeductionStore(DeductionStore):
    def __init__(self, db: Session):
        self.db = db

    def find_by_teacher_and_period(self, teacher_id, start, end):
        try:
            rows = self.db.query(Deduction).filter(
                Deduction.teacher_id == teacher_id,
                Deduction.date >= start,
                Deduction.date <= end,
            ).order_by(Deduction.date, Deduction.id).all()
        except SQLAlchemyError as e:
            raise StoreUnavailable("Deduction store failed") from e

        return [
            DeductionRecord(
                id=d.id,
                teacher_id=d.teacher_id,
                type=d.type,
                amount=d.amount or 0.0,
                date=d.date,
                description=d.description,
            )
            for d in rows
        ]


def sql_stores(db: Session) -> PayrollStores:
    return PayrollStores(
        teachers=SqlTeacherStore(db),
        collections=SqlCollectionStore(db),
        deductions=SqlDeductionStore(db),
    )


# =====================
# MEMORY (KEY-VALUE) ADAPTER
# =====================

DB_KEYS = {
    "TEACHERS": "payroll_teachers",
    "CLASSES": "payroll_classes",
    "RATES": "payroll_rates",
    "COLLECTIONS": "payroll_collections",
    "DEDUCTIONS": "payroll_deductions",
}

DATE_FIELDS = ("date", "createdAt")

# Null or missing numbers read as 0, same as the SQL adapter
NUMBER_FIELDS = {
    DB_KEYS["CLASSES"]: ("feePerStudent", "instituteFeePercentage"),
    DB_KEYS["COLLECTIONS"]: ("amount", "studentCount", "tuteCostPerStudent", "postalFeePerStudent"),
    DB_KEYS["DEDUCTIONS"]: ("amount",),
}

DATED_TABLES = (DB_KEYS["COLLECTIONS"], DB_KEYS["DEDUCTIONS"])


def to_naive_datetime(value) -> datetime:
    """Parse an ISO string / date / datetime into a naive (UTC) datetime."""
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc).replace(tzinfo=None)
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    raise ValueError(f"Not a date: {value!r}")


class MemoryDB:
    """
    Read-only tables of camelCase dicts keyed by DB_KEYS, as found in an
    exported offline document. Rows are cleaned once on load: dates become
    naive ISO strings, null numbers become 0. Anything malformed raises
    StoreUnavailable.
    """

    def __init__(self, data: Optional[Dict[str, List[Dict[str, Any]]]] = None):
        if data is not None and not isinstance(data, dict):
            raise StoreUnavailable("Memory store document must be an object of tables")

        self._tables: Dict[str, List[Dict[str, Any]]] = {key: [] for key in DB_KEYS.values()}
        for key, rows in (data or {}).items():
            if key not in self._tables:
                continue
            if not isinstance(rows, list):
                raise StoreUnavailable(f"Memory store table {key} is not a list")
            self._tables[key] = [self._normalize(key, r) for r in copy.deepcopy(rows)]

    @classmethod
    def load(cls, path: str) -> "MemoryDB":
        try:
            with open(path, encoding="utf-8") as fh:
                data = json.load(fh)
        except (OSError, ValueError) as e:
            raise StoreUnavailable(f"Could not read memory store {path}") from e
        mem = cls(data)
        logger.info("Loaded memory store from %s", path)
        return mem

    @staticmethod
    def _normalize(key: str, item: Any) -> Dict[str, Any]:
        if not isinstance(item, dict) or "id" not in item:
            raise StoreUnavailable(f"Malformed row in {key}: {item!r}")

        if key in DATED_TABLES and item.get("date") is None:
            raise StoreUnavailable(f"Row {item['id']} in {key} has no date")
        for field in DATE_FIELDS:
            if item.get(field) is not None:
                try:
                    item[field] = to_naive_datetime(item[field]).isoformat()
                except ValueError as e:
                    raise StoreUnavailable(f"Bad {field} on row {item['id']} in {key}") from e

        for field in NUMBER_FIELDS.get(key, ()):
            if item.get(field) is None:
                item[field] = 0
        return item

    def find_all(self, key: str) -> List[Dict[str, Any]]:
        return [dict(r) for r in self._tables[key]]

    def find_by_id(self, key: str, item_id: int) -> Optional[Dict[str, Any]]:
        for row in self._tables[key]:
            if row["id"] == item_id:
                return dict(row)
        return None


def _validated(model, rows: List[Dict[str, Any]], key: str) -> list:
    try:
        return [model.model_validate(r) for r in rows]
    except ValidationError as e:
        raise StoreUnavailable(f"Invalid row in memory store table {key}") from e


def _in_period(row: Dict[str, Any], start: datetime, end: datetime) -> bool:
    return start <= to_naive_datetime(row["date"]) <= end


class MemoryTeacherStore(TeacherStore):
    def __init__(self, mem: MemoryDB):
        self.mem = mem

    def find_all(self):
        rows = sorted(self.mem.find_all(DB_KEYS["TEACHERS"]), key=lambda r: r["id"])
        return _validated(TeacherRecord, rows, DB_KEYS["TEACHERS"])

    def find_by_id(self, teacher_id):
        row = self.mem.find_by_id(DB_KEYS["TEACHERS"], teacher_id)
        return _validated(TeacherRecord, [row], DB_KEYS["TEACHERS"])[0] if row else None


class MemoryCollectionStore(CollectionStore):
    def __init__(self, mem: MemoryDB):
        self.mem = mem

    def find_by_teacher_and_period(self, teacher_id, start, end):
        classes = {c["id"]: c for c in self.mem.find_all(DB_KEYS["CLASSES"])}
        rows = [
            {**r, "classInfo": classes.get(r.get("classId"))}
            for r in self.mem.find_all(DB_KEYS["COLLECTIONS"])
            if r.get("teacherId") == teacher_id and _in_period(r, start, end)
        ]
        rows.sort(key=lambda r: (to_naive_datetime(r["date"]), r["id"]))
        return _validated(CollectionRecord, rows, DB_KEYS["COLLECTIONS"])


class MemoryDeductionStore(DeductionStore):
    def __init__(self, mem: MemoryDB):
        self.mem = mem

    def find_by_teacher_and_period(self, teacher_id, start, end):
        rows = [
            r for r in self.mem.find_all(DB_KEYS["DEDUCTIONS"])
            if r.get("teacherId") == teacher_id and _in_period(r, start, end)
        ]
        rows.sort(key=lambda r: (to_naive_datetime(r["date"]), r["id"]))
        return _validated(DeductionRecord, rows, DB_KEYS["DEDUCTIONS"])


def memory_stores(mem: MemoryDB) -> PayrollStores:
    return PayrollStores(
        teachers=MemoryTeacherStore(mem),
        collections=MemoryCollectionStore(mem),
        deductions=MemoryDeductionStore(mem),
    )
