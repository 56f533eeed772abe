"""
Collection Bulk Import Router
Lets staff upload an Excel sheet of daily collections instead of entering
them one by one. Teachers and classes are looked up by name.
"""

from fastapi import APIRouter, Depends, HTTPException, File, UploadFile
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
from database import get_db
from models.masters import ClassMaster, Teacher
from models.transactions import DailyCollection
from routers.auth import require_roles, ADMIN, STAFF
from routers.salary import sql_backend_only
from typing import List, Dict, Any, Optional
from datetime import datetime
import io
import logging

# Import pandas and openpyxl for Excel processing
import pandas as pd

logger = logging.getLogger("payroll.bulk_import")

router = APIRouter(prefix="/api/v1/bulk-import", tags=["Bulk Import"])

REQUIRED_COLUMNS = ['date', 'teacher_username', 'class_name', 'amount', 'student_count']
OPTIONAL_COLUMNS = ['tute_cost_per_student', 'postal_fee_per_student']

# ==========================================
#   VALUE HELPERS
# ==========================================

def safe_str(value) -> Optional[str]:
    """Safely convert value to string, handling NaN and None"""
    if value is None or pd.isna(value):
        return None
    return str(value).strip() if str(value).strip() else None


def safe_number(value, cast=float) -> Optional[float]:
    """Non-negative number or None"""
    if value is None or pd.isna(value):
        return None
    try:
        number = cast(float(value))
    except (ValueError, TypeError):
        return None
    return number if number >= 0 else None


def parse_date(value) -> Optional[datetime]:
    """Parse date from various formats"""
    if value is None or pd.isna(value):
        return None

    if isinstance(value, pd.Timestamp):
        return value.to_pydatetime()

    if isinstance(value, datetime):
        return value

    date_formats = [
        "%Y-%m-%d", "%d-%m-%Y", "%d/%m/%Y", "%Y/%m/%d",
        "%d-%b-%Y", "%d %b %Y", "%Y-%m-%d %H:%M:%S"
    ]

    value_str = str(value).strip()
    for fmt in date_formats:
        try:
            return datetime.strptime(value_str, fmt)
        except ValueError:
            continue
    return None


# ==========================================
#   MAIN BULK IMPORT ENDPOINT
# ==========================================

@router.post("/collections", dependencies=[Depends(sql_backend_only)])
async def bulk_import_collections(
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    user=Depends(require_roles(ADMIN, STAFF)),
):
    """
    Bulk import daily collections from an Excel file.

    Expected columns: date, teacher_username, class_name, amount, student_count,
    tute_cost_per_student, postal_fee_per_student

    All rows are inserted in one transaction; rows with errors are reported
    and skipped.
    """

    if not file.filename or not file.filename.endswith(('.xlsx', '.xls')):
        raise HTTPException(
            status_code=400,
            detail="Invalid file format. Please upload an Excel file (.xlsx or .xls)"
        )

    try:
        contents = await file.read()
        engine = 'openpyxl' if file.filename.endswith('.xlsx') else None
        df = pd.read_excel(io.BytesIO(contents), engine=engine)
        df.columns = df.columns.astype(str).str.strip().str.lower()
    except Exception as e:
        raise HTTPException(status_code=400, detail=f"Error reading Excel file: {str(e)}")

    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        raise HTTPException(status_code=400, detail=f"Missing column(s): {', '.join(missing)}")

    errors: List[Dict[str, Any]] = []
    to_add: List[DailyCollection] = []
    total_rows = len(df)

    # Pre-fetch lookups
    all_teachers = {t.username.lower(): t.id for t in db.query(Teacher).all() if t.username}
    all_classes = {c.name.lower(): c.id for c in db.query(ClassMaster).all()}

    for idx, row in df.iterrows():
        row_num = idx + 2  # Excel row number (1-indexed + header)

        if row.isna().all():
            continue

        row_errors = []

        day = parse_date(row.get('date'))
        if day is None:
            row_errors.append("Invalid or missing 'date'")

        username = safe_str(row.get('teacher_username'))
        teacher_id = all_teachers.get(username.lower()) if username else None
        if not teacher_id:
            row_errors.append(f"Teacher '{username}' not found")

        class_name = safe_str(row.get('class_name'))
        class_id = all_classes.get(class_name.lower()) if class_name else None
        if not class_id:
            row_errors.append(f"Class '{class_name}' not found")

        amount = safe_number(row.get('amount'))
        if amount is None:
            row_errors.append("'amount' must be a number >= 0")

        student_count = safe_number(row.get('student_count'), cast=int)
        if student_count is None:
            row_errors.append("'student_count' must be a whole number >= 0")

        costs = {}
        for column in OPTIONAL_COLUMNS:
            raw = row.get(column) if column in df.columns else None
            if raw is None or pd.isna(raw):
                costs[column] = 0.0
                continue
            costs[column] = safe_number(raw)
            if costs[column] is None:
                row_errors.append(f"'{column}' must be a number >= 0")

        if row_errors:
            errors.append({"row": row_num, "error": "; ".join(row_errors)})
            continue

        to_add.append(DailyCollection(
            date=day,
            teacher_id=teacher_id,
            class_id=class_id,
            amount=amount,
            student_count=student_count,
            tute_cost_per_student=costs['tute_cost_per_student'],
            postal_fee_per_student=costs['postal_fee_per_student'],
        ))

    imported_count = 0
    if to_add:
        try:
            db.add_all(to_add)
            db.commit()
            imported_count = len(to_add)
        except SQLAlchemyError as e:
            db.rollback()
            logger.error("Bulk import failed, nothing saved: %s", e)
            raise HTTPException(
                status_code=500,
                detail="Database error. No collections were imported."
            )

    logger.info("Bulk import by %s: %d/%d rows imported, %d errors",
                user.username, imported_count, total_rows, len(errors))

    return {
        "success": True,
        "total_rows": total_rows,
        "imported_count": imported_count,
        "error_count": len(errors),
        "errors": errors
    }


# ==========================================
#   SAMPLE TEMPLATE DOWNLOAD
# ==========================================

@router.get("/template")
async def get_sample_template():
    """Expected column names for the Excel upload."""
    return {
        "required_columns": REQUIRED_COLUMNS,
        "optional_columns": OPTIONAL_COLUMNS,
        "notes": [
            "teacher_username should match the teacher's portal username",
            "class_name should match exactly with class names in the database",
            "date should be in format: YYYY-MM-DD or DD-MM-YYYY or DD/MM/YYYY",
            "tute_cost_per_student and postal_fee_per_student default to 0",
        ]
    }
