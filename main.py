import logging
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from config import config
from database import engine, Base
from services.errors import InvalidInput, StoreUnavailable

# --- IMPORT ROUTERS (APIs) ---
from routers import auth, masters, collections, bulk_import, salary, dashboard, teacher_portal

# --- IMPORT MODELS (registers tables on Base) ---
from models.masters import ClassMaster, Teacher, TeacherRate, User
from models.transactions import DailyCollection, Deduction
from models.payroll import PayrollRun

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger("payroll")

# --- CREATE DATABASE TABLES ---
Base.metadata.create_all(bind=engine)

app = FastAPI(title="Institute Payroll")

# ==========================================
# ✅ CORS MIDDLEWARE
# ==========================================
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ==========================================
# ✅ PAYROLL ERROR HANDLERS
# ==========================================
@app.exception_handler(InvalidInput)
async def invalid_input_handler(request: Request, exc: InvalidInput):
    logger.info("Rejected %s: %s", request.url.path, exc)
    return JSONResponse(status_code=400, content={"error": str(exc)})

@app.exception_handler(StoreUnavailable)
async def store_unavailable_handler(request: Request, exc: StoreUnavailable):
    logger.error("Salary calculation aborted on %s: %s", request.url.path, exc, exc_info=exc)
    return JSONResponse(status_code=500, content={"error": "Calculation failed"})

# --- REGISTER ROUTERS ---
app.include_router(auth.router)
app.include_router(masters.router)
app.include_router(collections.router)
app.include_router(bulk_import.router)
app.include_router(salary.router)
app.include_router(dashboard.router)
app.include_router(teacher_portal.router)


@app.get("/health")
def health():
    return {"status": "ok", "backend": config.PAYROLL_BACKEND}
