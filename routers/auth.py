from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from database import get_db
from models.masters import Teacher, User
from pydantic import BaseModel
from typing import List, Optional
from datetime import datetime, timedelta
from jose import JWTError, jwt
from werkzeug.security import generate_password_hash, check_password_hash
from config import config
import logging

logger = logging.getLogger("payroll.auth")

# ✅ Router setup with prefix
router = APIRouter(prefix="/auth", tags=["Authentication"])
security = HTTPBearer(auto_error=False)

ADMIN, STAFF, TEACHER = "ADMIN", "STAFF", "TEACHER"

REDIRECTS = {
    ADMIN: "/admin/dashboard",
    STAFF: "/staff/collection",
    TEACHER: "/teacher",
}

# ===========================
#          SCHEMAS
# ===========================

class LoginSchema(BaseModel):
    username: str
    password: str
    type: str  # ADMIN, STAFF, TEACHER

class Token(BaseModel):
    access_token: str
    token_type: str
    role: str
    redirect_url: str

class CurrentUser(BaseModel):
    id: int
    username: str
    role: str

class UserOut(BaseModel):
    id: int
    username: str
    role: str

    class Config:
        from_attributes = True

class UserUpdate(BaseModel):
    username: Optional[str] = None
    password: Optional[str] = None

# ===========================
#     PASSWORDS & TOKENS
# ===========================

def hash_password(password: str) -> str:
    return generate_password_hash(password)

def verify_password(password_hash: Optional[str], password: str) -> bool:
    if not password_hash:
        return False
    return check_password_hash(password_hash, password)

def create_access_token(user_id: int, username: str, role: str) -> str:
    expire = datetime.utcnow() + timedelta(minutes=config.ACCESS_TOKEN_EXPIRE_MINUTES)
    payload = {"sub": str(user_id), "username": username, "role": role, "exp": expire}
    return jwt.encode(payload, config.SECRET_KEY, algorithm=config.ALGORITHM)

def get_current_user(credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)) -> CurrentUser:
    if credentials is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    try:
        payload = jwt.decode(credentials.credentials, config.SECRET_KEY, algorithms=[config.ALGORITHM])
        return CurrentUser(id=int(payload["sub"]), username=payload["username"], role=payload["role"])
    except (JWTError, KeyError, ValueError):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or expired token")

def require_roles(*roles: str):
    """Dependency factory: only the listed roles may call the route."""
    def checker(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if user.role not in roles:
            logger.warning("User %s (%s) denied, needs one of %s", user.username, user.role, roles)
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Permission denied")
        return user
    return checker

# ===========================
#          ROUTES
# ===========================

@router.post("/login", response_model=Token)
def process_login(data: LoginSchema, db: Session = Depends(get_db)):
    role = data.type.upper()

    # --- TEACHER LOGIN ---
    if role == TEACHER:
        account = db.query(Teacher).filter(Teacher.username == data.username).first()

    # --- ADMIN / STAFF LOGIN ---
    elif role in (ADMIN, STAFF):
        account = db.query(User).filter(User.username == data.username, User.role == role).first()
    else:
        raise HTTPException(status_code=400, detail="Unknown login type")

    if not account or not verify_password(account.password_hash, data.password):
        logger.info("Failed %s login for %s", role, data.username)
        raise HTTPException(status_code=401, detail="Invalid credentials")

    return {
        "access_token": create_access_token(account.id, account.username, role),
        "token_type": "bearer",
        "role": role,
        "redirect_url": REDIRECTS[role],
    }

@router.get("/me", response_model=CurrentUser)
def whoami(user: CurrentUser = Depends(get_current_user)):
    return user

@router.get("/users", response_model=List[UserOut])
def list_users(db: Session = Depends(get_db), _: CurrentUser = Depends(require_roles(ADMIN))):
    return db.query(User).order_by(User.role, User.id).all()

@router.put("/users/{user_id}", response_model=UserOut)
def update_user(user_id: int, data: UserUpdate, db: Session = Depends(get_db),
                _: CurrentUser = Depends(require_roles(ADMIN))):
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    if data.username:
        taken = db.query(User).filter(User.username == data.username, User.id != user_id).first()
        if taken:
            raise HTTPException(status_code=400, detail="Username already taken")
        user.username = data.username
    if data.password:
        user.password_hash = hash_password(data.password)

    db.commit()
    db.refresh(user)
    return user
