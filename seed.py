import logging
import secrets
from database import SessionLocal, engine, Base
from config import config
from models.masters import ClassMaster, User
from models.transactions import DailyCollection, Deduction  # registers tables for create_all
from models.payroll import PayrollRun
from routers.auth import hash_password, ADMIN, STAFF

logger = logging.getLogger("payroll.seed")

# --- Create tables if missing ---
Base.metadata.create_all(bind=engine)


def seed_users(db):
    """Default admin + staff logins. Passwords come from env or are generated once and printed to the console."""
    defaults = [
        (config.DEFAULT_ADMIN_USERNAME, config.DEFAULT_ADMIN_PASSWORD, ADMIN),
        (config.DEFAULT_STAFF_USERNAME, config.DEFAULT_STAFF_PASSWORD, STAFF),
    ]
    for username, password, role in defaults:
        exists = db.query(User).filter_by(username=username).first()
        if exists:
            logger.info("Exists: %s user '%s'", role, username)
            continue
        if not password:
            password = secrets.token_urlsafe(9)
            print(f"Generated password for {role} '{username}': {password} (change it after first login)")
            logger.warning("Generated a password for %s '%s'; it was printed to the console", role, username)
        db.add(User(username=username, password_hash=hash_password(password), role=role))
        logger.info("Added: %s user '%s'", role, username)
    db.commit()


def seed_classes(db):
    classes = [
        {"name": "Grade 10 Maths", "fee": 1500, "inst": 20},
        {"name": "Grade 11 Physics", "fee": 2000, "inst": 20},
        {"name": "Grade 11 Chemistry", "fee": 2000, "inst": 15},
        {"name": "Scholarship Revision", "fee": 800, "inst": 10},
    ]
    for c in classes:
        exists = db.query(ClassMaster).filter_by(name=c["name"]).first()
        if not exists:
            db.add(ClassMaster(name=c["name"], fee_per_student=c["fee"], institute_fee_percentage=c["inst"]))
            logger.info("Added Class: %s", c["name"])
    db.commit()


def seed_data():
    db = SessionLocal()
    try:
        seed_users(db)
        seed_classes(db)
        logger.info("All Data Seeded Successfully!")
    finally:
        db.close()


if __name__ == "__main__":
    logging.basicConfig(level=config.LOG_LEVEL, format="%(levelname)s %(message)s")
    seed_data()
