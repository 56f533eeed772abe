import os
from dotenv import load_dotenv

basedir = os.path.abspath(os.path.dirname(__file__))
load_dotenv(os.path.join(basedir, '.env'))


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-secret-key-change-in-production'
    ALGORITHM = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES = int(os.environ.get('ACCESS_TOKEN_EXPIRE_MINUTES', 1440))  # 24 hours

    DATABASE_URL = os.environ.get('DATABASE_URL') or \
        'sqlite:///' + os.path.join(basedir, 'payroll.db')

    # "sql" = server database, "memory" = offline/demo key-value store
    PAYROLL_BACKEND = os.environ.get('PAYROLL_BACKEND', 'sql').lower()
    MEMORY_STORE_PATH = os.environ.get('MEMORY_STORE_PATH')

    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO').upper()

    CORS_ORIGINS = [
        origin.strip()
        for origin in os.environ.get('CORS_ORIGINS', 'http://localhost:3000').split(',')
        if origin.strip()
    ]

    # Printed on the pay slip header
    INSTITUTE_NAME = os.environ.get('INSTITUTE_NAME', 'Tuition Institute')

    DEFAULT_ADMIN_USERNAME = os.environ.get('DEFAULT_ADMIN_USERNAME', 'admin')
    DEFAULT_ADMIN_PASSWORD = os.environ.get('DEFAULT_ADMIN_PASSWORD')
    DEFAULT_STAFF_USERNAME = os.environ.get('DEFAULT_STAFF_USERNAME', 'staff')
    DEFAULT_STAFF_PASSWORD = os.environ.get('DEFAULT_STAFF_PASSWORD')


config = Config()
