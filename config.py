import os
from dotenv import load_dotenv

load_dotenv()


def _env_int(name, default):
    try:
        return int(os.environ.get(name, default))
    except (TypeError, ValueError):
        return default


def _env_float(name, default):
    try:
        return float(os.environ.get(name, default))
    except (TypeError, ValueError):
        return default


class Config:
    SECRET_KEY = os.environ.get('SESSION_SECRET') or os.environ.get('SECRET_KEY') or 'dev-secret-key-change-in-production'
    WTF_CSRF_ENABLED = True
    WTF_CSRF_TIME_LIMIT = None

    FIREBASE_WEB_API_KEY = os.environ.get('FIREBASE_WEB_API_KEY', '')
    FIREBASE_STORAGE_BUCKET = os.environ.get('FIREBASE_STORAGE_BUCKET', '')
    GOOGLE_APPLICATION_CREDENTIALS = os.environ.get('GOOGLE_APPLICATION_CREDENTIALS', './firebase-service-account.json')

    # Remote calls and session resolution
    PORTAL_REMOTE_TIMEOUT = _env_float('PORTAL_REMOTE_TIMEOUT', 10.0)
    PORTAL_SESSION_MAX_ATTEMPTS = _env_int('PORTAL_SESSION_MAX_ATTEMPTS', 3)
    PORTAL_SESSION_DEADLINE = _env_float('PORTAL_SESSION_DEADLINE', 8.0)
    SESSION_COOKIE_DAYS = _env_int('SESSION_COOKIE_DAYS', 5)
    PORTAL_SESSION_RECHECK_SECONDS = _env_float('PORTAL_SESSION_RECHECK_SECONDS', 60.0)
    PORTAL_SESSION_IDLE_SECONDS = _env_float('PORTAL_SESSION_IDLE_SECONDS', 3600.0)

    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')


class TestConfig(Config):
    TESTING = True
    WTF_CSRF_ENABLED = False
    SECRET_KEY = 'test-secret-key'
    FIREBASE_WEB_API_KEY = 'test-api-key'
    PORTAL_SESSION_MAX_ATTEMPTS = 2
    PORTAL_SESSION_DEADLINE = 1.0
    PORTAL_SESSION_RECHECK_SECONDS = 0
