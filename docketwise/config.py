import os
from pathlib import Path


class Config:
    """Base configuration - shared across all environments"""

    # Security
    SECRET_KEY = os.environ.get('SECRET_KEY', 'dev-secret-key')
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SECURITY_PASSWORD_SALT = os.environ.get('SECURITY_PASSWORD_SALT', 'dev-salt')

    # Flask-Security settings
    SECURITY_PASSWORD_HASH = 'pbkdf2_sha512'
    SECURITY_TOKEN_AUTHENTICATION_HEADER = 'Authentication-Token'
    SECURITY_TOKEN_AUTHENTICATION_KEY = 'auth_token'
    SECURITY_TOKEN_MAX_AGE = 60 * 60 * 24 * 7
    SECURITY_TRACKABLE = True
    SECURITY_URL_PREFIX = "/api/auth"
    SECURITY_PASSWORD_LENGTH_MIN = 4
    WTF_CSRF_ENABLED = False
    SECURITY_CSRF_PROTECT_MECHANISMS = []
    SECURITY_CSRF_IGNORE_UNAUTH_ENDPOINTS = True
    SESSION_COOKIE_HTTPONLY = True
    SECURITY_UNAUTHORIZED_VIEW = None

    # JSON API configurations
    SECURITY_RENDER_AS_JSON = True
    SECURITY_JSON = True

    # Mail
    MAIL_SERVER = os.environ.get('MAIL_SERVER', 'localhost')
    MAIL_PORT = int(os.environ.get('MAIL_PORT', 587))
    MAIL_USE_TLS = os.environ.get('MAIL_USE_TLS', 'true').lower() == 'true'
    MAIL_USERNAME = os.environ.get('MAIL_USERNAME')
    MAIL_PASSWORD = os.environ.get('MAIL_PASSWORD')
    MAIL_DEFAULT_SENDER = os.environ.get('MAIL_DEFAULT_SENDER', 'DocketWise <noreply@docketwise.local>')

    # Bank detail encryption (Fernet key, urlsafe base64)
    BANK_ENCRYPTION_KEY = os.environ.get('BANK_ENCRYPTION_KEY')

    # App settings
    APP_NAME = os.environ.get('APP_NAME', 'DocketWise')
    DISPLAY_TIMEZONE = os.environ.get('DISPLAY_TIMEZONE', 'Australia/Sydney')
    INVOICE_DIRECTOR_EMAIL = os.environ.get('INVOICE_DIRECTOR_EMAIL', 'director@dobisteelfixing.com.au')
    VERIFICATION_TOKEN_EXPIRY_HOURS = 24
    PASSWORD_RESET_TOKEN_EXPIRY_HOURS = 1
    REQUIRE_EMAIL_VERIFICATION = True
    BASE_DIR = os.path.dirname(os.path.abspath(__file__))
    LOGS_DIR = os.environ.get('LOGS_DIR', os.path.join(BASE_DIR, 'logs'))

    # Rate limiting
    RATELIMIT_DEFAULT = "1000 per day;500 per hour"
    RATELIMIT_STORAGE_URI = os.environ.get('RATELIMIT_STORAGE_URI', 'memory://')
    AUTH_RATE_LIMIT = "10 per minute"

    CORS_ORIGINS = [
        origin.strip()
        for origin in os.environ.get('CORS_ORIGINS', 'http://localhost:3000,http://127.0.0.1:3000').split(',')
        if origin.strip()
    ]

    # invoice pdf storage
    INVOICE_STORAGE_ROOT = os.getenv(
        "INVOICE_STORAGE_ROOT",
        str(Path(__file__).resolve().parents[1] / "docketwise-storage"))


class DevConfig(Config):
    """Development configuration"""
    DEBUG = True
    SESSION_COOKIE_SAMESITE = 'Lax'
    SESSION_COOKIE_SECURE = False
    FLASK_HOST = '0.0.0.0'
    FLASK_PORT = 5000
    FRONTEND_URL = os.environ.get('FRONTEND_URL', 'http://localhost:3000')
    REQUIRE_EMAIL_VERIFICATION = os.environ.get('REQUIRE_EMAIL_VERIFICATION', 'false').lower() == 'true'

    STORAGE_PATH = str(Path(__file__).resolve().parents[1] / "docketwise-storage" / "database")
    DB_PATH = os.path.join(STORAGE_PATH, 'docketwise.db')
    SQLALCHEMY_DATABASE_URI = os.environ.get('SQLALCHEMY_DATABASE_URI', f"sqlite:///{DB_PATH}")


class StagingConfig(Config):
    """Staging configuration"""
    DEBUG = False
    SESSION_COOKIE_SAMESITE = 'None'
    SESSION_COOKIE_SECURE = True
    FLASK_HOST = '::'
    FLASK_PORT = 5000
    FRONTEND_URL = os.environ.get('FRONTEND_URL', 'https://staging.docketwise.local')

    STORAGE_PATH = str(Path(__file__).resolve().parents[1] / "docketwise-storage" / "database")
    DB_PATH = os.path.join(STORAGE_PATH, 'docketwise.db')
    SQLALCHEMY_DATABASE_URI = os.environ.get('SQLALCHEMY_DATABASE_URI', f"sqlite:///{DB_PATH}")


class ProductionConfig(Config):
    """Production configuration"""
    DEBUG = False
    SESSION_COOKIE_SAMESITE = 'None'
    SESSION_COOKIE_SECURE = True
    FLASK_HOST = '::'
    FLASK_PORT = 5000
    FRONTEND_URL = os.environ.get('FRONTEND_URL', 'https://app.docketwise.local')

    # Production database - MUST be set via environment
    SQLALCHEMY_DATABASE_URI = os.environ.get('SQLALCHEMY_DATABASE_URI')


class TestConfig(Config):
    """Configuration used by the test suite"""
    TESTING = True
    DEBUG = False
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    MAIL_SUPPRESS_SEND = True
    FRONTEND_URL = 'http://localhost:3000'
    RATELIMIT_ENABLED = False
    SECURITY_PASSWORD_HASH = 'pbkdf2_sha512'
    # fixed Fernet key so encrypted fixtures are stable across runs
    BANK_ENCRYPTION_KEY = 'q9Yp1Yx4Z1M8b3dZc6l2QGdU0o8Wq2Rr1bJkS3tVv5E='
    DISPLAY_TIMEZONE = 'Australia/Sydney'


CONFIG_BY_NAME = {
    'dev': DevConfig,
    'staging': StagingConfig,
    'production': ProductionConfig,
    'test': TestConfig,
}
