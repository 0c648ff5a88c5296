# config/settings.py
"""
Environment-driven configuration for the site backend.

Every value can be overridden through an environment variable; the entry point
loads a local .env file first so development setups need no exported shell state.
"""

import os
import secrets
from pathlib import Path

from dotenv import load_dotenv

PROJECT_ROOT = Path(__file__).resolve().parent.parent

load_dotenv(PROJECT_ROOT / '.env')


def _env_int(name: str, default: int) -> int:
    value = os.environ.get(name)
    return int(value) if value else default


class BaseConfig:
    """Settings shared by every environment"""

    # Process
    PORT = _env_int('PORT', 3001)
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
    LOG_FILE = os.environ.get('LOG_FILE')
    SECRET_KEY = os.environ.get('SECRET_KEY') or secrets.token_urlsafe(32)

    # Persistence
    DATA_DIR = os.environ.get('DATA_DIR') or str(PROJECT_ROOT)
    UPLOAD_FOLDER = os.environ.get('UPLOAD_FOLDER')
    BLOGS_FILENAME = 'blogs.json'
    SUBSCRIBERS_FILENAME = 'subscribers.json'

    # File upload limits
    MAX_CONTENT_LENGTH = 16 * 1024 * 1024  # 16MB

    # Outbound mail
    MAIL_HOST = os.environ.get('MAIL_HOST', 'smtp.gmail.com')
    MAIL_PORT = _env_int('MAIL_PORT', 465)
    MAIL_USERNAME = os.environ.get('EMAIL_USER')
    MAIL_PASSWORD = os.environ.get('EMAIL_PASS')
    MAIL_TIMEOUT = _env_int('MAIL_TIMEOUT', 30)
    MAIL_FROM_NAME = os.environ.get('MAIL_FROM_NAME', 'The Digital Indian Team')
    CONTACT_RECIPIENT = os.environ.get('CONTACT_RECIPIENT', 'ankurr.era@gmail.com')
    SITE_URL = os.environ.get('SITE_URL', 'http://localhost:5173')

    # Admin sessions
    JWT_SECRET = os.environ.get('JWT_SECRET') or secrets.token_urlsafe(32)
    ADMIN_USERNAME = os.environ.get('ADMIN_USERNAME')
    ADMIN_PASSWORD = os.environ.get('ADMIN_PASSWORD')
    ADMIN_PASSWORD_HASH = os.environ.get('ADMIN_PASSWORD_HASH')
    ADMIN_SESSION_HOURS = 1

    # Chatbot completion service
    GEMINI_API_KEY = os.environ.get('GEMINI_API_KEY')
    GEMINI_MODEL = os.environ.get('GEMINI_MODEL', 'gemini-2.5-flash')
    GEMINI_TIMEOUT = _env_int('GEMINI_TIMEOUT', 30)

    # Deferred notifications
    NOTIFICATION_DELAY_SECONDS = _env_int('NOTIFICATION_DELAY_SECONDS', 5 * 60)
    CELERY_BROKER_URL = os.environ.get('CELERY_BROKER_URL', 'redis://localhost:6379/0')
    CELERY_TASK_ALWAYS_EAGER = False

    # Rate limiting
    RATELIMIT_ENABLED = True
    RATELIMIT_STORAGE_URI = os.environ.get('RATELIMIT_STORAGE_URI', 'memory://')
    RATELIMIT_HEADERS_ENABLED = True

    # CORS
    CORS_ORIGINS = os.environ.get('CORS_ORIGINS', '*')

    # Security headers
    SECURITY_HEADERS = {
        'X-Content-Type-Options': 'nosniff',
        'X-Frame-Options': 'DENY',
        'Referrer-Policy': 'strict-origin-when-cross-origin',
        'Permissions-Policy': 'camera=(), microphone=(), geolocation=()'
    }


class DevelopmentConfig(BaseConfig):
    DEBUG = True
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'DEBUG')


class TestingConfig(BaseConfig):
    TESTING = True
    JWT_SECRET = 'test-jwt-secret'
    ADMIN_USERNAME = 'admin'
    ADMIN_PASSWORD = 'correct-horse'
    ADMIN_PASSWORD_HASH = None
    GEMINI_API_KEY = None
    MAIL_USERNAME = 'site@example.com'
    CONTACT_RECIPIENT = 'operator@example.com'
    SITE_URL = 'https://digitalindian.example'
    NOTIFICATION_DELAY_SECONDS = 0
    CELERY_BROKER_URL = 'memory://'
    CELERY_TASK_ALWAYS_EAGER = True
    RATELIMIT_ENABLED = False


class ProductionConfig(BaseConfig):
    DEBUG = False
    SECURITY_HEADERS = dict(
        BaseConfig.SECURITY_HEADERS,
        **{'Strict-Transport-Security': 'max-age=31536000; includeSubDomains'}
    )


CONFIGS = {
    'development': DevelopmentConfig,
    'testing': TestingConfig,
    'production': ProductionConfig,
}
