"""
Configuration for the My Wealth finance tracker
"""
import os

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

BASE_DIR = os.path.dirname(os.path.abspath(__file__))
INSTANCE_PATH = os.path.join(BASE_DIR, 'instance')


def _env_bool(name, default=False):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


def database_url():
    """Return the configured database URL, correcting Render/Heroku style schemes."""
    url = os.environ.get('DATABASE_URL')
    if url and url.startswith('postgres://'):
        return url.replace('postgres://', 'postgresql://', 1)
    if url:
        return url
    # Use SQLite for local development, placing the DB in the 'instance' folder
    return f"sqlite:///{os.path.join(INSTANCE_PATH, 'mywealth.db')}"


class Config:
    # Flask
    DEBUG = False
    TESTING = False
    SECRET_KEY = os.environ.get('SECRET_KEY', 'dev-secret-key-change-me')
    JSON_SORT_KEYS = False

    # Session token (JWT in httpOnly cookie)
    JWT_SECRET = os.environ.get('JWT_SECRET', 'fallback-secret-key')
    JWT_ALGORITHM = 'HS256'
    TOKEN_COOKIE_NAME = 'token'
    TOKEN_TTL_SECONDS = int(os.environ.get('TOKEN_TTL_SECONDS', 600))  # 10 minutes
    VERIFY_TOKEN_TTL_SECONDS = 24 * 3600
    RESET_TOKEN_TTL_SECONDS = 3600
    REQUIRE_EMAIL_VERIFICATION = _env_bool('REQUIRE_EMAIL_VERIFICATION', True)

    # Cookies
    SESSION_COOKIE_SECURE = False
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = 'Lax'

    # CSRF (token is sent by the SPA in the X-CSRFToken header)
    WTF_CSRF_ENABLED = True
    WTF_CSRF_TIME_LIMIT = None

    # Database
    SQLALCHEMY_DATABASE_URI = database_url()
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Links placed in outgoing emails
    APP_BASE_URL = os.environ.get('APP_BASE_URL', 'http://localhost:3000')

    # SMTP relay
    MAIL_SERVER = os.environ.get('MAIL_SERVER', 'smtp.gmail.com')
    MAIL_PORT = int(os.environ.get('MAIL_PORT', 587))
    MAIL_USE_TLS = _env_bool('MAIL_USE_TLS', True)
    MAIL_USERNAME = os.environ.get('MAIL_USERNAME')
    MAIL_PASSWORD = os.environ.get('MAIL_PASSWORD')
    MAIL_DEFAULT_SENDER = os.environ.get('MAIL_DEFAULT_SENDER', 'My Wealth Support <no-reply@mywealth.local>')
    MAIL_SUPPRESS_SEND = _env_bool('MAIL_SUPPRESS_SEND', False)

    # Live market quotes (Yahoo Finance via RapidAPI)
    RAPIDAPI_KEY = os.environ.get('RAPIDAPI_KEY')
    RAPIDAPI_HOST = os.environ.get('RAPIDAPI_HOST', 'yahoo-finance15.p.rapidapi.com')
    QUOTE_API_TIMEOUT = int(os.environ.get('QUOTE_API_TIMEOUT', 10))

    # Logging
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')

    @staticmethod
    def init_app(app):
        pass


class DevelopmentConfig(Config):
    DEBUG = True
    MAIL_SUPPRESS_SEND = _env_bool('MAIL_SUPPRESS_SEND', True)


class TestingConfig(Config):
    TESTING = True
    SECRET_KEY = 'testing-secret'
    JWT_SECRET = 'testing-jwt-secret'
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    WTF_CSRF_ENABLED = False
    MAIL_SUPPRESS_SEND = True
    REQUIRE_EMAIL_VERIFICATION = True
    RAPIDAPI_KEY = 'test-key'
    LOG_LEVEL = 'WARNING'


class ProductionConfig(Config):
    PREFERRED_URL_SCHEME = 'https'

    # Security
    SESSION_COOKIE_SECURE = True
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = 'Lax'

    # Database
    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_size': 10,
        'pool_timeout': 30,
        'pool_recycle': 1800,  # Recycle connections after 30 minutes
        'max_overflow': 2,
        'pool_pre_ping': True,
    }

    @staticmethod
    def init_app(app):
        # Set secret keys
        app.config['SECRET_KEY'] = os.environ.get('SECRET_KEY') or os.urandom(24)
        if not os.environ.get('JWT_SECRET'):
            app.logger.warning('JWT_SECRET is not set; using the fallback signing key')

        # SQLite has no connection pool options
        if app.config['SQLALCHEMY_DATABASE_URI'].startswith('sqlite'):
            app.config['SQLALCHEMY_ENGINE_OPTIONS'] = {}


config_by_name = {
    'development': DevelopmentConfig,
    'testing': TestingConfig,
    'production': ProductionConfig,
}


def get_config(name=None):
    name = name or os.environ.get('FLASK_ENV', 'production')
    return config_by_name.get(name, ProductionConfig)
