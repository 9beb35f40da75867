from .base import *

DJANGO_ENV = 'dev'
DEBUG = True
ALLOWED_HOSTS = ["*"]

# CORS dev : plus permissif
CORS_ALLOW_ALL_ORIGINS = True

# Jetons HS256 signés localement (pas de SSO en dev)
SIMPLE_JWT["ALGORITHM"] = ENV("JWT_ALGORITHM", "HS256")
SIMPLE_JWT["SIGNING_KEY"] = ENV("JWT_SIGNING_KEY", SECRET_KEY)

DATABASES["default"].update(
    {
        "PORT": ENV("DATABASE_PORT", "5433"),
        "OPTIONS": {"application_name": "atelier-local"},
    }
)

# Logging verbeux en dev
LOGGING["loggers"]["django"]["level"] = ENV("DJANGO_LOG_LEVEL", "DEBUG")
for app in ("core", "customers", "workshop", "loans", "stock", "api"):
    LOGGING["loggers"][app]["level"] = ENV("ATELIER_LOG_LEVEL", "DEBUG")
