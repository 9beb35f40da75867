from .base import *

DJANGO_ENV = 'test'
DEBUG = False
ALLOWED_HOSTS = ["testserver", "localhost"]

SECRET_KEY = "atelier-tests"

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": BASE_DIR / "test-atelier.sqlite3",
    }
}

CACHES = {"default": {"BACKEND": "django.core.cache.backends.locmem.LocMemCache"}}
SESSION_ENGINE = "django.contrib.sessions.backends.db"

PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]

SIMPLE_JWT["ALGORITHM"] = "HS256"
SIMPLE_JWT["SIGNING_KEY"] = SECRET_KEY
SIMPLE_JWT["VERIFYING_KEY"] = ""

REST_FRAMEWORK["PAGE_SIZE"] = 20

ATELIER_DOCUMENTS_URL = "http://documents.test/api"
ATELIER_DOCUMENTS_TIMEOUT = 2.0

LOGGING["loggers"]["django"]["level"] = "WARNING"
