import os
from pathlib import Path
from datetime import timedelta

BASE_DIR = Path(__file__).resolve().parent.parent.parent  # .../atelier
ENV = os.environ.get

# -----------------------
#  Sécurité de base
# -----------------------
SECRET_KEY = ENV("DJANGO_SECRET_KEY", "change-me-in-prod")
DEBUG = ENV("DJANGO_DEBUG", "False").lower() == "true"
ALLOWED_HOSTS = [h for h in ENV("DJANGO_ALLOWED_HOSTS", "").split(",") if h] or []

# -----------------------
#  Applications
# -----------------------
INSTALLED_APPS = [
    # Prometheus doit entourer Django pour collecter des métriques
    "django_prometheus",
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",

    # Tiers
    "corsheaders",
    "django_filters",
    "rest_framework",
    "rest_framework_simplejwt",

    # Atelier
    "core",
    "customers",
    "workshop",
    "loans",
    "stock",
]

# -----------------------
#  Middleware
# -----------------------
MIDDLEWARE = [
    "django_prometheus.middleware.PrometheusBeforeMiddleware",

    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "corsheaders.middleware.CorsMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",

    # Acteur de la requête (logs + historique des statuts d'intervention)
    "core.middleware.actor_scope.ActorScopeMiddleware",

    "django_prometheus.middleware.PrometheusAfterMiddleware",
]

ROOT_URLCONF = "atelier.urls"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [BASE_DIR / "templates"],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.debug",
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    },
]

WSGI_APPLICATION = "atelier.wsgi.application"

# -----------------------
#  Base de données
# -----------------------
# Postgres requis en production : index unique partiel (un prêt ouvert par appareil),
# SELECT ... FOR UPDATE (numérotation, prêts). DATABASE_URL est lu par prod.py.
DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.postgresql",
        "NAME": ENV("DATABASE_NAME", "atelier"),
        "USER": ENV("DATABASE_USER", "atelier"),
        "PASSWORD": ENV("DATABASE_PASSWORD", "atelier"),
        "HOST": ENV("DATABASE_HOST", "localhost"),
        "PORT": ENV("DATABASE_PORT", "5432"),
        "CONN_MAX_AGE": int(ENV("DJANGO_DB_CONN_MAX_AGE", "60")),
    }
}

REDIS_URL = ENV("REDIS_URL", "redis://127.0.0.1:6379/1")

CACHES = {
    "default": {
        "BACKEND": "django_redis.cache.RedisCache",
        "LOCATION": REDIS_URL,
        "OPTIONS": {
            "CLIENT_CLASS": "django_redis.client.DefaultClient",
            "CONNECTION_POOL_KWARGS": {"max_connections": 50},
        },
        "TIMEOUT": int(ENV("CACHE_TIMEOUT", "300")),
    }
}

SESSION_ENGINE = ENV("DJANGO_SESSION_ENGINE", "django.contrib.sessions.backends.cached_db")

# -----------------------
#  Internationalisation
# -----------------------
LANGUAGE_CODE = ENV("LANGUAGE_CODE", "fr-fr")
TIME_ZONE = ENV("TIME_ZONE", "Europe/Paris")
USE_I18N = True
USE_TZ = True

# -----------------------
#  Static & Media
# -----------------------
STATIC_URL = "/static/"
STATIC_ROOT = ENV("DJANGO_STATIC_ROOT", str(BASE_DIR / "staticfiles"))

MEDIA_URL = "/media/"
MEDIA_ROOT = ENV("DJANGO_MEDIA_ROOT", str(BASE_DIR / "media"))

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# -----------------------
#  API / Auth JWT
# -----------------------
REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": (
        "rest_framework_simplejwt.authentication.JWTAuthentication",
    ),
    "DEFAULT_PERMISSION_CLASSES": (
        "rest_framework.permissions.IsAuthenticated",
    ),
    "DEFAULT_PAGINATION_CLASS": "rest_framework.pagination.PageNumberPagination",
    "PAGE_SIZE": int(ENV("DJANGO_PAGE_SIZE", "50")),
    "EXCEPTION_HANDLER": "core.exceptions.exception_handler",
}

# Jeton signé par le SSO de l'atelier ; rôles dans realm_access / resource_access
SIMPLE_JWT = {
    "ALGORITHM": ENV("JWT_ALGORITHM", "RS256"),
    "SIGNING_KEY": ENV("JWT_SIGNING_KEY", "") or None,  # vide : vérification par clé publique
    "VERIFYING_KEY": ENV("JWT_VERIFYING_KEY", ""),
    "AUDIENCE": ENV("OIDC_AUDIENCE", "atelier-api"),
    "ISSUER": ENV("OIDC_ISSUER", "https://sso.example.fr/realms/atelier"),
    "AUTH_HEADER_TYPES": ("Bearer",),
    "ACCESS_TOKEN_LIFETIME": timedelta(minutes=int(ENV("JWT_ACCESS_MIN", "30"))),
    "USER_ID_FIELD": "username",
    "USER_ID_CLAIM": ENV("JWT_USER_ID_CLAIM", "preferred_username"),
}

# -----------------------
#  CORS / CSRF
# -----------------------
CORS_ALLOW_ALL_ORIGINS = ENV("CORS_ALLOW_ALL", "False").lower() == "true"
if not CORS_ALLOW_ALL_ORIGINS:
    CORS_ALLOWED_ORIGINS = [o for o in ENV("CORS_ALLOWED_ORIGINS", "").split(",") if o]

CSRF_TRUSTED_ORIGINS = [o for o in ENV("CSRF_TRUSTED_ORIGINS", "").split(",") if o]

# -----------------------
#  Atelier
# -----------------------
ATELIER_HOURLY_RATE = ENV("ATELIER_HOURLY_RATE", "45")
ATELIER_WARRANTY_MONTHS = int(ENV("ATELIER_WARRANTY_MONTHS", "3"))

# Générateur de la fiche de dépôt + QR code (chemin pointé vers une classe)
ATELIER_DOCUMENT_GENERATOR = ENV("ATELIER_DOCUMENT_GENERATOR", "workshop.documents.HttpDocumentGenerator")
ATELIER_DOCUMENTS_URL = ENV("ATELIER_DOCUMENTS_URL", "http://127.0.0.1:8081/api/documents")
ATELIER_DOCUMENTS_TIMEOUT = float(ENV("ATELIER_DOCUMENTS_TIMEOUT", "10"))

# -----------------------
#  Logging
# -----------------------
ATELIER_LOG_LEVEL = ENV("ATELIER_LOG_LEVEL", "INFO")

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "filters": {
        "actor": {"()": "core.logging.ActorFilter"},
    },
    "formatters": {
        "verbose": {
            "format": "%(asctime)s %(levelname)s %(name)s [%(actor)s] %(message)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "verbose",
            "filters": ["actor"],
        },
    },
    "root": {"handlers": ["console"], "level": "WARNING"},
    "loggers": {
        "django": {"handlers": ["console"], "level": ENV("DJANGO_LOG_LEVEL", "INFO"), "propagate": False},
        "django.db.backends": {"handlers": ["console"], "level": ENV("DJANGO_DB_LOG_LEVEL", "WARNING"), "propagate": False},
        **{
            app: {"handlers": ["console"], "level": ATELIER_LOG_LEVEL, "propagate": False}
            for app in ("core", "customers", "workshop", "loans", "stock", "api")
        },
    },
}

# -----------------------
#  Sécurité (base)
# -----------------------
SECURE_PROXY_SSL_HEADER = ("HTTP_X_FORWARDED_PROTO", "https")  # si derrière Traefik/Nginx
X_FRAME_OPTIONS = "DENY"
