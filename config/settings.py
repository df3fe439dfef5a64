# config/settings.py

import os
from pathlib import Path
from datetime import timedelta
from dotenv import load_dotenv
from celery.schedules import crontab

# ──────────────────────────────────────────────────────────────────────────────
# Base & Env (환경별 .env 자동 로딩)
# ──────────────────────────────────────────────────────────────────────────────
BASE_DIR = Path(__file__).resolve().parent.parent

# DJANGO_ENV 에 따라 .env.<DJANGO_ENV> → .env 순서로 로드
# 예) dev → .env.dev, prod → .env.prod
DJANGO_ENV = os.getenv("DJANGO_ENV", "dev").strip().lower()
env_file = BASE_DIR / f".env.{DJANGO_ENV}"
if env_file.exists():
    load_dotenv(env_file, override=True)

# 공통 키 보완용(.env). 이미 로드된 값은 유지(override=False)
common_env = BASE_DIR / ".env"
if common_env.exists():
    load_dotenv(common_env, override=False)


def _env_bool(name: str, default: str = "0") -> bool:
    # "1/true/yes/on" 다 허용 (대소문자 무시)
    return str(os.getenv(name, default)).strip().lower() in ("1", "true", "yes", "on")


# ──────────────────────────────────────────────────────────────────────────────
# Core Settings
# ──────────────────────────────────────────────────────────────────────────────
SECRET_KEY = os.getenv("DJANGO_SECRET_KEY", "dev-secret")
DEBUG = _env_bool("DEBUG", "1")
ALLOWED_HOSTS = os.getenv("ALLOWED_HOSTS", "127.0.0.1,localhost,testserver").split(",")

# ──────────────────────────────────────────────────────────────────────────────
# Applications
# ──────────────────────────────────────────────────────────────────────────────
INSTALLED_APPS = [
    # Django
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    "django_celery_beat",

    # 3rd party
    "rest_framework",
    "drf_spectacular",
    "corsheaders",

    # Domain apps
    "domains.shipments",
    "domains.tracking",
]

# ──────────────────────────────────────────────────────────────────────────────
# Middleware
# ──────────────────────────────────────────────────────────────────────────────
MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "whitenoise.middleware.WhiteNoiseMiddleware",
    "corsheaders.middleware.CorsMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

# ──────────────────────────────────────────────────────────────────────────────
# URL & Templates
# ──────────────────────────────────────────────────────────────────────────────
ROOT_URLCONF = "config.urls"
APPEND_SLASH = True

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    },
]

WSGI_APPLICATION = "config.wsgi.application"

# ──────────────────────────────────────────────────────────────────────────────
# Database (PostgreSQL, DB_NAME 미설정 시 로컬 SQLite)
# ──────────────────────────────────────────────────────────────────────────────
if os.getenv("DB_NAME"):
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.postgresql",
            "NAME": os.getenv("DB_NAME"),
            "USER": os.getenv("DB_USER"),
            "PASSWORD": os.getenv("DB_PASSWORD"),
            "HOST": os.getenv("DB_HOST"),
            "PORT": os.getenv("DB_PORT", "5432"),
            "CONN_MAX_AGE": int(os.getenv("DJANGO_DB_CONN_MAX_AGE", "60")),
            "OPTIONS": {"sslmode": os.getenv("DJANGO_DB_SSLMODE", "require")},
        }
    }
else:
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.sqlite3",
            "NAME": BASE_DIR / "db.sqlite3",
        }
    }

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# ──────────────────────────────────────────────────────────────────────────────
# Cache (배치 중단 플래그 공유용. 워커/웹 프로세스 간 공유하려면 Redis 필요)
# ──────────────────────────────────────────────────────────────────────────────
REDIS_URL = os.getenv("REDIS_URL", "")
if REDIS_URL:
    CACHES = {
        "default": {
            "BACKEND": "django.core.cache.backends.redis.RedisCache",
            "LOCATION": REDIS_URL,
        }
    }
else:
    CACHES = {
        "default": {"BACKEND": "django.core.cache.backends.locmem.LocMemCache"},
    }

# ──────────────────────────────────────────────────────────────────────────────
# Internationalization
# ──────────────────────────────────────────────────────────────────────────────
LANGUAGE_CODE = "en-us"
TIME_ZONE = "Europe/Istanbul"
USE_I18N = True
USE_TZ = True

# ──────────────────────────────────────────────────────────────────────────────
# Static Files
# ──────────────────────────────────────────────────────────────────────────────
STATIC_URL = "/static/"
STATIC_ROOT = BASE_DIR / "staticfiles"

STORAGES = {
    "default": {"BACKEND": "django.core.files.storage.FileSystemStorage"},
    "staticfiles": {"BACKEND": "whitenoise.storage.CompressedManifestStaticFilesStorage"},
}

# ──────────────────────────────────────────────────────────────────────────────
# DRF & OpenAPI
# ──────────────────────────────────────────────────────────────────────────────
REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": [
        "rest_framework_simplejwt.authentication.JWTAuthentication",
        "rest_framework.authentication.SessionAuthentication",
    ],
    "DEFAULT_PERMISSION_CLASSES": [
        "rest_framework.permissions.IsAuthenticated",
    ],
    "DEFAULT_SCHEMA_CLASS": "drf_spectacular.openapi.AutoSchema",
}

SPECTACULAR_SETTINGS = {
    "TITLE": "Parcel Tracking API",
    "DESCRIPTION": "Carrier tracking lookups and batch status reconciliation (JWT Bearer).",
    "VERSION": "1.0.0",
    "SCHEMA_PATH_PREFIX": r"/api/v1",
    "SERVE_INCLUDE_SCHEMA": False,
    "COMPONENT_SPLIT_REQUEST": True,
    "SECURITY": [{"BearerAuth": []}],
    "COMPONENTS": {
        "securitySchemes": {
            "BearerAuth": {"type": "http", "scheme": "bearer", "bearerFormat": "JWT"},
        }
    },
    "DISABLE_ERRORS_AND_WARNINGS": True,
    "ENUM_NAME_OVERRIDES": {
        "Status": "ShipmentStatusEnum",
    },
}

# ──────────────────────────────────────────────────────────────────────────────
# JWT (SimpleJWT)
# ──────────────────────────────────────────────────────────────────────────────
SIMPLE_JWT = {
    "ACCESS_TOKEN_LIFETIME": timedelta(minutes=int(os.getenv("ACCESS_MIN", "60"))),
    "REFRESH_TOKEN_LIFETIME": timedelta(days=int(os.getenv("REFRESH_DAYS", "7"))),
    "AUTH_HEADER_TYPES": ("Bearer",),
}

# ──────────────────────────────────────────────────────────────────────────────
# Security & CORS
# ──────────────────────────────────────────────────────────────────────────────
COOKIE_SECURE = not DEBUG
SESSION_COOKIE_SECURE = COOKIE_SECURE
CSRF_COOKIE_SECURE = COOKIE_SECURE

CORS_ALLOWED_ORIGINS = [
    o for o in os.getenv("CORS_ALLOWED_ORIGINS", "http://localhost:5173").split(",") if o
]
CORS_ALLOW_CREDENTIALS = True

# ──────────────────────────────────────────────────────────────────────────────
# Carriers (택배사 API 자격증명)
# ──────────────────────────────────────────────────────────────────────────────
CARRIERS = {
    "ups": {
        "client_id": os.getenv("UPS_CLIENT_ID", ""),
        "client_secret": os.getenv("UPS_CLIENT_SECRET", ""),
        "base_url": os.getenv("UPS_API_BASE_URL", "https://onlinetools.ups.com"),
        "transaction_src": os.getenv("UPS_TRANSACTION_SRC", "parcel-tracking"),
    },
    "fedex": {
        "api_key": os.getenv("FEDEX_API_KEY", ""),
        "secret_key": os.getenv("FEDEX_SECRET_KEY", ""),
        "account_number": os.getenv("FEDEX_ACCOUNT_NUMBER") or os.getenv("FEDEX_ACCOUNT", ""),
        "base_url": os.getenv("FEDEX_API_BASE_URL", "https://apis.fedex.com"),
    },
    "dhl": {
        "api_key": os.getenv("DHL_API_KEY", ""),
        "base_url": os.getenv("DHL_API_BASE_URL", "https://api-eu.dhl.com"),
    },
    "afs": {
        "api_url": os.getenv("AFS_API_URL", "https://panel.afstransport.com/apiv2.php"),
        "api_key": os.getenv("AFS_TRANSPORT_API_KEY") or os.getenv("AFS_API_KEY", ""),
    },
    "gls": {
        "tracking_url": os.getenv(
            "GLS_TRACKING_URL", "https://gls-group.eu/GROUP/en/shipment-tracking?match={tracking_number}"
        ),
    },
}

# 배치 추적 엔진 설정
TRACKING = {
    "HTTP_TIMEOUT": float(os.getenv("TRACKING_HTTP_TIMEOUT", "15")),
    "HTTP_RETRIES": int(os.getenv("TRACKING_HTTP_RETRIES", "2")),
    "HTTP_BACKOFF": float(os.getenv("TRACKING_HTTP_BACKOFF", "0.5")),
    "MAX_WORKERS": int(os.getenv("TRACKING_MAX_WORKERS", "4")),
    "PER_CARRIER_CONCURRENCY": int(os.getenv("TRACKING_PER_CARRIER_CONCURRENCY", "2")),
    "TOKEN_REFRESH_MARGIN": int(os.getenv("TRACKING_TOKEN_REFRESH_MARGIN", "60")),
    "LABEL_MIN_BYTES": 100,
}

SHIPMENTS_NOTIFY_WEBHOOK = os.getenv("SHIPMENTS_NOTIFY_WEBHOOK")

# ──────────────────────────────────────────────────────────────────────────────
# Logging
# ──────────────────────────────────────────────────────────────────────────────
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "plain": {"format": "%(asctime)s %(levelname)s [%(name)s] %(message)s"},
    },
    "handlers": {
        "console": {"class": "logging.StreamHandler", "formatter": "plain"},
    },
    "loggers": {
        "domains": {"handlers": ["console"], "level": LOG_LEVEL, "propagate": False},
        "celery": {"handlers": ["console"], "level": "INFO", "propagate": False},
    },
    "root": {"handlers": ["console"], "level": "WARNING"},
}

# ──────────────────────────────────────────────────────────────────────────────
# Celery Configuration
# ──────────────────────────────────────────────────────────────────────────────
CELERY_BROKER_URL = os.getenv("CELERY_BROKER_URL", "redis://redis:6379/0")
_result_env = os.environ.get("CELERY_RESULT_BACKEND")
CELERY_RESULT_BACKEND = _result_env or None
CELERY_TIMEZONE = "Europe/Istanbul"
CELERY_TASK_TIME_LIMIT = 60 * 30
CELERY_TASK_TRACK_STARTED = True
CELERY_ACCEPT_CONTENT = ["json"]
CELERY_TASK_SERIALIZER = "json"
CELERY_RESULT_SERIALIZER = "json"
CELERY_BROKER_CONNECTION_RETRY_ON_STARTUP = True
CELERY_TASK_IGNORE_RESULT = True
CELERY_TASK_ALWAYS_EAGER = _env_bool("CELERY_TASK_ALWAYS_EAGER")
CELERY_BEAT_SCHEDULER = "django_celery_beat.schedulers:DatabaseScheduler"

# 하루 3회 (06:00 / 14:00 / 22:00 Istanbul)
CELERY_BEAT_SCHEDULE = {
    "batch-tracking-three-times-daily": {
        "task": "domains.tracking.tasks.run_batch_tracking",
        "schedule": crontab(minute=0, hour="6,14,22"),
        "args": [],
        "kwargs": {},
    },
}
