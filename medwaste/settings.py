"""
Settings for the medical waste tracking backend.

Everything deployment specific comes from environment variables.  A
``.env`` file beside ``manage.py`` is loaded first when present, which
is convenient locally; production should export real variables.
"""
from __future__ import annotations

import os
from pathlib import Path

import dj_database_url
from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent

if (BASE_DIR / ".env").exists():
    load_dotenv(dotenv_path=BASE_DIR / ".env")


def env_flag(name: str, default: str = "0") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


def env_list(name: str, default: str = "") -> list[str]:
    return [item.strip() for item in os.getenv(name, default).split(",") if item.strip()]


def mysql_env(key: str, default: str = "") -> str:
    return os.getenv(f"MYSQL_{key}") or os.getenv(f"DB_{key}") or default


# --- deployment -------------------------------------------------------------
ENV = os.getenv("ENV", "dev")
DEBUG = env_flag("DEBUG")
ALLOWED_HOSTS = env_list("ALLOWED_HOSTS", "127.0.0.1,localhost,testserver")

INSECURE_SECRET = "medwaste-insecure-dev-key"
SECRET_KEY = os.getenv("SECRET_KEY") or INSECURE_SECRET

if ENV == "prod":
    # refuse to boot a production process with development defaults
    problems = []
    if DEBUG:
        problems.append("DEBUG is on")
    if "*" in ALLOWED_HOSTS:
        problems.append("ALLOWED_HOSTS contains *")
    if SECRET_KEY == INSECURE_SECRET:
        problems.append("SECRET_KEY is not set")
    if problems:
        raise RuntimeError("unsafe production settings: " + ", ".join(problems))

# --- apps -------------------------------------------------------------------
INSTALLED_APPS = [
    "django_prometheus",
    "corsheaders",
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    "rest_framework",
    "drf_yasg",
    "waste",
]

MIDDLEWARE = [
    "django_prometheus.middleware.PrometheusBeforeMiddleware",
    "django.middleware.security.SecurityMiddleware",
    "whitenoise.middleware.WhiteNoiseMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "corsheaders.middleware.CorsMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "waste.middleware.AccessLogMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
    "django_prometheus.middleware.PrometheusAfterMiddleware",
]

ROOT_URLCONF = "medwaste.urls"
WSGI_APPLICATION = "medwaste.wsgi.application"
ASGI_APPLICATION = "medwaste.asgi.application"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
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

# --- database ---------------------------------------------------------------
# MYSQL_* (or DB_*) variables win over DATABASE_URL; with neither, a local SQLite file.
CONN_MAX_AGE = int(os.getenv("DB_CONN_MAX_AGE", "120"))

if mysql_env("NAME") and mysql_env("USER"):
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.mysql",
            "NAME": mysql_env("NAME"),
            "USER": mysql_env("USER"),
            "PASSWORD": mysql_env("PASSWORD"),
            "HOST": mysql_env("HOST", "localhost"),
            "PORT": mysql_env("PORT", "3306"),
            "CONN_MAX_AGE": CONN_MAX_AGE,
            "OPTIONS": {"charset": "utf8mb4", "init_command": "SET sql_mode='STRICT_TRANS_TABLES'"},
        }
    }
else:
    DATABASES = {
        "default": dj_database_url.config(
            default=f"sqlite:///{(BASE_DIR / 'db.sqlite3').as_posix()}",
            conn_max_age=CONN_MAX_AGE,
        )
    }

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# --- auth & sessions --------------------------------------------------------
AUTH_USER_MODEL = "waste.User"
AUTH_PASSWORD_VALIDATORS = [
    {"NAME": f"django.contrib.auth.password_validation.{name}"}
    for name in (
        "UserAttributeSimilarityValidator",
        "MinimumLengthValidator",
        "CommonPasswordValidator",
        "NumericPasswordValidator",
    )
]

SESSION_COOKIE_AGE = int(os.getenv("SESSION_COOKIE_AGE", str(24 * 60 * 60)))
SESSION_COOKIE_HTTPONLY = True
SESSION_COOKIE_SAMESITE = "Lax"
SESSION_ENGINE = "django.contrib.sessions.backends.db"

# --- locale -----------------------------------------------------------------
LANGUAGE_CODE = "tr"
# hour buckets, shifts and rate effective days are all local to this zone
TIME_ZONE = os.getenv("TIME_ZONE", "Europe/Istanbul")
USE_I18N = True
USE_TZ = True

# --- static files -----------------------------------------------------------
STATIC_URL = "static/"
STATIC_ROOT = BASE_DIR / "staticfiles"
STORAGES = {
    "default": {"BACKEND": "django.core.files.storage.FileSystemStorage"},
    "staticfiles": {"BACKEND": "whitenoise.storage.CompressedManifestStaticFilesStorage"},
}

# --- REST framework ---------------------------------------------------------
APPEND_SLASH = False

REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": ["waste.authentication.SessionAuthentication"],
    "DEFAULT_PERMISSION_CLASSES": ["rest_framework.permissions.IsAuthenticated"],
    "DEFAULT_PARSER_CLASSES": [
        "rest_framework.parsers.JSONParser",
        "rest_framework.parsers.FormParser",
    ],
    "DEFAULT_THROTTLE_CLASSES": [
        "rest_framework.throttling.AnonRateThrottle",
        "rest_framework.throttling.UserRateThrottle",
    ],
    "DEFAULT_THROTTLE_RATES": {
        "anon": os.getenv("THROTTLE_ANON", "60/min"),
        "user": os.getenv("THROTTLE_USER", "240/min"),
        "login": os.getenv("THROTTLE_LOGIN", "10/min"),
    },
    "EXCEPTION_HANDLER": "waste.exceptions.api_exception_handler",
}

SWAGGER_SETTINGS = {
    "DEFAULT_INFO": "medwaste.urls.api_info",
    "SECURITY_DEFINITIONS": {},
    "USE_SESSION_AUTH": True,
}

# --- CORS / CSRF ------------------------------------------------------------
# No cross-origin access unless origins are listed explicitly.
CORS_ALLOWED_ORIGINS = env_list("CORS_ALLOWED_ORIGINS")
CORS_ALLOW_CREDENTIALS = True
CSRF_TRUSTED_ORIGINS = list(CORS_ALLOWED_ORIGINS)

# --- cache ------------------------------------------------------------------
# Throttle counters live here; Redis when REDIS_URL is given.
REDIS_URL = os.getenv("REDIS_URL", "")
if REDIS_URL:
    CACHES = {
        "default": {
            "BACKEND": "django_redis.cache.RedisCache",
            "LOCATION": REDIS_URL,
            "OPTIONS": {
                "CLIENT_CLASS": "django_redis.client.DefaultClient",
                "SOCKET_CONNECT_TIMEOUT": 3,
                "SOCKET_TIMEOUT": 3,
            },
        }
    }
    SESSION_ENGINE = "django.contrib.sessions.backends.cached_db"
else:
    CACHES = {"default": {"BACKEND": "django.core.cache.backends.locmem.LocMemCache", "LOCATION": "medwaste"}}

# --- TLS behind a proxy -----------------------------------------------------
SECURE_PROXY_SSL_HEADER = ("HTTP_X_FORWARDED_PROTO", "https")
if ENV == "prod":
    SESSION_COOKIE_SECURE = True
    CSRF_COOKIE_SECURE = True
    SECURE_HSTS_SECONDS = int(os.getenv("SECURE_HSTS_SECONDS", "3600"))
    SECURE_SSL_REDIRECT = env_flag("SECURE_SSL_REDIRECT", "1")

# --- logging ----------------------------------------------------------------
LOG_LEVEL = (os.getenv("LOG_LEVEL") or "INFO").strip().upper()

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "plain": {"format": "%(asctime)s %(levelname)s [%(name)s] %(message)s"},
    },
    "handlers": {
        "console": {"class": "logging.StreamHandler", "formatter": "plain"},
    },
    "root": {"handlers": ["console"], "level": "WARNING"},
    "loggers": {
        "waste": {"handlers": ["console"], "level": LOG_LEVEL, "propagate": False},
        "django.request": {"handlers": ["console"], "level": "ERROR", "propagate": False},
    },
}

# --- waste tracking ---------------------------------------------------------
# Newest-first windows read by the aggregators.
WASTE_DASHBOARD_WINDOW = int(os.getenv("WASTE_DASHBOARD_WINDOW", "500"))
WASTE_ANALYTICS_WINDOW = int(os.getenv("WASTE_ANALYTICS_WINDOW", "5000"))
WASTE_COLLECTION_LIST_LIMIT = int(os.getenv("WASTE_COLLECTION_LIST_LIMIT", "100"))

# "placeholder" or "coefficients", see waste.services.kpi
WASTE_KPI_DENOMINATOR = os.getenv("WASTE_KPI_DENOMINATOR", "placeholder")
WASTE_KPI_CATEGORY_CODES = {
    "bed": ["ICU", "SERVICE"],
    "surgery": ["OR"],
    "protocol": ["POLYCLINIC"],
}
