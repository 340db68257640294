"""
Django settings for the lease_engine project.

Everything deployment specific comes from environment variables; the defaults
are for local development (SQLite, DEBUG on).
"""
import json
import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent

SECRET_KEY = os.environ.get("DJANGO_SECRET_KEY", "dev-only-insecure-key")
DEBUG = os.environ.get("DJANGO_DEBUG", "1") == "1"
ALLOWED_HOSTS = [h for h in os.environ.get("DJANGO_ALLOWED_HOSTS", "localhost,127.0.0.1,testserver").split(",") if h]

INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    "rest_framework",
    "rest_framework.authtoken",
    "accounts",
    "pricing",
    "quotes",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

ROOT_URLCONF = "lease_engine.urls"

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

WSGI_APPLICATION = "lease_engine.wsgi.application"
ASGI_APPLICATION = "lease_engine.asgi.application"

if os.environ.get("POSTGRES_DB"):
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.postgresql",
            "NAME": os.environ["POSTGRES_DB"],
            "USER": os.environ.get("POSTGRES_USER", "postgres"),
            "PASSWORD": os.environ.get("POSTGRES_PASSWORD", ""),
            "HOST": os.environ.get("POSTGRES_HOST", "localhost"),
            "PORT": os.environ.get("POSTGRES_PORT", "5432"),
        }
    }
else:
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.sqlite3",
            "NAME": BASE_DIR / "db.sqlite3",
        }
    }

AUTH_USER_MODEL = "accounts.CustomUser"
DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

AUTH_PASSWORD_VALIDATORS = [
    {"NAME": "django.contrib.auth.password_validation.UserAttributeSimilarityValidator"},
    {"NAME": "django.contrib.auth.password_validation.MinimumLengthValidator"},
]

LANGUAGE_CODE = "en-us"
TIME_ZONE = os.environ.get("DJANGO_TIME_ZONE", "UTC")
USE_I18N = True
USE_TZ = True

STATIC_URL = "static/"

REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": [
        "rest_framework.authentication.TokenAuthentication",
        "rest_framework.authentication.SessionAuthentication",
    ],
    "DEFAULT_PERMISSION_CLASSES": [
        "rest_framework.permissions.IsAuthenticated",
    ],
}

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "plain": {"format": "%(asctime)s %(levelname)s %(name)s: %(message)s"},
    },
    "handlers": {
        "console": {"class": "logging.StreamHandler", "formatter": "plain"},
    },
    "root": {"handlers": ["console"], "level": "WARNING"},
    "loggers": {
        "pricing": {"level": os.environ.get("DJANGO_LOG_LEVEL", "INFO"), "propagate": True},
        "quotes": {"level": os.environ.get("DJANGO_LOG_LEVEL", "INFO"), "propagate": True},
        "accounts": {"level": os.environ.get("DJANGO_LOG_LEVEL", "INFO"), "propagate": True},
    },
}

# ---- Quote editing ----
# A lock older than this is treated as released.
QUOTE_LOCK_STALE_SECONDS = int(os.environ.get("QUOTE_LOCK_STALE_SECONDS", 60 * 60))
QUOTE_AUTOSAVE_DEBOUNCE_SECONDS = float(os.environ.get("QUOTE_AUTOSAVE_DEBOUNCE_SECONDS", 2.0))

# Values a new quote starts from; QUOTE_DEFAULTS_JSON overrides individual keys.
QUOTE_DEFAULTS = {
    "factory_roe": "19.20",
    "customer_roe": "20.60",
    "discount_pct": "0",
    "interest_rate": "9.5",
    "lease_term": 60,
    "operating_hours": "180",
    "residual_truck_pct": "15",
}
QUOTE_DEFAULTS.update(json.loads(os.environ.get("QUOTE_DEFAULTS_JSON", "{}")))

# Used when the CommissionTier table is empty. Bounds are % margin, min inclusive.
DEFAULT_COMMISSION_TIERS = [
    {"min_margin": "0", "max_margin": "10", "commission_rate": "0"},
    {"min_margin": "10", "max_margin": "20", "commission_rate": "1.5"},
    {"min_margin": "20", "max_margin": "30", "commission_rate": "2.5"},
    {"min_margin": "30", "max_margin": "100", "commission_rate": "3.5"},
]
