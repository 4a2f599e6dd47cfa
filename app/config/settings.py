"""
Django settings for the payment service.

This is the single settings file for all environments. Configuration is driven
by environment variables using django-environ, following the 12-factor app
methodology.

Environment files:
    - .env.development: Development settings (DEBUG=True, relaxed security)
    - .env.production: Production settings (DEBUG=False, hardened security)

For more information on this file, see:
https://docs.djangoproject.com/en/5.2/topics/settings/

For the full list of settings and their values, see:
https://docs.djangoproject.com/en/5.2/ref/settings/
"""

import os
from pathlib import Path

import environ

# =============================================================================
# Path Configuration
# =============================================================================
# Build paths inside the project: BASE_DIR / 'subdir'
BASE_DIR = Path(__file__).resolve().parent.parent

# =============================================================================
# Environment Configuration
# =============================================================================
# Initialize django-environ
env = environ.Env(
    # Set default values and casting for common settings
    DEBUG=(bool, False),  # Default to False for safety
    ALLOWED_HOSTS=(list, []),
    CORS_ALLOWED_ORIGINS=(list, []),
    LOG_LEVEL=(str, "INFO"),
)

# Read environment file based on ENV_FILE or default to development
# Note: In Docker, env vars are passed directly; .env files are for local dev
env_file = os.environ.get("ENV_FILE", BASE_DIR.parent / ".env.development")
if Path(env_file).exists():
    environ.Env.read_env(env_file)

# =============================================================================
# Core Settings
# =============================================================================
# SECURITY WARNING: keep the secret key used in production secret!
SECRET_KEY = env("SECRET_KEY", default="django-insecure-local-development-key")

# SECURITY WARNING: don't run with debug turned on in production!
DEBUG = env("DEBUG")

ALLOWED_HOSTS = env("ALLOWED_HOSTS")

# =============================================================================
# Application Definition
# =============================================================================
INSTALLED_APPS = [
    # Django core apps
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    # Third-party apps
    "rest_framework",
    "corsheaders",
    "drf_spectacular",
    # Local apps
    "core",
    "payments",
]

MIDDLEWARE = [
    # Security middleware (should be first)
    "django.middleware.security.SecurityMiddleware",
    # WhiteNoise for static files (after security, before all else)
    "whitenoise.middleware.WhiteNoiseMiddleware",
    # CORS headers (must be before CommonMiddleware)
    "corsheaders.middleware.CorsMiddleware",
    # Django default middleware
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

ROOT_URLCONF = "config.urls"

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

WSGI_APPLICATION = "config.wsgi.application"

# =============================================================================
# Database Configuration
# =============================================================================
# https://docs.djangoproject.com/en/5.2/ref/settings/#databases
# PostgreSQL through psycopg3 in deployment; SQLite for local runs and tests
DATABASES = {
    "default": env.db(
        "DATABASE_URL",
        default=f"sqlite:///{BASE_DIR / 'db.sqlite3'}",
    ),
}

if DATABASES["default"]["ENGINE"] == "django.db.backends.postgresql":
    # Use psycopg3's native connection options
    DATABASES["default"]["OPTIONS"] = {
        "connect_timeout": 10,
    }

# Password validation
# https://docs.djangoproject.com/en/5.2/ref/settings/#auth-password-validators
AUTH_PASSWORD_VALIDATORS = [
    {
        "NAME": "django.contrib.auth.password_validation.UserAttributeSimilarityValidator"
    },
    {"NAME": "django.contrib.auth.password_validation.MinimumLengthValidator"},
    {"NAME": "django.contrib.auth.password_validation.CommonPasswordValidator"},
    {"NAME": "django.contrib.auth.password_validation.NumericPasswordValidator"},
]

# =============================================================================
# Django REST Framework Configuration
# =============================================================================
# Callers are other services; each view declares its own authentication
# (see payments.authentication.MainServiceApiKeyAuthentication).
REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": [],
    "DEFAULT_PERMISSION_CLASSES": [
        "rest_framework.permissions.AllowAny",
    ],
    "DEFAULT_RENDERER_CLASSES": [
        "rest_framework.renderers.JSONRenderer",
    ],
    "DEFAULT_PARSER_CLASSES": [
        "rest_framework.parsers.JSONParser",
        "rest_framework.parsers.FormParser",
    ],
    # OpenAPI schema generation
    "DEFAULT_SCHEMA_CLASS": "drf_spectacular.openapi.AutoSchema",
}

# =============================================================================
# drf-spectacular (OpenAPI) Configuration
# =============================================================================
SPECTACULAR_SETTINGS = {
    "TITLE": "Payment Service API",
    "DESCRIPTION": "Stripe subscriptions, token purchases and payment reconciliation",
    "VERSION": "1.0.0",
    "SERVE_INCLUDE_SCHEMA": False,
    # Tag descriptions for the payment endpoint groups
    "POSTPROCESSING_HOOKS": ["core.openapi.describe_payment_tags"],
    "SECURITY": [{"MainServiceApiKey": []}],
    "APPEND_COMPONENTS": {
        "securitySchemes": {
            "MainServiceApiKey": {
                "type": "apiKey",
                "in": "header",
                "name": "X-Main-Service-Api-Key",
            }
        }
    },
    # Schema customization
    "COMPONENT_SPLIT_REQUEST": True,
    "SORT_OPERATIONS": False,
}

# =============================================================================
# CORS Configuration
# =============================================================================
CORS_ALLOWED_ORIGINS = env("CORS_ALLOWED_ORIGINS")
CORS_ALLOW_CREDENTIALS = True
CORS_ALLOW_HEADERS = [
    "accept",
    "content-type",
    "authorization",
    "x-auth-token",
    "x-payment-service-api-key",
    "x-main-service-api-key",
]

# =============================================================================
# Stripe Configuration
# =============================================================================
# Get your API keys from: https://dashboard.stripe.com/apikeys
# Use test keys (sk_test_...) for development, live keys (sk_live_...) for production
STRIPE_SECRET_KEY = env("STRIPE_SECRET_KEY", default="")

# API version pinned on every request
STRIPE_API_VERSION = env("STRIPE_API_VERSION", default="2022-11-15")

# Webhook signing secrets from: https://dashboard.stripe.com/webhooks
# Each webhook endpoint has its own signing secret
STRIPE_SUBSCRIPTION_WEBHOOK_SECRET = env("STRIPE_SUBSCRIPTION_WEBHOOK_SECRET", default="")
STRIPE_PURCHASE_WEBHOOK_SECRET = env("STRIPE_PURCHASE_WEBHOOK_SECRET", default="")

# API timeout in seconds (default: 10)
# Keep low for responsive error handling; increase if experiencing timeouts
STRIPE_API_TIMEOUT_SECONDS = env.int("STRIPE_API_TIMEOUT_SECONDS", default=10)

# Network retries performed by the Stripe client (default: 2)
STRIPE_MAX_RETRIES = env.int("STRIPE_MAX_RETRIES", default=2)

# =============================================================================
# Main Service Configuration
# =============================================================================
# Owner of users, plans and website entitlements
MAIN_SERVICE_API_BASE_URL = env(
    "MAIN_SERVICE_API_BASE_URL",
    default="http://localhost:3000/api",
)
MAIN_SERVICE_TIMEOUT_SECONDS = env.float("MAIN_SERVICE_TIMEOUT_SECONDS", default=10)

# Retries apply to idempotent GETs only
MAIN_SERVICE_MAX_RETRIES = env.int("MAIN_SERVICE_MAX_RETRIES", default=2)

# Shared key: checked on inbound X-Main-Service-Api-Key, sent as
# x-payment-service-api-key on confirmations
PAYMENT_SERVICE_API_KEY = env("PAYMENT_SERVICE_API_KEY", default="")

# =============================================================================
# Billing Configuration
# =============================================================================
# Tokens per one unit of currency (20 tokens = $1.00)
TOKEN_COEFFICIENT_MULTIPLIER = env.int("TOKEN_COEFFICIENT_MULTIPLIER", default=20)

# Stripe's minimum charge; purchases at or below it are rejected
MIN_CHARGE_AMOUNT_CENTS = env.int("MIN_CHARGE_AMOUNT_CENTS", default=50)

DEFAULT_CURRENCY = env("DEFAULT_CURRENCY", default="usd")

# =============================================================================
# Internationalization
# =============================================================================
# https://docs.djangoproject.com/en/5.2/topics/i18n/
LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

# =============================================================================
# Static Files (CSS, JavaScript, Images)
# =============================================================================
# https://docs.djangoproject.com/en/5.2/howto/static-files/
STATIC_URL = env("STATIC_URL", default="/static/")
STATIC_ROOT = BASE_DIR / "staticfiles"
STATICFILES_DIRS = [BASE_DIR / "static"] if (BASE_DIR / "static").exists() else []

# WhiteNoise configuration for static file serving
STORAGES = {
    "default": {
        "BACKEND": "django.core.files.storage.FileSystemStorage",
    },
    "staticfiles": {
        "BACKEND": "whitenoise.storage.CompressedManifestStaticFilesStorage",
    },
}

# =============================================================================
# Default Primary Key Field Type
# =============================================================================
# https://docs.djangoproject.com/en/5.2/ref/settings/#default-auto-field
DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# =============================================================================
# Logging Configuration
# =============================================================================
LOG_LEVEL = env("LOG_LEVEL")

# Log file name per process, set via LOG_FILE_NAME
LOG_FILE_NAME = env("LOG_FILE_NAME", default="payments.log")
LOG_DIR = BASE_DIR / "logs"

# Ensure log directory exists (handles local development without Docker)
LOG_DIR.mkdir(parents=True, exist_ok=True)

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "verbose": {
            "format": "{levelname} {asctime} {module} {process:d} {thread:d} {message}",
            "style": "{",
        },
        "simple": {
            "format": "{levelname} {message}",
            "style": "{",
        },
        "file": {
            # Detailed format for persistent logs with timestamp, level, logger name, and location
            "format": "[{asctime}] {levelname} {name} {module}:{lineno} - {message}",
            "style": "{",
            "datefmt": "%Y-%m-%d %H:%M:%S",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "verbose",
        },
        "file": {
            # Max 10MB per file, keeps 5 backups
            "level": "DEBUG",
            "class": "logging.handlers.RotatingFileHandler",
            "filename": LOG_DIR / LOG_FILE_NAME,
            "maxBytes": 10 * 1024 * 1024,  # 10MB
            "backupCount": 5,
            "formatter": "file",
            "encoding": "utf-8",
        },
    },
    "root": {
        "handlers": ["console", "file"],
        "level": LOG_LEVEL,
    },
    "loggers": {
        "django": {
            "handlers": ["console", "file"],
            "level": LOG_LEVEL,
            "propagate": False,
        },
        "django.request": {
            "handlers": ["console", "file"],
            "level": "ERROR",
            "propagate": False,
        },
        "payments": {
            "handlers": ["console", "file"],
            "level": LOG_LEVEL,
            "propagate": False,
        },
        "stripe": {
            "handlers": ["console", "file"],
            "level": "WARNING",
            "propagate": False,
        },
    },
}

# =============================================================================
# Security Settings (Production Only)
# =============================================================================
# These settings are enforced only when DEBUG=False
if not DEBUG:
    # TLS is terminated by the proxy in front of the service by default
    SECURE_SSL_REDIRECT = env.bool("SECURE_SSL_REDIRECT", default=False)
    SECURE_PROXY_SSL_HEADER = ("HTTP_X_FORWARDED_PROTO", "https")

    # Cookie security
    SESSION_COOKIE_SECURE = env.bool("SESSION_COOKIE_SECURE", default=True)
    CSRF_COOKIE_SECURE = env.bool("CSRF_COOKIE_SECURE", default=True)

    # HSTS (HTTP Strict Transport Security)
    SECURE_HSTS_SECONDS = env.int("SECURE_HSTS_SECONDS", default=31536000)  # 1 year
    SECURE_HSTS_INCLUDE_SUBDOMAINS = env.bool(
        "SECURE_HSTS_INCLUDE_SUBDOMAINS", default=True
    )
    SECURE_HSTS_PRELOAD = env.bool("SECURE_HSTS_PRELOAD", default=True)

    # Additional security headers
    SECURE_CONTENT_TYPE_NOSNIFF = True
    X_FRAME_OPTIONS = "DENY"
