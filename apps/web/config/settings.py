"""
Django settings for the order dispatch service.

Secrets come from the environment (or the DynamoDB config table at runtime,
see apps.web.dispatch.runtime_config) - never hardcode credentials.
Run with: uv run python apps/web/manage.py runserver
"""

from pathlib import Path

import environ  # type: ignore[import-untyped]

# Build paths inside the project like this: BASE_DIR / 'subdir'.
BASE_DIR = Path(__file__).resolve().parent.parent

# Initialize environ
env = environ.Env(
    DEBUG=(bool, False),
    ALLOWED_HOSTS=(list, []),
    SQUARE_SANDBOX=(bool, False),
    PAYMENT_IDEMPOTENCY_WINDOW_SECONDS=(int, 600),
)

# SECURITY WARNING: keep the secret key used in production secret!
SECRET_KEY = env("SECRET_KEY", default="insecure-dev-key")

# SECURITY WARNING: don't run with debug turned on in production!
DEBUG = env("DEBUG")

ALLOWED_HOSTS = env("ALLOWED_HOSTS")

# Application definition
INSTALLED_APPS = [
    "django.contrib.contenttypes",
    # Local apps
    "apps.web.dispatch",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.middleware.common.CommonMiddleware",
]

ROOT_URLCONF = "apps.web.config.urls"

WSGI_APPLICATION = "apps.web.config.wsgi.application"

# Orders live in DynamoDB; no relational database
DATABASES: dict[str, dict[str, str]] = {}

# Internationalization
LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = False
USE_TZ = True

# =============================================================================
# Commerce platform (Shopify)
# =============================================================================

SHOPIFY_STORE_DOMAIN = env("SHOPIFY_STORE_DOMAIN", default="")
SHOPIFY_ACCESS_TOKEN = env("SHOPIFY_ACCESS_TOKEN", default="")
SHOPIFY_WEBHOOK_SECRET = env("SHOPIFY_WEBHOOK_SECRET", default="")

# =============================================================================
# POS (Square)
# =============================================================================

SQUARE_ACCESS_TOKEN = env("SQUARE_ACCESS_TOKEN", default="")
SQUARE_SANDBOX = env("SQUARE_SANDBOX")

# Payment retries inside this window reuse the same idempotency key
PAYMENT_IDEMPOTENCY_WINDOW_SECONDS = env("PAYMENT_IDEMPOTENCY_WINDOW_SECONDS")

# =============================================================================
# Default location (used when an order's location is not fully configured)
# =============================================================================

DEFAULT_FULFILLMENT_LOCATION_ID = env("DEFAULT_FULFILLMENT_LOCATION_ID", default="")
DEFAULT_POS_LOCATION_ID = env("DEFAULT_POS_LOCATION_ID", default="")
DEFAULT_DELIVERY_API_KEY = env("DEFAULT_DELIVERY_API_KEY", default="")
DEFAULT_LOCATION_NAME = env("DEFAULT_LOCATION_NAME", default="Default")
DEFAULT_LOCATION_TIMEZONE = env("DEFAULT_LOCATION_TIMEZONE", default="America/New_York")

# =============================================================================
# AWS
# =============================================================================

AWS_REGION = env("AWS_REGION", default="us-east-1")
DISPATCH_ORDERS_TABLE = env("DISPATCH_ORDERS_TABLE", default="dispatch-orders")
DISPATCH_CONFIG_TABLE = env("DISPATCH_CONFIG_TABLE", default="")

# =============================================================================
# Logging
# =============================================================================

LOG_LEVEL = env("LOG_LEVEL", default="INFO")

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "simple": {"format": "%(asctime)s %(levelname)s %(name)s: %(message)s"},
    },
    "handlers": {
        "console": {"class": "logging.StreamHandler", "formatter": "simple"},
    },
    "loggers": {
        "apps.web.dispatch": {"handlers": ["console"], "level": LOG_LEVEL},
    },
}
