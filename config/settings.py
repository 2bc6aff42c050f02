"""
Comanda – Django Settings (Infrastructure Only)
================================================
Django hosts the event store (ORM, migrations, transactions) and
the logging configuration. The engines do not depend on Django
beyond ``core.event_store`` and the ``COMANDA`` setting block.
"""

import os
from pathlib import Path

# ── Paths ─────────────────────────────────────────────────────
BASE_DIR = Path(__file__).resolve().parent.parent

# ── Security ──────────────────────────────────────────────────
SECRET_KEY = os.environ.get("COMANDA_SECRET_KEY", "comanda-dev-key-replace-before-deployment")

DEBUG = os.environ.get("COMANDA_DEBUG", "1") == "1"

ALLOWED_HOSTS = []

# ── Installed Apps ────────────────────────────────────────────
INSTALLED_APPS = [
    "django.contrib.contenttypes",
    # ── Comanda Modules ───────────────────────────────────
    "core.event_store",
]

# ── Database ──────────────────────────────────────────────────
# SQLite for development. Production DB configured separately.
DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": os.environ.get("COMANDA_DB_PATH", str(BASE_DIR / "db.sqlite3")),
    }
}

# ── Internationalization ──────────────────────────────────────
LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

# ── Default Primary Key ──────────────────────────────────────
# Events use UUID primary keys explicitly. This is a Django fallback only.
DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# ── Ledger ────────────────────────────────────────────────────
COMANDA = {
    "ALLOW_NEGATIVE_STOCK": os.environ.get("COMANDA_ALLOW_NEGATIVE_STOCK", "1") == "1",
}

# ── Logging ───────────────────────────────────────────────────
LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "plain": {
            "format": "%(asctime)s %(levelname)s %(name)s: %(message)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "plain",
        },
    },
    "loggers": {
        "comanda": {
            "handlers": ["console"],
            "level": os.environ.get("COMANDA_LOG_LEVEL", "INFO"),
            "propagate": True,
        },
    },
}
