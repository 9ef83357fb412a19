# config/settings/test.py
from .base import *  # noqa

DEBUG = False

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}

PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]
EMAIL_BACKEND = "django.core.mail.backends.locmem.EmailBackend"

CLINIC_NOTIFICATION_BACKEND = "clinic_core.notifications.dispatch.EmailNotificationDispatcher"

LOGGING["loggers"]["clinic_core"]["level"] = "WARNING"
