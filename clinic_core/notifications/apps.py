from django.apps import AppConfig


class NotificationsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "clinic_core.notifications"

    def ready(self) -> None:
        from clinic_core.notifications import subscribers  # noqa: F401
