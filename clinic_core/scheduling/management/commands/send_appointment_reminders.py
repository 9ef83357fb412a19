from django.core.management.base import BaseCommand

from clinic_core.scheduling.reminders import ReminderService


class Command(BaseCommand):
    help = "Send reminder e-mails for appointments starting within the reminder window."

    def handle(self, *args, **options):
        result = ReminderService.process_due_reminders()
        self.stdout.write(
            self.style.SUCCESS(
                f"Reminders processed: {result.processed}, sent: {result.sent}, failed: {result.failed}"
            )
        )
