from django.core.management.base import BaseCommand

from booking.services.audit import purge_expired


class Command(BaseCommand):
    help = "Delete audit log entries older than the configured retention period."

    def handle(self, *args, **options):
        deleted = purge_expired()
        self.stdout.write(self.style.SUCCESS(f"Deleted {deleted} audit log entries"))
