from datetime import timedelta

from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone
from django.utils.dateparse import parse_date

from booking.models import CaseBooking
from booking.services.usage import recalculate_daily_usage


class Command(BaseCommand):
    help = "Rebuild daily usage totals from booked quantities."

    def add_arguments(self, parser):
        parser.add_argument('--date', help='Start date (YYYY-MM-DD), defaults to today')
        parser.add_argument('--days', type=int, default=1)
        parser.add_argument('--country', help='Only this country')

    def handle(self, *args, **options):
        start = timezone.localdate()
        if options['date']:
            start = parse_date(options['date'])
            if start is None:
                raise CommandError('--date must be YYYY-MM-DD')
        days = max(1, options['days'])
        countries = [options['country']] if options['country'] else list(
            CaseBooking.objects.values_list('country', flat=True).distinct()
        )

        rows = 0
        for offset in range(days):
            day = start + timedelta(days=offset)
            for country in countries:
                rows += recalculate_daily_usage(day, country)
        self.stdout.write(self.style.SUCCESS(f"Rebuilt {rows} usage rows for {len(countries)} countries over {days} days"))
