"""
Management command to calculate revenue statistics.

Meant to run from cron once a day (0 1 * * *); without options it
recalculates yesterday.
"""
from datetime import timedelta

from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from backend.core.cache_signals import suspend_cache_signals
from backend.core.cache_utils import invalidate_revenue_dashboard_cache
from backend.core.utils import parse_date
from backend.revenue.services import auto_calculate_daily_revenue


class Command(BaseCommand):
    help = "Calculate daily revenue statistics and the weekly/monthly rollups"

    def add_arguments(self, parser):
        parser.add_argument(
            '--date',
            type=str,
            help='Last day to calculate (YYYY-MM-DD). Defaults to yesterday.',
        )
        parser.add_argument(
            '--days',
            type=int,
            default=1,
            help='Number of days to calculate, counting back from --date',
        )

    def handle(self, *args, **options):
        if options['date']:
            try:
                last_day = parse_date(options['date'], 'date')
            except ValidationError as e:
                raise CommandError(f"Invalid --date: {options['date']}") from e
        else:
            last_day = timezone.localdate() - timedelta(days=1)
        days = options['days']
        if days < 1:
            raise CommandError('--days must be at least 1')

        failed = 0
        with suspend_cache_signals():
            for offset in range(days - 1, -1, -1):
                day = last_day - timedelta(days=offset)
                record = auto_calculate_daily_revenue(day)
                if record is None:
                    failed += 1
                    self.stdout.write(self.style.ERROR(f"  Failed: {day}"))
                else:
                    self.stdout.write(self.style.SUCCESS(
                        f"  {day}: revenue {record.total_revenue}, orders {record.total_orders}"
                    ))
        invalidate_revenue_dashboard_cache()

        if failed:
            self.stdout.write(self.style.WARNING(f"Completed with {failed} failed day(s)"))
        else:
            self.stdout.write(self.style.SUCCESS(f"Revenue statistics calculated for {days} day(s)"))
