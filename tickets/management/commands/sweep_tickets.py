from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone
from django.utils.dateparse import parse_datetime

from tickets.exceptions import StoreUnavailableError
from tickets.sweeper import ExpirySweeper


class Command(BaseCommand):
    help = 'Expire tickets of elapsed events and send reminders for upcoming ones (run from cron)'

    def add_arguments(self, parser):
        parser.add_argument(
            '--now',
            help='ISO datetime to sweep as of (defaults to the current time)',
        )
        parser.add_argument(
            '--skip-reminders',
            action='store_true',
            help='Only expire tickets, do not queue reminders',
        )

    def handle(self, *args, **options):
        now = timezone.now()
        if options.get('now'):
            now = parse_datetime(options['now'])
            if now is None:
                raise CommandError(f"Bad --now value: {options['now']!r}")
            if timezone.is_naive(now):
                now = timezone.make_aware(now)

        sweeper = ExpirySweeper()
        try:
            expired = sweeper.sweep(now)
            reminded = 0 if options['skip_reminders'] else sweeper.send_reminders(now)
        except StoreUnavailableError as e:
            raise CommandError(f"Ticket store unavailable: {e}")

        self.stdout.write(self.style.SUCCESS(f'Expired: {expired}'))
        if not options['skip_reminders']:
            self.stdout.write(self.style.SUCCESS(f'Reminders: {reminded}'))
