"""
Run the reservation expiry sweep once.

Expires unanswered requests and unpaid approvals, and cancels sessions that
did not reach their minimum before the cutoff. Celery Beat runs the same
sweep every 5 minutes; this command is for hosts that schedule with cron.

Usage:
    python manage.py sweep_reservations
    python manage.py sweep_reservations --dry-run  # Preview what would be swept
"""

from django.core.management.base import BaseCommand

from apps.reservations.services import get_services


class Command(BaseCommand):
    help = 'Expire overdue reservations and cancel sessions below their minimum'

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Show what would be swept without changing anything',
        )

    def handle(self, *args, **options):
        dry_run = options['dry_run']
        summary = get_services().sweeper.run(dry_run=dry_run)

        if summary.total == 0:
            self.stdout.write(self.style.SUCCESS('✅ Nothing to sweep.'))
            return

        prefix = '🔍 DRY RUN: would process' if dry_run else '🧹 Processed'
        self.stdout.write(f'{prefix}:')
        self.stdout.write(f'  - {summary.pending_expired} unanswered requests')
        self.stdout.write(f'  - {summary.unpaid_expired} unpaid approvals')
        self.stdout.write(f'  - {summary.minimum_cancelled} reservations below session minimum')
        self.stdout.write(f'  - {summary.minimum_approved} reservations approved at session minimum')
        self.stdout.write(f'  - {summary.minimum_expired} reservations never approved at session minimum')

        if not dry_run:
            self.stdout.write(self.style.SUCCESS(f'✅ Swept {summary.total} reservations.'))
