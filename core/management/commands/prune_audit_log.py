# core/management/commands/prune_audit_log.py
"""
Delete booking audit rows past their retention period.

Usage: python manage.py prune_audit_log --days=365 [--action=move] [--dry-run]
"""

import logging
from datetime import timedelta

from django.core.management.base import BaseCommand, CommandError
from django.db.models import Count
from django.utils import timezone

from core.models import AuditLog

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = 'Delete audit log rows older than the retention period'

    def add_arguments(self, parser):
        parser.add_argument(
            '--days',
            type=int,
            default=365,
            help='Keep rows from the last N days (default: 365)',
        )
        parser.add_argument(
            '--action',
            choices=[action for action, _ in AuditLog.ACTION_CHOICES],
            help='Only prune rows for this action',
        )
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Report what would be deleted without deleting',
        )

    def handle(self, *args, **options):
        days = options['days']
        if days < 1:
            raise CommandError('--days must be at least 1')

        cutoff = timezone.now() - timedelta(days=days)
        expired = AuditLog.objects.filter(timestamp__lt=cutoff)
        if options['action']:
            expired = expired.filter(action=options['action'])

        breakdown = dict(
            expired.order_by().values_list('action').annotate(total=Count('pk'))
        )
        count = sum(breakdown.values())

        if count == 0:
            self.stdout.write(self.style.SUCCESS(f'No audit rows older than {days} days.'))
            return

        if options['dry_run']:
            self.stdout.write(
                self.style.WARNING(f'DRY RUN: would delete {count} audit rows before {cutoff:%Y-%m-%d}')
            )
            for action, label in AuditLog.ACTION_CHOICES:
                if breakdown.get(action):
                    self.stdout.write(f'  {label}: {breakdown[action]}')
            return

        expired.delete()
        logger.info('Pruned %d audit rows older than %s', count, cutoff)
        self.stdout.write(self.style.SUCCESS(f'Deleted {count} audit rows before {cutoff:%Y-%m-%d}'))
