# appointments/management/commands/find_booking_conflicts.py
import logging

from django.core.management.base import BaseCommand, CommandError

from appointments.models import RESOURCE_KINDS, Booking

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = 'Report active bookings that overlap on the same practitioner or room'

    def add_arguments(self, parser):
        parser.add_argument(
            '--fail',
            action='store_true',
            help='Exit with an error when any overlap is found',
        )

    def handle(self, *args, **options):
        self.stdout.write('Scanning active bookings for overlaps...')

        overlaps = []
        for kind in RESOURCE_KINDS:
            overlaps.extend(self._find_overlaps(kind))

        for kind, first, second in overlaps:
            self.stdout.write(
                self.style.WARNING(
                    f'  {kind} {getattr(first, f"{kind}_id")}: booking {first.pk} '
                    f'({first.start:%Y-%m-%d %H:%M}-{first.end:%H:%M}) overlaps booking {second.pk} '
                    f'({second.start:%Y-%m-%d %H:%M}-{second.end:%H:%M})'
                )
            )

        if not overlaps:
            self.stdout.write(self.style.SUCCESS('No overlapping bookings found.'))
            return

        logger.warning('Found %d overlapping booking pairs', len(overlaps))
        message = f'Found {len(overlaps)} overlapping booking pairs.'
        if options['fail']:
            raise CommandError(message)
        self.stdout.write(self.style.ERROR(message))

    def _find_overlaps(self, kind):
        """Sweep bookings per resource in start order, tracking the latest end seen"""
        field = f'{kind}_id'
        bookings = Booking.objects.active().order_by(field, 'start')

        current_resource = None
        latest = None
        for booking in bookings:
            resource_id = getattr(booking, field)
            if resource_id != current_resource:
                current_resource = resource_id
                latest = booking
                continue

            if booking.start < latest.end:
                yield kind, latest, booking
            if booking.end > latest.end:
                latest = booking
