# appointments/management/commands/create_default_working_hours.py

from django.core.management.base import BaseCommand
from django.db import transaction

from appointments.models import Practitioner, Room, WorkingHours, resource_kind
from appointments.utils import AppointmentConfig


class Command(BaseCommand):
    help = 'Create default weekly working hours for active practitioners (and optionally rooms)'

    def add_arguments(self, parser):
        parser.add_argument(
            '--force',
            action='store_true',
            help='Reset existing working hours to the configured defaults',
        )
        parser.add_argument(
            '--practitioner',
            type=int,
            help='Create working hours for a specific practitioner ID only',
        )
        parser.add_argument(
            '--rooms',
            action='store_true',
            help='Also create working hours for active rooms',
        )

    def handle(self, *args, **options):
        force_update = options['force']
        practitioner_id = options.get('practitioner')

        practitioners = Practitioner.objects.filter(is_active=True)
        if practitioner_id:
            practitioners = practitioners.filter(id=practitioner_id)
            if not practitioners.exists():
                self.stdout.write(
                    self.style.ERROR(f'No active practitioner found with ID {practitioner_id}')
                )
                return

        resources = list(practitioners)
        if options['rooms']:
            resources.extend(Room.objects.filter(is_active=True))

        if not resources:
            self.stdout.write(self.style.ERROR('No active practitioners or rooms found!'))
            return

        window_start, window_end = AppointmentConfig.get_operating_window()
        working_days = AppointmentConfig.get_default_working_days()

        created_count = 0
        updated_count = 0

        with transaction.atomic():
            for resource in resources:
                self.stdout.write(f'Processing {resource}...')
                existing = {
                    row.weekday: row
                    for row in WorkingHours.objects.filter(
                        **{resource_kind(resource): resource}
                    )
                }

                for schedule in WorkingHours.create_default_schedule(
                    resource, working_days, window_start, window_end
                ):
                    day_name = schedule.get_weekday_display()
                    if schedule.weekday not in existing:
                        created_count += 1
                        self.stdout.write(f'  + Created {day_name}: {self._describe(schedule)}')
                    elif force_update:
                        schedule.is_available = schedule.weekday in working_days
                        schedule.window_start = window_start
                        schedule.window_end = window_end
                        schedule.save()
                        updated_count += 1
                        self.stdout.write(f'  ~ Updated {day_name}: {self._describe(schedule)}')
                    else:
                        self.stdout.write(f'  - {day_name}: Already exists')

        self.stdout.write(
            self.style.SUCCESS(
                f'Processed {len(resources)} resources. '
                f'Created {created_count} rows, updated {updated_count} rows.'
            )
        )

        if not force_update and created_count == 0:
            self.stdout.write(
                self.style.WARNING('No new working hours were created. Use --force to reset existing rows.')
            )

    def _describe(self, schedule):
        if not schedule.is_available:
            return 'Not Working'
        return f'{schedule.window_start:%H:%M}-{schedule.window_end:%H:%M}'
