# appointments/management/commands/create_scheduling_settings.py

from django.core.management.base import BaseCommand

from appointments.utils import AppointmentConfig
from core.models import SystemSetting


class Command(BaseCommand):
    help = 'Create editable system settings for the scheduling configuration'

    def handle(self, *args, **options):
        """Seed one SystemSetting per scheduling key from the current configuration"""
        window_start, window_end = AppointmentConfig.get_operating_window()
        working_days = AppointmentConfig.get_default_working_days()

        settings = [
            {
                'key': 'slot_granularity_minutes',
                'value': str(AppointmentConfig.get_granularity_minutes()),
                'description': 'Slot grid unit; booking durations must be a multiple of it',
            },
            {
                'key': 'operating_window_start',
                'value': f'{window_start:%H:%M}',
                'description': 'Default working window start for new weekly templates (HH:MM)',
            },
            {
                'key': 'operating_window_end',
                'value': f'{window_end:%H:%M}',
                'description': 'Default working window end for new weekly templates (HH:MM)',
            },
            {
                'key': 'default_working_days',
                'value': ','.join(str(day) for day in working_days),
                'description': 'Working weekdays for new templates, 0=Monday (comma separated)',
            },
            {
                'key': 'advance_booking_days',
                'value': str(AppointmentConfig.get_advance_booking_days()),
                'description': 'How many days ahead availability searches may look',
            },
        ]

        created_count = 0
        for setting_data in settings:
            setting, created = SystemSetting.objects.get_or_create(
                key=setting_data['key'],
                defaults={
                    'value': setting_data['value'],
                    'description': setting_data['description'],
                    'is_active': True,
                }
            )
            if created:
                created_count += 1
                self.stdout.write(self.style.SUCCESS(f'Created setting: {setting.key} = {setting.value}'))
            else:
                self.stdout.write(f'Setting already exists: {setting.key} = {setting.value}')

        self.stdout.write(
            self.style.SUCCESS(f'Created {created_count} of {len(settings)} scheduling settings.')
        )
