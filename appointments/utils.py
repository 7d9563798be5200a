# appointments/utils.py - Scheduling configuration and duration helpers
from datetime import datetime, time

from django.conf import settings

from core.models import SystemSetting


def _default(name, fallback):
    return getattr(settings, 'SCHEDULING', {}).get(name, fallback)


def _parse_time(value):
    if isinstance(value, time):
        return value
    return datetime.strptime(value, '%H:%M').time()


class AppointmentConfig:
    """
    Scheduling configuration lookup.

    An active SystemSetting row wins, then settings.SCHEDULING, then the
    clinic's reference values (20 minute grid, 08:00-22:00).
    """

    @classmethod
    def get_granularity_minutes(cls):
        """Slot grid unit in minutes"""
        default = int(_default('SLOT_GRANULARITY_MINUTES', 20))
        return SystemSetting.get_int_setting('slot_granularity_minutes', default)

    @classmethod
    def get_operating_window(cls):
        """Default working window used when seeding weekly templates"""
        start = _parse_time(_default('OPERATING_WINDOW_START', '08:00'))
        end = _parse_time(_default('OPERATING_WINDOW_END', '22:00'))
        return (
            SystemSetting.get_time_setting('operating_window_start', start),
            SystemSetting.get_time_setting('operating_window_end', end),
        )

    @classmethod
    def get_default_working_days(cls):
        default = list(_default('DEFAULT_WORKING_DAYS', [0, 1, 2, 3, 4]))
        return SystemSetting.get_list_setting('default_working_days', default)

    @classmethod
    def get_advance_booking_days(cls):
        """How many days ahead availability searches may look"""
        default = int(_default('ADVANCE_BOOKING_DAYS', 60))
        return SystemSetting.get_int_setting('advance_booking_days', default)


def snap_to_granularity(minutes, granularity):
    """
    Round a duration to the nearest multiple of the grid, never below one unit.

    Callers clamp dragged or typed durations with this before calling
    RescheduleEngine.resize, which rejects anything off the grid.
    """
    units = max(1, (int(minutes) + granularity // 2) // granularity)
    return units * granularity


def duration_from_parts(hours, minutes):
    """Collapse an hours + minutes picker into a single minute count"""
    return int(hours) * 60 + int(minutes)
