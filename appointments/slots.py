# appointments/slots.py
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from django.utils import timezone

from .conflicts import ConflictIndex
from .exceptions import BookingValidationError
from .intervals import Interval, minutes_to_timedelta
from .models import WorkingHours
from .utils import AppointmentConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Slot:
    """A candidate interval on the availability grid; never stored"""
    start: datetime
    end: datetime
    available: bool

    @property
    def interval(self):
        return Interval(self.start, self.end)

    def to_dict(self):
        return {
            'start': timezone.localtime(self.start).isoformat(),
            'end': timezone.localtime(self.end).isoformat(),
            'available': self.available,
        }


class SlotGenerator:
    """
    Builds the availability grid for one resource on one date.

    Output depends only on the arguments, the weekly template and a single
    snapshot of the resource's bookings, so calls can run in parallel
    without locking.
    """

    def __init__(self, conflict_index=None):
        self.conflict_index = conflict_index or ConflictIndex()

    def _granularity(self, granularity_minutes):
        if granularity_minutes is None:
            granularity_minutes = AppointmentConfig.get_granularity_minutes()
        if granularity_minutes <= 0:
            raise BookingValidationError(
                'Slot granularity must be a positive number of minutes.',
                code='invalid:duration',
            )
        return granularity_minutes

    def _search_days(self, start_date, days_ahead):
        """The dates next_available walks, bounded by the advance booking limit"""
        limit = AppointmentConfig.get_advance_booking_days()
        if not 1 <= days_ahead <= limit:
            raise BookingValidationError(
                f'days_ahead must be between 1 and {limit}.',
                code='invalid:request',
            )
        try:
            return [start_date + timedelta(days=offset) for offset in range(days_ahead)]
        except OverflowError:
            raise BookingValidationError(
                'Search runs past the supported calendar.',
                code='invalid:request',
            ) from None

    def working_window(self, resource, date):
        """Working interval for the date, or None on a day off"""
        hours = WorkingHours.for_resource_and_day(resource, date.weekday())
        if hours is None or not hours.is_available:
            return None
        return hours.window_on(date)

    def generate_slots(self, resource, date, granularity_minutes=None):
        """
        Walk the day's working window in granularity steps.

        A trailing remainder shorter than one step is still emitted with its
        real width. Returns an empty list when the resource does not work
        that day.
        """
        granularity = self._granularity(granularity_minutes)
        window = self.working_window(resource, date)
        if window is None:
            return []

        snapshot = self.conflict_index.snapshot(resource, window)
        step = minutes_to_timedelta(granularity)

        slots = []
        current = window.start
        while current < window.end:
            # current + step can overflow on the last calendar day
            slot_end = current + step if window.end - current > step else window.end
            busy = snapshot.conflicts(Interval(current, slot_end))
            slots.append(Slot(current, slot_end, not busy))
            current = slot_end

        logger.debug(
            'Generated %d slots for %s on %s (%d booked)',
            len(slots), resource, date, len(snapshot)
        )
        return slots

    def next_available(self, resource, start_date, duration_minutes, days_ahead=14,
                       granularity_minutes=None, not_before=None):
        """
        First grid-aligned interval of duration_minutes that fits inside a
        working window without conflict, searching days_ahead days from
        start_date. Returns None when nothing fits.

        days_ahead must lie between 1 and the advance booking limit
        (AppointmentConfig.get_advance_booking_days).
        """
        granularity = self._granularity(granularity_minutes)
        if duration_minutes < granularity:
            raise BookingValidationError(
                f'Duration must be at least {granularity} minutes.',
                code='invalid:duration',
            )
        step = minutes_to_timedelta(granularity)
        duration = minutes_to_timedelta(duration_minutes)

        for day in self._search_days(start_date, days_ahead):
            window = self.working_window(resource, day)
            if window is None:
                continue

            snapshot = self.conflict_index.snapshot(resource, window)
            current = window.start
            while window.end - current >= duration:
                if not_before is None or current >= not_before:
                    candidate = Interval(current, current + duration)
                    if not snapshot.conflicts(candidate):
                        return candidate
                if window.end - current <= step:
                    break
                current += step
        return None
