# appointments/intervals.py
from dataclasses import dataclass
from datetime import datetime, timedelta

from django.utils import timezone

from .exceptions import BookingValidationError


def minutes_to_timedelta(minutes):
    """timedelta for a minute count, rejecting counts no timedelta can hold"""
    try:
        return timedelta(minutes=minutes)
    except OverflowError:
        raise BookingValidationError(
            f'Duration of {minutes} minutes is out of range.',
            code='invalid:duration',
        ) from None


@dataclass(frozen=True)
class Interval:
    """
    Half-open time range [start, end) of timezone-aware datetimes.

    Touching intervals do not overlap: [09:00, 09:30) and [09:30, 10:00)
    can both be booked for the same resource.
    """
    start: datetime
    end: datetime

    def __post_init__(self):
        if timezone.is_naive(self.start) or timezone.is_naive(self.end):
            raise BookingValidationError(
                'Interval bounds must carry an explicit UTC offset.',
                code='invalid:interval',
            )
        if self.end <= self.start:
            raise BookingValidationError(
                'End time must be after start time.',
                code='invalid:interval',
            )

    def __str__(self):
        return f"{self.start.isoformat()} - {self.end.isoformat()}"

    @classmethod
    def from_duration(cls, start, minutes):
        try:
            end = start + minutes_to_timedelta(minutes)
        except OverflowError:
            raise BookingValidationError(
                f'A {minutes} minute booking ends past the supported calendar.',
                code='invalid:duration',
            ) from None
        return cls(start, end)

    @classmethod
    def on_date(cls, date, start_time, end_time, tz=None):
        """Combine wall-clock times on a date in the clinic timezone"""
        tz = tz or timezone.get_current_timezone()
        return cls(
            timezone.make_aware(datetime.combine(date, start_time), tz),
            timezone.make_aware(datetime.combine(date, end_time), tz),
        )

    @property
    def duration(self):
        return self.end - self.start

    @property
    def duration_minutes(self):
        return int(self.duration.total_seconds() // 60)

    def overlaps(self, other):
        return self.start < other.end and other.start < self.end

    def contains(self, instant):
        return self.start <= instant < self.end

    def covers(self, other):
        """Whether other lies entirely inside this interval"""
        return self.start <= other.start and other.end <= self.end

    def to_dict(self):
        return {
            'start': self.start.isoformat(),
            'end': self.end.isoformat(),
        }
