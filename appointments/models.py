# appointments/models.py
from datetime import date, datetime, time, timedelta

from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone

from .intervals import Interval


class Practitioner(models.Model):
    """A dentist or hygienist that patients are booked against"""
    first_name = models.CharField(max_length=100)
    last_name = models.CharField(max_length=100)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['last_name', 'first_name']

    def __str__(self):
        return f"Dr. {self.full_name}"

    @property
    def full_name(self):
        return f"{self.first_name} {self.last_name}"

    def to_dict(self):
        return {'id': self.pk, 'name': self.full_name}


class Room(models.Model):
    """A treatment room (operatory)"""
    name = models.CharField(max_length=100, unique=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['name']

    def __str__(self):
        return self.name

    def to_dict(self):
        return {'id': self.pk, 'name': self.name}


RESOURCE_KINDS = ('practitioner', 'room')


def resource_kind(resource):
    """Name of the booking field a resource is stored under"""
    if isinstance(resource, Practitioner):
        return 'practitioner'
    if isinstance(resource, Room):
        return 'room'
    raise TypeError(f"Not a bookable resource: {resource!r}")


class WorkingHours(models.Model):
    """
    Weekly availability template: one optional working window per
    resource per weekday. Weekdays follow date.weekday() (0=Monday).
    """
    WEEKDAY_CHOICES = [
        (0, 'Monday'),
        (1, 'Tuesday'),
        (2, 'Wednesday'),
        (3, 'Thursday'),
        (4, 'Friday'),
        (5, 'Saturday'),
        (6, 'Sunday'),
    ]

    practitioner = models.ForeignKey(
        Practitioner, on_delete=models.CASCADE, null=True, blank=True, related_name='working_hours'
    )
    room = models.ForeignKey(
        Room, on_delete=models.CASCADE, null=True, blank=True, related_name='working_hours'
    )
    weekday = models.IntegerField(choices=WEEKDAY_CHOICES)
    is_available = models.BooleanField(default=True)
    window_start = models.TimeField(default=time(8, 0))
    window_end = models.TimeField(default=time(22, 0))

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name_plural = 'Working hours'
        ordering = ['weekday', 'window_start']
        constraints = [
            models.CheckConstraint(
                condition=models.Q(window_end__gt=models.F('window_start')),
                name='workinghours_end_after_start'
            ),
            models.CheckConstraint(
                condition=models.Q(weekday__gte=0) & models.Q(weekday__lte=6),
                name='workinghours_valid_weekday'
            ),
            models.CheckConstraint(
                condition=(
                    models.Q(practitioner__isnull=False, room__isnull=True) |
                    models.Q(practitioner__isnull=True, room__isnull=False)
                ),
                name='workinghours_single_resource'
            ),
            models.UniqueConstraint(
                fields=['practitioner', 'weekday'],
                condition=models.Q(practitioner__isnull=False),
                name='unique_practitioner_weekday'
            ),
            models.UniqueConstraint(
                fields=['room', 'weekday'],
                condition=models.Q(room__isnull=False),
                name='unique_room_weekday'
            ),
        ]

    def __str__(self):
        weekday_name = self.get_weekday_display()
        if self.is_available:
            return f"{self.resource} - {weekday_name} ({self.window_start:%H:%M}-{self.window_end:%H:%M})"
        return f"{self.resource} - {weekday_name} (Not Working)"

    @property
    def resource(self):
        return self.practitioner if self.practitioner_id else self.room

    def clean(self):
        if bool(self.practitioner_id) == bool(self.room_id):
            raise ValidationError('Working hours belong to exactly one practitioner or room.')
        if self.window_end <= self.window_start:
            raise ValidationError('End time must be after start time.')

    def window_on(self, date):
        """The working window as an aware interval on a concrete date"""
        return Interval.on_date(date, self.window_start, self.window_end)

    @classmethod
    def for_resource_and_day(cls, resource, weekday):
        """Template row for a resource and weekday, or None when unconfigured"""
        return cls.objects.filter(**{resource_kind(resource): resource}, weekday=weekday).first()

    @classmethod
    def create_default_schedule(cls, resource, working_days, window_start, window_end):
        """Create one row per weekday; days outside working_days are marked unavailable"""
        schedules = []
        for weekday in range(7):
            schedule, _ = cls.objects.get_or_create(
                weekday=weekday,
                defaults={
                    'is_available': weekday in working_days,
                    'window_start': window_start,
                    'window_end': window_end,
                },
                **{resource_kind(resource): resource}
            )
            schedules.append(schedule)
        return schedules


class BookingQuerySet(models.QuerySet):
    """Booking store queries used by the conflict index and the API"""

    def active(self):
        return self.exclude(status__in=Booking.NON_BLOCKING_STATUSES)

    def for_resource(self, resource):
        return self.filter(**{resource_kind(resource): resource})

    def overlapping(self, interval):
        return self.filter(start__lt=interval.end, end__gt=interval.start)

    def in_range(self, start_date, end_date):
        """Bookings touching any day from start_date through end_date inclusive"""
        tz = timezone.get_current_timezone()
        range_start = timezone.make_aware(datetime.combine(start_date, time.min), tz)
        bookings = self.filter(end__gt=range_start)
        if end_date < date.max:
            range_end = timezone.make_aware(datetime.combine(end_date + timedelta(days=1), time.min), tz)
            bookings = bookings.filter(start__lt=range_end)
        return bookings


class Booking(models.Model):
    SCHEDULED = 'scheduled'
    CONFIRMED = 'confirmed'
    COMPLETED = 'completed'
    CANCELLED = 'cancelled'

    STATUS_CHOICES = [
        (SCHEDULED, 'Scheduled'),
        (CONFIRMED, 'Confirmed'),
        (COMPLETED, 'Completed'),
        (CANCELLED, 'Cancelled'),
    ]

    TYPE_CHOICES = [
        ('checkup', 'Checkup'),
        ('cleaning', 'Cleaning'),
        ('filling', 'Filling'),
        ('extraction', 'Extraction'),
        ('root-canal', 'Root Canal'),
        ('crown', 'Crown'),
        ('consultation', 'Consultation'),
    ]

    # Cancelled bookings are kept but never block a resource
    NON_BLOCKING_STATUSES = [CANCELLED]

    patient = models.ForeignKey('patients.Patient', on_delete=models.PROTECT, related_name='bookings')
    practitioner = models.ForeignKey(Practitioner, on_delete=models.PROTECT, related_name='bookings')
    room = models.ForeignKey(Room, on_delete=models.PROTECT, related_name='bookings')
    start = models.DateTimeField()
    end = models.DateTimeField()
    type = models.CharField(max_length=20, choices=TYPE_CHOICES)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=SCHEDULED)
    notes = models.TextField(blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = BookingQuerySet.as_manager()

    class Meta:
        ordering = ['start']
        indexes = [
            models.Index(fields=['practitioner', 'start'], name='booking_practitioner_idx'),
            models.Index(fields=['room', 'start'], name='booking_room_idx'),
            models.Index(fields=['status'], name='booking_status_idx'),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(end__gt=models.F('start')),
                name='booking_end_after_start'
            ),
        ]

    def __str__(self):
        return f"{self.patient.full_name} - {self.start:%Y-%m-%d %H:%M} ({self.type})"

    @property
    def interval(self):
        return Interval(self.start, self.end)

    @property
    def duration_minutes(self):
        return int((self.end - self.start).total_seconds() // 60)

    @property
    def is_active(self):
        """Whether this booking blocks its practitioner and room"""
        return self.status not in self.NON_BLOCKING_STATUSES

    def clean(self):
        if self.start and self.end and self.end <= self.start:
            raise ValidationError('End time must be after start time.')

    def to_dict(self):
        return {
            'id': self.pk,
            'patient_id': self.patient_id,
            'practitioner_id': self.practitioner_id,
            'room_id': self.room_id,
            'start': timezone.localtime(self.start).isoformat(),
            'end': timezone.localtime(self.end).isoformat(),
            'duration_minutes': self.duration_minutes,
            'type': self.type,
            'status': self.status,
            'notes': self.notes,
        }
