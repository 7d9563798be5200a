# appointments/engine.py
"""
Booking mutations: create, move, resize, status changes and hard delete.

Every operation builds the candidate state, validates it and only then
writes, all inside one transaction that holds row locks on the booking,
its practitioner and its room (always locked in that order). Two requests
racing for the same practitioner or room are therefore serialised and the
second one re-reads the bookings the first one committed.
"""

import logging
from contextlib import contextmanager
from datetime import datetime, timedelta

from django.db import DatabaseError, transaction
from django.utils import timezone

from core.models import AuditLog
from patients.models import Patient

from .conflicts import ConflictIndex
from .exceptions import BookingConflictError, BookingNotFound, BookingValidationError, StorageError
from .intervals import Interval, minutes_to_timedelta
from .models import Booking, Practitioner, Room
from .utils import AppointmentConfig

logger = logging.getLogger(__name__)

BOOKING_STATUSES = [value for value, _ in Booking.STATUS_CHOICES]
BOOKING_TYPES = [value for value, _ in Booking.TYPE_CHOICES]


def _iso(value):
    return timezone.localtime(value).isoformat()


class RescheduleEngine:

    def __init__(self, granularity_minutes=None, conflict_index=None, user=None):
        self._granularity_minutes = granularity_minutes
        self.conflict_index = conflict_index or ConflictIndex()
        self.user = user

    @property
    def granularity_minutes(self):
        if self._granularity_minutes is None:
            return AppointmentConfig.get_granularity_minutes()
        return self._granularity_minutes

    # Queries

    def get_booking(self, booking):
        return self._fetch(Booking.objects.select_related('patient', 'practitioner', 'room'), booking)

    def bookings_in_range(self, start_date, end_date, resource=None, include_cancelled=False):
        """Bookings touching the given days, optionally narrowed to one resource"""
        if end_date < start_date:
            raise BookingValidationError('End date must be on or after start date.', code='invalid:interval')
        bookings = Booking.objects.in_range(start_date, end_date)
        if not include_cancelled:
            bookings = bookings.active()
        if resource is not None:
            bookings = bookings.for_resource(resource)
        return bookings.select_related('patient', 'practitioner', 'room').order_by('start')

    # Mutations

    def create(self, patient, practitioner, room, interval, booking_type, notes=''):
        """Book a new appointment in status 'scheduled'"""
        self._validate_type(booking_type)
        self._validate_duration(interval.duration)

        with self._transaction():
            practitioner = self._lock(Practitioner, practitioner)
            room = self._lock(Room, room)
            patient = self._fetch(Patient.objects.all(), patient)

            self._ensure_free(practitioner, room, interval)

            booking = Booking.objects.create(
                patient=patient,
                practitioner=practitioner,
                room=room,
                start=interval.start,
                end=interval.end,
                type=booking_type,
                status=Booking.SCHEDULED,
                notes=notes or '',
            )
            self._audit('create', booking, {
                'start': _iso(booking.start),
                'end': _iso(booking.end),
                'practitioner_id': practitioner.pk,
                'room_id': room.pk,
            })

        logger.info('Created booking %s for %s with %s in %s', booking.pk, interval, practitioner, room)
        return booking

    def move(self, booking, new_practitioner, new_room, new_interval):
        """
        Change time and/or resources of a booking.

        new_practitioner / new_room of None keep the current resource.
        new_interval may be a start datetime, in which case the booking keeps
        its current duration.
        """
        with self._transaction():
            booking = self._lock(Booking, booking)
            if isinstance(new_interval, datetime):
                new_interval = Interval.from_duration(new_interval, booking.duration_minutes)
            self._validate_duration(new_interval.duration)

            practitioner = self._lock(
                Practitioner, new_practitioner if new_practitioner is not None else booking.practitioner_id
            )
            room = self._lock(Room, new_room if new_room is not None else booking.room_id)

            if booking.is_active:
                self._ensure_free(practitioner, room, new_interval, exclude_booking_id=booking.pk)

            changes = {
                'start': [_iso(booking.start), _iso(new_interval.start)],
                'end': [_iso(booking.end), _iso(new_interval.end)],
                'practitioner_id': [booking.practitioner_id, practitioner.pk],
                'room_id': [booking.room_id, room.pk],
            }
            booking.practitioner = practitioner
            booking.room = room
            booking.start = new_interval.start
            booking.end = new_interval.end
            booking.save(update_fields=['practitioner', 'room', 'start', 'end', 'updated_at'])
            self._audit('move', booking, changes)

        logger.info('Moved booking %s to %s (%s, %s)', booking.pk, new_interval, practitioner, room)
        return booking

    def resize(self, booking, new_duration_minutes):
        """Keep the start, change the end. Durations off the grid are rejected, not clamped."""
        self._validate_duration(minutes_to_timedelta(new_duration_minutes))

        with self._transaction():
            booking = self._lock(Booking, booking)
            new_interval = Interval.from_duration(booking.start, new_duration_minutes)

            if booking.is_active:
                practitioner = self._lock(Practitioner, booking.practitioner_id)
                room = self._lock(Room, booking.room_id)
                self._ensure_free(practitioner, room, new_interval, exclude_booking_id=booking.pk)

            changes = {'end': [_iso(booking.end), _iso(new_interval.end)]}
            booking.end = new_interval.end
            booking.save(update_fields=['end', 'updated_at'])
            self._audit('resize', booking, changes)

        logger.info('Resized booking %s to %d minutes', booking.pk, new_duration_minutes)
        return booking

    def set_status(self, booking, new_status):
        """
        Any status may follow any other. Cancelling frees the resources at
        once; bringing a cancelled booking back re-checks its interval.
        """
        if new_status not in BOOKING_STATUSES:
            raise BookingValidationError(
                f"Unknown status '{new_status}'. Expected one of: {', '.join(BOOKING_STATUSES)}.",
                code='invalid:status',
            )

        with self._transaction():
            booking = self._lock(Booking, booking)
            reactivating = not booking.is_active and new_status not in Booking.NON_BLOCKING_STATUSES
            if reactivating:
                practitioner = self._lock(Practitioner, booking.practitioner_id)
                room = self._lock(Room, booking.room_id)
                self._ensure_free(practitioner, room, booking.interval, exclude_booking_id=booking.pk)

            changes = {'status': [booking.status, new_status]}
            booking.status = new_status
            booking.save(update_fields=['status', 'updated_at'])
            self._audit('status', booking, changes)

        logger.info('Booking %s is now %s', booking.pk, new_status)
        return booking

    def cancel(self, booking):
        return self.set_status(booking, Booking.CANCELLED)

    def update_details(self, booking, booking_type=None, notes=None):
        """Change appointment type and/or notes; time and resources are untouched"""
        if booking_type is not None:
            self._validate_type(booking_type)

        with self._transaction():
            booking = self._lock(Booking, booking)
            changes = {}
            if booking_type is not None and booking_type != booking.type:
                changes['type'] = [booking.type, booking_type]
                booking.type = booking_type
            if notes is not None and notes != booking.notes:
                changes['notes'] = [booking.notes, notes]
                booking.notes = notes
            if changes:
                booking.save(update_fields=['type', 'notes', 'updated_at'])
                self._audit('update', booking, changes)
        return booking

    def delete(self, booking):
        """Hard removal. Cancelling keeps the row; this does not."""
        with self._transaction():
            booking = self._lock(Booking, booking)
            booking_id = booking.pk
            self._audit('delete', booking, {
                'start': _iso(booking.start),
                'end': _iso(booking.end),
                'status': booking.status,
            })
            booking.delete()

        logger.info('Deleted booking %s', booking_id)
        return booking_id

    # Helpers

    @contextmanager
    def _transaction(self):
        try:
            with transaction.atomic():
                yield
        except DatabaseError as e:
            logger.error('Booking store failure: %s', e, exc_info=True)
            raise StorageError(str(e)) from e

    def _fetch(self, queryset, obj_or_pk):
        pk = getattr(obj_or_pk, 'pk', obj_or_pk)
        model = queryset.model
        try:
            return queryset.get(pk=pk)
        except (model.DoesNotExist, ValueError, TypeError):
            raise BookingNotFound(f'{model._meta.verbose_name.capitalize()} {pk} does not exist.') from None

    def _lock(self, model, obj_or_pk):
        return self._fetch(model.objects.select_for_update(), obj_or_pk)

    def _validate_type(self, booking_type):
        if booking_type not in BOOKING_TYPES:
            raise BookingValidationError(
                f"Unknown appointment type '{booking_type}'.",
                code='invalid:type',
            )

    def _validate_duration(self, duration):
        granularity = self.granularity_minutes
        unit = timedelta(minutes=granularity)
        if duration < unit:
            raise BookingValidationError(
                f'Bookings must last at least {granularity} minutes.',
                code='invalid:duration',
            )
        if duration % unit:
            raise BookingValidationError(
                f'Booking duration must be a multiple of {granularity} minutes.',
                code='invalid:duration',
            )

    def _ensure_free(self, practitioner, room, interval, exclude_booking_id=None):
        found = self.conflict_index.conflicts_by_resource(
            practitioner, room, interval, exclude_booking_id=exclude_booking_id
        )
        if found:
            conflicting_ids = list(dict.fromkeys(pk for pks in found.values() for pk in pks))
            error = BookingConflictError(found.keys(), conflicting_ids)
            logger.info('Rejected %s for %s: %s', interval, exclude_booking_id or 'new booking', error.reasons)
            raise error

    def _audit(self, action, booking, changes):
        AuditLog.log_action(self.user, action, booking, changes)
