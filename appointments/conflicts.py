# appointments/conflicts.py
"""
Overlap detection against active bookings.

Practitioners and rooms are checked independently: a booking is valid only
when neither of its resources has another active booking overlapping it.
Cancelled bookings never count.
"""

from .models import Booking, resource_kind


class ResourceSnapshot:
    """Active bookings of one resource inside a window, read in a single query"""

    def __init__(self, resource, window, bookings):
        self.resource = resource
        self.window = window
        self._intervals = [(booking.pk, booking.interval) for booking in bookings]

    def __len__(self):
        return len(self._intervals)

    def conflicts(self, interval, exclude_booking_id=None):
        return any(
            booking_id != exclude_booking_id and booked.overlaps(interval)
            for booking_id, booked in self._intervals
        )


class ConflictIndex:
    """
    Answers "is this resource free for this interval?" against the booking store.

    queryset narrows the store the index reads from (defaults to every booking);
    the active-status filter is always applied on top of it.
    """

    def __init__(self, queryset=None):
        self.queryset = queryset

    def _active_bookings(self):
        queryset = self.queryset if self.queryset is not None else Booking.objects.all()
        return queryset.active()

    def conflicting_bookings(self, resource, interval, exclude_booking_id=None):
        bookings = self._active_bookings().for_resource(resource).overlapping(interval)
        if exclude_booking_id is not None:
            bookings = bookings.exclude(pk=exclude_booking_id)
        return bookings.order_by('start')

    def conflicts(self, resource, interval, exclude_booking_id=None):
        return self.conflicting_bookings(resource, interval, exclude_booking_id).exists()

    def conflicts_by_resource(self, practitioner, room, interval, exclude_booking_id=None):
        """
        Map each conflicted resource kind to the ids of the bookings in the way.

        Practitioner comes first; resources without a conflict are left out,
        so an empty dict means the interval is free on both.
        """
        found = {}
        for resource in (practitioner, room):
            ids = list(
                self.conflicting_bookings(resource, interval, exclude_booking_id)
                .values_list('pk', flat=True)
            )
            if ids:
                found[resource_kind(resource)] = ids
        return found

    def snapshot(self, resource, window):
        bookings = self._active_bookings().for_resource(resource).overlapping(window)
        return ResourceSnapshot(resource, window, list(bookings))
