# appointments/exceptions.py
"""
Typed rejections raised by the scheduling engine.

Every error carries a machine-readable ``reason`` that the JSON API passes
through unchanged:

    invalid:interval, invalid:duration, invalid:type, invalid:status
    conflict:practitioner, conflict:room
    not_found
    storage
"""

from django.core.exceptions import ObjectDoesNotExist, ValidationError


class BookingValidationError(ValidationError):
    """Malformed interval, off-grid duration or unknown enum value"""

    def __init__(self, message, code='invalid:interval', params=None):
        super().__init__(message, code=code, params=params)

    @property
    def reason(self):
        return self.code


class BookingConflictError(Exception):
    """The candidate interval overlaps an active booking on one or more resources"""

    def __init__(self, resources, conflicting_ids=None):
        self.resources = list(resources)
        self.conflicting_ids = list(conflicting_ids or [])
        super().__init__(
            f"Booking overlaps an existing booking for {', '.join(self.resources)}"
        )

    @property
    def reason(self):
        return f"conflict:{self.resources[0]}"

    @property
    def reasons(self):
        return [f"conflict:{resource}" for resource in self.resources]


class BookingNotFound(ObjectDoesNotExist):
    reason = 'not_found'


class StorageError(Exception):
    """The booking store failed; raised from the underlying DatabaseError"""
    reason = 'storage'
