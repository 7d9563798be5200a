# appointments/views.py - JSON API over the slot generator and reschedule engine

import json
import logging

from django.http import JsonResponse
from django.utils.dateparse import parse_date, parse_datetime
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_http_methods, require_POST

from .engine import RescheduleEngine
from .exceptions import BookingConflictError, BookingNotFound, BookingValidationError, StorageError
from .intervals import Interval
from .models import Practitioner, Room
from .slots import SlotGenerator

logger = logging.getLogger(__name__)

SCHEDULING_ERRORS = (BookingValidationError, BookingConflictError, BookingNotFound, StorageError)


def _error_response(error):
    """Map a scheduling error to a JSON body carrying its machine reason"""
    if isinstance(error, BookingValidationError):
        return JsonResponse({'error': error.messages[0], 'reason': error.reason}, status=400)
    if isinstance(error, BookingConflictError):
        return JsonResponse({
            'error': str(error),
            'reason': error.reason,
            'reasons': error.reasons,
            'conflicts': error.conflicting_ids,
        }, status=409)
    if isinstance(error, BookingNotFound):
        return JsonResponse({'error': str(error), 'reason': error.reason}, status=404)
    logger.error('Storage error while handling request: %s', error)
    return JsonResponse({'error': 'Booking store unavailable', 'reason': error.reason}, status=503)


def _engine(request):
    user = request.user if getattr(request, 'user', None) and request.user.is_authenticated else None
    return RescheduleEngine(user=user)


def _json_body(request):
    try:
        data = json.loads(request.body or b'{}')
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise BookingValidationError('Request body must be valid JSON.', code='invalid:request')
    if not isinstance(data, dict):
        raise BookingValidationError('Request body must be a JSON object.', code='invalid:request')
    return data


def _require(data, *fields):
    missing = [field for field in fields if data.get(field) in (None, '')]
    if missing:
        raise BookingValidationError(
            f"Missing required fields: {', '.join(missing)}", code='invalid:request'
        )


def _parse_instant(value, field):
    try:
        parsed = parse_datetime(value) if isinstance(value, str) else None
    except ValueError:
        parsed = None
    if parsed is None:
        raise BookingValidationError(
            f'{field} must be an ISO-8601 timestamp with offset.', code='invalid:interval'
        )
    return parsed


def _parse_day(value, field):
    try:
        parsed = parse_date(value) if value else None
    except ValueError:
        parsed = None
    if parsed is None:
        raise BookingValidationError(f'{field} must be a date in YYYY-MM-DD format.', code='invalid:request')
    return parsed


def _parse_int(value, field):
    """Whole numbers only: JSON floats and booleans are rejected, not coerced"""
    if isinstance(value, bool) or not isinstance(value, (int, str)):
        raise BookingValidationError(f'{field} must be an integer.', code='invalid:request')
    try:
        return int(value)
    except ValueError:
        raise BookingValidationError(f'{field} must be an integer.', code='invalid:request') from None


def _resource_from_params(params, required=True):
    """Resolve ?practitioner=<id> or ?room=<id> to a model instance"""
    for model, key in ((Practitioner, 'practitioner'), (Room, 'room')):
        value = params.get(key)
        if value:
            try:
                return model.objects.get(pk=_parse_int(value, key))
            except model.DoesNotExist:
                raise BookingNotFound(f'{key.capitalize()} {value} does not exist.') from None
    if required:
        raise BookingValidationError('practitioner or room is required.', code='invalid:request')
    return None


@require_GET
def get_slots_api(request):
    """
    API ENDPOINT: Availability grid for one practitioner or room on one date
    """
    try:
        resource = _resource_from_params(request.GET)
        date = _parse_day(request.GET.get('date'), 'date')
        granularity = request.GET.get('granularity')
        if granularity is not None:
            granularity = _parse_int(granularity, 'granularity')

        slots = SlotGenerator().generate_slots(resource, date, granularity)
    except SCHEDULING_ERRORS as e:
        return _error_response(e)

    return JsonResponse({
        'date': date.isoformat(),
        'slots': [slot.to_dict() for slot in slots],
    })


@require_GET
def get_next_available_api(request):
    """
    API ENDPOINT: First free interval of a given length, for offering alternatives after a conflict
    """
    try:
        resource = _resource_from_params(request.GET)
        date = _parse_day(request.GET.get('date'), 'date')
        duration = _parse_int(request.GET.get('duration'), 'duration')
        days_ahead = _parse_int(request.GET.get('days_ahead', 14), 'days_ahead')

        interval = SlotGenerator().next_available(resource, date, duration, days_ahead=days_ahead)
    except SCHEDULING_ERRORS as e:
        return _error_response(e)

    return JsonResponse({'available': interval.to_dict() if interval else None})


@csrf_exempt
@require_http_methods(['GET', 'POST'])
def bookings_api(request):
    """
    API ENDPOINT: GET lists bookings in a date range, POST creates a booking
    """
    engine = _engine(request)

    if request.method == 'GET':
        try:
            start_date = _parse_day(request.GET.get('start_date'), 'start_date')
            end_date = _parse_day(request.GET.get('end_date'), 'end_date')
            resource = _resource_from_params(request.GET, required=False)
            include_cancelled = request.GET.get('include_cancelled', '').lower() in ('1', 'true', 'yes')

            bookings = engine.bookings_in_range(start_date, end_date, resource, include_cancelled)
            return JsonResponse({'bookings': [booking.to_dict() for booking in bookings]})
        except SCHEDULING_ERRORS as e:
            return _error_response(e)

    try:
        data = _json_body(request)
        _require(data, 'patient_id', 'practitioner_id', 'room_id', 'start', 'type')

        start = _parse_instant(data['start'], 'start')
        if data.get('end'):
            interval = Interval(start, _parse_instant(data['end'], 'end'))
        else:
            _require(data, 'duration_minutes')
            interval = Interval.from_duration(start, _parse_int(data['duration_minutes'], 'duration_minutes'))

        booking = engine.create(
            _parse_int(data['patient_id'], 'patient_id'),
            _parse_int(data['practitioner_id'], 'practitioner_id'),
            _parse_int(data['room_id'], 'room_id'),
            interval,
            data['type'],
            notes=data.get('notes', ''),
        )
    except SCHEDULING_ERRORS as e:
        return _error_response(e)

    return JsonResponse(booking.to_dict(), status=201)


@csrf_exempt
@require_http_methods(['GET', 'PATCH', 'DELETE'])
def booking_detail_api(request, pk):
    """
    API ENDPOINT: Fetch, edit type/notes, or hard-delete a single booking
    """
    engine = _engine(request)
    try:
        if request.method == 'GET':
            booking = engine.get_booking(pk)
            data = booking.to_dict()
            data.update({
                'patient': booking.patient.to_dict(),
                'practitioner': booking.practitioner.to_dict(),
                'room': booking.room.to_dict(),
            })
            return JsonResponse(data)

        if request.method == 'DELETE':
            engine.delete(pk)
            return JsonResponse({'success': True})

        data = _json_body(request)
        booking = engine.update_details(pk, booking_type=data.get('type'), notes=data.get('notes'))
    except SCHEDULING_ERRORS as e:
        return _error_response(e)

    return JsonResponse(booking.to_dict())


@csrf_exempt
@require_POST
def move_booking_api(request, pk):
    """
    API ENDPOINT: Move a booking to a new start (and optionally end, practitioner, room)

    Without an end the booking keeps its current duration.
    """
    try:
        data = _json_body(request)
        _require(data, 'start')

        start = _parse_instant(data['start'], 'start')
        target = Interval(start, _parse_instant(data['end'], 'end')) if data.get('end') else start
        practitioner_id, room_id = (
            _parse_int(data[field], field) if data.get(field) is not None else None
            for field in ('practitioner_id', 'room_id')
        )

        booking = _engine(request).move(pk, practitioner_id, room_id, target)
    except SCHEDULING_ERRORS as e:
        return _error_response(e)

    return JsonResponse(booking.to_dict())


@csrf_exempt
@require_POST
def resize_booking_api(request, pk):
    try:
        data = _json_body(request)
        _require(data, 'duration_minutes')
        duration = _parse_int(data['duration_minutes'], 'duration_minutes')

        booking = _engine(request).resize(pk, duration)
    except SCHEDULING_ERRORS as e:
        return _error_response(e)

    return JsonResponse(booking.to_dict())


@csrf_exempt
@require_POST
def booking_status_api(request, pk):
    try:
        data = _json_body(request)
        _require(data, 'status')

        booking = _engine(request).set_status(pk, data['status'])
    except SCHEDULING_ERRORS as e:
        return _error_response(e)

    return JsonResponse(booking.to_dict())


@csrf_exempt
@require_POST
def cancel_booking_api(request, pk):
    try:
        booking = _engine(request).cancel(pk)
    except SCHEDULING_ERRORS as e:
        return _error_response(e)

    return JsonResponse(booking.to_dict())
