# appointments/tests/test_views.py
import json

from django.test import TestCase
from django.urls import reverse

from appointments.models import Booking
from core.models import AuditLog, SystemSetting

from .base import SchedulingTestMixin


class ApiTestCase(SchedulingTestMixin, TestCase):

    def setUp(self):
        super().setUp()
        SystemSetting.set_setting('slot_granularity_minutes', 20)

    def post_json(self, url, data):
        return self.client.post(url, json.dumps(data), content_type='application/json')

    def create_payload(self, **overrides):
        payload = {
            'patient_id': self.patient.pk,
            'practitioner_id': self.dentist.pk,
            'room_id': self.room.pk,
            'start': '2026-01-05T09:00:00+00:00',
            'end': '2026-01-05T09:40:00+00:00',
            'type': 'checkup',
        }
        payload.update(overrides)
        return payload


class SlotsApiTest(ApiTestCase):

    def test_slots_for_practitioner(self):
        self.make_booking((9, 0), (9, 40))

        response = self.client.get(reverse('appointments:slots'), {
            'practitioner': self.dentist.pk,
            'date': '2026-01-05',
        })

        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data['date'], '2026-01-05')
        self.assertEqual(len(data['slots']), 12)
        self.assertEqual(data['slots'][3], {
            'start': '2026-01-05T09:00:00+00:00',
            'end': '2026-01-05T09:20:00+00:00',
            'available': False,
        })

    def test_day_off_returns_empty_list(self):
        response = self.client.get(reverse('appointments:slots'), {
            'practitioner': self.dentist.pk,
            'date': '2026-01-06',
        })

        self.assertEqual(response.json()['slots'], [])

    def test_custom_granularity(self):
        response = self.client.get(reverse('appointments:slots'), {
            'practitioner': self.dentist.pk,
            'date': '2026-01-05',
            'granularity': 60,
        })

        self.assertEqual(len(response.json()['slots']), 4)

    def test_invalid_granularity(self):
        response = self.client.get(reverse('appointments:slots'), {
            'practitioner': self.dentist.pk,
            'date': '2026-01-05',
            'granularity': 0,
        })

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['reason'], 'invalid:duration')

    def test_missing_resource(self):
        response = self.client.get(reverse('appointments:slots'), {'date': '2026-01-05'})

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['reason'], 'invalid:request')

    def test_unknown_room(self):
        response = self.client.get(reverse('appointments:slots'), {'room': 9999, 'date': '2026-01-05'})

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()['reason'], 'not_found')

    def test_bad_date(self):
        response = self.client.get(reverse('appointments:slots'), {
            'practitioner': self.dentist.pk,
            'date': '05/01/2026',
        })

        self.assertEqual(response.status_code, 400)

    def test_next_available(self):
        self.make_booking((8, 0), (9, 0))

        response = self.client.get(reverse('appointments:next_available'), {
            'practitioner': self.dentist.pk,
            'date': '2026-01-05',
            'duration': 40,
        })

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['available'], {
            'start': '2026-01-05T09:00:00+00:00',
            'end': '2026-01-05T09:40:00+00:00',
        })

    def test_next_available_none(self):
        response = self.client.get(reverse('appointments:next_available'), {
            'practitioner': self.other_dentist.pk,
            'date': '2026-01-05',
            'duration': 20,
        })

        self.assertIsNone(response.json()['available'])

    def next_available(self, **params):
        query = {'practitioner': self.dentist.pk, 'date': '2026-01-05', 'duration': 20}
        query.update(params)
        return self.client.get(reverse('appointments:next_available'), query)

    def test_next_available_search_length_is_bounded(self):
        for days_ahead in ('0', '-1', '61', '5000'):
            with self.subTest(days_ahead=days_ahead):
                response = self.next_available(days_ahead=days_ahead)

                self.assertEqual(response.status_code, 400)
                self.assertEqual(response.json()['reason'], 'invalid:request')

        self.assertEqual(self.next_available(days_ahead='1').status_code, 200)
        self.assertEqual(self.next_available(days_ahead='60').status_code, 200)

    def test_next_available_limit_from_system_setting(self):
        SystemSetting.set_setting('advance_booking_days', '90')

        self.assertEqual(self.next_available(days_ahead='90').status_code, 200)
        self.assertEqual(self.next_available(days_ahead='91').status_code, 400)

    def test_next_available_past_the_calendar(self):
        response = self.next_available(date='9999-12-30', days_ahead='30')

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['reason'], 'invalid:request')


class BookingsApiTest(ApiTestCase):

    def test_create(self):
        response = self.post_json(reverse('appointments:bookings'), self.create_payload(notes='First visit'))

        self.assertEqual(response.status_code, 201)
        data = response.json()
        self.assertEqual(data['status'], 'scheduled')
        self.assertEqual(data['duration_minutes'], 40)
        self.assertEqual(data['notes'], 'First visit')
        self.assertTrue(Booking.objects.filter(pk=data['id']).exists())

    def test_create_with_duration(self):
        payload = self.create_payload(duration_minutes=60)
        del payload['end']

        response = self.post_json(reverse('appointments:bookings'), payload)

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()['end'], '2026-01-05T10:00:00+00:00')

    def test_create_with_out_of_range_duration(self):
        payload = self.create_payload(duration_minutes=10 ** 12)
        del payload['end']

        response = self.post_json(reverse('appointments:bookings'), payload)

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['reason'], 'invalid:duration')
        self.assertFalse(Booking.objects.exists())

    def test_create_rejects_non_integer_ids(self):
        for field, value in (('patient_id', 1.5), ('room_id', True), ('practitioner_id', [1])):
            with self.subTest(field=field):
                response = self.post_json(reverse('appointments:bookings'), self.create_payload(**{field: value}))

                self.assertEqual(response.status_code, 400)
                self.assertEqual(response.json()['reason'], 'invalid:request')
        self.assertFalse(Booking.objects.exists())

    def test_create_conflict(self):
        existing = self.make_booking((9, 0), (9, 40))

        response = self.post_json(reverse('appointments:bookings'), self.create_payload(
            start='2026-01-05T09:20:00+00:00',
            end='2026-01-05T10:00:00+00:00',
            room_id=self.other_room.pk,
        ))

        self.assertEqual(response.status_code, 409)
        data = response.json()
        self.assertEqual(data['reason'], 'conflict:practitioner')
        self.assertEqual(data['reasons'], ['conflict:practitioner'])
        self.assertEqual(data['conflicts'], [existing.pk])

    def test_create_off_grid(self):
        response = self.post_json(reverse('appointments:bookings'), self.create_payload(
            end='2026-01-05T09:30:00+00:00',
        ))

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['reason'], 'invalid:duration')

    def test_create_reversed_interval(self):
        response = self.post_json(reverse('appointments:bookings'), self.create_payload(
            end='2026-01-05T08:00:00+00:00',
        ))

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['reason'], 'invalid:interval')

    def test_create_requires_offset(self):
        response = self.post_json(reverse('appointments:bookings'), self.create_payload(
            start='2026-01-05T09:00:00',
            end='2026-01-05T09:40:00',
        ))

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['reason'], 'invalid:interval')

    def test_create_unknown_type(self):
        response = self.post_json(reverse('appointments:bookings'), self.create_payload(type='whitening'))

        self.assertEqual(response.json()['reason'], 'invalid:type')

    def test_create_missing_fields(self):
        response = self.post_json(reverse('appointments:bookings'), {'start': '2026-01-05T09:00:00+00:00'})

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['reason'], 'invalid:request')
        self.assertIn('patient_id', response.json()['error'])

    def test_create_bad_json(self):
        response = self.client.post(reverse('appointments:bookings'), 'not json', content_type='application/json')

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['reason'], 'invalid:request')

    def test_create_unknown_patient(self):
        response = self.post_json(reverse('appointments:bookings'), self.create_payload(patient_id=9999))

        self.assertEqual(response.status_code, 404)

    def test_list_range(self):
        booking = self.make_booking((9, 0), (9, 40))
        self.make_booking((10, 0), (10, 20), status=Booking.CANCELLED)

        response = self.client.get(reverse('appointments:bookings'), {
            'start_date': '2026-01-05',
            'end_date': '2026-01-05',
        })

        self.assertEqual([item['id'] for item in response.json()['bookings']], [booking.pk])

        response = self.client.get(reverse('appointments:bookings'), {
            'start_date': '2026-01-05',
            'end_date': '2026-01-05',
            'include_cancelled': 'true',
        })
        self.assertEqual(len(response.json()['bookings']), 2)

    def test_list_by_room(self):
        self.make_booking((9, 0), (9, 40))
        other = self.make_booking((9, 0), (9, 40), practitioner=self.other_dentist, room=self.other_room)

        response = self.client.get(reverse('appointments:bookings'), {
            'start_date': '2026-01-05',
            'end_date': '2026-01-11',
            'room': self.other_room.pk,
        })

        self.assertEqual([item['id'] for item in response.json()['bookings']], [other.pk])

    def test_list_reversed_range(self):
        response = self.client.get(reverse('appointments:bookings'), {
            'start_date': '2026-01-06',
            'end_date': '2026-01-05',
        })

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['reason'], 'invalid:interval')

    def test_list_up_to_the_last_calendar_day(self):
        booking = self.make_booking((9, 0), (9, 40))

        response = self.client.get(reverse('appointments:bookings'), {
            'start_date': '2026-01-05',
            'end_date': '9999-12-31',
        })

        self.assertEqual(response.status_code, 200)
        self.assertEqual([item['id'] for item in response.json()['bookings']], [booking.pk])

    def test_method_not_allowed(self):
        response = self.client.put(reverse('appointments:bookings'))

        self.assertEqual(response.status_code, 405)


class BookingDetailApiTest(ApiTestCase):

    def setUp(self):
        super().setUp()
        self.booking = self.make_booking((9, 0), (9, 40))

    def url(self, name, pk=None):
        return reverse(f'appointments:{name}', args=[pk or self.booking.pk])

    def test_detail(self):
        response = self.client.get(self.url('booking_detail'))

        data = response.json()
        self.assertEqual(data['id'], self.booking.pk)
        self.assertEqual(data['practitioner'], {'id': self.dentist.pk, 'name': 'John Doe'})
        self.assertEqual(data['room']['name'], 'Operatory 1')
        self.assertEqual(data['patient']['last_name'], 'Smith')

    def test_detail_not_found(self):
        response = self.client.get(self.url('booking_detail', 9999))

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()['reason'], 'not_found')

    def test_patch_details(self):
        response = self.client.patch(
            self.url('booking_detail'),
            json.dumps({'type': 'filling', 'notes': 'Sensitive tooth'}),
            content_type='application/json',
        )

        self.assertEqual(response.status_code, 200)
        self.booking.refresh_from_db()
        self.assertEqual(self.booking.type, 'filling')
        self.assertEqual(self.booking.notes, 'Sensitive tooth')

    def test_delete(self):
        response = self.client.delete(self.url('booking_detail'))

        self.assertEqual(response.json(), {'success': True})
        self.assertFalse(Booking.objects.filter(pk=self.booking.pk).exists())

    def test_move_keeps_duration(self):
        response = self.post_json(self.url('move_booking'), {'start': '2026-01-05T10:00:00+00:00'})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['end'], '2026-01-05T10:40:00+00:00')

    def test_move_to_other_room(self):
        response = self.post_json(self.url('move_booking'), {
            'start': '2026-01-05T09:00:00+00:00',
            'end': '2026-01-05T09:20:00+00:00',
            'room_id': self.other_room.pk,
        })

        self.assertEqual(response.json()['room_id'], self.other_room.pk)
        self.assertEqual(response.json()['duration_minutes'], 20)

    def test_move_conflict(self):
        self.make_booking((10, 0), (10, 40), room=self.other_room)

        response = self.post_json(self.url('move_booking'), {'start': '2026-01-05T10:20:00+00:00'})

        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()['reason'], 'conflict:practitioner')

    def test_resize(self):
        response = self.post_json(self.url('resize_booking'), {'duration_minutes': 60})

        self.assertEqual(response.json()['end'], '2026-01-05T10:00:00+00:00')

    def test_resize_below_granularity(self):
        response = self.post_json(self.url('resize_booking'), {'duration_minutes': 10})

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['reason'], 'invalid:duration')

    def test_resize_out_of_range_duration(self):
        response = self.post_json(self.url('resize_booking'), {'duration_minutes': 10 ** 12})

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['reason'], 'invalid:duration')

    def test_resize_requires_whole_minutes(self):
        for value in (60.9, True, '60.5', None):
            with self.subTest(duration_minutes=value):
                response = self.post_json(self.url('resize_booking'), {'duration_minutes': value})

                self.assertEqual(response.status_code, 400)
                self.assertEqual(response.json()['reason'], 'invalid:request')

        self.booking.refresh_from_db()
        self.assertEqual(self.booking.duration_minutes, 40)

    def test_resize_accepts_numeric_string(self):
        response = self.post_json(self.url('resize_booking'), {'duration_minutes': '60'})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['duration_minutes'], 60)

    def test_move_rejects_non_integer_room(self):
        response = self.post_json(self.url('move_booking'), {
            'start': '2026-01-05T10:00:00+00:00',
            'room_id': float(self.other_room.pk),
        })

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['reason'], 'invalid:request')
        self.booking.refresh_from_db()
        self.assertEqual(self.booking.room, self.room)

    def test_status(self):
        response = self.post_json(self.url('booking_status'), {'status': 'confirmed'})

        self.assertEqual(response.json()['status'], 'confirmed')

    def test_unknown_status(self):
        response = self.post_json(self.url('booking_status'), {'status': 'no-show'})

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['reason'], 'invalid:status')

    def test_cancel(self):
        response = self.client.post(self.url('cancel_booking'))

        self.assertEqual(response.json()['status'], 'cancelled')
        self.assertEqual(AuditLog.objects.get().action, 'status')

    def test_anonymous_changes_are_audited_without_user(self):
        self.client.post(self.url('cancel_booking'))

        self.assertIsNone(AuditLog.objects.get().user)
