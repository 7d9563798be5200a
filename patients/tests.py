# patients/tests.py
from datetime import datetime, timedelta

from django.core.exceptions import ValidationError
from django.db.models import ProtectedError
from django.test import TestCase
from django.utils import timezone

from appointments.models import Booking, Practitioner, Room
from .models import Patient


class PatientModelTests(TestCase):
    """Test cases for the Patient model"""

    def setUp(self):
        self.patient = Patient.objects.create(
            first_name='Jane',
            last_name='Smith',
            email='jane.smith@example.com',
            contact_number='09123456789',
        )

    def test_names(self):
        self.assertEqual(self.patient.full_name, 'Jane Smith')
        self.assertEqual(str(self.patient), 'Smith, Jane')

    def test_to_dict(self):
        self.assertEqual(self.patient.to_dict(), {
            'id': self.patient.pk,
            'first_name': 'Jane',
            'last_name': 'Smith',
            'email': 'jane.smith@example.com',
        })

    def test_contact_number_format(self):
        """Phone numbers are digits with an optional leading plus"""
        self.patient.contact_number = '+639123456789'
        self.patient.full_clean()

        self.patient.contact_number = '0912-345-6789'
        with self.assertRaises(ValidationError) as ctx:
            self.patient.full_clean()
        self.assertIn('contact_number', ctx.exception.message_dict)

    def test_optional_fields(self):
        patient = Patient(first_name='Walk', last_name='In')
        patient.full_clean()

    def test_patient_with_bookings_cannot_be_deleted(self):
        start = timezone.make_aware(datetime(2026, 1, 5, 9, 0))
        Booking.objects.create(
            patient=self.patient,
            practitioner=Practitioner.objects.create(first_name='John', last_name='Doe'),
            room=Room.objects.create(name='Operatory 1'),
            start=start,
            end=start + timedelta(minutes=40),
            type='checkup',
        )

        with self.assertRaises(ProtectedError):
            self.patient.delete()
