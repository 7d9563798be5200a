# core/tests.py
from datetime import time, timedelta
from io import StringIO

from django.core.management import call_command
from django.test import TestCase
from django.utils import timezone

from patients.models import Patient
from .models import AuditLog, SystemSetting


class SystemSettingTests(TestCase):

    def test_missing_setting_returns_default(self):
        self.assertIsNone(SystemSetting.get_setting('unknown'))
        self.assertEqual(SystemSetting.get_int_setting('unknown', 20), 20)

    def test_set_setting_updates_and_reactivates(self):
        SystemSetting.set_setting('slot_granularity_minutes', 15, 'Grid unit')
        SystemSetting.objects.filter(key='slot_granularity_minutes').update(is_active=False)
        self.assertIsNone(SystemSetting.get_setting('slot_granularity_minutes'))

        setting = SystemSetting.set_setting('slot_granularity_minutes', 30)

        self.assertEqual(SystemSetting.get_int_setting('slot_granularity_minutes'), 30)
        self.assertEqual(setting.description, 'Grid unit')
        self.assertEqual(SystemSetting.objects.count(), 1)

    def test_typed_getters(self):
        SystemSetting.set_setting('operating_window_start', '07:30')
        SystemSetting.set_setting('default_working_days', '1, 2,3')
        SystemSetting.set_setting('bad_time', '7.30')
        SystemSetting.set_setting('bad_days', 'mon,tue')

        self.assertEqual(SystemSetting.get_time_setting('operating_window_start'), time(7, 30))
        self.assertEqual(SystemSetting.get_list_setting('default_working_days'), [1, 2, 3])
        self.assertEqual(SystemSetting.get_time_setting('bad_time', time(8, 0)), time(8, 0))
        self.assertEqual(SystemSetting.get_list_setting('bad_days', [0]), [0])


class AuditLogTests(TestCase):

    def setUp(self):
        self.patient = Patient.objects.create(first_name='Jane', last_name='Smith')

    def test_log_action(self):
        entry = AuditLog.log_action(None, 'update', self.patient, {'notes': ['', 'Allergic to latex']})

        self.assertEqual(entry.model_name, 'patient')
        self.assertEqual(entry.object_id, self.patient.pk)
        self.assertEqual(entry.object_repr, 'Smith, Jane')
        self.assertEqual(entry.changes['notes'][1], 'Allergic to latex')

    def test_prune_audit_log(self):
        old = AuditLog.log_action(None, 'create', self.patient)
        AuditLog.objects.filter(pk=old.pk).update(timestamp=timezone.now() - timedelta(days=400))
        recent = AuditLog.log_action(None, 'move', self.patient)

        out = StringIO()
        call_command('prune_audit_log', '--dry-run', stdout=out)
        self.assertIn('would delete 1 audit rows', out.getvalue())
        self.assertEqual(AuditLog.objects.count(), 2)

        call_command('prune_audit_log', stdout=StringIO())
        self.assertEqual(list(AuditLog.objects.all()), [recent])

    def test_prune_by_action(self):
        for action in ('create', 'delete'):
            entry = AuditLog.log_action(None, action, self.patient)
            AuditLog.objects.filter(pk=entry.pk).update(timestamp=timezone.now() - timedelta(days=30))

        call_command('prune_audit_log', '--days', '7', '--action', 'delete', stdout=StringIO())

        self.assertEqual(list(AuditLog.objects.values_list('action', flat=True)), ['create'])
