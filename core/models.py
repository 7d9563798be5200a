# core/models.py - Clinic-wide configuration and booking audit trail
from datetime import datetime

from django.conf import settings
from django.db import models


class SystemSetting(models.Model):
    """Key/value overrides for clinic configuration, editable from the admin"""
    key = models.CharField(max_length=100, unique=True)
    value = models.TextField()
    description = models.TextField(blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'System Setting'
        verbose_name_plural = 'System Settings'
        ordering = ['key']

    def __str__(self):
        return f"{self.key}: {self.value}"

    @classmethod
    def get_setting(cls, key, default=None):
        try:
            return cls.objects.get(key=key, is_active=True).value
        except cls.DoesNotExist:
            return default

    @classmethod
    def get_int_setting(cls, key, default=0):
        """Integer value of an active setting, or default when missing or malformed"""
        value = cls.get_setting(key)
        if value is None:
            return default
        try:
            return int(value)
        except ValueError:
            return default

    @classmethod
    def get_time_setting(cls, key, default=None):
        """Time-of-day value stored as HH:MM"""
        value = cls.get_setting(key)
        if value is None:
            return default
        try:
            return datetime.strptime(value, '%H:%M').time()
        except ValueError:
            return default

    @classmethod
    def get_list_setting(cls, key, default=None):
        """Comma separated integers, e.g. working weekdays '0,1,2,3,4'"""
        value = cls.get_setting(key)
        if value is None:
            return default
        try:
            return [int(part) for part in value.split(',') if part.strip()]
        except ValueError:
            return default

    @classmethod
    def set_setting(cls, key, value, description=''):
        """Set or update a setting"""
        setting, created = cls.objects.get_or_create(
            key=key,
            defaults={
                'value': str(value),
                'description': description,
                'is_active': True,
            }
        )
        if not created:
            setting.value = str(value)
            setting.description = description or setting.description
            setting.is_active = True
            setting.save()
        return setting


class AuditLog(models.Model):
    """One row per committed booking mutation"""
    ACTION_CHOICES = [
        ('create', 'Create'),
        ('move', 'Move'),
        ('resize', 'Resize'),
        ('status', 'Status Change'),
        ('update', 'Update'),
        ('delete', 'Delete'),
    ]

    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True)
    action = models.CharField(max_length=20, choices=ACTION_CHOICES)
    model_name = models.CharField(max_length=50)
    object_id = models.PositiveIntegerField(null=True, blank=True)
    object_repr = models.CharField(max_length=200, blank=True)
    changes = models.JSONField(default=dict, blank=True)
    timestamp = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-timestamp']
        indexes = [
            models.Index(fields=['model_name', 'object_id'], name='audit_object_idx'),
            models.Index(fields=['action', 'timestamp'], name='audit_action_time_idx'),
        ]

    def __str__(self):
        return f"{self.action} {self.model_name}#{self.object_id} at {self.timestamp}"

    @classmethod
    def log_action(cls, user, action, model_instance, changes=None):
        """Record an action against a saved (or just deleted) model instance"""
        return cls.objects.create(
            user=user,
            action=action,
            model_name=model_instance._meta.model_name,
            object_id=model_instance.pk,
            object_repr=str(model_instance)[:200],
            changes=changes or {},
        )
