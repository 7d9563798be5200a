# appointments/admin.py
from django.contrib import admin
from django.utils.html import format_html
from .models import Booking, Practitioner, Room, WorkingHours


class PractitionerWorkingHoursInline(admin.TabularInline):
    model = WorkingHours
    fk_name = 'practitioner'
    exclude = ['room']
    extra = 0
    max_num = 7


class RoomWorkingHoursInline(admin.TabularInline):
    model = WorkingHours
    fk_name = 'room'
    exclude = ['practitioner']
    extra = 0
    max_num = 7


@admin.register(Practitioner)
class PractitionerAdmin(admin.ModelAdmin):
    list_display = ['last_name', 'first_name', 'is_active', 'created_at']
    list_filter = ['is_active']
    search_fields = ['first_name', 'last_name']
    inlines = [PractitionerWorkingHoursInline]


@admin.register(Room)
class RoomAdmin(admin.ModelAdmin):
    list_display = ['name', 'is_active', 'created_at']
    list_filter = ['is_active']
    search_fields = ['name']
    inlines = [RoomWorkingHoursInline]


@admin.register(WorkingHours)
class WorkingHoursAdmin(admin.ModelAdmin):
    list_display = ['resource_display', 'weekday', 'is_available', 'window_start', 'window_end']
    list_filter = ['weekday', 'is_available']
    readonly_fields = ['created_at', 'updated_at']

    @admin.display(description='Resource')
    def resource_display(self, obj):
        return str(obj.resource)

    def get_queryset(self, request):
        return super().get_queryset(request).select_related('practitioner', 'room')


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = ['patient', 'start', 'end', 'practitioner', 'room', 'type', 'status_badge']
    list_filter = ['status', 'type', 'practitioner', 'room']
    search_fields = ['patient__first_name', 'patient__last_name', 'notes']
    readonly_fields = ['created_at', 'updated_at']
    date_hierarchy = 'start'

    fieldsets = (
        ('Booking Details', {
            'fields': ('patient', 'practitioner', 'room', 'start', 'end', 'type')
        }),
        ('Status', {
            'fields': ('status', 'notes')
        }),
        ('Timestamps', {
            'fields': ('created_at', 'updated_at'),
            'classes': ['collapse']
        }),
    )

    # Time, resources and status only change through the engine, which checks conflicts
    def get_readonly_fields(self, request, obj=None):
        return self.readonly_fields + ['patient', 'practitioner', 'room', 'start', 'end', 'status']

    def has_add_permission(self, request):
        return False

    @admin.display(description='Status', ordering='status')
    def status_badge(self, obj):
        color = 'gray' if obj.status == Booking.CANCELLED else 'green'
        return format_html('<span style="color: {};">{}</span>', color, obj.get_status_display())

    def get_queryset(self, request):
        return super().get_queryset(request).select_related('patient', 'practitioner', 'room')
