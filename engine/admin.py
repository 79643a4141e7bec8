"""
Django admin registrations for the engine models.

Occupancy fields are read-only here: beds must only be claimed and
released through the pool service so the conditional updates and
snapshot broadcasts stay in one place.
"""

from django.contrib import admin

from .models import (
    AuditEvent,
    EmergencyAdmission,
    Facility,
    Queue,
    QueueEntry,
    QueueEntryTransition,
    Reservation,
    ResourceUnit,
    User,
)


@admin.register(User)
class UserAdmin(admin.ModelAdmin):
    list_display = ('username', 'role', 'is_staff', 'is_superuser')
    list_filter = ('role',)
    search_fields = ('username', 'first_name', 'last_name', 'phone')


@admin.register(Facility)
class FacilityAdmin(admin.ModelAdmin):
    list_display = ('id', 'name', 'city', 'opd_available', 'emergency_available', 'last_updated')
    list_filter = ('city', 'opd_available', 'emergency_available')
    search_fields = ('name', 'city')


@admin.register(ResourceUnit)
class ResourceUnitAdmin(admin.ModelAdmin):
    list_display = ('unit_number', 'facility', 'category', 'is_occupied', 'holder', 'last_updated')
    list_filter = ('category', 'is_occupied', 'facility')
    search_fields = ('unit_number', 'facility__name')
    readonly_fields = ('is_occupied', 'holder', 'reservation')


@admin.register(Reservation)
class ReservationAdmin(admin.ModelAdmin):
    list_display = ('id', 'facility', 'requester', 'category', 'status', 'unit', 'provisional_expiry', 'created_at')
    list_filter = ('status', 'category', 'facility')
    search_fields = ('id', 'patient_name', 'requester__username')
    readonly_fields = ('status', 'unit', 'provisional_expiry')


@admin.register(EmergencyAdmission)
class EmergencyAdmissionAdmin(admin.ModelAdmin):
    list_display = ('id', 'facility', 'priority', 'emergency_type', 'status', 'unit', 'created_at')
    list_filter = ('priority', 'status', 'facility')
    search_fields = ('id', 'requester__username', 'symptoms')


@admin.register(Queue)
class QueueAdmin(admin.ModelAdmin):
    list_display = ('id', 'facility', 'last_token', 'current_token', 'updated_at')
    readonly_fields = ('last_token',)


@admin.register(QueueEntry)
class QueueEntryAdmin(admin.ModelAdmin):
    list_display = ('token_number', 'facility', 'patient_name', 'department', 'status', 'checked_in_at')
    list_filter = ('status', 'department', 'facility')
    search_fields = ('patient_name', 'requester__username')


@admin.register(QueueEntryTransition)
class QueueEntryTransitionAdmin(admin.ModelAdmin):
    list_display = ('entry', 'from_status', 'to_status', 'operator', 'timestamp')


@admin.register(AuditEvent)
class AuditEventAdmin(admin.ModelAdmin):
    list_display = ('action', 'object_type', 'object_id', 'user', 'created_at')
    list_filter = ('action', 'object_type')
