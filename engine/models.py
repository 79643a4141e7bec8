"""
Database models for the reservation and queueing engine.

These models capture who holds which bed, in what state and for how
long, plus the per-facility outpatient (OPD) token queue.  Facilities
and users are supplied by the directory and identity collaborators;
the remaining models are owned and mutated exclusively by the services
in :mod:`engine.services`.
"""
from __future__ import annotations

from django.contrib.auth.models import AbstractUser
from django.db import models


class User(AbstractUser):
    """Custom user model carrying the principal's role.

    Roles mirror the front-end roles: 'patient', 'staff' (hospital
    staff) and 'admin'.
    """
    ROLE_CHOICES = [
        ('patient', 'Patient'),
        ('staff', 'Hospital staff'),
        ('admin', 'Administrator'),
    ]
    role = models.CharField(max_length=10, choices=ROLE_CHOICES, default='patient')
    phone = models.CharField(max_length=20, blank=True)

    def __str__(self) -> str:
        return f"{self.username} ({self.role})"


class Facility(models.Model):
    """A hospital or care site; the scoping boundary for beds and queues."""
    name = models.CharField(max_length=255)
    city = models.CharField(max_length=128, blank=True)
    address = models.CharField(max_length=255, blank=True)
    phone = models.CharField(max_length=32, blank=True)
    opd_available = models.BooleanField(default=True)
    emergency_available = models.BooleanField(default=True)
    last_updated = models.DateTimeField(auto_now_add=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return f"{self.name} ({self.id})"


class ResourceUnit(models.Model):
    """One allocatable bed.

    ``is_occupied`` is true iff ``holder`` is set.  Rows are only
    flipped through the conditional updates in
    :mod:`engine.services.pool`.
    """
    CATEGORY_GENERAL = 'General'
    CATEGORY_ICU = 'ICU'
    CATEGORY_PRIVATE = 'Private'
    CATEGORY_CHOICES = [
        (CATEGORY_GENERAL, 'General'),
        (CATEGORY_ICU, 'ICU'),
        (CATEGORY_PRIVATE, 'Private'),
    ]

    facility = models.ForeignKey(Facility, on_delete=models.CASCADE, related_name='units')
    category = models.CharField(max_length=16, choices=CATEGORY_CHOICES)
    unit_number = models.CharField(max_length=32)
    floor = models.IntegerField(null=True, blank=True)
    is_occupied = models.BooleanField(default=False)
    holder = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.PROTECT, related_name='held_units'
    )
    reservation = models.ForeignKey(
        'Reservation', null=True, blank=True, on_delete=models.SET_NULL, related_name='+'
    )
    price = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    last_updated = models.DateTimeField(auto_now_add=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=['facility', 'unit_number'], name='unique_unit_per_facility'),
        ]
        indexes = [
            models.Index(fields=['facility', 'category', 'is_occupied'], name='unit_free_lookup_idx'),
        ]

    def __str__(self) -> str:
        return f"{self.unit_number} [{self.category}] @ {self.facility_id}"


class Reservation(models.Model):
    """A requester's claim on one bed category at one facility."""
    STATUS_PROVISIONAL = 'provisional'
    STATUS_CONFIRMED = 'confirmed'
    STATUS_ADMITTED = 'admitted'
    STATUS_CANCELLED = 'cancelled'
    STATUS_EXPIRED = 'expired'
    STATUS_CHOICES = [
        (STATUS_PROVISIONAL, 'provisional'),
        (STATUS_CONFIRMED, 'confirmed'),
        (STATUS_ADMITTED, 'admitted'),
        (STATUS_CANCELLED, 'cancelled'),
        (STATUS_EXPIRED, 'expired'),
    ]
    HOLDING_STATUSES = (STATUS_CONFIRMED, STATUS_ADMITTED)

    facility = models.ForeignKey(Facility, on_delete=models.CASCADE, related_name='reservations')
    requester = models.ForeignKey(User, on_delete=models.CASCADE, related_name='reservations')
    unit = models.ForeignKey(
        ResourceUnit, null=True, blank=True, on_delete=models.PROTECT, related_name='reservations'
    )
    category = models.CharField(max_length=16, choices=ResourceUnit.CATEGORY_CHOICES)
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_PROVISIONAL)
    patient_name = models.CharField(max_length=128)
    patient_phone = models.CharField(max_length=32)
    patient_age = models.PositiveIntegerField(null=True, blank=True)
    medical_condition = models.TextField(blank=True)
    provisional_expiry = models.DateTimeField(null=True, blank=True)
    admitted_at = models.DateTimeField(null=True, blank=True)
    discharged_at = models.DateTimeField(null=True, blank=True)
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=['facility', 'status'], name='reservation_facility_idx'),
            models.Index(fields=['requester', 'status'], name='reservation_requester_idx'),
        ]

    def __str__(self) -> str:
        return f"Reservation {self.id} [{self.status}] {self.category} @ {self.facility_id}"


class EmergencyAdmission(models.Model):
    """A priority claim resolved with a bed at creation time."""
    PRIORITY_CRITICAL = 'critical'
    PRIORITY_HIGH = 'high'
    PRIORITY_MEDIUM = 'medium'
    PRIORITY_CHOICES = [
        (PRIORITY_CRITICAL, 'critical'),
        (PRIORITY_HIGH, 'high'),
        (PRIORITY_MEDIUM, 'medium'),
    ]
    PRIORITY_RANK = {PRIORITY_CRITICAL: 0, PRIORITY_HIGH: 1, PRIORITY_MEDIUM: 2}

    STATUS_PENDING = 'pending'
    STATUS_ASSIGNED = 'assigned'
    STATUS_ADMITTED = 'admitted'
    STATUS_TREATED = 'treated'
    STATUS_DISCHARGED = 'discharged'
    STATUS_CHOICES = [
        (STATUS_PENDING, 'pending'),
        (STATUS_ASSIGNED, 'assigned'),
        (STATUS_ADMITTED, 'admitted'),
        (STATUS_TREATED, 'treated'),
        (STATUS_DISCHARGED, 'discharged'),
    ]
    STATUS_ORDER = [s for s, _ in STATUS_CHOICES]

    EMERGENCY_TYPES = [
        'Cardiac Arrest',
        'Stroke',
        'Severe Trauma',
        'Respiratory Distress',
        'Severe Bleeding',
        'Poisoning',
        'Burns',
        'Seizures',
        'Other Emergency',
    ]

    reservation = models.OneToOneField(Reservation, on_delete=models.CASCADE, related_name='emergency')
    requester = models.ForeignKey(User, on_delete=models.CASCADE, related_name='emergencies')
    facility = models.ForeignKey(Facility, on_delete=models.CASCADE, related_name='emergencies')
    unit = models.ForeignKey(ResourceUnit, on_delete=models.PROTECT, related_name='emergencies')
    priority = models.CharField(max_length=10, choices=PRIORITY_CHOICES, db_index=True)
    emergency_type = models.CharField(max_length=64, choices=[(t, t) for t in EMERGENCY_TYPES])
    symptoms = models.TextField()
    vital_signs = models.JSONField(default=dict, blank=True)
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_PENDING)
    response_time = models.PositiveIntegerField(default=0, help_text="Minutes from request to assignment")
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=['facility', 'status'], name='emergency_facility_idx'),
            models.Index(fields=['priority', 'created_at'], name='emergency_priority_idx'),
        ]

    def __str__(self) -> str:
        return f"Emergency {self.id} [{self.priority}/{self.status}] @ {self.facility_id}"


class Queue(models.Model):
    """Per-facility OPD sequencer state.

    ``last_token`` is the atomic counter tokens are drawn from;
    ``current_token`` is the token now in consultation, if any.
    """
    facility = models.OneToOneField(Facility, on_delete=models.CASCADE, related_name='opd_queue')
    last_token = models.PositiveIntegerField(default=0)
    current_token = models.PositiveIntegerField(null=True, blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:
        return f"OPD queue @ {self.facility_id} (last={self.last_token})"


class QueueEntry(models.Model):
    STATUS_WAITING = 'waiting'
    STATUS_IN_CONSULTATION = 'in_consultation'
    STATUS_COMPLETED = 'completed'
    STATUS_CANCELLED = 'cancelled'
    STATUS_CHOICES = [
        (STATUS_WAITING, 'waiting'),
        (STATUS_IN_CONSULTATION, 'in_consultation'),
        (STATUS_COMPLETED, 'completed'),
        (STATUS_CANCELLED, 'cancelled'),
    ]
    ACTIVE_STATUSES = (STATUS_WAITING, STATUS_IN_CONSULTATION)

    facility = models.ForeignKey(Facility, on_delete=models.CASCADE, related_name='queue_entries')
    requester = models.ForeignKey(User, on_delete=models.CASCADE, related_name='queue_entries')
    token_number = models.PositiveIntegerField()
    department = models.CharField(max_length=64, default='General')
    patient_name = models.CharField(max_length=128)
    patient_phone = models.CharField(max_length=32)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_WAITING, db_index=True)
    estimated_wait = models.PositiveIntegerField(default=0, help_text="Minutes, snapshotted at join time")
    checked_in_at = models.DateTimeField(auto_now_add=True)
    consultation_started_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=['facility', 'token_number'], name='unique_token_per_facility'),
        ]
        indexes = [
            models.Index(fields=['facility', 'status', 'token_number'], name='queue_entry_active_idx'),
        ]

    def __str__(self) -> str:
        return f"Token {self.token_number} @ {self.facility_id} [{self.status}]"


class QueueEntryTransition(models.Model):
    """Records a status transition for a queue entry."""
    entry = models.ForeignKey(QueueEntry, related_name='transitions', on_delete=models.CASCADE)
    from_status = models.CharField(max_length=20, null=True, blank=True)
    to_status = models.CharField(max_length=20)
    operator = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='queue_transitions'
    )
    timestamp = models.DateTimeField(auto_now_add=True)
    reason = models.CharField(max_length=255, blank=True)

    def __str__(self) -> str:
        return f"{self.entry_id}: {self.from_status} → {self.to_status}"


class AuditEvent(models.Model):
    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True)
    action = models.CharField(max_length=64)
    object_type = models.CharField(max_length=64, blank=True, null=True)
    object_id = models.IntegerField(blank=True, null=True)
    detail = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=['action', 'created_at'], name='audit_action_idx'),
            models.Index(fields=['object_type', 'object_id', 'created_at'], name='audit_object_idx'),
        ]
