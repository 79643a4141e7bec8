import logging
from typing import Optional

from django.conf import settings
from django.core.cache import cache
from django.db import transaction
from django.db.models import Avg, Case, Count, IntegerField, Value, When
from django.utils import timezone

from engine.exceptions import (
    AuthorizationError,
    EmergencyCapacityError,
    InvalidStateError,
    NotAvailableError,
    NotFoundError,
    ValidationError,
)
from engine.models import EmergencyAdmission, Reservation
from engine.permissions import STAFF_ROLES
from engine.services import pool
from engine.services.audit import log_action
from engine.services.snapshots import bed_availability

logger = logging.getLogger(__name__)

STATUS_RANK = {s: i for i, s in enumerate(EmergencyAdmission.STATUS_ORDER)}
ACTIVE_STATUSES = (
    EmergencyAdmission.STATUS_PENDING,
    EmergencyAdmission.STATUS_ASSIGNED,
    EmergencyAdmission.STATUS_ADMITTED,
)


def stats_cache_keys(facility_id) -> list:
    return ['emergency:stats:all', f'emergency:stats:{facility_id}']


def admit_emergency(user, facility_id, *, category: str, priority: str, emergency_type: str,
                    symptoms: str, vital_signs: Optional[dict] = None, profile: Optional[dict] = None) -> EmergencyAdmission:
    facility = pool.get_facility(facility_id)
    pool.validate_category(category)
    if priority not in EmergencyAdmission.PRIORITY_RANK:
        raise ValidationError(f"Unknown triage priority '{priority}'")
    if emergency_type not in EmergencyAdmission.EMERGENCY_TYPES:
        raise ValidationError(f"Unknown emergency type '{emergency_type}'")
    if not facility.emergency_available:
        raise NotAvailableError('Emergency admission not available at this facility')
    profile = profile or {}
    now = timezone.now()

    try:
        with transaction.atomic():
            reservation = Reservation.objects.create(
                facility=facility,
                requester=user,
                category=category,
                status=Reservation.STATUS_ADMITTED,
                admitted_at=now,
                patient_name=profile.get('patient_name', ''),
                patient_phone=profile.get('patient_phone', ''),
                patient_age=profile.get('patient_age'),
                medical_condition=f'EMERGENCY: {emergency_type} - {symptoms}',
            )
            unit = pool.allocate_free_unit(
                facility.id, category, user, reservation, error_class=EmergencyCapacityError,
            )
            Reservation.objects.filter(id=reservation.id).update(unit=unit)
            admission = EmergencyAdmission.objects.create(
                reservation=reservation,
                requester=user,
                facility=facility,
                unit=unit,
                priority=priority,
                emergency_type=emergency_type,
                symptoms=symptoms,
                vital_signs=vital_signs or {},
                status=EmergencyAdmission.STATUS_ADMITTED,
                response_time=0,
            )
            log_action(user=user, action='emergency_admit', object_type='emergency', object_id=admission.id,
                       detail={'facilityId': facility.id, 'unitId': unit.id, 'priority': priority})
    except EmergencyCapacityError:
        logger.info('Emergency admission rejected: no %s beds at facility %s', category, facility.id)
        raise

    cache.delete_many(stats_cache_keys(facility.id))
    logger.info('Emergency %s (%s) admitted to bed %s at facility %s',
                admission.id, priority, unit.unit_number, facility.id)
    return admission


def update_emergency_status(operator, admission_id, new_status: str, notes: Optional[str] = None) -> EmergencyAdmission:
    """Move an admission forward along pending -> assigned -> admitted -> treated -> discharged."""
    if new_status not in STATUS_RANK:
        raise ValidationError(f"Unknown emergency status '{new_status}'")
    with transaction.atomic():
        admission = (
            EmergencyAdmission.objects.select_for_update()
            .select_related('unit', 'reservation')
            .filter(id=admission_id)
            .first()
        )
        if not admission:
            raise NotFoundError('Emergency admission not found')
        if STATUS_RANK[new_status] <= STATUS_RANK[admission.status]:
            raise InvalidStateError(f'Cannot move emergency from {admission.status} to {new_status}')
        previous = admission.status
        admission.status = new_status
        update_fields = ['status', 'updated_at']
        if notes is not None:
            admission.notes = notes
            update_fields.append('notes')
        admission.save(update_fields=update_fields)

        if new_status == EmergencyAdmission.STATUS_DISCHARGED:
            now = timezone.now()
            # releases even if the reservation was moved on by other paths
            pool.release(admission.unit, reservation=admission.reservation)
            Reservation.objects.filter(id=admission.reservation_id, discharged_at__isnull=True).update(
                discharged_at=now, updated_at=now,
            )
        log_action(user=operator, action='emergency_status', object_type='emergency', object_id=admission.id,
                   detail={'from': previous, 'to': new_status})

    cache.delete_many(stats_cache_keys(admission.facility_id))
    logger.info('Emergency %s moved %s -> %s', admission.id, previous, new_status)
    return admission


def list_by_priority(facility_id=None, *, status: Optional[str] = None, priority: Optional[str] = None):
    """Critical before high before medium; earliest first within a priority."""
    rank = Case(
        *[When(priority=p, then=Value(r)) for p, r in EmergencyAdmission.PRIORITY_RANK.items()],
        default=Value(len(EmergencyAdmission.PRIORITY_RANK)),
        output_field=IntegerField(),
    )
    qs = EmergencyAdmission.objects.select_related('facility', 'unit').annotate(priority_rank=rank)
    if facility_id:
        qs = qs.filter(facility_id=facility_id)
    if status:
        qs = qs.filter(status=status)
    if priority:
        qs = qs.filter(priority=priority)
    return qs.order_by('priority_rank', 'created_at', 'id')


def list_for_requester(user):
    return (
        EmergencyAdmission.objects.filter(requester=user)
        .select_related('facility', 'unit')
        .order_by('-created_at', '-id')
    )


def get_admission(user, admission_id) -> EmergencyAdmission:
    admission = (
        EmergencyAdmission.objects.select_related('facility', 'unit', 'reservation')
        .filter(id=admission_id)
        .first()
    )
    if not admission:
        raise NotFoundError('Emergency admission not found')
    if getattr(user, 'role', None) not in STAFF_ROLES and admission.requester_id != user.id:
        raise AuthorizationError('Not authorized for this emergency admission')
    return admission


def check_capacity(facility_id) -> dict:
    facility = pool.get_facility(facility_id)
    by_category = bed_availability(facility.id)
    total_available = sum(row['available'] for row in by_category)
    return {
        'facilityId': facility.id,
        'emergencyAvailable': facility.emergency_available,
        'hasAvailability': facility.emergency_available and total_available > 0,
        'totalAvailable': total_available,
        'byCategory': by_category,
    }


def emergency_stats(facility_id=None) -> dict:
    ck = f'emergency:stats:{facility_id or "all"}'
    cached = cache.get(ck)
    if cached:
        return cached
    qs = EmergencyAdmission.objects.all()
    if facility_id:
        qs = qs.filter(facility_id=facility_id)
    breakdown = [
        {
            'priority': row['priority'],
            'status': row['status'],
            'count': row['count'],
            'avgResponseTime': row['avg_response'] or 0,
        }
        for row in qs.values('priority', 'status')
        .annotate(count=Count('id'), avg_response=Avg('response_time'))
        .order_by('priority', 'status')
    ]
    data = {
        'total': qs.count(),
        'activeCritical': qs.filter(
            priority=EmergencyAdmission.PRIORITY_CRITICAL, status__in=ACTIVE_STATUSES,
        ).count(),
        'breakdown': breakdown,
    }
    cache.set(ck, data, settings.EMERGENCY_STATS_CACHE_SECONDS)
    return data


def format_admission(a: EmergencyAdmission) -> dict:
    return {
        'id': a.id,
        'reservationId': a.reservation_id,
        'requesterId': a.requester_id,
        'facilityId': a.facility_id,
        'facilityName': a.facility.name if a.facility_id else None,
        'unitId': a.unit_id,
        'unitNumber': a.unit.unit_number if a.unit_id else None,
        'category': a.unit.category if a.unit_id else None,
        'priority': a.priority,
        'emergencyType': a.emergency_type,
        'symptoms': a.symptoms,
        'vitalSigns': a.vital_signs,
        'status': a.status,
        'responseTime': a.response_time,
        'notes': a.notes,
        'createdAt': a.created_at.isoformat() if a.created_at else None,
    }
