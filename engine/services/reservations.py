import logging
from datetime import timedelta
from typing import Optional

from django.conf import settings
from django.core.cache import cache
from django.db import transaction
from django.utils import timezone

from engine.exceptions import (
    AuthorizationError,
    CapacityError,
    ExpiredError,
    InvalidStateError,
    NotFoundError,
)
from engine.models import EmergencyAdmission, Reservation
from engine.services import emergency, pool
from engine.services.audit import log_action

logger = logging.getLogger(__name__)

PROFILE_FIELDS = ('patient_name', 'patient_phone', 'patient_age', 'medical_condition')


def provisional_window() -> timedelta:
    return timedelta(minutes=settings.PROVISIONAL_WINDOW_MINUTES)


def is_lapsed(reservation: Reservation, now=None) -> bool:
    now = now or timezone.now()
    return (
        reservation.status == Reservation.STATUS_PROVISIONAL
        and reservation.provisional_expiry is not None
        and reservation.provisional_expiry < now
    )


def apply_expiry(reservation: Reservation, now=None) -> Reservation:
    """Force a lapsed provisional reservation to expired before anything reads it."""
    now = now or timezone.now()
    if is_lapsed(reservation, now):
        Reservation.objects.filter(id=reservation.id, status=Reservation.STATUS_PROVISIONAL).update(
            status=Reservation.STATUS_EXPIRED, provisional_expiry=None, updated_at=now,
        )
        reservation.refresh_from_db()
        logger.info('Reservation %s expired', reservation.id)
    return reservation


def expire_stale_reservations(now=None, **filters) -> int:
    now = now or timezone.now()
    expired = Reservation.objects.filter(
        status=Reservation.STATUS_PROVISIONAL, provisional_expiry__lt=now, **filters
    ).update(status=Reservation.STATUS_EXPIRED, provisional_expiry=None, updated_at=now)
    if expired:
        logger.info('Expired %d provisional reservation(s)', expired)
    return expired


def _load(reservation_id) -> Reservation:
    reservation = (
        Reservation.objects.select_related('facility', 'unit')
        .filter(id=reservation_id)
        .first()
    )
    if not reservation:
        raise NotFoundError('Reservation not found')
    return reservation


def _check_owner(user, reservation: Reservation) -> None:
    if reservation.requester_id != getattr(user, 'id', None):
        raise AuthorizationError('Not authorized for this reservation')


def get_reservation(reservation_id) -> Reservation:
    return apply_expiry(_load(reservation_id))


def create_reservation(user, facility_id, category: str, profile: dict) -> Reservation:
    facility = pool.get_facility(facility_id)
    pool.validate_category(category)
    # checked, not held: the bed is only claimed on confirm
    if not pool.has_free_unit(facility.id, category):
        raise CapacityError('No beds available for this room type')
    now = timezone.now()
    reservation = Reservation.objects.create(
        facility=facility,
        requester=user,
        category=category,
        status=Reservation.STATUS_PROVISIONAL,
        provisional_expiry=now + provisional_window(),
        **{k: profile[k] for k in PROFILE_FIELDS if k in profile},
    )
    log_action(user=user, action='reservation_create', object_type='reservation', object_id=reservation.id,
               detail={'facilityId': facility.id, 'category': category})
    logger.info('Reservation %s created (provisional) for %s at facility %s', reservation.id, category, facility.id)
    return reservation


def confirm_reservation(user, reservation_id) -> Reservation:
    reservation = _load(reservation_id)
    _check_owner(user, reservation)
    now = timezone.now()
    if is_lapsed(reservation, now):
        apply_expiry(reservation, now)
        raise ExpiredError()
    if reservation.status != Reservation.STATUS_PROVISIONAL:
        raise InvalidStateError(f'Reservation is {reservation.status}, not provisional')

    # CapacityError inside the block rolls back and leaves the reservation provisional
    with transaction.atomic():
        unit = pool.allocate_free_unit(
            reservation.facility_id, reservation.category, reservation.requester, reservation,
        )
        moved = Reservation.objects.filter(
            id=reservation.id, status=Reservation.STATUS_PROVISIONAL,
        ).update(status=Reservation.STATUS_CONFIRMED, unit=unit, provisional_expiry=None, updated_at=now)
        if moved != 1:
            raise InvalidStateError('Reservation changed state during confirmation')
        log_action(user=user, action='reservation_confirm', object_type='reservation', object_id=reservation.id,
                   detail={'unitId': unit.id, 'unitNumber': unit.unit_number})

    reservation.refresh_from_db()
    logger.info('Reservation %s confirmed on bed %s', reservation.id, unit.unit_number)
    return reservation


def cancel_reservation(user, reservation_id) -> Reservation:
    reservation = _load(reservation_id)
    _check_owner(user, reservation)
    now = timezone.now()
    apply_expiry(reservation, now)
    if reservation.status == Reservation.STATUS_ADMITTED:
        raise InvalidStateError('Cannot cancel an admitted reservation')
    if reservation.status not in (Reservation.STATUS_PROVISIONAL, Reservation.STATUS_CONFIRMED):
        raise InvalidStateError(f'Cannot cancel a {reservation.status} reservation')

    held_unit = reservation.unit if reservation.status == Reservation.STATUS_CONFIRMED else None
    with transaction.atomic():
        moved = Reservation.objects.filter(id=reservation.id, status=reservation.status).update(
            status=Reservation.STATUS_CANCELLED, unit=None, provisional_expiry=None, updated_at=now,
        )
        if moved != 1:
            raise InvalidStateError('Reservation changed state during cancellation')
        if held_unit is not None:
            pool.release(held_unit, reservation=reservation)
        log_action(user=user, action='reservation_cancel', object_type='reservation', object_id=reservation.id,
                   detail={'releasedUnitId': held_unit.id if held_unit else None})

    reservation.refresh_from_db()
    logger.info('Reservation %s cancelled', reservation.id)
    return reservation


def admit_reservation(operator, reservation_id) -> Reservation:
    reservation = get_reservation(reservation_id)
    if reservation.status != Reservation.STATUS_CONFIRMED:
        raise InvalidStateError(f'Only confirmed reservations can be admitted (is {reservation.status})')
    now = timezone.now()
    moved = Reservation.objects.filter(id=reservation.id, status=Reservation.STATUS_CONFIRMED).update(
        status=Reservation.STATUS_ADMITTED, admitted_at=now, updated_at=now,
    )
    if moved != 1:
        raise InvalidStateError('Reservation changed state during admission')
    log_action(user=operator, action='reservation_admit', object_type='reservation', object_id=reservation.id)
    reservation.refresh_from_db()
    return reservation


def discharge_reservation(operator, reservation_id) -> Reservation:
    reservation = get_reservation(reservation_id)
    if reservation.status != Reservation.STATUS_ADMITTED or reservation.discharged_at is not None:
        raise InvalidStateError('Only admitted, not yet discharged reservations can be discharged')
    now = timezone.now()
    with transaction.atomic():
        moved = Reservation.objects.filter(
            id=reservation.id, status=Reservation.STATUS_ADMITTED, discharged_at__isnull=True,
        ).update(discharged_at=now, updated_at=now)
        if moved != 1:
            raise InvalidStateError('Reservation changed state during discharge')
        if reservation.unit is not None:
            pool.release(reservation.unit, reservation=reservation)
        closed = EmergencyAdmission.objects.filter(reservation=reservation).exclude(
            status=EmergencyAdmission.STATUS_DISCHARGED,
        ).update(status=EmergencyAdmission.STATUS_DISCHARGED, updated_at=now)
        log_action(user=operator, action='reservation_discharge', object_type='reservation', object_id=reservation.id)
    if closed:
        cache.delete_many(emergency.stats_cache_keys(reservation.facility_id))
    reservation.refresh_from_db()
    return reservation


def list_for_requester(user):
    expire_stale_reservations(requester_id=user.id)
    return (
        Reservation.objects.filter(requester=user)
        .select_related('facility', 'unit')
        .order_by('-created_at', '-id')
    )


def list_for_facility(facility_id, *, status: Optional[str] = None):
    pool.get_facility(facility_id)
    expire_stale_reservations(facility_id=facility_id)
    qs = Reservation.objects.filter(facility_id=facility_id).select_related('facility', 'unit', 'requester')
    if status:
        qs = qs.filter(status=status)
    return qs.order_by('-created_at', '-id')


def format_reservation(r: Reservation) -> dict:
    return {
        'id': r.id,
        'facilityId': r.facility_id,
        'facilityName': r.facility.name if r.facility_id else None,
        'requesterId': r.requester_id,
        'category': r.category,
        'status': r.status,
        'unitId': r.unit_id,
        'unitNumber': r.unit.unit_number if r.unit_id and r.unit else None,
        'patientName': r.patient_name,
        'patientPhone': r.patient_phone,
        'patientAge': r.patient_age,
        'medicalCondition': r.medical_condition,
        'provisionalExpiry': r.provisional_expiry.isoformat() if r.provisional_expiry else None,
        'admittedAt': r.admitted_at.isoformat() if r.admitted_at else None,
        'dischargedAt': r.discharged_at.isoformat() if r.discharged_at else None,
        'createdAt': r.created_at.isoformat() if r.created_at else None,
    }
