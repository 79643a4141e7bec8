import logging
from typing import Optional, List

from django.conf import settings
from django.db import IntegrityError, transaction
from django.utils import timezone

from engine.exceptions import CapacityError, InvalidStateError, NotFoundError, ValidationError
from engine.models import Facility, ResourceUnit
from engine.services import events
from engine.services.snapshots import bed_availability

logger = logging.getLogger(__name__)

CATEGORIES = [c for c, _ in ResourceUnit.CATEGORY_CHOICES]


def validate_category(category: str) -> str:
    if category not in CATEGORIES:
        raise ValidationError(f"Unknown bed category '{category}'")
    return category


def get_facility(facility_id) -> Facility:
    facility = Facility.objects.filter(id=facility_id).first()
    if not facility:
        raise NotFoundError('Facility not found')
    return facility


def _free_units(facility_id: int, category: str):
    return (
        ResourceUnit.objects
        .filter(facility_id=facility_id, category=category, is_occupied=False)
        .order_by('unit_number', 'id')
    )


def find_free_unit(facility_id: int, category: str) -> ResourceUnit:
    unit = _free_units(facility_id, category).first()
    if unit is None:
        raise CapacityError(f'No {category} beds available')
    return unit


def has_free_unit(facility_id: int, category: str) -> bool:
    return _free_units(facility_id, category).exists()


def _touch(facility_id: int, now) -> None:
    Facility.objects.filter(id=facility_id).update(last_updated=now)
    events.resource_snapshot_changed(facility_id)


def allocate(unit: ResourceUnit, holder, reservation=None) -> ResourceUnit:
    """Claim one specific unit; ``CapacityError`` if it is already held."""
    now = timezone.now()
    claimed = (
        ResourceUnit.objects
        .filter(id=unit.id, is_occupied=False)
        .update(is_occupied=True, holder=holder, reservation=reservation, last_updated=now)
    )
    if claimed != 1:
        raise CapacityError(f'Bed {unit.unit_number} is no longer available')
    unit.refresh_from_db()
    _touch(unit.facility_id, now)
    return unit


def allocate_free_unit(facility_id: int, category: str, holder, reservation=None,
                       *, error_class=CapacityError) -> ResourceUnit:
    """Find and claim the lowest-numbered free unit as one atomic step."""
    for _ in range(settings.UNIT_ALLOCATION_ATTEMPTS):
        candidate_id = _free_units(facility_id, category).values_list('id', flat=True).first()
        if candidate_id is None:
            break
        now = timezone.now()
        claimed = (
            ResourceUnit.objects
            .filter(id=candidate_id, is_occupied=False)
            .update(is_occupied=True, holder=holder, reservation=reservation, last_updated=now)
        )
        if claimed == 1:
            unit = ResourceUnit.objects.get(id=candidate_id)
            _touch(facility_id, now)
            logger.info('Allocated bed %s (%s) at facility %s to user %s',
                        unit.unit_number, category, facility_id, getattr(holder, 'id', holder))
            return unit
        logger.info('Lost allocation race for bed id %s, trying next candidate', candidate_id)
    raise error_class(f'No {category} beds available')


def release(unit: ResourceUnit, *, reservation=None) -> bool:
    """Free a unit.  With ``reservation`` the release only applies while that reservation holds it."""
    now = timezone.now()
    qs = ResourceUnit.objects.filter(id=unit.id)
    if reservation is not None:
        qs = qs.filter(reservation_id=reservation.id)
    released = qs.update(is_occupied=False, holder=None, reservation=None, last_updated=now)
    unit.refresh_from_db()
    if released:
        _touch(unit.facility_id, now)
        logger.info('Released bed %s at facility %s', unit.unit_number, unit.facility_id)
    return bool(released)


def availability(facility_id: int) -> List[dict]:
    return bed_availability(facility_id)


# ---------------------------------------------------------------------------
# Directory mutations (owned by the directory collaborator, kept consistent here)
# ---------------------------------------------------------------------------

def list_units(facility_id: int, *, category: Optional[str] = None, is_occupied: Optional[bool] = None):
    qs = ResourceUnit.objects.filter(facility_id=facility_id)
    if category:
        qs = qs.filter(category=category)
    if is_occupied is not None:
        qs = qs.filter(is_occupied=is_occupied)
    return qs.order_by('category', 'unit_number', 'id')


def get_unit(unit_id) -> ResourceUnit:
    unit = ResourceUnit.objects.filter(id=unit_id).first()
    if not unit:
        raise NotFoundError('Bed not found')
    return unit


def create_unit(facility: Facility, *, category: str, unit_number: str, floor=None, price=0) -> ResourceUnit:
    validate_category(category)
    try:
        with transaction.atomic():
            unit = ResourceUnit.objects.create(
                facility=facility, category=category, unit_number=unit_number, floor=floor, price=price,
            )
    except IntegrityError:
        raise ValidationError('Bed number already exists')
    _touch(facility.id, timezone.now())
    return unit


@transaction.atomic
def update_unit(unit_id, **fields) -> ResourceUnit:
    unit = ResourceUnit.objects.select_for_update().filter(id=unit_id).first()
    if not unit:
        raise NotFoundError('Bed not found')
    if 'category' in fields:
        validate_category(fields['category'])
    identity_change = any(
        k in fields and fields[k] != getattr(unit, k) for k in ('category', 'unit_number')
    )
    if unit.is_occupied and identity_change:
        raise InvalidStateError('Cannot change category or number of an occupied bed')
    if 'unit_number' in fields and ResourceUnit.objects.filter(
        facility_id=unit.facility_id, unit_number=fields['unit_number']
    ).exclude(id=unit.id).exists():
        raise ValidationError('Bed number already exists')
    for key in ('category', 'unit_number', 'floor', 'price'):
        if key in fields:
            setattr(unit, key, fields[key])
    unit.last_updated = timezone.now()
    unit.save()
    _touch(unit.facility_id, unit.last_updated)
    return unit


@transaction.atomic
def delete_unit(unit_id) -> None:
    unit = get_unit(unit_id)
    # admission history keeps its bed
    if unit.reservations.exists() or unit.emergencies.exists():
        raise InvalidStateError('Cannot delete a bed with admission history')
    deleted, _ = ResourceUnit.objects.filter(id=unit.id, is_occupied=False).delete()
    if not deleted:
        raise InvalidStateError('Cannot delete an occupied bed')
    _touch(unit.facility_id, timezone.now())
