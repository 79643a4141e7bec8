from typing import Optional, List, Dict
from django.db.models import Count, Q
from django.utils import timezone

from engine.models import Facility, ResourceUnit, QueueEntry


def bed_availability(facility_id: int) -> List[Dict]:
    rows = (
        ResourceUnit.objects.filter(facility_id=facility_id)
        .values('category')
        .annotate(total=Count('id'), available=Count('id', filter=Q(is_occupied=False)))
        .order_by('category')
    )
    return [{'category': r['category'], 'total': r['total'], 'available': r['available']} for r in rows]


def resource_snapshot(facility_id: int) -> dict:
    last_updated = Facility.objects.filter(id=facility_id).values_list('last_updated', flat=True).first()
    return {
        'facilityId': facility_id,
        'byCategory': bed_availability(facility_id),
        'lastUpdated': (last_updated or timezone.now()).isoformat(),
    }


def format_queue_entry(entry: QueueEntry, *, include_requester: bool = False) -> dict:
    data = {
        'id': entry.id,
        'facilityId': entry.facility_id,
        'tokenNumber': entry.token_number,
        'department': entry.department,
        'patientName': entry.patient_name,
        'status': entry.status,
        'estimatedWait': entry.estimated_wait,
        'checkedInAt': entry.checked_in_at.isoformat() if entry.checked_in_at else None,
        'consultationStartedAt': entry.consultation_started_at.isoformat() if entry.consultation_started_at else None,
        'completedAt': entry.completed_at.isoformat() if entry.completed_at else None,
    }
    if include_requester:
        data['requesterId'] = entry.requester_id
        data['patientPhone'] = entry.patient_phone
    return data


def current_token(facility_id: int) -> Optional[int]:
    serving = (
        QueueEntry.objects.filter(facility_id=facility_id, status=QueueEntry.STATUS_IN_CONSULTATION)
        .order_by('token_number')
        .values_list('token_number', flat=True)
        .first()
    )
    return serving


def queue_snapshot(facility_id: int) -> dict:
    """Active entries (waiting + in consultation) in token order, without requester ids."""
    entries = list(
        QueueEntry.objects.filter(facility_id=facility_id, status__in=QueueEntry.ACTIVE_STATUSES)
        .order_by('token_number')
    )
    return {
        'facilityId': facility_id,
        'queue': [format_queue_entry(e) for e in entries],
        'currentToken': current_token(facility_id),
        'queueLength': len(entries),
        'timestamp': timezone.now().isoformat(),
    }
