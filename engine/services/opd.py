import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from django.conf import settings
from django.db import transaction
from django.db.models import F
from django.utils import timezone

from engine.exceptions import AuthorizationError, InvalidStateError, NotAvailableError, NotFoundError
from engine.models import Queue, QueueEntry, QueueEntryTransition
from engine.services import events, pool
from engine.services.snapshots import queue_snapshot as build_queue_snapshot

logger = logging.getLogger(__name__)


@dataclass
class AdvanceResult:
    facility_id: int
    entry: Optional[QueueEntry] = None
    completed: List[QueueEntry] = field(default_factory=list)

    @property
    def message(self) -> str:
        if self.entry is None:
            return 'queue empty'
        return f'Token {self.entry.token_number} is now being consulted'


def _record(entry: QueueEntry, from_status: Optional[str], to_status: str, operator=None, reason: str = '') -> None:
    QueueEntryTransition.objects.create(
        entry=entry,
        from_status=from_status,
        to_status=to_status,
        operator=operator if getattr(operator, 'id', None) else None,
        reason=reason,
    )


def _locked_queue(facility_id: int) -> Queue:
    Queue.objects.get_or_create(facility_id=facility_id)
    return Queue.objects.select_for_update().get(facility_id=facility_id)


def _next_token(facility_id: int) -> int:
    # counter bump under the UPDATE row lock, never a max() scan
    Queue.objects.get_or_create(facility_id=facility_id)
    Queue.objects.filter(facility_id=facility_id).update(last_token=F('last_token') + 1)
    return Queue.objects.filter(facility_id=facility_id).values_list('last_token', flat=True).get()


def join_queue(user, facility_id, *, department: str = 'General', profile: Optional[dict] = None) -> QueueEntry:
    facility = pool.get_facility(facility_id)
    if not facility.opd_available:
        raise NotAvailableError('OPD not available at this hospital')
    profile = profile or {}
    with transaction.atomic():
        token = _next_token(facility.id)
        waiting_or_serving = QueueEntry.objects.filter(
            facility_id=facility.id, status__in=QueueEntry.ACTIVE_STATUSES,
        ).count()
        entry = QueueEntry.objects.create(
            facility=facility,
            requester=user,
            token_number=token,
            department=department or 'General',
            patient_name=profile.get('patient_name', ''),
            patient_phone=profile.get('patient_phone', ''),
            estimated_wait=waiting_or_serving * settings.OPD_MINUTES_PER_PATIENT,
        )
        _record(entry, None, QueueEntry.STATUS_WAITING, user, 'joined queue')
        events.queue_snapshot_changed(facility.id)
    logger.info('Token %s issued at facility %s (est. wait %s min)', token, facility.id, entry.estimated_wait)
    return entry


def advance_queue(operator, facility_id) -> AdvanceResult:
    facility = pool.get_facility(facility_id)
    result = AdvanceResult(facility_id=facility.id)
    with transaction.atomic():
        queue = _locked_queue(facility.id)
        now = timezone.now()

        # normally at most one, but close every open consultation
        serving = list(QueueEntry.objects.filter(
            facility_id=facility.id, status=QueueEntry.STATUS_IN_CONSULTATION,
        ))
        if serving:
            QueueEntry.objects.filter(
                id__in=[e.id for e in serving], status=QueueEntry.STATUS_IN_CONSULTATION,
            ).update(status=QueueEntry.STATUS_COMPLETED, completed_at=now)
            for e in serving:
                _record(e, QueueEntry.STATUS_IN_CONSULTATION, QueueEntry.STATUS_COMPLETED, operator, 'consultation completed')
                e.status, e.completed_at = QueueEntry.STATUS_COMPLETED, now
            result.completed = serving

        for candidate in QueueEntry.objects.filter(
            facility_id=facility.id, status=QueueEntry.STATUS_WAITING,
        ).order_by('token_number')[:3]:
            moved = QueueEntry.objects.filter(id=candidate.id, status=QueueEntry.STATUS_WAITING).update(
                status=QueueEntry.STATUS_IN_CONSULTATION, consultation_started_at=now,
            )
            if moved == 1:
                candidate.refresh_from_db()
                _record(candidate, QueueEntry.STATUS_WAITING, QueueEntry.STATUS_IN_CONSULTATION, operator, 'called for consultation')
                result.entry = candidate
                break

        queue.current_token = result.entry.token_number if result.entry else None
        queue.save(update_fields=['current_token', 'updated_at'])
        if serving or result.entry:
            events.queue_snapshot_changed(facility.id)

    logger.info('Queue at facility %s advanced: %s', facility.id, result.message)
    return result


def leave_queue(user, entry_id) -> QueueEntry:
    entry = QueueEntry.objects.filter(id=entry_id).first()
    if not entry:
        raise NotFoundError('Queue entry not found')
    if entry.requester_id != getattr(user, 'id', None):
        raise AuthorizationError('Not authorized for this queue entry')
    with transaction.atomic():
        queue = _locked_queue(entry.facility_id)
        entry = QueueEntry.objects.select_for_update().get(id=entry.id)
        if entry.status not in QueueEntry.ACTIVE_STATUSES:
            raise InvalidStateError(f'Cannot leave the queue from {entry.status}')
        previous = entry.status
        entry.status = QueueEntry.STATUS_CANCELLED
        entry.save(update_fields=['status'])
        _record(entry, previous, QueueEntry.STATUS_CANCELLED, user, 'left queue')
        if previous == QueueEntry.STATUS_IN_CONSULTATION:
            queue.current_token = None
            queue.save(update_fields=['current_token', 'updated_at'])
        events.queue_snapshot_changed(entry.facility_id)
    return entry


def my_position(user) -> Optional[Tuple[QueueEntry, int]]:
    """Return the requester's active entry and its place in line, or ``None``.

    The entry in consultation is at position 0; waiting entries count the
    waiting entries with a lower token, plus one.  The entry being seen is
    not counted as ahead, so after one advance tokens 2 and 3 read 1 and 2
    rather than 2 and 3.  Computed on every read.
    """
    entry = (
        QueueEntry.objects.filter(requester=user, status__in=QueueEntry.ACTIVE_STATUSES)
        .select_related('facility')
        .order_by('-checked_in_at', '-id')
        .first()
    )
    if not entry:
        return None
    if entry.status == QueueEntry.STATUS_IN_CONSULTATION:
        return entry, 0
    ahead = QueueEntry.objects.filter(
        facility_id=entry.facility_id,
        status=QueueEntry.STATUS_WAITING,
        token_number__lt=entry.token_number,
    ).count()
    return entry, ahead + 1


def queue_snapshot(facility_id) -> dict:
    facility = pool.get_facility(facility_id)
    return build_queue_snapshot(facility.id)
