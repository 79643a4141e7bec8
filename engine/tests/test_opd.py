import pytest

from engine.exceptions import AuthorizationError, InvalidStateError, NotAvailableError
from engine.models import Facility, Queue, QueueEntry, QueueEntryTransition, User
from engine.services import opd

pytestmark = pytest.mark.django_db


def _join(user, facility, name='Ravi'):
    return opd.join_queue(user, facility.id, department='General', profile={'patient_name': name})


@pytest.fixture
def xyz(db):
    return [User.objects.create_user(username=n, password='P@ssw0rd1') for n in ('x', 'y', 'z')]


def test_tokens_are_sequential_per_facility(facility, xyz):
    other = Facility.objects.create(name='Riverside')
    tokens = [_join(u, facility).token_number for u in xyz]
    assert tokens == [1, 2, 3]
    assert _join(xyz[0], other).token_number == 1
    assert Queue.objects.get(facility=facility).last_token == 3


def test_tokens_keep_increasing_after_entries_finish(facility, xyz, staff):
    _join(xyz[0], facility)
    opd.advance_queue(staff, facility.id)
    opd.advance_queue(staff, facility.id)
    assert _join(xyz[1], facility).token_number == 2


def test_estimated_wait_is_snapshotted_at_join(facility, xyz, settings):
    settings.OPD_MINUTES_PER_PATIENT = 10
    waits = [_join(u, facility).estimated_wait for u in xyz]
    assert waits == [0, 10, 20]
    first = QueueEntry.objects.get(facility=facility, token_number=1)
    assert first.estimated_wait == 0


def test_join_requires_opd_service(facility, patient):
    facility.opd_available = False
    facility.save()
    with pytest.raises(NotAvailableError):
        _join(patient, facility)
    assert not QueueEntry.objects.exists()


def test_advance_and_positions(facility, xyz, staff):
    x, y, z = xyz
    for u in xyz:
        _join(u, facility)

    result = opd.advance_queue(staff, facility.id)
    assert result.entry.token_number == 1
    assert result.entry.status == QueueEntry.STATUS_IN_CONSULTATION
    assert result.entry.consultation_started_at is not None
    assert opd.my_position(x)[1] == 0
    assert opd.my_position(y)[1] == 1
    assert opd.my_position(z)[1] == 2

    result = opd.advance_queue(staff, facility.id)
    assert [e.token_number for e in result.completed] == [1]
    assert result.entry.token_number == 2
    statuses = dict(QueueEntry.objects.filter(facility=facility).values_list('token_number', 'status'))
    assert statuses == {1: 'completed', 2: 'in_consultation', 3: 'waiting'}
    assert opd.my_position(x) is None
    assert opd.my_position(z)[1] == 1
    assert Queue.objects.get(facility=facility).current_token == 2


def test_positions_before_any_advance(facility, xyz):
    for u in xyz:
        _join(u, facility)
    assert [opd.my_position(u)[1] for u in xyz] == [1, 2, 3]


def test_advance_on_empty_queue_is_a_no_op(facility, staff):
    result = opd.advance_queue(staff, facility.id)
    assert result.entry is None
    assert result.completed == []
    assert result.message == 'queue empty'


def test_last_advance_completes_and_reports_empty(facility, patient, staff):
    _join(patient, facility)
    opd.advance_queue(staff, facility.id)
    result = opd.advance_queue(staff, facility.id)
    assert result.entry is None
    assert [e.token_number for e in result.completed] == [1]
    assert Queue.objects.get(facility=facility).current_token is None


def test_at_most_one_in_consultation(facility, xyz, staff):
    for u in xyz:
        _join(u, facility)
    for _ in range(5):
        opd.advance_queue(staff, facility.id)
        assert QueueEntry.objects.filter(
            facility=facility, status=QueueEntry.STATUS_IN_CONSULTATION,
        ).count() <= 1


def test_advance_closes_stray_consultations(facility, xyz, staff):
    for u in xyz:
        _join(u, facility)
    QueueEntry.objects.filter(token_number__in=[1, 2]).update(status=QueueEntry.STATUS_IN_CONSULTATION)
    result = opd.advance_queue(staff, facility.id)
    assert sorted(e.token_number for e in result.completed) == [1, 2]
    assert result.entry.token_number == 3


def test_leave_queue(facility, xyz, staff):
    x, y, z = xyz
    for u in xyz:
        _join(u, facility)
    entry_y = QueueEntry.objects.get(requester=y)
    with pytest.raises(AuthorizationError):
        opd.leave_queue(x, entry_y.id)
    left = opd.leave_queue(y, entry_y.id)
    assert left.status == QueueEntry.STATUS_CANCELLED
    assert opd.my_position(z)[1] == 2
    with pytest.raises(InvalidStateError):
        opd.leave_queue(y, entry_y.id)
    # cancelled entries are skipped
    opd.advance_queue(staff, facility.id)
    assert opd.advance_queue(staff, facility.id).entry.token_number == 3


def test_transitions_are_recorded(facility, patient, staff):
    entry = _join(patient, facility)
    opd.advance_queue(staff, facility.id)
    opd.advance_queue(staff, facility.id)
    trail = list(
        QueueEntryTransition.objects.filter(entry=entry).order_by('id').values_list('from_status', 'to_status')
    )
    assert trail == [(None, 'waiting'), ('waiting', 'in_consultation'), ('in_consultation', 'completed')]


def test_snapshot_lists_active_entries_without_requesters(facility, xyz, staff):
    for u in xyz:
        _join(u, facility)
    opd.advance_queue(staff, facility.id)
    snap = opd.queue_snapshot(facility.id)
    assert snap['currentToken'] == 1
    assert snap['queueLength'] == 3
    assert [e['tokenNumber'] for e in snap['queue']] == [1, 2, 3]
    assert all('requesterId' not in e for e in snap['queue'])
