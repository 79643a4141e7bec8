import asyncio

import pytest
from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer

from engine.exceptions import CapacityError
from engine.models import Reservation
from engine.services import events, opd, pool
from engine.services import reservations as svc

pytestmark = pytest.mark.django_db


def _subscribe(group):
    layer = get_channel_layer()

    async def join():
        channel = await layer.new_channel()
        await layer.group_add(group, channel)
        return channel

    return layer, async_to_sync(join)()


def _drain(layer, channel):
    async def collect():
        received = []
        while True:
            try:
                received.append(await asyncio.wait_for(layer.receive(channel), timeout=0.2))
            except asyncio.TimeoutError:
                return received

    return async_to_sync(collect)()


def test_confirm_publishes_resource_snapshot_after_commit(
    facility, make_units, patient, profile, django_capture_on_commit_callbacks,
):
    make_units(facility, 'General', 2)
    r = svc.create_reservation(patient, facility.id, 'General', profile)
    layer, channel = _subscribe(events.resource_group(facility.id))

    with django_capture_on_commit_callbacks(execute=True) as callbacks:
        svc.confirm_reservation(patient, r.id)
    assert len(callbacks) >= 1

    messages = _drain(layer, channel)
    assert messages
    last = messages[-1]
    assert last['type'] == events.RESOURCE_EVENT
    assert last['event'] == 'resourceSnapshotChanged'
    assert last['facilityId'] == facility.id
    assert last['byCategory'] == [{'category': 'General', 'total': 2, 'available': 1}]


def test_nothing_is_published_before_commit(facility, make_units, patient, profile, django_capture_on_commit_callbacks):
    make_units(facility, 'General', 1)
    r = svc.create_reservation(patient, facility.id, 'General', profile)
    layer, channel = _subscribe(events.resource_group(facility.id))

    with django_capture_on_commit_callbacks(execute=False) as callbacks:
        svc.confirm_reservation(patient, r.id)
    assert callbacks
    assert _drain(layer, channel) == []


def test_failed_allocation_publishes_nothing(facility, make_units, patient, other_patient, profile,
                                            django_capture_on_commit_callbacks):
    make_units(facility, 'ICU', 1)
    r = svc.create_reservation(patient, facility.id, 'ICU', profile)
    pool.allocate_free_unit(facility.id, 'ICU', other_patient)

    with django_capture_on_commit_callbacks(execute=False) as callbacks:
        with pytest.raises(CapacityError):
            svc.confirm_reservation(patient, r.id)
    assert callbacks == []


def test_queue_events_carry_no_requester_ids(facility, patient, staff, django_capture_on_commit_callbacks):
    layer, channel = _subscribe(events.queue_group(facility.id))
    with django_capture_on_commit_callbacks(execute=True):
        opd.join_queue(patient, facility.id, profile={'patient_name': 'Meera'})
    with django_capture_on_commit_callbacks(execute=True):
        opd.advance_queue(staff, facility.id)

    messages = _drain(layer, channel)
    assert [m['event'] for m in messages] == ['queueSnapshotChanged', 'queueSnapshotChanged']
    assert messages[0]['currentToken'] is None
    assert messages[1]['currentToken'] == 1
    assert messages[1]['queueLength'] == 1
    for m in messages:
        assert all('requesterId' not in e for e in m['queue'])


def test_publish_failure_does_not_undo_the_transition(
    facility, make_units, patient, profile, monkeypatch, django_capture_on_commit_callbacks,
):
    make_units(facility, 'General', 1)
    r = svc.create_reservation(patient, facility.id, 'General', profile)

    def broken_layer():
        raise ConnectionError('redis down')

    monkeypatch.setattr(events, 'get_channel_layer', broken_layer)
    with django_capture_on_commit_callbacks(execute=True):
        confirmed = svc.confirm_reservation(patient, r.id)

    assert confirmed.status == Reservation.STATUS_CONFIRMED
    assert events.publish_resource_snapshot(facility.id) is False
    assert events.publish_queue_snapshot(facility.id) is False
