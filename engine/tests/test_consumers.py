import pytest
from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from channels.routing import URLRouter
from channels.testing import WebsocketCommunicator

from engine.realtime.routing import websocket_urlpatterns
from engine.services import events

pytestmark = pytest.mark.django_db(transaction=True)


def _app():
    return URLRouter(websocket_urlpatterns)


def test_resource_observer_gets_initial_and_relayed_snapshots(facility, make_units):
    make_units(facility, 'ICU', 2)

    async def scenario():
        communicator = WebsocketCommunicator(_app(), f'/ws/facilities/{facility.id}/resources/')
        connected, _ = await communicator.connect()
        assert connected
        initial = await communicator.receive_json_from()
        assert initial['event'] == 'resourceSnapshotChanged'
        assert initial['byCategory'] == [{'category': 'ICU', 'total': 2, 'available': 2}]

        await get_channel_layer().group_send(events.resource_group(facility.id), {
            'type': events.RESOURCE_EVENT,
            'event': 'resourceSnapshotChanged',
            'facilityId': facility.id,
            'byCategory': [{'category': 'ICU', 'total': 2, 'available': 1}],
        })
        relayed = await communicator.receive_json_from()
        assert 'type' not in relayed
        assert relayed['byCategory'][0]['available'] == 1
        await communicator.disconnect()

    async_to_sync(scenario)()


def test_queue_observer_initial_snapshot(facility):
    async def scenario():
        communicator = WebsocketCommunicator(_app(), f'/ws/facilities/{facility.id}/queue/')
        connected, _ = await communicator.connect()
        assert connected
        initial = await communicator.receive_json_from()
        assert initial['event'] == 'queueSnapshotChanged'
        assert initial['queue'] == [] and initial['currentToken'] is None
        await communicator.disconnect()

    async_to_sync(scenario)()


def test_unknown_facility_is_refused(db):
    async def scenario():
        communicator = WebsocketCommunicator(_app(), '/ws/facilities/424242/resources/')
        connected, code = await communicator.connect()
        assert not connected
        assert code == 4004

    async_to_sync(scenario)()
