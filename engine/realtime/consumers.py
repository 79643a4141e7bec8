"""
Facility-scoped WebSocket observers.

Each connection joins one facility group, receives the current snapshot
immediately and then every snapshot published after a committed change.
Observers only read; mutations go through the HTTP API.
"""
import json

from asgiref.sync import sync_to_async
from channels.generic.websocket import AsyncWebsocketConsumer

from engine.models import Facility
from engine.services import events
from engine.services import snapshots


class FacilityConsumer(AsyncWebsocketConsumer):
    event_name = ""

    def group_for(self, facility_id: int) -> str:
        raise NotImplementedError

    def snapshot_for(self, facility_id: int) -> dict:
        raise NotImplementedError

    async def connect(self):
        try:
            self.facility_id = int(self.scope["url_route"]["kwargs"].get("facility_id"))
        except (TypeError, ValueError):
            await self.close(code=4001)
            return

        exists = await sync_to_async(Facility.objects.filter(id=self.facility_id).exists)()
        if not exists:
            await self.close(code=4004)
            return

        self.group_name = self.group_for(self.facility_id)
        await self.channel_layer.group_add(self.group_name, self.channel_name)
        await self.accept()
        snapshot = await sync_to_async(self.snapshot_for)(self.facility_id)
        await self.send(json.dumps({"event": self.event_name, **snapshot}))

    async def disconnect(self, close_code):
        if hasattr(self, "group_name"):
            await self.channel_layer.group_discard(self.group_name, self.channel_name)

    async def receive(self, text_data=None, bytes_data=None):
        # read-only channel
        return

    async def _relay(self, event):
        payload = {k: v for k, v in event.items() if k != "type"}
        await self.send(json.dumps(payload))


class FacilityResourceConsumer(FacilityConsumer):
    event_name = "resourceSnapshotChanged"

    def group_for(self, facility_id: int) -> str:
        return events.resource_group(facility_id)

    def snapshot_for(self, facility_id: int) -> dict:
        return snapshots.resource_snapshot(facility_id)

    async def resource_snapshot(self, event):
        # event: {"type": "resource.snapshot", "event": ..., "facilityId": ..., "byCategory": [...]}
        await self._relay(event)


class FacilityQueueConsumer(FacilityConsumer):
    event_name = "queueSnapshotChanged"

    def group_for(self, facility_id: int) -> str:
        return events.queue_group(facility_id)

    def snapshot_for(self, facility_id: int) -> dict:
        return snapshots.queue_snapshot(facility_id)

    async def queue_snapshot(self, event):
        await self._relay(event)
