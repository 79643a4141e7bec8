import logging

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.db import transaction

from engine.services.snapshots import resource_snapshot, queue_snapshot

logger = logging.getLogger(__name__)

RESOURCE_EVENT = 'resource.snapshot'
QUEUE_EVENT = 'queue.snapshot'


def resource_group(facility_id: int) -> str:
    return f"facility.{facility_id}.resources"


def queue_group(facility_id: int) -> str:
    return f"facility.{facility_id}.queue"


def _send(group: str, event: dict) -> bool:
    channel_layer = get_channel_layer()
    if channel_layer is None:
        return False
    async_to_sync(channel_layer.group_send)(group, event)
    return True


def publish_resource_snapshot(facility_id: int) -> bool:
    try:
        event = {'type': RESOURCE_EVENT, 'event': 'resourceSnapshotChanged', **resource_snapshot(facility_id)}
        return _send(resource_group(facility_id), event)
    except Exception:
        logger.warning('Resource snapshot publish failed for facility %s', facility_id, exc_info=True)
        return False


def publish_queue_snapshot(facility_id: int) -> bool:
    try:
        event = {'type': QUEUE_EVENT, 'event': 'queueSnapshotChanged', **queue_snapshot(facility_id)}
        return _send(queue_group(facility_id), event)
    except Exception:
        logger.warning('Queue snapshot publish failed for facility %s', facility_id, exc_info=True)
        return False


# publish after commit; a failed publish is logged and dropped
def resource_snapshot_changed(facility_id: int) -> None:
    transaction.on_commit(lambda: publish_resource_snapshot(facility_id))


def queue_snapshot_changed(facility_id: int) -> None:
    transaction.on_commit(lambda: publish_queue_snapshot(facility_id))
