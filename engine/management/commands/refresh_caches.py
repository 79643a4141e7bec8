from django.core.management.base import BaseCommand
from django.core.cache import cache
from django.utils import timezone

from engine.models import Facility
from engine.services import emergency, events

class Command(BaseCommand):
    help = "Warm emergency stats caches and re-broadcast every facility snapshot over WebSocket."

    def handle(self, *args, **options):
        now = timezone.now()
        facility_ids = list(Facility.objects.values_list('id', flat=True))

        # drop stale aggregates before recomputing
        cache.delete_many(['emergency:stats:all'] + [f'emergency:stats:{fid}' for fid in facility_ids])
        emergency.emergency_stats()
        for fid in facility_ids:
            emergency.emergency_stats(fid)

        sent = 0
        for fid in facility_ids:
            sent += events.publish_resource_snapshot(fid)
            sent += events.publish_queue_snapshot(fid)

        self.stdout.write(self.style.SUCCESS(
            f"Refreshed stats for {len(facility_ids)} facilities, sent {sent} snapshots at {now}"
        ))
