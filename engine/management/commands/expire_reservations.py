from django.core.management.base import BaseCommand

from engine.services.reservations import expire_stale_reservations


class Command(BaseCommand):
    help = "Mark lapsed provisional reservations as expired (safe to run repeatedly)."

    def add_arguments(self, parser):
        parser.add_argument('--facility', type=int, default=None, help='Only sweep this facility id')

    def handle(self, *args, **options):
        filters = {}
        if options['facility']:
            filters['facility_id'] = options['facility']
        expired = expire_stale_reservations(**filters)
        self.stdout.write(self.style.SUCCESS(f"Expired {expired} provisional reservation(s)"))
