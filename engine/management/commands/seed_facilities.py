"""
Management command to populate the database with demo facilities and beds.
"""
from decimal import Decimal

from django.core.management.base import BaseCommand
from django.db import transaction

from engine.models import Facility, Queue, ResourceUnit


FACILITIES = [
    {'name': 'City General Hospital', 'city': 'Pune', 'address': '12 Station Road', 'phone': '020-5550101'},
    {'name': 'Riverside Medical Centre', 'city': 'Pune', 'address': '4 Riverside Lane', 'phone': '020-5550202'},
    {'name': 'Northside Clinic', 'city': 'Mumbai', 'address': '88 Hill View', 'phone': '022-5550303',
     'emergency_available': False},
]

# category -> (bed prefix, nightly price)
BED_PLAN = {
    ResourceUnit.CATEGORY_GENERAL: ('G', Decimal('1500.00')),
    ResourceUnit.CATEGORY_ICU: ('I', Decimal('8000.00')),
    ResourceUnit.CATEGORY_PRIVATE: ('P', Decimal('4500.00')),
}


class Command(BaseCommand):
    help = 'Populate database with demo facilities, beds and empty OPD queues'

    def add_arguments(self, parser):
        parser.add_argument('--beds', type=int, default=5, help='Beds per category per facility')

    @transaction.atomic
    def handle(self, *args, **options):
        per_category = options['beds']
        for data in FACILITIES:
            facility, created = Facility.objects.get_or_create(name=data['name'], defaults=data)
            self.stdout.write(f"{'Created' if created else 'Found'} facility: {facility.name}")
            Queue.objects.get_or_create(facility=facility)
            for category, (prefix, price) in BED_PLAN.items():
                for n in range(1, per_category + 1):
                    ResourceUnit.objects.get_or_create(
                        facility=facility,
                        unit_number=f'{prefix}{n:03d}',
                        defaults={'category': category, 'floor': 1 + (n - 1) // 10, 'price': price},
                    )
            self.stdout.write(f'  beds ensured: {per_category} per category')
        self.stdout.write(self.style.SUCCESS('Demo data ready.'))
