import pytest
from django.core.cache import cache

from engine.models import Facility, ResourceUnit, User


@pytest.fixture(autouse=True)
def _isolated_cache_and_layer(settings):
    """Fresh cache (throttles, stats) and a fresh in-memory channel layer per test."""
    settings.CHANNEL_LAYERS = {"default": {"BACKEND": "channels.layers.InMemoryChannelLayer"}}
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def facility(db):
    return Facility.objects.create(name='City General', city='Pune')


@pytest.fixture
def make_units(db):
    def _make(facility, category, count, *, start=1, prefix=None):
        prefix = prefix if prefix is not None else category[0]
        return [
            ResourceUnit.objects.create(facility=facility, category=category, unit_number=f'{prefix}{n:03d}')
            for n in range(start, start + count)
        ]
    return _make


@pytest.fixture
def patient(db):
    return User.objects.create_user(username='patient_a', password='P@ssw0rd1', role='patient')


@pytest.fixture
def other_patient(db):
    return User.objects.create_user(username='patient_b', password='P@ssw0rd1', role='patient')


@pytest.fixture
def staff(db):
    return User.objects.create_user(username='staff_a', password='P@ssw0rd1', role='staff')


@pytest.fixture
def admin_user(db):
    return User.objects.create_user(username='admin_a', password='P@ssw0rd1', role='admin')



@pytest.fixture
def profile():
    return {'patient_name': 'Asha Rao', 'patient_phone': '9800000001', 'patient_age': 42}
