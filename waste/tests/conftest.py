from decimal import Decimal

import pytest
from django.core.cache import cache

from waste.models import Hospital, Role, WasteType

from .helpers import make_user


@pytest.fixture(autouse=True)
def clear_cache():
    # throttle counters live in the cache
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def hospitals(db):
    return [
        Hospital.objects.create(code='H1', name='Bahçeşehir', color_hex='#3b82f6'),
        Hospital.objects.create(code='H2', name='Topkapı', color_hex='#8b5cf6'),
        Hospital.objects.create(code='H3', name='Ankara', color_hex='#10b981'),
    ]


@pytest.fixture
def waste_types(db):
    return {
        'medical': WasteType.objects.create(code='medical', name='Tıbbi Atık', color_hex='#e11d48',
                                            cost_per_kg=Decimal('15.00')),
        'recycle': WasteType.objects.create(code='recycle', name='Geri Dönüşüm', color_hex='#06b6d4',
                                            cost_per_kg=Decimal('-1.00')),
    }


@pytest.fixture
def hq_user(db):
    return make_user('hq.admin', roles=[Role.HQ])


@pytest.fixture
def manager_h1(db, hospitals):
    return make_user('manager.h1', roles=[Role.HOSPITAL_MANAGER, Role.COLLECTOR], hospitals=[hospitals[0]])


@pytest.fixture
def collector_h1(db, hospitals):
    return make_user('collector.h1', roles=[Role.COLLECTOR], hospitals=[hospitals[0]])
