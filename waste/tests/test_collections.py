from decimal import Decimal

import logging

import pytest
from rest_framework.exceptions import ValidationError

from waste.exceptions import CollectionNotFound, CollectionNotPending, InvalidWasteType, TagCodeConflict
from waste.models import AuditEvent, Location, WasteCollection
from waste.services.collections import create_collection, recent_collections, weigh_collection

from .helpers import local_dt, make_collection

pytestmark = pytest.mark.django_db


def test_create_starts_pending_without_weight(hospitals, waste_types, collector_h1):
    c = create_collection(user=collector_h1, hospital_id=hospitals[0].id, waste_type_code='medical', tag_code='TAG-1')
    assert c.status == WasteCollection.STATUS_PENDING
    assert c.weight_kg is None and c.weighed_at is None
    assert c.collected_by == collector_h1
    assert AuditEvent.objects.filter(action='collection_create', object_id=str(c.id)).exists()


def test_unknown_waste_type_is_rejected(hospitals, waste_types, collector_h1):
    with pytest.raises(InvalidWasteType):
        create_collection(user=collector_h1, hospital_id=hospitals[0].id, waste_type_code='plutonium')
    assert not WasteCollection.objects.exists()


def test_unknown_location_code_is_tolerated(hospitals, waste_types, collector_h1):
    c = create_collection(user=collector_h1, hospital_id=hospitals[0].id, waste_type_code='medical',
                          location_code='NOWHERE')
    assert c.location is None


def test_location_code_resolves_within_hospital(hospitals, waste_types, collector_h1):
    h1, h2, _ = hospitals
    Location.objects.create(hospital=h2, code='OR-1')
    mine = Location.objects.create(hospital=h1, code='OR-1')
    c = create_collection(user=collector_h1, hospital_id=h1.id, waste_type_code='medical', location_code='OR-1')
    assert c.location == mine


def test_duplicate_tag_is_a_conflict(hospitals, waste_types, collector_h1):
    create_collection(user=collector_h1, hospital_id=hospitals[0].id, waste_type_code='medical', tag_code='DUP')
    with pytest.raises(TagCodeConflict):
        create_collection(user=collector_h1, hospital_id=hospitals[1].id, waste_type_code='medical', tag_code='DUP')


def test_generated_tags_are_unique(hospitals, waste_types, collector_h1):
    tags = {
        create_collection(user=collector_h1, hospital_id=hospitals[0].id, waste_type_code='medical').tag_code
        for _ in range(20)
    }
    assert len(tags) == 20
    assert all(t.startswith('TAG-') for t in tags)


def test_weigh_completes_exactly_once(hospitals, waste_types, collector_h1):
    create_collection(user=collector_h1, hospital_id=hospitals[0].id, waste_type_code='medical', tag_code='W-1')
    c = weigh_collection(user=collector_h1, tag_code='W-1', weight_kg=Decimal('12.345'))
    assert c.status == WasteCollection.STATUS_COMPLETED
    assert c.weight_kg == Decimal('12.345')
    assert c.weighed_at is not None
    assert c.is_manual_weight is True

    with pytest.raises(CollectionNotPending):
        weigh_collection(user=collector_h1, tag_code='W-1', weight_kg=Decimal('1'))
    c.refresh_from_db()
    assert c.weight_kg == Decimal('12.345')


def test_weigh_in_is_logged(hospitals, waste_types, collector_h1, caplog, monkeypatch):
    # the waste logger does not propagate to the root handler caplog listens on
    monkeypatch.setattr(logging.getLogger('waste'), 'propagate', True)
    create_collection(user=collector_h1, hospital_id=hospitals[0].id, waste_type_code='medical', tag_code='W-LOG')
    with caplog.at_level(logging.INFO, logger='waste.services.collections'):
        weigh_collection(user=collector_h1, tag_code='W-LOG', weight_kg=Decimal('3.5'))
    messages = [r.getMessage() for r in caplog.records if r.name == 'waste.services.collections']
    assert any('collection weighed tag=W-LOG hospital=H1' in m for m in messages)


def test_weigh_unknown_tag(db, collector_h1):
    with pytest.raises(CollectionNotFound):
        weigh_collection(user=collector_h1, tag_code='MISSING', weight_kg=Decimal('1'))


@pytest.mark.parametrize('weight', ['0', '-1', '1.2345', 'abc', 'NaN'])
def test_weigh_rejects_bad_weights(hospitals, waste_types, collector_h1, weight):
    create_collection(user=collector_h1, hospital_id=hospitals[0].id, waste_type_code='medical', tag_code='W-2')
    with pytest.raises(ValidationError):
        weigh_collection(user=collector_h1, tag_code='W-2', weight_kg=weight)
    assert WasteCollection.objects.get(tag_code='W-2').status == WasteCollection.STATUS_PENDING


def test_status_weight_and_weigh_time_move_together(hospitals, waste_types, collector_h1):
    for i in range(4):
        create_collection(user=collector_h1, hospital_id=hospitals[0].id, waste_type_code='medical', tag_code=f'S-{i}')
    weigh_collection(user=collector_h1, tag_code='S-1', weight_kg='2.5', is_manual_weight=False)
    weigh_collection(user=collector_h1, tag_code='S-3', weight_kg='1')
    for c in WasteCollection.objects.all():
        completed = c.status == WasteCollection.STATUS_COMPLETED
        assert completed == (c.weight_kg is not None) == (c.weighed_at is not None)


def test_recent_collections_newest_first_and_bounded(hospitals, waste_types):
    h1, h2, _ = hospitals
    make_collection(h1, waste_types['medical'], 'OLD', collected_at=local_dt(2025, 1, 1, 9))
    make_collection(h1, waste_types['medical'], 'NEW', collected_at=local_dt(2025, 1, 3, 9))
    make_collection(h2, waste_types['medical'], 'OTHER', collected_at=local_dt(2025, 1, 2, 9))

    assert [c.tag_code for c in recent_collections(None, 10)] == ['NEW', 'OTHER', 'OLD']
    assert [c.tag_code for c in recent_collections(h1.id, 10)] == ['NEW', 'OLD']
    assert [c.tag_code for c in recent_collections(None, 1)] == ['NEW']
