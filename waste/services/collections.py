"""
Waste collection repository: tagging a pickup and weighing it in.
"""
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Optional

from django.conf import settings
from django.db import IntegrityError, transaction
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from waste.exceptions import (
    CollectionNotFound,
    CollectionNotPending,
    HospitalNotFound,
    InvalidWasteType,
    TagCodeConflict,
)
from waste.models import Hospital, Location, WasteCollection, WasteType

from .audit import log_action
from .codes import random_code, timestamp_code

logger = logging.getLogger(__name__)

TAG_ATTEMPTS = 5


def recent_collections(hospital_id: Optional[int] = None, limit: Optional[int] = None) -> list[WasteCollection]:
    """Newest collections first, optionally limited to one hospital."""
    qs = WasteCollection.objects.select_related('hospital', 'waste_type', 'location')
    if hospital_id is not None:
        qs = qs.filter(hospital_id=hospital_id)
    qs = qs.order_by('-collected_at', '-id')
    if limit is None:
        limit = settings.WASTE_COLLECTION_LIST_LIMIT
    return list(qs[:limit])


def get_collection_by_tag(tag_code: str) -> Optional[WasteCollection]:
    return WasteCollection.objects.filter(tag_code=tag_code).first()


def generate_tag_code() -> str:
    return f'TAG-{timestamp_code()}{random_code(4)}'


def create_collection(*, user, hospital_id: int, waste_type_code: str,
                      tag_code: Optional[str] = None, location_code: Optional[str] = None) -> WasteCollection:
    """Record a pending pickup.

    An unknown ``location_code`` is tolerated and stored as no location.
    A client supplied ``tag_code`` must be unused; a generated one is
    retried on collision.
    """
    hospital = Hospital.objects.filter(pk=hospital_id).first()
    if hospital is None:
        raise HospitalNotFound()
    waste_type = WasteType.objects.filter(code=waste_type_code).first()
    if waste_type is None:
        raise InvalidWasteType(f'Invalid waste type: {waste_type_code}')
    location = None
    if location_code:
        location = Location.objects.filter(hospital=hospital, code=location_code).first()

    fields = dict(
        hospital=hospital,
        waste_type=waste_type,
        location=location,
        collected_by=user if getattr(user, 'is_authenticated', False) else None,
        status=WasteCollection.STATUS_PENDING,
        is_manual_weight=False,
    )
    if tag_code:
        if WasteCollection.objects.filter(tag_code=tag_code).exists():
            raise TagCodeConflict()
        try:
            with transaction.atomic():
                collection = WasteCollection.objects.create(tag_code=tag_code, **fields)
        except IntegrityError:
            raise TagCodeConflict()
    else:
        collection = None
        for _ in range(TAG_ATTEMPTS):
            try:
                with transaction.atomic():
                    collection = WasteCollection.objects.create(tag_code=generate_tag_code(), **fields)
                break
            except IntegrityError:
                logger.warning('generated tag collided, retrying hospital=%s', hospital.code)
        if collection is None:
            raise TagCodeConflict('Could not allocate a unique tag code')

    log_action(user=user, action='collection_create', object_type='waste_collection', object_id=collection.id,
               detail={'tagCode': collection.tag_code, 'hospitalId': hospital.id, 'wasteType': waste_type.code})
    logger.info('collection created tag=%s hospital=%s type=%s', collection.tag_code, hospital.code, waste_type.code)
    return collection


def validate_weight(weight) -> Decimal:
    try:
        value = Decimal(str(weight))
    except (ArithmeticError, ValueError):
        raise ValidationError({'weightKg': 'must be a number'})
    if not value.is_finite() or value <= 0:
        raise ValidationError({'weightKg': 'must be greater than zero'})
    if value.as_tuple().exponent < -3:
        raise ValidationError({'weightKg': 'at most three decimal places'})
    return value


def weigh_collection(*, user, tag_code: str, weight_kg, is_manual_weight: bool = True) -> WasteCollection:
    """Complete a pending collection with its measured weight.

    The row is locked for the transition so two concurrent weigh-ins of
    the same tag cannot both succeed.
    """
    weight = validate_weight(weight_kg)
    with transaction.atomic():
        collection = (
            WasteCollection.objects.select_for_update()
            .select_related('hospital', 'waste_type', 'location')
            .filter(tag_code=tag_code)
            .first()
        )
        if collection is None:
            raise CollectionNotFound()
        if collection.status != WasteCollection.STATUS_PENDING:
            raise CollectionNotPending()
        collection.weight_kg = weight
        collection.weighed_at = timezone.now()
        collection.is_manual_weight = bool(is_manual_weight)
        collection.status = WasteCollection.STATUS_COMPLETED
        collection.save(update_fields=['weight_kg', 'weighed_at', 'is_manual_weight', 'status', 'updated_at'])

    log_action(user=user, action='collection_weigh', object_type='waste_collection', object_id=collection.id,
               detail={'tagCode': tag_code, 'weightKg': str(weight), 'manual': collection.is_manual_weight})
    logger.info('collection weighed tag=%s hospital=%s weight=%s manual=%s',
                tag_code, collection.hospital.code, weight, collection.is_manual_weight)
    return collection


def format_collection(c: WasteCollection) -> dict:
    return {
        'id': c.id,
        'tagCode': c.tag_code,
        'hospitalId': c.hospital_id,
        'hospitalName': c.hospital.name if c.hospital_id else None,
        'locationId': c.location_id,
        'locationCode': c.location.code if c.location_id else None,
        'wasteTypeId': c.waste_type_id,
        'wasteTypeCode': c.waste_type.code if c.waste_type_id else 'unknown',
        'status': c.status,
        'weightKg': float(c.weight_kg) if c.weight_kg is not None else None,
        'isManualWeight': c.is_manual_weight,
        'collectedById': c.collected_by_id,
        'collectedAt': c.collected_at.isoformat() if c.collected_at else None,
        'weighedAt': c.weighed_at.isoformat() if c.weighed_at else None,
    }
