"""
Location categories (global, HQ managed) and hospital locations.
"""
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Optional

from django.db import IntegrityError, transaction

from waste.exceptions import CategoryNotFound, DuplicateCode, LocationNotFound
from waste.models import Hospital, Location, LocationCategory

from .audit import log_action
from .codes import random_code, timestamp_code

logger = logging.getLogger(__name__)

CODE_ATTEMPTS = 5


def list_categories() -> list[LocationCategory]:
    return list(LocationCategory.objects.order_by('code'))


def format_category(c: LocationCategory) -> dict:
    return {
        'id': c.id,
        'code': c.code,
        'name': c.name,
        'unit': c.unit,
        'referenceWasteFactor': float(c.reference_waste_factor),
    }


def create_category(*, user, code: str, name: str, unit: str,
                    reference_waste_factor: Optional[Decimal] = None) -> LocationCategory:
    code = code.strip().upper()
    if LocationCategory.objects.filter(code=code).exists():
        raise DuplicateCode('code already in use')
    try:
        with transaction.atomic():
            category = LocationCategory.objects.create(
                code=code,
                name=name,
                unit=unit,
                reference_waste_factor=reference_waste_factor if reference_waste_factor is not None else Decimal('1'),
            )
    except IntegrityError:
        raise DuplicateCode('code already in use')
    log_action(user=user, action='category_create', object_type='location_category', object_id=category.id,
               detail={'code': code})
    return category


def update_category_factor(*, user, category_id: int, reference_waste_factor: Decimal) -> LocationCategory:
    category = LocationCategory.objects.filter(pk=category_id).first()
    if category is None:
        raise CategoryNotFound()
    category.reference_waste_factor = reference_waste_factor
    category.save(update_fields=['reference_waste_factor'])
    log_action(user=user, action='category_update', object_type='location_category', object_id=category.id,
               detail={'referenceWasteFactor': str(reference_waste_factor)})
    return category


def list_locations(hospital_ids: Optional[list[int]] = None) -> list[Location]:
    qs = Location.objects.select_related('hospital', 'category')
    if hospital_ids is not None:
        qs = qs.filter(hospital_id__in=hospital_ids)
    return list(qs.order_by('hospital__code', 'code'))


def format_location(loc: Location) -> dict:
    return {
        'id': loc.id,
        'hospitalId': loc.hospital_id,
        'hospitalName': loc.hospital.name,
        'code': loc.code,
        'categoryId': loc.category_id,
        'categoryName': loc.category.name if loc.category_id else None,
        'categoryCode': loc.category.code if loc.category_id else None,
        'customLabel': loc.custom_label,
        'isActive': loc.is_active,
    }


def location_code_for(hospital: Hospital) -> str:
    return f'{hospital.code}-{timestamp_code()}-{random_code(4)}'


def create_location(*, user, hospital: Hospital, category_id: int, custom_label: Optional[str] = None) -> Location:
    """Create a location with a server generated ``HOSPITAL-TIME-RAND`` code."""
    category = LocationCategory.objects.filter(pk=category_id).first()
    if category is None:
        raise CategoryNotFound()
    location = None
    for _ in range(CODE_ATTEMPTS):
        try:
            with transaction.atomic():
                location = Location.objects.create(
                    hospital=hospital,
                    category=category,
                    code=location_code_for(hospital),
                    custom_label=custom_label or None,
                )
            break
        except IntegrityError:
            logger.warning('location code collided, retrying hospital=%s', hospital.code)
    if location is None:
        raise DuplicateCode('Could not allocate a unique location code')
    log_action(user=user, action='location_create', object_type='location', object_id=location.id,
               detail={'hospitalId': hospital.id, 'code': location.code})
    logger.info('location created code=%s', location.code)
    return location


def get_location(location_id: int) -> Location:
    location = Location.objects.select_related('hospital', 'category').filter(pk=location_id).first()
    if location is None:
        raise LocationNotFound()
    return location


def set_location_active(*, user, location: Location, is_active: bool) -> Location:
    location.is_active = is_active
    location.save(update_fields=['is_active'])
    log_action(user=user, action='location_update', object_type='location', object_id=location.id,
               detail={'isActive': is_active})
    return location
