"""
Monthly operational coefficients (HBYS counts) per hospital and category.
"""
from __future__ import annotations

import logging
import re
from decimal import Decimal
from typing import Optional

from rest_framework.exceptions import ValidationError

from waste.exceptions import CategoryNotFound
from waste.models import Hospital, OperationalCoefficient, LocationCategory

from .audit import log_action
from .upserts import upsert

logger = logging.getLogger(__name__)

PERIOD_RE = re.compile(r'^\d{4}-(0[1-9]|1[0-2])$')


def validate_period(period: str) -> str:
    if not period or not PERIOD_RE.match(period):
        raise ValidationError({'period': 'expected YYYY-MM'})
    return period


def list_coefficients(hospital_id: int, period: Optional[str] = None) -> list[OperationalCoefficient]:
    qs = OperationalCoefficient.objects.select_related('category').filter(hospital_id=hospital_id)
    if period:
        qs = qs.filter(period=validate_period(period))
    return list(qs.order_by('-period', 'category__code'))


def list_periods(hospital_id: int) -> list[str]:
    return list(
        OperationalCoefficient.objects.filter(hospital_id=hospital_id)
        .order_by('-period').values_list('period', flat=True).distinct()
    )


def format_coefficient(c: OperationalCoefficient) -> dict:
    return {
        'id': c.id,
        'hospitalId': c.hospital_id,
        'categoryId': c.category_id,
        'categoryCode': c.category.code,
        'categoryName': c.category.name,
        'period': c.period,
        'value': float(c.value),
    }


def upsert_coefficients(*, user, hospital: Hospital, period: str, values: list[dict]) -> list[OperationalCoefficient]:
    """Write ``values`` (``category_id``, ``value``) for one hospital and month atomically."""
    validate_period(period)
    ids = {v['category_id'] for v in values}
    known = set(LocationCategory.objects.filter(id__in=ids).values_list('id', flat=True))
    if ids - known:
        raise CategoryNotFound(f'Location category not found: {sorted(ids - known)}')
    latest = {v['category_id']: Decimal(v['value']) for v in values}
    rows = [
        OperationalCoefficient(hospital=hospital, category_id=category_id, period=period, value=value)
        for category_id, value in latest.items()
    ]
    upsert(OperationalCoefficient, rows, unique_fields=['hospital', 'category', 'period'],
           update_fields=['value', 'updated_at'])
    log_action(user=user, action='coefficient_upsert', object_type='hospital', object_id=hospital.id,
               detail={'period': period, 'categories': sorted(ids)})
    logger.info('coefficients upserted hospital=%s period=%s count=%d', hospital.code, period, len(rows))
    return list_coefficients(hospital.id, period)
