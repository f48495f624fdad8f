"""
Effective-dated cost per kg.

A waste type's rate on a day is the :class:`WasteTypeCost` with the
latest ``effective_from`` on or before that day; when none qualifies
the waste type's static ``cost_per_kg`` applies.  :func:`resolve_rate`
answers one lookup against the database, :class:`RateBook` preloads
every history once so aggregations can price thousands of collections
without a query each.
"""
from __future__ import annotations

import logging
from bisect import bisect_right
from collections import defaultdict
from datetime import date, datetime
from decimal import Decimal
from typing import Iterable, Optional

from django.utils import timezone

from waste.exceptions import WasteTypeNotFound
from waste.models import WasteType, WasteTypeCost

from .audit import log_action
from .upserts import upsert

logger = logging.getLogger(__name__)

ZERO = Decimal('0')


def to_day(value) -> date:
    """Truncate a datetime to its local calendar day; dates pass through."""
    if isinstance(value, datetime):
        if timezone.is_aware(value):
            value = timezone.localtime(value)
        return value.date()
    return value


def resolve_rate(waste_type_id: int, on_date) -> Decimal:
    waste_type = WasteType.objects.filter(pk=waste_type_id).first()
    if waste_type is None:
        raise WasteTypeNotFound()
    record = (
        WasteTypeCost.objects
        .filter(waste_type_id=waste_type_id, effective_from__lte=to_day(on_date))
        .order_by('-effective_from')
        .first()
    )
    return record.cost_per_kg if record else waste_type.cost_per_kg


class RateBook:
    """Snapshot of all rate histories with the same semantics as :func:`resolve_rate`."""

    def __init__(self, defaults: dict[int, Decimal], history: dict[int, list[tuple[date, Decimal]]]):
        self._defaults = dict(defaults)
        self._days: dict[int, list[date]] = {}
        self._rates: dict[int, list[Decimal]] = {}
        for waste_type_id, rows in history.items():
            rows = sorted(rows)
            self._days[waste_type_id] = [day for day, _ in rows]
            self._rates[waste_type_id] = [rate for _, rate in rows]

    @classmethod
    def load(cls) -> 'RateBook':
        defaults = dict(WasteType.objects.values_list('id', 'cost_per_kg'))
        history: dict[int, list[tuple[date, Decimal]]] = defaultdict(list)
        rows = WasteTypeCost.objects.values_list('waste_type_id', 'effective_from', 'cost_per_kg')
        for waste_type_id, day, rate in rows:
            history[waste_type_id].append((day, rate))
        return cls(defaults, history)

    def rate_for(self, waste_type_id: int, on_date) -> Decimal:
        if waste_type_id not in self._defaults:
            raise WasteTypeNotFound()
        days = self._days.get(waste_type_id)
        if days:
            idx = bisect_right(days, to_day(on_date))
            if idx:
                return self._rates[waste_type_id][idx - 1]
        return self._defaults[waste_type_id]

    def default_for(self, waste_type_id: int) -> Decimal:
        return self._defaults[waste_type_id]

    def cost_of(self, collection) -> Decimal:
        """Monetary value of one collection; unweighed collections cost nothing."""
        if collection.weight_kg is None:
            return ZERO
        return collection.weight_kg * self.rate_for(collection.waste_type_id, collection.collected_at)

    def total_cost(self, collections: Iterable) -> Decimal:
        return sum((self.cost_of(c) for c in collections), ZERO)


# ---------------------------------------------------------------------------
# Rate history maintenance
# ---------------------------------------------------------------------------

def list_rates() -> list[WasteTypeCost]:
    return list(
        WasteTypeCost.objects.select_related('waste_type').order_by('waste_type_id', '-effective_from')
    )


def format_rate(cost: WasteTypeCost) -> dict:
    wt = cost.waste_type
    return {
        'id': cost.id,
        'wasteTypeId': cost.waste_type_id,
        'effectiveFrom': cost.effective_from.isoformat(),
        'costPerKg': float(cost.cost_per_kg),
        'wasteTypeName': wt.name,
        'wasteTypeCode': wt.code,
        'wasteTypeColor': wt.color_hex,
    }


def upsert_rates(*, user, effective_from: date, costs: list[dict]) -> list[WasteTypeCost]:
    """Insert or overwrite the rate of each waste type for ``effective_from``.

    ``costs`` items carry ``waste_type_id`` and ``cost_per_kg``.  The
    (waste type, day) unique constraint makes concurrent writes of the
    same key last-write-wins without duplicate rows.
    """
    ids = {c['waste_type_id'] for c in costs}
    known = set(WasteType.objects.filter(id__in=ids).values_list('id', flat=True))
    missing = ids - known
    if missing:
        raise WasteTypeNotFound(f'Waste type not found: {sorted(missing)}')
    # last entry wins when a type is listed twice
    latest = {c['waste_type_id']: c['cost_per_kg'] for c in costs}
    rows = [
        WasteTypeCost(waste_type_id=wt_id, effective_from=effective_from, cost_per_kg=rate)
        for wt_id, rate in latest.items()
    ]
    upsert(WasteTypeCost, rows, unique_fields=['waste_type', 'effective_from'],
           update_fields=['cost_per_kg', 'updated_at'])
    log_action(user=user, action='rate_upsert', object_type='waste_type_cost', object_id=None,
               detail={'effectiveFrom': effective_from.isoformat(), 'wasteTypeIds': sorted(ids)})
    logger.info('waste type rates upserted effective_from=%s types=%s', effective_from, sorted(ids))
    return list(
        WasteTypeCost.objects.select_related('waste_type')
        .filter(effective_from=effective_from, waste_type_id__in=ids)
        .order_by('waste_type_id')
    )


def current_rate_table(on_date: Optional[date] = None) -> list[dict]:
    """Rate of every active waste type on ``on_date`` (today when omitted)."""
    book = RateBook.load()
    day = on_date or timezone.localdate()
    return [
        {
            'wasteTypeId': wt.id,
            'wasteTypeCode': wt.code,
            'costPerKg': float(book.rate_for(wt.id, day)),
        }
        for wt in WasteType.objects.filter(is_active=True)
    ]
