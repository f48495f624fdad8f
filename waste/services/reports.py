"""
Period reports over completed collections.
"""
from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Optional

from django.utils import timezone

from waste.models import WasteCollection

from .pricing import RateBook, ZERO

UNCATEGORIZED = 'Tanımsız'


@dataclass
class ReportFilters:
    start_date: date
    end_date: date
    hospital_ids: Optional[list[int]] = None
    waste_type_code: Optional[str] = None
    category_id: Optional[int] = None


def _local_bounds(start: date, end: date) -> tuple[datetime, datetime]:
    tz = timezone.get_current_timezone()
    lower = timezone.make_aware(datetime.combine(start, time.min), tz)
    upper = timezone.make_aware(datetime.combine(end + timedelta(days=1), time.min), tz)
    return lower, upper


def report_collections(filters: ReportFilters) -> list[WasteCollection]:
    lower, upper = _local_bounds(filters.start_date, filters.end_date)
    qs = (
        WasteCollection.objects
        .select_related('hospital', 'waste_type', 'location', 'location__category')
        .filter(status=WasteCollection.STATUS_COMPLETED, collected_at__gte=lower, collected_at__lt=upper)
    )
    if filters.hospital_ids is not None:
        qs = qs.filter(hospital_id__in=filters.hospital_ids)
    if filters.waste_type_code:
        qs = qs.filter(waste_type__code=filters.waste_type_code)
    if filters.category_id is not None:
        qs = qs.filter(location__category_id=filters.category_id)
    return list(qs.order_by('-collected_at', '-id'))


class _Bucket:
    __slots__ = ('weight', 'cost', 'count')

    def __init__(self):
        self.weight = ZERO
        self.cost = ZERO
        self.count = 0

    def add(self, weight: Decimal, cost: Decimal):
        self.weight += weight
        self.cost += cost
        self.count += 1


def build_report(filters: ReportFilters) -> dict:
    collections = report_collections(filters)
    book = RateBook.load()

    total = _Bucket()
    by_type: dict[str, _Bucket] = defaultdict(_Bucket)
    type_meta: dict[str, dict] = {}
    by_hospital: dict[int, _Bucket] = defaultdict(_Bucket)
    hospital_meta: dict[int, dict] = {}
    by_category: dict[str, _Bucket] = defaultdict(_Bucket)
    by_month: dict[str, _Bucket] = defaultdict(_Bucket)
    table = []

    for c in collections:
        weight = c.weight_kg or ZERO
        cost = book.cost_of(c)
        category = c.location.category if c.location_id and c.location.category_id else None
        category_name = category.name if category else UNCATEGORIZED
        month = timezone.localtime(c.collected_at).strftime('%Y-%m')

        total.add(weight, cost)
        by_type[c.waste_type.code].add(weight, cost)
        type_meta[c.waste_type.code] = {'name': c.waste_type.name, 'hex': c.waste_type.color_hex}
        by_hospital[c.hospital_id].add(weight, cost)
        hospital_meta[c.hospital_id] = {'code': c.hospital.code, 'name': c.hospital.name, 'hex': c.hospital.color_hex}
        by_category[category_name].add(weight, cost)
        by_month[month].add(weight, cost)
        table.append({
            'id': c.id,
            'date': c.collected_at.isoformat(),
            'hospital': c.hospital.name,
            'hospitalCode': c.hospital.code,
            'wasteType': c.waste_type.name,
            'wasteTypeCode': c.waste_type.code,
            'category': category_name,
            'location': c.location.code if c.location_id else None,
            'weightKg': float(weight),
            'cost': float(cost),
        })

    return {
        'filters': {
            'startDate': filters.start_date.isoformat(),
            'endDate': filters.end_date.isoformat(),
            'hospitalIds': filters.hospital_ids,
            'wasteType': filters.waste_type_code,
            'categoryId': filters.category_id,
        },
        'summary': {
            'totalWeight': float(total.weight),
            'totalCost': float(total.cost),
            'totalCollections': total.count,
            'hospitalCount': len(by_hospital),
            'avgWeightPerCollection': float(total.weight / total.count) if total.count else 0.0,
            'avgCostPerKg': float(total.cost / total.weight) if total.weight else 0.0,
        },
        'wasteTypes': [
            {'code': code, 'name': type_meta[code]['name'], 'hex': type_meta[code]['hex'],
             'weight': float(b.weight), 'cost': float(b.cost), 'count': b.count}
            for code, b in sorted(by_type.items(), key=lambda kv: kv[1].weight, reverse=True)
        ],
        'hospitals': [
            {'id': hid, **hospital_meta[hid], 'weight': float(b.weight), 'cost': float(b.cost), 'count': b.count}
            for hid, b in sorted(by_hospital.items(), key=lambda kv: kv[1].weight, reverse=True)
        ],
        'categories': [
            {'name': name, 'weight': float(b.weight), 'cost': float(b.cost), 'count': b.count}
            for name, b in sorted(by_category.items(), key=lambda kv: kv[1].weight, reverse=True)
        ],
        'trend': [
            {'month': month, 'weight': float(b.weight), 'cost': float(b.cost)}
            for month, b in sorted(by_month.items())
        ],
        'tableData': table,
    }
