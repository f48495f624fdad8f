"""
Analytics report: efficiency KPIs, issue risk, cost attribution and
time-of-day distribution.

``kpis``, ``categoryRanking``, ``riskMatrix``, ``costAnalysis``,
``timeAnalysis``, ``shiftAnalysis`` and ``avgCollectionTime`` follow the
caller's hospital scope.  ``hospitalCostRanking`` and
``hospitalTimeStats`` always cover every active hospital.

All money is priced per collection with the rate effective on its
collection day (see :mod:`waste.services.pricing`).
"""
from __future__ import annotations

import logging
from collections import defaultdict
from decimal import Decimal
from typing import Optional

from django.conf import settings
from django.db.models import Count, Q
from django.utils import timezone

from waste.models import Hospital, Issue, WasteCollection, WasteType

from .collections import recent_collections
from .dashboard import open_issue_counts, total_weight, weight_by_type, weight_of
from .kpi import get_unit_count_provider, waste_intensity
from .pricing import RateBook

logger = logging.getLogger(__name__)

ZERO = Decimal('0')
MEDICAL_CODE = 'medical'
RECYCLE_CODE = 'recycle'

DEFAULT_COLLECTION_MINUTES = 15.0
RANKING_SIZE = 3

# (key, label, hours); together the hours cover 0-23 exactly once.
SHIFTS = (
    ('morning', 'Sabah', range(8, 16)),
    ('evening', 'Akşam', range(16, 24)),
    ('night', 'Gece', range(0, 8)),
)


def ratio(part: Decimal, whole: Decimal) -> float:
    return float(part / whole) if whole else 0.0


def severity_for(count: int) -> str:
    if count > 5:
        return 'high'
    if count > 2:
        return 'medium'
    return 'low'


def risk_level_for(open_count: int) -> str:
    if open_count > 10:
        return 'high'
    if open_count > 5:
        return 'medium'
    return 'low'


def risk_score_for(open_count: int) -> int:
    return min(100, open_count * 10)


def cost_efficiency(recycle_ratio: float, has_weight: bool) -> float:
    if not has_weight:
        return 0.5
    return min(recycle_ratio + 0.5, 1.0)


def local_hour(moment) -> int:
    return timezone.localtime(moment).hour


def period_of(moment) -> str:
    return timezone.localtime(moment).strftime('%Y-%m')


def build_kpis(collections, types_by_code: dict[str, WasteType], hospital_ids: list[int]) -> dict:
    total = total_weight(collections)
    per_type = weight_by_type(collections)

    def weight_for(code):
        wt = types_by_code.get(code)
        return per_type.get(wt.id, ZERO) if wt else ZERO

    recycle = ratio(weight_for(RECYCLE_CODE), total)
    provider = get_unit_count_provider()
    units = provider.unit_counts(hospital_ids, {period_of(c.collected_at) for c in collections})
    kpis = waste_intensity(total, units)
    kpis.update({
        'medicalWasteRatio': ratio(weight_for(MEDICAL_CODE), total),
        'recycleRatio': recycle,
        'costEfficiency': cost_efficiency(recycle, total != ZERO),
    })
    return kpis


def category_ranking(collections, waste_types) -> list[dict]:
    total = total_weight(collections)
    per_type = weight_by_type(collections)
    rows = []
    for wt in waste_types:
        weight = per_type.get(wt.id, ZERO)
        rows.append({
            'code': wt.code,
            'name': wt.name,
            'weight': float(weight),
            'percentage': round(float(weight / total * 100), 2) if total else 0.0,
            'hex': wt.color_hex,
        })
    rows.sort(key=lambda r: r['weight'], reverse=True)
    return rows


def risk_matrix(hospital_id: Optional[int]) -> dict:
    issues = Issue.objects.all()
    if hospital_id is not None:
        issues = issues.filter(hospital_id=hospital_id)
    totals = issues.aggregate(
        open=Count('id', filter=Q(is_resolved=False)),
        resolved=Count('id', filter=Q(is_resolved=True)),
    )
    by_category = {
        r['category']: r['n']
        for r in issues.filter(is_resolved=False).values('category').annotate(n=Count('id'))
    }
    open_count = totals['open'] or 0
    return {
        'openIssues': open_count,
        'resolvedIssues': totals['resolved'] or 0,
        'byCategory': [
            {
                'category': category,
                'count': by_category.get(category, 0),
                'severity': severity_for(by_category.get(category, 0)),
            }
            for category in Issue.CATEGORIES
        ],
        'riskLevel': risk_level_for(open_count),
        'riskScore': risk_score_for(open_count),
    }


def cost_analysis(collections, waste_types, book: RateBook) -> tuple[list[dict], Decimal]:
    weights: dict[int, Decimal] = defaultdict(lambda: ZERO)
    costs: dict[int, Decimal] = defaultdict(lambda: ZERO)
    for c in collections:
        weights[c.waste_type_id] += weight_of(c)
        costs[c.waste_type_id] += book.cost_of(c)
    rows = []
    for wt in waste_types:
        weight = weights.get(wt.id, ZERO)
        cost = costs.get(wt.id, ZERO)
        unit_cost = cost / weight if weight else book.default_for(wt.id)
        rows.append({
            'wasteType': wt.name,
            'code': wt.code,
            'weight': float(weight),
            'unitCost': float(unit_cost),
            'totalCost': float(cost),
            'hex': wt.color_hex,
        })
    return rows, sum(costs.values(), ZERO)


def hospital_cost_ranking(hospitals, collections, book: RateBook) -> dict:
    costs: dict[int, Decimal] = defaultdict(lambda: ZERO)
    weights: dict[int, Decimal] = defaultdict(lambda: ZERO)
    for c in collections:
        costs[c.hospital_id] += book.cost_of(c)
        weights[c.hospital_id] += weight_of(c)
    ranking = [
        {
            'id': h.id,
            'code': h.code,
            'name': h.name,
            'hex': h.color_hex,
            'totalCost': float(costs[h.id]),
            'totalWeight': float(weights[h.id]),
        }
        for h in hospitals
    ]
    ranking.sort(key=lambda r: (r['totalCost'], r['code']))
    return {
        'hospitals': ranking,
        'best': ranking[:RANKING_SIZE],
        'worst': ranking[::-1][:RANKING_SIZE],
    }


def hourly_distribution(collections) -> list[dict]:
    buckets = [{'hour': hour, 'count': 0, 'weight': ZERO} for hour in range(24)]
    for c in collections:
        bucket = buckets[local_hour(c.collected_at)]
        bucket['count'] += 1
        bucket['weight'] += weight_of(c)
    return [{'hour': b['hour'], 'count': b['count'], 'weight': float(b['weight'])} for b in buckets]


def shift_distribution(hourly: list[dict]) -> list[dict]:
    rows = []
    for key, label, hours in SHIFTS:
        members = [hourly[h] for h in hours]
        rows.append({
            'shift': key,
            'label': label,
            'hours': list(hours),
            'count': sum(b['count'] for b in members),
            'weight': sum(b['weight'] for b in members),
        })
    return rows


def average_collection_minutes(collections) -> tuple[float, bool]:
    """Mean minutes from pickup to weigh-in, or the default with ``is_estimate``."""
    spans = [
        (c.weighed_at - c.collected_at).total_seconds() / 60
        for c in collections
        if c.weighed_at and c.collected_at
    ]
    if not spans:
        return DEFAULT_COLLECTION_MINUTES, True
    return round(sum(spans) / len(spans), 1), False


def hospital_time_stats(hospitals, collections, open_issues: dict[int, int]) -> list[dict]:
    grouped: dict[int, list[WasteCollection]] = defaultdict(list)
    for c in collections:
        grouped[c.hospital_id].append(c)
    rows = []
    for h in hospitals:
        mine = grouped.get(h.id, [])
        minutes, is_estimate = average_collection_minutes(mine)
        rows.append({
            'id': h.id,
            'code': h.code,
            'name': h.name,
            'hex': h.color_hex,
            'avgCollectionTime': minutes,
            'isEstimate': is_estimate,
            'totalWeight': float(total_weight(mine)),
            'collectionCount': len(mine),
            'openIssues': open_issues.get(h.id, 0),
        })
    return rows


def get_analytics(hospital_id: Optional[int] = None) -> dict:
    window = settings.WASTE_ANALYTICS_WINDOW
    scoped = recent_collections(hospital_id, window)
    everywhere = scoped if hospital_id is None else recent_collections(None, window)

    waste_types = list(WasteType.objects.all())
    hospitals = list(Hospital.objects.filter(is_active=True))
    book = RateBook.load()

    in_scope = [hospital_id] if hospital_id is not None else [h.id for h in hospitals]
    kpis = build_kpis(scoped, {wt.code: wt for wt in waste_types}, in_scope)
    costs, total_cost = cost_analysis(scoped, waste_types, book)
    hourly = hourly_distribution(scoped)
    minutes, is_estimate = average_collection_minutes(scoped)

    logger.debug('analytics computed scope=%s collections=%d global=%d', hospital_id, len(scoped), len(everywhere))
    return {
        'scope': {'hospitalId': hospital_id, 'global': ['hospitalCostRanking', 'hospitalTimeStats']},
        'kpis': kpis,
        'categoryRanking': category_ranking(scoped, waste_types),
        'riskMatrix': risk_matrix(hospital_id),
        'costAnalysis': costs,
        'totalCost': float(total_cost),
        'hospitalCostRanking': hospital_cost_ranking(hospitals, everywhere, book),
        'timeAnalysis': hourly,
        'shiftAnalysis': shift_distribution(hourly),
        'avgCollectionTime': minutes,
        'avgCollectionTimeIsEstimate': is_estimate,
        'hospitalTimeStats': hospital_time_stats(hospitals, everywhere, open_issue_counts()),
    }
