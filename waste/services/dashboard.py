"""
Operational snapshot for the dashboard home page.

Caller-scoped: totals, status counts, open issue count, per-type
breakdown and the recent activity feed.  Always global: the
per-hospital breakdown and rollups, so a scoped manager still sees how
their hospital compares with the rest of the group.
"""
from __future__ import annotations

from collections import defaultdict
from decimal import Decimal
from typing import Optional

from django.conf import settings
from django.db.models import Count

from waste.models import Hospital, Issue, WasteCollection, WasteType

from .collections import recent_collections

ZERO = Decimal('0')
RECENT_FEED_SIZE = 10


def weight_of(collection: WasteCollection) -> Decimal:
    return collection.weight_kg if collection.weight_kg is not None else ZERO


def total_weight(collections) -> Decimal:
    return sum((weight_of(c) for c in collections), ZERO)


def weight_by_type(collections) -> dict[int, Decimal]:
    totals: dict[int, Decimal] = defaultdict(lambda: ZERO)
    for c in collections:
        totals[c.waste_type_id] += weight_of(c)
    return totals


def open_issue_counts() -> dict[int, int]:
    rows = Issue.objects.filter(is_resolved=False).values('hospital_id').annotate(n=Count('id'))
    return {r['hospital_id']: r['n'] for r in rows}


def feed_item(c: WasteCollection) -> dict:
    return {
        'id': c.id,
        'tagCode': c.tag_code,
        'wasteTypeCode': c.waste_type.code if c.waste_type_id else 'unknown',
        'weightKg': float(c.weight_kg) if c.weight_kg is not None else None,
        'status': c.status,
        'collectedAt': c.collected_at.isoformat(),
        'hospitalId': c.hospital_id,
        'hospitalName': c.hospital.name,
        'locationCode': c.location.code if c.location_id else None,
    }


def hospital_rollups(hospitals, collections, open_issues: dict[int, int]) -> tuple[list[dict], list[dict]]:
    weights: dict[int, Decimal] = defaultdict(lambda: ZERO)
    pending: dict[int, int] = defaultdict(int)
    completed: dict[int, int] = defaultdict(int)
    last_at: dict[int, object] = {}
    for c in collections:
        weights[c.hospital_id] += weight_of(c)
        if c.status == WasteCollection.STATUS_PENDING:
            pending[c.hospital_id] += 1
        elif c.status == WasteCollection.STATUS_COMPLETED:
            completed[c.hospital_id] += 1
        seen = last_at.get(c.hospital_id)
        if seen is None or c.collected_at > seen:
            last_at[c.hospital_id] = c.collected_at

    by_hospital = []
    stats = []
    for h in hospitals:
        by_hospital.append({
            'id': h.id,
            'code': h.code,
            'name': h.name,
            'weight': float(weights[h.id]),
            'hex': h.color_hex,
        })
        last = last_at.get(h.id)
        stats.append({
            'id': h.id,
            'code': h.code,
            'name': h.name,
            'hex': h.color_hex,
            'totalWeight': float(weights[h.id]),
            'pendingCount': pending[h.id],
            'completedCount': completed[h.id],
            'openIssues': open_issues.get(h.id, 0),
            'lastCollectionAt': last.isoformat() if last else None,
        })
    return by_hospital, stats


def get_dashboard_summary(hospital_id: Optional[int] = None) -> dict:
    window = settings.WASTE_DASHBOARD_WINDOW
    scoped = recent_collections(hospital_id, window)
    everywhere = scoped if hospital_id is None else recent_collections(None, window)

    open_issues = Issue.objects.filter(is_resolved=False)
    if hospital_id is not None:
        open_issues = open_issues.filter(hospital_id=hospital_id)

    type_weights = weight_by_type(scoped)
    by_type = [
        {
            'code': wt.code,
            'label': wt.name,
            'weight': float(type_weights.get(wt.id, ZERO)),
            'hex': wt.color_hex,
        }
        for wt in WasteType.objects.all()
        if wt.is_active or wt.id in type_weights
    ]

    by_hospital, hospital_stats = hospital_rollups(
        Hospital.objects.filter(is_active=True), everywhere, open_issue_counts()
    )

    return {
        'scope': {'hospitalId': hospital_id, 'global': ['byHospital', 'hospitalStats']},
        'totalWeight': float(total_weight(scoped)),
        'pendingCount': sum(1 for c in scoped if c.status == WasteCollection.STATUS_PENDING),
        'completedCount': sum(1 for c in scoped if c.status == WasteCollection.STATUS_COMPLETED),
        'issueCount': open_issues.count(),
        'byType': by_type,
        'byHospital': by_hospital,
        'recentCollections': [feed_item(c) for c in scoped[:RECENT_FEED_SIZE]],
        'hospitalStats': hospital_stats,
    }
