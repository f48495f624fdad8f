"""
Facility benchmarking for the detailed analytics pages.

Hospital performance relates each location category's waste over a
period to the operational counts entered for the same months (bed-days,
surgeries, protocols) and compares that KPI with the category's
``reference_waste_factor``:

* ``kpi = kg / opData`` per category;
* ``impact`` is the percentage the KPI sits below (+) or above (-)
  the reference;
* ``wasteIndex`` is actual kg over expected kg (reference x opData)
  across the categories that have both, so 1.0 means "on reference";
* ``score`` maps the index onto 0-100, 50 at the reference and 100 for
  no waste at all.  A hospital without operational data scores 0.

Cross comparison ranks hospitals (or one hospital's categories) on one
metric, best first.  Every cost uses the rate in effect on the
collection day.

Hospitals are compared group wide; category views need a hospital.
"""
from __future__ import annotations

from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Optional

from django.db.models import Sum

from waste.models import Hospital, LocationCategory, OperationalCoefficient

from .analytics import ratio
from .pricing import RateBook, ZERO
from .reports import UNCATEGORIZED, ReportFilters, report_collections

# waste type code -> response field
TYPE_FIELDS = (
    ('medical', 'medicalKg'),
    ('hazardous', 'hazardousKg'),
    ('domestic', 'domesticKg'),
    ('recycle', 'recycleKg'),
)

METRIC_FIELDS = {
    'weight': 'weight',
    'cost': 'cost',
    'efficiency': 'efficiency',
    'volume': 'volume',
    'medical': 'medicalKg',
    'hazardous': 'hazardousKg',
    'domestic': 'domesticKg',
    'recycle': 'recycleKg',
}
METRICS = tuple(METRIC_FIELDS)
# less waste and less cost rank first; these rank the other way round
HIGHER_IS_BETTER = frozenset({'efficiency', 'recycle'})

REFERENCE_SCORE = 50


class Tally:
    __slots__ = ('weight', 'cost', 'count', 'by_type')

    def __init__(self):
        self.weight = ZERO
        self.cost = ZERO
        self.count = 0
        self.by_type: dict[str, Decimal] = defaultdict(lambda: ZERO)

    def add(self, collection, book: RateBook):
        weight = collection.weight_kg or ZERO
        self.weight += weight
        self.cost += book.cost_of(collection)
        self.count += 1
        self.by_type[collection.waste_type.code] += weight

    def type_weights(self) -> dict:
        return {field: float(self.by_type.get(code, ZERO)) for code, field in TYPE_FIELDS}

    def metrics(self) -> dict:
        return {
            'weight': float(self.weight),
            'cost': float(self.cost),
            'efficiency': ratio(self.by_type.get('recycle', ZERO), self.weight),
            'volume': self.count,
            **self.type_weights(),
        }


def months_between(start: date, end: date) -> list[str]:
    """Every ``YYYY-MM`` touched by the inclusive day range."""
    months = []
    year, month = start.year, start.month
    while (year, month) <= (end.year, end.month):
        months.append(f'{year:04d}-{month:02d}')
        year, month = (year + 1, 1) if month == 12 else (year, month + 1)
    return months


def category_id_of(collection) -> Optional[int]:
    if collection.location_id and collection.location.category_id:
        return collection.location.category_id
    return None


def operational_totals(start: date, end: date, hospital_ids=None) -> dict[tuple[int, int], Decimal]:
    qs = OperationalCoefficient.objects.filter(period__in=months_between(start, end))
    if hospital_ids is not None:
        qs = qs.filter(hospital_id__in=hospital_ids)
    rows = qs.values('hospital_id', 'category_id').annotate(total=Sum('value'))
    return {(r['hospital_id'], r['category_id']): r['total'] for r in rows}


def impact_for(kpi: Decimal, reference: Decimal) -> float:
    if not reference:
        return 0.0
    return round(float((reference - kpi) / reference * 100), 1)


def score_for(waste_index: Decimal, has_data: bool) -> int:
    if not has_data:
        return 0
    score = 100 - float(waste_index) * (100 - REFERENCE_SCORE)
    return int(round(max(0.0, min(100.0, score))))


def scorecard(hospital: Hospital, tallies: dict[Optional[int], Tally], categories,
              op_data: dict[tuple[int, int], Decimal]) -> dict:
    rows = []
    actual = ZERO
    expected = ZERO
    for category in categories:
        tally = tallies.get(category.id)
        ops = op_data.get((hospital.id, category.id), ZERO)
        if tally is None and not ops:
            continue
        tally = tally or Tally()
        kpi = tally.weight / ops if ops else ZERO
        reference = category.reference_waste_factor
        if ops and reference:
            actual += tally.weight
            expected += reference * ops
        rows.append({
            'categoryId': category.id,
            'categoryName': category.name,
            **tally.type_weights(),
            'totalKg': float(tally.weight),
            'opData': float(ops),
            'kpi': round(float(kpi), 4),
            'referenceFactor': float(reference),
            'impact': impact_for(kpi, reference) if ops else 0.0,
        })
    loose = tallies.get(None)
    if loose is not None:
        rows.append({
            'categoryId': None,
            'categoryName': UNCATEGORIZED,
            **loose.type_weights(),
            'totalKg': float(loose.weight),
            'opData': 0.0,
            'kpi': 0.0,
            'referenceFactor': None,
            'impact': 0.0,
        })

    waste_index = actual / expected if expected else ZERO
    return {
        'id': hospital.id,
        'code': hospital.code,
        'name': hospital.name,
        'hex': hospital.color_hex,
        'score': score_for(waste_index, bool(expected)),
        'wasteIndex': round(float(waste_index), 4),
        'totalWeight': float(sum((t.weight for t in tallies.values()), ZERO)),
        'isLeader': False,
        'categoryBreakdown': rows,
    }


def _period(start: date, end: date) -> dict:
    return {'startDate': start.isoformat(), 'endDate': end.isoformat()}


def _scorecards(hospitals, start: date, end: date) -> list[dict]:
    categories = list(LocationCategory.objects.order_by('code'))
    book = RateBook.load()
    hospital_ids = [h.id for h in hospitals]

    tallies: dict[int, dict[Optional[int], Tally]] = defaultdict(dict)
    for c in report_collections(ReportFilters(start_date=start, end_date=end, hospital_ids=hospital_ids)):
        per_category = tallies[c.hospital_id]
        key = category_id_of(c)
        if key not in per_category:
            per_category[key] = Tally()
        per_category[key].add(c, book)

    op_data = operational_totals(start, end, hospital_ids)
    return [scorecard(h, tallies.get(h.id, {}), categories, op_data) for h in hospitals]


def hospital_performance(start: date, end: date) -> dict:
    """Scorecards of every active hospital, best score first; the best scorer is the leader."""
    cards = _scorecards(list(Hospital.objects.filter(is_active=True)), start, end)
    cards.sort(key=lambda card: (-card['score'], card['wasteIndex'], card['code']))
    if cards and cards[0]['score'] > 0:
        cards[0]['isLeader'] = True
    return {'period': _period(start, end), 'hospitals': cards}


def category_performance(hospital: Hospital, start: date, end: date) -> dict:
    """One hospital's scorecard, leader flag judged against the active group."""
    result = hospital_performance(start, end)
    card = next((c for c in result['hospitals'] if c['id'] == hospital.id), None)
    if card is None:
        card = _scorecards([hospital], start, end)[0]
    return {'period': result['period'], 'hospital': card}


def rank(rows: list[dict], metric: str, name_key: str) -> list[dict]:
    field = METRIC_FIELDS[metric]
    rows.sort(key=lambda r: r[name_key] or '')
    rows.sort(key=lambda r: r[field], reverse=metric in HIGHER_IS_BETTER)
    return rows


def cross_comparison(metric: str, start: date, end: date,
                     hospital_ids: Optional[list[int]] = None, category_id: Optional[int] = None) -> dict:
    """Hospitals with collections in the period, ranked best first on ``metric``."""
    book = RateBook.load()
    filters = ReportFilters(start_date=start, end_date=end, hospital_ids=hospital_ids, category_id=category_id)
    tallies: dict[int, Tally] = defaultdict(Tally)
    for c in report_collections(filters):
        tallies[c.hospital_id].add(c, book)
    hospitals = Hospital.objects.filter(is_active=True, id__in=list(tallies))
    rows = [
        {'id': h.id, 'code': h.code, 'name': h.name, 'hex': h.color_hex, **tallies[h.id].metrics()}
        for h in hospitals
    ]
    return {
        'metric': metric,
        'period': _period(start, end),
        'hospitalIds': hospital_ids,
        'categoryId': category_id,
        'hospitals': rank(rows, metric, 'code'),
    }


def category_comparison(hospital_id: int, metric: str, start: date, end: date) -> dict:
    """One hospital's location categories ranked best first on ``metric``."""
    book = RateBook.load()
    names = dict(LocationCategory.objects.values_list('id', 'name'))
    tallies: dict[Optional[int], Tally] = defaultdict(Tally)
    for c in report_collections(ReportFilters(start_date=start, end_date=end, hospital_ids=[hospital_id])):
        tallies[category_id_of(c)].add(c, book)
    rows = [
        {
            'categoryId': category_id,
            'categoryName': names.get(category_id, UNCATEGORIZED),
            **tally.metrics(),
        }
        for category_id, tally in tallies.items()
    ]
    return {
        'hospitalId': hospital_id,
        'metric': metric,
        'period': _period(start, end),
        'categories': rank(rows, metric, 'categoryName'),
    }
