"""
Denominators for the waste-intensity KPIs (kg per bed-day, per surgery,
per outpatient protocol).

Which provider answers is chosen by ``settings.WASTE_KPI_DENOMINATOR``.
The placeholder provider stands in until monthly operational
coefficients are loaded for every hospital; its figures are assumed,
not measured, and the analytics response says so via ``kpiSource``.
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Optional

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured
from django.db.models import Sum

from waste.models import OperationalCoefficient

ZERO = Decimal('0')


@dataclass(frozen=True)
class UnitCounts:
    beds: Decimal
    surgeries: Decimal
    protocols: Decimal
    source: str


class UnitCountProvider:
    source = ''

    def unit_counts(self, hospital_ids: list[int], periods: Iterable[str]) -> UnitCounts:
        raise NotImplementedError


class PlaceholderUnitCounts(UnitCountProvider):
    source = 'placeholder'
    BEDS_PER_HOSPITAL = Decimal('100')
    SURGERIES_PER_HOSPITAL = Decimal('50')
    PROTOCOLS_PER_HOSPITAL = Decimal('1000')

    def unit_counts(self, hospital_ids, periods) -> UnitCounts:
        n = len(hospital_ids)
        return UnitCounts(
            beds=self.BEDS_PER_HOSPITAL * n,
            surgeries=self.SURGERIES_PER_HOSPITAL * n,
            protocols=self.PROTOCOLS_PER_HOSPITAL * n,
            source=self.source,
        )


class CoefficientUnitCounts(UnitCountProvider):
    """Sum the recorded monthly coefficients mapped by location category code."""
    source = 'coefficients'

    def __init__(self, category_codes: Optional[dict[str, list[str]]] = None):
        self.category_codes = category_codes or settings.WASTE_KPI_CATEGORY_CODES

    def unit_counts(self, hospital_ids, periods) -> UnitCounts:
        periods = sorted(set(periods))
        totals = {'bed': ZERO, 'surgery': ZERO, 'protocol': ZERO}
        if hospital_ids and periods:
            rows = (
                OperationalCoefficient.objects
                .filter(hospital_id__in=hospital_ids, period__in=periods)
                .values('category__code')
                .annotate(total=Sum('value'))
            )
            by_code = {r['category__code'].upper(): r['total'] or ZERO for r in rows}
            for unit, codes in self.category_codes.items():
                totals[unit] = sum((by_code.get(c.upper(), ZERO) for c in codes), ZERO)
        return UnitCounts(
            beds=totals['bed'],
            surgeries=totals['surgery'],
            protocols=totals['protocol'],
            source=self.source,
        )


PROVIDERS = {
    PlaceholderUnitCounts.source: PlaceholderUnitCounts,
    CoefficientUnitCounts.source: CoefficientUnitCounts,
}


def get_unit_count_provider(name: Optional[str] = None) -> UnitCountProvider:
    name = name or settings.WASTE_KPI_DENOMINATOR
    try:
        return PROVIDERS[name]()
    except KeyError:
        raise ImproperlyConfigured(f'Unknown WASTE_KPI_DENOMINATOR: {name!r}')


def per_unit(weight: Decimal, units: Decimal) -> float:
    if not units:
        return 0.0
    return float(weight / units)


def waste_intensity(total_weight: Decimal, units: UnitCounts) -> dict:
    return {
        'wastePerBed': per_unit(total_weight, units.beds),
        'wastePerSurgery': per_unit(total_weight, units.surgeries),
        'wastePerProtocol': per_unit(total_weight, units.protocols),
        'kpiSource': units.source,
    }
