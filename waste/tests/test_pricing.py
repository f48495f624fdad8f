from datetime import date
from decimal import Decimal

import pytest
from django.db import connection

from waste.exceptions import WasteTypeNotFound
from waste.models import LocationCategory, OperationalCoefficient, WasteTypeCost
from waste.services.coefficients import upsert_coefficients
from waste.services.pricing import RateBook, resolve_rate, upsert_rates

from .helpers import local_dt, make_collection

pytestmark = pytest.mark.django_db


@pytest.fixture
def medical_history(waste_types):
    medical = waste_types['medical']
    WasteTypeCost.objects.create(waste_type=medical, effective_from=date(2025, 1, 1), cost_per_kg=Decimal('15.00'))
    return medical


def test_rate_before_any_history_falls_back_to_static_default(waste_types):
    recycle = waste_types['recycle']
    WasteTypeCost.objects.create(waste_type=recycle, effective_from=date(2025, 6, 1), cost_per_kg=Decimal('-2.00'))
    assert resolve_rate(recycle.id, date(2025, 5, 31)) == Decimal('-1.00')
    assert resolve_rate(recycle.id, date(2025, 6, 1)) == Decimal('-2.00')


def test_rate_without_history_uses_static_default(waste_types):
    assert resolve_rate(waste_types['medical'].id, date(2020, 1, 1)) == Decimal('15.00')


def test_unknown_waste_type_is_an_error(db):
    with pytest.raises(WasteTypeNotFound):
        resolve_rate(999999, date(2025, 1, 1))
    with pytest.raises(WasteTypeNotFound):
        RateBook.load().rate_for(999999, date(2025, 1, 1))


def test_future_dated_rate_is_never_used(medical_history, hq_user):
    upsert_rates(user=hq_user, effective_from=date(2025, 3, 1),
                 costs=[{'waste_type_id': medical_history.id, 'cost_per_kg': Decimal('20.00')}])
    book = RateBook.load()
    for day, expected in [
        (date(2025, 2, 15), Decimal('15.00')),
        (date(2025, 2, 28), Decimal('15.00')),
        (date(2025, 3, 1), Decimal('20.00')),
        (date(2025, 3, 15), Decimal('20.00')),
    ]:
        assert resolve_rate(medical_history.id, day) == expected
        assert book.rate_for(medical_history.id, day) == expected


def test_time_of_day_is_truncated_to_local_day(medical_history, hq_user):
    upsert_rates(user=hq_user, effective_from=date(2025, 3, 1),
                 costs=[{'waste_type_id': medical_history.id, 'cost_per_kg': Decimal('20.00')}])
    # 00:30 local on 1 March is still 28 Feb in UTC
    assert resolve_rate(medical_history.id, local_dt(2025, 3, 1, 0, 30)) == Decimal('20.00')
    assert resolve_rate(medical_history.id, local_dt(2025, 2, 28, 23, 59)) == Decimal('15.00')


def test_collection_costs_follow_their_collection_day(hospitals, medical_history, hq_user):
    h1 = hospitals[0]
    feb_1 = make_collection(h1, medical_history, 'T-1', collected_at=local_dt(2025, 2, 1, 10), weight=10)
    assert RateBook.load().cost_of(feb_1) == Decimal('150.00')

    upsert_rates(user=hq_user, effective_from=date(2025, 3, 1),
                 costs=[{'waste_type_id': medical_history.id, 'cost_per_kg': Decimal('20.00')}])
    feb_15 = make_collection(h1, medical_history, 'T-2', collected_at=local_dt(2025, 2, 15, 10), weight=10)
    mar_15 = make_collection(h1, medical_history, 'T-3', collected_at=local_dt(2025, 3, 15, 10), weight=10)
    book = RateBook.load()
    assert book.cost_of(feb_15) == Decimal('150.00')
    assert book.cost_of(mar_15) == Decimal('200.00')
    assert book.total_cost([feb_1, feb_15, mar_15]) == Decimal('500.00')


def test_unweighed_collection_costs_nothing(hospitals, medical_history):
    pending = make_collection(hospitals[0], medical_history, 'T-P', collected_at=local_dt(2025, 2, 1, 10))
    assert RateBook.load().cost_of(pending) == Decimal('0')


def test_negative_rates_are_credits_not_clamped(hospitals, waste_types):
    c = make_collection(hospitals[0], waste_types['recycle'], 'T-R', collected_at=local_dt(2025, 2, 1, 10), weight=4)
    assert RateBook.load().cost_of(c) == Decimal('-4.00')


def test_upsert_overwrites_same_day_instead_of_duplicating(medical_history, hq_user):
    for rate in ('18.00', '19.50'):
        upsert_rates(user=hq_user, effective_from=date(2025, 1, 1),
                     costs=[{'waste_type_id': medical_history.id, 'cost_per_kg': Decimal(rate)}])
    rows = WasteTypeCost.objects.filter(waste_type=medical_history, effective_from=date(2025, 1, 1))
    assert rows.count() == 1
    assert rows.get().cost_per_kg == Decimal('19.50')


def test_upsert_rejects_unknown_waste_type(db, hq_user):
    with pytest.raises(WasteTypeNotFound):
        upsert_rates(user=hq_user, effective_from=date(2025, 1, 1),
                     costs=[{'waste_type_id': 424242, 'cost_per_kg': Decimal('1.00')}])
    assert not WasteTypeCost.objects.exists()


@pytest.mark.parametrize('day', [
    date(2024, 12, 31), date(2025, 1, 1), date(2025, 2, 28), date(2025, 3, 1), date(2025, 3, 2),
    date(2025, 6, 30), date(2025, 7, 1), date(2030, 1, 1),
])
def test_rate_book_agrees_with_single_lookup(waste_types, day):
    medical, recycle = waste_types['medical'], waste_types['recycle']
    for effective_from, rate in ((date(2025, 1, 1), '10'), (date(2025, 3, 1), '12'), (date(2025, 7, 1), '9.5')):
        WasteTypeCost.objects.create(waste_type=medical, effective_from=effective_from, cost_per_kg=Decimal(rate))
    WasteTypeCost.objects.create(waste_type=recycle, effective_from=date(2025, 3, 2), cost_per_kg=Decimal('-3'))
    book = RateBook.load()
    for wt in (medical, recycle):
        assert book.rate_for(wt.id, day) == resolve_rate(wt.id, day)
        # local midnight and the last minute of the day price like the day itself
        assert book.rate_for(wt.id, local_dt(day.year, day.month, day.day, 0, 0)) == resolve_rate(wt.id, day)
        assert book.rate_for(wt.id, local_dt(day.year, day.month, day.day, 23, 59)) == resolve_rate(wt.id, day)


@pytest.fixture
def no_conflict_target(monkeypatch):
    """Behave like MySQL, which cannot name the conflicting unique key."""
    monkeypatch.setattr(connection.features, 'supports_update_conflicts_with_target', False)


def test_upsert_without_conflict_target_support(medical_history, hq_user, no_conflict_target):
    upsert_rates(user=hq_user, effective_from=date(2025, 1, 1),
                 costs=[{'waste_type_id': medical_history.id, 'cost_per_kg': Decimal('21.00')}])
    rows = upsert_rates(user=hq_user, effective_from=date(2025, 3, 1),
                        costs=[{'waste_type_id': medical_history.id, 'cost_per_kg': Decimal('20.00')}])
    assert [(r.effective_from, r.cost_per_kg) for r in rows] == [(date(2025, 3, 1), Decimal('20.00'))]
    history = WasteTypeCost.objects.filter(waste_type=medical_history).order_by('effective_from')
    assert [(r.effective_from, r.cost_per_kg) for r in history] == [
        (date(2025, 1, 1), Decimal('21.00')),
        (date(2025, 3, 1), Decimal('20.00')),
    ]


def test_coefficient_upsert_without_conflict_target_support(hospitals, hq_user, no_conflict_target):
    icu = LocationCategory.objects.create(code='ICU', name='Yoğun Bakım', unit='Yatış Gün')
    for value in ('120', '130'):
        upsert_coefficients(user=hq_user, hospital=hospitals[0], period='2025-02',
                            values=[{'category_id': icu.id, 'value': value}])
    assert OperationalCoefficient.objects.get().value == Decimal('130')
