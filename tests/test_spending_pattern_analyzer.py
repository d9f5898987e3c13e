"""
Tests for calendar spending pattern analysis.
"""
from datetime import date, timedelta

import pytest

from spendcast.ml.constants import DEFAULT_DAY_OF_WEEK_FACTORS, HOLIDAYS
from spendcast.ml.models import HolidayConfig
from spendcast.ml.spending_pattern_analyzer import SpendingPatternAnalyzer

from conftest import make_tx

BLACK_FRIDAY = "Black Friday / Cyber Monday"


@pytest.fixture
def analyzer():
    return SpendingPatternAnalyzer()


def _daily(start: date, amounts):
    return [make_tx(start + timedelta(days=i), amount) for i, amount in enumerate(amounts)]


def test_default_pattern_without_data(analyzer):
    pattern = analyzer.analyze([])
    assert pattern.day_of_week_factors == list(DEFAULT_DAY_OF_WEEK_FACTORS)
    assert pattern.daily_average == 0.0
    assert pattern.weekend_to_weekday_ratio == 1.0
    assert pattern.holiday_multipliers == {h.name: h.default_multiplier for h in HOLIDAYS}


def test_day_of_week_factors_average_one(analyzer):
    txs = _daily(date(2024, 3, 4), [30, 45, 12, 80, 25, 60, 90, 33, 41, 18, 70, 22, 55, 95])
    factors = analyzer.analyze(txs).day_of_week_factors
    assert len(factors) == 7
    assert sum(factors) / 7 == pytest.approx(1.0)


def test_weekday_factor_reflects_spending(analyzer):
    """Saturdays at triple the weekday rate get the largest factor."""
    amounts = [20, 20, 20, 20, 20, 60, 20] * 2  # Monday first, Saturday at index 5
    factors = analyzer.analyze(_daily(date(2024, 3, 4), amounts)).day_of_week_factors
    assert factors[6] == max(factors)
    assert factors[6] == pytest.approx(3 * factors[1])


def test_missing_weekdays_keep_their_defaults(analyzer):
    # Monday and Tuesday only
    txs = _daily(date(2024, 3, 4), [50, 50])
    factors = analyzer.analyze(txs).day_of_week_factors
    assert factors[0] / factors[6] == pytest.approx(1.3 / 1.4)
    assert sum(factors) / 7 == pytest.approx(1.0)


def test_non_positive_average_uses_rescaled_defaults(analyzer):
    txs = _daily(date(2024, 3, 4), [-10, -20, -5])
    factors = analyzer.analyze(txs).day_of_week_factors
    scale = sum(DEFAULT_DAY_OF_WEEK_FACTORS) / 7
    assert factors == pytest.approx([f / scale for f in DEFAULT_DAY_OF_WEEK_FACTORS])


def test_same_day_purchases_collapse(analyzer):
    txs = [
        make_tx(date(2024, 3, 4), 30.0),
        make_tx(date(2024, 3, 4), 70.0),
        make_tx(date(2024, 3, 5), 100.0),
    ]
    assert analyzer.analyze(txs).daily_average == pytest.approx(100.0)


def test_weekend_to_weekday_ratio(analyzer):
    txs = [
        make_tx(date(2024, 3, 9), 100.0),   # Saturday
        make_tx(date(2024, 3, 10), 100.0),  # Sunday
        make_tx(date(2024, 3, 11), 50.0),
        make_tx(date(2024, 3, 12), 50.0),
    ]
    pattern = analyzer.analyze(txs)
    assert pattern.weekend_average == 100.0
    assert pattern.weekday_average == 50.0
    assert pattern.weekend_to_weekday_ratio == pytest.approx(2.0)


def test_ratio_without_weekdays_is_neutral(analyzer):
    pattern = analyzer.analyze([make_tx(date(2024, 3, 9), 100.0)])
    assert pattern.weekend_to_weekday_ratio == 1.0


def test_holiday_multipliers_cover_every_holiday(analyzer):
    txs = _daily(date(2024, 3, 4), [10, 20, 30])
    multipliers = analyzer.analyze(txs).holiday_multipliers
    assert set(multipliers) == {h.name for h in HOLIDAYS}


def test_single_holiday_date_keeps_default(analyzer):
    txs = _daily(date(2023, 11, 1), [50] * 10)
    txs.append(make_tx(date(2023, 11, 26), 300.0))
    assert analyzer.analyze(txs).holiday_multipliers[BLACK_FRIDAY] == 2.0


def test_measured_holiday_multiplier(analyzer):
    txs = _daily(date(2023, 11, 1), [50] * 10)
    txs.append(make_tx(date(2023, 11, 25), 150.0))
    txs.append(make_tx(date(2023, 11, 26), 150.0))
    assert analyzer.analyze(txs).holiday_multipliers[BLACK_FRIDAY] == pytest.approx(3.0)


def test_get_holiday_for_date(analyzer):
    assert analyzer.get_holiday_for_date(date(2023, 12, 25)).name == "Christmas Season"
    assert analyzer.get_holiday_for_date(date(2025, 11, 11)).name == "Singles Day"
    assert analyzer.get_holiday_for_date(date(2024, 9, 10)).name == "Back to School (Sept)"
    assert analyzer.get_holiday_for_date(date(2024, 3, 15)) is None


def test_holiday_windows_do_not_overlap():
    day = date(2024, 1, 1)
    while day.year == 2024:
        matches = [h.name for h in HOLIDAYS if h.contains(day)]
        assert len(matches) <= 1, f"{day} in {matches}"
        day += timedelta(days=1)


def test_custom_holiday_catalog():
    catalog = [HolidayConfig(name="Festival", month=7, start_day=1, end_day=3, default_multiplier=1.2)]
    analyzer = SpendingPatternAnalyzer(holidays=catalog)
    pattern = analyzer.analyze(_daily(date(2024, 6, 25), [10] * 12))
    assert set(pattern.holiday_multipliers) == {"Festival"}
    assert analyzer.get_holiday_for_date(date(2024, 12, 24)) is None


def test_analysis_is_repeatable(analyzer):
    txs = _daily(date(2023, 11, 1), [50, 20, 35, 80, 10, 65, 40] * 4)
    assert analyzer.analyze(txs) == analyzer.analyze(txs)


def test_malformed_records_are_ignored(analyzer):
    """Bad records neither raise nor skew the averages."""
    valid = _daily(date(2024, 3, 4), [30, 45, 12, 80, 25, 60, 90])
    records = [tx.model_dump(mode="json", by_alias=True) for tx in valid]
    records += [{"amount": 5}, None, {"date": "2024-03-20", "amount": "NaN", "merchantName": "X"}]

    pattern = analyzer.analyze(records)
    assert pattern == analyzer.analyze(valid)
    assert sum(pattern.day_of_week_factors) / 7 == pytest.approx(1.0)
