"""
Tests for intra-month spender profiling.
"""
from datetime import date

import pytest

from spendcast.ml.models import SpenderProfile
from spendcast.ml.spender_profiler import SpenderProfiler

from conftest import make_tx


@pytest.fixture
def profiler():
    return SpenderProfiler()


def _month_day(month: int, day: int) -> date:
    return date(2024, month, day)


def test_too_few_transactions_is_variable(profiler):
    txs = [make_tx(_month_day(1, 1), 500.0) for _ in range(19)]
    assert profiler.classify(txs) == SpenderProfile.VARIABLE


def test_payday_spiker():
    """Large purchases on the 1st and 15th against small ones elsewhere."""
    profiler = SpenderProfiler()
    txs = []
    for month in range(1, 9):
        txs.append(make_tx(_month_day(month, 1), 200.0))
    for month in range(1, 8):
        txs.append(make_tx(_month_day(month, 15), 200.0))
    for day in (6, 7, 8, 9, 10, 20, 21, 22, 23, 24):
        txs.append(make_tx(_month_day(3, day), 20.0))
    assert len(txs) == 25

    spikes = profiler.detect_payday_spikes(txs)
    assert spikes["detected"]
    assert spikes["days"] == [1, 15]
    assert profiler.classify(txs) == SpenderProfile.PAYDAY_SPIKER


def test_front_loader(profiler):
    txs = [make_tx(_month_day(1 + i // 8, 2 + i % 8), 50.0) for i in range(20)]
    txs += [make_tx(_month_day(m, 25), 10.0) for m in range(1, 6)]
    assert profiler.classify(txs) == SpenderProfile.FRONT_LOADER


def test_back_loader(profiler):
    txs = [make_tx(_month_day(1 + i // 8, 22 + i % 8), 50.0) for i in range(20)]
    txs += [make_tx(_month_day(m, 5), 10.0) for m in range(1, 6)]
    assert profiler.classify(txs) == SpenderProfile.BACK_LOADER


def test_steady(profiler):
    txs = [make_tx(_month_day(4, day), 10.0) for day in range(1, 31)]
    assert profiler.classify(txs) == SpenderProfile.STEADY


def test_uneven_but_unremarkable_is_variable(profiler):
    """45% / 45% / 10% is neither loaded nor even."""
    txs = [make_tx(_month_day(5, day), 50.0) for day in range(2, 11)]
    txs += [make_tx(_month_day(5, day), 50.0) for day in range(11, 20)]
    txs += [make_tx(_month_day(5, day), 50.0) for day in (21, 22)]
    assert len(txs) == 20
    assert profiler.classify(txs) == SpenderProfile.VARIABLE


def test_intra_month_distribution_boundaries(profiler):
    txs = [
        make_tx(_month_day(1, 10), 1.0),
        make_tx(_month_day(1, 11), 2.0),
        make_tx(_month_day(1, 20), 4.0),
        make_tx(_month_day(1, 21), 8.0),
        make_tx(_month_day(1, 31), 16.0),
    ]
    distribution = profiler.calculate_intra_month_distribution(txs)
    assert distribution.first_third == 1.0
    assert distribution.middle_third == 6.0
    assert distribution.last_third == 24.0
    assert distribution.total == 31.0


def test_no_spikes_without_positive_spending(profiler):
    txs = [make_tx(_month_day(1, 1), -20.0), make_tx(_month_day(1, 15), -5.0)]
    assert profiler.detect_payday_spikes(txs) == {"detected": False, "days": []}


@pytest.mark.parametrize("profile", list(SpenderProfile))
def test_distribution_curves_are_normalized(profiler, profile):
    curve = profiler.get_distribution_curve(profile)
    assert len(curve) == 31
    assert sum(curve) == pytest.approx(31.0, abs=1e-6)
    assert all(weight > 0 for weight in curve)


def test_curve_shapes(profiler):
    front = profiler.get_distribution_curve(SpenderProfile.FRONT_LOADER)
    back = profiler.get_distribution_curve(SpenderProfile.BACK_LOADER)
    payday = profiler.get_distribution_curve(SpenderProfile.PAYDAY_SPIKER)
    steady = profiler.get_distribution_curve(SpenderProfile.STEADY)

    assert front[0] > front[15] > front[30]
    assert back[0] < back[15] < back[30]
    assert payday[0] == max(payday) == payday[14]
    assert payday[2] > payday[7]
    assert steady == pytest.approx([1.0] * 31)


def test_weight_for_day_is_clamped(profiler):
    curve = profiler.get_distribution_curve(SpenderProfile.FRONT_LOADER)
    assert profiler.get_weight_for_day(SpenderProfile.FRONT_LOADER, 0) == curve[0]
    assert profiler.get_weight_for_day(SpenderProfile.FRONT_LOADER, 45) == curve[30]
    assert profiler.get_weight_for_day(SpenderProfile.FRONT_LOADER, 10) == curve[9]


def test_profile_labels(profiler):
    assert "Payday Spiker" in profiler.get_profile_label(SpenderProfile.PAYDAY_SPIKER)
    assert "1st/15th" in profiler.get_profile_description(SpenderProfile.PAYDAY_SPIKER)
    for profile in SpenderProfile:
        assert profiler.get_profile_label(profile)
        assert profiler.get_profile_description(profile)


def test_classification_is_repeatable(profiler):
    txs = [make_tx(_month_day(1 + i // 8, 2 + i % 8), 50.0) for i in range(20)]
    txs += [make_tx(_month_day(m, 25), 10.0) for m in range(1, 6)]
    assert profiler.classify(txs) == profiler.classify(txs)
    assert profiler.detect_payday_spikes(txs) == profiler.detect_payday_spikes(txs)


def test_malformed_records_are_ignored(profiler):
    """Bad records are skipped and the rest still profile normally."""
    txs = [make_tx(_month_day(4, day), 10.0) for day in range(1, 31)]
    records = [tx.model_dump(mode="json", by_alias=True) for tx in txs]
    records += [{"amount": 5}, "junk", {"date": "2024-04-02", "amount": "NaN", "merchantName": "X"}]

    assert profiler.classify(records) == SpenderProfile.STEADY
    assert profiler.calculate_intra_month_distribution(records).total == 300.0
