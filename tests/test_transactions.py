"""
Tests for transaction normalization.
"""
from datetime import date, datetime

import pytest
from pydantic import ValidationError

from spendcast.ml.models import Transaction
from spendcast.ml.transactions import daily_totals, day_of_week, effective_amount, parse_transactions

from conftest import make_tx


def test_parse_camel_case_record():
    """Provider records use camelCase keys and ISO timestamps."""
    batch = parse_transactions([
        {"date": "2024-03-05T10:15:00Z", "amount": 12.5, "merchantName": "Cafe", "mccCode": 5814},
    ])
    assert batch.warnings == []
    tx = batch.transactions[0]
    assert tx.date == date(2024, 3, 5)
    assert tx.merchant_name == "Cafe"
    assert tx.mcc_code == "5814"


def test_parse_snake_case_and_datetime():
    batch = parse_transactions([
        {"date": datetime(2024, 3, 5, 23, 59), "amount": 3, "merchant_name": "Kiosk"},
    ])
    assert batch.transactions[0].date == date(2024, 3, 5)


def test_malformed_records_are_skipped_with_warnings():
    """Bad records are dropped and reported; good ones keep their order."""
    records = [
        {"date": "2024-03-01", "amount": 10, "merchantName": "A"},
        {"amount": 5},
        "not a record",
        {"date": "yesterday", "amount": 1, "merchantName": "B"},
        {"date": "2024-03-02", "amount": 10, "merchantName": "   "},
        {"date": "2024-03-03", "amount": 20, "merchantName": "C"},
    ]
    batch = parse_transactions(records)

    assert [tx.merchant_name for tx in batch.transactions] == ["A", "C"]
    assert len(batch.warnings) == 4
    assert batch.warnings[0].startswith("Skipped transaction #1")
    assert batch.warnings[1].startswith("Skipped transaction #2")


def test_transaction_instances_pass_through():
    tx = make_tx(date(2024, 1, 1), 10.0)
    batch = parse_transactions([tx])
    assert batch.transactions == [tx]


def test_parse_none_returns_empty_batch():
    batch = parse_transactions(None)
    assert batch.transactions == []
    assert batch.warnings == []


def test_effective_amount_prefers_payment_amount():
    tx = make_tx(date(2024, 1, 1), 100.0, payment_amount=90.0, reimbursement_amount=10.0)
    assert effective_amount(tx) == 80.0


def test_effective_amount_falls_back_to_amount():
    assert effective_amount(make_tx(date(2024, 1, 1), 100.0)) == 100.0
    assert effective_amount(make_tx(date(2024, 1, 1), 100.0, reimbursement_amount=None)) == 100.0
    assert effective_amount(make_tx(date(2024, 1, 1), 100.0, reimbursement_amount=25.0)) == 75.0


def test_daily_totals_collapse_same_day():
    totals = daily_totals([
        make_tx(date(2024, 1, 1), 30.0),
        make_tx(date(2024, 1, 1), 70.0),
        make_tx(date(2024, 1, 2), 5.0),
    ])
    assert totals == {date(2024, 1, 1): 100.0, date(2024, 1, 2): 5.0}


def test_day_of_week_starts_on_sunday():
    assert day_of_week(date(2024, 3, 3)) == 0  # Sunday
    assert day_of_week(date(2024, 3, 4)) == 1  # Monday
    assert day_of_week(date(2024, 3, 9)) == 6  # Saturday


def test_transactions_are_immutable():
    tx = Transaction(date="2024-01-01", amount=1, merchant_name="X")
    with pytest.raises(ValidationError):
        tx.amount = 2


def test_non_finite_amounts_are_skipped():
    """NaN and infinite amounts are rejected like any other malformed record."""
    records = [{"date": f"2024-01-{day:02d}", "amount": 10, "merchantName": "Cafe"} for day in range(1, 15)]
    records += [
        {"date": "2024-01-20", "amount": "NaN", "merchantName": "Cafe"},
        {"date": "2024-01-21", "amount": 10, "paymentAmount": "inf", "merchantName": "Cafe"},
        {"date": "2024-01-22", "amount": 10, "reimbursementAmount": float("-inf"), "merchantName": "Cafe"},
    ]
    batch = parse_transactions(records)

    assert len(batch.transactions) == 14
    assert len(batch.warnings) == 3
    assert batch.warnings[0].startswith("Skipped transaction #14")
