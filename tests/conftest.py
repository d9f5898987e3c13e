"""
Shared builders for forecasting tests.
"""
from datetime import date, timedelta
from typing import List, Optional

import pytest

from spendcast.ml.models import Transaction


def make_tx(
    day: date,
    amount: float,
    merchant: str = "Corner Market",
    **kwargs,
) -> Transaction:
    return Transaction(date=day, amount=amount, merchant_name=merchant, **kwargs)


def build_history(
    start: date,
    end: date,
    rent: Optional[float] = 1500.0,
    netflix: Optional[float] = 15.99,
) -> List[Transaction]:
    """
    Daily variable spending between start and end (inclusive), plus rent on
    the 1st and a Netflix charge on the 5th of every month in range.
    """
    transactions = []
    day = start
    index = 0
    while day <= end:
        transactions.append(make_tx(day, 20.0 + (index % 7) * 5.0, category="Groceries"))
        if rent is not None and day.day == 1:
            transactions.append(make_tx(day, rent, "Landlord Rent", category="Housing"))
        if netflix is not None and day.day == 5:
            transactions.append(make_tx(day, netflix, "Netflix", category="Entertainment"))
        day += timedelta(days=1)
        index += 1
    return transactions


def as_records(transactions: List[Transaction]) -> List[dict]:
    """Camel-cased JSON records, as an API client would send them."""
    return [tx.model_dump(mode="json", by_alias=True) for tx in transactions]


@pytest.fixture
def quarter_history() -> List[Transaction]:
    """January through March 2024."""
    return build_history(date(2024, 1, 1), date(2024, 3, 31))
