"""
Transaction normalization helpers.

Raw records from the transaction provider are validated once here so the
analysis components only ever see well-formed `Transaction` objects.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, Iterable, List, Mapping, Union

from pydantic import ValidationError

from spendcast.ml.models import Transaction

logger = logging.getLogger(__name__)

TransactionLike = Union[Transaction, Mapping[str, Any]]


@dataclass
class TransactionBatch:
    """Valid transactions plus one warning per record that had to be skipped."""

    transactions: List[Transaction] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


def effective_amount(tx: Transaction) -> float:
    """
    Amount actually borne by the user.

    The payment-currency amount wins when present, otherwise the transaction
    amount is used. Any recorded reimbursement is subtracted.
    """
    base = tx.payment_amount if tx.payment_amount is not None else tx.amount
    reimbursement = tx.reimbursement_amount or 0.0
    return base - reimbursement


def parse_transactions(records: Iterable[TransactionLike]) -> TransactionBatch:
    """
    Validate raw records, skipping the malformed ones.

    Args:
        records: `Transaction` instances or mappings using either camelCase
                 or snake_case keys

    Returns:
        TransactionBatch with the valid transactions in input order and a
        warning for every skipped record
    """
    batch = TransactionBatch()
    if records is None:
        return batch

    for index, record in enumerate(records):
        if isinstance(record, Transaction):
            batch.transactions.append(record)
            continue

        if not isinstance(record, Mapping):
            message = f"Skipped transaction #{index}: expected a mapping, got {type(record).__name__}"
            logger.warning(message)
            batch.warnings.append(message)
            continue

        try:
            batch.transactions.append(Transaction.model_validate(record))
        except ValidationError as e:
            reasons = "; ".join(
                f"{'.'.join(str(part) for part in err['loc']) or 'record'}: {err['msg']}"
                for err in e.errors()
            )
            message = f"Skipped transaction #{index}: {reasons}"
            logger.warning(message)
            batch.warnings.append(message)

    if batch.warnings:
        logger.info(
            f"Parsed {len(batch.transactions)} transactions, skipped {len(batch.warnings)} malformed records"
        )
    return batch


def daily_totals(transactions: Iterable[Transaction]) -> Dict[date, float]:
    """Collapse transactions to one effective-amount total per calendar date."""
    totals: Dict[date, float] = defaultdict(float)
    for tx in transactions:
        totals[tx.date] += effective_amount(tx)
    return dict(totals)


def day_of_week(day: date) -> int:
    """Weekday index with Sunday as 0."""
    return (day.weekday() + 1) % 7
