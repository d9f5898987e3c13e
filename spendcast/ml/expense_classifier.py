"""
Fixed vs. variable expense classifier for Spendcast.

Separates recurring obligations (rent, subscriptions, utilities) from
discretionary spending using amount consistency, timing consistency and
known merchant patterns.
"""

import logging
from collections import OrderedDict
from typing import List, Dict, Iterable, Optional, Tuple

import numpy as np

from spendcast.core.config import settings
from spendcast.ml.constants import (
    DAYS_PER_MONTH,
    FIXED_ACCEPTANCE_THRESHOLDS,
    FIXED_CONFIDENCE_WEIGHTS,
    FIXED_EXPENSE_MCC_CODES,
    FIXED_EXPENSE_PATTERNS,
    FIXED_EXPENSE_THRESHOLDS,
)
from spendcast.ml.models import ExpenseClassification, FixedExpense, Transaction
from spendcast.ml.transactions import TransactionLike, effective_amount, parse_transactions

logger = logging.getLogger(__name__)


class ExpenseClassifier:
    """
    Classifies transactions into fixed (recurring) and variable expenses.

    A merchant group is scored on three signals:
    1. Amount consistency (coefficient of variation of effective amounts)
    2. Timing consistency (spread of the day of month)
    3. Known recurring merchant name or MCC code

    Groups scoring at or above the acceptance threshold for their pattern
    state become a FixedExpense; every other transaction is variable.
    """

    def __init__(self, single_occurrence_confidence: Optional[float] = None):
        """
        Initialize the classifier.

        Args:
            single_occurrence_confidence: Confidence given to a known recurring
                merchant seen only once. If None, uses value from settings.
        """
        if single_occurrence_confidence is None:
            single_occurrence_confidence = settings.FIXED_SINGLE_OCCURRENCE_CONFIDENCE
        self.single_occurrence_confidence = single_occurrence_confidence
        self.amount_cv_max = FIXED_EXPENSE_THRESHOLDS["AMOUNT_CV_MAX"]
        self.day_tolerance = FIXED_EXPENSE_THRESHOLDS["DAY_TOLERANCE"]
        self.min_occurrences = FIXED_EXPENSE_THRESHOLDS["MIN_OCCURRENCES"]

        logger.info(
            f"Initialized ExpenseClassifier with cv_max={self.amount_cv_max}, "
            f"day_tolerance={self.day_tolerance}, "
            f"single_occurrence_confidence={self.single_occurrence_confidence}"
        )

    def classify(self, transactions: Iterable[TransactionLike]) -> ExpenseClassification:
        """
        Classify transactions into fixed and variable expenses.

        Args:
            transactions: Transactions in any order; malformed records are skipped

        Returns:
            ExpenseClassification with the detected fixed expenses, the
            remaining variable transactions, the monthly fixed total and the
            monthly variable average
        """
        txs = parse_transactions(transactions).transactions
        if not txs:
            return ExpenseClassification()

        fixed: List[FixedExpense] = []
        variable_indexes: List[int] = []

        for key, members in self._group_by_merchant(txs).items():
            group = [txs[i] for i in members]
            fixed_expense = self._analyze_group(key, group)
            if fixed_expense is not None:
                fixed.append(fixed_expense)
            else:
                variable_indexes.extend(members)

        # Keep input order for the variable bucket
        variable = [txs[i] for i in sorted(variable_indexes)]
        fixed.sort(key=lambda f: (f.expected_day, f.merchant_name))

        fixed_total = float(sum(f.expected_amount for f in fixed))
        variable_total = float(sum(effective_amount(t) for t in variable))
        months_span = max(1.0, self._months_span(variable))
        variable_average = variable_total / months_span

        logger.debug(
            f"Classified {len(txs)} transactions: {len(fixed)} fixed expenses, "
            f"{len(variable)} variable transactions"
        )

        return ExpenseClassification(
            fixed=fixed,
            variable=variable,
            fixed_total=fixed_total,
            variable_average=variable_average,
        )

    def _group_by_merchant(self, transactions: List[Transaction]) -> Dict[str, List[int]]:
        """Group transaction indexes by case-insensitive, trimmed merchant name."""
        groups: Dict[str, List[int]] = OrderedDict()
        for index, tx in enumerate(transactions):
            key = tx.merchant_name.lower().strip()
            groups.setdefault(key, []).append(index)
        return groups

    def _analyze_group(self, merchant_key: str, group: List[Transaction]) -> Optional[FixedExpense]:
        """Score one merchant group and return a FixedExpense if it is accepted."""
        is_known = self.is_known_fixed_pattern(
            merchant_key, [tx.mcc_code for tx in group]
        )

        if len(group) < self.min_occurrences:
            if not is_known:
                return None
            tx = group[0]
            return FixedExpense(
                merchant_name=self.normalize_merchant_name(merchant_key),
                expected_amount=effective_amount(tx),
                expected_day=tx.date.day,
                category=self._category_for(tx),
                confidence=self.single_occurrence_confidence,
                last_occurrence=tx.date,
                occurrence_count=1,
            )

        amounts = np.array([effective_amount(tx) for tx in group], dtype=float)
        amount_consistent, _ = self._amount_consistency(amounts)

        days = np.array([tx.date.day for tx in group], dtype=float)
        avg_day = float(days.mean())
        timing_consistent = self._day_spread(days) <= self.day_tolerance

        confidence = self._score(amount_consistent, timing_consistent, is_known, len(group))
        if confidence < FIXED_ACCEPTANCE_THRESHOLDS[is_known]:
            logger.debug(
                f"Rejected '{merchant_key}' as fixed: confidence={confidence}, known={is_known}"
            )
            return None

        most_recent = max(group, key=lambda tx: tx.date)
        return FixedExpense(
            merchant_name=self.normalize_merchant_name(merchant_key),
            expected_amount=float(amounts.mean()),
            expected_day=int(np.floor(avg_day + 0.5)),  # halves round up
            category=self._category_for(most_recent),
            confidence=confidence,
            last_occurrence=most_recent.date,
            occurrence_count=len(group),
        )

    def _amount_consistency(self, amounts: np.ndarray) -> Tuple[bool, float]:
        """Return (is_consistent, coefficient_of_variation)."""
        mean = float(amounts.mean())
        # A non-positive mean cannot describe a stable bill
        cv = float(amounts.std()) / mean if mean > 0 else float("inf")
        return cv <= self.amount_cv_max, cv

    @staticmethod
    def _day_spread(days: np.ndarray) -> float:
        """Largest absolute deviation of the day of month from its mean."""
        return float(np.max(np.abs(days - days.mean())))

    @staticmethod
    def _score(amount_consistent: bool, timing_consistent: bool, is_known: bool, occurrences: int) -> float:
        confidence = 0.0
        if amount_consistent:
            confidence += FIXED_CONFIDENCE_WEIGHTS["AMOUNT_CONSISTENT"]
        if timing_consistent:
            confidence += FIXED_CONFIDENCE_WEIGHTS["TIMING_CONSISTENT"]
        if is_known:
            confidence += FIXED_CONFIDENCE_WEIGHTS["PATTERN_MATCH"]

        if occurrences >= 3:
            confidence += FIXED_CONFIDENCE_WEIGHTS["THREE_PLUS_OCCURRENCES"]
        if occurrences >= 6:
            confidence += FIXED_CONFIDENCE_WEIGHTS["SIX_PLUS_OCCURRENCES"]

        return round(min(1.0, confidence), 2)

    @staticmethod
    def is_known_fixed_pattern(merchant_name: str, mcc_codes: Iterable[Optional[str]] = ()) -> bool:
        """Check if a merchant name or any MCC code matches a known recurring expense."""
        lower_name = merchant_name.lower()
        if any(pattern in lower_name for pattern in FIXED_EXPENSE_PATTERNS):
            return True
        return any(code in FIXED_EXPENSE_MCC_CODES for code in mcc_codes if code)

    @staticmethod
    def normalize_merchant_name(name: str) -> str:
        """Capitalize the first letter of each word for display."""
        return " ".join(word.capitalize() for word in name.split(" "))

    @staticmethod
    def _category_for(tx: Transaction) -> str:
        return tx.user_category or tx.category or "Other"

    @staticmethod
    def _months_span(transactions: List[Transaction]) -> float:
        if not transactions:
            return 0.0
        dates = [tx.date for tx in transactions]
        return (max(dates) - min(dates)).days / DAYS_PER_MONTH
