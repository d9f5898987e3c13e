"""
Spender Profiler for Spendcast.

Labels how a person's spending is distributed across the days of a month
and provides the matching 31-day weight curve used to spread a forecast.
"""

import logging
from collections import defaultdict
from typing import List, Dict, Any, Iterable

import numpy as np

from spendcast.ml.constants import (
    CURVE_DECAY_RATE,
    DAYS_IN_CURVE,
    PAYDAY_BASELINE_WEIGHT,
    PAYDAY_NEAR_PEAK_RANGE,
    PAYDAY_NEAR_PEAK_WEIGHT,
    PAYDAY_PEAK_DAYS,
    PAYDAY_PEAK_WEIGHT,
    PAYDAY_WINDOWS,
    PROFILE_THRESHOLDS,
)
from spendcast.ml.models import IntraMonthDistribution, SpenderProfile, Transaction
from spendcast.ml.transactions import TransactionLike, effective_amount, parse_transactions

logger = logging.getLogger(__name__)


PROFILE_DISPLAY = {
    SpenderProfile.FRONT_LOADER: (
        "Front-Loader 🏃",
        "You tend to spend more at the beginning of the month",
    ),
    SpenderProfile.BACK_LOADER: (
        "Back-Loader 🐢",
        "You tend to spend more towards the end of the month",
    ),
    SpenderProfile.PAYDAY_SPIKER: (
        "Payday Spiker 💵",
        "Your spending spikes around typical paydays (1st/15th)",
    ),
    SpenderProfile.STEADY: (
        "Steady Spender ⚖️",
        "Your spending is evenly distributed throughout the month",
    ),
    SpenderProfile.VARIABLE: (
        "Variable Spender 🎲",
        "Your spending pattern varies from month to month",
    ),
}


def _exponential_decay(days: int, rate: float) -> np.ndarray:
    return np.exp(-np.arange(days) * rate)


def _exponential_growth(days: int, rate: float) -> np.ndarray:
    return np.exp((np.arange(days) - days + 1) * rate)


def _bimodal(days: int) -> np.ndarray:
    curve = np.full(days, PAYDAY_BASELINE_WEIGHT)
    for index in range(days):
        day = index + 1
        if day in PAYDAY_PEAK_DAYS:
            curve[index] = PAYDAY_PEAK_WEIGHT
        elif any(abs(day - peak) <= PAYDAY_NEAR_PEAK_RANGE for peak in PAYDAY_PEAK_DAYS):
            curve[index] = PAYDAY_NEAR_PEAK_WEIGHT
    return curve


RAW_PROFILE_CURVES: Dict[SpenderProfile, np.ndarray] = {
    SpenderProfile.FRONT_LOADER: _exponential_decay(DAYS_IN_CURVE, CURVE_DECAY_RATE),
    SpenderProfile.BACK_LOADER: _exponential_growth(DAYS_IN_CURVE, CURVE_DECAY_RATE),
    SpenderProfile.PAYDAY_SPIKER: _bimodal(DAYS_IN_CURVE),
    SpenderProfile.STEADY: np.ones(DAYS_IN_CURVE),
    SpenderProfile.VARIABLE: np.ones(DAYS_IN_CURVE),
}


class SpenderProfiler:
    """
    Classifies spending behavior into one of five intra-month profiles.

    Payday spikes are checked first, then front/back loading by thirds of
    the month, then an even spread. Anything else is "variable".
    """

    def __init__(self):
        self.min_transactions = PROFILE_THRESHOLDS["MIN_TRANSACTIONS"]
        self.spike_multiplier = PROFILE_THRESHOLDS["PAYDAY_SPIKE_MULTIPLIER"]

        logger.info(
            f"Initialized SpenderProfiler with min_transactions={self.min_transactions}, "
            f"spike_multiplier={self.spike_multiplier}"
        )

    def classify(self, transactions: Iterable[TransactionLike]) -> SpenderProfile:
        """
        Classify the spending profile for a set of transactions.

        Args:
            transactions: Transactions in any order; malformed records are skipped

        Returns:
            SpenderProfile, always VARIABLE below the minimum transaction count
        """
        txs = parse_transactions(transactions).transactions

        if len(txs) < self.min_transactions:
            logger.debug(f"Insufficient transactions for profiling: {len(txs)} < {self.min_transactions}")
            return SpenderProfile.VARIABLE

        if self.detect_payday_spikes(txs)["detected"]:
            return SpenderProfile.PAYDAY_SPIKER

        distribution = self.calculate_intra_month_distribution(txs)
        if distribution.total > 0:
            if distribution.first_third / distribution.total > PROFILE_THRESHOLDS["FRONT_LOADER"]:
                return SpenderProfile.FRONT_LOADER
            if distribution.last_third / distribution.total > PROFILE_THRESHOLDS["BACK_LOADER"]:
                return SpenderProfile.BACK_LOADER

        if self._is_uniform(distribution):
            return SpenderProfile.STEADY

        return SpenderProfile.VARIABLE

    def calculate_intra_month_distribution(
        self, transactions: Iterable[TransactionLike]
    ) -> IntraMonthDistribution:
        """Sum effective amounts over days 1-10, 11-20 and 21-31."""
        first = middle = last = 0.0
        for tx in parse_transactions(transactions).transactions:
            amount = effective_amount(tx)
            if tx.date.day <= 10:
                first += amount
            elif tx.date.day <= 20:
                middle += amount
            else:
                last += amount

        return IntraMonthDistribution(
            first_third=first,
            middle_third=middle,
            last_third=last,
            total=first + middle + last,
        )

    def detect_payday_spikes(self, transactions: Iterable[TransactionLike]) -> Dict[str, Any]:
        """
        Detect spending spikes around the 1st and the 15th.

        Returns:
            Dict with 'detected' (bool) and 'days' (the spike days found)
        """
        totals: Dict[int, float] = defaultdict(float)
        counts: Dict[int, int] = defaultdict(int)
        for tx in parse_transactions(transactions).transactions:
            totals[tx.date.day] += effective_amount(tx)
            counts[tx.date.day] += 1

        day_averages = {day: totals[day] / counts[day] for day in totals}
        overall_average = float(np.mean(list(day_averages.values()))) if day_averages else 0.0

        if overall_average <= 0:
            return {"detected": False, "days": []}

        spike_days: List[int] = []
        for center, spread in PAYDAY_WINDOWS:
            max_spending = 0.0
            max_day = center
            for offset in range(-spread, spread + 1):
                day = (center + offset - 1) % DAYS_IN_CURVE + 1
                average = day_averages.get(day, 0.0)
                if average > max_spending:
                    max_spending = average
                    max_day = day

            if max_spending > overall_average * self.spike_multiplier:
                spike_days.append(max_day)

        return {"detected": len(spike_days) >= 1, "days": spike_days}

    @staticmethod
    def _is_uniform(distribution: IntraMonthDistribution) -> bool:
        if distribution.total <= 0:
            return True

        ideal = 1 / 3
        max_deviation = PROFILE_THRESHOLDS["STEADY_MAX_DEVIATION"]
        ratios = (
            distribution.first_third / distribution.total,
            distribution.middle_third / distribution.total,
            distribution.last_third / distribution.total,
        )
        return all(abs(ratio - ideal) <= max_deviation for ratio in ratios)

    def get_distribution_curve(self, profile: SpenderProfile) -> List[float]:
        """
        Relative weight for each day of the month (day 1 first).

        The curve is renormalized so the 31 weights sum to 31.
        """
        curve = RAW_PROFILE_CURVES.get(SpenderProfile(profile), RAW_PROFILE_CURVES[SpenderProfile.VARIABLE])
        normalized = curve * DAYS_IN_CURVE / curve.sum()
        return normalized.tolist()

    def get_weight_for_day(self, profile: SpenderProfile, day_of_month: int) -> float:
        curve = self.get_distribution_curve(profile)
        index = max(0, min(DAYS_IN_CURVE - 1, day_of_month - 1))
        return curve[index]

    @staticmethod
    def get_profile_label(profile: SpenderProfile) -> str:
        return PROFILE_DISPLAY[SpenderProfile(profile)][0]

    @staticmethod
    def get_profile_description(profile: SpenderProfile) -> str:
        return PROFILE_DISPLAY[SpenderProfile(profile)][1]
