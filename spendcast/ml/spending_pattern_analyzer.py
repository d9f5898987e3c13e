"""
Spending Pattern Analyzer for Spendcast.

Quantifies calendar effects on spending: day-of-week multipliers, the
weekend/weekday ratio and holiday-season multipliers, all relative to the
user's own historical daily average.
"""

import logging
from collections import defaultdict
from datetime import date
from typing import List, Dict, Iterable, Optional, Sequence

import numpy as np

from spendcast.ml.constants import DEFAULT_DAY_OF_WEEK_FACTORS, HOLIDAYS, WEEKEND_DAYS
from spendcast.ml.models import HolidayConfig, SpendingPattern
from spendcast.ml.transactions import TransactionLike, day_of_week, daily_totals, parse_transactions

logger = logging.getLogger(__name__)


class SpendingPatternAnalyzer:
    """
    Extracts calendar spending patterns from transaction history.

    All statistics are computed over per-date totals so several purchases
    on the same day count as one observation.
    """

    def __init__(self, holidays: Optional[Sequence[HolidayConfig]] = None):
        """
        Initialize the analyzer.

        Args:
            holidays: Holiday catalog to evaluate. If None, uses the built-in one.
        """
        self.holidays = tuple(holidays) if holidays is not None else HOLIDAYS
        logger.info(f"Initialized SpendingPatternAnalyzer with {len(self.holidays)} holiday windows")

    def analyze(self, transactions: Iterable[TransactionLike]) -> SpendingPattern:
        """
        Analyze transactions to extract spending patterns.

        Args:
            transactions: Transactions in any order; malformed records are skipped

        Returns:
            SpendingPattern; the default pattern when there is no usable data
        """
        txs = parse_transactions(transactions).transactions
        if not txs:
            return self.default_pattern()

        totals = daily_totals(txs)

        weekend_average, weekday_average = self._weekend_weekday_averages(totals)

        return SpendingPattern(
            day_of_week_factors=self._day_of_week_factors(totals),
            weekend_average=weekend_average,
            weekday_average=weekday_average,
            weekend_to_weekday_ratio=weekend_average / weekday_average if weekday_average > 0 else 1.0,
            holiday_multipliers=self._holiday_multipliers(totals),
            daily_average=float(np.mean(list(totals.values()))),
        )

    def _day_of_week_factors(self, totals: Dict[date, float]) -> List[float]:
        """Multiplier per weekday (Sunday first), rescaled so the seven average 1.0."""
        by_weekday: Dict[int, List[float]] = defaultdict(list)
        for day, amount in totals.items():
            by_weekday[day_of_week(day)].append(amount)

        overall_average = float(np.mean(list(totals.values())))
        if overall_average <= 0:
            logger.debug("Non-positive daily average, falling back to default weekday factors")
            return self._rescale(np.array(DEFAULT_DAY_OF_WEEK_FACTORS))

        factors = np.array(DEFAULT_DAY_OF_WEEK_FACTORS, dtype=float)
        for weekday, amounts in by_weekday.items():
            average = float(np.mean(amounts))
            # Weekdays without positive spending keep their default weight
            if average > 0:
                factors[weekday] = average / overall_average

        return self._rescale(factors)

    @staticmethod
    def _rescale(factors: np.ndarray) -> List[float]:
        mean = float(factors.mean())
        if mean <= 0:
            return [1.0] * len(factors)
        return (factors / mean).tolist()

    @staticmethod
    def _weekend_weekday_averages(totals: Dict[date, float]):
        weekend = [amount for day, amount in totals.items() if day_of_week(day) in WEEKEND_DAYS]
        weekday = [amount for day, amount in totals.items() if day_of_week(day) not in WEEKEND_DAYS]

        weekend_average = float(np.mean(weekend)) if weekend else 0.0
        weekday_average = float(np.mean(weekday)) if weekday else 0.0
        return weekend_average, weekday_average

    def _holiday_multipliers(self, totals: Dict[date, float]) -> Dict[str, float]:
        """
        Ratio of holiday-window daily average to the non-holiday daily average.

        A measured ratio needs at least two distinct dates inside the window
        and a positive baseline; otherwise the catalog default applies.
        """
        results = {holiday.name: holiday.default_multiplier for holiday in self.holidays}

        baseline: List[float] = []
        by_holiday: Dict[str, List[float]] = defaultdict(list)
        for day, amount in totals.items():
            holiday = self.get_holiday_for_date(day)
            if holiday is not None:
                by_holiday[holiday.name].append(amount)
            else:
                baseline.append(amount)

        baseline_average = float(np.mean(baseline)) if baseline else 0.0
        if baseline_average <= 0:
            return results

        for name, amounts in by_holiday.items():
            holiday_average = float(np.mean(amounts))
            if len(amounts) >= 2 and holiday_average > 0:
                results[name] = holiday_average / baseline_average
            else:
                logger.debug(f"Not enough data for '{name}' ({len(amounts)} dates), using default multiplier")

        return results

    def get_holiday_for_date(self, day: date) -> Optional[HolidayConfig]:
        """Holiday window containing the date, if any (year is ignored)."""
        for holiday in self.holidays:
            if holiday.contains(day):
                return holiday
        return None

    def default_pattern(self) -> SpendingPattern:
        """Pattern used when there is no historical data."""
        return SpendingPattern(
            day_of_week_factors=list(DEFAULT_DAY_OF_WEEK_FACTORS),
            weekend_average=0.0,
            weekday_average=0.0,
            weekend_to_weekday_ratio=1.0,
            holiday_multipliers={h.name: h.default_multiplier for h in self.holidays},
            daily_average=0.0,
        )
