"""
Spending Forecast Service for Spendcast.

Combines the expense classifier, the spending pattern analyzer and the
spender profiler into a day-by-day projection with a confidence score.
"""

import calendar
import logging
from datetime import date, timedelta
from typing import List, Dict, Iterable, Optional, Sequence

from spendcast.core.config import settings
from spendcast.ml.constants import (
    CONFIDENCE_WEIGHTS,
    DATA_CONFIDENCE_LEVELS,
    DAYS_PER_MONTH,
    MIN_HISTORY_DAYS,
    MIN_HISTORY_TRANSACTIONS,
    WEEKEND_DAYS,
)
from spendcast.ml.exceptions import InvalidForecastOptionsError
from spendcast.ml.expense_classifier import ExpenseClassifier
from spendcast.ml.forecast_cache import ForecastCache, build_cache_key
from spendcast.ml.models import (
    DailyForecast,
    FixedExpense,
    ForecastOptions,
    ForecastResult,
    SpenderProfile,
    SpendingPattern,
    Transaction,
)
from spendcast.ml.spender_profiler import SpenderProfiler
from spendcast.ml.spending_pattern_analyzer import SpendingPatternAnalyzer
from spendcast.ml.transactions import TransactionLike, day_of_week, daily_totals, parse_transactions

logger = logging.getLogger(__name__)

MAX_HORIZON_DAYS = 366


def subtract_months(day: date, months: int) -> date:
    """Same day N months earlier, clamped to the length of the target month."""
    month_index = day.year * 12 + (day.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    return date(year, month, min(day.day, calendar.monthrange(year, month)[1]))


def days_in_month(day: date) -> int:
    return calendar.monthrange(day.year, day.month)[1]


class ForecastService:
    """
    Projects spending over a horizon of days.

    Each day's forecast is the fixed expenses due that day plus a share of
    the monthly variable average, weighted by:
    1. The spender profile curve for the day of month
    2. The day-of-week factor
    3. The holiday multiplier, when the day falls in a holiday window

    Results are cached by transaction-set content for a short TTL.
    """

    def __init__(
        self,
        expense_classifier: Optional[ExpenseClassifier] = None,
        pattern_analyzer: Optional[SpendingPatternAnalyzer] = None,
        spender_profiler: Optional[SpenderProfiler] = None,
        cache: Optional[ForecastCache] = None,
        enable_caching: Optional[bool] = None,
    ):
        """
        Initialize the forecast service.

        Args:
            expense_classifier: Fixed/variable classifier. Built if None.
            pattern_analyzer: Calendar pattern analyzer. Built if None.
            spender_profiler: Intra-month profiler. Built if None.
            cache: Result cache. Built from settings if None and caching is enabled.
            enable_caching: Overrides settings.ENABLE_CACHING.
        """
        self.expense_classifier = expense_classifier or ExpenseClassifier()
        self.pattern_analyzer = pattern_analyzer or SpendingPatternAnalyzer()
        self.spender_profiler = spender_profiler or SpenderProfiler()

        if enable_caching is None:
            enable_caching = settings.ENABLE_CACHING
        if not enable_caching:
            self.cache = None
        else:
            self.cache = cache if cache is not None else ForecastCache()

        logger.info(f"Initialized ForecastService with caching={'on' if self.cache is not None else 'off'}")

    def generate_forecast(
        self,
        transactions: Iterable[TransactionLike],
        options: Optional[ForecastOptions] = None,
    ) -> ForecastResult:
        """
        Generate a spending forecast.

        Args:
            transactions: Full transaction history in any order; malformed
                          records are skipped and reported in `warnings`
            options: Forecast options. If None, uses defaults from settings.

        Returns:
            ForecastResult with totals, confidence, daily breakdown and the
            profile and pattern that produced it

        Raises:
            InvalidForecastOptionsError: If the options are out of range
        """
        if options is None:
            options = ForecastOptions(
                horizon_days=settings.FORECAST_DEFAULT_HORIZON_DAYS,
                historical_months=settings.FORECAST_HISTORICAL_MONTHS,
            )
        self._validate_options(options)

        batch = parse_transactions(transactions)
        txs = batch.transactions
        options = self._resolve_options(txs, options)

        cache_key = None
        if self.cache is not None:
            cache_key = build_cache_key(txs, options)
            cached = self.cache.get(cache_key)
            if cached is not None:
                logger.debug(f"Forecast cache hit for key {cache_key[:12]}")
                return cached.model_copy(
                    deep=True, update={"cache_hit": True, "warnings": list(batch.warnings)}
                )

        result = self._compute(txs, options)

        if self.cache is not None:
            # Callers get their own copy; the stored entry is never handed out
            self.cache.put(cache_key, result.model_copy(deep=True))

        logger.info(
            f"Generated forecast from {options.start_date} for {options.horizon_days} days: "
            f"projected={result.projected_total:.2f}, profile={result.profile.value}, "
            f"confidence={result.confidence}"
        )

        if batch.warnings:
            return result.model_copy(update={"warnings": list(batch.warnings)})
        return result

    def clear_cache(self) -> None:
        if self.cache is not None:
            self.cache.clear()

    @staticmethod
    def _validate_options(options: ForecastOptions) -> None:
        if not 1 <= options.horizon_days <= MAX_HORIZON_DAYS:
            raise InvalidForecastOptionsError(
                f"horizon_days must be between 1 and {MAX_HORIZON_DAYS}, got {options.horizon_days}"
            )
        if options.historical_months is not None and options.historical_months < 1:
            raise InvalidForecastOptionsError(
                f"historical_months must be at least 1, got {options.historical_months}"
            )
        if options.budget is not None and options.budget < 0:
            raise InvalidForecastOptionsError(f"budget must not be negative, got {options.budget}")
        if options.fit_to_budget and options.budget is None:
            raise InvalidForecastOptionsError("fit_to_budget requires a budget")

    @staticmethod
    def _resolve_options(transactions: Sequence[Transaction], options: ForecastOptions) -> ForecastOptions:
        """Fill in the start date: the day after the latest transaction, or today."""
        if options.start_date is not None:
            return options
        if transactions:
            start = max(tx.date for tx in transactions) + timedelta(days=1)
        else:
            start = date.today()
        return options.model_copy(update={"start_date": start})

    def _compute(self, transactions: Sequence[Transaction], options: ForecastOptions) -> ForecastResult:
        start = options.start_date
        end = start + timedelta(days=options.horizon_days - 1)
        cutoff = subtract_months(start, options.historical_months) if options.historical_months else None

        history = [
            tx for tx in transactions
            if tx.date < start and (cutoff is None or tx.date >= cutoff)
        ]
        actuals = daily_totals(tx for tx in transactions if start <= tx.date <= end)

        if self._has_insufficient_history(history):
            logger.info(f"Insufficient history ({len(history)} transactions), using uniform forecast")
            return self._uniform_forecast(history, actuals, options)

        classification = self.expense_classifier.classify(history)
        pattern = self.pattern_analyzer.analyze(history)
        profile = self.spender_profiler.classify(history)

        ceiling = self._data_ceiling(history)
        daily = self._build_daily_forecasts(
            classification.fixed,
            classification.variable_average,
            pattern,
            profile,
            actuals,
            options,
            ceiling,
        )
        if options.fit_to_budget:
            daily = self._fit_to_budget(daily, options.budget)

        projected_total = sum(d.forecast_amount for d in daily)
        confidence = self._calculate_confidence(len(history), pattern, len(classification.fixed), profile)

        return ForecastResult(
            projected_total=projected_total,
            fixed_portion=sum(d.fixed_amount for d in daily),
            variable_portion=sum(d.variable_amount for d in daily),
            confidence=round(min(confidence, ceiling), 2),
            profile=profile,
            pattern=pattern,
            start_date=start,
            horizon_days=options.horizon_days,
            daily_forecasts=daily,
            fixed_expenses=classification.fixed,
            variable_average=classification.variable_average,
            budget=options.budget,
            variance=projected_total - options.budget if options.budget is not None else None,
            is_first_month=False,
        )

    @staticmethod
    def _has_insufficient_history(history: Sequence[Transaction]) -> bool:
        if len(history) < MIN_HISTORY_TRANSACTIONS:
            return True
        dates = [tx.date for tx in history]
        return (max(dates) - min(dates)).days < MIN_HISTORY_DAYS

    def _uniform_forecast(
        self,
        history: Sequence[Transaction],
        actuals: Dict[date, float],
        options: ForecastOptions,
    ) -> ForecastResult:
        """Flat forecast for users without enough history to find patterns."""
        pattern = self.pattern_analyzer.analyze(history)
        if options.budget is not None:
            daily_amount = options.budget / options.horizon_days
        else:
            daily_amount = pattern.daily_average

        confidence = DATA_CONFIDENCE_LEVELS["NO_HISTORY"]
        daily: List[DailyForecast] = []
        cumulative = 0.0
        for offset in range(options.horizon_days):
            day = options.start_date + timedelta(days=offset)
            holiday = self.pattern_analyzer.get_holiday_for_date(day)
            cumulative += daily_amount
            daily.append(DailyForecast(
                date=day,
                day_of_month=day.day,
                day_of_week=day_of_week(day),
                variable_amount=daily_amount,
                forecast_amount=daily_amount,
                actual_amount=actuals.get(day),
                cumulative_forecast=cumulative,
                is_holiday=holiday is not None,
                holiday_name=holiday.name if holiday else None,
                is_weekend=day_of_week(day) in WEEKEND_DAYS,
                confidence=confidence,
            ))

        projected_total = daily_amount * options.horizon_days
        return ForecastResult(
            projected_total=projected_total,
            fixed_portion=0.0,
            variable_portion=projected_total,
            confidence=confidence,
            profile=SpenderProfile.VARIABLE,
            pattern=pattern,
            start_date=options.start_date,
            horizon_days=options.horizon_days,
            daily_forecasts=daily,
            variable_average=daily_amount * DAYS_PER_MONTH,
            budget=options.budget,
            variance=projected_total - options.budget if options.budget is not None else None,
            is_first_month=True,
        )

    def _build_daily_forecasts(
        self,
        fixed_expenses: List[FixedExpense],
        monthly_variable_average: float,
        pattern: SpendingPattern,
        profile: SpenderProfile,
        actuals: Dict[date, float],
        options: ForecastOptions,
        ceiling: float,
    ) -> List[DailyForecast]:
        curve = self.spender_profiler.get_distribution_curve(profile)

        forecasts: List[DailyForecast] = []
        cumulative = 0.0
        for offset in range(options.horizon_days):
            day = options.start_date + timedelta(days=offset)
            month_length = days_in_month(day)
            weekday = day_of_week(day)

            # Bills due on the 29th-31st land on the last day of shorter months
            due = [fe for fe in fixed_expenses if min(fe.expected_day, month_length) == day.day]
            fixed_amount = sum(fe.expected_amount for fe in due)

            holiday = self.pattern_analyzer.get_holiday_for_date(day)
            holiday_factor = 1.0
            if holiday is not None:
                holiday_factor = pattern.holiday_multipliers.get(holiday.name, holiday.default_multiplier)

            variable_amount = (
                monthly_variable_average / month_length
                * pattern.day_of_week_factors[weekday]
                * curve[min(day.day, len(curve)) - 1]
            )
            if options.include_holidays and holiday_factor > 1:
                variable_amount *= holiday_factor

            forecast_amount = fixed_amount + variable_amount
            cumulative += forecast_amount

            forecasts.append(DailyForecast(
                date=day,
                day_of_month=day.day,
                day_of_week=weekday,
                fixed_expenses=due,
                fixed_amount=fixed_amount,
                variable_amount=variable_amount,
                forecast_amount=forecast_amount,
                actual_amount=actuals.get(day),
                cumulative_forecast=cumulative,
                is_holiday=holiday is not None,
                holiday_name=holiday.name if holiday else None,
                is_weekend=weekday in WEEKEND_DAYS,
                confidence=self._day_confidence(due, pattern, ceiling),
            ))

        return forecasts

    @staticmethod
    def _fit_to_budget(forecasts: List[DailyForecast], budget: float) -> List[DailyForecast]:
        """
        Scale variable spending so the forecast total matches the budget.

        Fixed expenses keep their amounts; if they alone exceed the budget the
        variable portion drops to zero.
        """
        total_fixed = sum(f.fixed_amount for f in forecasts)
        total_variable = sum(max(0.0, f.variable_amount) for f in forecasts)

        if total_fixed + total_variable <= 0:
            per_day = budget / len(forecasts)
            scale = None
        else:
            per_day = None
            remaining = max(0.0, budget - total_fixed)
            scale = remaining / total_variable if total_variable > 0 else 0.0

        fitted: List[DailyForecast] = []
        cumulative = 0.0
        for f in forecasts:
            if scale is None:
                variable_amount = per_day
            else:
                variable_amount = max(0.0, f.variable_amount) * scale
            forecast_amount = f.fixed_amount + variable_amount
            cumulative += forecast_amount
            fitted.append(f.model_copy(update={
                "variable_amount": variable_amount,
                "forecast_amount": forecast_amount,
                "cumulative_forecast": cumulative,
            }))
        return fitted

    @staticmethod
    def _data_ceiling(history: Sequence[Transaction]) -> float:
        """Upper bound on confidence from the months of history available."""
        if not history:
            return DATA_CONFIDENCE_LEVELS["NO_HISTORY"]

        dates = [tx.date for tx in history]
        months = (max(dates) - min(dates)).days / DAYS_PER_MONTH
        if months < 1:
            return DATA_CONFIDENCE_LEVELS["LESS_THAN_ONE_MONTH"]
        if months < 2:
            return DATA_CONFIDENCE_LEVELS["ONE_TO_TWO_MONTHS"]
        if months < 3:
            return DATA_CONFIDENCE_LEVELS["TWO_TO_THREE_MONTHS"]
        return DATA_CONFIDENCE_LEVELS["THREE_PLUS_MONTHS"]

    @staticmethod
    def _calculate_confidence(
        transaction_count: int,
        pattern: SpendingPattern,
        fixed_expense_count: int,
        profile: SpenderProfile,
    ) -> float:
        """Weighted blend of data quantity, pattern, fixed-expense and profile signals."""
        if transaction_count < 10:
            data_confidence = DATA_CONFIDENCE_LEVELS["NO_HISTORY"]
        elif transaction_count < 30:
            data_confidence = DATA_CONFIDENCE_LEVELS["LESS_THAN_ONE_MONTH"]
        elif transaction_count < 60:
            data_confidence = DATA_CONFIDENCE_LEVELS["ONE_TO_TWO_MONTHS"]
        elif transaction_count < 90:
            data_confidence = DATA_CONFIDENCE_LEVELS["TWO_TO_THREE_MONTHS"]
        else:
            data_confidence = DATA_CONFIDENCE_LEVELS["THREE_PLUS_MONTHS"]

        pattern_confidence = 0.8 if pattern.daily_average > 0 else 0.3
        fixed_confidence = min(1.0, fixed_expense_count * 0.15 + 0.3)
        profile_confidence = 0.5 if profile == SpenderProfile.VARIABLE else 0.8

        return (
            data_confidence * CONFIDENCE_WEIGHTS["DATA_QUANTITY"]
            + pattern_confidence * CONFIDENCE_WEIGHTS["PATTERN_CONSISTENCY"]
            + fixed_confidence * CONFIDENCE_WEIGHTS["FIXED_EXPENSE_DETECTION"]
            + profile_confidence * CONFIDENCE_WEIGHTS["PROFILE_CLARITY"]
        )

    @staticmethod
    def _day_confidence(due: List[FixedExpense], pattern: SpendingPattern, ceiling: float) -> float:
        base = 0.6 if pattern.daily_average > 0 else DATA_CONFIDENCE_LEVELS["NO_HISTORY"]
        boost = 0.2 if due else 0.0
        return round(min(1.0, base + boost, ceiling), 2)
