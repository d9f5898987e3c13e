"""
Domain models shared by the forecasting components.

Transactions are the only input type; everything else is derived output
recomputed on every call.
"""

from datetime import date, datetime
from enum import Enum
from typing import List, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Accepts and emits camelCase field names alongside snake_case ones."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Transaction(CamelModel):
    """A purchase record as supplied by the transaction provider."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True, allow_inf_nan=False
    )

    date: date
    amount: float
    merchant_name: str
    payment_amount: Optional[float] = None
    reimbursement_amount: Optional[float] = 0.0
    mcc_code: Optional[str] = None
    user_category: Optional[str] = None
    category: Optional[str] = None

    @field_validator("date", mode="before")
    @classmethod
    def _coerce_date(cls, value):
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value
        if isinstance(value, str):
            try:
                # Only the calendar part matters; time and offset are dropped
                return date.fromisoformat(value.strip()[:10])
            except ValueError:
                raise ValueError(f"unparseable date {value!r}")
        raise ValueError(f"unsupported date type {type(value).__name__}")

    @field_validator("merchant_name")
    @classmethod
    def _require_merchant(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("merchant name is blank")
        return value

    @field_validator("mcc_code", mode="before")
    @classmethod
    def _mcc_as_string(cls, value):
        if value is None:
            return None
        return str(value).strip() or None


class FixedExpense(CamelModel):
    """A recurring obligation inferred from repeated charges to one merchant."""

    merchant_name: str
    expected_amount: float
    expected_day: int
    category: str
    confidence: float = Field(ge=0.0, le=1.0)
    last_occurrence: date
    occurrence_count: int


class ExpenseClassification(CamelModel):
    fixed: List[FixedExpense] = Field(default_factory=list)
    variable: List[Transaction] = Field(default_factory=list)
    fixed_total: float = 0.0
    variable_average: float = 0.0


class SpenderProfile(str, Enum):
    FRONT_LOADER = "front-loader"
    BACK_LOADER = "back-loader"
    PAYDAY_SPIKER = "payday-spiker"
    STEADY = "steady"
    VARIABLE = "variable"


class IntraMonthDistribution(CamelModel):
    """Effective-amount sums for days 1-10, 11-20 and 21-31."""

    first_third: float = 0.0
    middle_third: float = 0.0
    last_third: float = 0.0
    total: float = 0.0


class HolidayConfig(CamelModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True
    )

    name: str
    month: int = Field(ge=1, le=12)
    start_day: int = Field(ge=1, le=31)
    end_day: int = Field(ge=1, le=31)
    default_multiplier: float

    def contains(self, day: date) -> bool:
        return day.month == self.month and self.start_day <= day.day <= self.end_day


class SpendingPattern(CamelModel):
    day_of_week_factors: List[float]  # Sunday first
    weekend_average: float = 0.0
    weekday_average: float = 0.0
    weekend_to_weekday_ratio: float = 1.0
    holiday_multipliers: Dict[str, float] = Field(default_factory=dict)
    daily_average: float = 0.0


class ForecastOptions(CamelModel):
    start_date: Optional[date] = None
    horizon_days: int = 30
    historical_months: Optional[int] = 3
    include_holidays: bool = True
    budget: Optional[float] = None
    fit_to_budget: bool = False


class DailyForecast(CamelModel):
    date: date
    day_of_month: int
    day_of_week: int  # 0 = Sunday
    fixed_expenses: List[FixedExpense] = Field(default_factory=list)
    fixed_amount: float = 0.0
    variable_amount: float = 0.0
    forecast_amount: float = 0.0
    actual_amount: Optional[float] = None
    cumulative_forecast: float = 0.0
    is_holiday: bool = False
    holiday_name: Optional[str] = None
    is_weekend: bool = False
    confidence: float = 0.0


class ForecastResult(CamelModel):
    projected_total: float
    fixed_portion: float
    variable_portion: float
    confidence: float
    profile: SpenderProfile
    pattern: SpendingPattern
    cache_hit: bool = False
    start_date: date
    horizon_days: int
    daily_forecasts: List[DailyForecast] = Field(default_factory=list)
    fixed_expenses: List[FixedExpense] = Field(default_factory=list)
    variable_average: float = 0.0
    budget: Optional[float] = None
    variance: Optional[float] = None
    is_first_month: bool = False
    warnings: List[str] = Field(default_factory=list)
