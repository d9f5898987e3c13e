import logging
import time
from datetime import date
from typing import List, Optional, Any

from fastapi import APIRouter, Depends, HTTPException, status as http_status
from pydantic import BaseModel, Field

from spendcast.api.dependencies import get_forecast_service
from spendcast.core.config import settings
from spendcast.core.metrics import metrics
from spendcast.ml.exceptions import ForecastError
from spendcast.ml.forecast_service import ForecastService, MAX_HORIZON_DAYS
from spendcast.ml.models import (
    ExpenseClassification,
    ForecastOptions,
    ForecastResult,
    CamelModel,
    IntraMonthDistribution,
    SpenderProfile,
    SpendingPattern,
)
from spendcast.ml.transactions import parse_transactions

logger = logging.getLogger(__name__)
router = APIRouter()


class TransactionsRequest(BaseModel):
    """Request model carrying raw transaction records."""
    transactions: List[Any] = Field(
        default_factory=list,
        description="Transaction records; malformed ones are skipped and reported in warnings"
    )


class ForecastRequest(TransactionsRequest):
    """Request model for forecast generation."""
    start_date: Optional[date] = Field(
        default=None,
        description="First forecast day (defaults to the day after the latest transaction)"
    )
    horizon_days: int = Field(
        default=settings.FORECAST_DEFAULT_HORIZON_DAYS,
        ge=1,
        le=MAX_HORIZON_DAYS,
        description="Number of days to forecast"
    )
    historical_months: Optional[int] = Field(
        default=settings.FORECAST_HISTORICAL_MONTHS,
        ge=1,
        description="Months of history to learn from (null for all)"
    )
    include_holidays: bool = True
    budget: Optional[float] = Field(default=None, ge=0)
    fit_to_budget: bool = False


class ExpenseClassificationResponse(ExpenseClassification):
    warnings: List[str] = Field(default_factory=list)


class SpenderProfileResponse(CamelModel):
    profile: SpenderProfile
    label: str
    description: str
    distribution: IntraMonthDistribution
    payday_spike_days: List[int] = Field(default_factory=list)
    curve: List[float]
    warnings: List[str] = Field(default_factory=list)


class SpendingPatternResponse(SpendingPattern):
    warnings: List[str] = Field(default_factory=list)


@router.get(
    "/status",
    summary="Forecast service status",
    description="Returns the operational status, metrics and configuration of the forecast service"
)
def forecast_status(service: ForecastService = Depends(get_forecast_service)):
    """Get service status and metrics."""
    return {
        "status": "operational",
        "service": settings.PROJECT_NAME,
        "version": settings.VERSION,
        "features": {
            "expense_classification": "available",
            "spender_profile": "available",
            "spending_patterns": "available",
            "forecast": "available",
        },
        "metrics": metrics.get_stats(),
        "cache": {
            "enabled": service.cache is not None,
            "entries": len(service.cache) if service.cache is not None else 0,
            "ttl_seconds": service.cache.ttl_seconds if service.cache is not None else None,
            "max_entries": service.cache.max_entries if service.cache is not None else None,
        },
        "configuration": {
            "default_horizon_days": settings.FORECAST_DEFAULT_HORIZON_DAYS,
            "historical_months": settings.FORECAST_HISTORICAL_MONTHS,
            "single_occurrence_confidence": settings.FIXED_SINGLE_OCCURRENCE_CONFIDENCE,
        }
    }


@router.post(
    "/classify-expenses",
    response_model=ExpenseClassificationResponse,
    summary="Classify fixed and variable expenses",
    description="Separates recurring obligations from discretionary spending",
)
def classify_expenses(
    request: TransactionsRequest,
    service: ForecastService = Depends(get_forecast_service),
):
    """
    Classify transactions into fixed (recurring) and variable expenses.

    Args:
        request: TransactionsRequest with raw transaction records
        service: Shared forecast service

    Returns:
        ExpenseClassificationResponse with fixed expenses, variable
        transactions, totals and skipped-record warnings
    """
    start_time = time.perf_counter()
    batch = parse_transactions(request.transactions)

    try:
        classification = service.expense_classifier.classify(batch.transactions)
    except Exception as e:
        _record("classify-expenses", start_time, success=False)
        logger.error(f"Expense classification failed: {e}", exc_info=True)
        raise HTTPException(
            status_code=http_status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Expense classification failed"
        )

    _record("classify-expenses", start_time, skipped_records=len(batch.warnings))
    return ExpenseClassificationResponse(
        **classification.model_dump(),
        warnings=batch.warnings,
    )


@router.post(
    "/spender-profile",
    response_model=SpenderProfileResponse,
    summary="Detect spender profile",
    description="Labels how spending is distributed across the days of a month",
)
def spender_profile(
    request: TransactionsRequest,
    service: ForecastService = Depends(get_forecast_service),
):
    """Classify the intra-month spending rhythm and return its weight curve."""
    start_time = time.perf_counter()
    batch = parse_transactions(request.transactions)
    profiler = service.spender_profiler

    try:
        profile = profiler.classify(batch.transactions)
        response = SpenderProfileResponse(
            profile=profile,
            label=profiler.get_profile_label(profile),
            description=profiler.get_profile_description(profile),
            distribution=profiler.calculate_intra_month_distribution(batch.transactions),
            payday_spike_days=(
                profiler.detect_payday_spikes(batch.transactions)["days"]
                if profile == SpenderProfile.PAYDAY_SPIKER else []
            ),
            curve=profiler.get_distribution_curve(profile),
            warnings=batch.warnings,
        )
    except Exception as e:
        _record("spender-profile", start_time, success=False)
        logger.error(f"Spender profiling failed: {e}", exc_info=True)
        raise HTTPException(
            status_code=http_status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Spender profiling failed"
        )

    _record("spender-profile", start_time, skipped_records=len(batch.warnings))
    return response


@router.post(
    "/spending-patterns",
    response_model=SpendingPatternResponse,
    summary="Analyze calendar spending patterns",
    description="Day-of-week factors, weekend/weekday ratio and holiday multipliers",
)
def spending_patterns(
    request: TransactionsRequest,
    service: ForecastService = Depends(get_forecast_service),
):
    """Extract calendar effects on spending relative to the daily average."""
    start_time = time.perf_counter()
    batch = parse_transactions(request.transactions)

    try:
        pattern = service.pattern_analyzer.analyze(batch.transactions)
    except Exception as e:
        _record("spending-patterns", start_time, success=False)
        logger.error(f"Spending pattern analysis failed: {e}", exc_info=True)
        raise HTTPException(
            status_code=http_status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Spending pattern analysis failed"
        )

    _record("spending-patterns", start_time, skipped_records=len(batch.warnings))
    return SpendingPatternResponse(**pattern.model_dump(), warnings=batch.warnings)


@router.post(
    "/generate",
    response_model=ForecastResult,
    summary="Generate spending forecast",
    description="Projects spending over a horizon with a confidence score",
    responses={
        200: {"description": "Forecast generated successfully"},
        400: {"description": "Invalid forecast options"},
        500: {"description": "Internal server error"}
    }
)
def generate_forecast(
    request: ForecastRequest,
    service: ForecastService = Depends(get_forecast_service),
):
    """
    Generate a spending forecast.

    Combines fixed expenses, the spender profile curve, day-of-week factors
    and holiday multipliers into a daily projection.

    Args:
        request: ForecastRequest with raw transactions and forecast options
        service: Shared forecast service

    Returns:
        ForecastResult with projected total, confidence and daily breakdown
    """
    start_time = time.perf_counter()
    options = ForecastOptions(
        start_date=request.start_date,
        horizon_days=request.horizon_days,
        historical_months=request.historical_months,
        include_holidays=request.include_holidays,
        budget=request.budget,
        fit_to_budget=request.fit_to_budget,
    )

    try:
        result = service.generate_forecast(request.transactions, options)
    except ForecastError as e:
        _record("generate", start_time, success=False)
        logger.warning(f"Rejected forecast request: {e}")
        raise HTTPException(
            status_code=http_status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
    except Exception as e:
        _record("generate", start_time, success=False)
        logger.error(f"Forecast generation failed: {e}", exc_info=True)
        raise HTTPException(
            status_code=http_status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Forecast generation failed"
        )

    _record(
        "generate",
        start_time,
        cache_hit=result.cache_hit,
        skipped_records=len(result.warnings),
    )
    return result


@router.delete("/cache", summary="Clear the forecast cache")
def clear_cache(service: ForecastService = Depends(get_forecast_service)):
    service.clear_cache()
    logger.info("Forecast cache cleared")
    return {"status": "cleared"}


def _record(
    operation: str,
    start_time: float,
    success: bool = True,
    cache_hit: bool = False,
    skipped_records: int = 0,
):
    metrics.record_request(
        operation=operation,
        processing_time=time.perf_counter() - start_time,
        success=success,
        cache_hit=cache_hit,
        skipped_records=skipped_records,
    )
