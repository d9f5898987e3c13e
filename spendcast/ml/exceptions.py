"""Forecasting exceptions"""


class ForecastError(Exception):
    """Base exception for the forecasting components"""

    pass


class InvalidForecastOptionsError(ForecastError):
    """Forecast options are out of range or inconsistent"""

    pass
