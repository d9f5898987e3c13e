import logging
import time

from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from spendcast.ml.exceptions import ForecastError

logger = logging.getLogger(__name__)


def error_response(request: Request, status_code: int, message) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error": {
                "message": message,
                "status_code": status_code,
                "path": str(request.url.path),
            }
        },
    )


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """Turns exceptions escaping the routes into the JSON error envelope."""

    async def dispatch(self, request: Request, call_next):
        started = time.perf_counter()
        try:
            response = await call_next(request)
        except StarletteHTTPException as e:
            return error_response(request, e.status_code, e.detail)
        except ForecastError as e:
            logger.warning(f"Forecast error on {request.method} {request.url.path}: {e}")
            return error_response(request, status.HTTP_400_BAD_REQUEST, str(e))
        except Exception as e:
            logger.error(
                f"Unhandled exception: {e}",
                exc_info=True,
                extra={
                    "path": str(request.url.path),
                    "method": request.method,
                },
            )
            message = str(e) if request.app.debug else "Internal server error"
            return error_response(request, status.HTTP_500_INTERNAL_SERVER_ERROR, message)

        logger.debug(
            f"{request.method} {request.url.path} -> {response.status_code} "
            f"in {time.perf_counter() - started:.3f}s"
        )
        return response
