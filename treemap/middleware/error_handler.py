"""
Global error handling middleware.

Errors the routers do not translate themselves end up here and are turned
into ``{"error": ..., "detail": ...}`` JSON bodies.
"""
import logging
from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from typing import Callable

from treemap.infrastructure.external_api_client import ExternalAPIError
from treemap.infrastructure.map_engine import MapEngineError


logger = logging.getLogger(__name__)


def _error_response(status_code: int, error: str, detail: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": error, "detail": detail},
    )


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """
    Map unhandled exceptions to consistent error responses.

    - ExternalAPIError: the status code chosen by the API client (502/503/4xx)
    - MapEngineError: 409, the map view is not in a state to serve the request
    - ValueError: 400
    - anything else: 500, with the traceback logged
    """

    async def dispatch(self, request: Request, call_next: Callable):
        context = {"path": request.url.path, "method": request.method}
        try:
            return await call_next(request)

        except ExternalAPIError as e:
            logger.error(
                f"Tree inventory API error: {e.message}",
                extra={**context, "status_code": e.status_code},
            )
            return _error_response(e.status_code, "Tree inventory API error", e.message)

        except MapEngineError as e:
            logger.warning(f"Map view error: {e}", extra=context)
            return _error_response(status.HTTP_409_CONFLICT, "Map view error", str(e))

        except ValueError as e:
            logger.warning(f"Invalid request: {e}", extra=context)
            return _error_response(status.HTTP_400_BAD_REQUEST, "Invalid request", str(e))

        except Exception as e:
            logger.exception(f"Unhandled exception: {e}", extra=context)
            return _error_response(
                status.HTTP_500_INTERNAL_SERVER_ERROR,
                "Internal server error",
                "An unexpected error occurred",
            )
