"""
Global Error Handler Middleware.

Domain errors (RiskRadarError) become their own status code and JSON body.
Anything else is logged with an error_id and answered with a generic 500;
stack traces and DB errors never reach the client.
"""

import traceback
import uuid

import structlog
from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from riskradar.config import settings
from riskradar.exceptions import RiskRadarError

logger = structlog.get_logger(__name__)


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """
    Wraps the routers and catches everything they raise.

    Unhandled errors return:
    {
      "error": "human-readable message",
      "error_id": "uuid for log correlation",
      "status": 500
    }
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        try:
            return await call_next(request)

        except RiskRadarError as exc:
            logger.info(
                "request_rejected",
                path=request.url.path,
                code=exc.code.value,
                status=exc.status_code,
                error=exc.message,
            )
            return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

        except Exception as exc:
            error_id = str(uuid.uuid4())

            logger.error(
                "unhandled_exception",
                error_id=error_id,
                path=request.url.path,
                method=request.method,
                error=str(exc),
                traceback=traceback.format_exc(),
            )

            body: dict = {
                "error": "An internal error occurred. Please try again later.",
                "error_id": error_id,
                "status": 500,
            }
            if settings.debug:
                body["debug_hint"] = type(exc).__name__

            return JSONResponse(status_code=500, content=body)
