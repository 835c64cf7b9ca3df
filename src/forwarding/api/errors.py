"""HTTP mapping for forwarding errors.

Each error kind gets its status code and a ``{"error", "message", "details"}``
body. Registered after Protean's own handlers; Starlette picks the most
specific exception class, so these win over the generic ``ValidationError``
handler.
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from forwarding.errors import ExternalServiceError, ForwardingValidationError

logger = structlog.get_logger(__name__)


async def _validation_error_handler(request: Request, exc: ForwardingValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.kind, "message": exc.message, "details": exc.messages},
    )


async def _external_error_handler(request: Request, exc: ExternalServiceError) -> JSONResponse:
    logger.warning("external_service_error", kind=exc.kind, path=request.url.path, message=exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.kind, "message": exc.message, "details": exc.details},
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ForwardingValidationError, _validation_error_handler)
    app.add_exception_handler(ExternalServiceError, _external_error_handler)
