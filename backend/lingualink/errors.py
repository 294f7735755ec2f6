from datetime import datetime, timezone
import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError

from .core.exceptions import DomainException, ErrorCode
from .core.ulid_helper import generate_ulid

logger = logging.getLogger(__name__)

ENVELOPE_VERSION = "1.0"
REQUEST_ID_HEADER = "X-Request-ID"


def error_envelope(exc: DomainException, request_id: Optional[str] = None) -> Dict[str, Any]:
    return {
        "success": False,
        "error": {
            "code": exc.code,
            "message": exc.message,
            "details": jsonable_encoder(exc.details),
        },
        "meta": {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "version": ENVELOPE_VERSION,
            "request_id": request_id or generate_ulid(),
        },
    }


def _validation_envelope(errors: Any, request_id: str) -> Dict[str, Any]:
    return {
        "success": False,
        "error": {
            "code": ErrorCode.VAL_INVALID_INPUT,
            "message": "Request validation failed",
            "details": {"errors": jsonable_encoder(errors)},
        },
        "meta": {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "version": ENVELOPE_VERSION,
            "request_id": request_id,
        },
    }


def _request_id(request: Request) -> str:
    return request.headers.get(REQUEST_ID_HEADER) or generate_ulid()


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(DomainException)
    async def domain_exception_handler(request: Request, exc: DomainException) -> JSONResponse:
        request_id = _request_id(request)
        log = logger.error if exc.status_code >= 500 else logger.info
        log(
            "Domain error on %s: %s",
            request.url.path,
            exc.message,
            extra={"error_code": exc.code, "request_id": request_id},
        )
        return JSONResponse(
            error_envelope(exc, request_id),
            status_code=exc.status_code,
            headers={REQUEST_ID_HEADER: request_id},
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        request_id = _request_id(request)
        return JSONResponse(
            _validation_envelope(exc.errors(), request_id),
            status_code=400,
            headers={REQUEST_ID_HEADER: request_id},
        )

    @app.exception_handler(PydanticValidationError)
    async def validation_exception_handler(
        request: Request, exc: PydanticValidationError
    ) -> JSONResponse:
        request_id = _request_id(request)
        return JSONResponse(
            _validation_envelope(exc.errors(include_url=False), request_id),
            status_code=400,
            headers={REQUEST_ID_HEADER: request_id},
        )
