import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ..config import get_settings

logger = logging.getLogger(__name__)


def _envelope(
    *,
    message: str,
    error: Optional[str] = None,
    errors: Optional[Any] = None,
) -> Dict[str, Any]:
    body: Dict[str, Any] = {"success": False, "message": message}
    if error:
        body["error"] = error
    if errors is not None:
        body["errors"] = errors
    return body


def _field_errors(exc: RequestValidationError) -> list[dict[str, str]]:
    errors = []
    for item in exc.errors():
        location = [str(part) for part in item.get("loc", ()) if part not in ("body", "query", "path")]
        message = str(item.get("msg", "Invalid value"))
        # pydantic prefixes messages raised from validators
        message = message.removeprefix("Value error, ")
        errors.append({"field": ".".join(location), "message": message})
    return errors


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        detail = exc.detail
        if isinstance(detail, dict):
            body = _envelope(
                message=str(detail.get("message") or ""),
                error=detail.get("error"),
                errors=jsonable_encoder(detail.get("errors")) if detail.get("errors") else None,
            )
        else:
            body = _envelope(message=str(detail))
        return JSONResponse(body, status_code=exc.status_code, headers=getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def request_validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        errors = _field_errors(exc)
        message = errors[0]["message"] if len(errors) == 1 else "Validation failed"
        return JSONResponse(
            _envelope(message=message, errors=errors),
            status_code=status.HTTP_400_BAD_REQUEST,
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error", extra={"path": request.url.path})
        settings = get_settings()
        error = None if settings.is_production else str(exc)
        return JSONResponse(
            _envelope(message="Internal Server Error", error=error),
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )
