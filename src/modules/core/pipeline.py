"""Exception classification and response pipeline.

Every failure that escapes a view ends up in ``handle_exception``:

1. ``classify`` turns the exception into an ``AppError`` (or ``None`` when it
   is not one of the known kinds).
2. ``log_failure`` writes exactly one structured log entry, plus a critical
   ``request.system_exception`` line for anything outside the domain kinds.
3. ``build_problem`` produces the ``application/problem+json`` body.

Entry points:

* ``api_exception_handler``: DRF ``EXCEPTION_HANDLER``.
* ``ExceptionPipelineMiddleware`` (``modules.core.middleware``): plain Django
  views.
* ``not_found_view``: ``handler404`` for unrouted paths.
"""

from __future__ import annotations

import traceback
from datetime import timezone as dt_timezone
from typing import Dict, List, Optional, Tuple

import structlog
from django.conf import settings
from django.core.exceptions import ObjectDoesNotExist
from django.core.exceptions import PermissionDenied as DjangoPermissionDenied
from django.core.exceptions import ValidationError as DjangoValidationError
from django.http import Http404, JsonResponse
from django.utils import timezone
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError
from rest_framework import exceptions as drf_exceptions
from rest_framework.views import set_rollback

from modules.core.errors import (
    DOMAIN_KINDS,
    AppError,
    BadRequest,
    ErrorKind,
    Forbidden,
    NotFound,
    Timeout,
    Unauthorized,
    UnsupportedOperation,
    Validation,
)
from modules.core.request_info import RequestContext

logger = structlog.get_logger(__name__)

PROBLEM_CONTENT_TYPE = "application/problem+json"
TYPE_URI = "https://httpstatuses.com/{status}"

GENERIC_DETAIL = "An unexpected error occurred. Please try again later."
TRANSACTION_DETAIL = "The operation could not be completed. Please try again later."

# kind -> (status, title); must cover every ErrorKind
_RESPONSES: Dict[ErrorKind, Tuple[int, str]] = {
    ErrorKind.VALIDATION: (400, "Validation Error"),
    ErrorKind.BAD_REQUEST: (400, "Bad Request"),
    ErrorKind.UNAUTHORIZED: (401, "Unauthorized Access"),
    ErrorKind.FORBIDDEN: (403, "Access Forbidden"),
    ErrorKind.NOT_FOUND: (404, "Resource Not Found"),
    ErrorKind.CONFLICT: (409, "Resource Conflict"),
    ErrorKind.INVALID_STATE: (400, "Invalid State Transition"),
    ErrorKind.INVALID_OPERATION: (400, "Invalid Operation"),
    ErrorKind.TIMEOUT: (408, "Request Timeout"),
    ErrorKind.UNSUPPORTED_OPERATION: (501, "Operation Not Supported"),
    ErrorKind.TRANSACTION_FAILURE: (500, "Transaction Failed"),
}

_UNCLASSIFIED: Tuple[int, str] = (500, "Internal Server Error")

_BAD_REQUEST_TYPES = (
    drf_exceptions.ParseError,
    drf_exceptions.UnsupportedMediaType,
    drf_exceptions.MethodNotAllowed,
    drf_exceptions.NotAcceptable,
)


def response_for(kind: Optional[ErrorKind]) -> Tuple[int, str]:
    if kind is None:
        return _UNCLASSIFIED
    return _RESPONSES[kind]


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------


def _flatten(detail, prefix: str = "") -> Dict[str, List[str]]:
    """Flatten a DRF error ``detail`` tree into ``{"a.b": [messages]}``."""
    flat: Dict[str, List[str]] = {}
    if isinstance(detail, dict):
        for key, value in detail.items():
            name = f"{prefix}.{key}" if prefix else str(key)
            for sub_key, messages in _flatten(value, name).items():
                flat.setdefault(sub_key, []).extend(messages)
    elif isinstance(detail, list):
        if all(not isinstance(item, (dict, list)) for item in detail):
            flat[prefix or "non_field_errors"] = [str(item) for item in detail]
        else:
            for index, item in enumerate(detail):
                name = f"{prefix}.{index}" if prefix else str(index)
                for sub_key, messages in _flatten(item, name).items():
                    flat.setdefault(sub_key, []).extend(messages)
    else:
        flat[prefix or "non_field_errors"] = [str(detail)]
    return flat


def _pydantic_errors(exc: PydanticValidationError) -> Dict[str, List[str]]:
    errors: Dict[str, List[str]] = {}
    for error in exc.errors():
        key = ".".join(str(part) for part in error["loc"]) or "non_field_errors"
        errors.setdefault(key, []).append(error["msg"])
    return errors


def _django_errors(exc: DjangoValidationError) -> Dict[str, List[str]]:
    if hasattr(exc, "error_dict"):
        return {key: list(messages) for key, messages in exc.message_dict.items()}
    return {"non_field_errors": list(exc.messages)}


def _detail_text(detail) -> str:
    # SimpleJWT raises with a dict detail: {"detail": ..., "code": ..., "messages": [...]}
    if isinstance(detail, dict) and "detail" in detail:
        return str(detail["detail"])
    return str(detail)


def classify(exc: BaseException) -> Optional[AppError]:
    """Map *exc* onto the closed error taxonomy; ``None`` if unclassified."""
    if isinstance(exc, AppError):
        return exc
    if isinstance(exc, drf_exceptions.ValidationError):
        return AppError(Validation(_flatten(exc.detail)))
    if isinstance(exc, PydanticValidationError):
        return AppError(Validation(_pydantic_errors(exc)))
    if isinstance(exc, DjangoValidationError):
        return AppError(Validation(_django_errors(exc)))
    if isinstance(
        exc, (drf_exceptions.NotAuthenticated, drf_exceptions.AuthenticationFailed)
    ):
        return AppError(Unauthorized(), _detail_text(exc.detail))
    if isinstance(exc, drf_exceptions.PermissionDenied):
        return AppError(Forbidden(), _detail_text(exc.detail))
    if isinstance(exc, DjangoPermissionDenied):
        return AppError(Forbidden(), str(exc) or None)
    if isinstance(exc, (Http404, drf_exceptions.NotFound, ObjectDoesNotExist)):
        return AppError(NotFound())
    if isinstance(exc, _BAD_REQUEST_TYPES):
        return AppError(BadRequest(), _detail_text(exc.detail))
    if isinstance(exc, TimeoutError):
        return AppError(Timeout(), str(exc) or None)
    if isinstance(exc, NotImplementedError):
        return AppError(UnsupportedOperation(), str(exc) or None)
    return None


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------


def log_failure(
    exc: BaseException, error: Optional[AppError], ctx: RequestContext
) -> None:
    base = {
        "trace_id": ctx.trace_id,
        "request_method": ctx.method,
        "request_path": ctx.path,
        "user_id": ctx.user_label,
    }

    if error is not None and error.kind in DOMAIN_KINDS:
        if error.kind is ErrorKind.UNAUTHORIZED:
            base["remote_ip"] = ctx.remote_ip
        logger.warning(
            "request.domain_error",
            error_kind=error.kind.value,
            message=error.message,
            **base,
            **error.details.log_fields(),
        )
        return

    kind_label = error.kind.value if error is not None else "UNCLASSIFIED"
    extra = error.details.log_fields() if error is not None else {}
    logger.error(
        "request.unhandled_error",
        error_kind=kind_label,
        exception_type=type(exc).__name__,
        message=str(exc),
        exc_info=exc,
        **base,
        **extra,
        **ctx.diagnostics(),
    )
    logger.critical(
        "request.system_exception",
        error_kind=kind_label,
        exception_type=type(exc).__name__,
        trace_id=ctx.trace_id,
    )


# ---------------------------------------------------------------------------
# Response body
# ---------------------------------------------------------------------------


class ProblemDetails(BaseModel):
    """Wire shape of every error response."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    type: str
    title: str
    status: int
    detail: str
    instance: str
    errors: Optional[Dict[str, List[str]]] = None
    trace_id: str = Field(alias="traceId")
    timestamp: str
    stack_trace: Optional[str] = Field(default=None, alias="stackTrace")
    source: Optional[str] = None
    inner_exception: Optional[str] = Field(default=None, alias="innerException")

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


def _utc_timestamp() -> str:
    now = timezone.now().astimezone(dt_timezone.utc)
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"


def _detail_for(error: Optional[AppError], status: int) -> str:
    if error is None:
        return GENERIC_DETAIL
    if error.kind is ErrorKind.TRANSACTION_FAILURE:
        return TRANSACTION_DETAIL
    if status == 500:
        return GENERIC_DETAIL
    return error.message


def _source(exc: BaseException) -> Optional[str]:
    frames = traceback.extract_tb(exc.__traceback__)
    if not frames:
        return type(exc).__module__
    frame = frames[-1]
    return f"{frame.filename}:{frame.lineno} in {frame.name}"


def _inner(exc: BaseException) -> Optional[str]:
    inner = exc.__cause__ or exc.__context__
    if inner is None:
        return None
    return f"{type(inner).__name__}: {inner}"


def build_problem(
    exc: BaseException, error: Optional[AppError], ctx: RequestContext
) -> ProblemDetails:
    status, title = response_for(error.kind if error is not None else None)
    fields = {
        "type": TYPE_URI.format(status=status),
        "title": title,
        "status": status,
        "detail": _detail_for(error, status),
        "instance": ctx.path,
        "trace_id": ctx.trace_id,
        "timestamp": _utc_timestamp(),
    }
    if error is not None and error.kind is ErrorKind.VALIDATION:
        fields["errors"] = error.details.field_errors() or {}
    if settings.IS_DEVELOPMENT and status >= 500:
        fields["stack_trace"] = "".join(
            traceback.format_exception(type(exc), exc, exc.__traceback__)
        )
        fields["source"] = _source(exc)
        fields["inner_exception"] = _inner(exc)
    return ProblemDetails(**fields)


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------


def handle_exception(exc: BaseException, request) -> JsonResponse:
    """Classify, log and render *exc*.  Never raises."""
    error = classify(exc)
    ctx = RequestContext.from_request(request)
    log_failure(exc, error, ctx)
    problem = build_problem(exc, error, ctx)
    response = JsonResponse(
        problem.to_wire(),
        status=problem.status,
        content_type=PROBLEM_CONTENT_TYPE,
    )
    response["X-Request-ID"] = ctx.trace_id
    # already logged above; keeps django.request from adding a second entry
    response._has_been_logged = True
    return response


def api_exception_handler(exc, context) -> JsonResponse:
    """DRF ``EXCEPTION_HANDLER``: replaces the stock handler for every API view."""
    request = context.get("request")
    response = handle_exception(exc, request)
    auth_header = getattr(exc, "auth_header", None)
    if auth_header and response.status_code == 401:
        response["WWW-Authenticate"] = auth_header
    set_rollback()
    return response


def not_found_view(request, exception=None) -> JsonResponse:
    """``handler404``: unrouted paths get the same problem body as API 404s."""
    if exception is None:
        exception = Http404()
    return handle_exception(exception, request)
