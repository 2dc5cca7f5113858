"""Per-request context captured for failure logs.

Sensitive headers are masked, JSON credential fields in the body are masked
and the body is truncated to ``REQUEST_BODY_LOG_LIMIT`` characters.
"""

from __future__ import annotations

import json
import re
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict

import structlog
from django.conf import settings
from django.db import DatabaseError
from django.http.request import RawPostDataException
from rest_framework.exceptions import APIException, ParseError, UnsupportedMediaType

from modules.core.identity import Identity

logger = structlog.get_logger(__name__)

MASK = "***MASKED***"
TRUNCATION_MARKER = "... (truncated)"
UNREADABLE_BODY = "[Unable to read request body]"

SENSITIVE_HEADERS = frozenset(
    {
        "authorization",
        "cookie",
        "x-api-key",
        "x-auth-token",
        "authentication",
        "proxy-authorization",
    }
)

BODY_CAPTURE_METHODS = frozenset({"POST", "PUT", "PATCH"})

_SENSITIVE_BODY_FIELD = re.compile(
    r'("(?:password|token|secret|api_?key)"\s*:\s*)"[^"]*"',
    re.IGNORECASE,
)


def redact_headers(headers: Any) -> Dict[str, str]:
    """Copy *headers*, masking credentials (case-insensitive names)."""
    safe: Dict[str, str] = {}
    for name, value in headers.items():
        safe[name] = MASK if name.lower() in SENSITIVE_HEADERS else str(value)
    return safe


def mask_body(body: str, limit: int | None = None) -> str:
    """Mask credential fields in a JSON-ish body, then truncate it."""
    if not body:
        return body
    if limit is None:
        limit = settings.REQUEST_BODY_LOG_LIMIT
    masked = _SENSITIVE_BODY_FIELD.sub(rf'\1"{MASK}"', body)
    if len(masked) > limit:
        masked = masked[:limit] + TRUNCATION_MARKER
    return masked


def capture_body(request) -> str:
    """Best-effort body capture for POST/PUT/PATCH requests.

    Once DRF has parsed the stream ``request.body`` is no longer readable;
    the parsed ``request.data`` is serialised instead.
    """
    if request.method not in BODY_CAPTURE_METHODS:
        return ""
    try:
        raw = request.body.decode("utf-8", errors="replace")
    except RawPostDataException:
        try:
            data = getattr(request, "data", None)
        except (ParseError, UnsupportedMediaType):
            return UNREADABLE_BODY
        if data is None:
            return UNREADABLE_BODY
        try:
            raw = json.dumps(data, default=str)
        except (TypeError, ValueError):
            return UNREADABLE_BODY
    return mask_body(raw)


def client_ip(request) -> str:
    forwarded_for = request.META.get("HTTP_X_FORWARDED_FOR", "")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    real_ip = request.META.get("HTTP_X_REAL_IP", "")
    if real_ip:
        return real_ip
    return request.META.get("REMOTE_ADDR") or "Unknown"


def resolve_identity(request) -> Identity:
    """Identity of the caller, or anonymous when it cannot be resolved."""
    try:
        user = request.user
    except APIException:
        # authentication itself failed; DRF already marked the request anonymous
        return Identity.anonymous()
    except AttributeError:
        return Identity.anonymous()
    try:
        return Identity.from_user(user)
    except DatabaseError:
        logger.warning("request_info.identity_lookup_failed")
        return Identity(
            user_id=getattr(user, "pk", None),
            is_authenticated=bool(getattr(user, "is_authenticated", False)),
        )


@dataclass
class RequestContext:
    """What the error pipeline knows about the failing request."""

    path: str
    method: str
    trace_id: str
    query: str = ""
    user_agent: str = "Unknown"
    remote_ip: str = "Unknown"
    identity: Identity = field(default_factory=Identity.anonymous)
    headers: Dict[str, str] = field(default_factory=dict)
    _request: Any = field(default=None, repr=False)

    @classmethod
    def from_request(cls, request) -> RequestContext:
        trace_id = (
            getattr(request, "trace_id", None)
            or structlog.contextvars.get_contextvars().get("correlation_id")
            or str(uuid.uuid4())
        )
        return cls(
            path=request.path,
            method=request.method,
            trace_id=trace_id,
            query=request.META.get("QUERY_STRING", ""),
            user_agent=request.headers.get("User-Agent", "Unknown"),
            remote_ip=client_ip(request),
            identity=resolve_identity(request),
            headers=redact_headers(request.headers),
            _request=request,
        )

    @property
    def user_label(self) -> str:
        if self.identity.user_id is None:
            return "Anonymous"
        return str(self.identity.user_id)

    def diagnostics(self) -> Dict[str, Any]:
        """Full request capture for error-level log entries."""
        body = capture_body(self._request) if self._request is not None else ""
        return {
            "request_query": self.query,
            "user_agent": self.user_agent,
            "remote_ip": self.remote_ip,
            "user_email": self.identity.email or None,
            "user_roles": sorted(self.identity.roles),
            "request_headers": self.headers,
            "request_body": body,
        }
