"""
HTTP Tracing Middleware

Two pure ASGI middlewares cooperate on every inbound request:

- TracingMiddleware opens the SERVER span for the request (health checks are
  excluded), records method, route and status code on it and feeds the HTTP
  server duration, request count and in-flight metrics.
- RequestTaggingMiddleware runs inside that span and annotates it with request
  and response metadata the domain layer never sees: request body size, user
  agent, client address and, once the handler has finished, response body size.

Both are observational only: they never alter the response or swallow errors.

Pattern: Distributed tracing for observability
"""

import time
from typing import Any, Callable, Optional

from opentelemetry import metrics, trace
from opentelemetry.context import Context
from opentelemetry.propagate import extract
from opentelemetry.trace import SpanKind, Status, StatusCode, Tracer

from src.observability import conventions
from src.observability.instrumentation import InstrumentationRegistry

HTTP_TRACER_NAME = f"{conventions.SERVICE_NAME}.Http"


# =============================================================================
# Trace ID and Span ID Functions
# =============================================================================


def get_current_trace_id() -> Optional[str]:
    """
    Get the current trace ID as hex string.

    Returns:
        32-character hex string or None if no active span
    """
    span_context = trace.get_current_span().get_span_context()

    if span_context.trace_id == 0:
        return None

    return format(span_context.trace_id, "032x")


def get_current_span_id() -> Optional[str]:
    """
    Get the current span ID as hex string.

    Returns:
        16-character hex string or None if no active span
    """
    span_context = trace.get_current_span().get_span_context()

    if span_context.span_id == 0:
        return None

    return format(span_context.span_id, "016x")


def extract_trace_context(headers: dict[str, Any]) -> Context:
    """Extract upstream trace context from incoming headers."""
    return extract(headers)


def _headers_to_dict(headers: list[tuple[bytes, bytes]]) -> dict[str, str]:
    """Convert ASGI headers to dict (lower-cased names)."""
    return {
        key.decode("latin-1").lower(): value.decode("latin-1")
        for key, value in headers
    }


def _parse_length(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None


# =============================================================================
# TracingMiddleware
# =============================================================================


class TracingMiddleware:
    """
    ASGI middleware that opens a SERVER span per HTTP request and records
    the HTTP server metrics.

    The span starts out named after the method and is renamed to
    ``"{method} {route}"`` once the router has matched a route, so that
    entity ids never end up in span names.

    Metrics (attributes: method, route when matched, status code):
        http.server.request.duration  histogram, seconds
        http.server.requests          counter
        http.server.active_requests   up/down counter

    Paths starting with one of ``exclude_prefixes`` are passed through
    untraced and unmeasured.
    """

    def __init__(
        self,
        app: Callable[..., Any],
        registry: Optional[InstrumentationRegistry] = None,
        exclude_prefixes: Optional[list[str]] = None,
    ) -> None:
        """
        Initialize TracingMiddleware.

        Args:
            app: ASGI application to wrap
            registry: Source of the HTTP tracer and meter (default: global providers)
            exclude_prefixes: Path prefixes excluded from tracing and metrics
        """
        self.app = app
        self.exclude_prefixes = exclude_prefixes or []
        if registry is not None:
            self.tracer: Tracer = registry.tracer(HTTP_TRACER_NAME)
            meter = registry.meter(HTTP_TRACER_NAME)
        else:
            self.tracer = trace.get_tracer(HTTP_TRACER_NAME)
            meter = metrics.get_meter(HTTP_TRACER_NAME)

        self.request_duration = meter.create_histogram(
            conventions.HTTP_SERVER_REQUEST_DURATION,
            unit="s",
            description="Duration of HTTP server requests",
        )
        self.requests = meter.create_counter(
            conventions.HTTP_SERVER_REQUESTS,
            unit="1",
            description="Number of HTTP server requests",
        )
        self.active_requests = meter.create_up_down_counter(
            conventions.HTTP_SERVER_ACTIVE_REQUESTS,
            unit="1",
            description="Number of HTTP server requests in flight",
        )

    def _is_excluded(self, path: str) -> bool:
        return any(path.startswith(prefix) for prefix in self.exclude_prefixes)

    async def __call__(
        self,
        scope: dict[str, Any],
        receive: Callable[..., Any],
        send: Callable[..., Any],
    ) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        method = scope.get("method", "GET")
        path = scope.get("path", "/")

        if self._is_excluded(path):
            await self.app(scope, receive, send)
            return

        parent_context = extract_trace_context(
            _headers_to_dict(scope.get("headers", []))
        )
        status_code = 500

        async def send_wrapper(message: dict[str, Any]) -> None:
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message.get("status", 500)
            await send(message)

        active_attributes = {conventions.HTTP_REQUEST_METHOD: method}
        self.active_requests.add(1, active_attributes)
        started = time.perf_counter()

        with self.tracer.start_as_current_span(
            method,
            context=parent_context,
            kind=SpanKind.SERVER,
            record_exception=False,
            set_status_on_exception=False,
        ) as span:
            span.set_attribute(conventions.HTTP_REQUEST_METHOD, method)
            span.set_attribute(conventions.URL_PATH, path)

            try:
                await self.app(scope, receive, send_wrapper)
            except Exception as e:
                span.set_status(Status(StatusCode.ERROR, str(e)))
                span.record_exception(e)
                raise
            else:
                if status_code >= 500:
                    span.set_status(Status(StatusCode.ERROR))
            finally:
                # The router fills in scope["route"] while dispatching
                route = _route_template(scope)
                if route is not None:
                    span.update_name(f"{method} {route}")
                    span.set_attribute(conventions.HTTP_ROUTE, route)
                span.set_attribute(conventions.HTTP_RESPONSE_STATUS_CODE, status_code)

                self.active_requests.add(-1, active_attributes)
                attributes = {
                    conventions.HTTP_REQUEST_METHOD: method,
                    conventions.HTTP_RESPONSE_STATUS_CODE: status_code,
                }
                if route is not None:
                    attributes[conventions.HTTP_ROUTE] = route
                self.requests.add(1, attributes)
                self.request_duration.record(time.perf_counter() - started, attributes)


def _route_template(scope: dict[str, Any]) -> Optional[str]:
    """Path template of the matched route (e.g. ``/api/contacts/{id}``), if any."""
    return getattr(scope.get("route"), "path", None)


# =============================================================================
# RequestTaggingMiddleware
# =============================================================================


class RequestTaggingMiddleware:
    """
    ASGI middleware that annotates the active span with request metadata.

    Sets on entry:
        http.request.body.size  (content-length header, 0 if absent)
        user.agent              (user-agent header, "" if absent)
        client.ip               (ASGI client address, if known)

    Sets after the downstream app returns or raises:
        http.response.body.size (response content-length header, otherwise
                                 the number of body bytes sent)

    No-op when no recording span is active (e.g. sampled-out traces).
    """

    def __init__(self, app: Callable[..., Any]) -> None:
        self.app = app

    async def __call__(
        self,
        scope: dict[str, Any],
        receive: Callable[..., Any],
        send: Callable[..., Any],
    ) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        span = trace.get_current_span()
        if not span.is_recording():
            await self.app(scope, receive, send)
            return

        headers = _headers_to_dict(scope.get("headers", []))
        span.set_attribute(
            conventions.HTTP_REQUEST_BODY_SIZE,
            _parse_length(headers.get("content-length")) or 0,
        )
        span.set_attribute(conventions.USER_AGENT, headers.get("user-agent", ""))
        client = scope.get("client")
        if client:
            span.set_attribute(conventions.CLIENT_IP, client[0])

        content_length: Optional[int] = None
        body_bytes = 0

        async def send_wrapper(message: dict[str, Any]) -> None:
            nonlocal content_length, body_bytes
            if message["type"] == "http.response.start":
                response_headers = _headers_to_dict(message.get("headers", []))
                content_length = _parse_length(response_headers.get("content-length"))
            elif message["type"] == "http.response.body":
                body_bytes += len(message.get("body", b""))
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            span.set_attribute(
                conventions.HTTP_RESPONSE_BODY_SIZE,
                content_length if content_length is not None else body_bytes,
            )
