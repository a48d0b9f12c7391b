"""Dispatch of inbound requests to workload backends."""

import logging
from collections.abc import Awaitable, Callable

import httpx
from starlette.requests import Request
from starlette.responses import JSONResponse, PlainTextResponse, Response

from ztgate.core.errors import ProxyForwardError, WorkloadNotFoundError
from ztgate.routing.types import RoutingTable, WorkloadDescriptor

HTTP_BAD_REQUEST = 400
HTTP_NOT_FOUND = 404
HTTP_INTERNAL_ERROR = 500

BODY_METHODS = frozenset({"POST", "PUT", "PATCH"})
FORWARD_ERROR_MESSAGE = "Error forwarding request to remote host"

# Recomputed by the relay since the body is re-sent whole.
_FRAMING_HEADERS = frozenset({b"content-length", b"transfer-encoding"})

logger = logging.getLogger(__name__)

ProviderStrategy = Callable[
    [httpx.AsyncClient, Request, WorkloadDescriptor, str], Awaitable[Response]
]


def path_segments(request: Request) -> list[str]:
    """Return the non-empty segments of the raw request path."""
    raw_path: bytes | None = request.scope.get("raw_path")
    if raw_path is not None:
        path = raw_path.split(b"?", 1)[0].decode("latin-1")
    else:
        path = request.url.path
    return [segment for segment in path.split("/") if segment]


def build_target_url(host: str, remaining: list[str], query: str) -> str:
    """Rebuild the backend URL, with no trailing slash for a bare host."""
    url = f"https://{host}"
    if remaining:
        url = f"{url}/{'/'.join(remaining)}"
    if query:
        url = f"{url}?{query}"
    return url


def _relay(upstream: httpx.Response, body: bytes) -> Response:
    """Build a response carrying the upstream status, headers and raw body."""
    response = Response(content=body, status_code=upstream.status_code)
    headers = [
        (name.lower(), value)
        for name, value in upstream.headers.raw
        if name.lower() not in _FRAMING_HEADERS
    ]
    status = upstream.status_code
    if not (status < 200 or status in (204, 304)):
        headers.append((b"content-length", str(len(body)).encode("latin-1")))
    response.raw_headers = headers
    return response


async def forward_request(
    http: httpx.AsyncClient,
    request: Request,
    workload: WorkloadDescriptor,
    target_url: str,
) -> Response:
    """Forward the request as-is to target_url and relay the response."""
    headers = [
        (name, value) for name, value in request.headers.raw if name != b"host"
    ]
    headers.append((b"host", workload.host.encode("latin-1")))
    content = request.stream() if request.method in BODY_METHODS else None

    outbound = http.build_request(
        request.method, target_url, headers=headers, content=content
    )
    try:
        upstream = await http.send(outbound, stream=True)
    except httpx.HTTPError as exc:
        raise ProxyForwardError(f"request to {workload.host} failed") from exc
    try:
        body = b"".join([chunk async for chunk in upstream.aiter_raw()])
    finally:
        await upstream.aclose()
    return _relay(upstream, body)


PROVIDERS: dict[str, ProviderStrategy] = {
    "example": forward_request,
}


def resolve(
    table: RoutingTable, workload_name: str
) -> tuple[WorkloadDescriptor, ProviderStrategy]:
    """Look up a workload and the strategy for its provider."""
    workload = table.get(workload_name)
    if workload is None:
        raise WorkloadNotFoundError(workload_name)
    strategy = PROVIDERS.get(workload.provider)
    if strategy is None:
        logger.error(
            "provider not found for workload",
            extra={"workload": workload_name, "provider": workload.provider},
        )
        raise WorkloadNotFoundError(workload_name)
    return workload, strategy


async def dispatch(
    request: Request, table: RoutingTable, http: httpx.AsyncClient
) -> Response:
    """Route a request to its workload backend.

    Failures never propagate: an empty path is a 400, an unknown workload
    a 404, and any forwarding failure a fixed-message 500.
    """
    segments = path_segments(request)
    if not segments:
        return JSONResponse(
            {"error": "invalid_request", "error_description": "empty path"},
            status_code=HTTP_BAD_REQUEST,
        )

    try:
        workload, strategy = resolve(table, segments[0])
    except WorkloadNotFoundError as exc:
        return JSONResponse(
            {"error": "workload_not_found", "error_description": str(exc)},
            status_code=HTTP_NOT_FOUND,
        )

    target_url = build_target_url(workload.host, segments[1:], request.url.query)
    logger.info(
        "forwarding request",
        extra={"workload": segments[0], "method": request.method, "url": target_url},
    )
    try:
        return await strategy(http, request, workload, target_url)
    except Exception:
        logger.exception("error forwarding request", extra={"url": target_url})
        return PlainTextResponse(FORWARD_ERROR_MESSAGE, status_code=HTTP_INTERNAL_ERROR)
