"""Catch-all route proxying workloads and answering identity lookups."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from starlette.responses import Response

from ztgate.api.deps import (
    HttpClient,
    Settings,
    get_routing_table,
    get_signer,
    get_verifier,
)
from ztgate.crypto.signer import TokenSigner
from ztgate.crypto.verifier import TokenVerifier
from ztgate.identity.caller import describe_caller, extract_token
from ztgate.routing.proxy import dispatch, path_segments
from ztgate.routing.types import RoutingTable

router = APIRouter()

PROXY_METHODS = ["GET", "POST", "PUT", "DELETE", "PATCH"]


@router.api_route("/{full_path:path}", methods=PROXY_METHODS, response_model=None)
async def proxy(
    request: Request,
    routing_table: Annotated[RoutingTable, Depends(get_routing_table)],
    http: HttpClient,
    settings: Settings,
    verifier: Annotated[TokenVerifier, Depends(get_verifier)],
    signer: Annotated[TokenSigner, Depends(get_signer)],
) -> Response:
    """Forward workload paths; other GETs carrying a token get identity."""
    segments = path_segments(request)
    routed = bool(segments) and segments[0] in routing_table
    if not routed and request.method == "GET":
        token = extract_token(request, settings)
        if token:
            return await describe_caller(token, verifier, signer, settings)
    return await dispatch(request, routing_table, http)
