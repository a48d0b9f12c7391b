"""Caller identity lookup from identity provider tokens."""

import logging
import time

from starlette.requests import Request
from starlette.responses import JSONResponse

from ztgate.core.errors import TokenError
from ztgate.core.settings import GatewaySettings
from ztgate.crypto.signer import TokenSigner
from ztgate.crypto.verifier import TokenVerifier

HTTP_UNAUTHORIZED = 401
UNKNOWN_USER = "unknown user"

logger = logging.getLogger(__name__)


def extract_token(request: Request, settings: GatewaySettings) -> str | None:
    """Return the identity token from the configured header or cookie."""
    token = request.headers.get(settings.identity_header_name)
    if token:
        return token
    return request.cookies.get(settings.identity_cookie_name) or None


async def describe_caller(
    token: str,
    verifier: TokenVerifier,
    signer: TokenSigner,
    settings: GatewaySettings,
) -> JSONResponse:
    """Verify token and describe the caller, issuing a gateway token.

    Any verification failure yields a bare 401; the reason is only logged.
    """
    try:
        claims = await verifier.verify(token)
    except TokenError as exc:
        logger.info(
            "rejected identity token",
            extra={"reason": type(exc).__name__, "detail": str(exc)},
        )
        return JSONResponse({"error": "invalid_token"}, status_code=HTTP_UNAUTHORIZED)

    user = claims.get("email") or UNKNOWN_USER
    app_claims = {"email": claims.get("email"), "sub": claims.get("sub")}
    app_claims = {k: v for k, v in app_claims.items() if v is not None}
    app_claims["exp"] = int(time.time()) + settings.app_token_ttl
    return JSONResponse(
        {
            "user": user,
            "claims": claims,
            "token": await signer.sign(app_claims),
        }
    )
