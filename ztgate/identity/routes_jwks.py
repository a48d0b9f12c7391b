"""Published key set for gateway-issued tokens."""

from typing import Annotated

from fastapi import APIRouter, Depends, Response

from ztgate.api.deps import get_key_manager
from ztgate.crypto.keys import KeyManager
from ztgate.crypto.types import JWKSResponse

router = APIRouter()

JWKS_CACHE_CONTROL = "public, max-age=3600"


@router.get("/.well-known/jwks.json")
async def jwks(
    response: Response,
    key_manager: Annotated[KeyManager, Depends(get_key_manager)],
) -> JWKSResponse:
    """JSON Web Key Set endpoint."""
    response.headers["Cache-Control"] = JWKS_CACHE_CONTROL
    return JWKSResponse(keys=[await key_manager.public_key_view()])
