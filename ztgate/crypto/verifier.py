"""Verification of identity provider tokens against a remote key set."""

import logging
import time
from typing import Any

import httpx
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPublicKey
from jwt.algorithms import RSAAlgorithm
from jwt.exceptions import InvalidKeyError

from ztgate.core.errors import (
    MalformedTokenError,
    SignatureInvalidError,
    TokenExpiredError,
    UnknownKeyError,
)
from ztgate.crypto import codec

HTTP_OK = 200

logger = logging.getLogger(__name__)

_ALGORITHMS = {
    "RS256": RSAAlgorithm(RSAAlgorithm.SHA256),
    "RS384": RSAAlgorithm(RSAAlgorithm.SHA384),
    "RS512": RSAAlgorithm(RSAAlgorithm.SHA512),
}


class TokenVerifier:
    """Verifies RSA-signed tokens using keys published at certs_url.

    The key set is fetched on every call. Only signature and ``exp`` are
    checked; issuer and audience are not validated.
    """

    def __init__(self, http: httpx.AsyncClient, certs_url: str) -> None:
        self._http = http
        self._certs_url = certs_url

    async def fetch_public_key(self, kid: str) -> RSAPublicKey:
        """Fetch the published key set and import the entry matching kid."""
        try:
            resp = await self._http.get(self._certs_url)
        except httpx.HTTPError as exc:
            raise UnknownKeyError("key set endpoint unreachable") from exc
        if resp.status_code != HTTP_OK:
            raise UnknownKeyError(f"key set fetch returned {resp.status_code}")
        try:
            keys = resp.json()["keys"]
        except (ValueError, KeyError, TypeError) as exc:
            raise UnknownKeyError("key set document has no keys") from exc
        if not isinstance(keys, list):
            raise UnknownKeyError("key set document has no keys")

        jwk = next(
            (k for k in keys if isinstance(k, dict) and k.get("kid") == kid),
            None,
        )
        if jwk is None:
            raise UnknownKeyError(f"no published key with kid {kid!r}")
        try:
            key = RSAAlgorithm.from_jwk(jwk)
        except (InvalidKeyError, ValueError) as exc:
            raise UnknownKeyError(f"published key {kid!r} is not RSA") from exc
        if not isinstance(key, RSAPublicKey):
            raise UnknownKeyError(f"published key {kid!r} is not a public key")
        return key

    async def verify(self, token: str) -> dict[str, Any]:
        """Validate token and return its claims."""
        logger.debug("incoming token", extra={"token": token})
        signed = codec.decode(token)

        exp = signed.payload.get("exp")
        if isinstance(exp, bool) or not isinstance(exp, int | float):
            raise MalformedTokenError("token has no numeric exp claim")
        if exp < int(time.time()):
            raise TokenExpiredError("expired token")

        kid = signed.header.get("kid")
        if not isinstance(kid, str):
            raise MalformedTokenError("token header has no kid")
        alg = signed.header.get("alg")
        algorithm = _ALGORITHMS.get(alg) if isinstance(alg, str) else None
        if algorithm is None:
            raise SignatureInvalidError("unsupported token algorithm")

        key = await self.fetch_public_key(kid)
        signature = codec.decode_signature(signed.signature)
        if not algorithm.verify(signed.signing_input.encode(), key, signature):
            raise SignatureInvalidError("failed to verify token")

        return signed.payload
