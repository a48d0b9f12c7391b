"""RS256 signing of gateway-issued tokens."""

from typing import Any

from jwt.algorithms import RSAAlgorithm
from jwt.utils import base64url_encode

from ztgate.crypto import codec
from ztgate.crypto.keys import SIGNING_ALGORITHM, KeyManager

_rs256 = RSAAlgorithm(RSAAlgorithm.SHA256)


class TokenSigner:
    """Signs payloads with the key manager's private key."""

    def __init__(self, key_manager: KeyManager) -> None:
        self._key_manager = key_manager

    async def sign(self, payload: dict[str, Any]) -> str:
        """Return a signed token for payload.

        Creates the signing key set on first use.
        """
        handle = await self._key_manager.private_signing_handle()
        header = {"alg": SIGNING_ALGORITHM, "kid": handle.kid}
        encoded, signing_input = codec.encode(header, payload)
        signature = _rs256.sign(signing_input.encode("ascii"), handle.private_key)
        return f"{encoded}.{base64url_encode(signature).decode('ascii')}"
