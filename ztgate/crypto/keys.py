"""RSA signing key generation, persistence and JWK conversion."""

import hashlib
import json
import logging
from typing import Any

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey
from jwt.algorithms import RSAAlgorithm
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from ztgate.core.errors import KeySetUnavailableError
from ztgate.crypto.types import KeySet, SigningHandle
from ztgate.db.repo_kv import get_value, put_value

RSA_KEY_SIZE = 2048
RSA_PUBLIC_EXPONENT = 65537
KID_LENGTH = 64
SIGNING_ALGORITHM = "RS256"

logger = logging.getLogger(__name__)


def derive_kid(public_jwk: dict[str, Any]) -> str:
    """SHA-1 hex of the canonical public JWK JSON, truncated to KID_LENGTH."""
    canonical = json.dumps(public_jwk, separators=(",", ":"), sort_keys=True)
    return hashlib.sha1(canonical.encode("utf-8")).hexdigest()[:KID_LENGTH]


def generate_key_set() -> KeySet:
    """Generate a new RSA-2048 keypair exported as JWKs."""
    private_key = rsa.generate_private_key(
        public_exponent=RSA_PUBLIC_EXPONENT,
        key_size=RSA_KEY_SIZE,
    )
    private_jwk = RSAAlgorithm.to_jwk(private_key, as_dict=True)
    public_jwk = RSAAlgorithm.to_jwk(private_key.public_key(), as_dict=True)
    return KeySet(kid=derive_kid(public_jwk), public=public_jwk, private=private_jwk)


def _cipher(fernet_key: str) -> Fernet:
    try:
        return Fernet(fernet_key.encode())
    except ValueError as exc:
        raise KeySetUnavailableError("signing key encryption key is invalid") from exc


def encrypt_private_jwk(private_jwk: dict[str, Any], fernet_key: str) -> str:
    """Encrypt a private JWK with Fernet for storage."""
    return _cipher(fernet_key).encrypt(json.dumps(private_jwk).encode()).decode()


def decrypt_private_jwk(encrypted: str, fernet_key: str) -> dict[str, Any]:
    """Decrypt a Fernet-encrypted private JWK."""
    return json.loads(_cipher(fernet_key).decrypt(encrypted.encode()))


class KeyManager:
    """Loads, lazily creates and imports the gateway's signing key set.

    The key set is re-read from the store on every call. Two cold starts
    racing on an empty store may both generate and persist a key set; the
    last write wins and both records are valid.
    """

    def __init__(
        self,
        session: AsyncSession,
        storage_key: str,
        encryption_key: str = "",
    ) -> None:
        self._session = session
        self._storage_key = storage_key
        self._encryption_key = encryption_key

    async def _read(self) -> KeySet | None:
        raw = await get_value(self._session, self._storage_key)
        if raw is None:
            return None
        try:
            return KeySet.model_validate(raw)
        except ValidationError as exc:
            raise KeySetUnavailableError("stored key set is corrupt") from exc

    async def load_or_create_key_set(self) -> KeySet:
        """Return the stored key set, generating and persisting one if absent."""
        existing = await self._read()
        if existing is not None:
            return existing

        logger.info("generating a new signing key pair")
        key_set = generate_key_set()
        if self._encryption_key and isinstance(key_set.private, dict):
            key_set = key_set.model_copy(
                update={
                    "private": encrypt_private_jwk(
                        key_set.private, self._encryption_key
                    )
                }
            )
        await put_value(self._session, self._storage_key, key_set.model_dump())
        return key_set

    async def public_key_view(self) -> dict[str, Any]:
        """Return the public JWK tagged with its kid."""
        key_set = await self._read()
        if key_set is None:
            key_set = await self.load_or_create_key_set()
        return {
            "kid": key_set.kid,
            "alg": SIGNING_ALGORITHM,
            "use": "sig",
            **key_set.public,
        }

    async def private_signing_handle(self) -> SigningHandle:
        """Import the stored private key, creating the key set once if needed."""
        key_set = await self._read()
        if key_set is None:
            await self.load_or_create_key_set()
            key_set = await self._read()
        if key_set is None:
            raise KeySetUnavailableError("failed to load signing key set")
        return SigningHandle(kid=key_set.kid, private_key=self._import(key_set))

    def _import(self, key_set: KeySet) -> RSAPrivateKey:
        private_jwk = key_set.private
        if isinstance(private_jwk, str):
            if not self._encryption_key:
                raise KeySetUnavailableError("private key is encrypted")
            try:
                private_jwk = decrypt_private_jwk(private_jwk, self._encryption_key)
            except InvalidToken as exc:
                raise KeySetUnavailableError("cannot decrypt private key") from exc
        key = RSAAlgorithm.from_jwk(private_jwk)
        if not isinstance(key, RSAPrivateKey):
            raise KeySetUnavailableError("stored key is not an RSA private key")
        return key
