"""Type definitions for signed tokens, key sets and JWKS documents."""

from typing import Any

from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey
from pydantic import BaseModel, ConfigDict


class SignedToken(BaseModel):
    """A token split into its three wire parts."""

    header: dict[str, Any]
    payload: dict[str, Any]
    signature: str
    signing_input: str


class KeySet(BaseModel):
    """Persisted RSA key pair record.

    ``private`` is the private JWK, or its Fernet ciphertext when at-rest
    encryption is configured.
    """

    kid: str
    public: dict[str, Any]
    private: dict[str, Any] | str


class SigningHandle(BaseModel):
    """Imported private key ready for signing."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    kid: str
    private_key: RSAPrivateKey


class JWKSResponse(BaseModel):
    """JSON Web Key Set response."""

    keys: list[dict[str, Any]]
