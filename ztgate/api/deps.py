"""FastAPI dependency injection for settings, keys, tokens and routing."""

from typing import Annotated

import httpx
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ztgate.core.http import get_http_client
from ztgate.core.settings import GatewaySettings
from ztgate.crypto.keys import KeyManager
from ztgate.crypto.signer import TokenSigner
from ztgate.crypto.verifier import TokenVerifier
from ztgate.db.engine import get_session
from ztgate.routing import table
from ztgate.routing.types import RoutingTable


def load_settings() -> GatewaySettings:
    return GatewaySettings()


DbSession = Annotated[AsyncSession, Depends(get_session)]
HttpClient = Annotated[httpx.AsyncClient, Depends(get_http_client)]
Settings = Annotated[GatewaySettings, Depends(load_settings)]


def get_key_manager(db: DbSession, settings: Settings) -> KeyManager:
    """Key manager bound to this request's session."""
    return KeyManager(
        db,
        storage_key=settings.key_set_storage_key,
        encryption_key=settings.signing_key_encryption_key,
    )


def get_signer(
    key_manager: Annotated[KeyManager, Depends(get_key_manager)],
) -> TokenSigner:
    return TokenSigner(key_manager)


def get_verifier(http: HttpClient, settings: Settings) -> TokenVerifier:
    return TokenVerifier(http, settings.access_certs_url)


async def get_routing_table(
    db: DbSession, http: HttpClient, settings: Settings
) -> RoutingTable:
    """Routing table for this request, fetched from remote on a cold store."""
    return await table.load(db, http, settings.config_url)
