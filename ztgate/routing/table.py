"""Loading and refreshing the workload routing table."""

import logging

import httpx
import yaml
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from ztgate.core.errors import (
    ConfigCorruptError,
    ConfigParseError,
    UpstreamConfigError,
)
from ztgate.db.repo_kv import get_value, put_value
from ztgate.routing.types import RoutingTable

WORKLOAD_CONFIG_KEY = "workload_config"
HTTP_OK = 200

logger = logging.getLogger(__name__)


def parse_config(text: str) -> RoutingTable:
    """Parse a YAML hosts document into a routing table."""
    try:
        document = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigParseError("workload config is not valid YAML") from exc
    if not isinstance(document, dict):
        raise ConfigParseError("workload config is not a mapping")
    try:
        return RoutingTable.model_validate(document)
    except ValidationError as exc:
        raise ConfigParseError("workload config has invalid entries") from exc


async def refresh(
    session: AsyncSession, http: httpx.AsyncClient, config_url: str
) -> RoutingTable:
    """Fetch the remote config, persist it over any stored copy, return it."""
    try:
        resp = await http.get(config_url)
    except httpx.HTTPError as exc:
        raise UpstreamConfigError("failed to get config: remote unreachable") from exc
    if resp.status_code != HTTP_OK:
        raise UpstreamConfigError(
            f"failed to get config: remote returned {resp.status_code}"
        )
    table = parse_config(resp.text)
    await put_value(session, WORKLOAD_CONFIG_KEY, table.model_dump())
    logger.info("workload config refreshed", extra={"workloads": len(table)})
    return table


async def load(
    session: AsyncSession, http: httpx.AsyncClient, config_url: str
) -> RoutingTable:
    """Return the stored routing table, refreshing from remote on a miss."""
    stored = await get_value(session, WORKLOAD_CONFIG_KEY)
    if stored is None:
        logger.info("no stored workload config, fetching from remote")
        return await refresh(session, http, config_url)
    try:
        return RoutingTable.model_validate(stored)
    except ValidationError as exc:
        raise ConfigCorruptError("stored workload config is corrupt") from exc
