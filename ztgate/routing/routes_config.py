"""Operator endpoint forcing a routing table refresh."""

from fastapi import APIRouter
from starlette.responses import JSONResponse

from ztgate.api.deps import DbSession, HttpClient, Settings
from ztgate.routing import table

router = APIRouter()


@router.get("/config")
async def reload_config(
    db: DbSession, http: HttpClient, settings: Settings
) -> JSONResponse:
    """GET /config -- re-fetch the remote config and return the new table."""
    routing_table = await table.refresh(db, http, settings.config_url)
    return JSONResponse(routing_table.model_dump())
