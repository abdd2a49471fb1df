from __future__ import annotations
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from flightlog.api.deps import get_key_resolver
from flightlog.exceptions import ConfigurationError
from flightlog.keys.resolver import KeyResolver

router = APIRouter(prefix="/settings", tags=["settings"])


class ApiKeyPayload(BaseModel):
    api_key: str = Field(..., min_length=1)


@router.get("/api-key", response_model=Dict[str, Any])
async def get_api_key_status(resolver: KeyResolver = Depends(get_key_resolver)):
    return {"configured": resolver.has_key()}


@router.put("/api-key", response_model=Dict[str, Any])
async def save_api_key(
    payload: ApiKeyPayload,
    resolver: KeyResolver = Depends(get_key_resolver),
):
    try:
        resolver.save(payload.api_key)
    except ConfigurationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    # The running process keeps its cached key; a restart picks up the new one.
    return {"saved": True, "restartRequired": True}
