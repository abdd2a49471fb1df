from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field

from flightlog.api.deps import get_context, get_importer, get_repository
from flightlog.context import AppContext
from flightlog.db.repository import FlightRepository
from flightlog.exceptions import FlightNotFound, StorageError
from flightlog.importer import FlightImporter


router = APIRouter(prefix="/flights", tags=["flights"])


# --------------------
# Schemas
# --------------------
class ImportIn(BaseModel):
    file_path: str = Field(..., min_length=1)


# --------------------
# Endpoints
# --------------------
@router.post("/import")
async def import_log(
    payload: ImportIn, importer: FlightImporter = Depends(get_importer)
) -> Dict[str, Any]:
    """Import a flight log from a path on this machine"""
    try:
        result = await importer.import_file(payload.file_path)
    except StorageError as e:
        raise HTTPException(status_code=500, detail=str(e))
    return result.to_json()


@router.get("")
async def list_flights(
    repo: FlightRepository = Depends(get_repository),
) -> List[Dict[str, Any]]:
    return [f.to_json() for f in await repo.list_flights()]


@router.get("/{flight_id}")
async def get_flight_data(
    flight_id: int,
    max_points: Optional[int] = Query(default=None, ge=0, alias="maxPoints"),
    ctx: AppContext = Depends(get_context),
) -> Dict[str, Any]:
    """Chart series and track; maxPoints=0 returns every sample"""
    if max_points is None:
        max_points = ctx.settings.max_chart_points
    try:
        data = await ctx.repository.get_flight_data(flight_id, max_points=max_points)
    except FlightNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    return data.to_json()


@router.get("/{flight_id}/stats")
async def get_flight_stats(
    flight_id: int, repo: FlightRepository = Depends(get_repository)
) -> Dict[str, Any]:
    try:
        stats = await repo.get_stats(flight_id)
    except FlightNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    return stats.to_json()


@router.delete("/{flight_id}")
async def delete_flight(
    flight_id: int, repo: FlightRepository = Depends(get_repository)
) -> Dict[str, Any]:
    try:
        deleted = await repo.delete_flight(flight_id)
    except StorageError as e:
        raise HTTPException(status_code=500, detail=str(e))
    if not deleted:
        raise HTTPException(status_code=404, detail=f"Flight {flight_id} not found")
    return {"status": "deleted", "flightId": flight_id}
