# backend/src/routers/flags.py
from typing import List

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse

from ..dependencies import get_metadata_cache
from ..models.errors import http_status_for
from ..schemas.flag import FlagCreate, FlagResult, FlagResponse, FlagCounts
from ..services.metadata_cache import MetadataCache
from shared.models.enums import FlagType

router = APIRouter(prefix="/venues", tags=["Community flags"])


def _result_response(result: FlagResult, ok_status: int):
    if result.error is not None:
        return JSONResponse(status_code=http_status_for(result.error), content=result.model_dump(mode="json"))
    return JSONResponse(status_code=ok_status, content=result.model_dump(mode="json"))


@router.post("/{place_id}/flags", response_model=FlagResult, status_code=status.HTTP_201_CREATED)
async def report_venue(
    place_id: str,
    flag: FlagCreate,
    metadata_cache: MetadataCache = Depends(get_metadata_cache),
):
    """Report a venue; one report per reporter and type"""
    result = await metadata_cache.record_community_flag(
        place_id, flag.reporter_id, flag.flag_type, flag.note
    )
    return _result_response(result, status.HTTP_201_CREATED)


@router.delete("/{place_id}/flags/{flag_type}", response_model=FlagResult)
async def withdraw_report(
    place_id: str,
    flag_type: FlagType,
    reporter_id: str = Query(..., min_length=1),
    metadata_cache: MetadataCache = Depends(get_metadata_cache),
):
    result = await metadata_cache.remove_community_flag(place_id, reporter_id, flag_type)
    return _result_response(result, status.HTTP_200_OK)


@router.get("/{place_id}/flags/counts", response_model=FlagCounts)
async def venue_flag_counts(
    place_id: str,
    metadata_cache: MetadataCache = Depends(get_metadata_cache),
):
    return FlagCounts(**await metadata_cache.flag_counts(place_id))


@router.get("/flags/by-reporter/{reporter_id}", response_model=List[FlagResponse])
async def reporter_flags(
    reporter_id: str,
    metadata_cache: MetadataCache = Depends(get_metadata_cache),
):
    """Flags left by one reporter, newest first"""
    return await metadata_cache.reporter_flags(reporter_id)
