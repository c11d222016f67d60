# backend/src/routers/moderation.py
from fastapi import APIRouter, Depends

from ..dependencies import get_metadata_cache, verify_admin
from ..schemas.flag import VerificationUpdate, BlockUpdate
from ..schemas.venue import VenueClassification
from ..services.metadata_cache import MetadataCache
import logging

logger = logging.getLogger(__name__)
router = APIRouter(
    prefix="/moderation",
    tags=["Moderation"],
    dependencies=[Depends(verify_admin)],
)


@router.put("/venues/{place_id}/verification", response_model=VenueClassification)
async def set_verification(
    place_id: str,
    update: VerificationUpdate,
    metadata_cache: MetadataCache = Depends(get_metadata_cache),
):
    """Mark a venue as community-verified nightlife (null resets to unknown)"""
    return await metadata_cache.set_community_verification(place_id, update.verified)


@router.put("/venues/{place_id}/block", response_model=VenueClassification)
async def set_block(
    place_id: str,
    update: BlockUpdate,
    metadata_cache: MetadataCache = Depends(get_metadata_cache),
):
    """Blocked venues score 0 and are never refreshed"""
    return await metadata_cache.set_blocked(place_id, update.blocked)
