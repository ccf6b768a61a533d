"""
Cache administration endpoints.
"""

from fastapi import APIRouter, Depends

from portal.services import PortalService

from ..dependencies import get_portal_service
from ..error_handlers import envelope_response
from ..schemas import EnvelopeResponse

router = APIRouter(prefix="/cache", tags=["cache"])


@router.get("/stats", response_model=EnvelopeResponse)
async def get_cache_stats(service: PortalService = Depends(get_portal_service)):
    """Hit ratio, efficiency label and tuning recommendations."""
    return envelope_response(await service.get_cache_stats())


@router.post("/cleanup", response_model=EnvelopeResponse)
async def cleanup_cache(service: PortalService = Depends(get_portal_service)):
    """Sweep expired entries now instead of waiting for the scheduled job."""
    return envelope_response(await service.cleanup_cache())
