"""
Team board endpoints.
"""

from fastapi import APIRouter, Depends, Query

from portal.services import PortalService

from ..dependencies import get_portal_service
from ..error_handlers import envelope_response
from ..schemas import EnvelopeResponse

router = APIRouter(prefix="/teams", tags=["teams"])


@router.get("/{team_id}/issues-by-state", response_model=EnvelopeResponse)
async def get_team_issues_by_state(
    team_id: str,
    bypass_cache: bool = Query(default=False),
    service: PortalService = Depends(get_portal_service),
):
    """
    Kanban board for a team: one entry per workflow state, each holding root
    issues with their visible sub-issues.
    """
    return envelope_response(await service.get_team_issues_by_state(team_id, bypass_cache=bypass_cache))


@router.post("/{team_id}/cache/invalidate", response_model=EnvelopeResponse)
async def invalidate_team_cache(
    team_id: str,
    service: PortalService = Depends(get_portal_service),
):
    return envelope_response(await service.invalidate_issue_cache(team_id))
