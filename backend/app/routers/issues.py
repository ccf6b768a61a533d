"""
Issue detail and mutation endpoints.
"""

from fastapi import APIRouter, Depends, Query

from portal.services import PortalService

from ..dependencies import get_portal_service
from ..error_handlers import envelope_response
from ..schemas import AddCommentRequest, EnvelopeResponse, UpdateIssueStateRequest

router = APIRouter(prefix="/issues", tags=["issues"])


@router.get("/{issue_id}", response_model=EnvelopeResponse)
async def get_issue_detail(
    issue_id: str,
    bypass_cache: bool = Query(default=False),
    service: PortalService = Depends(get_portal_service),
):
    return envelope_response(await service.get_issue_detail(issue_id, bypass_cache=bypass_cache))


@router.post("/{issue_id}/state", response_model=EnvelopeResponse)
async def update_issue_state(
    issue_id: str,
    payload: UpdateIssueStateRequest,
    service: PortalService = Depends(get_portal_service),
):
    """Move an issue to another workflow state."""
    return envelope_response(
        await service.update_issue_state(issue_id, payload.state_id, team_id=payload.team_id)
    )


@router.post("/{issue_id}/comments", response_model=EnvelopeResponse)
async def add_comment(
    issue_id: str,
    payload: AddCommentRequest,
    service: PortalService = Depends(get_portal_service),
):
    return envelope_response(await service.add_comment(issue_id, payload.body, team_id=payload.team_id))
