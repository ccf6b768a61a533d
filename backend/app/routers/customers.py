"""
Customer team-assignment endpoints.
"""

from fastapi import APIRouter, Depends

from portal.services import PortalService

from ..dependencies import get_portal_service
from ..error_handlers import envelope_response
from ..schemas import AssignTeamRequest, EnvelopeResponse

router = APIRouter(prefix="/customers", tags=["customers"])


@router.get("/{customer_id}/available-teams", response_model=EnvelopeResponse)
async def get_available_teams(
    customer_id: str,
    service: PortalService = Depends(get_portal_service),
):
    """Teams that are unassigned or already assigned to this customer."""
    return envelope_response(await service.get_team_available_for_customer(customer_id))


@router.post("/{customer_id}/teams", response_model=EnvelopeResponse)
async def assign_team(
    customer_id: str,
    payload: AssignTeamRequest,
    service: PortalService = Depends(get_portal_service),
):
    return envelope_response(await service.assign_team_to_customer(payload.team_id, customer_id))


@router.delete("/{customer_id}/teams/{team_id}", response_model=EnvelopeResponse)
async def remove_team(
    customer_id: str,
    team_id: str,
    service: PortalService = Depends(get_portal_service),
):
    return envelope_response(await service.remove_team_from_customer(team_id, customer_id))
