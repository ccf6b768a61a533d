"""Service facade returning uniform result envelopes."""

from portal.services.portal_service import PortalService, service_call
from portal.services.result import ServiceResult

__all__ = ["PortalService", "ServiceResult", "service_call"]
