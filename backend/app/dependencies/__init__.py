"""
FastAPI dependency injection module.

The PortalContainer built in the app lifespan lives on ``app.state``;
route handlers reach the engine only through these dependencies, so tests
can override them.
"""

from fastapi import Depends, Request

from portal.container import PortalContainer
from portal.services import PortalService


def get_container(request: Request) -> PortalContainer:
    """Get the application-lifetime container."""
    return request.app.state.container


def get_portal_service(container: PortalContainer = Depends(get_container)) -> PortalService:
    """Get the service facade."""
    return container.service


__all__ = ["get_container", "get_portal_service"]
