"""Team ownership index."""

from portal.ownership.index import AvailableTeams, OwnershipIndex

__all__ = ["OwnershipIndex", "AvailableTeams"]
