"""
Application configuration for the HTTP layer.

Re-exports from the unified portal.config module.
"""

from portal.config import Settings, get_settings

__all__ = ["Settings", "get_settings"]
