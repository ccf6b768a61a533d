"""
Client portal caching and hierarchy engine.

Sits between the portal's HTTP routes and the Linear API: a process-local TTL
cache, the team ownership index, the issue hierarchy resolver and the
per-state board aggregator.
"""

__version__ = "0.1.0"
