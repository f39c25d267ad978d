"""
Adapters package for the BFF.

Contains the HTTP client for the upstream orchestration API. The adapter
encapsulates the base URL, token injection and the mapping of upstream
responses onto shared errors. Keep it free of resource-specific policy:
404 handling belongs to the domain services.
"""

from .orchestrix_client import OrchestrixClient

__all__ = [
    "OrchestrixClient",
]
