"""turbogha - Turborepo remote cache backed by a CI artifact cache service.

This package provides:
- A cache mediator that stores and retrieves build artifacts by content hash
- Backend clients for the remote cache reservation/upload/query protocol
- A filesystem fallback when the remote service is not configured
- A Turborepo-compatible HTTP server in front of the mediator
"""

__version__ = "0.3.0"
