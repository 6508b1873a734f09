"""Versioned API (v1).

The aggregated router lives in the routers subpackage:

    from app.api.v1.routers import router as api_v1_router
"""

# Note: avoid `routers = ...` here; it would shadow the `routers` subpackage
# for dotted-path lookups (monkeypatch targets in tests).

__all__ = []
