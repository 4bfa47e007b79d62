# ============================================================================
# GZ Compliance Engine v1.0
# Pydantic Schemas - Session Input Contract
# ============================================================================

from app.schemas.workshop_session import ModuleProgress, WorkshopSession

__all__ = ["ModuleProgress", "WorkshopSession"]
