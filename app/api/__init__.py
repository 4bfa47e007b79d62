# ============================================================================
# GZ Compliance Engine v1.0
# API Routes Module
# ============================================================================

from app.api.export import router as export_router

__all__ = ["export_router"]
