"""
============================================================================
GZ Compliance Engine v1.0
Workshop Session Schema - Pydantic Models for the Validation Input Contract
============================================================================

Reliability Level: L6 Critical
Input Constraints: Session record produced by the authoring collaborators
Side Effects: None (pure validation)

The session record exposes, per authoring module, a status and an opaque
data payload. The compliance engine only reads from it. Unknown fields are
ignored and malformed module entries degrade to "not started" so the
extractors can default to empty snapshots instead of raising.

============================================================================
"""

import logging
from typing import Any, Dict, Mapping, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
)

logger = logging.getLogger(__name__)


# ============================================================================
# CONSTANTS
# ============================================================================

MODULE_STATUS_COMPLETED = "completed"
MODULE_STATUS_NOT_STARTED = "not_started"

# Module identifiers used across the compliance engine
MODULE_INTAKE = "gz-intake"
MODULE_GESCHAEFTSIDEE = "gz-geschaeftsidee"
MODULE_GESCHAEFTSMODELL = "gz-geschaeftsmodell"
MODULE_UNTERNEHMEN = "gz-unternehmen"
MODULE_MARKT_WETTBEWERB = "gz-markt-wettbewerb"
MODULE_MARKETING = "gz-marketing"
MODULE_FINANZPLANUNG = "gz-finanzplanung"
MODULE_ORGANISATION = "gz-organisation"
MODULE_SWOT = "gz-swot"
MODULE_MEILENSTEINE = "gz-meilensteine"
MODULE_KPI = "gz-kpi"
MODULE_ZUSAMMENFASSUNG = "gz-zusammenfassung"

# Error codes
ERROR_SESSION_MALFORMED = "SES-001-SESSION_MALFORMED"


# ============================================================================
# MODELS
# ============================================================================

class ModuleProgress(BaseModel):
    """
    Progress of a single authoring module.

    Reliability Level: L6 Critical
    Input Constraints: status is free text, data is an opaque payload
    Side Effects: None
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    status: str = MODULE_STATUS_NOT_STARTED
    data: Optional[Any] = None

    @field_validator("status", mode="before")
    @classmethod
    def _coerce_status(cls, value: Any) -> str:
        if isinstance(value, str):
            return value
        return MODULE_STATUS_NOT_STARTED

    @property
    def is_completed(self) -> bool:
        return self.status == MODULE_STATUS_COMPLETED

    @property
    def has_data(self) -> bool:
        """True when the payload carries anything (empty strings and zeros do not count)."""
        if self.data is None or self.data is False:
            return False
        if isinstance(self.data, (str, int, float)) and not self.data:
            return False
        return True


class WorkshopSession(BaseModel):
    """
    Session record consumed by the compliance engine.

    Reliability Level: L6 Critical
    Input Constraints: modules keyed by module id (e.g. "gz-finanzplanung")
    Side Effects: None
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str = ""
    business_name: Optional[str] = Field(default=None, alias="businessName")
    business_type: Optional[str] = Field(default=None, alias="businessType")
    modules: Dict[str, ModuleProgress] = Field(default_factory=dict)

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> str:
        if value is None:
            return ""
        return str(value)

    @field_validator("business_name", "business_type", mode="before")
    @classmethod
    def _coerce_optional_text(cls, value: Any) -> Optional[str]:
        if isinstance(value, str):
            return value
        return None

    @field_validator("modules", mode="before")
    @classmethod
    def _coerce_modules(cls, value: Any) -> Dict[str, Any]:
        if not isinstance(value, Mapping):
            return {}
        modules: Dict[str, Any] = {}
        for module_id, entry in value.items():
            if isinstance(entry, ModuleProgress):
                modules[str(module_id)] = entry
            elif isinstance(entry, Mapping):
                modules[str(module_id)] = dict(entry)
            else:
                modules[str(module_id)] = {"status": MODULE_STATUS_NOT_STARTED}
        return modules

    # ------------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------------

    def module(self, module_id: str) -> Optional[ModuleProgress]:
        return self.modules.get(module_id)

    def module_data(self, module_id: str) -> Optional[Mapping[str, Any]]:
        """Return the module payload if it is a mapping with content, else None."""
        progress = self.modules.get(module_id)
        if progress is None or not progress.has_data:
            return None
        if not isinstance(progress.data, Mapping):
            return None
        return progress.data

    def modules_with_data(self) -> Dict[str, ModuleProgress]:
        return {
            module_id: progress
            for module_id, progress in self.modules.items()
            if progress.has_data
        }

    # ------------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------------

    @classmethod
    def coerce(cls, value: Any) -> Optional["WorkshopSession"]:
        """
        Accept a WorkshopSession, a raw mapping or None.

        Returns None (and logs) when the record cannot be interpreted at all.
        """
        if value is None:
            return None
        if isinstance(value, WorkshopSession):
            return value
        if not isinstance(value, Mapping):
            logger.warning(
                "[%s] Session record is not a mapping | type=%s",
                ERROR_SESSION_MALFORMED, type(value).__name__
            )
            return None
        try:
            return cls.model_validate(dict(value))
        except ValidationError as e:
            logger.warning(
                "[%s] Session record could not be parsed | errors=%d",
                ERROR_SESSION_MALFORMED, e.error_count()
            )
            return None


# ============================================================================
# PAYLOAD HELPERS
# ============================================================================

def dig(payload: Any, *keys: str) -> Any:
    """
    Walk nested mappings, returning None as soon as a level is missing.

    dig(data, "rentabilitaet", "jahr1", "jahresueberschuss")
    """
    current = payload
    for key in keys:
        if not isinstance(current, Mapping):
            return None
        current = current.get(key)
    return current


def dig_list(payload: Any, *keys: str) -> list:
    """Like dig() but always returns a list (empty when absent or not a list)."""
    value = dig(payload, *keys)
    if isinstance(value, (list, tuple)):
        return list(value)
    return []
