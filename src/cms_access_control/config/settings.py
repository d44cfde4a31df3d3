"""Engine settings with Pydantic v2 validation."""
from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field, model_validator


class EngineSettings(BaseModel):
    """Tunables for one permission manager instance.

    Attributes
    ----------
    super_admin_role:
        Role name that bypasses every rule, explicit denials included.
    audit_max_entries:
        Audit buffer size that triggers a trim.
    audit_trim_to:
        Entries kept after a trim (the most recent ones).
    audit_log_path:
        Optional JSONL file that receives every audit entry.
    cache_enabled:
        When ``False`` the per-check ``cache`` option is ignored.
    """

    model_config = {"extra": "allow"}

    super_admin_role: str = Field(default="super_admin", min_length=1)
    audit_max_entries: int = Field(default=1000, ge=1)
    audit_trim_to: int = Field(default=500, ge=1)
    audit_log_path: Path | None = Field(default=None)
    cache_enabled: bool = Field(default=True)

    @model_validator(mode="after")
    def check_trim_below_max(self) -> EngineSettings:
        if self.audit_trim_to >= self.audit_max_entries:
            raise ValueError(
                f"audit_trim_to ({self.audit_trim_to}) must be lower than "
                f"audit_max_entries ({self.audit_max_entries})."
            )
        return self
