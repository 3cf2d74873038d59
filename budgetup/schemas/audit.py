import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel

from budgetup.models.enums import MANUAL_AUDIT_ACTIONS, AuditAction

class ManualAuditIn(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    organization_id: uuid.UUID
    action: AuditAction
    table_name: str
    record_id: uuid.UUID | None = None
    metadata: dict[str, Any] | None = None

    @field_validator("action")
    @classmethod
    def _manual_only(cls, v: AuditAction) -> AuditAction:
        if v not in MANUAL_AUDIT_ACTIONS:
            raise ValueError("action cannot be recorded manually")
        return v

class AuditLogOut(BaseModel):
    id: uuid.UUID
    org_id: uuid.UUID
    user_id: uuid.UUID | None
    action: str
    table_name: str
    record_id: str | None
    old_values: dict | None
    new_values: dict | None
    created_at: datetime

class AuditLogPage(BaseModel):
    items: list[AuditLogOut]
    page: int
    limit: int
    total: int
