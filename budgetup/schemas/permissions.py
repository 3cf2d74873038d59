import uuid

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from budgetup.models.enums import ManageAction, Role

class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

class PermissionValidateIn(_CamelModel):
    organization_id: uuid.UUID
    actions: list[str] | None = None
    target_user_id: uuid.UUID | None = None
    action: ManageAction | None = None

class PermissionValidateOut(_CamelModel):
    permissions: dict[str, bool]
    user_role: Role | None
    can_manage_target: bool | None = None
    management_reason: str | None = None
