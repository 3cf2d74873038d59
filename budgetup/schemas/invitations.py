import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from budgetup.models.enums import INVITABLE_ROLES, InvitationStatus, Role
from budgetup.schemas.organizations import OrganizationOut

INVITATION_CODE_PATTERN = r"^[A-Z0-9-]+$"

class InvitationCreateIn(BaseModel):
    email: EmailStr
    role: Role = Role.member

    @field_validator("role")
    @classmethod
    def _invitable(cls, v: Role) -> Role:
        if v not in INVITABLE_ROLES:
            raise ValueError("role must be admin or member")
        return v

class InvitationUpdateIn(BaseModel):
    role: Role

    @field_validator("role")
    @classmethod
    def _invitable(cls, v: Role) -> Role:
        if v not in INVITABLE_ROLES:
            raise ValueError("role must be admin or member")
        return v

class AcceptInvitationIn(BaseModel):
    code: str = Field(min_length=6, max_length=50, pattern=INVITATION_CODE_PATTERN)

class InvitationOut(BaseModel):
    id: uuid.UUID
    org_id: uuid.UUID
    email: str
    role: Role
    code: str
    expires_at: datetime
    used_at: datetime | None
    created_by: uuid.UUID
    created_at: datetime | None = None
    status: InvitationStatus

class InvitationDetailsOut(BaseModel):
    # public view: no inviter id
    id: uuid.UUID
    org_id: uuid.UUID
    email: str
    role: Role
    code: str
    expires_at: datetime
    used_at: datetime | None
    created_at: datetime | None = None
    status: InvitationStatus
    organization: OrganizationOut

class InvitationEnvelope(BaseModel):
    invitation: InvitationDetailsOut

class InvitationCreatedOut(BaseModel):
    invitation: InvitationOut
    message: str

class AcceptInvitationOut(BaseModel):
    organization: OrganizationOut
    role: Role
    message: str

class CleanupIn(BaseModel):
    days_old: int | None = Field(default=None, gt=0, alias="daysOld")

class InvitationStatsOut(BaseModel):
    total: int
    pending: int
    used: int
    expired: int

class CleanupOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    deleted_count: int = Field(alias="deletedCount")
    stats: InvitationStatsOut
    message: str
