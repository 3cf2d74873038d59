import uuid
from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from budgetup.models.enums import Role

class OrganizationCreateIn(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    currency: str = Field(default="USD", min_length=3, max_length=3)

    @field_validator("name")
    @classmethod
    def _strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name must not be blank")
        return v

    @field_validator("currency")
    @classmethod
    def _upper_currency(cls, v: str) -> str:
        v = v.upper()
        if not v.isalpha():
            raise ValueError("currency must be a three-letter code")
        return v

class OrganizationOut(BaseModel):
    id: uuid.UUID
    name: str
    currency: str

class OrganizationWithRoleOut(OrganizationOut):
    role: Role

class MemberOut(BaseModel):
    user_id: uuid.UUID
    org_id: uuid.UUID
    email: str
    role: Role
    created_at: datetime | None = None

class MemberRoleUpdateIn(BaseModel):
    # owner is never assignable
    role: Role

    @field_validator("role")
    @classmethod
    def _not_owner(cls, v: Role) -> Role:
        if v == Role.owner:
            raise ValueError("role must be admin or member")
        return v
