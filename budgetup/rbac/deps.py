import uuid

from fastapi import Depends, HTTPException
from sqlalchemy.orm import Session

from budgetup.auth.deps import get_current_user
from budgetup.db import get_db
from budgetup.models.enums import Role
from budgetup.models.membership import Membership
from budgetup.models.organization import Organization
from budgetup.models.user import User
from budgetup.rbac.perms import ACTION_MIN_ROLE

class OrgContext:
    def __init__(self, org: Organization, membership: Membership, user: User):
        self.org = org
        self.membership = membership
        self.user = user

    @property
    def role(self) -> Role:
        return self.membership.role

def load_org_context(db: Session, org_id: uuid.UUID, user: User) -> OrgContext:
    org = db.get(Organization, org_id)
    if org is None:
        raise HTTPException(status_code=404, detail="organization not found")

    membership = db.get(Membership, {"user_id": user.id, "org_id": org_id})
    if membership is None:
        raise HTTPException(status_code=403, detail="not a member of this organization")

    return OrgContext(org=org, membership=membership, user=user)

def get_org_context(
    org_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> OrgContext:
    return load_org_context(db, org_id, user)

def require_role(min_role: Role):
    def _checker(ctx: OrgContext = Depends(get_org_context)) -> OrgContext:
        if not ctx.role.at_least(min_role):
            raise HTTPException(status_code=403, detail="forbidden")
        return ctx

    return _checker

def require_perm(action: str):
    min_role = ACTION_MIN_ROLE.get(action)
    if min_role is None:
        raise RuntimeError(f"unknown permission action: {action}")
    return require_role(min_role)
