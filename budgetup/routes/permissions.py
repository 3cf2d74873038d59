from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from budgetup.auth.deps import get_current_user
from budgetup.db import get_db
from budgetup.models.enums import Role
from budgetup.models.user import User
from budgetup.rbac.perms import required_role
from budgetup.rbac.roles import can_manage_user, check_role_permission, validate_user_role
from budgetup.schemas.permissions import PermissionValidateIn, PermissionValidateOut

router = APIRouter(prefix="/permissions", tags=["permissions"])

@router.post(
    "/validate",
    response_model=PermissionValidateOut,
    response_model_exclude_none=True,
)
def validate_permissions(
    payload: PermissionValidateIn,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> PermissionValidateOut:
    membership = validate_user_role(db, user.id, payload.organization_id, Role.member)
    if not membership.has_permission or membership.user_role is None:
        raise HTTPException(status_code=403, detail="not a member of this organization")

    user_role = membership.user_role
    permissions: dict[str, bool] = {}

    # one membership read covers every action
    for name in payload.actions or []:
        permissions[name] = check_role_permission(user_role, required_role(name))

    check = None
    if payload.target_user_id is not None and payload.action is not None:
        check = can_manage_user(db, user.id, payload.target_user_id, payload.organization_id, payload.action)
        permissions[f"can_{payload.action.value}_{payload.target_user_id}"] = check.can_manage

    return PermissionValidateOut(
        permissions=permissions,
        user_role=user_role,
        can_manage_target=check.can_manage if check is not None else None,
        management_reason=check.reason if check is not None else None,
    )
