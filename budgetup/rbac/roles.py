"""Role hierarchy checks.

``Role.rank`` holds the privilege order (owner > admin > member). The
functions here read a membership and compare ranks; none of them raise for a
missing membership, that is a negative result.
"""
from __future__ import annotations

import uuid
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.orm import Session

from budgetup.models.enums import ManageAction, Role
from budgetup.models.membership import Membership

NOT_A_MEMBER = "not_a_member"
CANNOT_MANAGE_SELF = "cannot_manage_self"
TARGET_NOT_FOUND = "target_not_found"
ALREADY_MEMBER = "already_member"
INSUFFICIENT_PRIVILEGE = "insufficient_privilege"

@dataclass(frozen=True)
class RoleCheck:
    has_permission: bool
    user_role: Role | None

@dataclass(frozen=True)
class ManageCheck:
    can_manage: bool
    reason: str | None = None

def check_role_permission(user_role: Role, required_role: Role) -> bool:
    return user_role.at_least(required_role)

def get_user_role(db: Session, user_id: uuid.UUID, org_id: uuid.UUID) -> Role | None:
    m = db.get(Membership, {"user_id": user_id, "org_id": org_id})
    return m.role if m is not None else None

def validate_user_role(
    db: Session, user_id: uuid.UUID, org_id: uuid.UUID, required_role: Role
) -> RoleCheck:
    role = get_user_role(db, user_id, org_id)
    if role is None:
        return RoleCheck(has_permission=False, user_role=None)
    return RoleCheck(has_permission=check_role_permission(role, required_role), user_role=role)

def evaluate_management(
    actor_role: Role | None,
    target_role: Role | None,
    action: ManageAction,
    is_self: bool,
) -> ManageCheck:
    """Decide whether an actor may act on a target; pure.

    Actors only manage strictly lower roles, never themselves. ``invite``
    targets someone who is not yet a member, so only the actor's role counts.
    """
    if actor_role is None:
        return ManageCheck(False, NOT_A_MEMBER)

    if action == ManageAction.invite:
        if target_role is not None:
            return ManageCheck(False, ALREADY_MEMBER)
        if not actor_role.at_least(Role.admin):
            return ManageCheck(False, INSUFFICIENT_PRIVILEGE)
        return ManageCheck(True)

    if is_self:
        return ManageCheck(False, CANNOT_MANAGE_SELF)
    if target_role is None:
        return ManageCheck(False, TARGET_NOT_FOUND)
    if not actor_role.at_least(Role.admin) or not actor_role.outranks(target_role):
        return ManageCheck(False, INSUFFICIENT_PRIVILEGE)
    return ManageCheck(True)

def can_manage_user(
    db: Session,
    actor_id: uuid.UUID,
    target_user_id: uuid.UUID,
    org_id: uuid.UUID,
    action: ManageAction,
) -> ManageCheck:
    rows = db.execute(
        select(Membership.user_id, Membership.role).where(
            Membership.org_id == org_id,
            Membership.user_id.in_([actor_id, target_user_id]),
        )
    ).all()
    roles = {user_id: role for user_id, role in rows}

    return evaluate_management(
        actor_role=roles.get(actor_id),
        target_role=roles.get(target_user_id),
        action=action,
        is_self=actor_id == target_user_id,
    )

def assignable_roles(actor_role: Role) -> set[Role]:
    # roles an actor may hand out through invitations or role changes
    return {r for r in (Role.admin, Role.member) if actor_role.outranks(r)}
