import logging
import uuid

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from budgetup.auth.deps import get_current_user
from budgetup.db import get_db
from budgetup.models.enums import AuditAction, ManageAction, Role
from budgetup.models.membership import Membership
from budgetup.models.organization import Organization
from budgetup.models.user import User
from budgetup.rbac.deps import OrgContext, require_perm, require_role
from budgetup.rbac.roles import assignable_roles, can_manage_user
from budgetup.schemas.organizations import (
    MemberOut,
    MemberRoleUpdateIn,
    OrganizationCreateIn,
    OrganizationOut,
    OrganizationWithRoleOut,
)
from budgetup.services.audit import AuditEvent, AuditNotifier, get_audit_notifier

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/organizations", tags=["organizations"])

# denial reasons -> what the caller sees
_MANAGE_DENIED = {
    "not_a_member": (403, "not a member of this organization"),
    "cannot_manage_self": (409, "you cannot manage your own membership, leave the organization instead"),
    "target_not_found": (404, "member not found"),
    "insufficient_privilege": (403, "you do not have permission to manage this member"),
}

def _deny(reason: str | None) -> HTTPException:
    status, detail = _MANAGE_DENIED.get(reason or "", (403, "forbidden"))
    return HTTPException(status_code=status, detail=detail)

def _org_out(org: Organization) -> OrganizationOut:
    return OrganizationOut(id=org.id, name=org.name, currency=org.currency)

@router.post("", response_model=OrganizationOut)
def create_organization(
    payload: OrganizationCreateIn,
    background: BackgroundTasks,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    audit: AuditNotifier = Depends(get_audit_notifier),
) -> OrganizationOut:
    taken = db.scalar(select(Organization.id).where(Organization.name == payload.name))
    if taken is not None:
        raise HTTPException(status_code=409, detail="an organization with this name already exists")

    org = Organization(name=payload.name, currency=payload.currency, created_by=user.id)
    db.add(org)
    db.flush()

    # creator is the implicit owner
    db.add(Membership(user_id=user.id, org_id=org.id, role=Role.owner))
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail="an organization with this name already exists")

    logger.info("organization created id=%s owner=%s", org.id, user.id)
    audit.dispatch(
        background,
        AuditEvent(
            org_id=org.id,
            user_id=user.id,
            action=AuditAction.create,
            table_name="organizations",
            record_id=org.id,
            new_values={"name": org.name, "currency": org.currency},
        ),
    )
    return _org_out(org)

@router.get("", response_model=list[OrganizationWithRoleOut])
def list_organizations(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> list[OrganizationWithRoleOut]:
    q = (
        select(Organization, Membership.role)
        .join(Membership, Membership.org_id == Organization.id)
        .where(Membership.user_id == user.id)
        .order_by(Organization.created_at.desc())
    )
    return [
        OrganizationWithRoleOut(id=o.id, name=o.name, currency=o.currency, role=role)
        for o, role in db.execute(q).all()
    ]

@router.get("/{org_id}", response_model=OrganizationOut)
def get_organization(ctx: OrgContext = Depends(require_role(Role.member))) -> OrganizationOut:
    return _org_out(ctx.org)

@router.get("/{org_id}/members", response_model=list[MemberOut])
def list_members(
    org_id: uuid.UUID,
    ctx: OrgContext = Depends(require_role(Role.member)),
    db: Session = Depends(get_db),
) -> list[MemberOut]:
    q = (
        select(Membership, User.email)
        .join(User, User.id == Membership.user_id)
        .where(Membership.org_id == org_id)
        .order_by(Membership.created_at.asc())
    )
    return [
        MemberOut(user_id=m.user_id, org_id=m.org_id, email=email, role=m.role, created_at=m.created_at)
        for m, email in db.execute(q).all()
    ]

@router.patch("/{org_id}/members/{user_id}", response_model=MemberOut)
def change_member_role(
    org_id: uuid.UUID,
    user_id: uuid.UUID,
    payload: MemberRoleUpdateIn,
    background: BackgroundTasks,
    ctx: OrgContext = Depends(require_perm("change_roles")),
    db: Session = Depends(get_db),
    audit: AuditNotifier = Depends(get_audit_notifier),
) -> MemberOut:
    check = can_manage_user(db, ctx.user.id, user_id, org_id, ManageAction.change_role)
    if not check.can_manage:
        raise _deny(check.reason)

    # an actor never grants a role at or above their own
    if payload.role not in assignable_roles(ctx.role):
        raise HTTPException(status_code=403, detail="you cannot assign this role")

    target = db.get(Membership, {"user_id": user_id, "org_id": org_id})
    if target is None:
        raise HTTPException(status_code=404, detail="member not found")
    if target.role == payload.role:
        raise HTTPException(status_code=409, detail="member already has this role")

    old_role = target.role
    target.role = payload.role
    db.add(target)
    db.commit()
    db.refresh(target)

    logger.info("role changed org=%s user=%s %s->%s by=%s", org_id, user_id, old_role.value, target.role.value, ctx.user.id)
    audit.dispatch(
        background,
        AuditEvent(
            org_id=org_id,
            user_id=ctx.user.id,
            action=AuditAction.role_changed,
            table_name="memberships",
            record_id=user_id,
            old_values={"role": old_role.value},
            new_values={"role": target.role.value},
        ),
    )

    email = db.scalar(select(User.email).where(User.id == user_id)) or ""
    return MemberOut(user_id=target.user_id, org_id=target.org_id, email=email, role=target.role, created_at=target.created_at)

@router.delete("/{org_id}/members/{user_id}")
def remove_member(
    org_id: uuid.UUID,
    user_id: uuid.UUID,
    background: BackgroundTasks,
    ctx: OrgContext = Depends(require_perm("remove_members")),
    db: Session = Depends(get_db),
    audit: AuditNotifier = Depends(get_audit_notifier),
) -> dict:
    check = can_manage_user(db, ctx.user.id, user_id, org_id, ManageAction.remove)
    if not check.can_manage:
        raise _deny(check.reason)

    target = db.get(Membership, {"user_id": user_id, "org_id": org_id})
    if target is None:
        raise HTTPException(status_code=404, detail="member not found")

    old_role = target.role
    db.delete(target)
    db.commit()

    logger.info("member removed org=%s user=%s by=%s", org_id, user_id, ctx.user.id)
    audit.dispatch(
        background,
        AuditEvent(
            org_id=org_id,
            user_id=ctx.user.id,
            action=AuditAction.delete,
            table_name="memberships",
            record_id=user_id,
            old_values={"role": old_role.value},
        ),
    )
    return {"removed": True, "message": "member removed"}

@router.post("/{org_id}/leave")
def leave_organization(
    org_id: uuid.UUID,
    background: BackgroundTasks,
    ctx: OrgContext = Depends(require_role(Role.member)),
    db: Session = Depends(get_db),
    audit: AuditNotifier = Depends(get_audit_notifier),
) -> dict:
    # an organization is never left without its owner
    if ctx.role == Role.owner:
        raise HTTPException(status_code=409, detail="the owner cannot leave the organization")

    old_role = ctx.role
    db.execute(delete(Membership).where(Membership.org_id == org_id, Membership.user_id == ctx.user.id))
    db.commit()

    logger.info("member left org=%s user=%s", org_id, ctx.user.id)
    audit.dispatch(
        background,
        AuditEvent(
            org_id=org_id,
            user_id=ctx.user.id,
            action=AuditAction.delete,
            table_name="memberships",
            record_id=ctx.user.id,
            old_values={"role": old_role.value},
        ),
    )
    return {"left": True}
