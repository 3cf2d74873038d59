import logging
import uuid

from fastapi import APIRouter, BackgroundTasks, Depends, Header, HTTPException
from sqlalchemy.orm import Session

from budgetup.auth.deps import get_current_user
from budgetup.config import settings
from budgetup.db import get_db
from budgetup.errors import InvalidInput
from budgetup.models.enums import AuditAction, Role
from budgetup.models.invitation import Invitation
from budgetup.models.user import User
from budgetup.ratelimit import rate_limit
from budgetup.rbac.deps import OrgContext, load_org_context, require_perm
from budgetup.schemas.invitations import (
    AcceptInvitationIn,
    AcceptInvitationOut,
    CleanupIn,
    CleanupOut,
    InvitationCreatedOut,
    InvitationCreateIn,
    InvitationDetailsOut,
    InvitationEnvelope,
    InvitationOut,
    InvitationStatsOut,
    InvitationUpdateIn,
)
from budgetup.schemas.organizations import OrganizationOut
from budgetup.services import invitations as svc
from budgetup.services.audit import AuditEvent, AuditNotifier, get_audit_notifier

logger = logging.getLogger(__name__)

router = APIRouter(tags=["invitations"])

def _invitation_out(inv: Invitation) -> InvitationOut:
    return InvitationOut(
        id=inv.id,
        org_id=inv.org_id,
        email=inv.email,
        role=inv.role,
        code=inv.code,
        expires_at=inv.expires_at,
        used_at=inv.used_at,
        created_by=inv.created_by,
        created_at=inv.created_at,
        status=svc.invitation_status(inv),
    )

def _require_cron_secret(authorization: str | None) -> None:
    # open when no secret is configured
    secret = settings.cron_secret
    if secret and authorization != f"Bearer {secret}":
        raise HTTPException(status_code=401, detail="not authorized")

def _admin_context(db: Session, invitation: Invitation, user: User) -> OrgContext:
    ctx = load_org_context(db, invitation.org_id, user)
    if not ctx.role.at_least(Role.admin):
        raise HTTPException(status_code=403, detail="you do not have permission to manage invitations")
    return ctx

@router.post("/organizations/{org_id}/invitations", response_model=InvitationCreatedOut)
def create_invitation(
    org_id: uuid.UUID,
    payload: InvitationCreateIn,
    background: BackgroundTasks,
    ctx: OrgContext = Depends(require_perm("invite_users")),
    db: Session = Depends(get_db),
    audit: AuditNotifier = Depends(get_audit_notifier),
) -> InvitationCreatedOut:
    invitation = svc.create_invitation(
        db,
        org_id=org_id,
        actor=ctx.user,
        actor_role=ctx.role,
        email=payload.email,
        role=payload.role,
    )
    audit.dispatch(
        background,
        AuditEvent(
            org_id=org_id,
            user_id=ctx.user.id,
            action=AuditAction.invite_sent,
            table_name="invitations",
            record_id=invitation.id,
            new_values={"email": invitation.email, "role": invitation.role.value},
        ),
    )
    return InvitationCreatedOut(invitation=_invitation_out(invitation), message="invitation created")

@router.get("/organizations/{org_id}/invitations", response_model=list[InvitationOut])
def list_invitations(
    org_id: uuid.UUID,
    ctx: OrgContext = Depends(require_perm("invite_users")),
    db: Session = Depends(get_db),
) -> list[InvitationOut]:
    return [_invitation_out(inv) for inv in svc.list_invitations(db, org_id)]

@router.post("/invitations/accept", response_model=AcceptInvitationOut)
def accept_invitation(
    payload: AcceptInvitationIn,
    background: BackgroundTasks,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    audit: AuditNotifier = Depends(get_audit_notifier),
    _: None = Depends(
        rate_limit(
            "invitations:accept",
            limit_per_window=settings.rate_limit_invitation_accept_per_min,
            window_seconds=60,
        )
    ),
) -> AcceptInvitationOut:
    accepted = svc.accept_invitation(db, payload.code, user)
    org = accepted.organization

    audit.dispatch(
        background,
        AuditEvent(
            org_id=org.id,
            user_id=user.id,
            action=AuditAction.create,
            table_name="memberships",
            record_id=user.id,
            new_values={"role": accepted.role.value, "invitation_id": accepted.invitation_id},
        ),
    )
    return AcceptInvitationOut(
        organization=OrganizationOut(id=org.id, name=org.name, currency=org.currency),
        role=accepted.role,
        message=f"you have successfully joined {org.name}",
    )

@router.get("/invitations/details", response_model=InvitationEnvelope)
def invitation_details(
    code: str | None = None,
    db: Session = Depends(get_db),
    _: None = Depends(
        rate_limit(
            "invitations:details",
            limit_per_window=settings.rate_limit_invitation_details_per_min,
            window_seconds=60,
        )
    ),
) -> InvitationEnvelope:
    code = (code or "").strip()
    if not code:
        raise InvalidInput("invitation code required")

    invitation, org = svc.get_invitation_details(db, code)
    return InvitationEnvelope(
        invitation=InvitationDetailsOut(
            id=invitation.id,
            org_id=invitation.org_id,
            email=invitation.email,
            role=invitation.role,
            code=invitation.code,
            expires_at=invitation.expires_at,
            used_at=invitation.used_at,
            created_at=invitation.created_at,
            status=svc.invitation_status(invitation),
            organization=OrganizationOut(id=org.id, name=org.name, currency=org.currency),
        )
    )

@router.get("/invitations/stats", response_model=InvitationStatsOut)
def invitation_stats(
    authorization: str | None = Header(default=None),
    db: Session = Depends(get_db),
) -> InvitationStatsOut:
    _require_cron_secret(authorization)
    return InvitationStatsOut(**svc.invitation_stats(db))

@router.post("/invitations/cleanup", response_model=CleanupOut)
def cleanup_invitations(
    payload: CleanupIn | None = None,
    authorization: str | None = Header(default=None),
    db: Session = Depends(get_db),
) -> CleanupOut:
    _require_cron_secret(authorization)

    days_old = payload.days_old if payload is not None else None
    deleted = svc.cleanup_expired_invitations(db, days_old)
    return CleanupOut(
        deleted_count=deleted,
        stats=InvitationStatsOut(**svc.invitation_stats(db)),
        message=f"cleanup finished: {deleted} invitations deleted",
    )

@router.get("/invitations/{invitation_id}", response_model=InvitationOut)
def get_invitation(
    invitation_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> InvitationOut:
    invitation = svc.get_invitation(db, invitation_id)
    _admin_context(db, invitation, user)
    return _invitation_out(invitation)

@router.patch("/invitations/{invitation_id}", response_model=InvitationOut)
def update_invitation(
    invitation_id: uuid.UUID,
    payload: InvitationUpdateIn,
    background: BackgroundTasks,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    audit: AuditNotifier = Depends(get_audit_notifier),
) -> InvitationOut:
    invitation = svc.get_invitation(db, invitation_id)
    ctx = _admin_context(db, invitation, user)

    old_role = invitation.role
    invitation = svc.update_invitation_role(db, invitation, ctx.role, payload.role)
    audit.dispatch(
        background,
        AuditEvent(
            org_id=invitation.org_id,
            user_id=user.id,
            action=AuditAction.update,
            table_name="invitations",
            record_id=invitation.id,
            old_values={"role": old_role.value},
            new_values={"role": invitation.role.value},
        ),
    )
    return _invitation_out(invitation)

@router.delete("/invitations/{invitation_id}")
def revoke_invitation(
    invitation_id: uuid.UUID,
    background: BackgroundTasks,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    audit: AuditNotifier = Depends(get_audit_notifier),
) -> dict:
    invitation = svc.get_invitation(db, invitation_id)
    _admin_context(db, invitation, user)

    org_id, email = invitation.org_id, invitation.email
    svc.revoke_invitation(db, invitation)
    audit.dispatch(
        background,
        AuditEvent(
            org_id=org_id,
            user_id=user.id,
            action=AuditAction.delete,
            table_name="invitations",
            record_id=invitation_id,
            old_values={"email": email},
        ),
    )
    return {"revoked": True, "message": "invitation revoked"}
