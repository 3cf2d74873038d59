"""Invitation lifecycle.

An invitation is pending until it is accepted once (``used_at`` set) or its
``expires_at`` passes. Expiry is computed on read; nothing marks rows as
expired. Acceptance claims the code with a conditional update and inserts the
membership in the same transaction, so concurrent accepts of one code end
with exactly one membership.
"""
from __future__ import annotations

import logging
import secrets
import string
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from budgetup.clock import as_utc, now_utc
from budgetup.config import settings
from budgetup.errors import BudgetUpError, Conflict, Expired, Forbidden, NotFound
from budgetup.models.enums import InvitationStatus, Role
from budgetup.models.invitation import Invitation
from budgetup.models.membership import Membership
from budgetup.models.organization import Organization
from budgetup.models.user import User
from budgetup.rbac.roles import assignable_roles

logger = logging.getLogger(__name__)

CODE_ALPHABET = string.ascii_uppercase + string.digits
MAX_CODE_ATTEMPTS = 10

class InvitationNotFound(NotFound):
    message = "invalid invitation code"

class InvitationAlreadyUsed(Conflict):
    message = "this invitation has already been used"

class InvitationExpired(Expired):
    message = "this invitation has expired"

class InvitationEmailMismatch(Forbidden):
    message = "this invitation was issued for a different email"

class AlreadyMember(Conflict):
    message = "you are already a member of this organization"

@dataclass(frozen=True)
class AcceptedInvitation:
    invitation_id: uuid.UUID
    organization: Organization
    role: Role

def generate_code(length: int | None = None) -> str:
    n = length or settings.invitation_code_length
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(n))

def is_expired(invitation: Invitation, now: datetime | None = None) -> bool:
    now = now or now_utc()
    return now >= as_utc(invitation.expires_at)

def invitation_status(invitation: Invitation, now: datetime | None = None) -> InvitationStatus:
    if invitation.used_at is not None:
        return InvitationStatus.used
    if is_expired(invitation, now):
        return InvitationStatus.expired
    return InvitationStatus.pending

def _normalize_email(email: str) -> str:
    return email.strip().lower()

def _unique_code(db: Session) -> str:
    for _ in range(MAX_CODE_ATTEMPTS):
        code = generate_code()
        taken = db.scalar(select(Invitation.id).where(Invitation.code == code))
        if taken is None:
            return code
    logger.error("could not generate a unique invitation code after %d attempts", MAX_CODE_ATTEMPTS)
    raise BudgetUpError()

def create_invitation(
    db: Session,
    org_id: uuid.UUID,
    actor: User,
    actor_role: Role,
    email: str,
    role: Role,
) -> Invitation:
    if role not in assignable_roles(actor_role):
        raise Forbidden("you cannot invite users with this role")

    email = _normalize_email(email)
    now = now_utc()

    member = db.scalar(
        select(Membership.user_id)
        .join(User, User.id == Membership.user_id)
        .where(Membership.org_id == org_id, User.email == email)
    )
    if member is not None:
        raise Conflict("user is already a member of this organization")

    pending = db.scalar(
        select(Invitation.id).where(
            Invitation.org_id == org_id,
            Invitation.email == email,
            Invitation.used_at.is_(None),
            Invitation.expires_at > now,
        )
    )
    if pending is not None:
        raise Conflict("a pending invitation already exists for this email")

    invitation = Invitation(
        org_id=org_id,
        email=email,
        role=role,
        code=_unique_code(db),
        expires_at=now + timedelta(days=settings.invitation_ttl_days),
        used_at=None,
        created_by=actor.id,
    )
    db.add(invitation)
    db.commit()
    db.refresh(invitation)

    logger.info("invitation created id=%s org=%s role=%s", invitation.id, org_id, role.value)
    return invitation

def get_invitation_by_code(db: Session, code: str) -> Invitation:
    invitation = db.scalar(select(Invitation).where(Invitation.code == code))
    if invitation is None:
        raise InvitationNotFound()
    return invitation

def get_invitation_details(db: Session, code: str) -> tuple[Invitation, Organization]:
    # unauthenticated: the code itself is the capability
    invitation = get_invitation_by_code(db, code)
    org = db.get(Organization, invitation.org_id)
    if org is None:
        raise InvitationNotFound()
    return invitation, org

def accept_invitation(db: Session, code: str, user: User) -> AcceptedInvitation:
    """Accept ``code`` on behalf of ``user``.

    Checks run in a fixed order and stop at the first failure: unknown code,
    already used, expired, e-mail mismatch, already a member.
    """
    now = now_utc()

    invitation = get_invitation_by_code(db, code)
    if invitation.used_at is not None:
        raise InvitationAlreadyUsed()
    if is_expired(invitation, now):
        raise InvitationExpired()
    if _normalize_email(invitation.email) != _normalize_email(user.email):
        raise InvitationEmailMismatch()

    existing = db.get(Membership, {"user_id": user.id, "org_id": invitation.org_id})
    if existing is not None:
        raise AlreadyMember()

    invitation_id = invitation.id
    org_id = invitation.org_id
    role = invitation.role

    # atomic single-use + expiry gate
    stmt = (
        update(Invitation)
        .where(Invitation.id == invitation_id)
        .where(Invitation.used_at.is_(None))
        .where(Invitation.expires_at > now)
        .values(used_at=now)
        .returning(Invitation.id)
        .execution_options(synchronize_session=False)
    )
    claimed = db.scalar(stmt)
    if claimed is None:
        db.rollback()
        logger.warning("invitation claim lost id=%s user=%s", invitation_id, user.id)
        row = db.get(Invitation, invitation_id)
        if row is None:
            raise InvitationNotFound()
        if row.used_at is None and is_expired(row):
            raise InvitationExpired()
        raise InvitationAlreadyUsed()

    db.add(Membership(user_id=user.id, org_id=org_id, role=role))
    try:
        db.commit()
    except IntegrityError:
        # composite key (user, org) tripped by a concurrent join; the claim rolls back too
        db.rollback()
        logger.warning("membership insert conflicted user=%s org=%s", user.id, org_id)
        raise AlreadyMember()

    org = db.get(Organization, org_id)
    logger.info("invitation accepted id=%s user=%s org=%s role=%s", invitation_id, user.id, org_id, role.value)
    return AcceptedInvitation(invitation_id=invitation_id, organization=org, role=role)

def get_invitation(db: Session, invitation_id: uuid.UUID) -> Invitation:
    invitation = db.get(Invitation, invitation_id)
    if invitation is None:
        raise NotFound("invitation not found")
    return invitation

def list_invitations(db: Session, org_id: uuid.UUID) -> list[Invitation]:
    q = (
        select(Invitation)
        .where(Invitation.org_id == org_id)
        .order_by(Invitation.created_at.desc(), Invitation.expires_at.desc())
    )
    return list(db.scalars(q).all())

def update_invitation_role(db: Session, invitation: Invitation, actor_role: Role, role: Role) -> Invitation:
    if invitation.used_at is not None:
        raise Conflict("a used invitation cannot be modified")
    if role not in assignable_roles(actor_role):
        raise Forbidden("you cannot assign this role")

    invitation.role = role
    db.add(invitation)
    db.commit()
    db.refresh(invitation)
    return invitation

def revoke_invitation(db: Session, invitation: Invitation) -> None:
    if invitation.used_at is not None:
        raise Conflict("a used invitation cannot be revoked")

    invitation_id, org_id = invitation.id, invitation.org_id

    # only delete while still unused
    result = db.execute(
        delete(Invitation)
        .where(Invitation.id == invitation_id, Invitation.used_at.is_(None))
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        db.rollback()
        raise Conflict("a used invitation cannot be revoked")
    db.commit()
    logger.info("invitation revoked id=%s org=%s", invitation_id, org_id)

def cleanup_expired_invitations(db: Session, days_old: int | None = None) -> int:
    """Delete unused invitations that expired more than ``days_old`` days ago."""
    days = days_old if days_old is not None else settings.invitation_cleanup_days
    cutoff = now_utc() - timedelta(days=days)

    result = db.execute(
        delete(Invitation)
        .where(Invitation.used_at.is_(None), Invitation.expires_at < cutoff)
        .execution_options(synchronize_session=False)
    )
    db.commit()

    deleted = result.rowcount or 0
    if deleted:
        logger.info("cleaned up %d expired invitations older than %d days", deleted, days)
    return deleted

def invitation_stats(db: Session) -> dict[str, int]:
    now = now_utc()

    def _count(*criteria) -> int:
        return db.scalar(select(func.count()).select_from(Invitation).where(*criteria)) or 0

    return {
        "total": _count(),
        "pending": _count(Invitation.used_at.is_(None), Invitation.expires_at > now),
        "used": _count(Invitation.used_at.is_not(None)),
        "expired": _count(Invitation.used_at.is_(None), Invitation.expires_at <= now),
    }
