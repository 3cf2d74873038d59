import uuid
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.orm import Session

from budgetup.db import SessionLocal
from budgetup.models.enums import Role
from budgetup.models.invitation import Invitation
from budgetup.models.membership import Membership
from budgetup.models.organization import Organization
from budgetup.models.user import User
from budgetup.services.invitations import create_invitation

@dataclass
class SeedResult:
    owner_email: str
    admin_email: str
    member_email: str
    org_id: uuid.UUID
    invitation_code: str

def get_or_create_user(db: Session, email: str, name: str | None = None) -> User:
    email = email.lower().strip()
    u = db.scalar(select(User).where(User.email == email))
    if u is None:
        u = User(email=email, name=name)
        db.add(u)
        db.flush()
    return u

def get_or_create_membership(db: Session, user_id: uuid.UUID, org_id: uuid.UUID, role: Role) -> Membership:
    m = db.get(Membership, {"user_id": user_id, "org_id": org_id})
    if m is None:
        m = Membership(user_id=user_id, org_id=org_id, role=role)
        db.add(m)
        db.flush()
    elif m.role != role:
        m.role = role
        db.add(m)
        db.flush()
    return m

def get_or_create_org(db: Session, name: str, created_by: uuid.UUID) -> Organization:
    o = db.scalar(select(Organization).where(Organization.name == name))
    if o is None:
        o = Organization(name=name, created_by=created_by)
        db.add(o)
        db.flush()
    return o

def get_or_create_invitation(db: Session, org: Organization, owner: User, email: str) -> Invitation:
    # keep it stable if you re-run seed
    inv = db.scalar(
        select(Invitation).where(
            Invitation.org_id == org.id,
            Invitation.email == email,
            Invitation.used_at.is_(None),
        )
    )
    if inv is not None:
        return inv
    return create_invitation(db, org_id=org.id, actor=owner, actor_role=Role.owner, email=email, role=Role.member)

def seed() -> SeedResult:
    db = SessionLocal()
    try:
        owner = get_or_create_user(db, "owner@example.com", "owner")
        admin = get_or_create_user(db, "admin@example.com", "admin")
        member = get_or_create_user(db, "member@example.com", "member")

        org = get_or_create_org(db, "seeded household", owner.id)

        get_or_create_membership(db, owner.id, org.id, Role.owner)
        get_or_create_membership(db, admin.id, org.id, Role.admin)
        get_or_create_membership(db, member.id, org.id, Role.member)
        db.commit()

        invitation = get_or_create_invitation(db, org, owner, "invitee@example.com")

        return SeedResult(
            owner_email=owner.email,
            admin_email=admin.email,
            member_email=member.email,
            org_id=org.id,
            invitation_code=invitation.code,
        )
    finally:
        db.close()

if __name__ == "__main__":
    r = seed()
    print("seed complete")
    print(f"org_id={r.org_id}")
    print(f"invitation_code={r.invitation_code}  (for invitee@example.com)")
    print("users:")
    print(f"  owner:  {r.owner_email}")
    print(f"  admin:  {r.admin_email}")
    print(f"  member: {r.member_email}")
