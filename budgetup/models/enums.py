from enum import Enum

class Role(str, Enum):
    owner = "owner"
    admin = "admin"
    member = "member"

    @property
    def rank(self) -> int:
        # the only place the privilege order is defined
        return _ROLE_RANK[self]

    def at_least(self, other: "Role") -> bool:
        return self.rank >= other.rank

    def outranks(self, other: "Role") -> bool:
        return self.rank > other.rank

_ROLE_RANK = {Role.member: 1, Role.admin: 2, Role.owner: 3}

# roles an invitation may carry
INVITABLE_ROLES = (Role.admin, Role.member)

class ManageAction(str, Enum):
    change_role = "change_role"
    remove = "remove"
    invite = "invite"

class AuditAction(str, Enum):
    create = "create"
    update = "update"
    delete = "delete"
    login = "login"
    logout = "logout"
    invite_sent = "invite_sent"
    role_changed = "role_changed"

# actions a client may record by hand
MANUAL_AUDIT_ACTIONS = (AuditAction.login, AuditAction.logout, AuditAction.invite_sent, AuditAction.role_changed)

class InvitationStatus(str, Enum):
    pending = "pending"
    used = "used"
    expired = "expired"
