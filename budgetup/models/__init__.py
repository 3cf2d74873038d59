from budgetup.models.audit_log import AuditLog
from budgetup.models.auth_magic_link import AuthMagicLink
from budgetup.models.invitation import Invitation
from budgetup.models.membership import Membership
from budgetup.models.organization import Organization
from budgetup.models.user import User

__all__ = ["User", "Organization", "Membership", "Invitation", "AuditLog", "AuthMagicLink"]
