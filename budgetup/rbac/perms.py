from budgetup.models.enums import Role

# minimum role per named action; anything not listed only needs membership
ACTION_MIN_ROLE: dict[str, Role] = {
    "manage_members": Role.admin,
    "manage_admins": Role.owner,
    "invite_users": Role.admin,
    "remove_members": Role.admin,
    "change_roles": Role.admin,
    "view_audit_logs": Role.admin,
    "manage_organization": Role.owner,
}

def required_role(action: str) -> Role:
    return ACTION_MIN_ROLE.get(action, Role.member)
