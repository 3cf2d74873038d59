import pytest

from budgetup.models.enums import ManageAction, Role
from budgetup.rbac.perms import ACTION_MIN_ROLE, required_role
from budgetup.rbac.roles import (
    ALREADY_MEMBER,
    CANNOT_MANAGE_SELF,
    INSUFFICIENT_PRIVILEGE,
    NOT_A_MEMBER,
    TARGET_NOT_FOUND,
    assignable_roles,
    check_role_permission,
    evaluate_management,
)

@pytest.mark.parametrize(
    "user_role, required, expected",
    [
        (Role.owner, Role.owner, True),
        (Role.owner, Role.admin, True),
        (Role.owner, Role.member, True),
        (Role.admin, Role.owner, False),
        (Role.admin, Role.admin, True),
        (Role.admin, Role.member, True),
        (Role.member, Role.owner, False),
        (Role.member, Role.admin, False),
        (Role.member, Role.member, True),
    ],
)
def test_role_order(user_role, required, expected):
    assert check_role_permission(user_role, required) is expected

def test_rank_is_strict_total_order():
    assert Role.owner.rank > Role.admin.rank > Role.member.rank
    assert Role.owner.outranks(Role.admin) and not Role.admin.outranks(Role.admin)

def test_action_table():
    assert required_role("manage_admins") == Role.owner
    assert required_role("manage_organization") == Role.owner
    assert required_role("view_audit_logs") == Role.admin
    assert required_role("something_else") == Role.member
    assert set(ACTION_MIN_ROLE.values()) <= {Role.admin, Role.owner}

def test_assignable_roles():
    assert assignable_roles(Role.owner) == {Role.admin, Role.member}
    assert assignable_roles(Role.admin) == {Role.member}
    assert assignable_roles(Role.member) == set()

@pytest.mark.parametrize("action", [ManageAction.change_role, ManageAction.remove])
def test_actor_manages_only_strictly_lower_roles(action):
    assert evaluate_management(Role.owner, Role.admin, action, is_self=False).can_manage
    assert evaluate_management(Role.owner, Role.member, action, is_self=False).can_manage
    assert evaluate_management(Role.admin, Role.member, action, is_self=False).can_manage

    for actor, target in [
        (Role.admin, Role.admin),
        (Role.admin, Role.owner),
        (Role.owner, Role.owner),
        (Role.member, Role.member),
    ]:
        check = evaluate_management(actor, target, action, is_self=False)
        assert not check.can_manage
        assert check.reason == INSUFFICIENT_PRIVILEGE

@pytest.mark.parametrize("role", list(Role))
@pytest.mark.parametrize("action", [ManageAction.change_role, ManageAction.remove])
def test_nobody_manages_themselves(role, action):
    check = evaluate_management(role, role, action, is_self=True)
    assert not check.can_manage
    assert check.reason == CANNOT_MANAGE_SELF

def test_missing_memberships():
    check = evaluate_management(None, Role.member, ManageAction.remove, is_self=False)
    assert check.reason == NOT_A_MEMBER

    check = evaluate_management(Role.owner, None, ManageAction.remove, is_self=False)
    assert check.reason == TARGET_NOT_FOUND

def test_invite_action():
    assert evaluate_management(Role.admin, None, ManageAction.invite, is_self=False).can_manage
    assert evaluate_management(Role.owner, None, ManageAction.invite, is_self=False).can_manage

    check = evaluate_management(Role.member, None, ManageAction.invite, is_self=False)
    assert (check.can_manage, check.reason) == (False, INSUFFICIENT_PRIVILEGE)

    check = evaluate_management(Role.owner, Role.member, ManageAction.invite, is_self=False)
    assert (check.can_manage, check.reason) == (False, ALREADY_MEMBER)
