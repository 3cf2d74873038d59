from budgetup.models.enums import Role
from conftest import add_membership, auth, login, uniq_email, user_id_for

ALL_ACTIONS = [
    "manage_members",
    "manage_admins",
    "invite_users",
    "remove_members",
    "change_roles",
    "view_audit_logs",
    "manage_organization",
]

def validate(client, jwt: str, body: dict):
    return client.post("/permissions/validate", json=body, headers=auth(jwt))

def _member(client, db, org_id, role: Role, prefix: str) -> tuple[str, str]:
    email = uniq_email(prefix)
    jwt = login(client, email)
    add_membership(db, email, org_id, role)
    return email, jwt

def test_admin_cannot_manage_admins(client, db_session, org_id):
    _, admin_jwt = _member(client, db_session, org_id, Role.admin, "admin")

    r = validate(client, admin_jwt, {"organizationId": org_id, "actions": ["manage_admins"]})
    assert r.status_code == 200, r.text
    assert r.json() == {"permissions": {"manage_admins": False}, "userRole": "admin"}

def test_action_matrix(client, db_session, owner, org_id):
    _, admin_jwt = _member(client, db_session, org_id, Role.admin, "admin")
    _, member_jwt = _member(client, db_session, org_id, Role.member, "member")
    body = {"organizationId": org_id, "actions": ALL_ACTIONS + ["view_dashboard"]}

    owner_perms = validate(client, owner["jwt"], body).json()["permissions"]
    assert all(owner_perms.values())

    admin_perms = validate(client, admin_jwt, body).json()["permissions"]
    assert admin_perms["manage_admins"] is False
    assert admin_perms["manage_organization"] is False
    assert admin_perms["invite_users"] is True
    assert admin_perms["view_audit_logs"] is True
    assert admin_perms["view_dashboard"] is True

    member_perms = validate(client, member_jwt, body).json()["permissions"]
    assert member_perms.pop("view_dashboard") is True
    assert not any(member_perms.values())

def test_target_management(client, db_session, owner, org_id):
    admin_email, admin_jwt = _member(client, db_session, org_id, Role.admin, "admin")
    member_email, _ = _member(client, db_session, org_id, Role.member, "member")
    admin_id = str(user_id_for(db_session, admin_email))
    member_id = str(user_id_for(db_session, member_email))
    owner_id = str(user_id_for(db_session, owner["email"]))

    r = validate(client, admin_jwt, {"organizationId": org_id, "targetUserId": member_id, "action": "remove"})
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["canManageTarget"] is True
    assert "managementReason" not in body
    assert body["permissions"] == {f"can_remove_{member_id}": True}

    r = validate(client, admin_jwt, {"organizationId": org_id, "targetUserId": owner_id, "action": "change_role"})
    assert r.json()["canManageTarget"] is False
    assert r.json()["managementReason"] == "insufficient_privilege"

    r = validate(client, admin_jwt, {"organizationId": org_id, "targetUserId": admin_id, "action": "remove"})
    assert r.json()["managementReason"] == "cannot_manage_self"

    r = validate(client, owner["jwt"], {"organizationId": org_id, "targetUserId": admin_id, "action": "change_role"})
    assert r.json()["canManageTarget"] is True

def test_non_member_is_forbidden(client, org_id):
    outsider_jwt = login(client, uniq_email("outsider"))
    r = validate(client, outsider_jwt, {"organizationId": org_id, "actions": ["manage_members"]})
    assert r.status_code == 403
    assert "error" in r.json()

def test_bad_requests(client, owner, org_id):
    assert client.post("/permissions/validate", json={"organizationId": org_id}).status_code == 401

    assert validate(client, owner["jwt"], {"organizationId": "not-a-uuid"}).status_code == 400
    assert validate(client, owner["jwt"], {"actions": ["manage_members"]}).status_code == 400
    r = validate(client, owner["jwt"], {"organizationId": org_id, "targetUserId": org_id, "action": "promote"})
    assert r.status_code == 400

def test_no_actions_returns_role_only(client, owner, org_id):
    r = validate(client, owner["jwt"], {"organizationId": org_id})
    assert r.status_code == 200
    assert r.json() == {"permissions": {}, "userRole": "owner"}
