from sqlalchemy import select

from budgetup.models.audit_log import AuditLog
from budgetup.models.enums import Role
from budgetup.services.audit import AuditNotifier, get_audit_notifier
from conftest import add_membership, auth, login, uniq_email

class _BrokenNotifier(AuditNotifier):
    def __init__(self):
        def _fail():
            raise RuntimeError("audit store down")

        super().__init__(session_factory=_fail)

def _actions(db, org_id: str) -> list[tuple[str, str]]:
    db.expire_all()
    rows = db.scalars(select(AuditLog).order_by(AuditLog.created_at.asc())).all()
    return [(r.action, r.table_name) for r in rows if str(r.org_id) == org_id]

def test_invitation_lifecycle_is_audited(client, db_session, owner, org_id):
    invitee = uniq_email("audit")
    r = client.post(f"/organizations/{org_id}/invitations", json={"email": invitee}, headers=auth(owner["jwt"]))
    assert r.status_code == 200
    code = r.json()["invitation"]["code"]

    r = client.post("/invitations/accept", json={"code": code}, headers=auth(login(client, invitee)))
    assert r.status_code == 200

    actions = _actions(db_session, org_id)
    assert ("create", "organizations") in actions
    assert ("invite_sent", "invitations") in actions
    assert ("create", "memberships") in actions

def test_audit_failure_does_not_fail_request(app, client, owner, org_id):
    app.dependency_overrides[get_audit_notifier] = _BrokenNotifier

    invitee = uniq_email("broken")
    r = client.post(f"/organizations/{org_id}/invitations", json={"email": invitee}, headers=auth(owner["jwt"]))
    assert r.status_code == 200, r.text

    r = client.post("/invitations/accept", json={"code": r.json()["invitation"]["code"]}, headers=auth(login(client, invitee)))
    assert r.status_code == 200, r.text

def test_list_is_admin_only(client, db_session, owner, org_id):
    member_email = uniq_email("member")
    member_jwt = login(client, member_email)
    add_membership(db_session, member_email, org_id, Role.member)

    assert client.get(f"/organizations/{org_id}/audit-logs", headers=auth(member_jwt)).status_code == 403

    r = client.get(f"/organizations/{org_id}/audit-logs", params={"table_name": "organizations"}, headers=auth(owner["jwt"]))
    assert r.status_code == 200
    page = r.json()
    assert page["total"] == 1
    assert page["items"][0]["action"] == "create"

def test_manual_entry(client, owner, org_id):
    body = {"organizationId": org_id, "action": "login", "tableName": "sessions", "metadata": {"ip": "127.0.0.1"}}
    r = client.post("/audit-logs", json=body, headers=auth(owner["jwt"]))
    assert r.status_code == 200, r.text
    assert r.json() == {"success": True}

    r = client.get(f"/organizations/{org_id}/audit-logs", params={"action": "login"}, headers=auth(owner["jwt"]))
    assert r.json()["items"][0]["new_values"] == {"ip": "127.0.0.1"}

    # system actions cannot be written by hand
    body["action"] = "create"
    assert client.post("/audit-logs", json=body, headers=auth(owner["jwt"])).status_code == 400

    outsider = login(client, uniq_email("outsider"))
    body["action"] = "logout"
    assert client.post("/audit-logs", json=body, headers=auth(outsider)).status_code == 403
