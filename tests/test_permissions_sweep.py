import pytest

from budgetup.models.enums import Role
from conftest import add_membership, auth, login, uniq_email, user_id_for

# (method, path template, body) for every org-scoped write; {target} is a plain member
WRITES = [
    ("post", "/organizations/{org}/invitations", {"email": "sweep@example.com", "role": "member"}),
    ("patch", "/organizations/{org}/members/{target}", {"role": "admin"}),
    ("delete", "/organizations/{org}/members/{target}", None),
]

READS = [
    ("get", "/organizations/{org}"),
    ("get", "/organizations/{org}/members"),
    ("get", "/organizations/{org}/invitations"),
    ("get", "/organizations/{org}/audit-logs"),
]

def _call(client, jwt: str, method: str, path: str, body: dict | None = None):
    kwargs = {"headers": auth(jwt)}
    if body is not None:
        kwargs["json"] = body
    return getattr(client, method)(path, **kwargs)

@pytest.fixture()
def org_roles(client, db_session, owner, org_id):
    jwts = {Role.owner: owner["jwt"]}
    for role in (Role.admin, Role.member):
        email = uniq_email(role.value)
        jwts[role] = login(client, email)
        add_membership(db_session, email, org_id, role)

    target = uniq_email("target")
    login(client, target)
    add_membership(db_session, target, org_id, Role.member)
    return jwts, str(user_id_for(db_session, target))

@pytest.mark.parametrize(
    "role, allowed",
    [
        (Role.member, {"/organizations/{org}", "/organizations/{org}/members"}),
        (Role.admin, {path for _, path in READS}),
        (Role.owner, {path for _, path in READS}),
    ],
)
def test_reads_by_role(client, org_id, org_roles, role, allowed):
    jwts, _ = org_roles
    for method, path in READS:
        r = _call(client, jwts[role], method, path.format(org=org_id))
        expected = 200 if path in allowed else 403
        assert r.status_code == expected, (role, path, r.text)

def test_members_cannot_write(client, org_id, org_roles):
    jwts, target = org_roles
    for method, path, body in WRITES:
        r = _call(client, jwts[Role.member], method, path.format(org=org_id, target=target), body)
        assert r.status_code == 403, (path, r.text)

def test_admin_writes_within_rank(client, org_id, org_roles):
    jwts, target = org_roles
    invite, promote, remove = WRITES

    assert _call(client, jwts[Role.admin], invite[0], invite[1].format(org=org_id), invite[2]).status_code == 200
    # promoting to admin is the owner's call
    assert _call(client, jwts[Role.admin], promote[0], promote[1].format(org=org_id, target=target), promote[2]).status_code == 403
    assert _call(client, jwts[Role.admin], remove[0], remove[1].format(org=org_id, target=target)).status_code == 200

def test_owner_writes(client, org_id, org_roles):
    jwts, target = org_roles
    for method, path, body in WRITES:
        r = _call(client, jwts[Role.owner], method, path.format(org=org_id, target=target), body)
        assert r.status_code == 200, (path, r.text)

def test_cross_org_writes_denied(client, org_id, org_roles):
    _, target = org_roles
    outsider = login(client, uniq_email("outsider"))
    client.post("/organizations", json={"name": "outsider-org"}, headers=auth(outsider))

    for method, path, body in WRITES:
        r = _call(client, outsider, method, path.format(org=org_id, target=target), body)
        assert r.status_code == 403, (path, r.text)
