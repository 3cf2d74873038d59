from conftest import auth, create_org, login, uniq_email

def test_tenant_isolation_invitations(client):
    a = login(client, uniq_email("a"))
    b = login(client, uniq_email("b"))

    org_a = create_org(client, a, "org-a")
    create_org(client, b, "org-b")

    r = client.post(f"/organizations/{org_a}/invitations", json={"email": uniq_email("x")}, headers=auth(a))
    assert r.status_code == 200
    invitation_id = r.json()["invitation"]["id"]

    # b is not a member of org_a, should be blocked
    r = client.get(f"/organizations/{org_a}/invitations", headers=auth(b))
    assert r.status_code == 403

    # also block direct access by id (even if you guessed it)
    assert client.get(f"/invitations/{invitation_id}", headers=auth(b)).status_code == 403
    r = client.patch(f"/invitations/{invitation_id}", json={"role": "admin"}, headers=auth(b))
    assert r.status_code == 403
    assert client.delete(f"/invitations/{invitation_id}", headers=auth(b)).status_code == 403

    r = client.get("/organizations", headers=auth(b))
    assert org_a not in {o["id"] for o in r.json()}

def test_unknown_organization(client, owner):
    missing = "00000000-0000-0000-0000-000000000002"
    r = client.get(f"/organizations/{missing}", headers=auth(owner["jwt"]))
    assert r.status_code == 404
    assert r.json() == {"error": "organization not found"}
