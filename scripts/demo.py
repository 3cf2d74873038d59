from __future__ import annotations

import os
import time

import requests
from rich import print

BASE = os.getenv("API_BASE_URL", "http://127.0.0.1:8000")

def post(path: str, *, jwt: str | None = None, json: dict | None = None) -> requests.Response:
    headers = {"content-type": "application/json"}
    if jwt:
        headers["authorization"] = f"bearer {jwt}"
    return requests.post(f"{BASE}{path}", headers=headers, json=json, timeout=10)

def get(path: str, *, jwt: str | None = None, params: dict | None = None) -> requests.Response:
    headers = {}
    if jwt:
        headers["authorization"] = f"bearer {jwt}"
    return requests.get(f"{BASE}{path}", headers=headers, params=params, timeout=10)

def login(email: str) -> str:
    r = post("/auth/request-link", json={"email": email})
    r.raise_for_status()
    token = r.json()["token"]

    r2 = post("/auth/redeem", json={"token": token})
    r2.raise_for_status()
    return r2.json()["access_token"]

def wait_ready(timeout_s: float = 30.0) -> None:
    deadline = time.time() + timeout_s
    last_err: requests.RequestException | None = None

    while time.time() < deadline:
        try:
            r = get("/ready")
            if r.status_code == 200:
                return
        except requests.RequestException as e:
            last_err = e
        time.sleep(0.5)

    if last_err:
        raise RuntimeError(f"api not ready after {timeout_s}s (last error: {last_err})")
    raise RuntimeError(f"api not ready after {timeout_s}s")

def main() -> None:
    print("[bold]demo: auth -> create org -> invite -> details -> accept -> validate permissions[/bold]")

    wait_ready()
    print("[green]ready ok[/green]")

    stamp = int(time.time())
    owner_email = f"owner+{stamp}@example.com"
    invitee_email = f"invitee+{stamp}@example.com"

    owner_jwt = login(owner_email)
    print("owner authed")

    r = post("/organizations", jwt=owner_jwt, json={"name": f"demo household {stamp}"})
    r.raise_for_status()
    org_id = r.json()["id"]
    print("created org:", org_id)

    r = post(f"/organizations/{org_id}/invitations", jwt=owner_jwt, json={"email": invitee_email, "role": "admin"})
    r.raise_for_status()
    code = r.json()["invitation"]["code"]
    print("invited:", invitee_email, "code:", code)

    # public lookup, no auth
    r = get("/invitations/details", params={"code": code})
    r.raise_for_status()
    print("invitation status:", r.json()["invitation"]["status"])

    invitee_jwt = login(invitee_email)
    r = post("/invitations/accept", jwt=invitee_jwt, json={"code": code})
    r.raise_for_status()
    print(r.json()["message"])

    r = post("/invitations/accept", jwt=invitee_jwt, json={"code": code})
    print("second accept:", r.status_code, r.json())

    r = post(
        "/permissions/validate",
        jwt=invitee_jwt,
        json={"organizationId": org_id, "actions": ["invite_users", "manage_admins", "view_audit_logs"]},
    )
    r.raise_for_status()
    print("permissions:", r.json())

    r = get(f"/organizations/{org_id}/audit-logs", jwt=owner_jwt)
    r.raise_for_status()
    print("audit entries:", r.json()["total"])
    print("[bold green]demo complete[/bold green]")

if __name__ == "__main__":
    main()
