"""End-to-end organization tests against a running API server.

Requires API_SERVER_ROOT plus two bearer tokens: CF_ADMIN_TOKEN for a user
allowed to create orgs, and CF_USER_TOKEN for a user with no role bindings.
"""
import os
import uuid

import pytest
import requests

from scripts.seed_orgs import create_org, run_batch

API = os.environ.get("API_SERVER_ROOT", "")
ADMIN_TOKEN = os.environ.get("CF_ADMIN_TOKEN", "")
USER_TOKEN = os.environ.get("CF_USER_TOKEN", "")

pytestmark = [
    pytest.mark.integration,
    pytest.mark.skipif(not (API and ADMIN_TOKEN and USER_TOKEN), reason="needs API_SERVER_ROOT and tokens"),
]


def _headers(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def _name(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:8]}"


def test_admin_creates_org():
    name = _name("e2e-org")
    org = create_org(API, ADMIN_TOKEN, name)
    assert org["name"] == name

    resp = requests.get(f"{API}/v3/organizations/{org['guid']}", headers=_headers(ADMIN_TOKEN), timeout=30)
    assert resp.status_code == 200


def test_duplicate_org_name_is_rejected():
    name = _name("e2e-dup")
    create_org(API, ADMIN_TOKEN, name)

    resp = requests.post(f"{API}/v3/organizations", json={"name": name}, headers=_headers(ADMIN_TOKEN), timeout=30)

    assert resp.status_code == 422
    assert resp.json()["errors"][0]["detail"] == f"Organization '{name}' already exists."


def test_unprivileged_user_cannot_create_org():
    resp = requests.post(
        f"{API}/v3/organizations", json={"name": _name("e2e-denied")}, headers=_headers(USER_TOKEN), timeout=30
    )
    assert resp.status_code == 403


def test_unprivileged_user_sees_no_new_orgs():
    names = [_name("e2e-list") for _ in range(3)]
    run_batch([lambda name=name: create_org(API, ADMIN_TOKEN, name) for name in names])

    resp = requests.get(
        f"{API}/v3/organizations", params={"names": ",".join(names)}, headers=_headers(USER_TOKEN), timeout=30
    )

    assert resp.status_code == 200
    assert resp.json()["resources"] == []


def test_missing_token_is_not_authenticated():
    resp = requests.get(f"{API}/v3/organizations", timeout=30)
    assert resp.status_code == 401
    assert resp.json()["errors"][0]["code"] == 10002
