"""Tests for bearer-token authentication and claim mapping."""
from dataclasses import replace
from typing import Any, Dict, get_type_hints

import pytest
from flask import g, jsonify

from cfapi.api.decorators import identity_from_claims, require_identity, validate_jwt_token
from tests.conftest import create_valid_jwt

WHOAMI_PATH = "/test/whoami"


@pytest.fixture()
def whoami_app(flask_app):
    @flask_app.route(WHOAMI_PATH)
    @require_identity
    def whoami():
        identity = g.identity
        return jsonify({"name": identity.name, "kind": identity.kind, "groups": list(identity.groups)})

    return flask_app


@pytest.fixture()
def whoami(whoami_app):
    with whoami_app.test_client() as client:
        yield client


def _error(response) -> dict:
    return response.get_json()["errors"][0]


def test_missing_header_is_not_authenticated(whoami):
    response = whoami.get(WHOAMI_PATH)
    assert response.status_code == 401
    assert _error(response) == {"code": 10002, "title": "CF-NotAuthenticated", "detail": "Authentication error"}


@pytest.mark.parametrize("header", ["Basic dXNlcjpwYXNz", "Bearer", "Bearer   ", "token-without-scheme"])
def test_malformed_header_is_invalid_auth(whoami, header):
    response = whoami.get(WHOAMI_PATH, headers={"Authorization": header})
    assert response.status_code == 401
    assert _error(response)["code"] == 1000
    assert _error(response)["title"] == "CF-InvalidAuthToken"


def test_garbage_token_is_invalid_auth(whoami, jwks):
    response = whoami.get(WHOAMI_PATH, headers={"Authorization": "Bearer not.a.jwt"})
    assert response.status_code == 401
    assert _error(response)["code"] == 1000


def test_valid_token_sets_identity(whoami, auth_headers):
    response = whoami.get(WHOAMI_PATH, headers=auth_headers(sub="alice", groups=["cf-admins"]))
    assert response.status_code == 200
    assert response.get_json() == {"name": "alice", "kind": "user", "groups": ["cf-admins"]}


def test_service_account_subject(whoami, auth_headers):
    response = whoami.get(WHOAMI_PATH, headers=auth_headers(sub="system:serviceaccount:cf:deployer"))
    assert response.get_json()["kind"] == "service-account"


def test_expired_token(whoami, rsa_key_pair, jwks):
    token = create_valid_jwt(rsa_key_pair, exp_offset=-3600)
    response = whoami.get(WHOAMI_PATH, headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401
    assert _error(response)["code"] == 1000


def test_wrong_issuer(whoami, rsa_key_pair, jwks):
    token = create_valid_jwt(rsa_key_pair, issuer="https://evil.example.com/realms/cf")
    response = whoami.get(WHOAMI_PATH, headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401


def test_unknown_key_id(whoami, rsa_key_pair, jwks):
    token = create_valid_jwt(rsa_key_pair, kid="rotated-away")
    response = whoami.get(WHOAMI_PATH, headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401


def test_audience_enforced_when_configured(whoami_app, rsa_key_pair, jwks):
    whoami_app.config["APP_CONFIG"] = replace(whoami_app.config["APP_CONFIG"], oidc_audience="cf-api")
    client = whoami_app.test_client()

    wrong = create_valid_jwt(rsa_key_pair, aud="someone-else")
    assert client.get(WHOAMI_PATH, headers={"Authorization": f"Bearer {wrong}"}).status_code == 401

    right = create_valid_jwt(rsa_key_pair, aud="cf-api")
    assert client.get(WHOAMI_PATH, headers={"Authorization": f"Bearer {right}"}).status_code == 200


def test_username_prefix_and_claims(whoami_app, rsa_key_pair, jwks):
    whoami_app.config["APP_CONFIG"] = replace(
        whoami_app.config["APP_CONFIG"],
        username_claim="email",
        username_prefix="oidc:",
        groups_claim="roles",
    )
    token = create_valid_jwt(rsa_key_pair, email="alice@example.org", roles="cf-admins")
    response = whoami_app.test_client().get(WHOAMI_PATH, headers={"Authorization": f"Bearer {token}"})
    assert response.get_json() == {"name": "oidc:alice@example.org", "kind": "user", "groups": ["cf-admins"]}


def test_missing_username_claim(whoami_app, rsa_key_pair, jwks):
    whoami_app.config["APP_CONFIG"] = replace(whoami_app.config["APP_CONFIG"], username_claim="email")
    token = create_valid_jwt(rsa_key_pair)
    response = whoami_app.test_client().get(WHOAMI_PATH, headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401
    assert _error(response)["code"] == 1000


def test_claims_are_typed_as_any_values():
    assert get_type_hints(validate_jwt_token)["return"] == Dict[str, Any]
    assert get_type_hints(identity_from_claims)["claims"] == Dict[str, Any]
