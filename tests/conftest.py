"""Pytest shared fixtures."""
import os
import pathlib
import sys
import time
from typing import Optional

# Add project root to Python path
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# Configure test environment BEFORE any app imports
os.environ.setdefault("DEMO_MODE", "true")

import jwt
import pytest
import requests
from authlib.jose import JsonWebKey
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from jwt import PyJWKClient

from cfapi.config import AppConfig
from cfapi.flask_app import create_app
from tests.fakes import FakeClientBuilder, FakeCluster, FakeImagePusher

TEST_ISSUER = "https://login.example.org/realms/cf"
TEST_SERVER_URL = "https://api.example.org"


# ─────────────────────────────────────────────────────────────────────────────
# Network Guard Rails
# ─────────────────────────────────────────────────────────────────────────────
@pytest.fixture(autouse=True)
def _block_network(monkeypatch, request):
    """
    Prevent unit tests from making real HTTP calls.

    Integration tests are explicitly marked with @pytest.mark.integration and
    are allowed to perform real HTTP calls by skipping this fixture.
    """
    if request.node.get_closest_marker("integration"):
        return

    def _blocked(self, method, url, *args, **kwargs):
        raise RuntimeError(f"Unexpected HTTP {method} in unit test: {url}")

    monkeypatch.setattr(requests.Session, "request", _blocked)


# ─────────────────────────────────────────────────────────────────────────────
# Application
# ─────────────────────────────────────────────────────────────────────────────
@pytest.fixture()
def app_config():
    return AppConfig(
        demo_mode=True,
        server_url=TEST_SERVER_URL,
        request_timeout_seconds=30.0,
        root_namespace="cf",
        oidc_issuer=TEST_ISSUER,
        package_registry_base="registry.example.org/cf/packages",
    )


@pytest.fixture()
def cluster():
    """In-memory cluster shared by every scoped client of a test; alice is a CF admin."""
    return FakeCluster(admins={"alice"})


@pytest.fixture()
def client_builder(cluster):
    return FakeClientBuilder(cluster)


@pytest.fixture()
def image_pusher():
    return FakeImagePusher()


@pytest.fixture()
def flask_app(app_config, client_builder, image_pusher):
    app = create_app(config=app_config, build_client=client_builder, image_pusher=image_pusher)
    app.config.update(TESTING=True)
    return app


@pytest.fixture()
def client(flask_app):
    """Flask test client."""
    with flask_app.test_client() as client:
        yield client


# ─────────────────────────────────────────────────────────────────────────────
# RSA Key Pair / JWKS for JWT Testing
# ─────────────────────────────────────────────────────────────────────────────
@pytest.fixture(scope="session")
def rsa_key_pair():
    """Generate RSA key pair for JWT signing in tests."""
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)

    private_pem = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )
    public_pem = private_key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )

    return {
        "private_key": private_key,
        "private_pem": private_pem,
        "public_pem": public_pem,
    }


@pytest.fixture()
def jwks(monkeypatch, rsa_key_pair):
    """Serve the test public key from every PyJWKClient instead of the network."""
    jwk = JsonWebKey.import_key(rsa_key_pair["public_pem"], {"kty": "RSA"}).as_dict()
    jwk.update({"kid": "default-key-id", "use": "sig", "alg": "RS256"})
    key_set = {"keys": [jwk]}
    monkeypatch.setattr(PyJWKClient, "fetch_data", lambda self: key_set)
    return key_set


# ─────────────────────────────────────────────────────────────────────────────
# JWT Token Helpers
# ─────────────────────────────────────────────────────────────────────────────
def create_valid_jwt(
    rsa_key_pair: dict,
    issuer: str = TEST_ISSUER,
    sub: str = "alice",
    groups: Optional[list[str]] = None,
    exp_offset: int = 3600,
    kid: str = "default-key-id",
    **extra_claims,
) -> str:
    """Create a valid RS256-signed JWT for testing."""
    now = int(time.time())
    payload = {
        "iss": issuer,
        "sub": sub,
        "exp": now + exp_offset,
        "iat": now,
        "groups": groups if groups is not None else [],
    }
    payload.update(extra_claims)
    return jwt.encode(payload, rsa_key_pair["private_pem"], algorithm="RS256", headers={"kid": kid})


@pytest.fixture()
def auth_headers(rsa_key_pair, jwks):
    """Factory for Authorization headers carrying a valid token for ``sub``."""

    def _headers(sub: str = "alice", groups: Optional[list[str]] = None) -> dict:
        return {"Authorization": f"Bearer {create_valid_jwt(rsa_key_pair, sub=sub, groups=groups)}"}

    return _headers


# ─────────────────────────────────────────────────────────────────────────────
# Pytest Configuration
# ─────────────────────────────────────────────────────────────────────────────
def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "integration: needs a running API server (API_SERVER_ROOT) and real tokens"
    )
