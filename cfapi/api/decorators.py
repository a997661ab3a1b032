"""
Flask decorators for authentication.

Validates ``Authorization: Bearer <jwt>`` tokens issued by the OIDC provider
the Kubernetes API server trusts, and turns the claims into the ``Identity``
every cluster call impersonates. Claim mapping follows the API server's OIDC
authenticator (``--oidc-username-claim``, ``--oidc-username-prefix``,
``--oidc-groups-claim``) so the impersonated user is the one RBAC bindings
name.

No authorization happens here: the cluster decides what the identity may do.

Security:
- RSA-SHA256 signature verification via JWKS (RFC 7517)
- Expiration, issuer and (optional) audience validation (RFC 7519)
- JWKS keys cached per application
"""

import hashlib
import logging
from functools import wraps
from typing import Any, Dict, List

import jwt
from jwt import PyJWKClient
from jwt.exceptions import (
    DecodeError,
    ExpiredSignatureError,
    InvalidAudienceError,
    InvalidIssuerError,
    InvalidSignatureError,
    InvalidTokenError,
    PyJWKClientError,
)
from flask import current_app, g, request

from cfapi.core.errors import InvalidAuthError, NotAuthenticatedError
from cfapi.core.identity import Identity

logger = logging.getLogger(__name__)

JWKS_EXTENSION = "cfapi.jwks_client"


class TokenValidationError(Exception):
    """Exception raised when JWT token validation fails."""
    pass


def get_jwks_client() -> PyJWKClient:
    """
    Get the application's JWKS client, creating it on first use.

    Returns:
        PyJWKClient: Client for the configured issuer's key set

    Security:
        - Caches up to 16 keys
        - Refreshes cache every hour
        - Uses kid (Key ID) from JWT header to select correct key
    """
    jwks_client = current_app.extensions.get(JWKS_EXTENSION)
    if jwks_client is None:
        cfg = current_app.config["APP_CONFIG"]
        jwks_url = cfg.jwks_url_resolved
        logger.info(f"Initializing JWKS client for: {jwks_url}")
        jwks_client = PyJWKClient(
            jwks_url,
            cache_keys=True,
            max_cached_keys=16,
            lifespan=3600,
            headers={"User-Agent": "cf-k8s-api/1.0"},
        )
        current_app.extensions[JWKS_EXTENSION] = jwks_client
    return jwks_client


def validate_jwt_token(token: str) -> Dict[str, Any]:
    """
    Validate JWT Bearer token.

    Validations performed:
    1. Signature verification (RS256 via JWKS)
    2. Expiration (exp claim), issued-at (iat claim) present
    3. Issuer (iss claim)
    4. Audience (aud claim, only if OIDC_AUDIENCE is configured)

    Args:
        token: JWT token string (without "Bearer " prefix)

    Returns:
        dict: Validated token claims

    Raises:
        TokenValidationError: If any validation fails
    """
    cfg = current_app.config["APP_CONFIG"]

    try:
        signing_key = get_jwks_client().get_signing_key_from_jwt(token)
        claims = jwt.decode(
            token,
            signing_key.key,
            algorithms=["RS256"],
            issuer=cfg.oidc_issuer,
            audience=cfg.oidc_audience or None,
            options={
                "verify_signature": True,
                "verify_exp": True,
                "verify_iss": True,
                "verify_aud": bool(cfg.oidc_audience),
                "require": ["exp", "iat"],
            },
            leeway=5,
        )
    except ExpiredSignatureError as e:
        raise TokenValidationError("Token expired (exp claim)") from e
    except InvalidIssuerError as e:
        raise TokenValidationError(f"Invalid issuer: {e}") from e
    except InvalidAudienceError as e:
        raise TokenValidationError(f"Invalid audience (token not for this API): {e}") from e
    except InvalidSignatureError as e:
        raise TokenValidationError("Invalid signature (token tampered or wrong key)") from e
    except DecodeError as e:
        raise TokenValidationError(f"Token decode error (malformed JWT): {e}") from e
    except (InvalidTokenError, PyJWKClientError) as e:
        raise TokenValidationError(f"Token validation failed: {e}") from e

    logger.debug(f"JWT validated for subject: {claims.get('sub')}")
    return claims


def identity_from_claims(claims: Dict[str, Any]) -> Identity:
    """Map validated claims to the identity the cluster will see.

    Raises:
        TokenValidationError: Username claim missing or not a string
    """
    cfg = current_app.config["APP_CONFIG"]

    username = claims.get(cfg.username_claim)
    if not isinstance(username, str) or not username:
        raise TokenValidationError(f"Token has no '{cfg.username_claim}' claim")

    groups = claims.get(cfg.groups_claim) or []
    if isinstance(groups, str):
        groups = [groups]
    groups: List[str] = [group for group in groups if isinstance(group, str)]

    return Identity.from_username(f"{cfg.username_prefix}{username}", groups=groups)


def _token_fingerprint(token: str) -> str:
    return hashlib.sha256(token.encode()).hexdigest()[:12]


def require_identity(fn):
    """
    Decorator requiring a valid Bearer token; stores the caller in ``g.identity``.

    Raises:
        NotAuthenticatedError: No Authorization header
        InvalidAuthError: Malformed header or invalid token

    Example:
        @bp.route("/v3/organizations")
        @require_identity
        def list_orgs():
            repo.list_orgs(g.identity)
    """
    @wraps(fn)
    def wrapper(*args, **kwargs):
        auth_header = request.headers.get("Authorization", "")

        if not auth_header:
            logger.warning(f"Request to {request.path} missing Authorization header")
            raise NotAuthenticatedError()

        scheme, _, token = auth_header.partition(" ")
        token = token.strip()
        if scheme.lower() != "bearer" or not token:
            logger.warning(f"Request to {request.path} with invalid Authorization format")
            raise InvalidAuthError("expected 'Bearer <token>'")

        try:
            g.identity = identity_from_claims(validate_jwt_token(token))
        except TokenValidationError as e:
            logger.warning(f"JWT validation failed for token {_token_fingerprint(token)}: {e}")
            raise InvalidAuthError(str(e)) from e

        return fn(*args, **kwargs)

    return wrapper
