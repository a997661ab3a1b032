"""Settings loader with environment variable and Docker secrets integration."""
from __future__ import annotations
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

SECRETS_DIR = Path("/run/secrets")

DEMO_OIDC_ISSUER = "http://localhost:8080/realms/cf"


def _load_secret_from_file(secret_name: str, env_var: str | None = None) -> str | None:
    """
    Load secret from /run/secrets (Docker/Kubernetes secrets pattern).

    Priority:
    1. /run/secrets/{secret_name} (secrets mount)
    2. Environment variable (fallback)

    Args:
        secret_name: Name of the secret file in /run/secrets
        env_var: Optional environment variable name to check as fallback

    Returns:
        Secret value or None if not found
    """
    secret_file = SECRETS_DIR / secret_name

    if secret_file.is_file():
        try:
            secret_value = secret_file.read_text().strip()
            if secret_value:
                print(f"[settings] ✓ Loaded {secret_name} from {SECRETS_DIR}")
                return secret_value
        except OSError as e:
            print(f"[settings] ✗ Failed to read {secret_file}: {e}")

    if env_var:
        secret_value = os.getenv(env_var)
        if secret_value:
            print(f"[settings] ✓ Loaded {env_var} from environment (fallback)")
            return secret_value

    return None


@dataclass
class AppConfig:
    """Application configuration container."""
    # Mode
    demo_mode: bool = False

    # API
    server_url: str = "http://localhost:9000"
    request_timeout_seconds: float = 30.0

    # Cluster
    root_namespace: str = "cf"
    kubeconfig: str = "~/.kube/config"

    # OIDC (mirrors the Kubernetes API server's OIDC authenticator flags)
    oidc_issuer: str = ""
    oidc_jwks_url: str = ""
    oidc_audience: str = ""
    username_claim: str = "sub"
    username_prefix: str = ""
    groups_claim: str = "groups"

    # Packages
    package_registry_base: str = ""
    registry_username: str = ""
    registry_password: str = ""
    registry_insecure: bool = False
    default_lifecycle_stack: str = "cflinuxfs3"

    @property
    def jwks_url_resolved(self) -> str:
        """JWKS endpoint: explicit setting, else the Keycloak-style path under the issuer."""
        if self.oidc_jwks_url:
            return self.oidc_jwks_url
        return f"{self.oidc_issuer.rstrip('/')}/protocol/openid-connect/certs"


def _get_or_generate(var_name: str, demo_default: Optional[str] = None, required: bool = True, demo_mode: bool = False) -> str:
    """Get environment variable or use demo default."""
    value = os.environ.get(var_name)
    if value:
        return value

    if demo_mode and demo_default is not None:
        print(f"[demo-mode] Using default for {var_name}")
        return demo_default

    if not required:
        return ""

    raise RuntimeError(f"Environment variable {var_name} is required in production mode.")


def _env_bool(var_name: str, default: bool = False) -> bool:
    return os.environ.get(var_name, str(default)).strip().lower() == "true"


def _env_float(var_name: str, default: float) -> float:
    raw = os.environ.get(var_name)
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        raise RuntimeError(f"Environment variable {var_name} must be a number, got '{raw}'.") from exc
    if value <= 0:
        raise RuntimeError(f"Environment variable {var_name} must be positive, got '{raw}'.")
    return value


def load_settings() -> AppConfig:
    """Load application settings from environment and /run/secrets."""
    demo_mode = _env_bool("DEMO_MODE")

    server_url = os.environ.get("SERVER_URL", "http://localhost:9000").rstrip("/")
    request_timeout_seconds = _env_float("REQUEST_TIMEOUT_SECONDS", 30.0)

    root_namespace = os.environ.get("ROOT_NAMESPACE", "cf")
    kubeconfig = os.environ.get("KUBECONFIG", "~/.kube/config")

    oidc_issuer = _get_or_generate(
        "OIDC_ISSUER",
        demo_default=DEMO_OIDC_ISSUER,
        demo_mode=demo_mode,
    ).rstrip("/")
    oidc_jwks_url = os.environ.get("OIDC_JWKS_URL", "")
    oidc_audience = os.environ.get("OIDC_AUDIENCE", "")
    username_claim = os.environ.get("OIDC_USERNAME_CLAIM", "sub")
    username_prefix = os.environ.get("OIDC_USERNAME_PREFIX", "")
    groups_claim = os.environ.get("OIDC_GROUPS_CLAIM", "groups")

    package_registry_base = os.environ.get("PACKAGE_REGISTRY_BASE", "").rstrip("/")
    registry_username = os.environ.get("PACKAGE_REGISTRY_USERNAME", "")
    registry_password = _load_secret_from_file("package_registry_password", "PACKAGE_REGISTRY_PASSWORD") or ""
    registry_insecure = _env_bool("PACKAGE_REGISTRY_INSECURE")
    default_lifecycle_stack = os.environ.get("DEFAULT_LIFECYCLE_STACK", "cflinuxfs3")

    if not package_registry_base:
        print("[settings] ⚠️ PACKAGE_REGISTRY_BASE not set; package uploads will fail")

    mode_label = "DEMO" if demo_mode else "PRODUCTION"
    print(f"[settings] Mode={mode_label}; root_namespace={root_namespace}; issuer={oidc_issuer}")

    if demo_mode:
        print("[settings] WARNING: Demo defaults in use. Do not deploy with these defaults.")

    return AppConfig(
        demo_mode=demo_mode,
        server_url=server_url,
        request_timeout_seconds=request_timeout_seconds,
        root_namespace=root_namespace,
        kubeconfig=kubeconfig,
        oidc_issuer=oidc_issuer,
        oidc_jwks_url=oidc_jwks_url,
        oidc_audience=oidc_audience,
        username_claim=username_claim,
        username_prefix=username_prefix,
        groups_claim=groups_claim,
        package_registry_base=package_registry_base,
        registry_username=registry_username,
        registry_password=registry_password,
        registry_insecure=registry_insecure,
        default_lifecycle_stack=default_lifecycle_stack,
    )
