"""Shared plumbing for the v3 resource handlers.

Handlers stay thin: parse the request with these helpers, call one
repository per record with ``g.identity`` and the remaining request time,
and render with a presenter. Taxonomy errors propagate to the error
handlers registered in ``cfapi.api.errors``.
"""
from __future__ import annotations
import time
from dataclasses import dataclass
from typing import Any, Optional

from flask import current_app, g, request

from cfapi.core.errors import MessageParseError, UnprocessableEntityError
from cfapi.core.repositories import (
    AppRepository,
    DomainRepository,
    OrgRepository,
    PackageRepository,
    RouteRepository,
    SpaceRepository,
)

REPOSITORIES_EXTENSION = "cfapi.repositories"
IMAGE_PUSHER_EXTENSION = "cfapi.image_pusher"


@dataclass
class Repositories:
    orgs: OrgRepository
    spaces: SpaceRepository
    domains: DomainRepository
    routes: RouteRepository
    apps: AppRepository
    packages: PackageRepository

    @classmethod
    def build(cls, build_client, root_namespace: str) -> "Repositories":
        """One repository per kind, all sharing the scoped-client factory."""
        return cls(
            orgs=OrgRepository(build_client, root_namespace),
            spaces=SpaceRepository(build_client, root_namespace),
            domains=DomainRepository(build_client, root_namespace),
            routes=RouteRepository(build_client, root_namespace),
            apps=AppRepository(build_client, root_namespace),
            packages=PackageRepository(build_client, root_namespace),
        )


def repositories() -> Repositories:
    return current_app.extensions[REPOSITORIES_EXTENSION]


def image_pusher():
    return current_app.extensions[IMAGE_PUSHER_EXTENSION]


def app_config():
    return current_app.config["APP_CONFIG"]


def base_url() -> str:
    return app_config().server_url


def start_request_clock() -> None:
    g.request_started = time.monotonic()


def remaining_timeout() -> float:
    """Seconds left before the request deadline; every cluster call gets this."""
    started = g.get("request_started")
    budget = float(app_config().request_timeout_seconds)
    if started is None:
        return budget
    return budget - (time.monotonic() - started)


def json_body() -> dict:
    """Request body as a JSON object.

    Raises:
        MessageParseError: Body missing, not JSON, or not an object
    """
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        raise MessageParseError()
    return body


def required_string(body: dict, key: str, label: Optional[str] = None) -> str:
    label = label or key.capitalize()
    value = body.get(key)
    if value is None:
        raise UnprocessableEntityError(f"{label} can't be blank")
    if not isinstance(value, str):
        raise UnprocessableEntityError(f"{label} must be a string")
    if not value.strip():
        raise UnprocessableEntityError(f"{label} can't be blank")
    return value


def optional_string(body: dict, key: str, default: str = "", label: Optional[str] = None) -> str:
    value = body.get(key)
    if value is None:
        return default
    if not isinstance(value, str):
        raise UnprocessableEntityError(f"{label or key.capitalize()} must be a string")
    return value


def optional_bool(body: dict, key: str, default: bool = False) -> bool:
    value = body.get(key)
    if value is None:
        return default
    if not isinstance(value, bool):
        raise UnprocessableEntityError(f"{key.capitalize()} must be a boolean")
    return value


def metadata_maps(body: dict) -> tuple[dict[str, str], dict[str, str]]:
    """Labels and annotations from an optional ``metadata`` object."""
    metadata = body.get("metadata") or {}
    if not isinstance(metadata, dict):
        raise UnprocessableEntityError("Metadata must be an object")
    maps = []
    for key in ("labels", "annotations"):
        values = metadata.get(key) or {}
        if not isinstance(values, dict) or not all(isinstance(v, str) for v in values.values()):
            raise UnprocessableEntityError(f"Metadata {key} must be an object of strings")
        maps.append(dict(values))
    return maps[0], maps[1]


def relationship_guid(body: dict, name: str) -> str:
    """GUID of ``relationships.<name>.data.guid``."""
    data: Any = ((body.get("relationships") or {}).get(name) or {}).get("data")
    guid = data.get("guid") if isinstance(data, dict) else None
    if not isinstance(guid, str) or not guid:
        raise UnprocessableEntityError(f"Relationships {name.capitalize()} must be a relationship with a guid")
    return guid


def query_list(name: str) -> list[str]:
    """Comma-separated query parameter as a list (empty when absent)."""
    raw = request.args.get(name, "")
    return [value.strip() for value in raw.split(",") if value.strip()]


def sorted_records(records):
    """Stable output order; the cluster guarantees none."""
    return sorted(records, key=lambda record: (record.created_at, record.guid))


def accepted_delete(kind: str, guid: str):
    """202 response pointing at the deletion job."""
    return "", 202, {"Location": f"{base_url()}/v3/jobs/{kind}.delete~{guid}"}
