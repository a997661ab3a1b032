"""Domain records: per-request projections of cluster custom resources.

Records are only ever built by repositories from cluster objects
(``from_resource``). Related resources are referenced by GUID, except
``RouteRecord.domain`` which the caller attaches after fetching the domain
separately.
"""
from __future__ import annotations
from dataclasses import dataclass, field, replace
from typing import Any, Optional

APP_STATE_STOPPED = "STOPPED"
APP_STATE_STARTED = "STARTED"

PACKAGE_STATE_AWAITING_UPLOAD = "AWAITING_UPLOAD"
PACKAGE_STATE_READY = "READY"


def _metadata(resource: dict) -> dict:
    return resource.get("metadata") or {}


def _spec(resource: dict) -> dict:
    return resource.get("spec") or {}


def _common(resource: dict) -> dict[str, Any]:
    """Fields every record takes from ``metadata``."""
    metadata = _metadata(resource)
    # Last write recorded by the API server's field manager bookkeeping
    update_times = [str(entry["time"]) for entry in metadata.get("managedFields") or [] if entry.get("time")]
    return {
        "guid": metadata["name"],
        "created_at": str(metadata.get("creationTimestamp") or ""),
        "updated_at": max(update_times, default=""),
        "labels": dict(metadata.get("labels") or {}),
        "annotations": dict(metadata.get("annotations") or {}),
    }


@dataclass(frozen=True)
class OrgRecord:
    guid: str
    name: str
    suspended: bool = False
    created_at: str = ""
    updated_at: str = ""
    labels: dict[str, str] = field(default_factory=dict)
    annotations: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_resource(cls, resource: dict) -> "OrgRecord":
        spec = _spec(resource)
        return cls(name=spec["displayName"], suspended=bool(spec.get("suspended", False)), **_common(resource))


@dataclass(frozen=True)
class SpaceRecord:
    guid: str
    name: str
    org_guid: str
    created_at: str = ""
    updated_at: str = ""
    labels: dict[str, str] = field(default_factory=dict)
    annotations: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_resource(cls, resource: dict) -> "SpaceRecord":
        return cls(
            name=_spec(resource)["displayName"],
            org_guid=_metadata(resource)["namespace"],
            **_common(resource),
        )


@dataclass(frozen=True)
class DomainRecord:
    guid: str
    name: str = ""
    created_at: str = ""
    updated_at: str = ""
    labels: dict[str, str] = field(default_factory=dict)
    annotations: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_resource(cls, resource: dict) -> "DomainRecord":
        return cls(name=_spec(resource)["name"], **_common(resource))


@dataclass(frozen=True)
class Destination:
    guid: str
    app_guid: str
    process_type: str = "web"
    port: int = 8080
    protocol: str = "http1"

    @classmethod
    def from_spec(cls, spec: dict) -> "Destination":
        return cls(
            guid=spec["guid"],
            app_guid=(spec.get("appRef") or {})["name"],
            process_type=spec.get("processType") or "web",
            port=int(spec.get("port") or 8080),
            protocol=spec.get("protocol") or "http1",
        )


@dataclass(frozen=True)
class RouteRecord:
    """A route. ``domain`` initially only carries the domain GUID."""

    guid: str
    space_guid: str
    domain: DomainRecord
    host: str = ""
    path: str = ""
    protocol: str = "http"
    port: Optional[int] = None
    destinations: tuple[Destination, ...] = ()
    created_at: str = ""
    updated_at: str = ""
    labels: dict[str, str] = field(default_factory=dict)
    annotations: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_resource(cls, resource: dict) -> "RouteRecord":
        spec = _spec(resource)
        port = spec.get("port")
        return cls(
            space_guid=_metadata(resource)["namespace"],
            domain=DomainRecord(guid=spec["domainRef"]["name"]),
            host=spec.get("host") or "",
            path=spec.get("path") or "",
            protocol=spec.get("protocol") or "http",
            port=int(port) if port is not None else None,
            destinations=tuple(Destination.from_spec(d) for d in spec.get("destinations") or []),
            **_common(resource),
        )

    def with_domain(self, domain: DomainRecord) -> "RouteRecord":
        """Return a copy with the separately fetched domain attached."""
        return replace(self, domain=domain)


@dataclass(frozen=True)
class AppRecord:
    guid: str
    name: str
    space_guid: str
    state: str = APP_STATE_STOPPED
    lifecycle_type: str = "buildpack"
    buildpacks: tuple[str, ...] = ()
    stack: str = ""
    droplet_guid: Optional[str] = None
    created_at: str = ""
    updated_at: str = ""
    labels: dict[str, str] = field(default_factory=dict)
    annotations: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_resource(cls, resource: dict) -> "AppRecord":
        spec = _spec(resource)
        lifecycle = spec.get("lifecycle") or {}
        lifecycle_data = lifecycle.get("data") or {}
        droplet_ref = spec.get("currentDropletRef") or {}
        return cls(
            name=spec["displayName"],
            space_guid=_metadata(resource)["namespace"],
            state=spec.get("desiredState") or APP_STATE_STOPPED,
            lifecycle_type=lifecycle.get("type") or "buildpack",
            buildpacks=tuple(lifecycle_data.get("buildpacks") or ()),
            stack=lifecycle_data.get("stack") or "",
            droplet_guid=droplet_ref.get("name") or None,
            **_common(resource),
        )


@dataclass(frozen=True)
class PackageRecord:
    guid: str
    app_guid: str
    space_guid: str
    type: str = "bits"
    image: str = ""
    created_at: str = ""
    updated_at: str = ""
    labels: dict[str, str] = field(default_factory=dict)
    annotations: dict[str, str] = field(default_factory=dict)

    @property
    def state(self) -> str:
        return PACKAGE_STATE_READY if self.image else PACKAGE_STATE_AWAITING_UPLOAD

    @classmethod
    def from_resource(cls, resource: dict) -> "PackageRecord":
        spec = _spec(resource)
        registry = (spec.get("source") or {}).get("registry") or {}
        return cls(
            app_guid=spec["appRef"]["name"],
            space_guid=_metadata(resource)["namespace"],
            type=spec.get("type") or "bits",
            image=registry.get("image") or "",
            **_common(resource),
        )
