"""Records to CF v3 JSON.

Presenters are pure: same record and base URL, same output. Collections
(labels, annotations, destinations, resources) are always present, never
null. Hyperlinks are the configured server URL plus the canonical path.
"""
from __future__ import annotations
from typing import Callable, Iterable, Optional
from urllib.parse import urlencode

from cfapi.core.repositories.records import (
    AppRecord,
    Destination,
    DomainRecord,
    OrgRecord,
    PackageRecord,
    RouteRecord,
    SpaceRecord,
)


def _link(base_url: str, path: str, **extra) -> dict:
    link = {"href": f"{base_url}{path}"}
    link.update(extra)
    return link


def _relationship(guid: Optional[str]) -> dict:
    return {"data": {"guid": guid} if guid else None}


def _metadata(record) -> dict:
    return {"labels": dict(record.labels or {}), "annotations": dict(record.annotations or {})}


def route_url(route: RouteRecord) -> str:
    """External URL of a route, derived from its host and attached domain."""
    if route.host:
        return f"{route.host}.{route.domain.name}"
    return route.domain.name


def present_org(record: OrgRecord, base_url: str) -> dict:
    path = f"/v3/organizations/{record.guid}"
    return {
        "guid": record.guid,
        "created_at": record.created_at,
        "updated_at": record.updated_at,
        "name": record.name,
        "suspended": record.suspended,
        "relationships": {},
        "metadata": _metadata(record),
        "links": {
            "self": _link(base_url, path),
            "domains": _link(base_url, f"{path}/domains"),
            "default_domain": _link(base_url, f"{path}/domains/default"),
        },
    }


def present_space(record: SpaceRecord, base_url: str) -> dict:
    return {
        "guid": record.guid,
        "created_at": record.created_at,
        "updated_at": record.updated_at,
        "name": record.name,
        "relationships": {"organization": _relationship(record.org_guid)},
        "metadata": _metadata(record),
        "links": {
            "self": _link(base_url, f"/v3/spaces/{record.guid}"),
            "organization": _link(base_url, f"/v3/organizations/{record.org_guid}"),
        },
    }


def present_domain(record: DomainRecord, base_url: str) -> dict:
    return {
        "guid": record.guid,
        "created_at": record.created_at,
        "updated_at": record.updated_at,
        "name": record.name,
        "internal": False,
        "router_group": None,
        "supported_protocols": ["http"],
        "relationships": {
            "organization": {"data": None},
            "shared_organizations": {"data": []},
        },
        "metadata": _metadata(record),
        "links": {
            "self": _link(base_url, f"/v3/domains/{record.guid}"),
            "route_reservations": _link(base_url, f"/v3/domains/{record.guid}/route_reservations"),
        },
    }


def _present_destination(destination: Destination) -> dict:
    return {
        "guid": destination.guid,
        "app": {"guid": destination.app_guid, "process": {"type": destination.process_type}},
        "weight": None,
        "port": destination.port,
        "protocol": destination.protocol,
    }


def present_route(record: RouteRecord, base_url: str) -> dict:
    """Route JSON; ``record.domain`` must carry the fetched domain's name."""
    path = f"/v3/routes/{record.guid}"
    return {
        "guid": record.guid,
        "port": record.port,
        "path": record.path,
        "protocol": record.protocol,
        "host": record.host,
        "url": route_url(record),
        "created_at": record.created_at,
        "updated_at": record.updated_at,
        "destinations": [_present_destination(d) for d in record.destinations],
        "relationships": {
            "space": _relationship(record.space_guid),
            "domain": _relationship(record.domain.guid),
        },
        "metadata": _metadata(record),
        "links": {
            "self": _link(base_url, path),
            "space": _link(base_url, f"/v3/spaces/{record.space_guid}"),
            "domain": _link(base_url, f"/v3/domains/{record.domain.guid}"),
            "destinations": _link(base_url, f"{path}/destinations"),
        },
    }


def present_app(record: AppRecord, base_url: str) -> dict:
    path = f"/v3/apps/{record.guid}"
    return {
        "guid": record.guid,
        "name": record.name,
        "state": record.state,
        "created_at": record.created_at,
        "updated_at": record.updated_at,
        "lifecycle": {
            "type": record.lifecycle_type,
            "data": {"buildpacks": list(record.buildpacks), "stack": record.stack},
        },
        "relationships": {"space": _relationship(record.space_guid)},
        "metadata": _metadata(record),
        "links": {
            "self": _link(base_url, path),
            "space": _link(base_url, f"/v3/spaces/{record.space_guid}"),
            "packages": _link(base_url, f"{path}/packages"),
            "current_droplet": _link(base_url, f"{path}/droplets/current"),
            "start": _link(base_url, f"{path}/actions/start", method="POST"),
            "stop": _link(base_url, f"{path}/actions/stop", method="POST"),
        },
    }


def present_package(record: PackageRecord, base_url: str) -> dict:
    path = f"/v3/packages/{record.guid}"
    return {
        "guid": record.guid,
        "type": record.type,
        "data": {},
        "state": record.state,
        "created_at": record.created_at,
        "updated_at": record.updated_at,
        "relationships": {"app": _relationship(record.app_guid)},
        "metadata": _metadata(record),
        "links": {
            "self": _link(base_url, path),
            "upload": _link(base_url, f"{path}/upload", method="POST"),
            "download": _link(base_url, f"{path}/download", method="GET"),
            "app": _link(base_url, f"/v3/apps/{record.app_guid}"),
        },
    }


def present_list(resources: Iterable, present: Callable[..., dict], base_url: str, path: str,
                 query: Optional[dict] = None) -> dict:
    """Paginated list envelope holding every resource on a single page."""
    presented = [present(resource, base_url) for resource in resources]
    query_string = urlencode(sorted((query or {}).items()))
    page_url = f"{base_url}{path}?{query_string + '&' if query_string else ''}page=1&per_page={max(len(presented), 1)}"
    return {
        "pagination": {
            "total_results": len(presented),
            "total_pages": 1,
            "first": {"href": page_url},
            "last": {"href": page_url},
            "next": None,
            "previous": None,
        },
        "resources": presented,
    }


def present_job(guid: str, operation: str, base_url: str) -> dict:
    return {
        "guid": guid,
        "operation": operation,
        "state": "COMPLETE",
        "errors": [],
        "warnings": [],
        "links": {"self": _link(base_url, f"/v3/jobs/{guid}")},
    }
