"""Routes, stored as CFRoute objects in their space's namespace.

A route only references its domain by GUID. Callers needing the domain name
(to present the route URL) fetch the domain through ``DomainRepository`` and
attach it with ``RouteRecord.with_domain``.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Optional

from .base import (
    ClusterRepository,
    OP_CREATE,
    OP_DELETE,
    OP_GET,
    OP_LIST,
    ResourceKind,
    cluster_call,
    matches,
    new_resource,
)
from .records import RouteRecord

ROUTE = ResourceKind(kind="CFRoute", plural="cfroutes", resource_type="Route")


@dataclass
class CreateRouteMessage:
    space_guid: str
    domain_guid: str
    domain_namespace: str
    host: str = ""
    path: str = ""
    labels: dict[str, str] = field(default_factory=dict)
    annotations: dict[str, str] = field(default_factory=dict)


@dataclass
class ListRoutesMessage:
    space_guids: list[str] = field(default_factory=list)
    domain_guids: list[str] = field(default_factory=list)
    hosts: list[str] = field(default_factory=list)
    paths: list[str] = field(default_factory=list)

    def matches(self, record: RouteRecord) -> bool:
        return (
            matches(record.domain.guid, self.domain_guids)
            and matches(record.host, self.hosts)
            and matches(record.path, self.paths)
        )


class RouteRepository(ClusterRepository):
    kind = ROUTE

    def fetch_route(self, identity, guid: str, timeout: Optional[float] = None) -> RouteRecord:
        with cluster_call(ROUTE, OP_GET):
            return RouteRecord.from_resource(self._find(identity, guid, timeout))

    def list_routes(self, identity, message: Optional[ListRoutesMessage] = None,
                    timeout: Optional[float] = None) -> list[RouteRecord]:
        message = message or ListRoutesMessage()
        with cluster_call(ROUTE, OP_LIST):
            items = self._list(identity, message.space_guids or None, timeout)
            records = [RouteRecord.from_resource(item) for item in items]
        return [record for record in records if message.matches(record)]

    def create_route(self, identity, message: CreateRouteMessage, timeout: Optional[float] = None) -> RouteRecord:
        spec = {
            "host": message.host,
            "path": message.path,
            "protocol": "http",
            "domainRef": {"name": message.domain_guid, "namespace": message.domain_namespace},
            "destinations": [],
        }
        body = new_resource(ROUTE, message.space_guid, spec, labels=message.labels, annotations=message.annotations)
        detail = f"Route already exists with host '{message.host}'" + (
            f" and path '{message.path}'" if message.path else ""
        ) + " for domain."
        with cluster_call(ROUTE, OP_CREATE, duplicate_detail=detail):
            return RouteRecord.from_resource(self._create(identity, body, timeout))

    def delete_route(self, identity, space_guid: str, guid: str, timeout: Optional[float] = None) -> None:
        with cluster_call(ROUTE, OP_DELETE):
            self._delete(identity, space_guid, guid, timeout)
