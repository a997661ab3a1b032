"""Domains, stored as CFDomain objects in the root namespace."""
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
from .records import DomainRecord

DOMAIN = ResourceKind(kind="CFDomain", plural="cfdomains", resource_type="Domain")


@dataclass
class CreateDomainMessage:
    name: str
    labels: dict[str, str] = field(default_factory=dict)
    annotations: dict[str, str] = field(default_factory=dict)


@dataclass
class ListDomainsMessage:
    names: list[str] = field(default_factory=list)


class DomainRepository(ClusterRepository):
    kind = DOMAIN

    def fetch_domain(self, identity, guid: str, timeout: Optional[float] = None) -> DomainRecord:
        with cluster_call(DOMAIN, OP_GET):
            return DomainRecord.from_resource(self._get(identity, self.root_namespace, guid, timeout))

    def list_domains(self, identity, message: Optional[ListDomainsMessage] = None,
                     timeout: Optional[float] = None) -> list[DomainRecord]:
        message = message or ListDomainsMessage()
        with cluster_call(DOMAIN, OP_LIST):
            items = self._list(identity, [self.root_namespace], timeout)
            records = [DomainRecord.from_resource(item) for item in items]
        return [record for record in records if matches(record.name, message.names)]

    def create_domain(self, identity, message: CreateDomainMessage, timeout: Optional[float] = None) -> DomainRecord:
        body = new_resource(
            DOMAIN,
            self.root_namespace,
            {"name": message.name},
            labels=message.labels,
            annotations=message.annotations,
        )
        with cluster_call(DOMAIN, OP_CREATE, duplicate_detail=f"The domain name \"{message.name}\" is already in use"):
            return DomainRecord.from_resource(self._create(identity, body, timeout))

    def delete_domain(self, identity, guid: str, timeout: Optional[float] = None) -> None:
        with cluster_call(DOMAIN, OP_DELETE):
            self._delete(identity, self.root_namespace, guid, timeout)
