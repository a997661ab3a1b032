"""Organizations, stored as CFOrg objects in the root namespace."""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Optional

from ..errors import NotFoundError
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
from .records import OrgRecord

ORG = ResourceKind(kind="CFOrg", plural="cforgs", resource_type="Org")


@dataclass
class CreateOrgMessage:
    name: str
    suspended: bool = False
    labels: dict[str, str] = field(default_factory=dict)
    annotations: dict[str, str] = field(default_factory=dict)


@dataclass
class ListOrgsMessage:
    names: list[str] = field(default_factory=list)


class OrgRepository(ClusterRepository):
    """Organization CRUD executed as the calling identity.

    Org members are bound in the org's own namespace, not in the root
    namespace holding the CFOrg objects, so an org is visible to an identity
    exactly when a rules review in the org namespace grants it a CF role.
    """

    kind = ORG

    def fetch_org(self, identity, guid: str, timeout: Optional[float] = None) -> OrgRecord:
        with cluster_call(ORG, OP_GET):
            resource = self._locate(guid, timeout)
            if not self._authorized_in(identity, guid, timeout):
                raise NotFoundError(ORG.resource_type)
            return OrgRecord.from_resource(resource)

    def list_orgs(self, identity, message: Optional[ListOrgsMessage] = None,
                  timeout: Optional[float] = None) -> list[OrgRecord]:
        """Return the orgs the cluster lets ``identity`` see, narrowed by ``message.names``."""
        message = message or ListOrgsMessage()
        with cluster_call(ORG, OP_LIST):
            records = [
                OrgRecord.from_resource(item)
                for item in self._list_privileged([self.root_namespace], timeout)
            ]
            records = [record for record in records if matches(record.name, message.names)]
            visible = self._authorized_namespaces(identity, [record.guid for record in records], timeout)
        return [record for record in records if record.guid in visible]

    def create_org(self, identity, message: CreateOrgMessage, timeout: Optional[float] = None) -> OrgRecord:
        body = new_resource(
            ORG,
            self.root_namespace,
            {"displayName": message.name, "suspended": message.suspended},
            labels=message.labels,
            annotations=message.annotations,
        )
        with cluster_call(ORG, OP_CREATE, duplicate_detail=f"Organization '{message.name}' already exists."):
            return OrgRecord.from_resource(self._create(identity, body, timeout))

    def delete_org(self, identity, guid: str, timeout: Optional[float] = None) -> None:
        with cluster_call(ORG, OP_DELETE):
            self._delete(identity, self.root_namespace, guid, timeout)
