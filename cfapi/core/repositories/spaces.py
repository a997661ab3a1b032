"""Spaces, stored as CFSpace objects in their org's namespace."""
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
from .records import SpaceRecord

SPACE = ResourceKind(kind="CFSpace", plural="cfspaces", resource_type="Space")


@dataclass
class CreateSpaceMessage:
    name: str
    org_guid: str
    labels: dict[str, str] = field(default_factory=dict)
    annotations: dict[str, str] = field(default_factory=dict)


@dataclass
class ListSpacesMessage:
    names: list[str] = field(default_factory=list)
    org_guids: list[str] = field(default_factory=list)


class SpaceRepository(ClusterRepository):
    """Spaces are visible to identities holding a CF role in the space's own
    namespace or in its org's namespace."""

    kind = SPACE

    def fetch_space(self, identity, guid: str, timeout: Optional[float] = None) -> SpaceRecord:
        with cluster_call(SPACE, OP_GET):
            record = SpaceRecord.from_resource(self._locate(guid, timeout))
            if not (self._authorized_in(identity, record.guid, timeout)
                    or self._authorized_in(identity, record.org_guid, timeout)):
                raise NotFoundError(SPACE.resource_type)
            return record

    def list_spaces(self, identity, message: Optional[ListSpacesMessage] = None,
                    timeout: Optional[float] = None) -> list[SpaceRecord]:
        """List visible spaces; an ``org_guids`` filter scopes the read to those org namespaces."""
        message = message or ListSpacesMessage()
        with cluster_call(SPACE, OP_LIST):
            records = [
                SpaceRecord.from_resource(item)
                for item in self._list_privileged(message.org_guids or None, timeout)
            ]
            records = [record for record in records if matches(record.name, message.names)]
            namespaces = [record.guid for record in records] + [record.org_guid for record in records]
            visible = self._authorized_namespaces(identity, namespaces, timeout)
        return [record for record in records if record.guid in visible or record.org_guid in visible]

    def create_space(self, identity, message: CreateSpaceMessage, timeout: Optional[float] = None) -> SpaceRecord:
        body = new_resource(
            SPACE,
            message.org_guid,
            {"displayName": message.name},
            labels=message.labels,
            annotations=message.annotations,
        )
        with cluster_call(SPACE, OP_CREATE, duplicate_detail=f"Space '{message.name}' already exists."):
            return SpaceRecord.from_resource(self._create(identity, body, timeout))

    def delete_space(self, identity, org_guid: str, guid: str, timeout: Optional[float] = None) -> None:
        with cluster_call(SPACE, OP_DELETE):
            self._delete(identity, org_guid, guid, timeout)
