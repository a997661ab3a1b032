"""Applications, stored as CFApp objects in their space's namespace."""
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
from .records import APP_STATE_STOPPED, AppRecord

APP = ResourceKind(kind="CFApp", plural="cfapps", resource_type="App")


@dataclass
class CreateAppMessage:
    name: str
    space_guid: str
    lifecycle_type: str = "buildpack"
    buildpacks: list[str] = field(default_factory=list)
    stack: str = ""
    labels: dict[str, str] = field(default_factory=dict)
    annotations: dict[str, str] = field(default_factory=dict)


@dataclass
class ListAppsMessage:
    names: list[str] = field(default_factory=list)
    space_guids: list[str] = field(default_factory=list)


class AppRepository(ClusterRepository):
    kind = APP

    def fetch_app(self, identity, guid: str, timeout: Optional[float] = None) -> AppRecord:
        with cluster_call(APP, OP_GET):
            return AppRecord.from_resource(self._find(identity, guid, timeout))

    def list_apps(self, identity, message: Optional[ListAppsMessage] = None,
                  timeout: Optional[float] = None) -> list[AppRecord]:
        message = message or ListAppsMessage()
        with cluster_call(APP, OP_LIST):
            items = self._list(identity, message.space_guids or None, timeout)
            records = [AppRecord.from_resource(item) for item in items]
        return [record for record in records if matches(record.name, message.names)]

    def create_app(self, identity, message: CreateAppMessage, timeout: Optional[float] = None) -> AppRecord:
        """Create a stopped app; staging and starting happen elsewhere."""
        spec = {
            "displayName": message.name,
            "desiredState": APP_STATE_STOPPED,
            "lifecycle": {
                "type": message.lifecycle_type,
                "data": {"buildpacks": list(message.buildpacks), "stack": message.stack},
            },
        }
        body = new_resource(APP, message.space_guid, spec, labels=message.labels, annotations=message.annotations)
        detail = f"App with the name '{message.name}' already exists."
        with cluster_call(APP, OP_CREATE, duplicate_detail=detail):
            return AppRecord.from_resource(self._create(identity, body, timeout))

    def delete_app(self, identity, space_guid: str, guid: str, timeout: Optional[float] = None) -> None:
        with cluster_call(APP, OP_DELETE):
            self._delete(identity, space_guid, guid, timeout)
