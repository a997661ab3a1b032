"""Packages, stored as CFPackage objects in their app's space namespace."""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Optional

from .base import (
    ClusterRepository,
    OP_CREATE,
    OP_GET,
    OP_UPDATE,
    ResourceKind,
    cluster_call,
    new_resource,
)
from .records import PackageRecord

PACKAGE = ResourceKind(kind="CFPackage", plural="cfpackages", resource_type="Package")
PACKAGE_TYPE_BITS = "bits"


@dataclass
class CreatePackageMessage:
    app_guid: str
    space_guid: str
    type: str = PACKAGE_TYPE_BITS
    labels: dict[str, str] = field(default_factory=dict)
    annotations: dict[str, str] = field(default_factory=dict)


class PackageRepository(ClusterRepository):
    kind = PACKAGE

    def fetch_package(self, identity, guid: str, timeout: Optional[float] = None) -> PackageRecord:
        with cluster_call(PACKAGE, OP_GET):
            return PackageRecord.from_resource(self._find(identity, guid, timeout))

    def create_package(self, identity, message: CreatePackageMessage,
                       timeout: Optional[float] = None) -> PackageRecord:
        spec = {"type": message.type, "appRef": {"name": message.app_guid}}
        body = new_resource(
            PACKAGE, message.space_guid, spec, labels=message.labels, annotations=message.annotations
        )
        with cluster_call(PACKAGE, OP_CREATE):
            return PackageRecord.from_resource(self._create(identity, body, timeout))

    def update_package_image(self, identity, package: PackageRecord, image_ref: str,
                             timeout: Optional[float] = None) -> PackageRecord:
        """Record the pushed source image on the package, which makes it READY."""
        patch = [{"op": "add", "path": "/spec/source", "value": {"registry": {"image": image_ref}}}]
        with cluster_call(PACKAGE, OP_UPDATE):
            return PackageRecord.from_resource(
                self._patch(identity, package.space_guid, package.guid, patch, timeout)
            )
