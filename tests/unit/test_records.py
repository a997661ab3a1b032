"""Tests for building records from cluster objects."""
from cfapi.core.repositories.records import (
    PACKAGE_STATE_AWAITING_UPLOAD,
    PACKAGE_STATE_READY,
    AppRecord,
    DomainRecord,
    OrgRecord,
    PackageRecord,
    RouteRecord,
    SpaceRecord,
)
from tests.fakes import custom_object


def test_org_record_reads_metadata():
    obj = custom_object("CFOrg", "cf", "org-guid", {"displayName": "org-name"},
                        labels={"team": "a"}, annotations={"note": "x"})
    record = OrgRecord.from_resource(obj)
    assert record.guid == "org-guid"
    assert record.name == "org-name"
    assert record.suspended is False
    assert record.labels == {"team": "a"}
    assert record.annotations == {"note": "x"}
    assert record.created_at == "2021-09-01T10:00:00Z"


def test_updated_at_is_latest_managed_field_time():
    obj = custom_object("CFOrg", "cf", "org-guid", {"displayName": "org-name"})
    obj["metadata"]["managedFields"] = [
        {"manager": "a", "time": "2021-09-02T10:00:00Z"},
        {"manager": "b", "time": "2021-09-03T10:00:00Z"},
        {"manager": "c"},
    ]
    assert OrgRecord.from_resource(obj).updated_at == "2021-09-03T10:00:00Z"


def test_updated_at_empty_without_managed_fields():
    obj = custom_object("CFOrg", "cf", "org-guid", {"displayName": "org-name"})
    assert OrgRecord.from_resource(obj).updated_at == ""


def test_space_org_guid_is_namespace():
    record = SpaceRecord.from_resource(custom_object("CFSpace", "org-guid", "space-guid", {"displayName": "dev"}))
    assert record.org_guid == "org-guid"


def test_route_record_defaults():
    obj = custom_object("CFRoute", "space-guid", "route-guid", {"domainRef": {"name": "domain-guid"}})
    record = RouteRecord.from_resource(obj)
    assert record.host == ""
    assert record.path == ""
    assert record.protocol == "http"
    assert record.port is None
    assert record.destinations == ()
    assert record.domain == DomainRecord(guid="domain-guid")


def test_with_domain_returns_copy():
    obj = custom_object("CFRoute", "space-guid", "route-guid", {"host": "h", "domainRef": {"name": "d"}})
    record = RouteRecord.from_resource(obj)
    attached = record.with_domain(DomainRecord(guid="d", name="apps.example.org"))
    assert attached.domain.name == "apps.example.org"
    assert record.domain.name == ""
    assert attached.host == "h"


def test_app_record_lifecycle():
    spec = {
        "displayName": "dora",
        "desiredState": "STARTED",
        "lifecycle": {"type": "buildpack", "data": {"buildpacks": ["go"], "stack": "cflinuxfs3"}},
        "currentDropletRef": {"name": "droplet-guid"},
    }
    record = AppRecord.from_resource(custom_object("CFApp", "space-guid", "app-guid", spec))
    assert record.state == "STARTED"
    assert record.buildpacks == ("go",)
    assert record.stack == "cflinuxfs3"
    assert record.droplet_guid == "droplet-guid"


def test_package_state_follows_image():
    spec = {"type": "bits", "appRef": {"name": "app-guid"}}
    pending = PackageRecord.from_resource(custom_object("CFPackage", "space-guid", "pkg", spec))
    assert pending.state == PACKAGE_STATE_AWAITING_UPLOAD

    spec = dict(spec, source={"registry": {"image": "registry.example.org/pkg@sha256:00"}})
    ready = PackageRecord.from_resource(custom_object("CFPackage", "space-guid", "pkg", spec))
    assert ready.state == PACKAGE_STATE_READY
    assert ready.image == "registry.example.org/pkg@sha256:00"
