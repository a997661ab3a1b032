"""Route endpoint tests with mocked repositories."""
from unittest.mock import ANY, Mock

import pytest

from cfapi.api.helpers.handlers import REPOSITORIES_EXTENSION, Repositories
from cfapi.core.errors import ForbiddenError, NotFoundError, UnknownError, UnprocessableEntityError
from cfapi.core.identity import Identity
from cfapi.core.repositories import (
    AppRepository,
    DomainRepository,
    OrgRepository,
    PackageRepository,
    RouteRepository,
    SpaceRepository,
)
from cfapi.core.repositories.records import DomainRecord, RouteRecord, SpaceRecord

BASE = "https://api.example.org"
ROUTE_GUID = "test-route-guid"
DOMAIN_GUID = "test-domain-guid"
SPACE_GUID = "test-space-guid"

ROUTE = RouteRecord(
    guid=ROUTE_GUID,
    space_guid=SPACE_GUID,
    domain=DomainRecord(guid=DOMAIN_GUID),
    host="test-route-name",
    path="",
    created_at="2019-05-10T17:17:48Z",
    updated_at="2019-05-10T17:17:48Z",
)
DOMAIN = DomainRecord(guid=DOMAIN_GUID, name="example.org")

UNKNOWN_BODY = {"errors": [{"code": 10001, "title": "UnknownError", "detail": "An unknown error occurred."}]}


@pytest.fixture()
def repos(flask_app):
    mocks = Repositories(
        orgs=Mock(spec=OrgRepository),
        spaces=Mock(spec=SpaceRepository),
        domains=Mock(spec=DomainRepository),
        routes=Mock(spec=RouteRepository),
        apps=Mock(spec=AppRepository),
        packages=Mock(spec=PackageRepository),
    )
    mocks.domains.root_namespace = "cf"
    flask_app.extensions[REPOSITORIES_EXTENSION] = mocks
    return mocks


@pytest.fixture()
def headers(auth_headers):
    return auth_headers(sub="alice")


class TestGetRoute:
    def test_returns_route_with_domain(self, client, repos, headers):
        repos.routes.fetch_route.return_value = ROUTE
        repos.domains.fetch_domain.return_value = DOMAIN

        response = client.get(f"/v3/routes/{ROUTE_GUID}", headers=headers)

        assert response.status_code == 200
        assert response.headers["Content-Type"] == "application/json"
        assert response.get_json() == {
            "guid": ROUTE_GUID,
            "port": None,
            "path": "",
            "protocol": "http",
            "host": "test-route-name",
            "url": "test-route-name.example.org",
            "created_at": "2019-05-10T17:17:48Z",
            "updated_at": "2019-05-10T17:17:48Z",
            "destinations": [],
            "relationships": {
                "space": {"data": {"guid": SPACE_GUID}},
                "domain": {"data": {"guid": DOMAIN_GUID}},
            },
            "metadata": {"labels": {}, "annotations": {}},
            "links": {
                "self": {"href": f"{BASE}/v3/routes/{ROUTE_GUID}"},
                "space": {"href": f"{BASE}/v3/spaces/{SPACE_GUID}"},
                "domain": {"href": f"{BASE}/v3/domains/{DOMAIN_GUID}"},
                "destinations": {"href": f"{BASE}/v3/routes/{ROUTE_GUID}/destinations"},
            },
        }

    def test_calls_repositories_as_the_caller(self, client, repos, headers):
        repos.routes.fetch_route.return_value = ROUTE
        repos.domains.fetch_domain.return_value = DOMAIN

        client.get(f"/v3/routes/{ROUTE_GUID}", headers=headers)

        caller = Identity.from_username("alice")
        repos.routes.fetch_route.assert_called_once_with(caller, ROUTE_GUID, timeout=ANY)
        repos.domains.fetch_domain.assert_called_once_with(caller, DOMAIN_GUID, timeout=ANY)
        timeout = repos.routes.fetch_route.call_args.kwargs["timeout"]
        assert 0 < timeout <= 30

    def test_route_not_found(self, client, repos, headers):
        repos.routes.fetch_route.side_effect = NotFoundError("Route")

        response = client.get(f"/v3/routes/{ROUTE_GUID}", headers=headers)

        assert response.status_code == 404
        assert response.get_json() == {
            "errors": [{"code": 10010, "title": "CF-ResourceNotFound", "detail": "Route not found"}]
        }
        repos.domains.fetch_domain.assert_not_called()

    def test_missing_domain_is_unknown_error(self, client, repos, headers):
        repos.routes.fetch_route.return_value = ROUTE
        repos.domains.fetch_domain.side_effect = NotFoundError("Domain")

        response = client.get(f"/v3/routes/{ROUTE_GUID}", headers=headers)

        assert response.status_code == 500
        assert response.get_json() == UNKNOWN_BODY

    def test_unexpected_repository_failure(self, client, repos, headers):
        repos.routes.fetch_route.side_effect = RuntimeError("boom")

        response = client.get(f"/v3/routes/{ROUTE_GUID}", headers=headers)

        assert response.status_code == 500
        assert response.get_json() == UNKNOWN_BODY
        assert b"boom" not in response.data

    def test_domain_failure_is_unknown_error(self, client, repos, headers):
        repos.routes.fetch_route.return_value = ROUTE
        repos.domains.fetch_domain.side_effect = UnknownError(ConnectionError("unreachable"))

        response = client.get(f"/v3/routes/{ROUTE_GUID}", headers=headers)

        assert response.status_code == 500
        assert response.get_json() == UNKNOWN_BODY

    def test_requires_authentication(self, client, repos):
        response = client.get(f"/v3/routes/{ROUTE_GUID}")
        assert response.status_code == 401
        repos.routes.fetch_route.assert_not_called()


class TestListRoutes:
    def test_attaches_domains(self, client, repos, headers):
        repos.routes.list_routes.return_value = [ROUTE]
        repos.domains.list_domains.return_value = [DOMAIN]

        response = client.get("/v3/routes?hosts=test-route-name", headers=headers)

        assert response.status_code == 200
        body = response.get_json()
        assert body["pagination"]["total_results"] == 1
        assert body["resources"][0]["url"] == "test-route-name.example.org"
        message = repos.routes.list_routes.call_args.args[1]
        assert message.hosts == ["test-route-name"]

    def test_empty_list_skips_domains(self, client, repos, headers):
        repos.routes.list_routes.return_value = []

        response = client.get("/v3/routes", headers=headers)

        assert response.get_json()["resources"] == []
        repos.domains.list_domains.assert_not_called()

    def test_dangling_domain_is_unknown_error(self, client, repos, headers):
        repos.routes.list_routes.return_value = [ROUTE]
        repos.domains.list_domains.return_value = []

        response = client.get("/v3/routes", headers=headers)

        assert response.status_code == 500


class TestCreateRoute:
    BODY = {
        "host": "blog",
        "relationships": {
            "space": {"data": {"guid": SPACE_GUID}},
            "domain": {"data": {"guid": DOMAIN_GUID}},
        },
    }

    def test_creates_route(self, client, repos, headers):
        repos.spaces.fetch_space.return_value = SpaceRecord(guid=SPACE_GUID, name="dev", org_guid="org")
        repos.domains.fetch_domain.return_value = DOMAIN
        repos.routes.create_route.return_value = RouteRecord(
            guid="new-route", space_guid=SPACE_GUID, domain=DomainRecord(guid=DOMAIN_GUID), host="blog"
        )

        response = client.post("/v3/routes", json=self.BODY, headers=headers)

        assert response.status_code == 201
        assert response.get_json()["url"] == "blog.example.org"
        message = repos.routes.create_route.call_args.args[1]
        assert message.domain_namespace == "cf"
        assert message.host == "blog"

    def test_invisible_space(self, client, repos, headers):
        repos.spaces.fetch_space.side_effect = NotFoundError("Space")

        response = client.post("/v3/routes", json=self.BODY, headers=headers)

        assert response.status_code == 422
        assert response.get_json()["errors"][0]["detail"].startswith("Invalid space.")
        repos.routes.create_route.assert_not_called()

    def test_invisible_domain(self, client, repos, headers):
        repos.spaces.fetch_space.return_value = SpaceRecord(guid=SPACE_GUID, name="dev", org_guid="org")
        repos.domains.fetch_domain.side_effect = NotFoundError("Domain")

        response = client.post("/v3/routes", json=self.BODY, headers=headers)

        assert response.status_code == 422
        assert response.get_json()["errors"][0]["detail"].startswith("Invalid domain.")

    def test_duplicate_surfaces_detail(self, client, repos, headers):
        repos.spaces.fetch_space.return_value = SpaceRecord(guid=SPACE_GUID, name="dev", org_guid="org")
        repos.domains.fetch_domain.return_value = DOMAIN
        repos.routes.create_route.side_effect = UnprocessableEntityError("Route already exists")

        response = client.post("/v3/routes", json=self.BODY, headers=headers)

        assert response.status_code == 422
        assert response.get_json()["errors"][0]["detail"] == "Route already exists"

    def test_missing_relationship(self, client, repos, headers):
        response = client.post("/v3/routes", json={"host": "blog"}, headers=headers)
        assert response.status_code == 422

    def test_unparseable_body(self, client, repos, headers):
        response = client.post("/v3/routes", data="{not json", content_type="application/json", headers=headers)
        assert response.status_code == 400
        assert response.get_json()["errors"][0]["code"] == 1001


class TestDeleteRoute:
    def test_delete_uses_route_namespace(self, client, repos, headers):
        repos.routes.fetch_route.return_value = ROUTE

        response = client.delete(f"/v3/routes/{ROUTE_GUID}", headers=headers)

        assert response.status_code == 202
        assert response.headers["Location"] == f"{BASE}/v3/jobs/route.delete~{ROUTE_GUID}"
        repos.routes.delete_route.assert_called_once_with(ANY, SPACE_GUID, ROUTE_GUID, timeout=ANY)

    def test_delete_forbidden(self, client, repos, headers):
        repos.routes.fetch_route.return_value = ROUTE
        repos.routes.delete_route.side_effect = ForbiddenError()

        response = client.delete(f"/v3/routes/{ROUTE_GUID}", headers=headers)

        assert response.status_code == 403
        assert response.get_json()["errors"][0]["code"] == 10003
