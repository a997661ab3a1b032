"""Identity-scoped repositories, one per CF resource kind."""
from .apps import AppRepository, CreateAppMessage, ListAppsMessage
from .domains import CreateDomainMessage, DomainRepository, ListDomainsMessage
from .orgs import CreateOrgMessage, ListOrgsMessage, OrgRepository
from .packages import CreatePackageMessage, PackageRepository
from .records import (
    AppRecord,
    Destination,
    DomainRecord,
    OrgRecord,
    PackageRecord,
    RouteRecord,
    SpaceRecord,
)
from .routes import CreateRouteMessage, ListRoutesMessage, RouteRepository
from .spaces import CreateSpaceMessage, ListSpacesMessage, SpaceRepository

__all__ = [
    "AppRecord",
    "AppRepository",
    "CreateAppMessage",
    "CreateDomainMessage",
    "CreateOrgMessage",
    "CreatePackageMessage",
    "CreateRouteMessage",
    "CreateSpaceMessage",
    "Destination",
    "DomainRecord",
    "DomainRepository",
    "ListAppsMessage",
    "ListDomainsMessage",
    "ListOrgsMessage",
    "ListRoutesMessage",
    "ListSpacesMessage",
    "OrgRecord",
    "OrgRepository",
    "PackageRecord",
    "PackageRepository",
    "RouteRecord",
    "RouteRepository",
    "SpaceRecord",
    "SpaceRepository",
]
