"""Identity-scoped Kubernetes clients.

Every cluster call made by a repository goes through a client returned by
``ScopedClientBuilder.build``. The client impersonates the caller, so the
cluster's own RBAC decides whether the call is allowed.

Two helpers exist for reads the caller's RBAC cannot express on its own:

* ``build_privileged`` returns a client acting as the server itself. It is
  only used to locate objects (which namespace holds a GUID, which
  namespaces hold a kind); whatever it finds is then read again as the
  caller or checked with ``build_authorization``.
* ``build_authorization`` returns an AuthorizationV1Api impersonating the
  caller, for self-subject rules reviews.

Usage:
    builder = ScopedClientBuilder(kubeconfig="~/.kube/config")
    api = builder.build(Identity.from_username("alice", groups=["devs"]))
    api.list_namespaced_custom_object(...)
"""
from __future__ import annotations
import logging
import os
from typing import Optional

from kubernetes import client, config
from urllib3 import HTTPHeaderDict

from .errors import AuthClientBuildError
from .identity import Identity

logger = logging.getLogger(__name__)

IMPERSONATE_USER_HEADER = "Impersonate-User"
IMPERSONATE_GROUP_HEADER = "Impersonate-Group"


class ImpersonatingApiClient(client.ApiClient):
    """ApiClient that adds impersonation headers to every request.

    ``ApiClient.default_headers`` is a plain dict and cannot repeat a header,
    while Kubernetes expects one ``Impersonate-Group`` header per group, so
    the headers are added per request as a multi-valued ``HTTPHeaderDict``.
    They are added on this client's own ``rest_client``, which every
    generated API method ends up calling.
    """

    def __init__(self, configuration: client.Configuration, identity: Identity):
        super().__init__(configuration)
        self.identity = identity
        send = self.rest_client.request

        def request(method, url, *args, headers=None, **kwargs):
            return send(method, url, *args, headers=self.impersonation_headers(headers), **kwargs)

        self.rest_client.request = request

    def impersonation_headers(self, headers=None) -> HTTPHeaderDict:
        scoped_headers = HTTPHeaderDict(headers or {})
        scoped_headers[IMPERSONATE_USER_HEADER] = self.identity.name
        for group in self.identity.groups:
            scoped_headers.add(IMPERSONATE_GROUP_HEADER, group)
        return scoped_headers


class ScopedClientBuilder:
    """Builds cluster clients that act as a given identity.

    The base configuration (API server address and the server's own
    credentials, which must hold the ``impersonate`` verb) is loaded once,
    on first use. Clients themselves are never shared between callers.
    """

    def __init__(self, kubeconfig: Optional[str] = None, in_cluster: Optional[bool] = None,
                 configuration: Optional[client.Configuration] = None):
        """Initialize builder.

        Args:
            kubeconfig: Path to kubeconfig used outside a cluster
            in_cluster: Force (True) or skip (False) in-cluster config;
                None tries in-cluster first, then kubeconfig
            configuration: Pre-built configuration (skips loading)
        """
        self.kubeconfig = kubeconfig
        self.in_cluster = in_cluster
        self._configuration = configuration

    def build(self, identity: Identity) -> client.CustomObjectsApi:
        """Return a CustomObjectsApi whose every call impersonates ``identity``.

        Raises:
            AuthClientBuildError: No identity, or cluster configuration unavailable
        """
        return client.CustomObjectsApi(self._impersonating(identity))

    __call__ = build

    def build_authorization(self, identity: Identity) -> client.AuthorizationV1Api:
        """AuthorizationV1Api impersonating ``identity``, for self-subject reviews."""
        return client.AuthorizationV1Api(self._impersonating(identity))

    def build_privileged(self) -> client.CustomObjectsApi:
        """CustomObjectsApi acting as the server's own service account."""
        return client.CustomObjectsApi(client.ApiClient(self._base_configuration()))

    def ready(self) -> bool:
        """True once the base cluster configuration has been loaded."""
        try:
            self._base_configuration()
        except AuthClientBuildError as exc:
            logger.warning(f"Cluster configuration not ready: {exc}")
            return False
        return True

    def _impersonating(self, identity: Identity) -> ImpersonatingApiClient:
        if identity is None or not identity.name:
            raise AuthClientBuildError("cannot build a cluster client without an identity")
        return ImpersonatingApiClient(self._base_configuration(), identity)

    def _base_configuration(self) -> client.Configuration:
        if self._configuration is not None:
            return self._configuration

        configuration = client.Configuration()
        try:
            if self.in_cluster is not False and _running_in_cluster():
                config.load_incluster_config(client_configuration=configuration)
                logger.info("Using in-cluster Kubernetes config")
            elif self.in_cluster:
                raise AuthClientBuildError("in-cluster configuration requested but service account not mounted")
            else:
                kubeconfig_path = os.path.expanduser(self.kubeconfig or "~/.kube/config")
                config.load_kube_config(config_file=kubeconfig_path, client_configuration=configuration)
                logger.info(f"Using kubeconfig from {kubeconfig_path}")
        except config.ConfigException as exc:
            raise AuthClientBuildError(f"failed to load Kubernetes config: {exc}") from exc

        self._configuration = configuration
        return configuration


def _running_in_cluster() -> bool:
    return bool(os.environ.get("KUBERNETES_SERVICE_HOST"))
