"""Shared plumbing for cluster-backed repositories.

Every repository operation runs inside ``cluster_call``, which is the single
place raw cluster failures become taxonomy errors:

    404                               -> NotFoundError
    403 on get (caller can't see it)  -> NotFoundError
    403 elsewhere, 401                -> ForbiddenError
    409 on create / webhook duplicate -> UnprocessableEntityError (duplicate)
    409 on update                     -> UnprocessableEntityError (conflict, never retried)
    422                               -> UnprocessableEntityError
    anything else                     -> UnknownError(cause)
"""
from __future__ import annotations
import json
import logging
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, Optional

from kubernetes.client.rest import ApiException

from ..errors import (
    ApiError,
    ForbiddenError,
    NotFoundError,
    UnknownError,
    UnprocessableEntityError,
)

logger = logging.getLogger(__name__)

GROUP = "korifi.cloudfoundry.org"
VERSION = "v1alpha1"
API_VERSION = f"{GROUP}/{VERSION}"

OP_GET = "get"
OP_LIST = "list"
OP_CREATE = "create"
OP_UPDATE = "update"
OP_DELETE = "delete"

DUPLICATE_NAME_ERROR_TYPE = "DuplicateNameError"
WEBHOOK_DENIAL_MARKER = "denied the request:"


@dataclass(frozen=True)
class ResourceKind:
    """Cluster coordinates of a custom resource and its CF-facing name."""

    kind: str
    plural: str
    resource_type: str


def new_guid() -> str:
    return str(uuid.uuid4())


def deadline_kwargs(timeout: Optional[float]) -> dict:
    """Keyword arguments that bound a cluster call by the request deadline.

    Raises:
        UnknownError: Deadline already passed
    """
    if timeout is None:
        return {}
    if timeout <= 0:
        raise UnknownError(TimeoutError("request deadline exceeded before cluster call"))
    return {"_request_timeout": timeout}


def new_resource(kind: ResourceKind, namespace: str, spec: dict, labels=None, annotations=None,
                 guid: Optional[str] = None) -> dict:
    """Body for creating a custom resource named by a fresh GUID."""
    return {
        "apiVersion": API_VERSION,
        "kind": kind.kind,
        "metadata": {
            "name": guid or new_guid(),
            "namespace": namespace,
            "labels": dict(labels or {}),
            "annotations": dict(annotations or {}),
        },
        "spec": spec,
    }


def _status_body(exc: ApiException) -> dict:
    try:
        body = json.loads(exc.body) if exc.body else {}
    except (TypeError, ValueError):
        return {}
    return body if isinstance(body, dict) else {}


def webhook_validation_error(exc: ApiException) -> Optional[dict]:
    """Extract the validation payload of an admission webhook denial, if any.

    Denials arrive as ``admission webhook "<name>" denied the request: <json>``
    where the JSON carries ``validationErrorType`` and ``message``.
    """
    message = _status_body(exc).get("message") or ""
    _, marker, payload = message.partition(WEBHOOK_DENIAL_MARKER)
    if not marker:
        return None
    try:
        validation = json.loads(payload.strip())
    except ValueError:
        return None
    if not isinstance(validation, dict) or "validationErrorType" not in validation:
        return None
    return validation


def _invalid_fields(exc: ApiException) -> list[str]:
    causes = (_status_body(exc).get("details") or {}).get("causes") or []
    return [cause["field"] for cause in causes if isinstance(cause, dict) and cause.get("field")]


def translate_cluster_error(
    exc: ApiException,
    kind: ResourceKind,
    operation: str,
    duplicate_detail: Optional[str] = None,
) -> ApiError:
    """Map a Kubernetes API failure to the error taxonomy.

    Args:
        exc: Failure raised by the kubernetes client
        kind: Resource the operation targeted
        operation: One of OP_GET, OP_LIST, OP_CREATE, OP_UPDATE, OP_DELETE
        duplicate_detail: Message naming the offending value on create
    """
    status = exc.status

    validation = webhook_validation_error(exc)
    if validation is not None:
        if validation["validationErrorType"] == DUPLICATE_NAME_ERROR_TYPE:
            return UnprocessableEntityError(duplicate_detail or validation.get("message") or "")
        return UnprocessableEntityError(validation.get("message") or f"Invalid {kind.resource_type}")

    if status == 404:
        return NotFoundError(kind.resource_type, cause=exc)
    if status == 403 and operation == OP_GET:
        return NotFoundError(kind.resource_type, cause=exc)
    if status in (401, 403):
        return ForbiddenError(cause=exc)
    if status == 409 and operation == OP_CREATE:
        return UnprocessableEntityError(duplicate_detail or f"{kind.resource_type} already exists.")
    if status == 409:
        return UnprocessableEntityError(
            f"{kind.resource_type} was modified by another request. Fetch it again and retry."
        )
    if status == 422:
        fields = _invalid_fields(exc)
        if fields:
            return UnprocessableEntityError(f"Invalid {kind.resource_type}: {', '.join(fields)}")
        return UnprocessableEntityError(f"Invalid {kind.resource_type}")
    return UnknownError(cause=exc)


@contextmanager
def cluster_call(kind: ResourceKind, operation: str, duplicate_detail: Optional[str] = None) -> Iterator[None]:
    """Run one repository operation, converting every failure to the taxonomy."""
    try:
        yield
    except ApiError:
        raise
    except ApiException as exc:
        raise translate_cluster_error(exc, kind, operation, duplicate_detail) from exc
    except Exception as exc:
        raise UnknownError(cause=exc) from exc


def matches(value: str, allowed: Optional[list[str]]) -> bool:
    """Query filter helper: an empty/None filter matches everything."""
    return not allowed or value in allowed


def grants_group(rule) -> bool:
    """True when a rules-review resource rule covers the CF resource group."""
    groups = rule.api_groups or []
    return GROUP in groups or "*" in groups


class ClusterRepository:
    """Base for repositories: holds the injected scoped-client builder.

    Reads and writes run as the caller. The privileged client only answers
    "where does this live": the namespace holding a GUID, or the namespaces
    holding any object of the kind. Those answers are never returned as
    data; the caller reads the objects again, or a rules review decides.
    """

    kind: ResourceKind

    def __init__(self, build_client, root_namespace: str = "cf"):
        """Initialize repository.

        Args:
            build_client: ScopedClientBuilder (callable per identity, plus
                ``build_privileged`` and ``build_authorization``)
            root_namespace: Namespace holding cluster-wide CF resources
        """
        self._build_client = build_client
        self.root_namespace = root_namespace

    def _get(self, identity, namespace: str, guid: str, timeout: Optional[float]) -> dict:
        api = self._build_client(identity)
        return api.get_namespaced_custom_object(
            GROUP, VERSION, namespace, self.kind.plural, guid, **deadline_kwargs(timeout)
        )

    def _locate(self, guid: str, timeout: Optional[float]) -> dict:
        """Privileged lookup of the object named ``guid`` in any namespace."""
        api = self._build_client.build_privileged()
        response = api.list_cluster_custom_object(
            GROUP, VERSION, self.kind.plural, field_selector=f"metadata.name={guid}", **deadline_kwargs(timeout)
        )
        items = response.get("items") or []
        if not items:
            raise NotFoundError(self.kind.resource_type)
        return items[0]

    def _find(self, identity, guid: str, timeout: Optional[float]) -> dict:
        """Read a namespaced object knowing only its GUID.

        The namespace is resolved with the privileged client (GUIDs are unique
        across namespaces), then the object is read as the caller, so a
        namespace-scoped role binding is enough to see it.
        """
        namespace = self._locate(guid, timeout)["metadata"]["namespace"]
        return self._get(identity, namespace, guid, timeout)

    def _list_privileged(self, namespaces: Optional[list[str]], timeout: Optional[float]) -> list[dict]:
        """Every object of the kind in ``namespaces`` (all namespaces when None), unfiltered."""
        api = self._build_client.build_privileged()
        if namespaces is None:
            response = api.list_cluster_custom_object(GROUP, VERSION, self.kind.plural, **deadline_kwargs(timeout))
            return list(response.get("items") or [])

        items: list[dict] = []
        for namespace in namespaces:
            response = api.list_namespaced_custom_object(
                GROUP, VERSION, namespace, self.kind.plural, **deadline_kwargs(timeout)
            )
            items.extend(response.get("items") or [])
        return items

    def _candidate_namespaces(self, timeout: Optional[float]) -> list[str]:
        return sorted({item["metadata"]["namespace"] for item in self._list_privileged(None, timeout)})

    def _list(self, identity, namespaces: Optional[list[str]], timeout: Optional[float]) -> list[dict]:
        """List objects as the caller in the given namespaces.

        With ``namespaces=None`` every namespace holding an object of the kind
        is tried, and namespaces the caller may not list are skipped. An
        explicit namespace the caller may not list fails the whole call.
        """
        api = self._build_client(identity)
        skip_forbidden = namespaces is None
        if namespaces is None:
            namespaces = self._candidate_namespaces(timeout)

        items: list[dict] = []
        for namespace in namespaces:
            try:
                response = api.list_namespaced_custom_object(
                    GROUP, VERSION, namespace, self.kind.plural, **deadline_kwargs(timeout)
                )
            except ApiException as exc:
                if skip_forbidden and exc.status in (401, 403):
                    logger.debug(f"{identity} cannot list {self.kind.plural} in {namespace}, skipping")
                    continue
                raise
            items.extend(response.get("items") or [])
        return items

    def _authorized_in(self, identity, namespace: str, timeout: Optional[float]) -> bool:
        """Whether ``identity`` holds any CF role in ``namespace``.

        Asked as the caller through a SelfSubjectRulesReview, so it reflects
        the caller's role bindings in that namespace and nothing else.
        """
        api = self._build_client.build_authorization(identity)
        review = api.create_self_subject_rules_review(
            {
                "apiVersion": "authorization.k8s.io/v1",
                "kind": "SelfSubjectRulesReview",
                "spec": {"namespace": namespace},
            },
            **deadline_kwargs(timeout),
        )
        return any(grants_group(rule) for rule in review.status.resource_rules or [])

    def _authorized_namespaces(self, identity, namespaces, timeout: Optional[float]) -> set[str]:
        """The subset of ``namespaces`` in which ``identity`` holds a CF role."""
        return {
            namespace for namespace in sorted(set(namespaces))
            if self._authorized_in(identity, namespace, timeout)
        }

    def _create(self, identity, body: dict, timeout: Optional[float]) -> dict:
        api = self._build_client(identity)
        created = api.create_namespaced_custom_object(
            GROUP, VERSION, body["metadata"]["namespace"], self.kind.plural, body, **deadline_kwargs(timeout)
        )
        logger.info(
            f"Created {self.kind.kind} {created['metadata']['name']} "
            f"in {body['metadata']['namespace']} as {identity}"
        )
        return created

    def _patch(self, identity, namespace: str, guid: str, patch: list[dict], timeout: Optional[float]) -> dict:
        # JSON Patch (a list body): custom resources reject strategic merge patches
        api = self._build_client(identity)
        patched = api.patch_namespaced_custom_object(
            GROUP, VERSION, namespace, self.kind.plural, guid, patch, **deadline_kwargs(timeout)
        )
        logger.info(f"Updated {self.kind.kind} {guid} in {namespace} as {identity}")
        return patched

    def _delete(self, identity, namespace: str, guid: str, timeout: Optional[float]) -> None:
        api = self._build_client(identity)
        api.delete_namespaced_custom_object(
            GROUP, VERSION, namespace, self.kind.plural, guid, **deadline_kwargs(timeout)
        )
        logger.info(f"Deleted {self.kind.kind} {guid} in {namespace} as {identity}")
