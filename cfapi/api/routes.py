"""Route endpoints (/v3/routes).

A route record only knows its domain's GUID. Handlers fetch the domain
separately and attach it before presenting, since the URL is derived from
the domain name.
"""
from __future__ import annotations
import logging

from flask import Blueprint, g, jsonify

from cfapi.api.decorators import require_identity
from cfapi.api.helpers.handlers import (
    accepted_delete,
    base_url,
    json_body,
    metadata_maps,
    optional_string,
    query_list,
    relationship_guid,
    remaining_timeout,
    repositories,
    sorted_records,
)
from cfapi.api.presenters import present_list, present_route
from cfapi.core.errors import NotFoundError, UnknownError, UnprocessableEntityError
from cfapi.core.repositories import CreateRouteMessage, ListDomainsMessage, ListRoutesMessage

bp = Blueprint("routes", __name__, url_prefix="/v3/routes")

logger = logging.getLogger(__name__)


@bp.route("", methods=["GET"])
@require_identity
def list_routes():
    message = ListRoutesMessage(
        space_guids=query_list("space_guids"),
        domain_guids=query_list("domain_guids"),
        hosts=query_list("hosts"),
        paths=query_list("paths"),
    )
    repos = repositories()
    routes = repos.routes.list_routes(g.identity, message, timeout=remaining_timeout())
    domains = {}
    if routes:
        visible = repos.domains.list_domains(g.identity, ListDomainsMessage(), timeout=remaining_timeout())
        domains = {domain.guid: domain for domain in visible}

    attached = []
    for route in routes:
        domain = domains.get(route.domain.guid)
        if domain is None:
            raise UnknownError(cause=NotFoundError("Domain"))
        attached.append(route.with_domain(domain))

    query = {
        key: ",".join(values)
        for key, values in (
            ("space_guids", message.space_guids),
            ("domain_guids", message.domain_guids),
            ("hosts", message.hosts),
            ("paths", message.paths),
        )
        if values
    }
    return jsonify(present_list(sorted_records(attached), present_route, base_url(), "/v3/routes", query))


@bp.route("", methods=["POST"])
@require_identity
def create_route():
    body = json_body()
    host = optional_string(body, "host")
    path = optional_string(body, "path")
    space_guid = relationship_guid(body, "space")
    domain_guid = relationship_guid(body, "domain")
    labels, annotations = metadata_maps(body)

    repos = repositories()
    try:
        repos.spaces.fetch_space(g.identity, space_guid, timeout=remaining_timeout())
    except NotFoundError as e:
        raise UnprocessableEntityError("Invalid space. Ensure that the space exists and you have access to it.") from e
    try:
        domain = repos.domains.fetch_domain(g.identity, domain_guid, timeout=remaining_timeout())
    except NotFoundError as e:
        raise UnprocessableEntityError("Invalid domain. Ensure that the domain exists and you have access to it.") from e

    message = CreateRouteMessage(
        space_guid=space_guid,
        domain_guid=domain.guid,
        domain_namespace=repos.domains.root_namespace,
        host=host,
        path=path,
        labels=labels,
        annotations=annotations,
    )
    record = repos.routes.create_route(g.identity, message, timeout=remaining_timeout())
    return jsonify(present_route(record.with_domain(domain), base_url())), 201


@bp.route("/<guid>", methods=["GET"])
@require_identity
def get_route(guid: str):
    """Route plus its domain: two reads, one per record."""
    repos = repositories()
    route = repos.routes.fetch_route(g.identity, guid, timeout=remaining_timeout())
    try:
        domain = repos.domains.fetch_domain(g.identity, route.domain.guid, timeout=remaining_timeout())
    except NotFoundError as e:
        logger.error(f"Route {guid} references missing domain {route.domain.guid}")
        raise UnknownError(cause=e) from e
    return jsonify(present_route(route.with_domain(domain), base_url()))


@bp.route("/<guid>", methods=["DELETE"])
@require_identity
def delete_route(guid: str):
    repos = repositories()
    route = repos.routes.fetch_route(g.identity, guid, timeout=remaining_timeout())
    repos.routes.delete_route(g.identity, route.space_guid, guid, timeout=remaining_timeout())
    return accepted_delete("route", guid)
