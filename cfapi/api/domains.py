"""Domain endpoints (/v3/domains)."""
from __future__ import annotations

from flask import Blueprint, g, jsonify

from cfapi.api.decorators import require_identity
from cfapi.api.helpers.handlers import (
    accepted_delete,
    base_url,
    json_body,
    metadata_maps,
    query_list,
    remaining_timeout,
    repositories,
    required_string,
    sorted_records,
)
from cfapi.api.presenters import present_domain, present_list
from cfapi.core.repositories import CreateDomainMessage, ListDomainsMessage

bp = Blueprint("domains", __name__, url_prefix="/v3/domains")


@bp.route("", methods=["GET"])
@require_identity
def list_domains():
    message = ListDomainsMessage(names=query_list("names"))
    records = repositories().domains.list_domains(g.identity, message, timeout=remaining_timeout())
    query = {"names": ",".join(message.names)} if message.names else None
    return jsonify(present_list(sorted_records(records), present_domain, base_url(), "/v3/domains", query))


@bp.route("", methods=["POST"])
@require_identity
def create_domain():
    body = json_body()
    labels, annotations = metadata_maps(body)
    message = CreateDomainMessage(name=required_string(body, "name"), labels=labels, annotations=annotations)
    record = repositories().domains.create_domain(g.identity, message, timeout=remaining_timeout())
    return jsonify(present_domain(record, base_url())), 201


@bp.route("/<guid>", methods=["GET"])
@require_identity
def get_domain(guid: str):
    record = repositories().domains.fetch_domain(g.identity, guid, timeout=remaining_timeout())
    return jsonify(present_domain(record, base_url()))


@bp.route("/<guid>", methods=["DELETE"])
@require_identity
def delete_domain(guid: str):
    repos = repositories()
    repos.domains.fetch_domain(g.identity, guid, timeout=remaining_timeout())
    repos.domains.delete_domain(g.identity, guid, timeout=remaining_timeout())
    return accepted_delete("domain", guid)
