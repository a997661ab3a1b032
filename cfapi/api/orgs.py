"""Organization endpoints (/v3/organizations)."""
from __future__ import annotations

from flask import Blueprint, g, jsonify

from cfapi.api.decorators import require_identity
from cfapi.api.helpers.handlers import (
    accepted_delete,
    base_url,
    json_body,
    metadata_maps,
    optional_bool,
    query_list,
    remaining_timeout,
    repositories,
    required_string,
    sorted_records,
)
from cfapi.api.presenters import present_list, present_org
from cfapi.core.repositories import CreateOrgMessage, ListOrgsMessage

bp = Blueprint("orgs", __name__, url_prefix="/v3/organizations")


@bp.route("", methods=["GET"])
@require_identity
def list_orgs():
    """List orgs visible to the caller, optionally restricted by ``names``."""
    message = ListOrgsMessage(names=query_list("names"))
    records = repositories().orgs.list_orgs(g.identity, message, timeout=remaining_timeout())
    query = {"names": ",".join(message.names)} if message.names else None
    return jsonify(present_list(sorted_records(records), present_org, base_url(), "/v3/organizations", query))


@bp.route("", methods=["POST"])
@require_identity
def create_org():
    body = json_body()
    labels, annotations = metadata_maps(body)
    message = CreateOrgMessage(
        name=required_string(body, "name"),
        suspended=optional_bool(body, "suspended"),
        labels=labels,
        annotations=annotations,
    )
    record = repositories().orgs.create_org(g.identity, message, timeout=remaining_timeout())
    return jsonify(present_org(record, base_url())), 201


@bp.route("/<guid>", methods=["GET"])
@require_identity
def get_org(guid: str):
    record = repositories().orgs.fetch_org(g.identity, guid, timeout=remaining_timeout())
    return jsonify(present_org(record, base_url()))


@bp.route("/<guid>", methods=["DELETE"])
@require_identity
def delete_org(guid: str):
    repos = repositories()
    # A caller that cannot see the org gets 404 rather than 403
    repos.orgs.fetch_org(g.identity, guid, timeout=remaining_timeout())
    repos.orgs.delete_org(g.identity, guid, timeout=remaining_timeout())
    return accepted_delete("org", guid)
