"""Space endpoints (/v3/spaces)."""
from __future__ import annotations

from flask import Blueprint, g, jsonify

from cfapi.api.decorators import require_identity
from cfapi.api.helpers.handlers import (
    accepted_delete,
    base_url,
    json_body,
    metadata_maps,
    query_list,
    relationship_guid,
    remaining_timeout,
    repositories,
    required_string,
    sorted_records,
)
from cfapi.api.presenters import present_list, present_space
from cfapi.core.errors import NotFoundError, UnprocessableEntityError
from cfapi.core.repositories import CreateSpaceMessage, ListSpacesMessage

bp = Blueprint("spaces", __name__, url_prefix="/v3/spaces")


@bp.route("", methods=["GET"])
@require_identity
def list_spaces():
    message = ListSpacesMessage(names=query_list("names"), org_guids=query_list("organization_guids"))
    records = repositories().spaces.list_spaces(g.identity, message, timeout=remaining_timeout())
    query = {}
    if message.names:
        query["names"] = ",".join(message.names)
    if message.org_guids:
        query["organization_guids"] = ",".join(message.org_guids)
    return jsonify(present_list(sorted_records(records), present_space, base_url(), "/v3/spaces", query))


@bp.route("", methods=["POST"])
@require_identity
def create_space():
    body = json_body()
    name = required_string(body, "name")
    org_guid = relationship_guid(body, "organization")
    labels, annotations = metadata_maps(body)

    repos = repositories()
    try:
        repos.orgs.fetch_org(g.identity, org_guid, timeout=remaining_timeout())
    except NotFoundError as e:
        raise UnprocessableEntityError(
            "Invalid organization. Ensure the organization exists and you have access to it."
        ) from e

    message = CreateSpaceMessage(name=name, org_guid=org_guid, labels=labels, annotations=annotations)
    record = repos.spaces.create_space(g.identity, message, timeout=remaining_timeout())
    return jsonify(present_space(record, base_url())), 201


@bp.route("/<guid>", methods=["GET"])
@require_identity
def get_space(guid: str):
    record = repositories().spaces.fetch_space(g.identity, guid, timeout=remaining_timeout())
    return jsonify(present_space(record, base_url()))


@bp.route("/<guid>", methods=["DELETE"])
@require_identity
def delete_space(guid: str):
    repos = repositories()
    record = repos.spaces.fetch_space(g.identity, guid, timeout=remaining_timeout())
    repos.spaces.delete_space(g.identity, record.org_guid, guid, timeout=remaining_timeout())
    return accepted_delete("space", guid)
