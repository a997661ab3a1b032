"""App endpoints (/v3/apps)."""
from __future__ import annotations

from flask import Blueprint, g, jsonify

from cfapi.api.decorators import require_identity
from cfapi.api.helpers.handlers import (
    accepted_delete,
    app_config,
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
from cfapi.api.presenters import present_app, present_list
from cfapi.core.errors import NotFoundError, UnprocessableEntityError
from cfapi.core.repositories import CreateAppMessage, ListAppsMessage

bp = Blueprint("apps", __name__, url_prefix="/v3/apps")


def _lifecycle(body: dict) -> tuple[str, list[str], str]:
    """Lifecycle type, buildpacks and stack, defaulting to the buildpack lifecycle."""
    lifecycle = body.get("lifecycle") or {}
    if not isinstance(lifecycle, dict):
        raise UnprocessableEntityError("Lifecycle must be an object")
    lifecycle_type = lifecycle.get("type") or "buildpack"
    if lifecycle_type != "buildpack":
        raise UnprocessableEntityError("Lifecycle type must be one of [buildpack]")

    data = lifecycle.get("data") or {}
    if not isinstance(data, dict):
        raise UnprocessableEntityError("Lifecycle data must be an object")
    buildpacks = data.get("buildpacks") or []
    if not isinstance(buildpacks, list) or not all(isinstance(b, str) for b in buildpacks):
        raise UnprocessableEntityError("Lifecycle buildpacks must be a list of strings")
    stack = data.get("stack") or app_config().default_lifecycle_stack
    if not isinstance(stack, str):
        raise UnprocessableEntityError("Lifecycle stack must be a string")
    return lifecycle_type, buildpacks, stack


@bp.route("", methods=["GET"])
@require_identity
def list_apps():
    message = ListAppsMessage(names=query_list("names"), space_guids=query_list("space_guids"))
    records = repositories().apps.list_apps(g.identity, message, timeout=remaining_timeout())
    query = {}
    if message.names:
        query["names"] = ",".join(message.names)
    if message.space_guids:
        query["space_guids"] = ",".join(message.space_guids)
    return jsonify(present_list(sorted_records(records), present_app, base_url(), "/v3/apps", query))


@bp.route("", methods=["POST"])
@require_identity
def create_app():
    body = json_body()
    name = required_string(body, "name")
    space_guid = relationship_guid(body, "space")
    lifecycle_type, buildpacks, stack = _lifecycle(body)
    labels, annotations = metadata_maps(body)

    repos = repositories()
    try:
        repos.spaces.fetch_space(g.identity, space_guid, timeout=remaining_timeout())
    except NotFoundError as e:
        raise UnprocessableEntityError("Invalid space. Ensure that the space exists and you have access to it.") from e

    message = CreateAppMessage(
        name=name,
        space_guid=space_guid,
        lifecycle_type=lifecycle_type,
        buildpacks=buildpacks,
        stack=stack,
        labels=labels,
        annotations=annotations,
    )
    record = repos.apps.create_app(g.identity, message, timeout=remaining_timeout())
    return jsonify(present_app(record, base_url())), 201


@bp.route("/<guid>", methods=["GET"])
@require_identity
def get_app(guid: str):
    record = repositories().apps.fetch_app(g.identity, guid, timeout=remaining_timeout())
    return jsonify(present_app(record, base_url()))


@bp.route("/<guid>", methods=["DELETE"])
@require_identity
def delete_app(guid: str):
    repos = repositories()
    record = repos.apps.fetch_app(g.identity, guid, timeout=remaining_timeout())
    repos.apps.delete_app(g.identity, record.space_guid, guid, timeout=remaining_timeout())
    return accepted_delete("app", guid)
