"""Package endpoints (/v3/packages).

Uploading bits turns the zip into a source image, pushes it to the package
registry and records the resulting reference on the CFPackage. Push
failures are not cluster errors and surface as generic 500s.
"""
from __future__ import annotations
import logging
import zipfile

from flask import Blueprint, g, jsonify, request

from cfapi.api.decorators import require_identity
from cfapi.api.helpers.handlers import (
    app_config,
    base_url,
    image_pusher,
    json_body,
    metadata_maps,
    optional_string,
    relationship_guid,
    remaining_timeout,
    repositories,
)
from cfapi.api.presenters import present_package
from cfapi.core.errors import NotFoundError, UnprocessableEntityError
from cfapi.core.image_pusher import UnsafeArchivePathError, build_source_image
from cfapi.core.repositories import CreatePackageMessage
from cfapi.core.repositories.packages import PACKAGE_TYPE_BITS

bp = Blueprint("packages", __name__, url_prefix="/v3/packages")

logger = logging.getLogger(__name__)


@bp.route("", methods=["POST"])
@require_identity
def create_package():
    body = json_body()
    package_type = optional_string(body, "type", default=PACKAGE_TYPE_BITS)
    if package_type != PACKAGE_TYPE_BITS:
        raise UnprocessableEntityError("Type must be one of ['bits']")
    app_guid = relationship_guid(body, "app")
    labels, annotations = metadata_maps(body)

    repos = repositories()
    try:
        app_record = repos.apps.fetch_app(g.identity, app_guid, timeout=remaining_timeout())
    except NotFoundError as e:
        raise UnprocessableEntityError("App is invalid. Ensure it exists and you have access to it.") from e

    message = CreatePackageMessage(
        app_guid=app_record.guid,
        space_guid=app_record.space_guid,
        type=package_type,
        labels=labels,
        annotations=annotations,
    )
    record = repos.packages.create_package(g.identity, message, timeout=remaining_timeout())
    return jsonify(present_package(record, base_url())), 201


@bp.route("/<guid>", methods=["GET"])
@require_identity
def get_package(guid: str):
    record = repositories().packages.fetch_package(g.identity, guid, timeout=remaining_timeout())
    return jsonify(present_package(record, base_url()))


@bp.route("/<guid>/upload", methods=["POST"])
@require_identity
def upload_bits(guid: str):
    repos = repositories()
    package = repos.packages.fetch_package(g.identity, guid, timeout=remaining_timeout())

    bits = request.files.get("bits")
    if bits is None:
        raise UnprocessableEntityError("Upload must include bits")
    try:
        image = build_source_image(bits.read())
    except zipfile.BadZipFile as e:
        raise UnprocessableEntityError("Bits must be a zip file") from e
    except UnsafeArchivePathError as e:
        raise UnprocessableEntityError(f"Bits contain a path outside the application: {e.filename}") from e

    reference = f"{app_config().package_registry_base}/{package.guid}"
    pushed = image_pusher().push(reference, image)
    logger.info(f"Uploaded bits for package {guid} as {g.identity}: {pushed}")

    record = repos.packages.update_package_image(g.identity, package, pushed, timeout=remaining_timeout())
    return jsonify(present_package(record, base_url()))
