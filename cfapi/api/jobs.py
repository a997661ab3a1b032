"""Job endpoints (/v3/jobs).

Deletions are asynchronous in the cluster (finalizers), but the API server
does not track them; a job GUID encodes ``<kind>.delete~<guid>`` and is
always reported complete.
"""
from __future__ import annotations
import re

from flask import Blueprint, jsonify

from cfapi.api.decorators import require_identity
from cfapi.api.helpers.handlers import base_url
from cfapi.api.presenters import present_job
from cfapi.core.errors import NotFoundError

bp = Blueprint("jobs", __name__, url_prefix="/v3/jobs")

JOB_GUID = re.compile(r"^(?P<kind>[a-z_]+)\.delete~(?P<guid>[A-Za-z0-9-]+)$")


@bp.route("/<job_guid>", methods=["GET"])
@require_identity
def get_job(job_guid: str):
    match = JOB_GUID.match(job_guid)
    if match is None:
        raise NotFoundError("Job")
    return jsonify(present_job(job_guid, f"{match['kind']}.delete", base_url()))
