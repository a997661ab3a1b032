"""Unauthenticated discovery endpoints."""
from flask import Blueprint, jsonify

from cfapi.api.helpers.handlers import app_config, base_url

bp = Blueprint("root", __name__)


@bp.route("/")
def root_info():
    """Root links, as CF CLI reads them during ``cf api``."""
    cfg = app_config()
    root = base_url()
    return jsonify({
        "links": {
            "self": {"href": root},
            "cloud_controller_v2": None,
            "cloud_controller_v3": {"href": f"{root}/v3", "meta": {"version": "3.117.0+cf-k8s"}},
            "login": {"href": cfg.oidc_issuer},
            "uaa": None,
            "app_ssh": None,
            "network_policy_v0": None,
            "network_policy_v1": None,
            "routing": None,
            "logging": None,
            "log_cache": None,
            "log_stream": None,
        },
    })


@bp.route("/v3")
def v3_info():
    root = base_url()
    return jsonify({
        "links": {
            "self": {"href": f"{root}/v3"},
            "apps": {"href": f"{root}/v3/apps"},
            "domains": {"href": f"{root}/v3/domains"},
            "organizations": {"href": f"{root}/v3/organizations"},
            "packages": {"href": f"{root}/v3/packages"},
            "routes": {"href": f"{root}/v3/routes"},
            "spaces": {"href": f"{root}/v3/spaces"},
        },
    })
