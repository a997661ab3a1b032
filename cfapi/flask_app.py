"""Flask application factory and bootstrap.

This module provides the create_app() factory function for initializing
the Flask application with all blueprints, error handlers and the
identity-scoped repositories.
"""
from __future__ import annotations
import logging
import os

from flask import Flask
from werkzeug.middleware.proxy_fix import ProxyFix

from cfapi.config import AppConfig, load_settings
from cfapi.core.client_builder import ScopedClientBuilder
from cfapi.core.image_pusher import ImagePusher, RegistryImagePusher


# ─────────────────────────────────────────────────────────────────────────────
# Application Factory
# ─────────────────────────────────────────────────────────────────────────────
def create_app(
    config: AppConfig | None = None,
    build_client: ScopedClientBuilder | None = None,
    image_pusher: ImagePusher | None = None,
) -> Flask:
    """Create and configure Flask application.

    Args:
        config: Settings (defaults to ``load_settings()``)
        build_client: Scoped cluster client builder handed to every repository
        image_pusher: Package image pusher (defaults to the registry pusher)
    """
    cfg = config or load_settings()

    app = Flask(__name__)
    app.config["APP_CONFIG"] = cfg

    # Trust X-Forwarded-* headers from the ingress
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1)  # type: ignore

    from cfapi.api.health import CLIENT_BUILDER_EXTENSION
    from cfapi.api.helpers.handlers import (
        IMAGE_PUSHER_EXTENSION,
        REPOSITORIES_EXTENSION,
        Repositories,
        start_request_clock,
    )

    if build_client is None:
        build_client = ScopedClientBuilder(kubeconfig=cfg.kubeconfig)
    if image_pusher is None:
        image_pusher = RegistryImagePusher(
            username=cfg.registry_username or None,
            password=cfg.registry_password or None,
            insecure=cfg.registry_insecure,
        )
    app.extensions[CLIENT_BUILDER_EXTENSION] = build_client
    app.extensions[REPOSITORIES_EXTENSION] = Repositories.build(build_client, cfg.root_namespace)
    app.extensions[IMAGE_PUSHER_EXTENSION] = image_pusher

    # Register blueprints
    from cfapi.api import apps, domains, errors, health, jobs, orgs, packages, root, routes, spaces

    app.register_blueprint(health.bp)
    app.register_blueprint(root.bp)
    app.register_blueprint(orgs.bp)
    app.register_blueprint(spaces.bp)
    app.register_blueprint(domains.bp)
    app.register_blueprint(routes.bp)
    app.register_blueprint(apps.bp)
    app.register_blueprint(packages.bp)
    app.register_blueprint(jobs.bp)

    # Register error handlers
    errors.register_error_handlers(app)

    app.before_request(start_request_clock)

    _configure_logging(app)

    mode_label = "DEMO" if cfg.demo_mode else "PRODUCTION"
    print(f"[flask_app] Mode={mode_label}")
    print(f"[flask_app] CF v3 API registered at {cfg.server_url}/v3 (root namespace: {cfg.root_namespace})")

    return app


def _configure_logging(app: Flask) -> None:
    """Route module loggers through gunicorn's handlers when running under it."""
    level = os.environ.get("LOG_LEVEL", "INFO").upper()
    gunicorn_logger = logging.getLogger("gunicorn.error")
    cfapi_logger = logging.getLogger("cfapi")
    if gunicorn_logger.handlers:
        cfapi_logger.handlers = gunicorn_logger.handlers
        app.logger.handlers = gunicorn_logger.handlers
    elif not logging.getLogger().handlers:
        logging.basicConfig(format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    cfapi_logger.setLevel(level)


if __name__ == "__main__":
    create_app().run(host="0.0.0.0", port=9000, debug=True)
