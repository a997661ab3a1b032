"""Gunicorn configuration for the CF API server.

Secrets are read from /run/secrets by ``cfapi.config.load_settings`` in each
worker; nothing is loaded here beyond reporting what is mounted.
"""
import os
from pathlib import Path

wsgi_app = "cfapi.flask_app:create_app()"
bind = os.environ.get("GUNICORN_BIND", "0.0.0.0:9000")
workers = int(os.environ.get("GUNICORN_WORKERS", "2"))
threads = int(os.environ.get("GUNICORN_THREADS", "4"))
# Slightly above the request deadline so cluster calls time out first
timeout = int(float(os.environ.get("REQUEST_TIMEOUT_SECONDS", "30"))) + 5
accesslog = "-"


def post_fork(server, worker):
    """Called just after a worker has been forked."""
    secrets_dir = Path("/run/secrets")
    if secrets_dir.is_dir():
        secret_files = [p for p in secrets_dir.iterdir() if p.is_file()]
        worker.log.info(f"Found {len(secret_files)} secrets in {secrets_dir}")
    else:
        worker.log.info(f"{secrets_dir} not mounted; settings fall back to environment variables")
