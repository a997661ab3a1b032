"""Cloud Foundry v3 API backed by Kubernetes custom resources.

To build the Flask app:
    from cfapi.flask_app import create_app

To use the repositories directly:
    from cfapi.core.client_builder import ScopedClientBuilder
    from cfapi.core.repositories import OrgRepository
"""
# Note: flask_app is not imported here so scripts can use cfapi.core without Flask
