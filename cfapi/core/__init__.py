"""Core: identity-scoped cluster access and the error taxonomy.

Independent of Flask; the HTTP layer lives in ``cfapi.api``.

Module Structure:
    - identity.py       : Caller identity (user / service account, groups)
    - client_builder.py : Identity -> impersonating CustomObjectsApi
    - errors.py         : Closed error taxonomy (ApiError subclasses)
    - repositories/     : One repository per CF resource kind, plus records
    - image_pusher.py   : Package image push contract and registry client

Usage Pattern:
    builder = ScopedClientBuilder()
    orgs = OrgRepository(builder, root_namespace="cf")
    orgs.list_orgs(Identity.from_username("alice"), timeout=30)
"""
