"""orgs/ -- Organizations: the tenant containers users are grouped into.

Layer rule: orgs/ may import from core/ and auth/. It does NOT import from api/.
"""
