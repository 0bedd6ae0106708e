"""core/ -- Kernel: configuration and the domain error taxonomy.

Layer rule: core/ imports only stdlib + third-party libraries. auth/, orgs/,
and api/ import from core/, never the other way around.
"""
