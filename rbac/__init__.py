"""rbac/ -- Role-based access control: permission catalog, roles, bindings,
reconciliation, administrator bootstrap and authorization decisions.

Layer rule: rbac/ imports only stdlib + third-party libraries.
It does NOT import from jobs/ or core/. Configuration values (database URL,
bcrypt cost, scope policy) are passed in by the caller.
jobs/ imports from rbac/, not the other way around.
"""
