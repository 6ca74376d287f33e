"""jobs/ -- Batch entrypoints that reconcile a database to a shipped desired state.

Each job takes no arguments, prints a summary and exits 0 on success or 1 on
an unrecoverable failure. Configuration comes from core.config.get_settings().

Layer rule: jobs/ may import from core/ and rbac/. Nothing imports from jobs/.
"""
