"""core/ -- Shared kernel: configuration.

Layer rule: core/ imports only stdlib + third-party libraries.
"""
