"""Adapters (infrastructure) for isoload.

Provide concrete implementations of the resolution ports: filesystem and
archive search path entries, and the shared/isolated resolver tiers.

Dependency rule: may import `isoload.interfaces`; the interfaces must not
import this package.
"""
