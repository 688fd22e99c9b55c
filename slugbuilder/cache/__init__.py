"""Persistent cache handling.

This module handles:
- Signature computation and validity checks
- Restoring and saving cached directories

Access via slugbuilder.cache.signature and slugbuilder.cache.store.
"""

DEFAULT_NAMESPACE = "node"

__all__ = ["DEFAULT_NAMESPACE"]
