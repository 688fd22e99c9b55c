"""Node Slug Builder - staged build pipeline for Node.js application trees.

This package compiles a Node.js project directory into a deployable slug:
it installs the toolchain, restores and saves dependency caches gated by
an environment signature, and runs the install/rebuild step with
lifecycle hooks.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
