"""Dependency installation.

This module handles:
- Choosing between a fresh install and a rebuild of existing dependencies
- Running manifest lifecycle hooks
- Summarizing the installed top-level dependencies
"""

from slugbuilder.install.planner import decide, plan_install_commands

__all__ = ["decide", "plan_install_commands"]
