"""Build pipeline orchestration.

This module handles:
- The diagnostic log shared by every stage
- Failure signature scanning
- The staged build state machine
"""

from slugbuilder.pipeline.log import DiagnosticLog

__all__ = ["DiagnosticLog"]

# Import the orchestrator via slugbuilder.pipeline.orchestrator
