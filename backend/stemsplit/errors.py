"""
Failures raised inside the separation pipeline.
separate_into_stems() catches all of these at its boundary and returns a failed SeparationResult.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from stemsplit.runner.process import ToolInvocation


class SeparationError(RuntimeError):
    """Base for every fatal pipeline failure."""


class InputValidationError(SeparationError):
    """Input path missing or extension not allowed. Raised before any process is spawned."""


class ToolUnavailableError(SeparationError):
    """The external tool could not be run (probe failed)."""


class ProcessFailureError(SeparationError):
    """The external tool exited non-zero, could not be spawned, or timed out."""

    def __init__(self, message: str, invocation: ToolInvocation | None = None):
        super().__init__(message)
        self.invocation = invocation


class SeparationCancelledError(SeparationError):
    """The caller cancelled the separation while the tool was running."""


class NoOutputFoundError(SeparationError):
    """The tool exited cleanly but no stem files could be located."""


class CopyFailedError(SeparationError):
    """Stems were located but none could be copied to the output directory."""
