"""
StemSplit: drive demucs as a subprocess and turn its console output and files into a structured result.
"""

from stemsplit.models import ProgressEvent, ProgressKind, SeparationRequest, SeparationResult, StemKind
from stemsplit.stems import check_tool_installation, separate_into_stems

__all__ = [
    "ProgressEvent",
    "ProgressKind",
    "SeparationRequest",
    "SeparationResult",
    "StemKind",
    "check_tool_installation",
    "separate_into_stems",
]
