"""
Stem separation: run the external tool, find its output files, copy them out under canonical names.
"""

from stemsplit.stems.locate import STEM_LOOKUP, candidate_dirs, locate_stems
from stemsplit.stems.postprocess import post_process_stems
from stemsplit.stems.separate import separate_into_stems
from stemsplit.stems.tool import AVAILABLE_MODELS, INSTALL_GUIDANCE, ToolSpec, check_tool_installation

__all__ = [
    "AVAILABLE_MODELS",
    "INSTALL_GUIDANCE",
    "STEM_LOOKUP",
    "ToolSpec",
    "candidate_dirs",
    "check_tool_installation",
    "locate_stems",
    "post_process_stems",
    "separate_into_stems",
]
