"""
Progress parsing: console lines from the separation tool -> structured ProgressEvents.
"""

from stemsplit.progress.parser import PercentStageStrategy, ProgressParser, ProgressStrategy

__all__ = ["PercentStageStrategy", "ProgressParser", "ProgressStrategy"]
