"""
Subprocess runner for the external separation tool.
"""

from stemsplit.runner.process import ToolInvocation, kill_process_tree, run_process

__all__ = ["ToolInvocation", "kill_process_tree", "run_process"]
