"""
Runtime configuration for StemSplit, read from the environment (and .env via python-dotenv).
Every value here can also be passed explicitly to the function that uses it.
"""

import os
import shlex
import sys

from dotenv import load_dotenv

load_dotenv()

# External separation tool, e.g. "demucs" or "python -m demucs"
TOOL_COMMAND: list[str] = shlex.split(os.getenv("STEMSPLIT_TOOL_CMD", "demucs"))
TOOL_PACKAGE = os.getenv("STEMSPLIT_TOOL_PACKAGE", "demucs")

_version_cmd = os.getenv("STEMSPLIT_VERSION_CMD", "").strip()
VERSION_COMMAND: list[str] = (
    shlex.split(_version_cmd) if _version_cmd else [sys.executable, "-m", "pip", "show", TOOL_PACKAGE]
)

# Help/version probes are short and always bounded
PROBE_TIMEOUT_SEC = float(os.getenv("STEMSPLIT_PROBE_TIMEOUT", "30"))

# 0 disables the timeout for the separation call itself
SEPARATION_TIMEOUT_SEC = float(os.getenv("STEMSPLIT_SEPARATION_TIMEOUT", "0")) or None

# Parent of the per-request temp directories (None = system temp)
TEMP_ROOT = os.getenv("STEMSPLIT_TEMP_DIR", "").strip() or None

DEFAULT_MODEL = os.getenv("STEMSPLIT_DEFAULT_MODEL", "htdemucs_6s")
