"""Console logging: tagged, flushed lines on stderr."""

import sys

TAG = "[StemSplit]"


def log(msg: str) -> None:
    print(f"{TAG} {msg}", file=sys.stderr, flush=True)
