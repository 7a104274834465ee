"""
Copy located stems to the final directory as <track>_<stage><ext>.
Each stem is copied independently; one failed copy never stops the rest.
"""

import shutil
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from stemsplit.console import log
from stemsplit.models import LocatedStem, ProgressEvent, StemKind

# Fixed pool of locks; an output directory always hashes to the same one
LOCK_STRIPES = 64
_dir_locks: tuple[threading.Lock, ...] = tuple(threading.Lock() for _ in range(LOCK_STRIPES))


@dataclass(frozen=True)
class CopyFailure:
    stage: str
    source: Path
    reason: str


@dataclass
class PostProcessReport:
    stems: dict[StemKind, Path] = field(default_factory=dict)
    failures: list[CopyFailure] = field(default_factory=list)


def _lock_for(directory: Path) -> threading.Lock:
    """The lock serializing copies into directory, so concurrent jobs don't interleave overwrites."""
    return _dir_locks[hash(directory.resolve()) % LOCK_STRIPES]


def final_stem_name(track_name: str, stage: str, extension: str) -> str:
    return f"{track_name}_{stage}{extension}"


def post_process_stems(
    stems: dict[str, LocatedStem],
    output_dir: Path,
    track_name: str,
    emit: Callable[[ProgressEvent], None] | None = None,
) -> PostProcessReport:
    """
    Copy every located stem into output_dir, overwriting existing files of the same name.
    Raises OSError only if output_dir itself cannot be created.
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    report = PostProcessReport()
    total = len(stems)
    with _lock_for(output_dir):
        for i, (stage, stem) in enumerate(stems.items(), start=1):
            dest_name = final_stem_name(track_name, stage, stem.source.suffix)
            dest = output_dir / dest_name
            if emit:
                emit(ProgressEvent.stage_progress(stage, i, total, 50))
            try:
                shutil.copyfile(stem.source, dest)
            except OSError as e:
                report.failures.append(CopyFailure(stage=stage, source=stem.source, reason=str(e)))
                log(f"Warning: failed to copy {stage} from {stem.source}: {e}")
                if emit:
                    emit(ProgressEvent.info(f"  ✗ Warning: Failed to copy {stage}: {e}"))
                continue
            report.stems[stem.kind] = dest
            if emit:
                emit(ProgressEvent.stage_complete(stage, i, total))
                emit(ProgressEvent.info(f"  ✓ Saved: {dest_name}"))
    return report
