"""
Find the stem files the separation tool wrote under a temp root.
Tool versions disagree on the folder layout, so we try known locations in a fixed priority
order and fall back to a sorted recursive search for a directory holding drums.<ext>.
"""

import os
from collections.abc import Callable
from pathlib import Path
from types import MappingProxyType

from stemsplit.models import LocatedStem, StemKind

# Canonical stage name (lowercase) -> StemKind. Files with any other base name are not stems.
STEM_LOOKUP: MappingProxyType[str, StemKind] = MappingProxyType({
    "drums": StemKind.DRUMS,
    "bass": StemKind.BASS,
    "vocals": StemKind.VOCALS,
    "guitar": StemKind.ELECTRIC_GUITAR,
    "piano": StemKind.PIANO,
    "other": StemKind.OTHER,
})

# Stage whose file marks a directory as a stem directory during the fallback search
MARKER_STAGE = "drums"

CandidateDir = Callable[[Path, str, str], Path]


def model_dir(root: Path, model: str, track: str) -> Path:
    return root / model / track


def six_stem_dir(root: Path, model: str, track: str) -> Path:
    return root / "htdemucs_6s" / track


def four_stem_dir(root: Path, model: str, track: str) -> Path:
    return root / "htdemucs" / track


def grouped_by_model_dir(root: Path, model: str, track: str) -> Path:
    return root / "separated" / model / track


# Priority order: first existing directory wins
CANDIDATE_DIRS: tuple[CandidateDir, ...] = (model_dir, six_stem_dir, four_stem_dir, grouped_by_model_dir)


def stem_kind(stage: str) -> StemKind | None:
    return STEM_LOOKUP.get(stage.lower())


def candidate_dirs(root: Path, model: str, track: str) -> list[Path]:
    """Candidate stem directories in priority order. Pure: touches no filesystem."""
    return [build(root, model, track) for build in CANDIDATE_DIRS]


def _is_within(path: Path, root: Path) -> bool:
    try:
        path.resolve().relative_to(root.resolve())
    except ValueError:
        return False
    return True


def _is_stem_file(path: Path, extension: str, root: Path) -> bool:
    """A regular file with the right extension that resolves inside root (symlinks out are ignored)."""
    return path.is_file() and path.suffix.lower() == extension and _is_within(path, root)


def _has_marker(directory: Path, extension: str, root: Path) -> bool:
    for entry in directory.iterdir():
        if entry.stem.lower() == MARKER_STAGE and _is_stem_file(entry, extension, root):
            return True
    return False


def search_stem_dir(root: Path, extension: str) -> Path | None:
    """
    Walk root top-down in lexicographic order (symlinked dirs are not followed) and return the
    first directory containing drums<extension>.
    """
    for dirpath, dirnames, _ in os.walk(root, followlinks=False):
        dirnames.sort()
        directory = Path(dirpath)
        if _has_marker(directory, extension, root):
            return directory
    return None


def find_stem_dir(root: Path, model: str, track: str, extension: str) -> Path | None:
    root = Path(root)
    extension = extension.lower()
    for candidate in candidate_dirs(root, model, track):
        if candidate.is_dir() and _is_within(candidate, root):
            return candidate
    if not root.is_dir():
        return None
    return search_stem_dir(root, extension)


def locate_stems(root: Path, model: str, track: str, extension: str) -> dict[str, LocatedStem]:
    """
    Stage name -> LocatedStem for every recognised stem file in the tool's output.
    Returns {} when no stem directory exists.
    """
    root = Path(root)
    stem_dir = find_stem_dir(root, model, track, extension)
    if stem_dir is None:
        return {}
    extension = extension.lower()
    stems: dict[str, LocatedStem] = {}
    for path in sorted(stem_dir.iterdir()):
        if not _is_stem_file(path, extension, root):
            continue
        stage = path.stem.lower()
        kind = stem_kind(stage)
        if kind is None or stage in stems:
            continue
        stems[stage] = LocatedStem(stage=stage, kind=kind, source=path.resolve())
    return stems
