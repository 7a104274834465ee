"""
Data model for StemSplit: separation request, stem kinds, progress events, result.
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from stemsplit.config import DEFAULT_MODEL

OutputFormat = Literal["wav", "mp3"]


class StemKind(str, Enum):
    """Semantic stem identifiers. ACOUSTIC_GUITAR and STRINGS are not produced by any current model."""
    DRUMS = "drums"
    BASS = "bass"
    ELECTRIC_GUITAR = "electric_guitar"
    ACOUSTIC_GUITAR = "acoustic_guitar"
    PIANO = "piano"
    STRINGS = "strings"
    VOCALS = "vocals"
    OTHER = "other"


class SeparationRequest(BaseModel):
    """One separation job. Immutable once constructed."""
    model_config = ConfigDict(frozen=True)

    input_file: Path = Field(..., description="Audio file to separate")
    output_dir: Path | None = Field(default=None, description="Where final stems go; defaults to the input file's directory")
    model: str = Field(default=DEFAULT_MODEL, min_length=1, description="Tool model id, e.g. htdemucs or htdemucs_6s")
    output_format: OutputFormat = Field(default="wav", description="Stem file format: wav or mp3")
    cpu_only: bool = Field(default=False, description="Force CPU processing (-d cpu)")
    shifts: int = Field(default=1, ge=0, description="Random shifts; higher = better quality, slower")
    jobs: int = Field(default=1, ge=1, description="Parallel jobs passed to the tool")

    @property
    def track_name(self) -> str:
        return self.input_file.stem

    @property
    def extension(self) -> str:
        return ".mp3" if self.output_format == "mp3" else ".wav"

    @property
    def final_output_dir(self) -> Path:
        if self.output_dir is not None:
            return self.output_dir
        return self.input_file.parent


class ProgressKind(str, Enum):
    INFO = "info"
    OVERALL_PROGRESS = "overall_progress"
    STAGE_PROGRESS = "stage_progress"
    STAGE_COMPLETE = "stage_complete"


class ProgressEvent(BaseModel):
    """One observed change in separation progress."""
    model_config = ConfigDict(frozen=True)

    kind: ProgressKind
    message: str = ""
    overall_percent: int | None = Field(default=None, ge=0, le=100)
    stage: str | None = Field(default=None, description="Current stage name, e.g. drums")
    stage_index: int | None = Field(default=None, ge=1, description="1-based index of the stage")
    total_stages: int | None = Field(default=None, ge=1)
    stage_percent: int | None = Field(default=None, ge=0, le=100)

    @classmethod
    def info(cls, message: str) -> "ProgressEvent":
        return cls(kind=ProgressKind.INFO, message=message)

    @classmethod
    def overall(cls, percent: int) -> "ProgressEvent":
        return cls(kind=ProgressKind.OVERALL_PROGRESS, overall_percent=percent, message=f"Overall: {percent}%")

    @classmethod
    def stage_progress(cls, stage: str, index: int, total: int, percent: int) -> "ProgressEvent":
        return cls(
            kind=ProgressKind.STAGE_PROGRESS,
            stage=stage,
            stage_index=index,
            total_stages=total,
            stage_percent=percent,
            message=f"Processing {stage}...",
        )

    @classmethod
    def stage_complete(cls, stage: str, index: int, total: int) -> "ProgressEvent":
        return cls(
            kind=ProgressKind.STAGE_COMPLETE,
            stage=stage,
            stage_index=index,
            total_stages=total,
            stage_percent=100,
            message=f"Completed: {stage}",
        )


@dataclass(frozen=True)
class LocatedStem:
    """A stem file found in the tool's output directory."""
    stage: str
    kind: StemKind
    source: Path


class SeparationResult(BaseModel):
    success: bool
    error: str | None = None
    output_dir: Path | None = Field(default=None, description="Directory the final stems were written to")
    stems: dict[StemKind, Path] = Field(default_factory=dict, description="Only stems that were copied successfully")
    elapsed_sec: float = Field(default=0.0, ge=0)
    warnings: list[str] = Field(default_factory=list, description="Non-fatal problems (copy or cleanup failures)")
    error_type: str | None = Field(default=None, description="Failure class name, e.g. ToolUnavailableError")
    exit_code: int | None = Field(default=None, description="Tool exit code when the tool itself failed")

    @classmethod
    def failed(
        cls,
        error: str,
        elapsed_sec: float = 0.0,
        warnings: list[str] | None = None,
        error_type: str | None = None,
        exit_code: int | None = None,
    ) -> "SeparationResult":
        return cls(
            success=False,
            error=error,
            elapsed_sec=elapsed_sec,
            warnings=warnings or [],
            error_type=error_type,
            exit_code=exit_code,
        )

    @classmethod
    def succeeded(
        cls,
        output_dir: Path,
        stems: dict[StemKind, Path],
        elapsed_sec: float,
        warnings: list[str] | None = None,
    ) -> "SeparationResult":
        if not stems:
            raise ValueError("A successful result needs at least one stem")
        return cls(success=True, output_dir=output_dir, stems=stems, elapsed_sec=elapsed_sec, warnings=warnings or [])


class ToolStatus(BaseModel):
    installed: bool
    version: str | None = None
