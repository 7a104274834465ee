"""
The external separation tool (demucs): model catalogue, argument building, availability probe.
"""

from dataclasses import dataclass, field
from pathlib import Path

from stemsplit import config
from stemsplit.models import SeparationRequest, ToolStatus
from stemsplit.runner import run_process

FOUR_STEMS = ("drums", "bass", "vocals", "other")
SIX_STEMS = ("drums", "bass", "vocals", "guitar", "piano", "other")

# model id -> (stages it produces, description)
AVAILABLE_MODELS: dict[str, tuple[tuple[str, ...], str]] = {
    "htdemucs": (FOUR_STEMS, "4 stems: drums, bass, vocals, other"),
    "htdemucs_6s": (SIX_STEMS, "6 stems: drums, bass, vocals, guitar, piano, other (recommended)"),
    "htdemucs_ft": (FOUR_STEMS, "Fine-tuned version for better vocals separation"),
}

INSTALL_GUIDANCE = (
    "Demucs is not installed. Please install it using:\n"
    "  pip install demucs\n"
    "Or for GPU support:\n"
    "  pip install demucs torch torchvision torchaudio --index-url https://download.pytorch.org/whl/cu118\n"
    "Then verify with: demucs --help"
)


def expected_stages(model: str) -> list[str]:
    """Stage names the model should produce, in output order. Unknown models get the 4-stem list."""
    stages, _ = AVAILABLE_MODELS.get(model.strip().lower(), (FOUR_STEMS, ""))
    return list(stages)


@dataclass(frozen=True)
class ToolSpec:
    """How to run the tool and its version probe."""
    command: tuple[str, ...] = field(default_factory=lambda: tuple(config.TOOL_COMMAND))
    version_command: tuple[str, ...] = field(default_factory=lambda: tuple(config.VERSION_COMMAND))
    probe_timeout: float = field(default_factory=lambda: config.PROBE_TIMEOUT_SEC)

    @property
    def name(self) -> str:
        return Path(self.command[-1]).stem if self.command else "tool"


def build_tool_arguments(request: SeparationRequest, output_dir: Path) -> list[str]:
    """
    <input> -n <model> -o <output_dir> [--mp3] [-d cpu] [-j N] [--shifts N]
    Optional flags only appear when they change the tool's defaults.
    """
    args = [str(request.input_file), "-n", request.model, "-o", str(output_dir)]
    if request.output_format == "mp3":
        args.append("--mp3")
    if request.cpu_only:
        args += ["-d", "cpu"]
    if request.jobs > 1:
        args += ["-j", str(request.jobs)]
    if request.shifts > 0:
        args += ["--shifts", str(request.shifts)]
    return args


def extract_version(show_output: str) -> str | None:
    """Value after the first 'Version:' line of `pip show` output."""
    for line in show_output.splitlines():
        if line.lower().startswith("version:"):
            return line[len("version:"):].strip() or None
    return None


def check_tool_installation(tool: ToolSpec | None = None) -> ToolStatus:
    """
    `<tool> --help` exit 0 means installed; then read the version from the package manager.
    Both calls are bounded by the probe timeout and killed if they overrun.
    """
    tool = tool or ToolSpec()
    probe = run_process(tool.command, ["--help"], timeout=tool.probe_timeout)
    if not probe.ok:
        return ToolStatus(installed=False)
    version = None
    if tool.version_command:
        shown = run_process(tool.version_command, timeout=tool.probe_timeout)
        if shown.ok:
            version = extract_version(shown.stdout)
    return ToolStatus(installed=True, version=version)
