# tests/conftest.py

import sys
from pathlib import Path

import pytest

from stemsplit.stems.tool import ToolSpec

# -------------------------------------------------------------------
# A stand-in for demucs: same CLI shape, prints tqdm-like progress to
# stderr, writes fake stem files into <out>/<layout>.
# -------------------------------------------------------------------

FAKE_TOOL = '''
import sys
import time
from pathlib import Path

STEMS = {stems!r}
EXIT_CODE = {exit_code!r}
HELP_EXIT = {help_exit!r}
HELP_SLEEP = {help_sleep!r}
RUN_SLEEP = {run_sleep!r}
LAYOUT = {layout!r}
MARKER = {marker!r}

args = sys.argv[1:]
if args == ["--help"]:
    time.sleep(HELP_SLEEP)
    print("usage: demucs [-h] [-n NAME] [-o OUT] tracks")
    sys.exit(HELP_EXIT)
if args[:1] == ["show"]:
    print("Name: demucs")
    print("Version: 4.0.1")
    sys.exit(0)

if MARKER:
    Path(MARKER).write_text(" ".join(args))

track = Path(args[0])
model = args[args.index("-n") + 1]
out = Path(args[args.index("-o") + 1])
ext = ".mp3" if "--mp3" in args else ".wav"

print("Selected model is a bag of 1 models.")
print("Separating track " + str(track), file=sys.stderr, flush=True)
for p in (10, 50, 99, 100):
    print(f"{{p:3d}}%|#####| {{p}}/100 [00:01<00:00]", file=sys.stderr, flush=True)
time.sleep(RUN_SLEEP)
if EXIT_CODE:
    print("RuntimeError: model exploded", file=sys.stderr, flush=True)
    sys.exit(EXIT_CODE)

dest = out / LAYOUT.format(model=model, track=track.stem)
dest.mkdir(parents=True, exist_ok=True)
for stem in STEMS:
    (dest / (stem + ext)).write_bytes(("fake " + stem).encode())
'''


@pytest.fixture
def make_tool(tmp_path):
    """
    Build a ToolSpec for a fake demucs.
    marker: file the fake writes its arguments to when a separation actually runs.
    """
    def _make(
        stems=("drums", "bass", "vocals", "other"),
        exit_code=0,
        help_exit=0,
        help_sleep=0,
        run_sleep=0,
        layout="{model}/{track}",
        marker=None,
        probe_timeout=30,
    ) -> ToolSpec:
        script = tmp_path / "fake_demucs.py"
        script.write_text(FAKE_TOOL.format(
            stems=list(stems),
            exit_code=exit_code,
            help_exit=help_exit,
            help_sleep=help_sleep,
            run_sleep=run_sleep,
            layout=layout,
            marker=str(marker) if marker else None,
        ))
        return ToolSpec(
            command=(sys.executable, str(script)),
            version_command=(sys.executable, str(script), "show"),
            probe_timeout=probe_timeout,
        )

    return _make


@pytest.fixture
def song(tmp_path) -> Path:
    """An input file; the fake tool never decodes it."""
    path = tmp_path / "music" / "song.wav"
    path.parent.mkdir()
    path.write_bytes(b"RIFF....WAVEfmt ")
    return path


@pytest.fixture
def temp_root(tmp_path) -> Path:
    root = tmp_path / "work"
    root.mkdir()
    return root
