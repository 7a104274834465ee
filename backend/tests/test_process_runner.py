# tests/test_process_runner.py

import sys
import threading
import time

from stemsplit.runner import run_process

PY = [sys.executable, "-c"]


def test_captures_both_streams_and_calls_handlers():
    out_lines, err_lines = [], []
    code = "import sys; print('hello'); print('oops', file=sys.stderr); sys.exit(3)"
    result = run_process(PY + [code], on_stdout=out_lines.append, on_stderr=err_lines.append)

    assert result.exit_code == 3
    assert not result.ok
    assert result.error is None
    assert out_lines == ["hello"]
    assert err_lines == ["oops"]
    assert result.stdout == "hello\n"
    assert result.stderr == "oops\n"
    assert result.command == sys.executable


def test_string_arguments_are_split():
    result = run_process([sys.executable], "-c 'print(1 + 1)'")
    assert result.ok
    assert result.stdout.strip() == "2"
    assert result.arguments == "-c 'print(1 + 1)'"


def test_large_output_on_both_streams_does_not_deadlock():
    code = (
        "import sys\n"
        "for i in range(20000):\n"
        "    sys.stdout.write('o' * 100 + '\\n')\n"
        "    sys.stderr.write('e' * 100 + '\\n')\n"
    )
    err_count = []
    result = run_process(PY + [code], on_stderr=lambda line: err_count.append(1), timeout=120)
    assert result.exit_code == 0
    assert len(err_count) == 20000
    assert result.stdout.count("\n") == 20000


def test_carriage_return_redraws_are_separate_lines():
    lines = []
    code = "import sys; sys.stderr.write(' 10%|#\\r 50%|##\\r100%|###\\n')"
    run_process(PY + [code], on_stderr=lines.append)
    assert lines == [" 10%|#", " 50%|##", "100%|###"]


def test_missing_executable_is_reported_not_raised():
    result = run_process("definitely-not-a-real-tool-xyz", ["--help"])
    assert result.exit_code == -1
    assert "not found" in result.error
    assert not result.ok


def test_empty_command():
    result = run_process([])
    assert result.error == "Empty command"


def test_timeout_kills_process():
    started = time.monotonic()
    result = run_process(PY + ["import time; time.sleep(30)"], timeout=0.5)
    assert result.timed_out
    assert result.exit_code == -1
    assert "timed out" in result.error
    assert time.monotonic() - started < 15


def test_timeout_kills_descendants_holding_the_pipes():
    # The grandchild inherits stdout; if it survived, draining would block until it exits
    code = (
        "import subprocess, sys, time\n"
        "subprocess.Popen([sys.executable, '-c', 'import time; time.sleep(30)'])\n"
        "time.sleep(30)\n"
    )
    started = time.monotonic()
    result = run_process(PY + [code], timeout=0.5)
    assert result.timed_out
    assert time.monotonic() - started < 15


def test_cancel_event_kills_process():
    cancel = threading.Event()
    threading.Timer(0.3, cancel.set).start()
    result = run_process(PY + ["import time; time.sleep(30)"], cancel_event=cancel)
    assert result.cancelled
    assert result.exit_code == -1


def test_failing_handler_does_not_stop_capture():
    def boom(line):
        raise ValueError("bad handler")

    code = "import sys\nfor i in range(5): print(i, file=sys.stderr)"
    result = run_process(PY + [code], on_stderr=boom)
    assert result.exit_code == 0
    assert result.stderr.split() == ["0", "1", "2", "3", "4"]
