"""Runtime adapter: process invocation, timeouts and failure shapes."""

import sys
import threading
import time
from pathlib import Path

import pytest

from codeflip.core.models import Language
from codeflip.runner import base as runner_base
from codeflip.runner.adapter import RuntimeAdapter
from codeflip.runner.base import TIMEOUT_EXIT_CODE
from codeflip.runner.python_runner import PythonRunner


def test_unknown_language_never_spawns(settings, monkeypatch):
    def _no_spawn(*args, **kwargs):
        raise AssertionError("a process was spawned")

    monkeypatch.setattr(runner_base.subprocess, "Popen", _no_spawn)

    result = RuntimeAdapter(settings).invoke("ruby", "puts 1")
    assert result.exit_code == 1
    assert result.stderr == "Unsupported language: ruby"
    assert result.stdout == ""


def test_captures_stdout_and_stderr(settings):
    code = "import sys\nprint('hello')\nprint('warn', file=sys.stderr)\n"
    result = RuntimeAdapter(settings).invoke(Language.PYTHON, code)
    assert result.exit_code == 0
    assert result.stdout == "hello\n"
    assert result.stderr == "warn\n"
    assert result.timed_out is False


def test_nonzero_exit_is_reported(settings):
    result = RuntimeAdapter(settings).invoke(Language.PYTHON, "import sys\nsys.exit(3)\n")
    assert result.exit_code == 3


def test_empty_source_runs_as_is(settings):
    result = RuntimeAdapter(settings).invoke(Language.PYTHON, "")
    assert result.exit_code == 0
    assert result.stdout == ""


def test_spawn_failure_becomes_result(settings):
    settings.runtimes["python"] = {"command": ["cf-no-such-interpreter-xyz", "{file}"]}
    result = RuntimeAdapter(settings).invoke(Language.PYTHON, "print(1)")
    assert result.exit_code == 1
    assert "cf-no-such-interpreter-xyz" in result.stderr


def test_timeout_kills_process(settings):
    start = time.time()
    result = RuntimeAdapter(settings).invoke(
        Language.PYTHON, "import time\nprint('started', flush=True)\ntime.sleep(30)\n", timeout_s=0.5
    )
    elapsed = time.time() - start

    assert result.exit_code == TIMEOUT_EXIT_CODE
    assert result.timed_out is True
    assert "[timeout] exceeded 0.5s" in result.stderr
    assert "started" in result.stdout
    assert elapsed < 5


def test_each_invocation_gets_its_own_file(settings):
    adapter = RuntimeAdapter(settings)
    code = "import time\nprint(__file__)\ntime.sleep(0.3)\n"
    outputs = []

    def _invoke(lang):
        outputs.append(adapter.invoke(lang, code).stdout.strip())

    threads = [threading.Thread(target=_invoke, args=(lang,)) for lang in (Language.PYTHON, Language.TYPESCRIPT, Language.PYTHON)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(set(outputs)) == 3
    assert any(p.endswith(".ts") for p in outputs)
    for p in outputs:
        assert not Path(p).exists()


def test_alias_resolves_to_runner(settings):
    result = RuntimeAdapter(settings).invoke("py", "print(6 * 7)")
    assert result.exit_code == 0
    assert result.stdout.strip() == "42"


def test_command_without_file_token_gets_path_appended():
    runner = PythonRunner(command=[sys.executable, "-u"])
    assert runner.command(Path("/tmp/x.py")) == [sys.executable, "-u", "/tmp/x.py"]


def test_command_template_expands_file_token():
    runner = PythonRunner(command=["env", "python3", "{file}"], filename="solution.py")
    assert runner.command(Path("/tmp/a.py")) == ["env", "python3", "/tmp/a.py"]
    assert runner.suffix == ".py"


def test_empty_command_is_rejected():
    with pytest.raises(ValueError):
        PythonRunner(command=[])


def test_available_runtimes_lists_resolvable_executables(settings):
    settings.runtimes["typescript"] = {"command": ["cf-no-such-interpreter-xyz", "{file}"]}
    runtimes = RuntimeAdapter(settings).available_runtimes()
    assert [r["language"] for r in runtimes] == ["python"]
    assert runtimes[0]["version"] == "3.10.0"


def test_unencodable_source_becomes_result(settings):
    result = RuntimeAdapter(settings).invoke(Language.PYTHON, "print('\ud800')")
    assert result.exit_code == 1
    assert "Could not write source file" in result.stderr


def test_invalid_argv_becomes_result(tmp_path):
    entry = tmp_path / "x.py"
    entry.write_text("print(1)\n", encoding="utf-8")
    runner = PythonRunner(command=[sys.executable, "bad\x00arg", "{file}"])
    result = runner.run(entry, timeout_s=5)
    assert result.exit_code == 1
    assert result.stderr.startswith("Failed to start")


def test_describe_includes_executable():
    runner = PythonRunner(command=[sys.executable, "{file}"], version="3.10.0", aliases=["py"])
    assert runner.describe() == {
        "language": "python",
        "version": "3.10.0",
        "aliases": ["py"],
        "executable": sys.executable,
    }
