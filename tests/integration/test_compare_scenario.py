"""End-to-end: both languages run the same problem and the pair is compared."""

import asyncio
import shutil
import sys
import time

import pytest

from codeflip.core.models import Language, ResultKey
from codeflip.runner.adapter import RuntimeAdapter
from codeflip.services.execution import ExecutionService
from codeflip.services.orchestrator import RunOrchestrator
from codeflip.services.problem_repository import ProblemRepository
from codeflip.services.transport import LocalTransport

PY_SUM = "print(sum([2, 7, 11, 15]))\n"
TS_SUM = "console.log([2, 7, 11, 15].reduce((a, b) => a + b, 0));\n"


def _orchestrator(settings):
    repo = ProblemRepository(store=None)
    service = ExecutionService(LocalTransport(RuntimeAdapter(settings)), settings)
    return repo, RunOrchestrator(repo, service)


@pytest.mark.skipif(shutil.which("tsx") is None, reason="tsx not installed")
def test_two_sum_compare_with_real_runtimes(settings):
    settings.runtimes = {
        "python": {"command": [sys.executable, "{file}"]},
        "typescript": {"command": ["tsx", "{file}"]},
    }
    repo, orc = _orchestrator(settings)
    repo.update_source("two-sum", Language.PYTHON, PY_SUM)
    repo.update_source("two-sum", Language.TYPESCRIPT, TS_SUM)

    outcome = asyncio.run(orc.run_both("two-sum"))

    assert set(outcome.committed) == {ResultKey("two-sum", Language.PYTHON), ResultKey("two-sum", Language.TYPESCRIPT)}
    py = orc.result_for("two-sum", Language.PYTHON)
    ts = orc.result_for("two-sum", Language.TYPESCRIPT)
    assert py.stdout.strip() == ts.stdout.strip() == "35"
    assert py.exit_code == ts.exit_code == 0


def test_never_terminating_snippet_is_bounded(settings):
    settings.run_timeout_s = 0.5
    repo, orc = _orchestrator(settings)
    repo.update_source("two-sum", Language.PYTHON, "while True:\n    pass\n")
    repo.update_source("two-sum", Language.TYPESCRIPT, PY_SUM)

    start = time.time()
    asyncio.run(orc.run_both("two-sum"))
    elapsed = time.time() - start

    assert elapsed < 5
    looped = orc.result_for("two-sum", Language.PYTHON)
    assert looped.exit_code != 0
    assert looped.timed_out is True
    # the other side of the pair is unaffected
    assert orc.result_for("two-sum", Language.TYPESCRIPT).stdout.strip() == "35"
    assert orc.is_running is False
