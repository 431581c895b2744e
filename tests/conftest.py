import asyncio
import sys
from typing import Dict, List, Optional

import pytest

from codeflip.core.models import ExecutionResult, Language, Problem
from codeflip.core.utils import now_ms
from codeflip.services.problem_repository import ProblemRepository
from codeflip.settings import Settings


@pytest.fixture
def settings(tmp_path):
    # both languages go through the current interpreter so tests need no tsx
    return Settings(
        tmp_dir=tmp_path / "tmp",
        run_timeout_s=5,
        execute_deadline_s=15,
        runtimes={
            "python": {"command": [sys.executable, "{file}"]},
            "typescript": {"command": [sys.executable, "{file}"]},
        },
        snapshot_url=f"sqlite:///{tmp_path / 'codeflip.db'}",
    )


class ScriptedService:
    """
    Stand-in ExecutionService: each call sleeps for the next scripted delay
    of its language and echoes a label so tests can tell calls apart.
    """

    def __init__(self, delays: Dict[Language, List[float]], raise_for: Optional[Language] = None):
        self.delays = {lang: list(v) for lang, v in delays.items()}
        self.raise_for = raise_for
        self.calls: List[Language] = []

    async def execute(self, language, code):
        lang = Language.parse(language)
        n = sum(1 for c in self.calls if c == lang)
        self.calls.append(lang)
        queue = self.delays.get(lang) or [0.0]
        await asyncio.sleep(queue[min(n, len(queue) - 1)])
        if lang is self.raise_for:
            raise RuntimeError("backend exploded")
        return ExecutionResult(
            stdout=f"{lang.value}#{n}:{code}",
            stderr="",
            exit_code=0,
            language=lang,
            executed_at=now_ms(),
        )


@pytest.fixture
def repository():
    repo = ProblemRepository(store=None)
    repo._problems.append(
        Problem(
            id="sum",
            title="Sum",
            sources={Language.PYTHON: "py-src", Language.TYPESCRIPT: "ts-src"},
            created_at=now_ms(),
        )
    )
    return repo


@pytest.fixture
def scripted_service():
    return ScriptedService
