from __future__ import annotations
import asyncio
import itertools
import threading
from contextlib import contextmanager
from typing import Dict, Iterator, Optional

import structlog

from ..core.models import ExecutionResult, Language, ResultKey, RunOutcome, RunStatus
from ..core.utils import now_ms
from ..settings import Settings, load_settings
from .execution import ERROR_PREFIX, ExecutionService
from .problem_repository import ProblemRepository
from .result_store import ResultStore

log = structlog.get_logger(__name__)


class RunState:
    """
    Advisory busy flag for the caller's "Run" control. Counts in-flight runs,
    so overlapping runs keep it set until the last one ends. The orchestrator
    updates it but never refuses a run because of it.
    """

    def __init__(self):
        self._active = 0
        self._lock = threading.Lock()

    @property
    def is_running(self) -> bool:
        return self._active > 0

    @contextmanager
    def running(self) -> Iterator[None]:
        with self._lock:
            self._active += 1
        try:
            yield
        finally:
            with self._lock:
                self._active -= 1


class RunOrchestrator:
    def __init__(
        self,
        repository: ProblemRepository,
        service: ExecutionService,
        store: Optional[ResultStore] = None,
        state: Optional[RunState] = None,
    ):
        self.repository = repository
        self.service = service
        self.store = store if store is not None else ResultStore()
        self.state = state if state is not None else RunState()
        self._seq = itertools.count(1)

    @property
    def is_running(self) -> bool:
        return self.state.is_running

    async def run_single(self, problem_id: str, language: Language) -> RunOutcome:
        lang = Language.parse(language)
        if lang is None:
            log.warning("run_skipped", problem_id=problem_id, language=str(language), reason="unsupported_language")
            return RunOutcome(status=RunStatus.UNSUPPORTED_LANGUAGE, problem_id=problem_id)
        problem = self.repository.get(problem_id)
        if problem is None:
            log.warning("run_skipped", problem_id=problem_id, language=lang.value, reason="problem_not_found")
            return RunOutcome(status=RunStatus.PROBLEM_NOT_FOUND, problem_id=problem_id)

        seq = next(self._seq)
        with self.state.running():
            result = await self._execute(lang, problem.source_for(lang))
            return self._commit(problem_id, {lang: result}, seq)

    async def run_both(self, problem_id: str) -> RunOutcome:
        problem = self.repository.get(problem_id)
        if problem is None:
            log.warning("run_skipped", problem_id=problem_id, language="both", reason="problem_not_found")
            return RunOutcome(status=RunStatus.PROBLEM_NOT_FOUND, problem_id=problem_id)

        langs = list(Language)
        seq = next(self._seq)
        with self.state.running():
            # both pipelines in flight at once; join on the slower one
            results = await asyncio.gather(
                *(self._execute(lang, problem.source_for(lang)) for lang in langs)
            )
            return self._commit(problem_id, dict(zip(langs, results)), seq)

    async def _execute(self, language: Language, code: Optional[str]) -> ExecutionResult:
        try:
            return await self.service.execute(language, code)
        except Exception as e:
            log.error("execution_service_raised", language=language.value, error=repr(e))
            return ExecutionResult(
                stdout="",
                stderr=f"{ERROR_PREFIX}{e}",
                exit_code=1,
                language=language,
                executed_at=now_ms(),
            )

    def _commit(self, problem_id: str, results: Dict[Language, ExecutionResult], seq: int) -> RunOutcome:
        keys = {ResultKey(problem_id, lang): res for lang, res in results.items()}
        written = self.store.set_many(keys, seq=seq)
        rejected = [k for k in keys if k not in written]
        if rejected:
            log.info("stale_results_rejected", problem_id=problem_id, keys=[str(k) for k in rejected], seq=seq)
        log.info(
            "run_committed",
            problem_id=problem_id,
            seq=seq,
            exit_codes={lang.value: r.exit_code for lang, r in results.items()},
        )
        return RunOutcome(
            status=RunStatus.COMPLETED,
            problem_id=problem_id,
            results=results,
            committed=written,
            rejected=rejected,
        )

    # ---------- reads / clear ----------

    def result_for(self, problem_id: str, language: Language) -> Optional[ExecutionResult]:
        lang = Language.parse(language)
        if lang is None:
            return None
        return self.store.get(ResultKey(problem_id, lang))

    def results_for(self, problem_id: str) -> Dict[Language, Optional[ExecutionResult]]:
        found = self.store.get_many(ResultKey(problem_id, lang) for lang in Language)
        return {lang: found.get(ResultKey(problem_id, lang)) for lang in Language}

    def clear(self, problem_id: str, language: Optional[Language] = None) -> int:
        langs = list(Language) if language is None else [Language.parse(language)]
        keys = [ResultKey(problem_id, lang) for lang in langs if lang is not None]
        return self.store.delete_all(keys)


def create_orchestrator(settings: Optional[Settings] = None, state: Optional[RunState] = None) -> RunOrchestrator:
    """Wire repository, execution service and result store from settings."""
    settings = settings or load_settings()
    repository = ProblemRepository.from_settings(settings)
    loaded = repository.load()
    if loaded.degraded:
        log.info("using_default_problems", reason=loaded.reason)
    return RunOrchestrator(
        repository,
        ExecutionService(settings=settings),
        ResultStore(reject_stale=settings.reject_stale_results),
        state,
    )
