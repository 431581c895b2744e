from __future__ import annotations
import json
from dataclasses import dataclass, field
from typing import List, Optional

import structlog

from ..core.models import Language, Problem
from ..core.templates import PYTHON_BLANK, PYTHON_TEMPLATE, TYPESCRIPT_BLANK, TYPESCRIPT_TEMPLATE
from ..core.utils import new_problem_id, now_ms
from ..settings import Settings
from .snapshot_store import SnapshotStore

log = structlog.get_logger(__name__)

DEFAULT_STORAGE_KEY = "@codeflip_problems"


def default_problem() -> Problem:
    return Problem(
        id="two-sum",
        title="Two Sum",
        sources={Language.PYTHON: PYTHON_TEMPLATE, Language.TYPESCRIPT: TYPESCRIPT_TEMPLATE},
        created_at=now_ms(),
    )


@dataclass
class LoadResult:
    problems: List[Problem] = field(default_factory=list)
    degraded: bool = False
    reason: Optional[str] = None


class ProblemRepository:
    """
    Ordered in-memory problem list, persisted as a single JSON snapshot.
    The in-memory list is authoritative: storage errors degrade to defaults
    on load and to a False return on save, they are never raised.
    """

    def __init__(self, store: Optional[SnapshotStore] = None, key: str = DEFAULT_STORAGE_KEY):
        self.store = store
        self.key = key
        self._problems: List[Problem] = [default_problem()]
        self.current_id: str = self._problems[0].id

    @classmethod
    def from_settings(cls, settings: Settings) -> "ProblemRepository":
        try:
            store = SnapshotStore(settings.snapshot_url)
        except Exception as e:
            log.warning("snapshot_store_unavailable", url=settings.snapshot_url, error=repr(e))
            store = None
        return cls(store, key=settings.snapshot_key)

    # ---------- queries ----------

    def list(self) -> List[Problem]:
        return list(self._problems)

    def get(self, problem_id: str) -> Optional[Problem]:
        for p in self._problems:
            if p.id == problem_id:
                return p
        return None

    @property
    def current(self) -> Problem:
        return self.get(self.current_id) or self._problems[0]

    def select(self, problem_id: str) -> bool:
        if self.get(problem_id) is None:
            return False
        self.current_id = problem_id
        return True

    # ---------- mutations ----------

    def create(self, title: str) -> Problem:
        problem_id = base = new_problem_id(title)
        n = 2
        # same title twice in one millisecond
        while self.get(problem_id) is not None:
            problem_id = f"{base}-{n}"
            n += 1
        problem = Problem(
            id=problem_id,
            title=title,
            sources={Language.PYTHON: PYTHON_BLANK, Language.TYPESCRIPT: TYPESCRIPT_BLANK},
            created_at=now_ms(),
        )
        self._problems.append(problem)
        self.current_id = problem.id
        self.save()
        return problem

    def rename(self, problem_id: str, title: str) -> bool:
        problem = self.get(problem_id)
        if problem is None:
            return False
        problem.title = title
        self.save()
        return True

    def update_source(self, problem_id: str, language: Language, code: str) -> bool:
        problem = self.get(problem_id)
        lang = Language.parse(language)
        if problem is None or lang is None:
            return False
        problem.sources[lang] = code
        self.save()
        return True

    def delete(self, problem_id: str) -> bool:
        # keep at least one
        if len(self._problems) <= 1 or self.get(problem_id) is None:
            return False
        self._problems = [p for p in self._problems if p.id != problem_id]
        self.current_id = self._problems[0].id
        self.save()
        return True

    # ---------- persistence ----------

    def load(self) -> LoadResult:
        if self.store is None:
            return self._fallback("storage_unavailable")
        try:
            raw = self.store.get(self.key)
        except Exception as e:
            return self._fallback(f"storage_error: {e}")
        if raw is None:
            return self._fallback("no_snapshot")

        try:
            data = json.loads(raw)
            if not isinstance(data, list):
                raise ValueError("snapshot is not a list")
            problems = [Problem.from_dict(item) for item in data]
        except (ValueError, KeyError, TypeError) as e:
            return self._fallback(f"corrupt_snapshot: {e}")
        if not problems:
            return self._fallback("empty_snapshot")

        self._problems = problems
        self.current_id = problems[0].id
        log.info("problems_loaded", count=len(problems))
        return LoadResult(problems=self.list())

    def save(self) -> bool:
        if self.store is None:
            return False
        try:
            payload = json.dumps([p.to_dict() for p in self._problems], ensure_ascii=False)
            self.store.put(self.key, payload)
        except Exception as e:
            log.warning("problems_save_failed", error=repr(e))
            return False
        return True

    def _fallback(self, reason: str) -> LoadResult:
        log.warning("problems_load_degraded", reason=reason)
        self._problems = [default_problem()]
        self.current_id = self._problems[0].id
        return LoadResult(problems=self.list(), degraded=True, reason=reason)
