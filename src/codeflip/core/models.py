from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, NamedTuple, Optional


class Language(str, Enum):
    PYTHON = "python"
    TYPESCRIPT = "typescript"

    @classmethod
    def parse(cls, value) -> Optional["Language"]:
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return None

    def __str__(self) -> str:
        return self.value


class ResultKey(NamedTuple):
    problem_id: str
    language: Language

    def __str__(self) -> str:
        # legacy "<problemId>_<language>" form, display only
        return f"{self.problem_id}_{self.language.value}"


@dataclass
class RawResult:
    stdout: str
    stderr: str
    exit_code: int
    timed_out: bool = False


@dataclass(frozen=True)
class ExecutionResult:
    stdout: str
    stderr: str
    exit_code: int
    language: Optional[Language]  # None when the request named no known language
    executed_at: int  # epoch ms, set when the result is finalized
    timed_out: bool = False

    @property
    def ok(self) -> bool:
        return self.exit_code == 0

    def has_error_indicator(self) -> bool:
        """
        Presentation-layer predicate: stderr non-empty OR non-zero exit.
        The core only trusts ``exit_code``; a program may write to stderr and
        still succeed.
        """
        return bool(self.stderr) or self.exit_code != 0


@dataclass
class Problem:
    id: str
    title: str
    sources: Dict[Language, str]
    created_at: int  # epoch ms

    def source_for(self, language: Language) -> Optional[str]:
        return self.sources.get(language)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "python": self.sources.get(Language.PYTHON),
            "typescript": self.sources.get(Language.TYPESCRIPT),
            "createdAt": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Problem":
        sources = {
            lang: data[lang.value]
            for lang in Language
            if isinstance(data.get(lang.value), str)
        }
        return cls(
            id=str(data["id"]),
            title=str(data["title"]),
            sources=sources,
            created_at=int(data["createdAt"]),
        )


class RunStatus(str, Enum):
    COMPLETED = "completed"
    PROBLEM_NOT_FOUND = "problem_not_found"
    UNSUPPORTED_LANGUAGE = "unsupported_language"


@dataclass
class RunOutcome:
    status: RunStatus
    problem_id: str
    results: Dict[Language, ExecutionResult] = field(default_factory=dict)
    committed: List[ResultKey] = field(default_factory=list)
    rejected: List[ResultKey] = field(default_factory=list)

    @property
    def found(self) -> bool:
        return self.status is RunStatus.COMPLETED
