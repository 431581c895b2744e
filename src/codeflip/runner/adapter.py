from __future__ import annotations
import os
import tempfile
from pathlib import Path
from typing import Dict, List, Optional

import structlog

from ..core.models import Language, RawResult
from ..settings import Settings, load_settings
from .base import Runner
from .python_runner import PythonRunner
from .typescript_runner import TypeScriptRunner

log = structlog.get_logger(__name__)

RUNNER_CLASSES = {
    Language.PYTHON: PythonRunner,
    Language.TYPESCRIPT: TypeScriptRunner,
}


def build_runners(settings: Settings) -> Dict[Language, Runner]:
    runners: Dict[Language, Runner] = {}
    for language, cls in RUNNER_CLASSES.items():
        cfg = settings.runtime_config(language.value)
        runners[language] = cls(
            command=cfg.get("command") or [],
            version=cfg.get("version", ""),
            filename=cfg.get("filename", ""),
            aliases=cfg.get("aliases"),
        )
    return runners


class RuntimeAdapter:
    """
    Maps a language tag to its runner and executes source text against it.
    Every failure comes back as a RawResult; nothing is raised to the caller.
    """

    def __init__(self, settings: Optional[Settings] = None, runners: Optional[Dict[Language, Runner]] = None):
        self.settings = settings or load_settings()
        self.runners = runners if runners is not None else build_runners(self.settings)

    def runner_for(self, language) -> Optional[Runner]:
        lang = Language.parse(language)
        if lang is None:
            return None
        return self.runners.get(lang)

    def resolve(self, name: str) -> Optional[Runner]:
        """Look a runner up by language name or one of its aliases."""
        runner = self.runner_for(name)
        if runner is not None:
            return runner
        key = str(name).strip().lower()
        for r in self.runners.values():
            if key in r.aliases:
                return r
        return None

    def available_runtimes(self) -> List[Dict[str, object]]:
        return [r.describe() for r in self.runners.values() if r.is_available()]

    def invoke(self, language, source_text: str, timeout_s: Optional[float] = None) -> RawResult:
        runner = self.resolve(language)
        if runner is None:
            log.info("unsupported_language", language=str(language))
            return RawResult(stdout="", stderr=f"Unsupported language: {language}", exit_code=1)

        timeout = float(timeout_s if timeout_s is not None else self.settings.run_timeout_s)

        # unique path per invocation: concurrent runs never share an input file
        try:
            tmp_dir = self.settings.temp_dir()
            tmp_dir.mkdir(parents=True, exist_ok=True)
            fd, name = tempfile.mkstemp(prefix="cf_solution_", suffix=runner.suffix, dir=str(tmp_dir))
        except OSError as e:
            log.warning("tempfile_failed", language=runner.language.value, error=str(e))
            return RawResult(stdout="", stderr=f"Could not create source file: {e}", exit_code=1)

        path = Path(name)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(source_text or "")
            return runner.run(path, timeout)
        except (OSError, ValueError) as e:
            log.warning("source_write_failed", language=runner.language.value, error=str(e))
            return RawResult(stdout="", stderr=f"Could not write source file: {e}", exit_code=1)
        finally:
            try:
                path.unlink()
            except FileNotFoundError:
                pass
            except OSError as e:
                log.warning("tempfile_cleanup_failed", path=str(path), error=str(e))
