from __future__ import annotations
import os
import shutil
import signal
import subprocess
import time
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import structlog

from ..core.models import Language, RawResult

log = structlog.get_logger(__name__)

TIMEOUT_EXIT_CODE = 124  # same code coreutils `timeout` uses


class Runner:
    """
    Runs one source file with a language's interpreter. The command template
    is a list of argv tokens; ``{file}`` is replaced by the source path.
    """

    language: Language
    default_env: Dict[str, str] = {}
    default_suffix = ""

    def __init__(
        self,
        command: Sequence[str],
        version: str = "",
        filename: str = "",
        aliases: Optional[Sequence[str]] = None,
    ):
        if not command:
            raise ValueError(f"empty command for {self.language.value}")
        self.command_template = [str(t) for t in command]
        self.version = str(version)
        self.filename = filename or f"solution{self.default_suffix}"
        self.aliases = list(aliases or [])

    @property
    def suffix(self) -> str:
        return Path(self.filename).suffix or self.default_suffix

    @property
    def executable(self) -> str:
        return self.command_template[0]

    def command(self, entry: Path) -> List[str]:
        if not any("{file}" in t for t in self.command_template):
            return self.command_template + [str(entry)]
        return [t.replace("{file}", str(entry)) for t in self.command_template]

    def is_available(self) -> bool:
        return shutil.which(self.executable) is not None

    def describe(self) -> Dict[str, object]:
        return {
            "language": self.language.value,
            "version": self.version,
            "aliases": list(self.aliases),
            "executable": self.executable,
        }

    def run(self, entry: Path, timeout_s: float) -> RawResult:
        cmd = self.command(entry)
        start = time.time()
        try:
            # own session so a timeout can take down grandchildren too (tsx -> node)
            proc = subprocess.Popen(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                stdin=subprocess.DEVNULL,
                text=True,
                encoding="utf-8",
                errors="replace",
                cwd=str(entry.parent),
                env={**os.environ, **self.default_env},
                start_new_session=True,
            )
        except (OSError, ValueError) as e:
            log.warning("runtime_spawn_failed", language=self.language.value, cmd=cmd[0], error=str(e))
            return RawResult(stdout="", stderr=f"Failed to start '{cmd[0]}': {e}", exit_code=1)

        try:
            out, err = proc.communicate(timeout=timeout_s)
            rc = proc.returncode
            log.debug(
                "runtime_finished",
                language=self.language.value,
                exit_code=rc,
                duration_s=round(time.time() - start, 3),
            )
            return RawResult(stdout=out or "", stderr=err or "", exit_code=rc)
        except subprocess.TimeoutExpired:
            self._kill(proc)
            try:
                out, err = proc.communicate(timeout=2)
            except subprocess.TimeoutExpired:
                out, err = "", ""
            log.warning("runtime_timeout", language=self.language.value, timeout_s=timeout_s)
            err = (err or "") + f"\n[timeout] exceeded {timeout_s:g}s"
            return RawResult(
                stdout=out or "",
                stderr=err.lstrip("\n"),
                exit_code=TIMEOUT_EXIT_CODE,
                timed_out=True,
            )

    @staticmethod
    def _kill(proc: subprocess.Popen) -> None:
        try:
            if hasattr(os, "killpg"):
                os.killpg(proc.pid, signal.SIGKILL)
            else:
                proc.kill()
        except ProcessLookupError:
            pass
