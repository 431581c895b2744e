from __future__ import annotations
import asyncio
import time
from typing import Optional

import structlog

from ..api.schemas import ExecuteResponse
from ..core.models import ExecutionResult, Language
from ..core.utils import MonotonicClock
from ..runner.base import TIMEOUT_EXIT_CODE
from ..settings import Settings, load_settings
from .transport import Transport, build_request, create_transport

log = structlog.get_logger(__name__)

ERROR_PREFIX = "[CodeFlip] Execution error: "


class ExecutionService:
    """
    One call = one normalized ExecutionResult. Failures of any kind (unknown
    language, missing source, deadline, transport errors) are encoded in
    ``stderr``/``exit_code``; ``execute`` itself never raises.
    """

    def __init__(self, transport: Optional[Transport] = None, settings: Optional[Settings] = None):
        self.settings = settings or load_settings()
        self.transport = transport or create_transport(self.settings)
        self.deadline_s = float(self.settings.execute_deadline_s)
        self._clock = MonotonicClock()

    async def execute(self, language, code: Optional[str]) -> ExecutionResult:
        lang = Language.parse(language)
        if lang is None:
            return self._failure(None, f"Unsupported language: {language}")
        if code is None:
            return self._failure(lang, f"No {lang.value} source provided")

        request = build_request(lang, code, self.settings)
        start = time.time()
        log.info("execution_started", language=lang.value)
        try:
            response = await asyncio.wait_for(self.transport.execute(request), timeout=self.deadline_s)
        except asyncio.TimeoutError:
            log.warning("execution_deadline_exceeded", language=lang.value, deadline_s=self.deadline_s)
            return self._failure(
                lang, f"timeout of {self.deadline_s:g}s exceeded", timed_out=True, exit_code=TIMEOUT_EXIT_CODE
            )
        except Exception as e:
            log.warning("execution_failed", language=lang.value, error=repr(e))
            return self._failure(lang, str(e) or e.__class__.__name__)

        result = self._normalize(lang, response)
        log.info(
            "execution_finished",
            language=lang.value,
            exit_code=result.exit_code,
            timed_out=result.timed_out,
            duration_s=round(time.time() - start, 3),
        )
        return result

    def _normalize(self, language: Language, response: ExecuteResponse) -> ExecutionResult:
        run = response.run
        stderr = run.stderr or ""
        # compiled languages report compile errors in their own stage
        if response.compile is not None and response.compile.stderr:
            stderr = response.compile.stderr + ("\n" + stderr if stderr else "")
        exit_code = run.code if run.code is not None else 0
        return ExecutionResult(
            stdout=run.stdout or "",
            stderr=stderr,
            exit_code=exit_code,
            language=language,
            executed_at=self._clock(),
            timed_out=exit_code == TIMEOUT_EXIT_CODE and run.signal == "SIGKILL",
        )

    def _failure(
        self,
        language: Optional[Language],
        message: str,
        *,
        exit_code: int = 1,
        timed_out: bool = False,
    ) -> ExecutionResult:
        return ExecutionResult(
            stdout="",
            stderr=ERROR_PREFIX + message,
            exit_code=exit_code,
            language=language,
            executed_at=self._clock(),
            timed_out=timed_out,
        )
