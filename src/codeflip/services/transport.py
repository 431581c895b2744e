from __future__ import annotations
import asyncio
import signal as _signal
from typing import Optional, Protocol

import httpx
import structlog

from ..api.schemas import ExecuteRequest, ExecuteResponse, SourceFile, StageResult
from ..core.models import Language, RawResult
from ..runner.adapter import RuntimeAdapter
from ..settings import Settings

log = structlog.get_logger(__name__)


class TransportError(Exception):
    """The execution backend could not be reached or answered with an error."""


class Transport(Protocol):
    async def execute(self, request: ExecuteRequest) -> ExecuteResponse: ...


def build_request(
    language: Language,
    code: str,
    settings: Settings,
) -> ExecuteRequest:
    cfg = settings.runtime_config(language.value)
    return ExecuteRequest(
        language=language.value,
        version=str(cfg.get("version", "*")),
        files=[SourceFile(name=cfg.get("filename") or f"solution.{language.value}", content=code)],
        run_timeout=int(settings.run_timeout_s * 1000),
        compile_timeout=int(settings.compile_timeout_s * 1000),
    )


def stage_from_raw(raw: RawResult) -> StageResult:
    return StageResult(
        stdout=raw.stdout,
        stderr=raw.stderr,
        output=raw.stdout + raw.stderr,
        code=raw.exit_code,
        signal=_signal.Signals.SIGKILL.name if raw.timed_out else None,
    )


def run_request(adapter: RuntimeAdapter, request: ExecuteRequest) -> ExecuteResponse:
    """Blocking: run the request's first file through the adapter."""
    if not request.files:
        raw = RawResult(stdout="", stderr="No source file provided", exit_code=1)
        return ExecuteResponse(language=request.language, version=request.version, run=stage_from_raw(raw))

    # a request may shorten the run limit but never extend it
    limit = float(adapter.settings.run_timeout_s)
    timeout_s = min(request.run_timeout / 1000, limit) if request.run_timeout else limit
    raw = adapter.invoke(request.language, request.main_source(), timeout_s=timeout_s)
    return ExecuteResponse(language=request.language, version=request.version, run=stage_from_raw(raw))


class LocalTransport:
    """In-process execution: the adapter runs in a worker thread."""

    def __init__(self, adapter: RuntimeAdapter):
        self.adapter = adapter

    async def execute(self, request: ExecuteRequest) -> ExecuteResponse:
        return await asyncio.to_thread(run_request, self.adapter, request)


class HttpTransport:
    """Remote execution over POST <base_url>/execute."""

    def __init__(self, base_url: str, timeout_s: float = 30, client: Optional[httpx.AsyncClient] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout_s = timeout_s
        self._client = client

    async def execute(self, request: ExecuteRequest) -> ExecuteResponse:
        url = f"{self.base_url}/execute"
        body = request.model_dump(exclude_none=True)
        try:
            if self._client is not None:
                resp = await self._client.post(url, json=body, timeout=self.timeout_s)
            else:
                async with httpx.AsyncClient(timeout=self.timeout_s) as client:
                    resp = await client.post(url, json=body)
        except httpx.HTTPError as e:
            log.warning("transport_error", url=url, error=repr(e))
            raise TransportError(str(e) or e.__class__.__name__) from e

        if resp.status_code >= 400:
            log.warning("transport_bad_status", url=url, status_code=resp.status_code)
            raise TransportError(_error_message(resp))
        try:
            return ExecuteResponse.model_validate(resp.json())
        except ValueError as e:
            raise TransportError(f"invalid response from {url}: {e}") from e


def _error_message(resp: httpx.Response) -> str:
    try:
        data = resp.json()
    except ValueError:
        data = None
    if isinstance(data, dict) and data.get("message"):
        return str(data["message"])
    return f"Request failed with status code {resp.status_code}"


def create_transport(settings: Settings, adapter: Optional[RuntimeAdapter] = None) -> Transport:
    if settings.backend == "http":
        return HttpTransport(settings.api_url, timeout_s=settings.execute_deadline_s)
    return LocalTransport(adapter or RuntimeAdapter(settings))

