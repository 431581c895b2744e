from __future__ import annotations
from typing import List, Optional

import structlog
from fastapi import APIRouter, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ..logging import setup_logging
from ..runner.adapter import RuntimeAdapter
from ..services.transport import run_request
from ..settings import Settings, load_settings
from .schemas import ExecuteRequest, ExecuteResponse, HealthRes, MessageRes, RuntimeInfo

log = structlog.get_logger(__name__)

# path the mobile client posts to
LEGACY_PREFIX = "/api/v2/piston"


def build_router(adapter: RuntimeAdapter) -> APIRouter:
    router = APIRouter()

    @router.get("/health", response_model=HealthRes)
    def health():
        return HealthRes(ok=True)

    @router.get("/runtimes", response_model=List[RuntimeInfo])
    def runtimes():
        return [RuntimeInfo(**r) for r in adapter.available_runtimes()]

    @router.post("/execute", response_model=ExecuteResponse, response_model_exclude_none=True)
    def execute(req: ExecuteRequest):
        log.info("execute_request", language=req.language, files=len(req.files))
        return run_request(adapter, req)

    return router


def create_app(settings: Optional[Settings] = None, adapter: Optional[RuntimeAdapter] = None) -> FastAPI:
    settings = settings or load_settings()
    adapter = adapter or RuntimeAdapter(settings)

    app = FastAPI(title="CodeFlip execution backend")
    # local/trusted use only
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    router = build_router(adapter)
    app.include_router(router)
    app.include_router(router, prefix=LEGACY_PREFIX)

    @app.exception_handler(RequestValidationError)
    async def invalid_body(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content=MessageRes(message="Invalid JSON").model_dump())

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        message = "Not found" if exc.status_code == 404 else str(exc.detail)
        return JSONResponse(status_code=exc.status_code, content=MessageRes(message=message).model_dump())

    app.state.settings = settings
    app.state.adapter = adapter
    return app


app = create_app()


def main():
    import uvicorn

    settings = load_settings()
    setup_logging(settings.log_level)
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)
