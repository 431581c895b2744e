from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_RUNTIMES: Dict[str, Dict[str, Any]] = {
    "python": {
        "command": ["python3", "{file}"],
        "version": "3.10.0",
        "filename": "solution.py",
        "aliases": ["py", "python3"],
    },
    "typescript": {
        "command": ["tsx", "{file}"],
        "version": "5.0.3",
        "filename": "solution.ts",
        "aliases": ["ts"],
    },
}


class Settings(BaseSettings):
    # ---- execution ----
    run_timeout_s: float = 10
    compile_timeout_s: float = 15
    execute_deadline_s: float = 30

    # local: adapter runs in-process; http: POST to api_url
    backend: str = "local"
    api_url: str = "http://localhost:3001/api/v2/piston"

    tmp_dir: Optional[Path] = None

    # per-language {command, version, filename, aliases}
    runtimes: Dict[str, Dict[str, Any]] = {}

    # ---- results / persistence ----
    reject_stale_results: bool = True
    snapshot_url: str = "sqlite:///./codeflip.db"
    snapshot_key: str = "@codeflip_problems"

    # ---- server ----
    host: str = "0.0.0.0"
    port: int = 3001
    log_level: str = "INFO"

    # env prefix CF_*
    model_config = SettingsConfigDict(env_prefix="CF_", extra="ignore")

    def runtime_config(self, language: str) -> Dict[str, Any]:
        merged = dict(DEFAULT_RUNTIMES.get(language, {}))
        merged.update(self.runtimes.get(language) or {})
        return merged

    def temp_dir(self) -> Path:
        return self.tmp_dir or Path(tempfile.gettempdir())


def _section(data: Dict[str, Any], name: str) -> Dict[str, Any]:
    block = data.get(name) or {}
    return block if isinstance(block, dict) else {}


def load_settings(conf_path: Optional[Path] = None) -> Settings:
    # 0) base from CF_* env
    s = Settings()

    # 1) conf/codeflip.yaml (or CODEFLIP_CONF)
    path = conf_path or Path(os.environ.get("CODEFLIP_CONF", "conf/codeflip.yaml"))
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (FileNotFoundError, yaml.YAMLError):
        data = {}
    if not isinstance(data, dict):
        data = {}

    defaults = _section(data, "defaults")
    snapshot = _section(data, "snapshot")
    server = _section(data, "server")
    runtimes = _section(data, "runtimes")

    # 2) env wins over yaml: only fill fields the env left at their default
    explicit = s.model_fields_set
    update: Dict[str, Any] = {}

    def _take(field: str, value: Any) -> None:
        if value is not None and field not in explicit:
            update[field] = value

    _take("backend", data.get("backend"))
    _take("api_url", data.get("api_url"))
    _take("tmp_dir", Path(data["tmp_dir"]) if data.get("tmp_dir") else None)
    _take("run_timeout_s", defaults.get("run_timeout_s"))
    _take("compile_timeout_s", defaults.get("compile_timeout_s"))
    _take("execute_deadline_s", defaults.get("execute_deadline_s"))
    _take("reject_stale_results", defaults.get("reject_stale_results"))
    _take("snapshot_url", snapshot.get("url"))
    _take("snapshot_key", snapshot.get("key"))
    _take("host", server.get("host"))
    _take("port", server.get("port"))
    _take("log_level", data.get("log_level"))
    if runtimes and "runtimes" not in explicit:
        update["runtimes"] = {
            str(name): dict(cfg) for name, cfg in runtimes.items() if isinstance(cfg, dict)
        }

    # model_validate re-coerces yaml scalars to the declared field types
    return Settings.model_validate({**s.model_dump(), **update})
