from __future__ import annotations
from typing import List, Optional

from pydantic import BaseModel, Field


class SourceFile(BaseModel):
    name: Optional[str] = None
    content: str = ""


class ExecuteRequest(BaseModel):
    language: str = ""
    version: str = "*"
    files: List[SourceFile] = Field(default_factory=list)
    stdin: Optional[str] = None
    args: Optional[List[str]] = None
    run_timeout: Optional[int] = None  # ms
    compile_timeout: Optional[int] = None  # ms

    def main_source(self) -> str:
        return self.files[0].content if self.files else ""


class StageResult(BaseModel):
    stdout: str = ""
    stderr: str = ""
    output: str = ""
    code: Optional[int] = 0
    signal: Optional[str] = None


class ExecuteResponse(BaseModel):
    language: str = ""
    version: str = ""
    run: StageResult
    compile: Optional[StageResult] = None


class RuntimeInfo(BaseModel):
    language: str
    version: str
    aliases: List[str] = Field(default_factory=list)
    executable: str = ""


class HealthRes(BaseModel):
    ok: bool


class MessageRes(BaseModel):
    message: str
