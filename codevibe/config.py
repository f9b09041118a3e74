"""
Configuration models.

Every knob the engine exposes lives on a pydantic model so values are
validated once at startup. ``Settings.from_env`` reads a ``.env`` file and
``CODEVIBE_*`` variables on top of the defaults.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from pydantic import BaseModel, Field, model_validator


class AgentConfig(BaseModel):
    """Reasoning loop limits and completion parameters."""

    max_audit_attempts: int = Field(
        3, ge=1, le=20, description="Audit verdicts requested before PASS is forced"
    )
    max_steps: int = Field(
        100, ge=2, le=1000, description="Global cap on state transitions per run"
    )
    temperature: float = Field(0.3, ge=0.0, le=2.0)
    max_tokens: int = Field(4096, ge=1)
    stream: bool = Field(True, description="Stream tokens from the completion service")
    tool_timeout_seconds: float = Field(120.0, gt=0)

    @model_validator(mode="after")
    def _steps_exceed_audits(self) -> AgentConfig:
        if self.max_steps <= self.max_audit_attempts:
            raise ValueError("max_steps must be greater than max_audit_attempts")
        return self


class LLMConfig(BaseModel):
    model: str = Field("gpt-4.1", description="Model name sent to the completion service")
    api_key: str | None = None
    base_url: str | None = None
    max_retries: int = Field(3, ge=0, le=10)
    timeout_seconds: float = Field(60.0, gt=0)


class SandboxConfig(BaseModel):
    root_dir: Path = Field(
        default_factory=lambda: Path.cwd() / ".codevibe" / "sandboxes",
        description="Directory holding one workspace per environment",
    )
    url_template: str = Field("http://localhost:{port}/sandboxes/{id}")
    port: int = Field(3000, ge=1, le=65535)
    ttl_seconds: int = Field(3600, ge=1, description="Expiry horizon of an environment")
    command_timeout_seconds: float = Field(300.0, gt=0)


class BusConfig(BaseModel):
    heartbeat_seconds: float = Field(30.0, gt=0)
    inbound_queue_size: int = Field(1024, ge=1)
    subscriber_queue_size: int = Field(256, ge=1)


class DocsConfig(BaseModel):
    cache_ttl_seconds: float = Field(600.0, ge=0)
    max_excerpt_chars: int = Field(1600, ge=100)
    request_timeout_seconds: float = Field(15.0, gt=0)


class Settings(BaseModel):
    agent: AgentConfig = Field(default_factory=AgentConfig)
    llm: LLMConfig = Field(default_factory=LLMConfig)
    sandbox: SandboxConfig = Field(default_factory=SandboxConfig)
    bus: BusConfig = Field(default_factory=BusConfig)
    docs: DocsConfig = Field(default_factory=DocsConfig)
    history_limit: int = Field(40, ge=1, description="Turns kept per session")
    log_level: str = "INFO"
    log_json: bool = False

    @classmethod
    def from_env(cls, env_file: str | Path | None = None) -> Settings:
        load_dotenv(env_file)
        env = os.environ
        data: dict[str, Any] = {"agent": {}, "llm": {}, "sandbox": {}, "bus": {}, "docs": {}}

        _set(data["llm"], "model", env.get("CODEVIBE_MODEL"))
        _set(data["llm"], "api_key", env.get("OPENAI_API_KEY"))
        _set(data["llm"], "base_url", env.get("OPENAI_BASE_URL"))
        _set(data["agent"], "max_audit_attempts", env.get("CODEVIBE_MAX_AUDIT_ATTEMPTS"))
        _set(data["agent"], "max_steps", env.get("CODEVIBE_MAX_STEPS"))
        _set(data["agent"], "stream", env.get("CODEVIBE_STREAM"))
        _set(data["sandbox"], "root_dir", env.get("CODEVIBE_SANDBOX_ROOT"))
        _set(data["sandbox"], "url_template", env.get("CODEVIBE_SANDBOX_URL_TEMPLATE"))
        _set(data["sandbox"], "ttl_seconds", env.get("CODEVIBE_SANDBOX_TTL"))
        _set(data["bus"], "heartbeat_seconds", env.get("CODEVIBE_HEARTBEAT_SECONDS"))
        _set(data, "history_limit", env.get("CODEVIBE_HISTORY_LIMIT"))
        _set(data, "log_level", env.get("CODEVIBE_LOG_LEVEL"))
        _set(data, "log_json", env.get("CODEVIBE_LOG_JSON"))
        return cls.model_validate(data)


def _set(target: dict[str, Any], key: str, value: str | None) -> None:
    if value is not None and value != "":
        target[key] = value
