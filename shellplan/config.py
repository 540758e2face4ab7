from __future__ import annotations

import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Mapping, Optional

from dotenv import load_dotenv

from .errors import ConfigError
from .extract import OLLAMA_MESSAGE_CONTENT, OPENAI_OUTPUT_TEXT, FieldLocator


class ProviderKind(str, Enum):
    OPENAI = "openai"
    OLLAMA = "ollama"

    @property
    def locator(self) -> FieldLocator:
        if self is ProviderKind.OLLAMA:
            return OLLAMA_MESSAGE_CONTENT
        return OPENAI_OUTPUT_TEXT


@dataclass(frozen=True)
class ExecutionPolicy:
    dry_run: bool = False
    require_confirmation: bool = True
    timeout_sec: int = 15  # 0 disables the per-command deadline

    def __post_init__(self) -> None:
        if self.timeout_sec < 0:
            raise ConfigError(f"timeout_sec must be >= 0, got {self.timeout_sec}")


@dataclass(frozen=True)
class Settings:
    llm_service: ProviderKind = ProviderKind.OPENAI
    model: str = "gpt-4.1"
    base_url: str = "https://api.openai.com"
    api_key: Optional[str] = field(default=None, repr=False)
    http_timeout_secs: int = 60
    policy: ExecutionPolicy = field(default_factory=ExecutionPolicy)


_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def _env_bool(env: Mapping[str, str], name: str, default: bool) -> bool:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    value = raw.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ConfigError(f"{name} must be a boolean (1/0, true/false, yes/no, on/off), got {raw!r}")


def _env_seconds(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw.strip())
    except ValueError as exc:
        raise ConfigError(f"{name} must be an integer number of seconds, got {raw!r}") from exc
    if value < 0:
        raise ConfigError(f"{name} must not be negative, got {value}")
    return value


def parse_service(name: str) -> ProviderKind:
    try:
        return ProviderKind(name.strip().lower())
    except ValueError as exc:
        choices = ", ".join(k.value for k in ProviderKind)
        raise ConfigError(f"unknown LLM service {name!r} (expected one of: {choices})") from exc


def _api_key(env: Mapping[str, str]) -> Optional[str]:
    # SHELLPLAN_OPENAI_API_KEY wins over OPENAI_API_KEY
    for name in ("SHELLPLAN_OPENAI_API_KEY", "OPENAI_API_KEY"):
        value = env.get(name)
        if value and value.strip():
            return value.strip()
    return None


def settings_from_env(env: Mapping[str, str]) -> Settings:
    service = parse_service(env.get("SHELLPLAN_LLM_SERVICE") or ProviderKind.OPENAI.value)
    if service is ProviderKind.OLLAMA:
        model = env.get("SHELLPLAN_OLLAMA_MODEL") or "llama3.1"
        base_url = env.get("SHELLPLAN_OLLAMA_BASE_URL") or "http://127.0.0.1:11434"
    else:
        model = env.get("SHELLPLAN_OPENAI_MODEL") or "gpt-4.1"
        base_url = env.get("SHELLPLAN_OPENAI_BASE_URL") or "https://api.openai.com"

    policy = ExecutionPolicy(
        dry_run=_env_bool(env, "SHELLPLAN_DRY_RUN", False),
        require_confirmation=_env_bool(env, "SHELLPLAN_REQUIRE_CONFIRMATION", True),
        timeout_sec=_env_seconds(env, "SHELLPLAN_TIMEOUT_SEC", 15),
    )
    return Settings(
        llm_service=service,
        model=model,
        base_url=base_url,
        api_key=_api_key(env),
        http_timeout_secs=_env_seconds(env, "SHELLPLAN_HTTP_TIMEOUT_SECS", 60),
        policy=policy,
    )


def load_settings(
    dotenv_path: Optional[str] = None,
    overrides: Optional[Mapping[str, str]] = None,
) -> Settings:
    """Read .env (if any) and build the immutable settings for this process."""
    load_dotenv(dotenv_path)
    env = dict(os.environ)
    env.update(overrides or {})
    return settings_from_env(env)
