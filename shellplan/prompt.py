from __future__ import annotations

import os
import platform
from dataclasses import dataclass
from typing import Dict, Optional

from .config import Settings


@dataclass(frozen=True)
class EnvironmentInfo:
    os_name: str
    distro: str
    version: str
    shell: str
    cwd: str


@dataclass(frozen=True)
class Prompt:
    system: str
    user: str


def _os_release() -> Dict[str, str]:
    try:
        return platform.freedesktop_os_release()
    except (OSError, AttributeError):
        return {}


def detect_environment(cwd: Optional[str] = None) -> EnvironmentInfo:
    release = _os_release()
    return EnvironmentInfo(
        os_name=platform.system() or "Unknown",
        distro=release.get("PRETTY_NAME") or release.get("ID") or "Unknown",
        version=release.get("VERSION_ID") or "Unknown",
        shell=os.environ.get("SHELL") or "Unknown",
        cwd=cwd or os.getcwd(),
    )


_SYSTEM_TEMPLATE = """\
You are a helpful assistant designed to output JSON only.
You are a safe shell-command generator for a local console assistant.

Your job:
- Convert the user's natural language request into ONE executable command (or a short list of commands) appropriate for the target environment.
- Prefer commands that are widely available on the target OS/distro.
- If multiple commands are necessary (e.g., mkdir then tar), keep it minimal. They run in order and stop at the first failure.

Safety rules (critical):
- Do NOT produce destructive or dangerous commands.
  Examples of forbidden intent: wiping disks, deleting system files, formatting, fork bombs, privilege escalation, remote code execution.
- Avoid anything that can cause irreversible data loss.
- If the request is ambiguous or risky, choose the safest interpretation and require confirmation.

Output format (MUST follow):
- Output a single JSON object ONLY. No markdown, no code fences, no extra text.
- "cmd" MUST be an array of FULL shell command strings (one command per string). Do NOT split into argv tokens.
- Example cmd: ["tar -czf archive.tar.gz a.txt b.txt c/"]
- JSON schema:
  {{
    "cmd": ["<command1>", "<command2>", ...],
    "explain": "short explanation",
    "needs_confirmation": true|false,
    "risk": "low"|"medium"|"high",
    "assumptions": ["..."],
    "notes": ["..."]
  }}
- Always set needs_confirmation=true if policy says confirmation is required.

Environment:
- OS: {os_name}
- Distro: {distro}
- Version: {version}
- Shell: {shell}
- CWD: {cwd}

Execution policy:
- dry_run: {dry_run}
- require_confirmation: {require_confirmation}
- timeout_sec: {timeout_sec}

LLM config (for logging):
- llm_service: {llm_service}
- model: {model}
"""

_USER_TEMPLATE = """\
User request:
{request}

Important:
- Use the simplest safe command(s).
- If the task is compressing files/dirs on Linux, prefer 'tar' if available.
- If an output filename is not specified, choose a sensible default like 'archive.tar.gz'.
"""


def _flag(value: bool) -> str:
    return "true" if value else "false"


def build_prompt(env: EnvironmentInfo, settings: Settings, request: str) -> Prompt:
    policy = settings.policy
    system = _SYSTEM_TEMPLATE.format(
        os_name=env.os_name,
        distro=env.distro,
        version=env.version,
        shell=env.shell,
        cwd=env.cwd,
        dry_run=_flag(policy.dry_run),
        require_confirmation=_flag(policy.require_confirmation),
        timeout_sec=policy.timeout_sec,
        llm_service=settings.llm_service.value,
        model=settings.model,
    )
    return Prompt(system=system, user=_USER_TEMPLATE.format(request=request.strip()))
