from __future__ import annotations

import re
from typing import Callable, List, Optional, Sequence

from .config import ExecutionPolicy
from .plan import CommandPlan


# Reads one line of user input for the given prompt; None means EOF.
AskFn = Callable[[str], Optional[str]]

STRONG_TOKEN = "YES"

HIGH_RISK_PROMPT = "\nRisk is HIGH. Type YES to execute: "
DEFAULT_PROMPT = "\nExecute these commands? [y/N]: "


DANGEROUS_PATTERNS: List[tuple[str, str]] = [
    (r"\brm\b[^\n]*\s-[a-zA-Z]*[rR][a-zA-Z]*\b[^\n]*\s/\s*(\*\s*)?$", "Recursive delete from root"),
    (r"\brm\b[^\n]*--no-preserve-root\b", "Delete with --no-preserve-root"),
    (r"\bdd\b[^\n]*\bof=/dev/(sd[a-z]|nvme\d|hd[a-z]|mmcblk\d)", "Raw disk write with dd"),
    (r"\bmkfs(\.[a-z0-9]+)?\b", "Filesystem creation (mkfs)"),
    (r":\s*\(\)\s*\{\s*:\s*\|\s*:\s*&\s*\}\s*;\s*:", "Fork bomb"),
    (r"\b(chown|chmod)\b[^\n]*\s-R\b[^\n]*\s/\s*$", "Recursive perm change at root"),
    (r"\bshred\b[^\n]*/dev/", "Shred on device"),
    (r"\b(shutdown|reboot|halt|poweroff)\b", "System power action"),
    (r"\b(curl|wget)\b[^\n]*\|\s*(sudo\s+)?(sh|bash|zsh)\b", "Pipe remote script to shell"),
    (r">\s*/dev/(sd[a-z]|nvme\d)", "Redirection onto a block device"),
    (r">\s*/(etc|boot|bin|sbin|usr)/", "Redirection into system path"),
]

_COMPILED = [(re.compile(p), label) for p, label in DANGEROUS_PATTERNS]


def check_danger(cmd: str) -> List[str]:
    """Labels of the destructive patterns found in one command (display only)."""
    stripped = cmd.strip()
    return [label for pattern, label in _COMPILED if pattern.search(stripped)]


def plan_warnings(commands: Sequence[str]) -> List[str]:
    warnings: List[str] = []
    for i, c in enumerate(commands, start=1):
        for label in check_danger(c):
            warnings.append(f"command {i}: {label}")
    return warnings


def confirmation_required(policy: ExecutionPolicy, plan: CommandPlan) -> bool:
    return policy.require_confirmation or plan.wants_confirmation


def accepts(risk: str, answer: Optional[str]) -> bool:
    if answer is None:
        return False
    if risk.strip().lower() == "high":
        return answer.strip() == STRONG_TOKEN
    return answer.strip().lower() in ("y", "yes")


def confirm(risk: str, ask: AskFn) -> bool:
    prompt = HIGH_RISK_PROMPT if risk.strip().lower() == "high" else DEFAULT_PROMPT
    return accepts(risk, ask(prompt))


def stdin_ask(prompt: str) -> Optional[str]:
    try:
        return input(prompt)
    except (EOFError, KeyboardInterrupt):
        print()
        return None
