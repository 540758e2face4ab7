"""
Lightweight ANSI styling helpers and plan rendering for the CLI.

- Color output only when supported (TTY and NO_COLOR not set)
- Plan, banners and outcome summaries are built as plain strings so any
  stream (or a test buffer) can receive them
"""

from __future__ import annotations

import os
import sys
from typing import TYPE_CHECKING, List

from .safety import plan_warnings

if TYPE_CHECKING:
    from .plan import CommandPlan


def _supports_color(stream) -> bool:
    if os.getenv("NO_COLOR") is not None:
        return False
    try:
        return hasattr(stream, "isatty") and stream.isatty()
    except Exception:
        return False


_COLOR_ENABLED = _supports_color(sys.stdout)


class SGR:
    RESET = "\x1b[0m"
    BOLD = "\x1b[1m"
    RED = "\x1b[31m"
    GREEN = "\x1b[32m"
    YELLOW = "\x1b[33m"
    CYAN = "\x1b[36m"
    GRAY = "\x1b[90m"


def style(text: str, *codes: str) -> str:
    if not _COLOR_ENABLED or not text:
        return text
    return "".join(codes) + text + SGR.RESET


def dim(text: str) -> str:
    return style(text, SGR.GRAY)


def success(text: str) -> str:
    return style(text, SGR.GREEN)


def warn(text: str) -> str:
    return style(text, SGR.YELLOW)


def error(text: str) -> str:
    return style(text, SGR.RED)


def header(title: str, kind: str = "info") -> str:
    if kind == "danger":
        return style(title, SGR.BOLD, SGR.RED)
    if kind == "warning":
        return style(title, SGR.BOLD, SGR.YELLOW)
    return style(title, SGR.BOLD, SGR.CYAN)


def bullet(text_line: str) -> str:
    return f"  - {text_line}"


def _risk_text(plan: "CommandPlan") -> str:
    label = plan.risk_label
    if plan.gating_risk == "high":
        return error(label)
    if plan.gating_risk == "medium":
        return warn(label)
    return label


def render_plan(plan: "CommandPlan") -> str:
    lines: List[str] = ["", header("=== PLAN ===")]
    if plan.explain is not None:
        lines.append(f"Explain: {plan.explain}")
    lines.append(f"Risk: {_risk_text(plan)}")
    lines.append(f"Needs confirmation (plan): {'true' if plan.wants_confirmation else 'false'}")
    lines.append("")
    lines.append("Commands:")
    for i, c in enumerate(plan.cmd, start=1):
        lines.append(f"  {i}. {c}")
    if plan.assumptions:
        lines.append("")
        lines.append("Assumptions:")
        lines.extend(bullet(a) for a in plan.assumptions)
    if plan.notes:
        lines.append("")
        lines.append("Notes:")
        lines.extend(bullet(n) for n in plan.notes)
    warnings = plan_warnings(plan.cmd)
    if warnings:
        lines.append("")
        lines.append(header("Warnings:", "danger"))
        lines.extend(bullet(w) for w in warnings)
    return "\n".join(lines)


def running_banner(index: int, total: int, command: str) -> str:
    return "\n" + dim(f"--- Running ({index}/{total}) ---") + "\n" + command


__all__ = [
    "SGR",
    "style",
    "dim",
    "success",
    "warn",
    "error",
    "header",
    "bullet",
    "render_plan",
    "running_banner",
]
