"""
CommandPlan: the structured answer the model must produce.

    {
      "cmd": ["<command1>", "<command2>"],
      "explain": "short explanation",
      "needs_confirmation": true,
      "risk": "low" | "medium" | "high",
      "assumptions": ["..."],
      "notes": ["..."]
    }
"""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, ValidationError

from .errors import PlanSchemaError


class CommandPlan(BaseModel):
    model_config = ConfigDict(strict=True, frozen=True, extra="ignore")

    cmd: List[str]
    explain: Optional[str] = None
    needs_confirmation: Optional[bool] = None
    risk: Optional[str] = None
    assumptions: Optional[List[str]] = None
    notes: Optional[List[str]] = None

    @property
    def is_empty(self) -> bool:
        return len(self.cmd) == 0

    @property
    def wants_confirmation(self) -> bool:
        return bool(self.needs_confirmation)

    @property
    def risk_label(self) -> str:
        return self.risk if self.risk is not None else "unknown"

    @property
    def gating_risk(self) -> str:
        """Risk tier used by the confirmation gate; absent means "low"."""
        if self.risk is None:
            return "low"
        return self.risk.strip().lower()


def _strip_code_fence(text: str) -> str:
    body = text.strip()
    if not body.startswith("```"):
        return body
    lines = body.splitlines()
    body = "\n".join(lines[1:]).rstrip()
    if body.endswith("```"):
        body = body[:-3]
    return body.strip()


def decode_plan(answer_text: str) -> CommandPlan:
    text = _strip_code_fence(answer_text)
    try:
        return CommandPlan.model_validate_json(text)
    except ValidationError as exc:
        raise PlanSchemaError(answer_text, str(exc)) from exc
