from __future__ import annotations

import json
from typing import Dict, List, Optional, Tuple, Union

import pytest

from shellplan.config import ProviderKind, Settings
from shellplan.runner import CommandResult


class FakeRunner:
    """Records every command; returns scripted results (default: success)."""

    def __init__(self, results: Optional[Dict[str, Union[CommandResult, Exception]]] = None) -> None:
        self.results = results or {}
        self.calls: List[Tuple[str, int]] = []

    def __call__(self, command: str, timeout_sec: int) -> CommandResult:
        self.calls.append((command, timeout_sec))
        scripted = self.results.get(command)
        if isinstance(scripted, Exception):
            raise scripted
        if scripted is not None:
            return scripted
        return CommandResult(command=command, exit_code=0, stdout=f"{command} ok\n", stderr="")

    @property
    def commands(self) -> List[str]:
        return [c for c, _ in self.calls]


class ScriptedAsk:
    """Confirmation reader returning canned answers; None once exhausted (EOF)."""

    def __init__(self, *answers: Optional[str]) -> None:
        self.answers = list(answers)
        self.prompts: List[str] = []

    def __call__(self, prompt: str) -> Optional[str]:
        self.prompts.append(prompt)
        if not self.answers:
            return None
        return self.answers.pop(0)


class FakeTransport:
    def __init__(self, settings: Settings, body: str = "", error: Optional[Exception] = None) -> None:
        self.settings = settings
        self.body = body
        self.error = error
        self.prompts = []
        self.closed = False

    def send(self, prompt) -> str:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.body

    def close(self) -> None:
        self.closed = True


def envelope(kind: ProviderKind, answer: str) -> str:
    """Compact provider response body carrying ``answer`` as the model text."""
    if kind is ProviderKind.OLLAMA:
        payload = {
            "model": "llama3.1",
            "message": {"role": "assistant", "content": answer},
            "done": True,
        }
    else:
        payload = {
            "id": "resp_123",
            "output": [
                {"type": "message", "role": "assistant", "content": [
                    {"type": "output_text", "text": answer, "annotations": []},
                ]},
            ],
        }
    return json.dumps(payload, separators=(",", ":"))


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()
