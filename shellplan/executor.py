from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, TextIO, Tuple

from .config import ExecutionPolicy
from .graph import build_graph
from .nodes import PlanNodes, RunnerFn
from .plan import CommandPlan, decode_plan
from .runner import CommandResult, run_shell_command
from .safety import AskFn, stdin_ask
from .state import OutcomeStatus, State


@dataclass(frozen=True)
class ExecutionOutcome:
    """What happened to one plan: the terminal status plus per-command results."""

    status: OutcomeStatus
    results: Tuple[CommandResult, ...] = ()
    failed_index: Optional[int] = None
    total: int = 0

    @property
    def ok(self) -> bool:
        """False only for content errors and aborted runs; declines are not errors."""
        return self.status not in (OutcomeStatus.EMPTY_PLAN, OutcomeStatus.ABORTED)

    @property
    def failure(self) -> Optional[CommandResult]:
        if self.failed_index is None:
            return None
        return self.results[self.failed_index]

    def describe(self) -> str:
        if self.status is OutcomeStatus.COMPLETED:
            return f"Done. {len(self.results)} command(s) succeeded."
        if self.status is OutcomeStatus.DRY_RUN:
            return "[dry_run=true] Not executing commands."
        if self.status is OutcomeStatus.DECLINED:
            return "Cancelled."
        if self.status is OutcomeStatus.EMPTY_PLAN:
            return "LLM returned empty cmd list. Aborting."

        failed = self.failure
        if failed is None or self.failed_index is None:
            return "Aborted."
        lines = [
            f"Command {self.failed_index + 1}/{self.total} failed ({failed.status_text()}).",
            f"$ {failed.command}",
            "--- stdout ---",
            failed.stdout.rstrip("\n"),
            "--- stderr ---",
            failed.stderr.rstrip("\n"),
        ]
        if self.failed_index > 0:
            lines.append(f"{self.failed_index} earlier command(s) already ran; nothing was rolled back.")
        skipped = self.total - self.failed_index - 1
        if skipped > 0:
            lines.append(f"{skipped} remaining command(s) were not run.")
        return "\n".join(lines)


class PlanExecutor:
    def __init__(
        self,
        policy: ExecutionPolicy,
        *,
        ask: Optional[AskFn] = None,
        runner: Optional[RunnerFn] = None,
        stdout: Optional[TextIO] = None,
        stderr: Optional[TextIO] = None,
    ) -> None:
        self.policy = policy
        nodes = PlanNodes(
            ask=ask or stdin_ask,
            runner=runner or run_shell_command,
            stdout=stdout,
            stderr=stderr,
        )
        self._app = build_graph(nodes)

    def execute(self, plan: CommandPlan) -> ExecutionOutcome:
        initial: State = {"plan": plan, "policy": self.policy}
        out = self._app.invoke(initial)
        failed_index = out.get("failed_index")
        return ExecutionOutcome(
            status=OutcomeStatus(out["status"]),
            results=tuple(out.get("results") or ()),
            failed_index=failed_index,
            total=len(plan.cmd),
        )

    def execute_answer(self, answer_text: str) -> ExecutionOutcome:
        """Decode the model's answer and run it; raises PlanSchemaError on bad JSON."""
        return self.execute(decode_plan(answer_text))
