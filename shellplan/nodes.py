from __future__ import annotations

import logging
import sys
from typing import Callable, List, Optional, TextIO

from . import ux
from .errors import LaunchFailedError
from .runner import CommandResult
from .safety import AskFn, confirm, confirmation_required
from .state import OutcomeStatus, State

logger = logging.getLogger(__name__)

RunnerFn = Callable[[str, int], CommandResult]


def route(state: State) -> str:
    return "end" if state.get("status") else "next"


def route_confirmation(state: State) -> str:
    return "next" if state.get("confirmed") else "end"


class PlanNodes:
    """Graph nodes for one executor; capabilities are injected, not global."""

    def __init__(
        self,
        ask: AskFn,
        runner: RunnerFn,
        stdout: Optional[TextIO] = None,
        stderr: Optional[TextIO] = None,
    ) -> None:
        self._ask = ask
        self._runner = runner
        self._stdout = stdout
        self._stderr = stderr

    # streams are resolved late so redirected sys.stdout/sys.stderr are honoured
    def _out(self) -> TextIO:
        return self._stdout if self._stdout is not None else sys.stdout

    def _err(self) -> TextIO:
        return self._stderr if self._stderr is not None else sys.stderr

    def validate(self, state: State) -> State:
        plan = state["plan"]
        out = self._out()
        out.write(ux.render_plan(plan) + "\n")
        out.flush()
        if plan.is_empty:
            logger.info("plan has no commands; aborting before execution")
            return {"status": OutcomeStatus.EMPTY_PLAN}
        return {"confirmation_required": confirmation_required(state["policy"], plan)}

    def policy_gate(self, state: State) -> State:
        if state["policy"].dry_run:
            return {"status": OutcomeStatus.DRY_RUN}
        return {}

    def confirmation_gate(self, state: State) -> State:
        if not state.get("confirmation_required"):
            return {"confirmed": True}
        risk = state["plan"].gating_risk
        if confirm(risk, self._ask):
            return {"confirmed": True}
        logger.info("plan declined at confirmation (risk=%s)", risk)
        return {"confirmed": False, "status": OutcomeStatus.DECLINED}

    def run_sequence(self, state: State) -> State:
        plan = state["plan"]
        timeout_sec = state["policy"].timeout_sec
        out, err = self._out(), self._err()
        results: List[CommandResult] = []
        total = len(plan.cmd)

        for i, command in enumerate(plan.cmd):
            out.write(ux.running_banner(i + 1, total, command) + "\n")
            out.flush()
            try:
                result = self._runner(command, timeout_sec)
            except LaunchFailedError as exc:
                result = CommandResult(command=command, exit_code=None, stdout="", stderr="", launch_error=exc.reason)
            results.append(result)

            if not result.ok:
                logger.info("command %d/%d failed: %s", i + 1, total, result.status_text())
                return {
                    "results": results,
                    "failed_index": i,
                    "status": OutcomeStatus.ABORTED,
                }

            if result.stdout:
                out.write(result.stdout)
                out.flush()
            if result.stderr:
                err.write(result.stderr)
                err.flush()

        return {"results": results, "status": OutcomeStatus.COMPLETED}
