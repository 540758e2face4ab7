import io

import pytest

from shellplan.config import ExecutionPolicy
from shellplan.errors import LaunchFailedError, PlanSchemaError
from shellplan.executor import ExecutionOutcome, PlanExecutor
from shellplan.nodes import PlanNodes, route_confirmation
from shellplan.plan import CommandPlan
from shellplan.runner import CommandResult
from shellplan.state import OutcomeStatus

from conftest import FakeRunner, ScriptedAsk


def _executor(policy, runner, ask=None):
    out, err = io.StringIO(), io.StringIO()
    executor = PlanExecutor(policy, ask=ask or ScriptedAsk(), runner=runner, stdout=out, stderr=err)
    return executor, out, err


def test_end_to_end_echo_runs_and_succeeds() -> None:
    policy = ExecutionPolicy(dry_run=False, require_confirmation=False, timeout_sec=10)
    out, err = io.StringIO(), io.StringIO()
    executor = PlanExecutor(policy, ask=ScriptedAsk(), stdout=out, stderr=err)

    outcome = executor.execute_answer('{"cmd":["echo hi"],"risk":"low","needs_confirmation":false}')

    assert outcome.status is OutcomeStatus.COMPLETED
    assert outcome.ok
    assert [r.stdout for r in outcome.results] == ["hi\n"]
    assert out.getvalue().endswith("hi\n")
    assert "1. echo hi" in out.getvalue()


def test_bad_answer_text_is_schema_error() -> None:
    executor, _, _ = _executor(ExecutionPolicy(), FakeRunner())
    with pytest.raises(PlanSchemaError):
        executor.execute_answer("not json")


def test_empty_plan_is_content_error_and_never_runs() -> None:
    runner, ask = FakeRunner(), ScriptedAsk("y")
    executor, _, _ = _executor(ExecutionPolicy(require_confirmation=True), runner, ask)

    outcome = executor.execute(CommandPlan(cmd=[]))

    assert outcome.status is OutcomeStatus.EMPTY_PLAN
    assert not outcome.ok
    assert runner.calls == []
    assert ask.prompts == []
    assert "empty cmd list" in outcome.describe()


@pytest.mark.parametrize("needs", [None, False, True])
@pytest.mark.parametrize("risk", [None, "low", "high"])
def test_dry_run_never_runs_or_asks(needs, risk) -> None:
    runner, ask = FakeRunner(), ScriptedAsk("YES")
    executor, _, _ = _executor(ExecutionPolicy(dry_run=True, require_confirmation=True), runner, ask)

    outcome = executor.execute(CommandPlan(cmd=["touch x"], needs_confirmation=needs, risk=risk))

    assert outcome.status is OutcomeStatus.DRY_RUN
    assert outcome.ok
    assert runner.calls == []
    assert ask.prompts == []
    assert outcome.describe() == "[dry_run=true] Not executing commands."


@pytest.mark.parametrize("answer", ["yes", "y", "Yes", "", "no", "YES please", None])
def test_high_risk_requires_exact_yes(answer) -> None:
    runner = FakeRunner()
    executor, _, _ = _executor(ExecutionPolicy(require_confirmation=True), runner, ScriptedAsk(answer))

    outcome = executor.execute(CommandPlan(cmd=["rm -r build"], risk="high"))

    assert outcome.status is OutcomeStatus.DECLINED
    assert outcome.ok
    assert runner.calls == []
    assert outcome.describe() == "Cancelled."


def test_high_risk_yes_runs() -> None:
    runner = FakeRunner()
    executor, _, _ = _executor(ExecutionPolicy(require_confirmation=False), runner, ScriptedAsk("YES"))

    outcome = executor.execute(CommandPlan(cmd=["rm -r build"], risk="High", needs_confirmation=True))

    assert outcome.status is OutcomeStatus.COMPLETED
    assert runner.commands == ["rm -r build"]


@pytest.mark.parametrize("risk", [None, "low", "medium", "catastrophic"])
def test_other_risks_accept_loose_yes(risk) -> None:
    runner = FakeRunner()
    executor, _, _ = _executor(ExecutionPolicy(require_confirmation=True), runner, ScriptedAsk("y"))

    outcome = executor.execute(CommandPlan(cmd=["ls"], risk=risk))

    assert outcome.status is OutcomeStatus.COMPLETED
    assert runner.commands == ["ls"]


def test_eof_at_confirmation_declines() -> None:
    runner, ask = FakeRunner(), ScriptedAsk()
    executor, _, _ = _executor(ExecutionPolicy(require_confirmation=True), runner, ask)

    outcome = executor.execute(CommandPlan(cmd=["ls"]))

    assert outcome.status is OutcomeStatus.DECLINED
    assert len(ask.prompts) == 1
    assert runner.calls == []


def test_no_confirmation_needed_never_asks() -> None:
    runner, ask = FakeRunner(), ScriptedAsk("n")
    executor, _, _ = _executor(ExecutionPolicy(require_confirmation=False), runner, ask)

    outcome = executor.execute(CommandPlan(cmd=["ls"], risk="high", needs_confirmation=False))

    assert outcome.status is OutcomeStatus.COMPLETED
    assert ask.prompts == []


def test_sequence_stops_at_first_failure() -> None:
    runner = FakeRunner({
        "step two": CommandResult(command="step two", exit_code=2, stdout="partial\n", stderr="boom\n"),
    })
    executor, out, _ = _executor(ExecutionPolicy(require_confirmation=False, timeout_sec=7), runner)

    outcome = executor.execute(CommandPlan(cmd=["step one", "step two", "step three"]))

    assert outcome.status is OutcomeStatus.ABORTED
    assert not outcome.ok
    assert runner.calls == [("step one", 7), ("step two", 7)]
    assert outcome.failed_index == 1
    assert outcome.failure is not None
    assert outcome.failure.stderr == "boom\n"
    summary = outcome.describe()
    assert "Command 2/3 failed (exit code 2)" in summary
    assert "boom" in summary
    assert "1 earlier command(s) already ran" in summary
    assert "1 remaining command(s) were not run" in summary
    assert "step one ok\n" in out.getvalue()


def test_timeout_aborts_sequence() -> None:
    runner = FakeRunner({
        "sleep 60": CommandResult(command="sleep 60", exit_code=124, stdout="", stderr="", timed_out=True),
    })
    executor, _, _ = _executor(ExecutionPolicy(require_confirmation=False), runner)

    outcome = executor.execute(CommandPlan(cmd=["sleep 60", "echo after"]))

    assert outcome.status is OutcomeStatus.ABORTED
    assert runner.commands == ["sleep 60"]
    assert "killed (timeout)" in outcome.describe()


def test_launch_failure_aborts_sequence() -> None:
    runner = FakeRunner({"first": LaunchFailedError("first", "No such file or directory")})
    executor, _, _ = _executor(ExecutionPolicy(require_confirmation=False), runner)

    outcome = executor.execute(CommandPlan(cmd=["first", "second"]))

    assert outcome.status is OutcomeStatus.ABORTED
    assert runner.commands == ["first"]
    assert outcome.failure.launch_error == "No such file or directory"
    assert "launch failed" in outcome.describe()


def test_streams_are_relayed_per_command() -> None:
    runner = FakeRunner({
        "a": CommandResult(command="a", exit_code=0, stdout="out-a\n", stderr="err-a\n"),
        "b": CommandResult(command="b", exit_code=0, stdout="out-b\n", stderr=""),
    })
    executor, out, err = _executor(ExecutionPolicy(require_confirmation=False), runner)

    outcome = executor.execute(CommandPlan(cmd=["a", "b"]))

    assert outcome.status is OutcomeStatus.COMPLETED
    text = out.getvalue()
    assert text.index("out-a") < text.index("Running (2/2)") < text.index("out-b")
    assert err.getvalue() == "err-a\n"


def test_plan_is_rendered_before_execution() -> None:
    executor, out, _ = _executor(ExecutionPolicy(dry_run=True), FakeRunner())

    executor.execute(CommandPlan(
        cmd=["mkdir -p out", "mkfs.ext4 /dev/sdb1"],
        explain="prepare",
        risk="medium",
        assumptions=["disk is spare"],
        notes=[],
    ))

    text = out.getvalue()
    assert "=== PLAN ===" in text
    assert "Explain: prepare" in text
    assert "  1. mkdir -p out" in text
    assert "  2. mkfs.ext4 /dev/sdb1" in text
    assert "  - disk is spare" in text
    assert "Notes:" not in text
    assert "command 2: Filesystem creation (mkfs)" in text


def test_real_runner_fail_fast() -> None:
    out, err = io.StringIO(), io.StringIO()
    executor = PlanExecutor(ExecutionPolicy(require_confirmation=False, timeout_sec=10), stdout=out, stderr=err)

    outcome = executor.execute(CommandPlan(cmd=["echo one", "echo bad >&2; false", "echo three"]))

    assert outcome.status is OutcomeStatus.ABORTED
    assert len(outcome.results) == 2
    assert outcome.failure.stderr == "bad\n"
    assert [r.command for r in outcome.results] == ["echo one", "echo bad >&2; false"]
    assert "Running (3/3)" not in out.getvalue()


def test_aborted_outcome_without_failure_still_describes() -> None:
    outcome = ExecutionOutcome(status=OutcomeStatus.ABORTED)
    assert outcome.describe() == "Aborted."
    assert not outcome.ok


def test_confirmation_routing_follows_confirmed_flag() -> None:
    assert route_confirmation({"confirmed": True}) == "next"
    assert route_confirmation({"confirmed": False, "status": OutcomeStatus.DECLINED}) == "end"
    assert route_confirmation({}) == "end"


def test_policy_gate_passes_through_without_updates() -> None:
    nodes = PlanNodes(ask=ScriptedAsk(), runner=FakeRunner())
    state = {"plan": CommandPlan(cmd=["ls"], risk="low"), "policy": ExecutionPolicy(dry_run=False)}
    assert nodes.policy_gate(state) == {}
