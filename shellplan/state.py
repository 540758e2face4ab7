from __future__ import annotations

from enum import Enum
from typing import List
from typing_extensions import TypedDict

from .config import ExecutionPolicy
from .plan import CommandPlan
from .runner import CommandResult


class OutcomeStatus(str, Enum):
    COMPLETED = "completed"
    DRY_RUN = "dry_run"
    DECLINED = "declined"
    EMPTY_PLAN = "empty_plan"
    ABORTED = "aborted"


class State(TypedDict, total=False):
    # inputs
    plan: CommandPlan
    policy: ExecutionPolicy

    # gating
    confirmation_required: bool
    confirmed: bool

    # execution
    results: List[CommandResult]
    failed_index: int

    # set once the plan reached a terminal state
    status: OutcomeStatus
