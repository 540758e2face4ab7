from __future__ import annotations

import argparse
import dataclasses
import logging
import sys
from pathlib import Path
from typing import List, Optional

from prompt_toolkit import PromptSession

from . import ux
from .config import ProviderKind, Settings, load_settings
from .errors import (
    ConfigError,
    ExtractionError,
    MissingCredentialError,
    PlanSchemaError,
    TransportFailedError,
    TransportTimeoutError,
)
from .executor import PlanExecutor
from .llm import ProviderTransport, request_answer
from .logging_utils import configure_logging
from .plan import decode_plan
from .prompt import EnvironmentInfo, build_prompt, detect_environment

logger = logging.getLogger(__name__)

DEFAULT_LOG_DIR = Path.home() / ".shellplan" / "logs"

HELP_TEXT = """Commands:
  /help         - show this help
  /dry          - enable dry-run (plans are shown, never executed)
  /run          - disable dry-run (execute after confirmation)
  /q            - quit (also /quit, /exit, exit)
  Otherwise: the line is sent as a natural-language request"""


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="shellplan",
        description="Turn a natural-language request into a shell command plan and run it after confirmation.",
    )
    p.add_argument("request", nargs="*", help="Natural language request (one-shot). Omit to start the REPL.")
    p.add_argument("-i", "--repl", action="store_true", help="Start the interactive prompt")
    p.add_argument("--dry-run", action="store_true", help="Show the plan, never execute it")
    p.add_argument("--confirm", action="store_true", help="Always ask before executing")
    p.add_argument("--timeout", type=int, metavar="SECONDS", help="Per-command timeout (0 disables)")
    p.add_argument("--service", choices=[k.value for k in ProviderKind], help="LLM service to ask")
    p.add_argument("--debug", action="store_true", help="Debug logging (raw responses are logged)")
    p.add_argument("--log-dir", type=Path, default=DEFAULT_LOG_DIR, help="Directory for debug log files")
    return p.parse_args(argv)


def apply_overrides(settings: Settings, args: argparse.Namespace) -> Settings:
    policy = settings.policy
    changes = {}
    if args.dry_run:
        changes["dry_run"] = True
    if args.confirm:
        changes["require_confirmation"] = True
    if args.timeout is not None:
        changes["timeout_sec"] = args.timeout
    if not changes:
        return settings
    return dataclasses.replace(settings, policy=dataclasses.replace(policy, **changes))


def _fail(message: str) -> None:
    print(ux.error(message), file=sys.stderr)


class Session:
    """One configured pipeline: prompt -> provider -> extract -> decode -> execute."""

    def __init__(
        self,
        settings: Settings,
        *,
        transport: Optional[ProviderTransport] = None,
        executor: Optional[PlanExecutor] = None,
        environment: Optional[EnvironmentInfo] = None,
    ) -> None:
        self.settings = settings
        self.transport = transport or ProviderTransport(settings)
        self.executor = executor or PlanExecutor(settings.policy)
        self.environment = environment or detect_environment()

    def with_dry_run(self, dry_run: bool) -> "Session":
        settings = dataclasses.replace(
            self.settings, policy=dataclasses.replace(self.settings.policy, dry_run=dry_run)
        )
        executor = PlanExecutor(settings.policy)
        return Session(settings, transport=self.transport, executor=executor, environment=self.environment)

    def handle_request(self, text: str) -> bool:
        prompt = build_prompt(self.environment, self.settings, text)
        try:
            answer = request_answer(self.transport, prompt)
        except MissingCredentialError as exc:
            _fail(f"API error: {exc}")
            return False
        except TransportTimeoutError as exc:
            _fail(f"API error: {exc}")
            return False
        except TransportFailedError as exc:
            _fail(f"API error: {exc}")
            if exc.body:
                print("--- response body ---", file=sys.stderr)
                print(exc.body, file=sys.stderr)
            return False
        except ExtractionError as exc:
            _fail(f"failed to extract answer text: {exc}")
            if not logger.isEnabledFor(logging.DEBUG):
                print(ux.dim("(run with --debug to log the raw response)"), file=sys.stderr)
            return False

        try:
            plan = decode_plan(answer)
        except PlanSchemaError as exc:
            _fail(f"failed to parse plan JSON: {exc.detail}")
            logger.debug("answer text that failed to decode:\n%s", exc.text)
            return False

        outcome = self.executor.execute(plan)
        summary = outcome.describe()
        if outcome.ok:
            print(ux.success(summary) if outcome.results else summary)
        else:
            _fail(summary)
        return outcome.ok


def _interactive_shell(session: Session) -> int:
    prompt_session = PromptSession()
    print("shellplan interactive mode. Type '/help' for commands.\n")
    while True:
        try:
            line = prompt_session.prompt("shellplan> ").strip()
        except EOFError:
            print()
            break
        except KeyboardInterrupt:
            continue

        if not line:
            continue
        if line in ("/q", "/quit", "/exit", "exit"):
            break
        if line == "/help":
            print(HELP_TEXT)
            continue
        if line == "/dry":
            session = session.with_dry_run(True)
            print("Dry-run enabled. Commands will NOT execute.")
            continue
        if line == "/run":
            session = session.with_dry_run(False)
            print("Dry-run disabled. Commands will execute.")
            continue
        if line.startswith("/"):
            print("Unknown command. Type '/help'.")
            continue

        try:
            session.handle_request(line)
        except KeyboardInterrupt:
            print("\nPress Ctrl-D or type 'exit' to quit.\n")
        except Exception as exc:
            logger.debug("request failed", exc_info=True)
            _fail(f"Error: {exc}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    configure_logging(args.debug, args.log_dir)

    overrides = {"SHELLPLAN_LLM_SERVICE": args.service} if args.service else None
    try:
        settings = apply_overrides(load_settings(overrides=overrides), args)
    except ConfigError as exc:
        _fail(f"config error: {exc}")
        return 2

    session = Session(settings)
    try:
        request = " ".join(args.request).strip()
        if request and not args.repl:
            return 0 if session.handle_request(request) else 1
        return _interactive_shell(session)
    finally:
        session.transport.close()
