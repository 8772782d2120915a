#!/usr/bin/env python3
"""
Restore Teams Enterprise Voice configuration from a backup archive.

  ev-restore EVBackup_2024-05-01.zip [--keep-existing] [--override-domain contoso.onmicrosoft.com]

Unless --keep-existing is given, the operator is asked to confirm before the
live dial plans, voice routes, voice routing policies, PSTN usages and
translation rules are removed. Every backed-up object is then created, or
updated when an object with the same Identity already exists. PSTN gateways
are never created, only their translation rule lists are restored.

ENV: see evbackup.config (TEAMS_TOKEN, TEAMS_ADMIN_BASE, TEAMS_TENANT_ID, ...)
"""

import argparse
import sys
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional

from . import console
from .archive import unpack
from .config import load_settings
from .errors import (
    EXIT_DECLINED,
    EXIT_ERROR,
    EXIT_OK,
    ArchiveOpenError,
    OperatorDecline,
    SessionError,
    ValidationError,
)
from .reconciler import Reconciler, RestoreReport
from .session import TenantClient, connect
from .validator import confirm, validate


class RunState(Enum):
    IDLE = "Idle"
    ARCHIVE_OPENED = "ArchiveOpened"
    VALIDATED = "Validated"
    CONFIRMED = "Confirmed"
    PURGED = "Purged"
    RECONCILING = "Reconciling"
    DONE = "Done"
    ABORTED_BY_OPERATOR = "AbortedByOperator"
    ABORTED_BY_ERROR = "AbortedByError"


@dataclass
class RestoreOutcome:
    state: RunState
    report: Optional[RestoreReport] = None
    validation_errors: List[ValidationError] = field(default_factory=list)
    message: str = ""

    @property
    def exit_code(self) -> int:
        if self.state is RunState.DONE:
            return EXIT_OK
        if self.state is RunState.ABORTED_BY_OPERATOR:
            return EXIT_DECLINED
        return EXIT_ERROR


def _enter(state: RunState) -> RunState:
    console.dbg(f"state={state.value}")
    return state


def run_restore(client: TenantClient, archive_path: str, keep_existing: bool = False,
                prompt: Callable[[str], str] = input, strict: bool = False) -> RestoreOutcome:
    _enter(RunState.IDLE)
    try:
        archive = unpack(archive_path)
    except ArchiveOpenError as e:
        return RestoreOutcome(_enter(RunState.ABORTED_BY_ERROR), message=str(e))

    # The zip is only needed until every entity type has been read.
    with archive:
        _enter(RunState.ARCHIVE_OPENED)
        console.step(f"Validating {archive_path} …")
        backup, errors = validate(archive, stop_on_error=strict)

    if not backup:
        return RestoreOutcome(_enter(RunState.ABORTED_BY_ERROR), validation_errors=errors,
                              message="No entity type in the archive passed validation.")
    _enter(RunState.VALIDATED)

    reconciler = Reconciler(client)
    if not keep_existing:
        try:
            confirm(prompt)
        except OperatorDecline as e:
            return RestoreOutcome(_enter(RunState.ABORTED_BY_OPERATOR), validation_errors=errors,
                                  message=str(e))
        _enter(RunState.CONFIRMED)
        reconciler.purge()
        _enter(RunState.PURGED)

    _enter(RunState.RECONCILING)
    report = reconciler.reconcile(backup)
    return RestoreOutcome(_enter(RunState.DONE), report=report, validation_errors=errors)


def main(argv: Optional[List[str]] = None) -> None:
    ap = argparse.ArgumentParser(
        description="Restore Teams Enterprise Voice configuration from a backup zip."
    )
    ap.add_argument("archive", help="Path to the backup zip")
    ap.add_argument("--keep-existing", action="store_true",
                    help="Do not remove the current configuration before restoring")
    ap.add_argument("--override-domain", default=None,
                    help="Admin domain to authenticate against when it is not the tenant's default domain")
    ap.add_argument("--strict", action="store_true",
                    help="Stop at the first entity type that fails validation")
    ap.add_argument("--yes", action="store_true",
                    help="Answer the removal confirmation with yes")
    args = ap.parse_args(argv)

    settings = load_settings(override_domain=args.override_domain)
    try:
        session = connect(settings)
    except SessionError as e:
        console.die(str(e))

    prompt = (lambda _msg: "y") if args.yes else input
    outcome = run_restore(TenantClient(session), args.archive,
                          keep_existing=args.keep_existing, prompt=prompt, strict=args.strict)

    if outcome.state is RunState.ABORTED_BY_OPERATOR:
        print(outcome.message, file=sys.stderr, flush=True)
        sys.exit(outcome.exit_code)
    if outcome.state is RunState.ABORTED_BY_ERROR:
        console.die(outcome.message, outcome.exit_code)

    outcome.report.show()
    if outcome.validation_errors:
        for e in outcome.validation_errors:
            console.err(f"Not restored: {e}")
    if outcome.report.failed:
        console.err(f"Restore finished with {outcome.report.failed} failed operation(s).")
    else:
        console.ok("Restore complete.")


if __name__ == "__main__":
    main()
