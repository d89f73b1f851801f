from __future__ import annotations

import argparse
import dataclasses
import getpass
import logging
import os
import pwd
import shlex
import sys
from pathlib import Path
from typing import Optional

from .config_store import load_or_create
from .errors import ConfigParseError, InstallerError, LedgerError, RebootPending
from .lib.env import PATHS, Paths
from .logging_utils import configure_logging
from .pipeline import Context, PipelineResult, StepRegistry, run_pipeline
from .progress import ProgressLedger
from .reboot import RebootHandOff
from .steps import (
    ApplyEnhancementsStep,
    CloneRepositoriesStep,
    ConfigurePulseAudioStep,
    ConfigureSwapStep,
    InstallLedsStep,
    InstallSatelliteStep,
    InstallSnapcastStep,
    InstallWakewordStep,
    StartSatelliteStep,
    UpdateSystemStep,
)

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_STEP_FAILED = 1
EXIT_SETUP_ERROR = 2


def build_steps():
    return [
        ConfigureSwapStep(),
        UpdateSystemStep(),
        CloneRepositoriesStep(),
        InstallSatelliteStep(),
        InstallWakewordStep(),
        InstallLedsStep(),
        StartSatelliteStep(),
        ConfigurePulseAudioStep(),
        InstallSnapcastStep(),
        ApplyEnhancementsStep(),
    ]


def default_username() -> str:
    # The installer runs under sudo; services belong to the invoking user.
    return os.environ.get("SUDO_USER") or getpass.getuser()


def home_of(username: str) -> str:
    return pwd.getpwnam(username).pw_dir


def resume_command(*, paths: Paths, username: str, home: str) -> str:
    return shlex.join(
        [
            sys.executable,
            "-m",
            "ssv_installer",
            "--resume",
            "--config",
            paths.config,
            "--ledger",
            paths.ledger,
            "--log",
            paths.log,
            "--user",
            username,
            "--home",
            home,
        ]
    )


def run(
    *,
    paths: Paths = PATHS,
    username: str,
    home: str,
    resume: bool = False,
    stop_after: Optional[str] = None,
    reset: bool = False,
    dry_run: bool = False,
    handoff: Optional[RebootHandOff] = None,
) -> PipelineResult:
    """Load config, then run the remaining steps. Errors propagate to the caller."""

    config = load_or_create(paths.config, username=username, dry_run=dry_run)
    ledger = ProgressLedger(paths.ledger)
    if reset and not dry_run:
        ledger.clear()

    ctx = Context(
        config=config,
        working_root=Path(home),
        username=username,
        paths=paths,
        dry_run=dry_run,
        resume_command=resume_command(paths=paths, username=username, home=home),
    )
    if resume:
        logger.info("Post-reboot resumption (ledger=%s)", paths.ledger)

    return run_pipeline(
        ctx=ctx,
        registry=StepRegistry(build_steps()),
        ledger=ledger,
        handoff=handoff,
        stop_after=stop_after,
    )


def list_steps(ledger_path: str) -> None:
    registry = StepRegistry(build_steps())
    mark = ProgressLedger(ledger_path).read()
    for step in registry:
        n = registry.ordinal(step.step_id)
        done = mark is not None and (mark.completed or n <= mark.step)
        flags = " [reboot]" if step.requires_reboot else ""
        print(f"{'x' if done else ' '} {n:2d} {step.step_id:<22} {step.label}{flags}")


def main(argv: Optional[list[str]] = None) -> int:
    p = argparse.ArgumentParser(prog="ssv-installer")
    p.add_argument("--config", default=PATHS.config, help="Path to the key=value satellite config")
    p.add_argument("--ledger", default=PATHS.ledger, help="Path to the progress ledger")
    p.add_argument("--log", default=PATHS.log, help="Path to installer log")
    p.add_argument("--user", default=None, help="User owning the satellite services (default: $SUDO_USER)")
    p.add_argument("--home", default=None, help="Home directory for repository checkouts")
    p.add_argument("--resume", action="store_true", help="Post-reboot resumption (used by the boot unit)")
    p.add_argument("--stop-after", default=None, help="Stop after step_id (e.g. install_satellite)")
    p.add_argument("--reset", action="store_true", help="Forget recorded progress and start from step 1")
    p.add_argument("--dry-run", action="store_true", help="Log commands and files without changing the host")
    p.add_argument("--list-steps", action="store_true", help="Show steps and recorded progress, then exit")
    p.add_argument("-v", "--verbose", action="store_true", help="Show command output on the console too")

    args = p.parse_args(argv)

    if args.list_steps:
        try:
            list_steps(args.ledger)
        except LedgerError as e:
            print(f"ssv-installer: {e}", file=sys.stderr)
            return EXIT_SETUP_ERROR
        return EXIT_OK

    configure_logging(log_path=args.log, console_level=logging.DEBUG if args.verbose else logging.INFO)

    if not args.dry_run and os.geteuid() != 0:
        logger.error("ssv-installer must run as root (try sudo, or --dry-run)")
        return EXIT_SETUP_ERROR

    username = args.user or default_username()
    try:
        home = args.home or home_of(username)
    except KeyError:
        logger.error("Unknown user %s (no passwd entry); pass an existing --user or --home", username)
        return EXIT_SETUP_ERROR
    paths = dataclasses.replace(PATHS, config=args.config, ledger=args.ledger, log=args.log)

    try:
        result = run(
            paths=paths,
            username=username,
            home=home,
            resume=args.resume,
            stop_after=args.stop_after,
            reset=args.reset,
            dry_run=args.dry_run,
        )
    except RebootPending as e:
        logger.info("%s; exiting for reboot", e)
        return EXIT_OK
    except (ConfigParseError, LedgerError) as e:
        logger.error("%s", e)
        return EXIT_SETUP_ERROR
    except InstallerError as e:
        logger.exception("Installer failed at step %s: %s", e.step_id or "?", e)
        return EXIT_STEP_FAILED

    if result.completed:
        logger.info("SSV setup complete")
    return EXIT_OK


if __name__ == "__main__":
    raise SystemExit(main())
