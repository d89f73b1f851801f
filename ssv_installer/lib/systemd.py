from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable

from .. import emitter
from .command import run_cmd

logger = logging.getLogger(__name__)


def _systemctl(*args: str, check: bool = True, dry_run: bool = False):
    return run_cmd(["systemctl", *args], check=check, dry_run=dry_run)


def daemon_reload(*, dry_run: bool = False) -> None:
    _systemctl("daemon-reload", dry_run=dry_run)


def enable(unit: str, *, dry_run: bool = False) -> None:
    _systemctl("enable", unit, dry_run=dry_run)


def disable(unit: str, *, dry_run: bool = False) -> None:
    _systemctl("disable", unit, check=False, dry_run=dry_run)


def start(unit: str, *, dry_run: bool = False) -> None:
    _systemctl("start", unit, dry_run=dry_run)


def restart(unit: str, *, dry_run: bool = False) -> None:
    _systemctl("restart", unit, dry_run=dry_run)


def stop(unit: str, *, dry_run: bool = False) -> None:
    """Stop a unit; a unit that is not loaded is not an error."""
    r = _systemctl("stop", unit, check=False, dry_run=dry_run)
    if not r.ok:
        logger.info("Ignoring failed stop of %s (exit %s)", unit, r.returncode)


def is_active(unit: str) -> bool:
    return _systemctl("is-active", "--quiet", unit, check=False).ok


def is_enabled(unit: str) -> bool:
    return _systemctl("is-enabled", "--quiet", unit, check=False).ok


def all_running(units: Iterable[str]) -> bool:
    return all(is_enabled(u) and is_active(u) for u in units)


def install_unit(path: str | Path, text: str, *, dry_run: bool = False) -> bool:
    """Replace a unit file and reload systemd's unit cache.

    The reload is unconditional so a stale definition never stays loaded.
    """
    changed = emitter.install(path, text, dry_run=dry_run)
    daemon_reload(dry_run=dry_run)
    return changed


def remove_unit(path: str | Path, *, dry_run: bool = False) -> None:
    p = Path(path)
    if not p.exists():
        return
    if dry_run:
        logger.info("Would remove %s", p)
        return
    p.unlink()
    daemon_reload()


def reboot(*, dry_run: bool = False) -> None:
    run_cmd(["sync"], dry_run=dry_run)
    _systemctl("reboot", dry_run=dry_run)
