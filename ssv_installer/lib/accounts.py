from __future__ import annotations

import logging
from typing import Sequence

from .command import run_cmd

logger = logging.getLogger(__name__)


def group_exists(group: str) -> bool:
    return run_cmd(["getent", "group", group], check=False).ok


def user_exists(user: str) -> bool:
    return run_cmd(["getent", "passwd", user], check=False).ok


def user_in_group(user: str, group: str) -> bool:
    r = run_cmd(["id", "-nG", user], check=False)
    return r.ok and group in r.stdout.split()


def ensure_system_group(group: str, *, dry_run: bool = False) -> None:
    if group_exists(group):
        return
    run_cmd(["groupadd", "-r", group], dry_run=dry_run)


def ensure_system_user(
    user: str,
    *,
    group: str,
    extra_groups: Sequence[str] = (),
    home: str = "/nonexistent",
    dry_run: bool = False,
) -> None:
    if user_exists(user):
        return
    argv = ["useradd", "-r", "-g", group]
    if extra_groups:
        argv += ["-G", ",".join(extra_groups)]
    argv += ["-d", home, user]
    run_cmd(argv, dry_run=dry_run)


def add_user_to_group(user: str, group: str, *, dry_run: bool = False) -> None:
    if user_in_group(user, group):
        return
    run_cmd(["usermod", "-aG", group, user], dry_run=dry_run)
    logger.info("Added %s to group %s", user, group)
