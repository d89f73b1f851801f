from __future__ import annotations

import logging
import os
import shlex
import subprocess
from dataclasses import dataclass
from typing import Dict, Mapping, Optional, Sequence

from ..errors import CommandError

logger = logging.getLogger(__name__)

# Steps parse the output of dpkg-query, swapon and id; keep it untranslated.
_BASE_ENV = {"LC_ALL": "C"}


@dataclass(frozen=True)
class CmdResult:
    argv: list[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0


def format_argv(argv: Sequence[str]) -> str:
    return shlex.join(argv)


def as_user(username: str, argv: Sequence[str]) -> list[str]:
    """argv run as ``username`` instead of root (venvs, checkouts, user scripts)."""
    return ["runuser", "-u", username, "--", *argv]


def _child_env(extra: Optional[Mapping[str, str]]) -> Dict[str, str]:
    env = dict(os.environ)
    env.update(_BASE_ENV)
    env.update(extra or {})
    return env


def run_cmd(
    argv: Sequence[str],
    *,
    check: bool = True,
    env: Optional[Mapping[str, str]] = None,
    cwd: Optional[str] = None,
    input_text: Optional[str] = None,
    dry_run: bool = False,
) -> CmdResult:
    """Run one external command; the only place the installer shells out.

    The command line is logged at INFO before it runs, its output at DEBUG
    after. With ``check`` a non-zero exit raises CommandError carrying
    stderr. In a dry run nothing is executed and a successful empty result
    is returned.
    """

    argv_list = [str(a) for a in argv]
    text = format_argv(argv_list)
    logger.info("CMD %s%s", text, f" (cwd={cwd})" if cwd else "")

    if dry_run:
        return CmdResult(argv=argv_list, returncode=0)

    proc = subprocess.run(
        argv_list,
        input=input_text,
        capture_output=True,
        text=True,
        cwd=cwd,
        env=_child_env(env),
    )
    out = proc.stdout or ""
    err = proc.stderr or ""
    for label, stream in (("STDOUT", out), ("STDERR", err)):
        if stream.strip():
            logger.debug("%s %s", label, stream.strip())

    if check and proc.returncode != 0:
        raise CommandError(text, proc.returncode, err)
    return CmdResult(argv=argv_list, returncode=proc.returncode, stdout=out, stderr=err)
