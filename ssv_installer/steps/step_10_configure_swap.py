from __future__ import annotations

import logging
from pathlib import Path
from typing import Tuple

from .. import emitter
from ..lib.command import run_cmd
from ..pipeline import Context

logger = logging.getLogger(__name__)


def _swap_active(swapfile: str) -> bool:
    r = run_cmd(["swapon", "--show=NAME", "--noheadings"], check=False)
    return r.ok and swapfile in r.stdout.split()


def _fstab_has_entry(fstab: str, swapfile: str) -> bool:
    p = Path(fstab)
    if not p.exists():
        return False
    for line in p.read_text(encoding="utf-8").splitlines():
        fields = line.split()
        if len(fields) >= 3 and not fields[0].startswith("#") and fields[0] == swapfile and fields[2] == "swap":
            return True
    return False


class ConfigureSwapStep:
    step_id = "configure_swap"
    label = "Configure swap file"
    requires_reboot = True
    after: Tuple[str, ...] = ()

    def _sized(self, ctx: Context) -> bool:
        p = Path(ctx.paths.swapfile)
        return p.exists() and p.stat().st_size >= ctx.config.swap_bytes

    def already_applied(self, ctx: Context) -> bool:
        return self._sized(ctx) and _fstab_has_entry(ctx.paths.fstab, ctx.paths.swapfile)

    def apply(self, ctx: Context) -> None:
        swapfile = ctx.paths.swapfile
        dry_run = ctx.dry_run
        size = ctx.config.swap_size
        expected = ctx.config.swap_bytes

        if not self._sized(ctx):
            if Path(swapfile).exists() and _swap_active(swapfile):
                run_cmd(["swapoff", swapfile], dry_run=dry_run)
            run_cmd(["fallocate", "-l", size, swapfile], dry_run=dry_run)

        # An inactive swap file may be a leftover of an interrupted run: re-format it.
        if not _swap_active(swapfile):
            run_cmd(["chmod", "600", swapfile], dry_run=dry_run)
            run_cmd(["mkswap", swapfile], dry_run=dry_run)
            run_cmd(["swapon", swapfile], dry_run=dry_run)

        if not _fstab_has_entry(ctx.paths.fstab, swapfile):
            fstab = Path(ctx.paths.fstab)
            current = fstab.read_text(encoding="utf-8") if fstab.exists() else ""
            if current and not current.endswith("\n"):
                current += "\n"
            emitter.install(fstab, current + f"{swapfile} none swap sw 0 0\n", dry_run=dry_run)

        logger.info("Swap configured (%s, %s = %d bytes)", swapfile, size, expected)
