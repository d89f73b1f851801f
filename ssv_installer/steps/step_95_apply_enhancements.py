from __future__ import annotations

import logging
from pathlib import Path
from typing import Tuple

from .. import emitter
from ..errors import StepExecutionError
from ..lib import git, systemd
from ..lib.command import as_user, run_cmd
from ..lib.manifests import repository
from ..pipeline import Context
from ..templates import SATELLITE_SERVICE

logger = logging.getLogger(__name__)

MODIFY_SCRIPT = "snapcast/modify_wyoming_satellite.sh"


class ApplyEnhancementsStep:
    """Patch the satellite so it plays through Snapcast (wyoming-enhancements).

    The upstream script edits the satellite checkout in place and gives no way
    to tell whether it already ran, so success is recorded in a stamp file.
    """

    step_id = "apply_enhancements"
    label = "Apply wyoming-enhancements"
    requires_reboot = False
    after: Tuple[str, ...] = ("install_snapcast",)

    def _stamp(self, ctx: Context) -> Path:
        return Path(ctx.paths.state_dir) / "enhancements.applied"

    def already_applied(self, ctx: Context) -> bool:
        return self._stamp(ctx).exists()

    def apply(self, ctx: Context) -> None:
        dry_run = ctx.dry_run
        enh_dir = ctx.repo_dir("wyoming-enhancements")
        git.clone(repository("wyoming-enhancements")["url"], enh_dir, user=ctx.username, dry_run=dry_run)

        script = enh_dir / MODIFY_SCRIPT
        if not script.exists() and not dry_run:
            raise StepExecutionError(f"{script} not found in the wyoming-enhancements checkout", step_id=self.step_id)
        run_cmd(as_user(ctx.username, ["bash", str(script)]), cwd=str(enh_dir), dry_run=dry_run)
        emitter.install(self._stamp(ctx), f"{script}\n", dry_run=dry_run)

        systemd.restart(SATELLITE_SERVICE, dry_run=dry_run)
        logger.info("Applied %s", script)
