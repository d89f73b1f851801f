from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from . import emitter
from .lib import systemd

if TYPE_CHECKING:
    from .pipeline import Context, Step

logger = logging.getLogger(__name__)

RESUME_UNIT = "ssv-installer-resume.service"


class RebootHandOff:
    """Ends a run with a host reboot and brings the installer back afterwards.

    The boot-time trigger is a oneshot systemd unit running the installer with
    ``--resume``. It is armed before every reboot and removed once the whole
    sequence has completed.
    """

    def arm(self, ctx: "Context") -> None:
        if not ctx.resume_command:
            raise RuntimeError("Context.resume_command is empty; cannot arm the resume unit")
        text = emitter.render(RESUME_UNIT, {"resume_command": ctx.resume_command})
        systemd.install_unit(ctx.paths.unit_path(RESUME_UNIT), text, dry_run=ctx.dry_run)
        systemd.enable(RESUME_UNIT, dry_run=ctx.dry_run)

    def disarm(self, ctx: "Context") -> None:
        path = ctx.paths.unit_path(RESUME_UNIT)
        if not path.exists():
            return
        systemd.disable(RESUME_UNIT, dry_run=ctx.dry_run)
        systemd.remove_unit(path, dry_run=ctx.dry_run)
        logger.info("Removed %s", RESUME_UNIT)

    def request_reboot(self, ctx: "Context", step: "Step") -> None:
        self.arm(ctx)
        logger.info("Rebooting after %s; installation resumes at boot", step.step_id)
        systemd.reboot(dry_run=ctx.dry_run)

    def finish(self, ctx: "Context") -> None:
        self.disarm(ctx)
