from __future__ import annotations

import logging
from typing import Tuple

from .. import emitter
from ..lib import systemd
from ..lib.command import as_user, run_cmd
from ..lib.manifests import package_group
from ..lib.pkg import apt_install, missing_packages
from ..pipeline import Context
from ..templates import WAKEWORD_SERVICE

logger = logging.getLogger(__name__)


def wakeword_unit(ctx: Context) -> str:
    return emitter.render(WAKEWORD_SERVICE, {"wakeword_dir": ctx.repo_dir("wyoming-openwakeword")})


class InstallWakewordStep:
    step_id = "install_wakeword"
    label = "Install openWakeWord detection"
    requires_reboot = False
    after: Tuple[str, ...] = ("clone_repositories",)

    def already_applied(self, ctx: Context) -> bool:
        ww_dir = ctx.repo_dir("wyoming-openwakeword")
        return (ww_dir / ".venv").exists() and emitter.is_installed(
            ctx.paths.unit_path(WAKEWORD_SERVICE), wakeword_unit(ctx)
        )

    def apply(self, ctx: Context) -> None:
        dry_run = ctx.dry_run
        ww_dir = ctx.repo_dir("wyoming-openwakeword")

        apt_install(
            missing_packages(package_group("wakeword"), dry_run=dry_run),
            with_recommends=False,
            dry_run=dry_run,
        )

        # script/setup creates .venv and installs the detector into it; it is safe to re-run.
        run_cmd(as_user(ctx.username, ["script/setup"]), cwd=str(ww_dir), dry_run=dry_run)

        systemd.install_unit(ctx.paths.unit_path(WAKEWORD_SERVICE), wakeword_unit(ctx), dry_run=dry_run)
        logger.info("openWakeWord installed in %s", ww_dir)
