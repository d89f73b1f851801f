from __future__ import annotations

import logging
from typing import Tuple

from .. import emitter
from ..lib import systemd
from ..lib.command import as_user, run_cmd
from ..lib.manifests import package_group, pip_packages
from ..lib.pkg import apt_install, missing_packages
from ..pipeline import Context
from ..templates import LEDS_SERVICE

logger = logging.getLogger(__name__)


def leds_unit(ctx: Context) -> str:
    return emitter.render(LEDS_SERVICE, {"examples_dir": ctx.repo_dir("wyoming-satellite") / "examples"})


class InstallLedsStep:
    """LED ring service for the ReSpeaker 2-mic HAT (ships as a satellite example)."""

    step_id = "install_leds"
    label = "Install 2-mic LED service"
    requires_reboot = False
    after: Tuple[str, ...] = ("install_satellite",)

    def already_applied(self, ctx: Context) -> bool:
        examples = ctx.repo_dir("wyoming-satellite") / "examples"
        return (
            (examples / ".venv" / "bin" / "python3").exists()
            and not missing_packages(package_group("leds"), dry_run=ctx.dry_run)
            and emitter.is_installed(ctx.paths.unit_path(LEDS_SERVICE), leds_unit(ctx))
        )

    def apply(self, ctx: Context) -> None:
        dry_run = ctx.dry_run
        user = ctx.username
        examples = ctx.repo_dir("wyoming-satellite") / "examples"
        cwd = str(examples)

        if not (examples / ".venv" / "bin" / "python3").exists():
            run_cmd(
                as_user(user, ["python3", "-m", "venv", "--system-site-packages", ".venv"]),
                cwd=cwd,
                dry_run=dry_run,
            )

        pip = ".venv/bin/pip3"
        run_cmd(as_user(user, [pip, "install", "--upgrade", "pip"]), cwd=cwd, dry_run=dry_run)
        run_cmd(as_user(user, [pip, "install", "--upgrade", "wheel", "setuptools"]), cwd=cwd, dry_run=dry_run)
        run_cmd(as_user(user, [pip, "install", *pip_packages("leds", "pip")]), cwd=cwd, dry_run=dry_run)

        apt_install(missing_packages(package_group("leds"), dry_run=dry_run), dry_run=dry_run)

        # Smoke test: the service must at least import with the venv's interpreter.
        run_cmd(as_user(user, [".venv/bin/python3", "2mic_service.py", "--help"]), cwd=cwd, dry_run=dry_run)

        systemd.install_unit(ctx.paths.unit_path(LEDS_SERVICE), leds_unit(ctx), dry_run=dry_run)
        logger.info("LED service installed in %s", examples)
