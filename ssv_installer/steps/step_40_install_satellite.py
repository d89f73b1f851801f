from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Tuple

from .. import emitter
from ..lib import systemd
from ..lib.command import as_user, run_cmd
from ..lib.manifests import package_group, pip_packages
from ..lib.pkg import apt_install, missing_packages
from ..pipeline import Context
from ..templates import SATELLITE_SERVICE

logger = logging.getLogger(__name__)


def satellite_unit(ctx: Context) -> str:
    cfg = ctx.config
    return emitter.render(
        SATELLITE_SERVICE,
        {
            "satellite_dir": ctx.repo_dir("wyoming-satellite"),
            "satellite_name": cfg.satellite_name,
            "mic_device": cfg.mic_device,
            "snd_device": cfg.snd_device,
            "wake_word": cfg.wake_word,
            "username": ctx.username,
        },
    )


def _venv_owned_by(venv: Path, username: str) -> bool:
    try:
        return venv.owner() == username
    except KeyError:
        # uid without a passwd entry
        return False


class InstallSatelliteStep:
    step_id = "install_satellite"
    label = "Install Wyoming satellite"
    requires_reboot = False
    after: Tuple[str, ...] = ("clone_repositories",)

    def already_applied(self, ctx: Context) -> bool:
        sat_dir = ctx.repo_dir("wyoming-satellite")
        venv = sat_dir / ".venv"
        return (
            (venv / "bin" / "python").exists()
            and _venv_owned_by(venv, ctx.username)
            and emitter.is_installed(sat_dir / "config.yml", emitter.render("satellite-config.yml", {}))
            and emitter.is_installed(ctx.paths.unit_path(SATELLITE_SERVICE), satellite_unit(ctx))
        )

    def apply(self, ctx: Context) -> None:
        dry_run = ctx.dry_run
        user = ctx.username
        sat_dir = ctx.repo_dir("wyoming-satellite")
        venv = sat_dir / ".venv"

        apt_install(missing_packages(package_group("satellite"), dry_run=dry_run), dry_run=dry_run)

        # A venv created by root (e.g. a sudo'd earlier attempt) can't be used by the service user.
        if venv.exists() and not _venv_owned_by(venv, user):
            logger.info("Removing %s (not owned by %s)", venv, user)
            if not dry_run:
                shutil.rmtree(venv)

        if not (venv / "bin" / "python").exists():
            run_cmd(as_user(user, ["python3", "-m", "venv", ".venv"]), cwd=str(sat_dir), dry_run=dry_run)

        pip = str(venv / "bin" / "pip")
        run_cmd(as_user(user, [pip, "install", "--upgrade", "pip"]), cwd=str(sat_dir), dry_run=dry_run)
        run_cmd(as_user(user, [pip, "install", "-r", "requirements.txt"]), cwd=str(sat_dir), dry_run=dry_run)
        extras = pip_packages("satellite", "extra_pip")
        if extras:
            run_cmd(as_user(user, [pip, "install", *extras]), cwd=str(sat_dir), dry_run=dry_run)

        config_path = sat_dir / "config.yml"
        emitter.install(config_path, emitter.render("satellite-config.yml", {}), dry_run=dry_run)
        run_cmd(["chown", f"{user}:{user}", str(config_path)], dry_run=dry_run)

        systemd.install_unit(ctx.paths.unit_path(SATELLITE_SERVICE), satellite_unit(ctx), dry_run=dry_run)
        logger.info("Wyoming satellite installed in %s", sat_dir)
