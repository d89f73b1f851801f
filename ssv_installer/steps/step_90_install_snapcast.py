from __future__ import annotations

import logging
from pathlib import Path
from typing import Tuple

from .. import emitter
from ..lib import systemd
from ..lib.manifests import snapcast_deb_url
from ..lib.net import download
from ..lib.pkg import apt_fix_broken, dpkg_install, ensure_installed, tool_available
from ..pipeline import Context
from ..templates import SNAPCLIENT_SERVICE

logger = logging.getLogger(__name__)


def snapclient_defaults(ctx: Context) -> str:
    return emitter.render("snapclient", {"snapcast_hostname": ctx.config.snapcast_hostname})


class InstallSnapcastStep:
    step_id = "install_snapcast"
    label = "Install Snapcast client"
    requires_reboot = False
    after: Tuple[str, ...] = ("configure_pulseaudio",)

    def already_applied(self, ctx: Context) -> bool:
        return (
            tool_available("snapclient")
            and emitter.is_installed(ctx.paths.snapclient_default, snapclient_defaults(ctx))
            and systemd.all_running([SNAPCLIENT_SERVICE])
        )

    def apply(self, ctx: Context) -> None:
        dry_run = ctx.dry_run

        if not tool_available("snapclient"):
            version = ctx.config.snapcast_version
            deb = Path(ctx.paths.state_dir) / f"snapclient_{version}.deb"
            if not dry_run:
                deb.parent.mkdir(parents=True, exist_ok=True)
            download(snapcast_deb_url(version), str(deb), dry_run=dry_run)
            # dpkg leaves missing dependencies unconfigured; apt resolves them.
            dpkg_install(str(deb), dry_run=dry_run)
            apt_fix_broken(dry_run=dry_run)
            if not dry_run:
                deb.unlink(missing_ok=True)

        ensure_installed("snapclient", dry_run=dry_run)

        emitter.install(ctx.paths.snapclient_default, snapclient_defaults(ctx), dry_run=dry_run)
        systemd.enable(SNAPCLIENT_SERVICE, dry_run=dry_run)
        systemd.restart(SNAPCLIENT_SERVICE, dry_run=dry_run)
        logger.info("Snapcast client running as %s", ctx.config.snapcast_hostname)
