from __future__ import annotations

import logging
from pathlib import Path
from typing import Tuple

from .. import emitter
from ..lib import accounts, systemd
from ..lib.manifests import package_group
from ..lib.pkg import apt_install, missing_packages
from ..pipeline import Context
from ..templates import LEDS_SERVICE, PULSEAUDIO_SERVICE, SATELLITE_SERVICE

logger = logging.getLogger(__name__)


def system_pa(ctx: Context) -> str:
    cfg = ctx.config
    return emitter.render(
        "system.pa",
        {
            "sink_device": cfg.pulse_sink_device,
            "sink_name": cfg.pulse_sink_name,
            "duck_volume": cfg.pulse_duck_volume,
        },
    )


class ConfigurePulseAudioStep:
    """PulseAudio in system mode, so the satellite and snapclient share one sink."""

    step_id = "configure_pulseaudio"
    label = "Configure PulseAudio (system mode)"
    requires_reboot = False
    after: Tuple[str, ...] = ("start_satellite",)

    def _system_pa_path(self, ctx: Context) -> Path:
        return Path(ctx.paths.pulse_dir) / "system.pa"

    def already_applied(self, ctx: Context) -> bool:
        return (
            not missing_packages(package_group("pulseaudio"), dry_run=ctx.dry_run)
            and accounts.user_exists("pulse")
            and accounts.user_in_group(ctx.username, "pulse-access")
            and emitter.is_installed(self._system_pa_path(ctx), system_pa(ctx))
            and emitter.is_installed(
                ctx.paths.unit_path(PULSEAUDIO_SERVICE), emitter.render(PULSEAUDIO_SERVICE, {})
            )
        )

    def apply(self, ctx: Context) -> None:
        dry_run = ctx.dry_run

        # The satellite holds the sound card open; release it while audio is reconfigured.
        systemd.stop(SATELLITE_SERVICE, dry_run=dry_run)
        systemd.stop(LEDS_SERVICE, dry_run=dry_run)

        apt_install(missing_packages(package_group("pulseaudio"), dry_run=dry_run), dry_run=dry_run)

        accounts.ensure_system_group("pulse", dry_run=dry_run)
        accounts.ensure_system_group("pulse-access", dry_run=dry_run)
        accounts.ensure_system_user(
            "pulse",
            group="pulse",
            extra_groups=["audio"],
            home="/var/run/pulse",
            dry_run=dry_run,
        )
        accounts.add_user_to_group(ctx.username, "pulse-access", dry_run=dry_run)

        emitter.install(self._system_pa_path(ctx), system_pa(ctx), mode=0o644, dry_run=dry_run)
        systemd.install_unit(
            ctx.paths.unit_path(PULSEAUDIO_SERVICE),
            emitter.render(PULSEAUDIO_SERVICE, {}),
            dry_run=dry_run,
        )
        systemd.enable(PULSEAUDIO_SERVICE, dry_run=dry_run)
        systemd.restart(PULSEAUDIO_SERVICE, dry_run=dry_run)

        systemd.restart(SATELLITE_SERVICE, dry_run=dry_run)
        logger.info(
            "PulseAudio configured (sink=%s device=%s)",
            ctx.config.pulse_sink_name,
            ctx.config.pulse_sink_device,
        )
