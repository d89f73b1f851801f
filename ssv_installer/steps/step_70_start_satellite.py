from __future__ import annotations

import logging
from typing import Tuple

from ..lib import systemd
from ..pipeline import Context
from ..templates import LEDS_SERVICE, SATELLITE_SERVICE, WAKEWORD_SERVICE

logger = logging.getLogger(__name__)

# Dependencies first; the satellite unit Requires= the other two.
UNITS = (WAKEWORD_SERVICE, LEDS_SERVICE, SATELLITE_SERVICE)


class StartSatelliteStep:
    step_id = "start_satellite"
    label = "Enable and start satellite services"
    requires_reboot = False
    after: Tuple[str, ...] = ("install_satellite", "install_wakeword", "install_leds")

    def already_applied(self, ctx: Context) -> bool:
        return systemd.all_running(UNITS)

    def apply(self, ctx: Context) -> None:
        dry_run = ctx.dry_run
        systemd.daemon_reload(dry_run=dry_run)
        for unit in UNITS:
            systemd.enable(unit, dry_run=dry_run)
        for unit in UNITS:
            systemd.restart(unit, dry_run=dry_run)
        logger.info("Started %s", ", ".join(UNITS))
