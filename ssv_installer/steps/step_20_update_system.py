from __future__ import annotations

import logging
from typing import Tuple

from ..lib.manifests import package_group
from ..lib.pkg import apt_install, apt_update, apt_upgrade, missing_packages
from ..pipeline import Context

logger = logging.getLogger(__name__)


class UpdateSystemStep:
    step_id = "update_system"
    label = "Update system packages"
    requires_reboot = False
    after: Tuple[str, ...] = ("configure_swap",)

    def already_applied(self, ctx: Context) -> bool:
        return not missing_packages(package_group("base"), dry_run=ctx.dry_run)

    def apply(self, ctx: Context) -> None:
        dry_run = ctx.dry_run
        apt_update(dry_run=dry_run)
        apt_upgrade(dry_run=dry_run)
        base = package_group("base")
        apt_install(missing_packages(base, dry_run=dry_run), dry_run=dry_run)
        logger.info("System updated; base packages: %s", ",".join(base))
