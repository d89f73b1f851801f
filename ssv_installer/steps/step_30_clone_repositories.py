from __future__ import annotations

import logging
from typing import Tuple

from ..lib import git
from ..lib.manifests import repository, repository_names
from ..pipeline import Context

logger = logging.getLogger(__name__)


class CloneRepositoriesStep:
    step_id = "clone_repositories"
    label = "Clone satellite repositories"
    requires_reboot = False
    after: Tuple[str, ...] = ("update_system",)

    def already_applied(self, ctx: Context) -> bool:
        return all(ctx.repo_dir(name).exists() for name in repository_names())

    def apply(self, ctx: Context) -> None:
        cloned = []
        for name in repository_names():
            if git.clone(repository(name)["url"], ctx.repo_dir(name), user=ctx.username, dry_run=ctx.dry_run):
                cloned.append(name)
        logger.info("Repositories cloned this run: %s", ",".join(cloned) or "none")
