from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from .command import as_user, run_cmd

logger = logging.getLogger(__name__)


def clone(url: str, target: str | Path, *, user: Optional[str] = None, dry_run: bool = False) -> bool:
    """Clone ``url`` into ``target`` unless the directory already exists.

    An existing directory counts as a finished clone: no fetch, no pull, no
    content check. Returns True when a clone was performed.
    """
    t = Path(target)
    if t.exists():
        logger.info("Repository %s already present in %s", url, t)
        return False

    argv = ["git", "clone", url, str(t)]
    if user:
        argv = as_user(user, argv)
    run_cmd(argv, dry_run=dry_run)
    logger.info("Cloned %s into %s", url, t)
    return True
