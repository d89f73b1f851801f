from __future__ import annotations

import logging

from .command import run_cmd

logger = logging.getLogger(__name__)


def download(url: str, dest: str, *, dry_run: bool = False) -> None:
    run_cmd(["wget", "-q", "-O", dest, url], dry_run=dry_run)
    logger.info("Downloaded %s -> %s", url, dest)
