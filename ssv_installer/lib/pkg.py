from __future__ import annotations

import logging
import shutil
from typing import Sequence

from ..errors import ToolInstallError
from .command import run_cmd

logger = logging.getLogger(__name__)

_APT_ENV = {"DEBIAN_FRONTEND": "noninteractive"}


def apt_update(*, dry_run: bool = False) -> None:
    run_cmd(["apt-get", "update"], env=_APT_ENV, dry_run=dry_run)


def apt_upgrade(*, dry_run: bool = False) -> None:
    run_cmd(["apt-get", "upgrade", "-y"], env=_APT_ENV, dry_run=dry_run)


def apt_install(
    packages: Sequence[str],
    *,
    with_recommends: bool = True,
    dry_run: bool = False,
) -> None:
    if not packages:
        return
    argv = ["apt-get", "install", "-y"]
    if not with_recommends:
        argv.append("--no-install-recommends")
    run_cmd([*argv, *packages], env=_APT_ENV, dry_run=dry_run)


def apt_fix_broken(*, dry_run: bool = False) -> None:
    run_cmd(["apt-get", "--fix-broken", "install", "-y"], env=_APT_ENV, dry_run=dry_run)


def dpkg_install(deb_path: str, *, dry_run: bool = False) -> bool:
    """Install a local .deb. Returns False when dpkg left dependencies unresolved.

    A failed ``dpkg -i`` is expected for release debs whose dependencies are
    not installed yet; callers follow up with apt_fix_broken.
    """
    r = run_cmd(["dpkg", "-i", deb_path], check=False, dry_run=dry_run)
    if not r.ok:
        logger.info("dpkg -i %s exited %s (dependencies pending)", deb_path, r.returncode)
    return r.ok


def is_package_installed(package: str, *, dry_run: bool = False) -> bool:
    if dry_run:
        return False
    r = run_cmd(["dpkg-query", "-W", "-f=${Status}", package], check=False)
    return r.ok and "install ok installed" in r.stdout


def missing_packages(packages: Sequence[str], *, dry_run: bool = False) -> list[str]:
    return [p for p in packages if not is_package_installed(p, dry_run=dry_run)]


def tool_available(tool: str) -> bool:
    return shutil.which(tool) is not None


def ensure_installed(tool: str, *, dry_run: bool = False) -> None:
    """Fail loudly if ``tool`` is still not on PATH after its install step."""
    if dry_run:
        logger.info("Would verify %s is on PATH", tool)
        return
    if not tool_available(tool):
        raise ToolInstallError(tool)
    logger.info("Verified %s is installed (%s)", tool, shutil.which(tool))
