from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List

import yaml


def _manifest_dir() -> Path:
    # ssv_installer/lib/manifests.py -> ssv_installer/manifests
    return Path(__file__).resolve().parents[1] / "manifests"


def load_yaml_rel(rel_path: str) -> Dict[str, Any]:
    """Load a YAML manifest shipped inside the package."""
    p = _manifest_dir() / rel_path.lstrip("/")
    data = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Manifest must be a mapping/dict: {p}")
    return data


@lru_cache(maxsize=None)
def load_packages_manifest() -> Dict[str, Any]:
    return load_yaml_rel("packages.yaml")


def package_group(name: str) -> List[str]:
    groups = load_packages_manifest().get("packages") or {}
    pkgs = groups.get(name)
    if not isinstance(pkgs, list):
        raise ValueError(f"packages.yaml: group {name!r} must be a list")
    return [str(p).strip() for p in pkgs if str(p).strip()]


def repository(name: str) -> Dict[str, str]:
    repos = load_packages_manifest().get("repositories") or {}
    repo = repos.get(name)
    if not isinstance(repo, dict) or "url" not in repo or "dir" not in repo:
        raise ValueError(f"packages.yaml: repository {name!r} needs url and dir")
    return {"url": str(repo["url"]), "dir": str(repo["dir"])}


def repository_names() -> List[str]:
    return list((load_packages_manifest().get("repositories") or {}).keys())


def snapcast_deb_url(version: str) -> str:
    snap = load_packages_manifest().get("snapcast") or {}
    return str(snap["url_template"]).format(version=version)


def pip_packages(section: str, key: str) -> List[str]:
    pkgs = (load_packages_manifest().get(section) or {}).get(key) or []
    return [str(p).strip() for p in pkgs if str(p).strip()]
