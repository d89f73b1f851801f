"""Persisted key=value configuration for the satellite.

The file uses the same shell-style format as the appliance's other config
files: ``KEY="value"`` lines, ``#`` comments, blank lines. It is created with
defaults on first run and afterwards only edited by the operator between runs.
"""

from __future__ import annotations

import logging
import re
import socket
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterator, Literal, Mapping, Optional

from . import emitter
from .errors import ConfigParseError

logger = logging.getLogger(__name__)

_ASSIGNMENT_RE = re.compile(r"^(?:export\s+)?([A-Za-z_][A-Za-z0-9_]*)\s*=\s*(.*)$")

_SIZE_RE = re.compile(r"^(\d+)\s*([KMGT]?)i?B?$", re.IGNORECASE)
_SIZE_UNITS = {"": 1, "K": 1024, "M": 1024**2, "G": 1024**3, "T": 1024**4}


def default_values(*, username: str, hostname: Optional[str] = None) -> Dict[str, str]:
    return {
        "SWAP_SIZE": "2G",
        "MIC_DEVICE": "plughw:CARD=seeed2micvoicec,DEV=0",
        "SND_DEVICE": "plughw:CARD=seeed2micvoicec,DEV=0",
        "SNAPCAST_HOSTNAME": hostname or socket.gethostname(),
        "SATELLITE_NAME": username,
        "WAKE_WORD": "hey_jarvis",
        "PULSE_SINK_DEVICE": "hw:1,0",
        "PULSE_SINK_NAME": "seeed_sink",
        "PULSE_DUCK_VOLUME": "20%",
        "SNAPCAST_VERSION": "0.31.0",
    }


@dataclass(frozen=True)
class ConfigEntry:
    key: str
    value: str
    source: Literal["default", "file"]


def _strip_quotes(value: str) -> str:
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in {'"', "'"}:
        return value[1:-1]
    return value


def _quote_value(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def parse_size(text: str) -> int:
    """Parse sizes like ``512M`` or ``2G`` into bytes."""
    m = _SIZE_RE.match(text.strip())
    if not m:
        raise ValueError(f"Invalid size: {text!r}")
    return int(m.group(1)) * _SIZE_UNITS[m.group(2).upper()]


def parse_config(text: str, *, path: str = "<config>") -> Dict[str, str]:
    values: Dict[str, str] = {}
    for lineno, line in enumerate(text.splitlines(), start=1):
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        m = _ASSIGNMENT_RE.match(stripped)
        if not m:
            raise ConfigParseError(path, lineno, line)
        values[m.group(1)] = _strip_quotes(m.group(2))
    return values


def format_config(values: Mapping[str, str]) -> str:
    lines = [
        "# SSV satellite configuration.",
        "# Edit between installer runs; unknown keys are kept as-is.",
        "",
    ]
    lines.extend(f"{k}={_quote_value(v)}" for k, v in values.items())
    return "\n".join(lines) + "\n"


@dataclass(frozen=True)
class SatelliteConfig:
    entries: Dict[str, ConfigEntry]
    path: str = ""

    def __getitem__(self, key: str) -> str:
        return self.entries[key].value

    def __contains__(self, key: object) -> bool:
        return key in self.entries

    def __iter__(self) -> Iterator[str]:
        return iter(self.entries)

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        e = self.entries.get(key)
        return e.value if e is not None else default

    def as_dict(self) -> Dict[str, str]:
        return {k: e.value for k, e in self.entries.items()}

    @property
    def swap_size(self) -> str:
        return self["SWAP_SIZE"]

    @property
    def swap_bytes(self) -> int:
        return parse_size(self.swap_size)

    @property
    def mic_device(self) -> str:
        return self["MIC_DEVICE"]

    @property
    def snd_device(self) -> str:
        return self["SND_DEVICE"]

    @property
    def snapcast_hostname(self) -> str:
        return self["SNAPCAST_HOSTNAME"]

    @property
    def satellite_name(self) -> str:
        return self["SATELLITE_NAME"]

    @property
    def wake_word(self) -> str:
        return self["WAKE_WORD"]

    @property
    def pulse_sink_device(self) -> str:
        return self["PULSE_SINK_DEVICE"]

    @property
    def pulse_sink_name(self) -> str:
        return self["PULSE_SINK_NAME"]

    @property
    def pulse_duck_volume(self) -> str:
        return self["PULSE_DUCK_VOLUME"]

    @property
    def snapcast_version(self) -> str:
        return self["SNAPCAST_VERSION"]


def build_config(file_values: Mapping[str, str], defaults: Mapping[str, str], *, path: str = "") -> SatelliteConfig:
    entries: Dict[str, ConfigEntry] = {}
    for k, v in defaults.items():
        if k in file_values:
            entries[k] = ConfigEntry(k, file_values[k], "file")
        else:
            entries[k] = ConfigEntry(k, v, "default")
    # Keys we don't know about are kept.
    for k, v in file_values.items():
        entries.setdefault(k, ConfigEntry(k, v, "file"))
    return SatelliteConfig(entries=entries, path=path)


def load_or_create(
    path: str,
    *,
    username: str,
    hostname: Optional[str] = None,
    dry_run: bool = False,
) -> SatelliteConfig:
    """Load the config file, writing the defaults first if it is missing.

    A file that exists but doesn't parse raises ConfigParseError; the run must
    not fall back to defaults on top of a corrupted file.
    """
    p = Path(path)
    defaults = default_values(username=username, hostname=hostname)

    if not p.exists():
        logger.info("No config at %s; writing defaults", p)
        text = format_config(defaults)
        emitter.install(p, text, mode=0o644, dry_run=dry_run)
        if dry_run:
            return build_config(parse_config(text, path=str(p)), defaults, path=str(p))

    file_values = parse_config(p.read_text(encoding="utf-8"), path=str(p))
    cfg = build_config(file_values, defaults, path=str(p))

    from_defaults = sorted(k for k, e in cfg.entries.items() if e.source == "default")
    if from_defaults:
        logger.info("Config keys using built-in defaults: %s", ", ".join(from_defaults))
    return cfg
