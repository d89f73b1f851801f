from __future__ import annotations

from dataclasses import dataclass, fields
from pathlib import Path


@dataclass(frozen=True)
class Paths:
    config: str = "/etc/ssv-installer/ssv.conf"
    state_dir: str = "/var/lib/ssv-installer"
    ledger: str = "/var/lib/ssv-installer/progress"
    log: str = "/var/log/ssv_setup.log"
    systemd_dir: str = "/etc/systemd/system"
    pulse_dir: str = "/etc/pulse"
    snapclient_default: str = "/etc/default/snapclient"
    swapfile: str = "/swapfile"
    fstab: str = "/etc/fstab"

    def unit_path(self, unit: str) -> Path:
        return Path(self.systemd_dir) / unit

    @classmethod
    def under(cls, root: str | Path) -> "Paths":
        """All locations re-rooted below ``root`` (tests, image staging)."""
        r = Path(root)
        defaults = cls()
        return cls(
            **{
                f.name: str(r / str(getattr(defaults, f.name)).lstrip("/"))
                for f in fields(cls)
            }
        )


PATHS = Paths()
