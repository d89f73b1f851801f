from __future__ import annotations

import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .errors import LedgerError

logger = logging.getLogger(__name__)

COMPLETED = "completed"
REBOOT_PENDING = "reboot-pending"


@dataclass(frozen=True)
class ProgressMark:
    """Last step that finished successfully.

    ``step`` is the 1-based ordinal in the step registry. ``reboot_pending``
    means that step handed off to a reboot and the next run is a resumption.
    """

    step: int = 0
    reboot_pending: bool = False
    completed: bool = False

    def render(self) -> str:
        if self.completed:
            return COMPLETED
        if self.reboot_pending:
            return f"{self.step} {REBOOT_PENDING}"
        return str(self.step)

    @classmethod
    def parse(cls, text: str) -> "ProgressMark":
        parts = text.split()
        if parts == [COMPLETED]:
            return cls(completed=True)
        if len(parts) in (1, 2) and parts[0].isdigit():
            if len(parts) == 2 and parts[1] != REBOOT_PENDING:
                raise ValueError(text)
            return cls(step=int(parts[0]), reboot_pending=len(parts) == 2)
        raise ValueError(text)


class ProgressLedger:
    """Durable record of installer progress (one line of text)."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def read(self) -> Optional[ProgressMark]:
        try:
            text = self.path.read_text(encoding="utf-8").strip()
        except FileNotFoundError:
            return None
        if not text:
            return None
        try:
            return ProgressMark.parse(text)
        except ValueError:
            raise LedgerError(f"Unreadable progress ledger {self.path}: {text!r}") from None

    def write(self, step: int, *, reboot_pending: bool = False) -> None:
        self._store(ProgressMark(step=step, reboot_pending=reboot_pending))

    def write_completed(self) -> None:
        self._store(ProgressMark(completed=True))

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)
        logger.info("Cleared progress ledger %s", self.path)

    def _store(self, mark: ProgressMark) -> None:
        # A reboot may follow immediately: data and rename must both hit disk.
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(prefix=f".{self.path.name}.", dir=str(self.path.parent))
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(mark.render() + "\n")
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp, self.path)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise

        dir_fd = os.open(str(self.path.parent), os.O_RDONLY)
        try:
            os.fsync(dir_fd)
        finally:
            os.close(dir_fd)
        logger.info("Progress ledger -> %s", mark.render())
