from __future__ import annotations

from typing import Optional


class InstallerError(RuntimeError):
    """Base class for failures that abort an installer run.

    ``step_id`` is filled in by the pipeline when the failure happened inside
    a step, so the operator sees which step to look at.
    """

    def __init__(self, message: str, *, step_id: Optional[str] = None) -> None:
        super().__init__(message)
        self.step_id = step_id


class ConfigParseError(InstallerError):
    def __init__(self, path: str, lineno: int, line: str) -> None:
        super().__init__(f"{path}:{lineno}: not a KEY=value assignment: {line!r}")
        self.path = path
        self.lineno = lineno
        self.line = line


class LedgerError(InstallerError):
    pass


class TemplateError(InstallerError):
    pass


class CommandError(InstallerError):
    def __init__(self, argv_text: str, returncode: int, stderr: str = "") -> None:
        msg = f"Command failed ({returncode}): {argv_text}"
        if stderr.strip():
            msg += f"\n{stderr.strip()}"
        super().__init__(msg)
        self.returncode = returncode
        self.stderr = stderr


class ToolInstallError(InstallerError):
    def __init__(self, tool: str, *, step_id: Optional[str] = None) -> None:
        super().__init__(f"{tool} is still not on PATH after installation", step_id=step_id)
        self.tool = tool


class StepExecutionError(InstallerError):
    pass


class RebootPending(Exception):
    """Raised after a step handed off to a host reboot.

    Not a failure: the ledger already records the step, and the boot-time
    resume unit continues the run.
    """

    def __init__(self, step_id: str, ordinal: int) -> None:
        super().__init__(f"Reboot requested after step {ordinal} ({step_id})")
        self.step_id = step_id
        self.ordinal = ordinal
