"""Shared fixtures for the installer test suite.

Nothing here touches the real host: every path is re-rooted under tmp_path
and subprocess.run is replaced by a recorder.
"""

from __future__ import annotations

import subprocess
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Tuple
from unittest.mock import patch

import pytest

from ssv_installer.config_store import build_config, default_values
from ssv_installer.lib.env import Paths
from ssv_installer.pipeline import Context


class FakeRunner:
    """Stand-in for subprocess.run that records argv lists.

    Responses are matched by argv prefix; the longest matching prefix wins.
    Unmatched commands succeed with empty output.
    """

    def __init__(self) -> None:
        self.calls: List[List[str]] = []
        self._responses: Dict[Tuple[str, ...], Tuple[int, str, str]] = {}
        self._side_effects: Dict[Tuple[str, ...], Callable[[List[str]], None]] = {}

    def respond(self, prefix: Sequence[str], returncode: int = 0, stdout: str = "", stderr: str = "") -> None:
        self._responses[tuple(prefix)] = (returncode, stdout, stderr)

    def on(self, prefix: Sequence[str], effect: Callable[[List[str]], None]) -> None:
        self._side_effects[tuple(prefix)] = effect

    def _match(self, table: dict, argv: List[str]):
        best = None
        for prefix in table:
            if tuple(argv[: len(prefix)]) == prefix and (best is None or len(prefix) > len(best)):
                best = prefix
        return best

    def __call__(self, argv, **kwargs) -> subprocess.CompletedProcess:
        argv = list(argv)
        self.calls.append(argv)
        effect_key = self._match(self._side_effects, argv)
        if effect_key is not None:
            self._side_effects[effect_key](argv)
        key = self._match(self._responses, argv)
        rc, out, err = self._responses[key] if key is not None else (0, "", "")
        return subprocess.CompletedProcess(argv, rc, stdout=out, stderr=err)

    def commands(self, first: Optional[str] = None) -> List[List[str]]:
        if first is None:
            return list(self.calls)
        return [c for c in self.calls if c and c[0] == first]

    def ran(self, *argv: str) -> bool:
        return list(argv) in self.calls


@pytest.fixture
def fake_run():
    runner = FakeRunner()
    with patch("ssv_installer.lib.command.subprocess.run", side_effect=runner):
        yield runner


@pytest.fixture
def paths(tmp_path: Path) -> Paths:
    return Paths.under(tmp_path / "root")


@pytest.fixture
def config():
    return build_config({}, default_values(username="pi", hostname="ssv-kitchen"))


@pytest.fixture
def home(tmp_path: Path) -> Path:
    h = tmp_path / "home" / "pi"
    h.mkdir(parents=True)
    return h


@pytest.fixture
def ctx(config, home, paths) -> Context:
    return Context(
        config=config,
        working_root=home,
        username="pi",
        paths=paths,
        resume_command="/usr/bin/python3 -m ssv_installer --resume",
    )


class Host:
    """Simulated machine state shared by fake steps."""

    def __init__(self) -> None:
        self.applied: set = set()
        self.log: List[str] = []


class FakeStep:
    def __init__(
        self,
        host: Host,
        step_id: str,
        *,
        requires_reboot: bool = False,
        after: Tuple[str, ...] = (),
        fail_with: Optional[Exception] = None,
    ) -> None:
        self.host = host
        self.step_id = step_id
        self.label = step_id.replace("_", " ")
        self.requires_reboot = requires_reboot
        self.after = after
        self.fail_with = fail_with

    def already_applied(self, ctx) -> bool:
        return self.step_id in self.host.applied

    def apply(self, ctx) -> None:
        self.host.log.append(self.step_id)
        if self.fail_with is not None:
            raise self.fail_with
        self.host.applied.add(self.step_id)


@pytest.fixture
def host() -> Host:
    return Host()


@pytest.fixture
def make_step(host):
    """Factory: make_step("s1", requires_reboot=True)."""

    def _make(step_id: str, **kwargs) -> FakeStep:
        return FakeStep(host, step_id, **kwargs)

    return _make


@pytest.fixture
def make_steps(host):
    """Factory: make_steps(5, {2: {"requires_reboot": True}}) -> steps s1..s5."""

    def _make(n: int = 5, overrides: Optional[Dict[int, dict]] = None) -> List[FakeStep]:
        overrides = overrides or {}
        return [FakeStep(host, f"s{i}", **overrides.get(i, {})) for i in range(1, n + 1)]

    return _make
