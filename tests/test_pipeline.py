"""Tests for the step registry and the resumable orchestrator."""

from __future__ import annotations

from dataclasses import replace
from unittest.mock import Mock

import pytest

from ssv_installer.errors import CommandError, RebootPending, StepExecutionError, ToolInstallError
from ssv_installer.pipeline import StepRegistry, run_pipeline
from ssv_installer.progress import ProgressLedger, ProgressMark
from ssv_installer.reboot import RebootHandOff


@pytest.fixture
def ledger(tmp_path):
    return ProgressLedger(tmp_path / "progress")


@pytest.fixture
def handoff():
    return Mock(spec=RebootHandOff)


class TestRegistry:
    def test_ordinals_are_positions(self, make_steps):
        reg = StepRegistry(make_steps(3))
        assert [reg.ordinal(s.step_id) for s in reg] == [1, 2, 3]
        assert len(reg) == 3

    def test_remaining_after_three_of_five(self, make_steps):
        reg = StepRegistry(make_steps(5))
        assert [s.step_id for s in reg.remaining(3)] == ["s4", "s5"]

    def test_advance(self, make_steps):
        reg = StepRegistry(make_steps(5))
        assert reg.advance(0).step_id == "s1"
        assert reg.advance(3).step_id == "s4"
        assert reg.advance(5) is None

    def test_negative_ordinal_rejected(self, make_steps):
        reg = StepRegistry(make_steps(2))
        with pytest.raises(ValueError):
            reg.advance(-1)

    def test_duplicate_ids_rejected(self, make_step):
        with pytest.raises(ValueError, match="Duplicate"):
            StepRegistry([make_step("a"), make_step("a")])

    def test_predecessor_must_come_first(self, make_step):
        with pytest.raises(ValueError, match="must come after"):
            StepRegistry([make_step("a", after=("b",)), make_step("b")])

    def test_unknown_step(self, make_steps):
        with pytest.raises(KeyError):
            StepRegistry(make_steps(1)).ordinal("missing")


class TestRunPipeline:
    def test_runs_everything_and_completes(self, ctx, make_steps, ledger, handoff):
        result = run_pipeline(ctx=ctx, registry=StepRegistry(make_steps()), ledger=ledger, handoff=handoff)
        assert result.completed
        assert result.ran_steps == ["s1", "s2", "s3", "s4", "s5"]
        assert ledger.read().completed
        handoff.finish.assert_called_once_with(ctx)
        handoff.request_reboot.assert_not_called()

    def test_resume_skips_recorded_steps(self, ctx, host, make_steps, ledger, handoff):
        ledger.write(3)
        result = run_pipeline(ctx=ctx, registry=StepRegistry(make_steps()), ledger=ledger, handoff=handoff)
        assert host.log == ["s4", "s5"]
        assert result.ran_steps == ["s4", "s5"]

    def test_completed_ledger_is_noop(self, ctx, host, make_steps, ledger, handoff):
        ledger.write_completed()
        result = run_pipeline(ctx=ctx, registry=StepRegistry(make_steps()), ledger=ledger, handoff=handoff)
        assert result.completed
        assert host.log == []

    def test_already_applied_steps_are_skipped_but_recorded(self, ctx, host, make_steps, ledger, handoff):
        host.applied.update({"s1", "s2"})
        result = run_pipeline(ctx=ctx, registry=StepRegistry(make_steps()), ledger=ledger, handoff=handoff)
        assert result.skipped_steps == ["s1", "s2"]
        assert host.log == ["s3", "s4", "s5"]

    def test_reboot_step_stops_the_run(self, ctx, host, make_steps, ledger, handoff):
        steps = make_steps(5, {2: {"requires_reboot": True}})
        with pytest.raises(RebootPending) as exc:
            run_pipeline(ctx=ctx, registry=StepRegistry(steps), ledger=ledger, handoff=handoff)

        assert exc.value.ordinal == 2
        assert host.log == ["s1", "s2"]
        assert ledger.read() == ProgressMark(step=2, reboot_pending=True)
        handoff.request_reboot.assert_called_once()
        assert handoff.request_reboot.call_args.args[1].step_id == "s2"
        handoff.finish.assert_not_called()

    def test_ledger_written_before_reboot_requested(self, ctx, make_steps, ledger):
        seen = []

        class RecordingHandOff(RebootHandOff):
            def request_reboot(self, ctx, step):
                seen.append(ledger.read())

        steps = make_steps(2, {1: {"requires_reboot": True}})
        with pytest.raises(RebootPending):
            run_pipeline(ctx=ctx, registry=StepRegistry(steps), ledger=ledger, handoff=RecordingHandOff())
        assert seen == [ProgressMark(step=1, reboot_pending=True)]

    def test_refused_reboot_is_retried_on_next_run(self, ctx, host, make_steps, ledger, fake_run):
        steps = make_steps(3, {1: {"requires_reboot": True}})
        fake_run.respond(["systemctl", "reboot"], returncode=1, stderr="Access denied")

        with pytest.raises(StepExecutionError) as exc:
            run_pipeline(ctx=ctx, registry=StepRegistry(steps), ledger=ledger, handoff=RebootHandOff())
        assert exc.value.step_id == "s1"
        assert isinstance(exc.value.__cause__, CommandError)
        assert ledger.read() == ProgressMark(step=0)

        fake_run.respond(["systemctl", "reboot"], returncode=0)
        with pytest.raises(RebootPending):
            run_pipeline(ctx=ctx, registry=StepRegistry(steps), ledger=ledger, handoff=RebootHandOff())

        assert host.log == ["s1"]
        assert fake_run.commands("systemctl").count(["systemctl", "reboot"]) == 2
        assert ledger.read() == ProgressMark(step=1, reboot_pending=True)

    def test_unarmable_resume_unit_is_a_step_failure(self, ctx, make_steps, ledger, fake_run):
        steps = make_steps(2, {2: {"requires_reboot": True}})
        with pytest.raises(StepExecutionError) as exc:
            run_pipeline(
                ctx=replace(ctx, resume_command=""),
                registry=StepRegistry(steps),
                ledger=ledger,
                handoff=RebootHandOff(),
            )
        assert exc.value.step_id == "s2"
        assert ledger.read() == ProgressMark(step=1)
        assert ["systemctl", "reboot"] not in fake_run.calls

    def test_resume_after_reboot_continues_with_next_step(self, ctx, host, make_steps, ledger, handoff):
        steps = make_steps(3, {1: {"requires_reboot": True}})
        with pytest.raises(RebootPending):
            run_pipeline(ctx=ctx, registry=StepRegistry(steps), ledger=ledger, handoff=handoff)

        result = run_pipeline(ctx=ctx, registry=StepRegistry(steps), ledger=ledger, handoff=handoff)
        assert result.resumed
        assert result.ran_steps == ["s2", "s3"]
        assert host.log == ["s1", "s2", "s3"]

    def test_failure_leaves_ledger_at_last_success(self, ctx, host, make_steps, ledger, handoff):
        steps = make_steps(5, {3: {"fail_with": CommandError("apt-get install", 100)}})
        with pytest.raises(CommandError) as exc:
            run_pipeline(ctx=ctx, registry=StepRegistry(steps), ledger=ledger, handoff=handoff)

        assert exc.value.step_id == "s3"
        assert ledger.read() == ProgressMark(step=2)
        assert host.log == ["s1", "s2", "s3"]

    def test_unexpected_exception_wrapped_with_step(self, ctx, make_steps, ledger, handoff):
        steps = make_steps(2, {2: {"fail_with": OSError("read-only filesystem")}})
        with pytest.raises(StepExecutionError) as exc:
            run_pipeline(ctx=ctx, registry=StepRegistry(steps), ledger=ledger, handoff=handoff)
        assert exc.value.step_id == "s2"
        assert isinstance(exc.value.__cause__, OSError)

    def test_tool_install_error_propagates_as_is(self, ctx, make_steps, ledger, handoff):
        steps = make_steps(2, {2: {"fail_with": ToolInstallError("snapclient")}})
        with pytest.raises(ToolInstallError) as exc:
            run_pipeline(ctx=ctx, registry=StepRegistry(steps), ledger=ledger, handoff=handoff)
        assert exc.value.step_id == "s2"

    def test_rerun_after_failure_retries_failed_step_only(self, ctx, host, make_steps, ledger, handoff):
        boom = make_steps(4, {3: {"fail_with": CommandError("x", 1)}})
        with pytest.raises(CommandError):
            run_pipeline(ctx=ctx, registry=StepRegistry(boom), ledger=ledger, handoff=handoff)

        host.log.clear()
        fixed = make_steps(4)
        run_pipeline(ctx=ctx, registry=StepRegistry(fixed), ledger=ledger, handoff=handoff)
        assert host.log == ["s3", "s4"]

    def test_stop_after(self, ctx, host, make_steps, ledger, handoff):
        result = run_pipeline(
            ctx=ctx, registry=StepRegistry(make_steps()), ledger=ledger, handoff=handoff, stop_after="s2"
        )
        assert not result.completed
        assert host.log == ["s1", "s2"]
        assert ledger.read() == ProgressMark(step=2)

    def test_stop_after_unknown_step(self, ctx, host, make_steps, ledger, handoff):
        with pytest.raises(KeyError):
            run_pipeline(
                ctx=ctx, registry=StepRegistry(make_steps()), ledger=ledger, handoff=handoff, stop_after="zz"
            )
        assert host.log == []

    def test_dry_run_records_nothing_and_never_reboots(self, ctx, make_steps, ledger, handoff):
        steps = make_steps(3, {1: {"requires_reboot": True}})
        result = run_pipeline(
            ctx=replace(ctx, dry_run=True), registry=StepRegistry(steps), ledger=ledger, handoff=handoff
        )
        assert result.ran_steps == ["s1", "s2", "s3"]
        assert ledger.read() is None
        handoff.request_reboot.assert_not_called()


class Killed(BaseException):
    """Simulates power loss: not caught by the orchestrator."""


class KillableStep:
    def __init__(self, state: dict, step_id: str, requires_reboot: bool = False) -> None:
        self.state = state
        self.step_id = step_id
        self.label = step_id
        self.requires_reboot = requires_reboot
        self.after = ()

    def already_applied(self, ctx) -> bool:
        return self.step_id in self.state["applied"]

    def apply(self, ctx) -> None:
        if self.state["kill"] == self.step_id:
            self.state["kill"] = None
            if self.state["kill_after_apply"]:
                self.state["applied"].add(self.step_id)
            raise Killed()
        self.state["applied"].add(self.step_id)


@pytest.mark.parametrize("kill_at", range(0, 6))
@pytest.mark.parametrize("kill_after_apply", [False, True])
def test_interrupted_runs_converge(ctx, tmp_path, kill_at, kill_after_apply):
    """However a run is interrupted, re-running reaches the same end state."""
    state = {"applied": set(), "kill": f"s{kill_at}", "kill_after_apply": kill_after_apply}
    ledger = ProgressLedger(tmp_path / "progress")
    handoff = Mock(spec=RebootHandOff)
    registry = StepRegistry([KillableStep(state, f"s{i}", requires_reboot=(i == 2)) for i in range(1, 6)])

    for _ in range(10):
        try:
            result = run_pipeline(ctx=ctx, registry=registry, ledger=ledger, handoff=handoff)
        except (Killed, RebootPending):
            continue
        if result.completed:
            break

    assert ledger.read().completed
    assert state["applied"] == {"s1", "s2", "s3", "s4", "s5"}
