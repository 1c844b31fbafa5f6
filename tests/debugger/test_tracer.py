# tests/debugger/test_tracer.py
"""
retro_exec_unit.debugger.tracerモジュールの単体テスト。
タイミングハーネスの実行制御、ブレークポイント管理、リセットと例外の扱いを検証します。
"""
import pytest
from unittest.mock import patch

from retro_exec_unit.common.types import AddrSource
from retro_exec_unit.core.errors import SequencerError
from retro_exec_unit.core.signals import reset_signals, ControlSignals
from retro_exec_unit.core.state import CyclePosition, ModeFlags
from retro_exec_unit.core.unit import AbstractExecUnit
from retro_exec_unit.arch.z80.unit import Z80ExecUnit
from retro_exec_unit.debugger.tracer import (
    TimingTracer, BreakpointCondition, BreakpointConditionType, InterruptKind,
)

# @intent:test_suite タイミングハーネスのブレークポイントと実行制御機能の検証。


class StuckUnit(AbstractExecUnit):
    """どのクラスにも一致したと報告しつつ、何も要求しない制御ユニット。"""
    def _evaluate_matrix(self, decode, position, flags):
        return {}, True


class RunawayUnit(AbstractExecUnit):
    """毎ティック次のマシンサイクルを要求する制御ユニット。"""
    def _evaluate_matrix(self, decode, position, flags):
        return {"next_m": True}, True


class TestTimingTracer:
    """
    TimingTracerの単体テスト。
    """
    @pytest.fixture
    def tracer(self):
        program = [0x00, 0x06, 0x12, 0x76]  # NOP; LD B,12h; HALT
        return TimingTracer(Z80ExecUnit(), program)

    # @intent:test_case_add_remove_breakpoint ブレークポイントの追加と削除が正しく行われることを検証します。
    def test_add_remove_breakpoint(self, tracer):
        bp1 = BreakpointCondition(BreakpointConditionType.SIGNAL, signal="halt_set")
        bp2 = BreakpointCondition(BreakpointConditionType.POSITION, m=2, t=3)

        tracer.add_breakpoint(bp1)
        tracer.add_breakpoint(bp2)
        tracer.add_breakpoint(bp1)  # 重複追加は無視される
        assert tracer.get_breakpoints() == [bp1, bp2]

        tracer.remove_breakpoint(bp1)
        tracer.remove_breakpoint(bp1)  # 存在しないブレークポイントの削除はエラーにならない
        assert tracer.get_breakpoints() == [bp2]

    # @intent:test_case_step_tick step_tickがスナップショットを記録し位置を進めることを検証します。
    def test_step_tick(self, tracer):
        snapshot = tracer.step_tick()
        assert snapshot.tick == 0
        assert snapshot.position == CyclePosition(1, 1)
        assert tracer.state.position == CyclePosition(1, 2)
        assert tracer.state.pc == 1
        assert tracer.tick == 1
        assert tracer.get_history() == [snapshot]

    def test_opcode_loaded_at_t2(self, tracer):
        tracer.run_instruction()
        snapshots = [tracer.step_tick() for _ in range(3)]
        assert snapshots[1].opcode == 0x00
        assert snapshots[2].opcode == 0x06
        assert snapshots[2].classes == ["LD_R_N"]

    # @intent:test_case_signal_breakpoint 信号ブレークポイントで実行が停止することを検証します。
    def test_signal_breakpoint(self, tracer):
        tracer.add_breakpoint(BreakpointCondition(BreakpointConditionType.SIGNAL, signal="halt_set"))
        snapshots = tracer.run()
        assert len(snapshots) == 4 + 7 + 4
        assert snapshots[-1].signals.halt_set is True
        assert snapshots[-1].position == CyclePosition(1, 4)

    def test_enum_signal_breakpoint(self, tracer):
        tracer.add_breakpoint(BreakpointCondition(BreakpointConditionType.SIGNAL, signal="al_src",
                                                  value=AddrSource.IR))
        snapshots = tracer.run()
        assert snapshots[-1].position == CyclePosition(1, 3)

    # @intent:test_case_position_breakpoint 位置ブレークポイントで実行が停止することを検証します。
    def test_position_breakpoint(self, tracer):
        tracer.add_breakpoint(BreakpointCondition(BreakpointConditionType.POSITION, m=2, t=3))
        snapshots = tracer.run()
        assert len(snapshots) == 4 + 7
        assert snapshots[-1].signals.reg_we is True

    def test_rule_breakpoint(self):
        tracer = TimingTracer(Z80ExecUnit(), [0xED, 0x77])
        tracer.add_breakpoint(BreakpointCondition(BreakpointConditionType.RULE, rule="unrecognized_opcode"))
        assert len(tracer.run()) == 8

    def test_disabled_breakpoint(self, tracer):
        tracer.add_breakpoint(BreakpointCondition(BreakpointConditionType.SIGNAL, signal="halt_set", enabled=False))
        assert len(tracer.run(max_ticks=30)) == 30

    def test_run_resumes_after_breakpoint(self, tracer):
        tracer.add_breakpoint(BreakpointCondition(BreakpointConditionType.POSITION, m=2, t=3))
        tracer.run()
        second = tracer.run(max_ticks=5)
        assert len(second) == 5
        assert second[0].position == CyclePosition(1, 1)

    # @intent:test_case_stop stopが実行ループを次のティックの前に止めることを検証します。
    def test_stop(self, tracer):
        original = tracer.step_tick

        def step_and_stop():
            snapshot = original()
            tracer.stop()
            return snapshot

        with patch.object(tracer, "step_tick", side_effect=step_and_stop) as mock_step:
            snapshots = tracer.run(max_ticks=10)
            mock_step.assert_called_once()
        assert len(snapshots) == 1

    # @intent:test_case_reset リセット中はリセットベクトルが出力され、その後アドレス0からフェッチすることを検証します。
    def test_reset_ticks(self):
        tracer = TimingTracer(Z80ExecUnit(), [0x00], reset_ticks=2)
        snapshots = tracer.run_instruction()
        history = tracer.get_history()
        assert len(history) == 6
        assert len(snapshots) == 4
        for snapshot in history[:2]:
            assert snapshot.label == "RESET"
            assert snapshot.signals == reset_signals()
            assert snapshot.fired_rules == ["reset"]
            assert snapshot.flags.nreset is False
        assert snapshots[0].position == CyclePosition(1, 1)
        assert tracer.state.pc == 1

    def test_reset_state(self):
        tracer = TimingTracer(Z80ExecUnit(), [0xDD, 0x00], reset_ticks=3)
        for _ in range(3):
            tracer.step_tick()
        assert tracer.state.use_ixiy is False
        assert tracer.state.ir == 0
        assert tracer.state.latch == 0
        assert tracer.state.pc == 0
        assert tracer.state.position == CyclePosition(1, 1)

    def test_request_interrupt(self, tracer):
        tracer.request_interrupt(InterruptKind.NMI)
        snapshots = tracer.run_instruction()
        assert snapshots[0].label == "NMI"
        assert snapshots[0].flags.in_nmi is True

    # @intent:test_case_nmi_priority 同時に保留されたNMIとINTではNMIが先に受け付けられることを検証します。
    def test_nmi_before_int(self):
        tracer = TimingTracer(Z80ExecUnit(), [0x00], ModeFlags(im1=True))
        tracer.request_interrupt(InterruptKind.INT)
        tracer.request_interrupt(InterruptKind.NMI)
        assert tracer.run_instruction()[0].label == "NMI"
        assert tracer.run_instruction()[0].label == "INT"

    def test_current_flags_reflect_mode(self):
        tracer = TimingTracer(Z80ExecUnit(), [0x00], ModeFlags(cond_true=True, im2=True))
        flags = tracer.current_flags()
        assert flags.cond_true is True and flags.im2 is True
        assert flags.nreset is True and flags.in_halt is False


class TestSequencerErrors:
    """
    シーケンサが範囲外の位置へ進もうとした場合の扱い。
    """
    # @intent:test_case_t_overflow サイクル要求がないままT6を超えるとSequencerErrorになることを検証します。
    def test_t_overflow(self):
        tracer = TimingTracer(StuckUnit(), [0x00])
        for _ in range(5):
            tracer.step_tick()
        with pytest.raises(SequencerError):
            tracer.step_tick()
        assert len(tracer.get_history()) == 6

    def test_m_overflow(self):
        tracer = TimingTracer(RunawayUnit(), [0x00])
        for _ in range(5):
            tracer.step_tick()
        assert tracer.state.position == CyclePosition(6, 1)
        with pytest.raises(SequencerError):
            tracer.step_tick()

    def test_instruction_tick_limit(self):
        tracer = TimingTracer(Z80ExecUnit(), [0x76], max_ticks=3)
        with pytest.raises(SequencerError):
            tracer.run_instruction()

    def test_stuck_unit_never_fires_rules(self):
        tracer = TimingTracer(StuckUnit(), [0x00])
        snapshot = tracer.step_tick()
        assert snapshot.signals == ControlSignals(f_fetch=True, valid_pla=True)
        assert snapshot.fired_rules == []
