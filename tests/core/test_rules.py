# tests/core/test_rules.py
"""
retro_exec_unit.core.rules モジュールの単体テスト。
"""
import pytest

from retro_exec_unit.common.types import AddrSource
from retro_exec_unit.core.rules import (
    SignalBuilder, RuleContext, ResetRule, UnrecognizedOpcodeRule,
    CycleBoundaryReloadRule, PrefixClearRule, apply_rules,
)
from retro_exec_unit.core.signals import ControlSignals, default_signals, reset_signals
from retro_exec_unit.core.state import CyclePosition, ModeFlags

# @intent:test_suite 上書き規則の条件、適用順序、ロックによる優先度の検証。


def _context(m=1, t=4, **flags):
    return RuleContext(CyclePosition(m, t), ModeFlags(**flags))


class TestSignalBuilder:
    """
    SignalBuilderの単体テスト。
    """
    # @intent:test_case_set setが値を変更しbuildに反映されることを検証します。
    def test_set_and_build(self):
        builder = SignalBuilder(ControlSignals())
        assert builder.set("ir_we", True) is True
        assert builder.build().ir_we is True

    def test_unknown_signal(self):
        builder = SignalBuilder(ControlSignals())
        with pytest.raises(KeyError):
            builder.set("no_such_signal", True)

    # @intent:test_case_lock replace_and_lock後は全ての信号が変更されないことを検証します。
    def test_replace_and_lock(self):
        builder = SignalBuilder(ControlSignals())
        builder.replace_and_lock(reset_signals())
        assert builder.is_locked("al_src")
        assert builder.set("al_src", AddrSource.PC) is False
        assert builder.build() == reset_signals()


class TestRules:
    """
    個々の上書き規則の単体テスト。
    """
    # @intent:test_case_reset nresetがアサートされていない通常時は何もしないことを検証します。
    def test_reset_inactive(self):
        builder = SignalBuilder(ControlSignals(ir_we=True))
        assert ResetRule().apply(builder, _context()) is False
        assert builder.build().ir_we is True

    def test_reset_replaces_everything(self):
        builder = SignalBuilder(ControlSignals(halt_set=True, f_mwrite=True))
        assert ResetRule().apply(builder, _context(nreset=False)) is True
        assert builder.build() == reset_signals()

    # @intent:test_case_unrecognized M1T4でクラスが一致しない場合のみ次のフェッチへ進めることを検証します。
    def test_unrecognized_at_m1t4(self):
        builder = SignalBuilder(default_signals(CyclePosition(1, 4)))
        assert UnrecognizedOpcodeRule().apply(builder, _context(1, 4)) is True
        signals = builder.build()
        assert signals.next_m is True and signals.set_m1 is True

    @pytest.mark.parametrize("m, t", [(1, 3), (1, 5), (2, 4)])
    def test_unrecognized_only_at_m1t4(self, m, t):
        builder = SignalBuilder(default_signals(CyclePosition(m, t)))
        assert UnrecognizedOpcodeRule().apply(builder, _context(m, t)) is False
        assert builder.build().set_m1 is False

    def test_recognized_opcode_untouched(self):
        builder = SignalBuilder(ControlSignals(valid_pla=True))
        assert UnrecognizedOpcodeRule().apply(builder, _context(1, 4)) is False

    # @intent:test_case_reload setM1のティックでアドレスラッチにPCがロードされることを検証します。
    def test_cycle_boundary_reload(self):
        builder = SignalBuilder(ControlSignals(next_m=True, set_m1=True))
        assert CycleBoundaryReloadRule().apply(builder, _context(2, 3)) is True
        signals = builder.build()
        assert signals.al_we is True
        assert signals.al_src == AddrSource.PC

    def test_no_reload_without_set_m1(self):
        builder = SignalBuilder(ControlSignals(next_m=True))
        assert CycleBoundaryReloadRule().apply(builder, _context(2, 3)) is False
        assert builder.build().al_we is False

    # @intent:test_case_prefix_clear プリフィックス設定中はクリアが抑止されることを検証します。
    def test_prefix_clear(self):
        builder = SignalBuilder(ControlSignals(set_m1=True))
        assert PrefixClearRule().apply(builder, _context()) is True
        assert builder.build().clear_prefix is True

    @pytest.mark.parametrize("latch", ["set_ixiy", "set_cbed"])
    def test_prefix_clear_suppressed(self, latch):
        builder = SignalBuilder(ControlSignals(set_m1=True, **{latch: True}))
        assert PrefixClearRule().apply(builder, _context()) is False
        assert builder.build().clear_prefix is False


class TestRuleOrder:
    """
    apply_rulesによる規則列全体の適用順序の検証。
    """
    # @intent:test_case_dominance リセットが後続の全ての規則に優先することを検証します。
    def test_reset_dominates_later_rules(self):
        builder = SignalBuilder(default_signals(CyclePosition(1, 4)))
        apply_rules(builder, _context(1, 4, nreset=False))
        assert builder.build() == reset_signals()
        assert builder.fired == ["reset"]

    # @intent:test_case_chain 未知オペコードの規則が要求したsetM1に、後続の規則が反応することを検証します。
    def test_unrecognized_feeds_boundary_rules(self):
        builder = SignalBuilder(default_signals(CyclePosition(1, 4)))
        apply_rules(builder, _context(1, 4))
        signals = builder.build()
        assert builder.fired == ["unrecognized_opcode", "cycle_boundary_reload", "prefix_clear"]
        assert signals.al_src == AddrSource.PC
        assert signals.clear_prefix is True

    def test_nothing_fires_mid_cycle(self):
        builder = SignalBuilder(ControlSignals(f_mread=True, valid_pla=True))
        apply_rules(builder, _context(2, 2))
        assert builder.fired == []
