# tests/core/test_signals.py
"""
retro_exec_unit.core.signals / core.state モジュールの単体テスト。
"""
import pytest

from retro_exec_unit.common.types import AddrSource, IncMode, BusSource, RegSelect, HiLo, AluOp
from retro_exec_unit.core.signals import ControlSignals, SIGNAL_NAMES, default_signals, reset_signals
from retro_exec_unit.core.state import CyclePosition, ModeFlags, MAX_M_CYCLE, MAX_T_CYCLE

# @intent:test_suite 制御信号ベクトルと入力状態（サイクル位置、モードフラグ）の検証。


class TestControlSignals:
    """
    ControlSignalsデータクラスの単体テスト。
    """
    # @intent:test_case_default 既定のベクトルが何もしないアイドル状態であることを検証します。
    def test_idle_defaults(self):
        signals = ControlSignals()
        assert signals.al_we is False
        assert signals.al_src == AddrSource.NONE
        assert signals.inc_mode == IncMode.PASS
        assert signals.bus_lo == BusSource.NONE
        assert signals.reg_sel == RegSelect.NONE
        assert signals.reg_hilo == HiLo.NONE
        assert signals.alu_op == AluOp.NONE
        assert signals.pc_inc is True
        assert signals.valid_pla is False

    # @intent:test_case_immutability ControlSignalsが不変であることを検証します。
    def test_immutability(self):
        signals = ControlSignals()
        with pytest.raises(AttributeError):
            signals.al_we = True

    # @intent:test_case_as_dict as_dictが全ての信号名を宣言順に返すことを検証します。
    def test_as_dict_covers_all_signals(self):
        values = ControlSignals(ir_we=True).as_dict()
        assert tuple(values) == SIGNAL_NAMES
        assert values["ir_we"] is True
        assert SIGNAL_NAMES[0] == "al_we"
        assert SIGNAL_NAMES[-1] == "valid_pla"


class TestDefaultStage:
    # @intent:test_case_fetch_flag f_fetchのみがM1かどうかを反映することを検証します。
    def test_f_fetch_follows_m1(self):
        for t in range(1, MAX_T_CYCLE + 1):
            assert default_signals(CyclePosition(1, t)).f_fetch is True
        for m in range(2, MAX_M_CYCLE + 1):
            assert default_signals(CyclePosition(m, 1)).f_fetch is False

    def test_everything_else_is_idle(self):
        signals = default_signals(CyclePosition(1, 3))
        assert signals == ControlSignals(f_fetch=True)

    # @intent:test_case_reset リセットベクトルの内容を検証します。
    def test_reset_vector(self):
        signals = reset_signals()
        assert signals.al_we is True and signals.al_src == AddrSource.ZERO
        assert signals.inc_mode == IncMode.ZERO
        assert signals.reg_sel == RegSelect.PC and signals.reg_hilo == HiLo.BOTH and signals.reg_we is True
        assert signals.ir_we is True and signals.ir_clear is True
        assert signals.next_m is True and signals.set_m1 is True
        assert signals.pc_inc is False
        assert signals.f_fetch is False
        assert signals.valid_pla is False


class TestCyclePosition:
    """
    CyclePositionの単体テスト。
    """
    def test_str(self):
        assert str(CyclePosition(2, 3)) == "M2T3"

    # @intent:test_case_range 範囲外の位置がValueErrorになることを検証します。
    @pytest.mark.parametrize("m, t", [(0, 1), (7, 1), (1, 0), (1, 7)])
    def test_out_of_range(self, m, t):
        with pytest.raises(ValueError):
            CyclePosition(m, t)

    # @intent:test_case_one_hot ワンホット表現から位置を復元できることを検証します。
    def test_from_one_hot(self):
        m_bits = [False, False, True, False, False, False]
        t_bits = [False, False, False, False, True, False]
        assert CyclePosition.from_one_hot(m_bits, t_bits) == CyclePosition(3, 5)

    def test_to_one_hot(self):
        m_bits, t_bits = CyclePosition(2, 4).to_one_hot()
        assert m_bits == (False, True, False, False, False, False)
        assert t_bits == (False, False, False, True, False, False)

    # @intent:test_case_contract ワンホットの契約違反（複数ビット、ビットなし）がValueErrorになることを検証します。
    def test_multiple_bits_rejected(self):
        with pytest.raises(ValueError):
            CyclePosition.from_one_hot([True, True, False, False, False, False], [True] + [False] * 5)

    def test_no_bits_rejected(self):
        with pytest.raises(ValueError):
            CyclePosition.from_one_hot([True] + [False] * 5, [False] * 6)


class TestModeFlags:
    def test_defaults(self):
        flags = ModeFlags()
        assert flags.nreset is True
        assert not (flags.in_intr or flags.in_nmi or flags.in_halt or flags.use_ixiy)

    # @intent:test_case_replace replaceが元のインスタンスを変更せずに新しいインスタンスを返すことを検証します。
    def test_replace(self):
        flags = ModeFlags()
        changed = flags.replace(use_ixiy=True, cond_true=True)
        assert changed.use_ixiy is True and changed.cond_true is True
        assert flags.use_ixiy is False
