# tests/test_cli.py
"""
コマンドライン・トレーサ (retro_exec_unit.cli) の結合テスト。
"""
import io

import pytest

from retro_exec_unit.cli import main, format_row, active_signals, print_table
from retro_exec_unit.core.signals import ControlSignals
from retro_exec_unit.arch.z80.unit import Z80ExecUnit
from retro_exec_unit.debugger.tracer import TimingTracer

# @intent:test_suite シナリオファイルからの実行、表の出力形式、終了コードの検証。


@pytest.fixture
def scenario(tmp_path):
    path = tmp_path / "nop_halt.yaml"
    path.write_text("program: '00 76'\nmax_ticks: 12\n")
    return str(path)


# @intent:test_case_run 既定の出力がティックごとに1行、アクティブな信号を列挙することを検証します。
def test_run_scenario(scenario, capsys):
    assert main([scenario]) == 0
    lines = capsys.readouterr().out.splitlines()
    assert len(lines) == 12
    assert "M1T1" in lines[0]
    assert "ir_we" in lines[1]
    assert "<cycle_boundary_reload,prefix_clear>" in lines[3]
    assert "halt_set" in lines[7]


def test_instructions_option(scenario, capsys):
    assert main([scenario, "--instructions", "2"]) == 0
    assert len(capsys.readouterr().out.splitlines()) == 8


# @intent:test_case_columns --signals指定で固定列の表を出力することを検証します。
def test_signal_columns(scenario, capsys):
    assert main([scenario, "--signals", "ir_we,al_src", "--max-ticks", "4"]) == 0
    lines = capsys.readouterr().out.splitlines()
    assert len(lines) == 5
    assert lines[0].rstrip().endswith("al_src")
    assert lines[3].rstrip().endswith("IR")


def test_unknown_signal_column(scenario):
    assert main([scenario, "--signals", "bogus"]) == 2


def test_missing_scenario(tmp_path):
    assert main([str(tmp_path / "missing.yaml")]) == 2


# @intent:test_case_sequencer_error シーケンサエラー時に履歴を出力して終了コード1を返すことを検証します。
def test_sequencer_error(tmp_path, capsys):
    path = tmp_path / "halt.yaml"
    path.write_text("program: [0x76]\nmax_ticks: 3\n")
    assert main([str(path), "--instructions", "1"]) == 1
    assert len(capsys.readouterr().out.splitlines()) == 3


def test_active_signals():
    text = active_signals(ControlSignals(f_fetch=True, ir_we=True, pc_inc=False))
    assert text == "ir_we pc_inc=0"


def test_format_row_label():
    tracer = TimingTracer(Z80ExecUnit(), [0x00], reset_ticks=1)
    row = format_row(tracer.step_tick())
    assert "[RESET]" in row
    assert "<reset>" in row


def test_print_table_to_stream():
    tracer = TimingTracer(Z80ExecUnit(), [0x00])
    out = io.StringIO()
    print_table(tracer.run_instruction(), ["set_m1"], out=out)
    lines = out.getvalue().splitlines()
    assert len(lines) == 5
    assert lines[-1].rstrip().endswith("1")
