# retro_exec_unit/core/signals.py
"""
Core Layer (制御信号ベクトル)

このモジュールは、制御ユニットの唯一の出力である制御信号ベクトルと、
全ての信号に既定値を与えるDefault/Zeroステージを定義します。
"""
from dataclasses import dataclass, fields
from typing import Tuple

from retro_exec_unit.common.types import AddrSource, IncMode, BusSource, RegSelect, HiLo, AluOp
from retro_exec_unit.core.state import CyclePosition


# @intent:responsibility 1クロック分のデータパス制御信号を全て保持します。
# @intent:rationale 全フィールドに既定値を持たせることで、評価関数が全入力に対して全出力を定義することを型レベルで保証します。
@dataclass(frozen=True)
class ControlSignals:
    """
    データパスを駆動する制御信号ベクトル。
    アドレスラッチ、インクリメンタ、バイトレーンごとのバスドライバ、レジスタファイル選択、
    サイクル種別フラグ、シーケンス要求、過渡ラッチを含みます。
    """
    # アドレスラッチ / インクリメンタ
    al_we: bool = False
    al_src: AddrSource = AddrSource.NONE
    inc_mode: IncMode = IncMode.PASS

    # 内部バス
    bus_lo: BusSource = BusSource.NONE
    bus_hi: BusSource = BusSource.NONE

    # レジスタファイル
    reg_sel: RegSelect = RegSelect.NONE
    reg_hilo: HiLo = HiLo.NONE
    reg_we: bool = False
    wz_we: HiLo = HiLo.NONE

    # 命令レジスタ
    ir_we: bool = False
    ir_clear: bool = False

    # ALU
    alu_in_src: BusSource = BusSource.NONE
    alu_op: AluOp = AluOp.NONE
    flags_we: bool = False

    # プロセッサ状態の更新要求
    ex_we: bool = False
    iff_we: bool = False
    im_we: bool = False
    halt_set: bool = False

    # サイクル種別フラグ
    f_fetch: bool = False
    f_mread: bool = False
    f_mwrite: bool = False
    f_ioread: bool = False
    f_iowrite: bool = False

    # シーケンス要求
    next_m: bool = False
    set_m1: bool = False

    # 過渡ラッチ
    ixy_d: bool = False
    set_ixiy: bool = False
    set_cbed: bool = False
    non_rep: bool = False
    pc_inc: bool = True
    clear_prefix: bool = False

    valid_pla: bool = False

    # @intent:responsibility 信号名と値の辞書を返します。UIやトレース出力が内部構造を知らずに値を列挙するために使用します。
    def as_dict(self) -> dict:
        return {f.name: getattr(self, f.name) for f in fields(self)}


# @intent:constant 制御信号ベクトルの全フィールド名（宣言順）。
SIGNAL_NAMES: Tuple[str, ...] = tuple(f.name for f in fields(ControlSignals))


# @intent:responsibility Default/Zeroステージ。何もしない(アイドル)制御ベクトルを生成します。
def default_signals(position: CyclePosition) -> ControlSignals:
    """
    全出力の既定値を返します。f_fetchのみM1がアクティブかどうかを反映します。
    """
    return ControlSignals(f_fetch=position.m == 1)


# @intent:responsibility リセット中に出力される固定の制御ベクトルを生成します。
# @intent:rationale リセットは他の全入力に依存しない固定値であるべきため、位置も引数に取りません。
def reset_signals() -> ControlSignals:
    """
    アドレスラッチに0をロードし、インクリメンタのゼロ出力をPCへ書き込み、
    命令レジスタに0(NOP)をロードして、次のティックからオペコードフェッチをやり直します。
    """
    return ControlSignals(
        al_we=True,
        al_src=AddrSource.ZERO,
        inc_mode=IncMode.ZERO,
        bus_lo=BusSource.INC,
        bus_hi=BusSource.INC,
        reg_sel=RegSelect.PC,
        reg_hilo=HiLo.BOTH,
        reg_we=True,
        ir_we=True,
        ir_clear=True,
        next_m=True,
        set_m1=True,
        pc_inc=False,
        clear_prefix=True,
    )
