# retro_exec_unit/core/state.py
"""
Core Layer (入力状態)

このモジュールは、制御ユニットが1クロックごとに読み取る入力状態を定義します。
マシンサイクル/サブサイクルのカウンタとモードフラグのラッチは外部のシーケンサが所有し、
制御ユニットは読み取るだけです。
"""
from dataclasses import dataclass, replace
from typing import Sequence

MAX_M_CYCLE = 6
MAX_T_CYCLE = 6


# @intent:responsibility 命令タイムライン上の現在位置 (M, T) を保持します。
@dataclass(frozen=True)
class CyclePosition:
    """
    マシンサイクル M (1..6) とサブサイクル T (1..6) の組。
    M1/T1..T4 は常にオペコードフェッチサイクルです。
    """
    m: int = 1
    t: int = 1

    def __post_init__(self):
        if not 1 <= self.m <= MAX_M_CYCLE:
            raise ValueError(f"Machine cycle M{self.m} out of range 1..{MAX_M_CYCLE}.")
        if not 1 <= self.t <= MAX_T_CYCLE:
            raise ValueError(f"Sub-cycle T{self.t} out of range 1..{MAX_T_CYCLE}.")

    # @intent:responsibility ワンホット信号列から位置を復元します。
    # @intent:pre-condition M/Tそれぞれちょうど1本だけがアサートされている必要があります。
    @classmethod
    def from_one_hot(cls, m_bits: Sequence[bool], t_bits: Sequence[bool]) -> "CyclePosition":
        """
        m_bits[0] が M1、t_bits[0] が T1 に対応します。
        複数ビットや全ビット非アサートは呼び出し側の契約違反としてValueErrorを送出します。
        """
        m_hot = [i + 1 for i, bit in enumerate(m_bits) if bit]
        t_hot = [i + 1 for i, bit in enumerate(t_bits) if bit]
        if len(m_hot) != 1:
            raise ValueError(f"Exactly one M bit must be set, got {m_hot}.")
        if len(t_hot) != 1:
            raise ValueError(f"Exactly one T bit must be set, got {t_hot}.")
        return cls(m_hot[0], t_hot[0])

    def to_one_hot(self):
        m_bits = tuple(i + 1 == self.m for i in range(MAX_M_CYCLE))
        t_bits = tuple(i + 1 == self.t for i in range(MAX_T_CYCLE))
        return m_bits, t_bits

    def __str__(self) -> str:
        return f"M{self.m}T{self.t}"


# @intent:responsibility プロセッサ全体でラッチされているモードフラグを保持します。
@dataclass(frozen=True)
class ModeFlags:
    """
    制御ユニットに読み取り専用で渡されるモードフラグ。
    nresetは負論理です（Falseでリセット中）。
    """
    nreset: bool = True
    fpga_mode: bool = False
    in_intr: bool = False
    in_nmi: bool = False
    in_halt: bool = False
    im1: bool = False
    im2: bool = False
    use_ixiy: bool = False
    repeat_en: bool = False
    flags_zf: bool = False
    flags_nf: bool = False
    flags_sf: bool = False
    flags_cf: bool = False
    cond_true: bool = False

    def replace(self, **changes) -> "ModeFlags":
        return replace(self, **changes)
