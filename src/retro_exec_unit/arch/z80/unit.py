# retro_exec_unit/arch/z80/unit.py
"""
Z80 実行制御ユニット。

AbstractExecUnitのテンプレートに、Z80の命令マトリクスを組み込みます。
"""
from typing import Dict, Sequence, Tuple

from retro_exec_unit.core.unit import AbstractExecUnit
from retro_exec_unit.core.rules import OverrideRule, DEFAULT_RULES
from retro_exec_unit.core.state import CyclePosition, ModeFlags
from retro_exec_unit.arch.z80.decode import DecodeVector
from retro_exec_unit.arch.z80.matrix import evaluate_matrix


# @intent:responsibility Z80の命令クラスとタイミング表に基づいて1ティック分の制御信号を計算します。
class Z80ExecUnit(AbstractExecUnit):
    """
    Z80の実行制御ユニット。
    状態を持たないため、1つのインスタンスを複数のハーネスで共有できます。
    """
    def __init__(self, rules: Sequence[OverrideRule] = DEFAULT_RULES):
        super().__init__(rules)

    def _evaluate_matrix(self, decode: DecodeVector, position: CyclePosition,
                         flags: ModeFlags) -> Tuple[Dict[str, object], bool]:
        result = evaluate_matrix(decode, position, flags)
        return result.assignments, result.valid_pla
