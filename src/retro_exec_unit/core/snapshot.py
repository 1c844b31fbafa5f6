# retro_exec_unit/core/snapshot.py
"""
ティック単位の不変スナップショット

このモジュールは、1クロック分の入力と制御ユニットの出力を記録した不変のデータ構造を定義します。
トレーサ、CLI、UIへの情報提供に用います。
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from retro_exec_unit.core.signals import ControlSignals
from retro_exec_unit.core.state import CyclePosition, ModeFlags


# @intent:responsibility あるティックにおける入力と出力の組を不変に記録します。
@dataclass(frozen=True)
class TickSnapshot:
    """
    tick: ハーネス起動からの通し番号
    opcode: 命令レジスタの値（デコーダへの入力）
    classes: デコードされた命令クラス名（表示用）
    """
    tick: int
    position: CyclePosition
    flags: ModeFlags
    opcode: int
    classes: List[str]
    signals: ControlSignals
    fired_rules: List[str] = field(default_factory=list)
    label: Optional[str] = None

    def describe(self) -> str:
        names = ",".join(self.classes) if self.classes else "-"
        return f"{self.tick:5d} {self.position} IR={self.opcode:02X} {names}"


# @intent:utility_function 信号値を表の1セル分の文字列にします。偽とNONEは空欄です。
def format_signal(value) -> str:
    if isinstance(value, bool):
        return "1" if value else ""
    if isinstance(value, Enum):
        return "" if value.value == "NONE" else value.value
    return str(value)
