# retro_exec_unit/core/rules.py
"""
Cycle Sequencer & Override ステージ。

命令マトリクスの後に、固定の優先順序で適用される上書き規則の列を定義します。
各規則は可変のSignalBuilderに対して適用され、より優先度の高い規則がロックした信号は変更しません。
"""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, List, Set

from retro_exec_unit.common.types import AddrSource
from retro_exec_unit.core.signals import ControlSignals, SIGNAL_NAMES, reset_signals
from retro_exec_unit.core.state import CyclePosition, ModeFlags

logger = logging.getLogger(__name__)


# @intent:responsibility 上書き規則に渡される、そのティックの読み取り専用入力。
@dataclass(frozen=True)
class RuleContext:
    position: CyclePosition
    flags: ModeFlags


# @intent:responsibility 1ティック分の制御信号を組み立てる可変ビルダー。
class SignalBuilder:
    """
    ControlSignalsのフィールド値を保持し、規則ごとの上書きとロックを管理します。
    """
    def __init__(self, base: ControlSignals):
        self._values: Dict[str, object] = base.as_dict()
        self._locked: Set[str] = set()
        self._fired: List[str] = []

    def get(self, name: str):
        return self._values[name]

    def is_locked(self, name: str) -> bool:
        return name in self._locked

    # @intent:responsibility 信号に値を設定します。ロック済みの信号は変更せずFalseを返します。
    def set(self, name: str, value) -> bool:
        if name not in self._values:
            raise KeyError(f"Unknown control signal '{name}'.")
        if name in self._locked:
            return False
        self._values[name] = value
        return True

    def update(self, assignments: Dict[str, object]) -> None:
        for name, value in assignments.items():
            self.set(name, value)

    # @intent:responsibility 全信号を別のベクトルで置き換え、以降の規則から保護します。
    def replace_and_lock(self, signals: ControlSignals) -> None:
        self._values = signals.as_dict()
        self._locked = set(SIGNAL_NAMES)

    def mark_fired(self, rule_name: str) -> None:
        self._fired.append(rule_name)

    @property
    def fired(self) -> List[str]:
        return list(self._fired)

    def build(self) -> ControlSignals:
        return ControlSignals(**self._values)


# @intent:responsibility 上書き規則の抽象インターフェース。
class OverrideRule(ABC):
    name: str = "rule"

    # @intent:responsibility 条件が成立する場合にビルダーを変更し、発火したかどうかを返します。
    # @intent:post-condition ロック済みで何も変更できなかった場合はFalseです。
    @abstractmethod
    def apply(self, builder: SignalBuilder, context: RuleContext) -> bool:
        pass


# @intent:responsibility 規則1: リセット中は固定のリセットベクトルで全出力を上書きします。
class ResetRule(OverrideRule):
    name = "reset"

    def apply(self, builder: SignalBuilder, context: RuleContext) -> bool:
        if context.flags.nreset:
            return False
        builder.replace_and_lock(reset_signals())
        return True


# @intent:responsibility 規則2: どの命令クラスにも一致しないままM1/T4に達したら、次のフェッチへ進めます。
class UnrecognizedOpcodeRule(OverrideRule):
    name = "unrecognized_opcode"

    def apply(self, builder: SignalBuilder, context: RuleContext) -> bool:
        position = context.position
        if position.m != 1 or position.t != 4 or builder.get("valid_pla"):
            return False
        stepped = builder.set("next_m", True)
        return builder.set("set_m1", True) or stepped


# @intent:responsibility 規則3: M1への再始動が要求された場合、アドレスラッチにPCをロードします。
# @intent:rationale 命令境界が次のオペコードフェッチのアドレス設定を兼ねるため、独立したプリフェッチサイクルは不要です。
class CycleBoundaryReloadRule(OverrideRule):
    name = "cycle_boundary_reload"

    def apply(self, builder: SignalBuilder, context: RuleContext) -> bool:
        if not builder.get("set_m1"):
            return False
        routed = builder.set("al_src", AddrSource.PC)
        return builder.set("al_we", True) or routed


# @intent:responsibility 規則4: 命令境界でプリフィックスラッチのクリアを要求します。setIXIY/setCBEDのアサート中は抑止されます。
class PrefixClearRule(OverrideRule):
    name = "prefix_clear"

    def apply(self, builder: SignalBuilder, context: RuleContext) -> bool:
        if not builder.get("set_m1"):
            return False
        if builder.get("set_ixiy") or builder.get("set_cbed"):
            return False
        return builder.set("clear_prefix", True)


# @intent:constant 規則の適用順序。後の規則は前の規則がロックしていない信号のみ変更できます。
DEFAULT_RULES = (
    ResetRule(),
    UnrecognizedOpcodeRule(),
    CycleBoundaryReloadRule(),
    PrefixClearRule(),
)


# @intent:responsibility 規則列を順番に適用します。
def apply_rules(builder: SignalBuilder, context: RuleContext, rules=DEFAULT_RULES) -> SignalBuilder:
    for rule in rules:
        if rule.apply(builder, context):
            builder.mark_fired(rule.name)
    if builder.fired:
        logger.debug("%s: rules fired %s", context.position, builder.fired)
    return builder
