# retro_exec_unit/core/unit.py
"""
Core Layer (抽象制御ユニット)

このモジュールは、1クロックごとの制御信号評価の流れ（既定値 → 命令マトリクス → 上書き規則）を
テンプレートメソッドとして定義します。命令ごとの具体的な振る舞いはアーキテクチャ層に移譲されます。
"""
from abc import ABC, abstractmethod
from typing import Dict, List, Sequence, Tuple

from retro_exec_unit.core.signals import ControlSignals, default_signals
from retro_exec_unit.core.state import CyclePosition, ModeFlags
from retro_exec_unit.core.rules import SignalBuilder, RuleContext, OverrideRule, DEFAULT_RULES, apply_rules


# @intent:responsibility 副作用のない1ティック評価関数のインターフェースと共通の評価手順を定義します。
class AbstractExecUnit(ABC):
    """
    全ての実行制御ユニットの基底となる抽象クラス。
    内部状態を持たず、評価結果は入力（デコードベクトル、サイクル位置、モードフラグ）のみで決まります。
    """
    # @intent:pre-condition `rules`は優先度の高い順に並んでいる必要があります。
    def __init__(self, rules: Sequence[OverrideRule] = DEFAULT_RULES):
        self._rules: Tuple[OverrideRule, ...] = tuple(rules)

    @property
    def rules(self) -> Tuple[OverrideRule, ...]:
        return self._rules

    # @intent:responsibility 命令マトリクスを評価し、上書きする信号と命令クラス一致ビットを返します。
    @abstractmethod
    def _evaluate_matrix(self, decode, position: CyclePosition, flags: ModeFlags) -> Tuple[Dict[str, object], bool]:
        """
        (信号名 → 値の辞書, valid_pla) を返します。
        一致するクラスがない場合は空の辞書とFalseを返します。
        """
        pass

    # @intent:responsibility 1ティック分の制御信号と、発火した上書き規則の名前を返します。
    # @intent:rationale 既定値→マトリクス→上書き規則の順序を固定するためテンプレートメソッドとして実装します。
    def explain(self, decode, position: CyclePosition, flags: ModeFlags) -> Tuple[ControlSignals, List[str]]:
        builder = SignalBuilder(default_signals(position))

        assignments, valid = self._evaluate_matrix(decode, position, flags)
        builder.update(assignments)
        builder.set("valid_pla", valid)

        apply_rules(builder, RuleContext(position, flags), self._rules)
        return builder.build(), builder.fired

    def evaluate(self, decode, position: CyclePosition, flags: ModeFlags) -> ControlSignals:
        """
        デコードベクトル、サイクル位置、モードフラグから制御信号ベクトルを計算します。
        """
        signals, _ = self.explain(decode, position, flags)
        return signals
