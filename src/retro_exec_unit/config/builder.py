from enum import Enum
from typing import Tuple

from retro_exec_unit.core.signals import ControlSignals
from retro_exec_unit.core.state import ModeFlags
from retro_exec_unit.core.unit import AbstractExecUnit
from retro_exec_unit.arch.z80.unit import Z80ExecUnit
from retro_exec_unit.debugger.tracer import (
    TimingTracer, InterruptKind, BreakpointCondition, BreakpointConditionType,
)
from .models import ScenarioConfig, BreakpointSpec


# @intent:responsibility シナリオ構成（Config）に基づいて、制御ユニットとタイミングハーネスを生成・接続します。
class ScenarioBuilder:
    def build(self, config: ScenarioConfig) -> Tuple[AbstractExecUnit, TimingTracer]:
        if config.architecture == "Z80":
            unit = Z80ExecUnit()
        else:
            raise ValueError(f"Unsupported architecture: {config.architecture}")

        tracer = TimingTracer(
            unit,
            program=config.program,
            mode=ModeFlags(**config.mode),
            reset_ticks=config.reset_ticks,
            intack_data=config.intack_data,
            interrupts={tick: InterruptKind(kind) for tick, kind in config.interrupts.items()},
            max_ticks=config.max_ticks,
        )
        for spec in config.breakpoints:
            tracer.add_breakpoint(self.build_breakpoint(spec))
        return unit, tracer

    # @intent:responsibility 構成上のブレークポイント指定をハーネスの条件に変換します。
    # @intent:rationale 列挙型の信号はYAML上では値の文字列で書かれるため、比較前に列挙型へ変換します。
    def build_breakpoint(self, spec: BreakpointSpec) -> BreakpointCondition:
        if spec.signal is not None:
            value = spec.value
            default = getattr(ControlSignals(), spec.signal)
            if isinstance(default, Enum):
                value = type(default)(value)
            else:
                value = bool(value)
            return BreakpointCondition(BreakpointConditionType.SIGNAL, signal=spec.signal, value=value,
                                       enabled=spec.enabled)
        if spec.rule is not None:
            return BreakpointCondition(BreakpointConditionType.RULE, rule=spec.rule, enabled=spec.enabled)
        if spec.m is not None and spec.t is not None:
            return BreakpointCondition(BreakpointConditionType.POSITION, m=spec.m, t=spec.t, enabled=spec.enabled)
        raise ValueError(f"Breakpoint needs a signal, a rule or a position: {spec}")
