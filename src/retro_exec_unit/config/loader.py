import yaml
from dataclasses import fields
from typing import Any, Dict, List

from retro_exec_unit.core.signals import SIGNAL_NAMES
from retro_exec_unit.core.state import ModeFlags
from .models import ScenarioConfig, BreakpointSpec

MODE_FLAG_NAMES = tuple(f.name for f in fields(ModeFlags))
INTERRUPT_KINDS = ("nmi", "int")


class ScenarioLoader:
    def load_from_file(self, path: str) -> ScenarioConfig:
        with open(path, 'r') as f:
            data = yaml.safe_load(f)
        return self.parse(data or {})

    def parse(self, data: Dict[str, Any]) -> ScenarioConfig:
        arch = data.get("architecture", "Z80")

        mode = {}
        for name, value in (data.get("mode") or {}).items():
            if name not in MODE_FLAG_NAMES:
                raise ValueError(f"Unknown mode flag: {name}")
            mode[name] = bool(value)

        interrupts = {}
        for tick, kind in (data.get("interrupts") or {}).items():
            kind = str(kind).lower()
            if kind not in INTERRUPT_KINDS:
                raise ValueError(f"Unknown interrupt kind '{kind}' at tick {tick}")
            interrupts[self._parse_int(tick)] = kind

        signals = list(data.get("signals") or [])
        self._check_signals(signals)

        return ScenarioConfig(
            architecture=arch,
            program=self._parse_program(data.get("program", [])),
            mode=mode,
            reset_ticks=self._parse_int(data.get("reset_ticks", 0)),
            max_ticks=self._parse_int(data.get("max_ticks", 200)),
            intack_data=self._parse_int(data.get("intack_data", 0xFF)) & 0xFF,
            interrupts=interrupts,
            breakpoints=[self._parse_breakpoint(bp) for bp in data.get("breakpoints") or []],
            signals=signals,
        )

    # @intent:utility_function プログラムをバイト列に変換します。リストと空白区切りの16進文字列を受け付けます。
    def _parse_program(self, value: Any) -> List[int]:
        if isinstance(value, str):
            return [int(token, 16) & 0xFF for token in value.split()]
        return [self._parse_int(v) & 0xFF for v in value]

    def _parse_breakpoint(self, data: Dict[str, Any]) -> BreakpointSpec:
        if "signal" in data:
            self._check_signals([data["signal"]])
        position = data.get("position")
        m, t = data.get("m"), data.get("t")
        if position is not None:
            # "M2T3" 形式
            text = str(position).upper()
            if not (text.startswith("M") and "T" in text):
                raise ValueError(f"Invalid position format: {position}")
            m_text, t_text = text[1:].split("T", 1)
            m, t = int(m_text), int(t_text)
        return BreakpointSpec(
            signal=data.get("signal"),
            value=data.get("value", True),
            m=None if m is None else self._parse_int(m),
            t=None if t is None else self._parse_int(t),
            rule=data.get("rule"),
            enabled=bool(data.get("enabled", True)),
        )

    def _check_signals(self, names: List[str]) -> None:
        unknown = [name for name in names if name not in SIGNAL_NAMES]
        if unknown:
            raise ValueError(f"Unknown control signal(s): {unknown}")

    def _parse_int(self, value: Any) -> int:
        if isinstance(value, bool):
            raise ValueError(f"Invalid integer format: {value}")
        if isinstance(value, int):
            return value
        if isinstance(value, str):
            if value.lower().startswith("0x"):
                return int(value, 16)
            return int(value)
        raise ValueError(f"Invalid integer format: {value}")
