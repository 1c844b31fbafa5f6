from dataclasses import dataclass, field
from typing import Dict, List, Optional


@dataclass
class BreakpointSpec:
    signal: Optional[str] = None
    value: object = True
    m: Optional[int] = None
    t: Optional[int] = None
    rule: Optional[str] = None
    enabled: bool = True


@dataclass
class ScenarioConfig:
    architecture: str = "Z80"
    program: List[int] = field(default_factory=list)
    mode: Dict[str, bool] = field(default_factory=dict)   # ModeFlagsのフィールド名 → 値
    reset_ticks: int = 0
    max_ticks: int = 200
    intack_data: int = 0xFF
    interrupts: Dict[int, str] = field(default_factory=dict)  # ティック → "nmi" / "int"
    breakpoints: List[BreakpointSpec] = field(default_factory=list)
    signals: List[str] = field(default_factory=list)  # 表示する信号（空なら全て）
