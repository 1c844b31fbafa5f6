# retro_exec_unit/debugger/tracer.py
"""
タイミングハーネス（トレーサ）モジュール。

制御ユニットの外部にあるシーケンサ（M/Tカウンタ、命令レジスタ、プリフィックスラッチ、HALT/割り込みラッチ）と
最小限のアドレス経路（PCとアドレスラッチ）をモデル化し、制御ユニットを1ティックずつ駆動して
その入出力をTickSnapshotとして記録します。ブレークポイントによる実行の中断もここで扱います。
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Sequence

from retro_exec_unit.common.types import AddrSource, IncMode, BusSource, RegSelect, HiLo
from retro_exec_unit.core.errors import SequencerError
from retro_exec_unit.core.signals import ControlSignals
from retro_exec_unit.core.snapshot import TickSnapshot
from retro_exec_unit.core.state import CyclePosition, ModeFlags, MAX_M_CYCLE, MAX_T_CYCLE
from retro_exec_unit.core.unit import AbstractExecUnit
from retro_exec_unit.arch.z80.decode import OpcodeTable
from retro_exec_unit.arch.z80.decoder import decode_opcode

logger = logging.getLogger(__name__)

CB_PREFIX = 0xCB
ADDRESS_MASK = 0xFFFF


# @intent:responsibility 外部から要求される割り込みの種類。
class InterruptKind(Enum):
    NMI = "nmi"
    INT = "int"


# @intent:responsibility ブレークポイントの条件タイプを定義します。
class BreakpointConditionType(Enum):
    SIGNAL = "SIGNAL"       # 特定の制御信号が特定の値になった
    POSITION = "POSITION"   # 特定のサイクル位置に到達した
    RULE = "RULE"           # 特定の上書き規則が発火した


# @intent:responsibility ブレークポイントをトリガーする条件を定義します。
@dataclass(frozen=True)
class BreakpointCondition:
    """
    ブレークポイントがヒットするための条件を定義するデータクラス。
    """
    condition_type: BreakpointConditionType
    signal: Optional[str] = None      # SIGNALで使用
    value: object = True              # SIGNALで使用
    m: Optional[int] = None           # POSITIONで使用
    t: Optional[int] = None           # POSITIONで使用
    rule: Optional[str] = None        # RULEで使用
    enabled: bool = True

    # @intent:responsibility スナップショットが条件を満たすかどうかを判定します。
    def matches(self, snapshot: TickSnapshot) -> bool:
        if not self.enabled:
            return False
        if self.condition_type == BreakpointConditionType.SIGNAL:
            return snapshot.signals.as_dict().get(self.signal) == self.value
        if self.condition_type == BreakpointConditionType.POSITION:
            return snapshot.position.m == self.m and snapshot.position.t == self.t
        if self.condition_type == BreakpointConditionType.RULE:
            return self.rule in snapshot.fired_rules
        return False


# @intent:responsibility 外部シーケンサが保持する状態。制御ユニットには読み取り専用のモードフラグとして渡されます。
@dataclass
class SequencerState:
    position: CyclePosition = CyclePosition()
    ir: int = 0
    table: OpcodeTable = OpcodeTable.MAIN
    use_ixiy: bool = False
    in_halt: bool = False
    in_intr: bool = False
    in_nmi: bool = False
    pc: int = 0
    latch: Optional[int] = 0   # アドレスラッチの値。PC由来でなければNone

    @property
    def prefix_latched(self) -> bool:
        return self.use_ixiy or self.table is not OpcodeTable.MAIN


# @intent:responsibility 制御ユニットを1ティックずつ駆動し、命令タイムラインを記録するハーネス。
class TimingTracer:
    """
    program: アドレス0から配置される命令バイト列。プログラム外のメモリ読み出しは0を返します。
    mode: 初期モードフラグ（im1/im2, cond_true, repeat_en など外部が評価する値）
    reset_ticks: 開始時にnresetをアサートしておくティック数
    intack_data: マスカブル割り込み受付時に割り込み元がデータバスに置く値
    interrupts: ティック番号 → 要求する割り込み

    分岐先はレジスタの内容に依存するため追跡しません。PCはインクリメンタ経由の更新のみ反映されます。
    """
    def __init__(self, unit: AbstractExecUnit, program: Sequence[int] = (),
                 mode: Optional[ModeFlags] = None, reset_ticks: int = 0, intack_data: int = 0xFF,
                 interrupts: Optional[Dict[int, InterruptKind]] = None, max_ticks: int = 1000):
        self._unit = unit
        self._memory = {address: value & 0xFF for address, value in enumerate(program)}
        self._mode = mode or ModeFlags()
        self._reset_ticks = reset_ticks
        self._intack_data = intack_data & 0xFF
        self._interrupts = dict(interrupts or {})
        self._max_ticks = max_ticks
        self._breakpoints: List[BreakpointCondition] = []
        self._history: List[TickSnapshot] = []
        self._state = SequencerState()
        self._tick = 0
        self._pending_nmi = False
        self._pending_int = False
        self._running = False

    @property
    def state(self) -> SequencerState:
        return self._state

    @property
    def tick(self) -> int:
        return self._tick

    def get_history(self) -> List[TickSnapshot]:
        return list(self._history)

    def add_breakpoint(self, condition: BreakpointCondition) -> None:
        if condition not in self._breakpoints:
            self._breakpoints.append(condition)

    def remove_breakpoint(self, condition: BreakpointCondition) -> None:
        if condition in self._breakpoints:
            self._breakpoints.remove(condition)

    def get_breakpoints(self) -> List[BreakpointCondition]:
        return list(self._breakpoints)

    def request_interrupt(self, kind: InterruptKind) -> None:
        if kind is InterruptKind.NMI:
            self._pending_nmi = True
        else:
            self._pending_int = True

    # @intent:responsibility 現在のティックで制御ユニットに渡すモードフラグを組み立てます。
    def current_flags(self) -> ModeFlags:
        state = self._state
        return self._mode.replace(
            nreset=self._tick >= self._reset_ticks,
            in_halt=state.in_halt,
            in_intr=state.in_intr,
            in_nmi=state.in_nmi,
            use_ixiy=state.use_ixiy,
        )

    # @intent:responsibility 命令境界で保留中の割り込みを受け付けます。NMIが優先されます。
    def _accept_interrupt(self) -> Optional[str]:
        state = self._state
        if state.position != CyclePosition(1, 1) or state.prefix_latched:
            return None
        if state.in_nmi or state.in_intr:
            return None
        if self._pending_nmi:
            self._pending_nmi = False
            state.in_nmi = True
        elif self._pending_int:
            self._pending_int = False
            state.in_intr = True
        else:
            return None
        state.in_halt = False
        label = "NMI" if state.in_nmi else "INT"
        logger.info("Tick %d: %s accepted", self._tick, label)
        return label

    # @intent:responsibility 1ティック分、制御ユニットを評価して外部状態を更新します。
    # @intent:post-condition 記録したスナップショットを返します。
    def step_tick(self) -> TickSnapshot:
        kind = self._interrupts.get(self._tick)
        if kind is not None:
            self.request_interrupt(kind)

        flags = self.current_flags()
        label = "RESET" if not flags.nreset else self._accept_interrupt()
        if label in ("NMI", "INT"):
            flags = self.current_flags()

        state = self._state
        decode = decode_opcode(state.ir, state.table)
        signals, fired = self._unit.explain(decode, state.position, flags)

        snapshot = TickSnapshot(
            tick=self._tick,
            position=state.position,
            flags=flags,
            opcode=state.ir,
            classes=list(decode.class_names()),
            signals=signals,
            fired_rules=fired,
            label=label,
        )
        self._history.append(snapshot)

        self._apply(signals, flags)
        self._tick += 1
        return snapshot

    # @intent:utility_function このティックでデータピンに現れる値を返します。
    def _data_pin(self, signals: ControlSignals, flags: ModeFlags) -> int:
        if signals.f_ioread:
            if flags.in_intr and self._state.position.m == 1:
                return self._intack_data
            return 0
        latch = self._state.latch
        if latch is None:
            return 0
        return self._memory.get(latch, 0)

    # @intent:responsibility 制御信号のうち外部シーケンサとアドレス経路が従う要求を反映します。
    def _apply(self, signals: ControlSignals, flags: ModeFlags) -> None:
        state = self._state

        if signals.ir_we:
            if signals.ir_clear:
                state.ir = 0
            elif signals.bus_lo is BusSource.DATA_PIN:
                state.ir = self._data_pin(signals, flags)

        self._update_pc(signals)
        if signals.al_we:
            if signals.al_src is AddrSource.PC:
                state.latch = state.pc
            elif signals.al_src is AddrSource.ZERO:
                state.latch = 0
            else:
                state.latch = None

        if signals.clear_prefix:
            state.use_ixiy = False
            state.table = OpcodeTable.MAIN
        if signals.set_ixiy:
            state.use_ixiy = True
        if signals.set_cbed:
            state.table = OpcodeTable.CB if state.ir == CB_PREFIX else OpcodeTable.ED

        if signals.halt_set and not state.in_halt:
            state.in_halt = True
            logger.info("Tick %d: entering HALT", self._tick)

        if not flags.nreset:
            state.in_halt = state.in_intr = state.in_nmi = False
            state.use_ixiy = False
            state.table = OpcodeTable.MAIN
        elif signals.set_m1 and not (signals.set_ixiy or signals.set_cbed):
            if state.in_intr or state.in_nmi:
                logger.debug("Tick %d: interrupt sequence complete", self._tick)
            state.in_intr = state.in_nmi = False

        state.position = self._next_position(signals)

    # @intent:utility_function インクリメンタ出力によるPCの更新を反映します。
    def _update_pc(self, signals: ControlSignals) -> None:
        state = self._state
        if not (signals.reg_we and signals.reg_sel is RegSelect.PC and signals.reg_hilo is HiLo.BOTH):
            return
        if signals.bus_lo is not BusSource.INC:
            return
        if signals.inc_mode is IncMode.ZERO:
            state.pc = 0
        elif state.latch is not None:
            step = {IncMode.INC: 1, IncMode.DEC: -1}.get(signals.inc_mode, 0)
            state.pc = (state.latch + step) & ADDRESS_MASK

    # @intent:responsibility nextM/setM1の要求に従って次のサイクル位置を求めます。
    def _next_position(self, signals: ControlSignals) -> CyclePosition:
        position = self._state.position
        if signals.set_m1:
            logger.debug("Tick %d: instruction boundary at %s", self._tick, position)
            return CyclePosition(1, 1)
        if signals.next_m:
            if position.m >= MAX_M_CYCLE:
                raise SequencerError(f"Tick {self._tick}: next_m requested beyond M{MAX_M_CYCLE}.")
            return CyclePosition(position.m + 1, 1)
        if position.t >= MAX_T_CYCLE:
            raise SequencerError(f"Tick {self._tick}: no cycle request at {position}.")
        return CyclePosition(position.m, position.t + 1)

    # @intent:responsibility 1命令分（プリフィックスを含む）を実行し、その間のスナップショットを返します。
    def run_instruction(self) -> List[TickSnapshot]:
        """
        setM1がsetIXIY/setCBEDなしでアサートされたティックまで実行します。
        リセット中のティックは含みません。
        """
        while self._tick < self._reset_ticks:
            self.step_tick()
        snapshots = []
        for _ in range(self._max_ticks):
            snapshot = self.step_tick()
            snapshots.append(snapshot)
            signals = snapshot.signals
            if signals.set_m1 and not (signals.set_ixiy or signals.set_cbed):
                return snapshots
        raise SequencerError(f"Instruction did not complete within {self._max_ticks} ticks.")

    # @intent:responsibility ブレークポイントに達するか、最大ティック数に達するまで実行します。
    def run(self, max_ticks: Optional[int] = None) -> List[TickSnapshot]:
        limit = self._max_ticks if max_ticks is None else max_ticks
        start = len(self._history)
        self._running = True
        while self._running and len(self._history) - start < limit:
            snapshot = self.step_tick()
            for bp in self._breakpoints:
                if bp.matches(snapshot):
                    self._running = False
                    logger.info("Breakpoint hit at tick %d (%s)", snapshot.tick, snapshot.position)
                    break
        self._running = False
        return self._history[start:]

    def stop(self) -> None:
        self._running = False
