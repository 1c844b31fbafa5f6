"""
Z80 命令マトリクス構築のための共通レコード、タイムラインビルダー、ヘルパー関数。
"""
from dataclasses import dataclass, fields, replace
from enum import Enum
from typing import Callable, Dict, Optional, Tuple, Union

from retro_exec_unit.common.types import (
    AddrSource, IncMode, BusSource, RegSelect, HiLo, AluOp, RegRef, REG_PC, REG_SP,
)
from retro_exec_unit.core.errors import MatrixConflictError
from retro_exec_unit.core.state import MAX_M_CYCLE, MAX_T_CYCLE


# @intent:responsibility 1つの命令クラス内でタイムラインを分岐させるバリアント。
class Variant(Enum):
    BASE = "BASE"
    IXY = "IXY"               # IX/IYプリフィックス有効（ixy_dシーケンス挿入）
    TAKEN = "TAKEN"           # 条件成立
    NOT_TAKEN = "NOT_TAKEN"   # 条件不成立
    REPEAT = "REPEAT"         # ブロック命令の繰り返し


# @intent:responsibility クラスがどのモードフラグでバリアントを選ぶかを表します。
class VariantKind(Enum):
    NONE = "NONE"
    INDEX = "INDEX"
    COND = "COND"
    REPEAT = "REPEAT"


# @intent:responsibility 共有オペコードフェッチスケジュールのバリアント。
class FetchVariant(Enum):
    NORMAL = "NORMAL"
    HOLD = "HOLD"       # HALT中/NMI受付: PCを進めずIRにNOPをロード
    INTACK = "INTACK"   # マスカブル割り込み受付: PCを進めずIRに割り込み元のデータをロード


# @intent:responsibility 評価時にopビットとプリフィックス状態から解決されるシンボリックなオペランド。
class Operand(Enum):
    R_DST = "R_DST"             # op5..3 の8ビットレジスタ
    R_SRC = "R_SRC"             # op2..0 の8ビットレジスタ
    RP = "RP"                   # op5..4 の16ビットペア (BC/DE/HL/SP)
    RP_LO = "RP_LO"
    RP_HI = "RP_HI"
    QQ_LO = "QQ_LO"             # op5..4 の16ビットペア (BC/DE/HL/AF)
    QQ_HI = "QQ_HI"
    HL = "HL"                   # HL（置き換え有効なクラスではIX/IY）
    HL_LO = "HL_LO"
    HL_HI = "HL_HI"
    PAIR_BC_DE = "PAIR_BC_DE"   # op4 で BC/DE
    STEP = "STEP"               # op3 で INC/DEC
    IR_REG = "IR_REG"           # op3 で I/R


# @intent:data_structure マトリクスの1エントリ。Noneは「上書きしない」を意味します。
# @intent:rationale ControlSignalsのreg_sel/reg_hiloはオペランド解決の単位となるregに集約しています。
@dataclass(frozen=True)
class Override:
    al_we: Optional[bool] = None
    al_src: Union[AddrSource, Operand, None] = None
    inc_mode: Union[IncMode, Operand, None] = None
    bus_lo: Optional[BusSource] = None
    bus_hi: Optional[BusSource] = None
    reg: Union[RegRef, Operand, None] = None
    reg_we: Optional[bool] = None
    wz_we: Optional[HiLo] = None
    ir_we: Optional[bool] = None
    ir_clear: Optional[bool] = None
    alu_in_src: Optional[BusSource] = None
    alu_op: Optional[AluOp] = None
    flags_we: Optional[bool] = None
    ex_we: Optional[bool] = None
    iff_we: Optional[bool] = None
    im_we: Optional[bool] = None
    halt_set: Optional[bool] = None
    f_mread: Optional[bool] = None
    f_mwrite: Optional[bool] = None
    f_ioread: Optional[bool] = None
    f_iowrite: Optional[bool] = None
    next_m: Optional[bool] = None
    set_m1: Optional[bool] = None
    ixy_d: Optional[bool] = None
    set_ixiy: Optional[bool] = None
    set_cbed: Optional[bool] = None
    non_rep: Optional[bool] = None
    pc_inc: Optional[bool] = None

    def assigned(self) -> Dict[str, object]:
        return {f.name: getattr(self, f.name) for f in fields(self) if getattr(self, f.name) is not None}

    # @intent:responsibility 2つのエントリを統合します。同じ信号に異なる値があればMatrixConflictErrorを送出します。
    def merge(self, other: "Override", where: str = "?") -> "Override":
        changes = {}
        for name, value in other.assigned().items():
            current = getattr(self, name)
            if current is not None and current != value:
                raise MatrixConflictError(where, name, current, value)
            changes[name] = value
        return replace(self, **changes)


RowKey = Tuple[int, int]


# @intent:responsibility 1命令クラス・1バリアント分の (M, T) → Override 表を組み立てます。
class Timeline:
    """
    マシンサイクルのテンプレート（メモリ読み書き、I/O）と終端マーカーを提供するビルダー。
    同じ位置に異なる値を二重に設定するとMatrixConflictErrorになります。
    """
    def __init__(self, name: str):
        self.name = name
        self._rows: Dict[RowKey, Override] = {}

    def at(self, m: int, t: int, **assignments) -> "Timeline":
        if not (1 <= m <= MAX_M_CYCLE and 1 <= t <= MAX_T_CYCLE):
            raise ValueError(f"{self.name}: position M{m}T{t} out of range.")
        row = self._rows.get((m, t), Override())
        self._rows[(m, t)] = row.merge(Override(**assignments), f"{self.name} M{m}T{t}")
        return self

    def next_cycle(self, m: int, t: int) -> "Timeline":
        return self.at(m, t, next_m=True)

    def finish(self, m: int, t: int, **assignments) -> "Timeline":
        return self.at(m, t, next_m=True, set_m1=True, **assignments)

    def _step(self, m: int, t: int, addr, step) -> None:
        if step is None:
            return
        self.at(m, t, inc_mode=step, bus_lo=BusSource.INC, bus_hi=BusSource.INC, **writeback(addr))

    # @intent:responsibility 3Tのメモリ読み出しサイクル。T2でアドレスレジスタを増減し、T3でデータを取り込みます。
    def mem_read(self, m: int, addr, capture: Dict[str, object], step=None) -> "Timeline":
        self.at(m, 1, al_we=True, al_src=addr, f_mread=True)
        self.at(m, 2, f_mread=True)
        self._step(m, 2, addr, step)
        self.at(m, 3, f_mread=True, **capture)
        return self

    # @intent:responsibility 3Tのメモリ書き込みサイクル。T2でデータを駆動し、T3でアドレスレジスタを増減します。
    def mem_write(self, m: int, addr, data: Dict[str, object], step=None) -> "Timeline":
        self.at(m, 1, al_we=True, al_src=addr, f_mwrite=True)
        self.at(m, 2, f_mwrite=True, **data)
        self.at(m, 3, f_mwrite=True)
        self._step(m, 3, addr, step)
        return self

    # @intent:responsibility 4TのI/O読み出しサイクル（自動ウェイト1T込み）。
    def io_read(self, m: int, addr, capture: Dict[str, object]) -> "Timeline":
        for t in range(1, 5):
            self.at(m, t, f_ioread=True)
        self.at(m, 1, al_we=True, al_src=addr)
        self.at(m, 3, **capture)
        return self

    def io_write(self, m: int, addr, data: Dict[str, object]) -> "Timeline":
        for t in range(1, 5):
            self.at(m, t, f_iowrite=True)
        self.at(m, 1, al_we=True, al_src=addr)
        self.at(m, 2, **data)
        return self

    # @intent:responsibility インデックス付きアドレッシングの共有シーケンスを挿入し、本体の開始マシンサイクルを返します。
    def indexed(self) -> int:
        add_ixy_d(self)
        return 4

    def rows(self) -> Dict[RowKey, Override]:
        return dict(self._rows)


# @intent:responsibility IX/IY+d のアドレス計算シーケンス（全インデックス対応クラスで共有）。
# @intent:invariant M2でディスプレースメントをZに読み込み、M3の5ティックでixy_dをアサートしてWZ←IX/IY+dを計算します。
def add_ixy_d(timeline: Timeline) -> None:
    timeline.next_cycle(1, 4)
    timeline.mem_read(2, AddrSource.PC, into_wz(HiLo.LO), step=IncMode.INC)
    timeline.next_cycle(2, 3)
    compute_ixy_address(timeline, 3)


# @intent:utility_function 5ティックのアドレス計算サイクル。T4/T5でWZ←IX/IY+Zを下位、上位の順に求めます。
def compute_ixy_address(timeline: Timeline, m: int) -> None:
    for t in range(1, 6):
        timeline.at(m, t, ixy_d=True)
    timeline.at(m, 4, reg=RegRef(RegSelect.IXY, HiLo.LO), alu_op=AluOp.DISP_LO,
                bus_lo=BusSource.ALU, wz_we=HiLo.LO)
    timeline.at(m, 5, reg=RegRef(RegSelect.IXY, HiLo.HI), alu_op=AluOp.DISP_HI,
                bus_hi=BusSource.ALU, wz_we=HiLo.HI)
    timeline.next_cycle(m, 5)


# --- 取り込み/駆動のヘルパー ---

_WRITEBACK_REGS = {
    AddrSource.PC: REG_PC,
    AddrSource.SP: REG_SP,
    AddrSource.HL: RegRef(RegSelect.HL, HiLo.BOTH),
    AddrSource.DE: RegRef(RegSelect.DE, HiLo.BOTH),
    AddrSource.BC: RegRef(RegSelect.BC, HiLo.BOTH),
}


# @intent:utility_function インクリメンタ出力をアドレス元のレジスタに書き戻すための割り当てを返します。
def writeback(addr) -> Dict[str, object]:
    if addr is AddrSource.WZ:
        return {"wz_we": HiLo.BOTH}
    if isinstance(addr, Operand):
        return {"reg": addr, "reg_we": True}
    return {"reg": _WRITEBACK_REGS[addr], "reg_we": True}


def into_reg(ref) -> Dict[str, object]:
    return {"bus_lo": BusSource.DATA_PIN, "reg": ref, "reg_we": True}


def into_wz(hilo: HiLo) -> Dict[str, object]:
    if hilo is HiLo.HI:
        return {"bus_hi": BusSource.DATA_PIN, "wz_we": HiLo.HI}
    return {"bus_lo": BusSource.DATA_PIN, "wz_we": HiLo.LO}


def into_alu(**extra) -> Dict[str, object]:
    return dict(alu_in_src=BusSource.DATA_PIN, **extra)


def from_reg(ref) -> Dict[str, object]:
    return {"reg": ref, "bus_lo": BusSource.REG}


def from_alu(op: AluOp = AluOp.PASS) -> Dict[str, object]:
    return {"alu_op": op, "bus_lo": BusSource.ALU}


# @intent:utility_function WZ下位とデータピン上位を組にして16ビットレジスタへ書き込む割り当て。
def word_into(ref) -> Dict[str, object]:
    return {"bus_hi": BusSource.DATA_PIN, "bus_lo": BusSource.WZ, "reg": ref, "reg_we": True}


# @intent:data_structure 1命令クラスのマトリクス定義。
@dataclass(frozen=True)
class ClassSchedule:
    variant_kind: VariantKind
    builders: Dict[Variant, Callable[[], Timeline]]
    substitutes_hl: bool = False
