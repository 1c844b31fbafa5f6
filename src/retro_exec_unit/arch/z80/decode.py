# retro_exec_unit/arch/z80/decode.py
"""
Z80 デコードベクトルの定義。

外部の静的デコーダが生成するビットフィールドを、命令クラスの集合とオペコードの下位6ビット
(op0..op5) の組として表現します。
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import FrozenSet, Iterable


# @intent:responsibility 命令マトリクスの行を選択する命令クラス（PLAエントリ）を列挙します。
# @intent:rationale タイミングが同じ命令群を1クラスにまとめ、レジスタ選択などの差はopビットで解決します。
class InstructionClass(Enum):
    NOP = "nop"
    HALT = "halt"
    LD_R_R = "ld r,r'"
    LD_R_N = "ld r,n"
    LD_R_MEM = "ld r,(hl)"
    LD_MEM_R = "ld (hl),r"
    LD_MEM_N = "ld (hl),n"
    LD_RP_NN = "ld rr,nn"
    LD_A_MEM_PAIR = "ld a,(bc/de)"
    LD_MEM_PAIR_A = "ld (bc/de),a"
    LD_A_NN_MEM = "ld a,(nn)"
    LD_NN_MEM_A = "ld (nn),a"
    LD_HL_NN_MEM = "ld rr,(nn)"
    LD_NN_MEM_HL = "ld (nn),rr"
    LD_SP_HL = "ld sp,hl"
    PUSH = "push qq"
    POP = "pop qq"
    EX_SP_HL = "ex (sp),hl"
    EXCHANGE = "ex/exx"
    ALU_R = "alu r"
    ALU_N = "alu n"
    ALU_MEM = "alu (hl)"
    INC_DEC_R = "inc/dec r"
    INC_DEC_MEM = "inc/dec (hl)"
    INC_DEC_RP = "inc/dec rr"
    ADD16 = "add/adc/sbc hl,rr"
    ACC_OP = "acc op"
    CB_R = "cb r"
    CB_BIT_R = "bit b,r"
    CB_MEM = "cb (hl)"
    CB_BIT_MEM = "bit b,(hl)"
    JP = "jp nn"
    JP_CC = "jp cc,nn"
    JP_HL = "jp (hl)"
    JR = "jr e"
    JR_CC = "jr cc,e"
    DJNZ = "djnz e"
    CALL = "call nn"
    CALL_CC = "call cc,nn"
    RET = "ret"
    RET_CC = "ret cc"
    RETI_RETN = "reti/retn"
    RST = "rst p"
    IN_A_N = "in a,(n)"
    OUT_N_A = "out (n),a"
    IN_R_C = "in r,(c)"
    OUT_C_R = "out (c),r"
    BLOCK_LD = "ldi/ldir"
    BLOCK_CP = "cpi/cpir"
    BLOCK_IN = "ini/inir"
    BLOCK_OUT = "outi/otir"
    RLD_RRD = "rld/rrd"
    LD_IR_A = "ld i/r,a"
    LD_A_IR = "ld a,i/r"
    IM_SET = "im n"
    DI_EI = "di/ei"
    PREFIX_CB = "prefix cb"
    PREFIX_ED = "prefix ed"
    PREFIX_IXY = "prefix dd/fd"
    # モードフラグで選択されるクラス（デコーダは設定しない）
    INT_NMI = "nmi"
    INT_IM1 = "int im1"
    INT_IM2 = "int im2"
    HALT_STATE = "halt state"


# @intent:constant モードフラグで選択されるクラス。
MODE_CLASSES = frozenset({
    InstructionClass.INT_NMI, InstructionClass.INT_IM1,
    InstructionClass.INT_IM2, InstructionClass.HALT_STATE,
})

# @intent:constant ビット位置の順序（列挙の宣言順）。
CLASS_ORDER = tuple(InstructionClass)
OP_BITS = 6


# @intent:responsibility デコーダが使用するオペコード表の種類。外部のプリフィックスラッチが選択します。
class OpcodeTable(Enum):
    MAIN = "MAIN"
    CB = "CB"
    ED = "ED"


# @intent:responsibility 外部デコーダが生成するデコードベクトルを保持します。
@dataclass(frozen=True)
class DecodeVector:
    """
    op: オペコードのビット0..5 (op0..op5)
    classes: 一致した命令クラスの集合。空集合は未知のオペコードを意味します。
    """
    op: int = 0
    classes: FrozenSet[InstructionClass] = field(default_factory=frozenset)

    def __post_init__(self):
        if not 0 <= self.op < (1 << OP_BITS):
            raise ValueError(f"op field {self.op:#x} does not fit in {OP_BITS} bits.")

    @classmethod
    def of(cls, op: int, *classes: InstructionClass) -> "DecodeVector":
        return cls(op & 0x3F, frozenset(classes))

    @property
    def is_valid(self) -> bool:
        return bool(self.classes)

    # @intent:utility_function 固定幅の整数にパックします。上位6ビットがop0..op5、下位が各クラスのビットです。
    def to_bits(self) -> int:
        value = self.op << len(CLASS_ORDER)
        for index, instruction_class in enumerate(CLASS_ORDER):
            if instruction_class in self.classes:
                value |= 1 << index
        return value

    @classmethod
    def from_bits(cls, value: int) -> "DecodeVector":
        width = len(CLASS_ORDER)
        classes = [c for index, c in enumerate(CLASS_ORDER) if value & (1 << index)]
        return cls((value >> width) & 0x3F, frozenset(classes))

    @staticmethod
    def width() -> int:
        return len(CLASS_ORDER) + OP_BITS

    def class_names(self) -> Iterable[str]:
        return sorted(c.name for c in self.classes)
