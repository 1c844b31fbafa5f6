"""
共通の型定義を提供するモジュール。
データパスの各セレクタ（アドレスラッチ、インクリメンタ、バスドライバ、レジスタファイル、ALU）が
取り得る値を列挙型として定義します。制御ユニット、トレーサ、UIの全てのレイヤーで共通して使用されます。
"""
from enum import Enum
from typing import NamedTuple


# @intent:data_structure アドレスラッチへの入力元。
class AddrSource(Enum):
    NONE = "NONE"
    PC = "PC"
    SP = "SP"
    HL = "HL"
    DE = "DE"
    BC = "BC"
    IXY = "IXY"   # IX または IY（どちらかは外部のプリフィックスラッチが決める）
    WZ = "WZ"
    IR = "IR"     # リフレッシュアドレス (I:R)
    ZERO = "ZERO"


# @intent:data_structure アドレスインクリメンタの動作モード。
class IncMode(Enum):
    PASS = "PASS"
    ZERO = "ZERO"
    INC = "INC"
    DEC = "DEC"


# @intent:data_structure 内部データバス（バイトレーンごと）のドライバ選択。
class BusSource(Enum):
    NONE = "NONE"
    DATA_PIN = "DATA_PIN"
    REG = "REG"
    ALU = "ALU"
    INC = "INC"
    WZ = "WZ"
    OPCODE = "OPCODE"           # 命令レジスタの内容
    ZERO = "ZERO"
    RST_VECTOR = "RST_VECTOR"   # オペコードのビット5..3 × 8
    NMI_VECTOR = "NMI_VECTOR"   # 0x66
    IM1_VECTOR = "IM1_VECTOR"   # 0x38


# @intent:data_structure レジスタファイルの選択（16ビットペア単位）。
class RegSelect(Enum):
    NONE = "NONE"
    AF = "AF"
    BC = "BC"
    DE = "DE"
    HL = "HL"
    SP = "SP"
    PC = "PC"
    IXY = "IXY"
    IR = "IR"


# @intent:data_structure ペア内の上位/下位バイト選択。
class HiLo(Enum):
    NONE = "NONE"
    LO = "LO"
    HI = "HI"
    BOTH = "BOTH"


# @intent:data_structure ALUに要求する演算。具体的な演算種別の一部はオペコードビットからALU自身が決める。
class AluOp(Enum):
    NONE = "NONE"
    PASS = "PASS"
    OPCODE = "OPCODE"           # ADD/ADC/SUB/SBC/AND/XOR/OR/CP, INC/DEC, 回転系など
    DEC = "DEC"                 # フラグを変えない8ビット減算 (DJNZ, ブロックI/O)
    ARITH16_LO = "ARITH16_LO"
    ARITH16_HI = "ARITH16_HI"
    REL_LO = "REL_LO"           # PC + e (相対ジャンプ)
    REL_HI = "REL_HI"
    DISP_LO = "DISP_LO"         # IX/IY + d
    DISP_HI = "DISP_HI"
    CB = "CB"
    BLOCK = "BLOCK"
    NIBBLE_A = "NIBBLE_A"       # RLD/RRD のAへの結果
    NIBBLE_MEM = "NIBBLE_MEM"   # RLD/RRD のメモリへの結果


# @intent:data_structure レジスタファイル上の1つの参照（ペアと上位/下位）。
class RegRef(NamedTuple):
    sel: RegSelect
    hilo: HiLo


# よく使うレジスタ参照
REG_NONE = RegRef(RegSelect.NONE, HiLo.NONE)
REG_A = RegRef(RegSelect.AF, HiLo.HI)
REG_B = RegRef(RegSelect.BC, HiLo.HI)
REG_C = RegRef(RegSelect.BC, HiLo.LO)
REG_D = RegRef(RegSelect.DE, HiLo.HI)
REG_E = RegRef(RegSelect.DE, HiLo.LO)
REG_H = RegRef(RegSelect.HL, HiLo.HI)
REG_L = RegRef(RegSelect.HL, HiLo.LO)
REG_PC = RegRef(RegSelect.PC, HiLo.BOTH)
REG_PC_LO = RegRef(RegSelect.PC, HiLo.LO)
REG_PC_HI = RegRef(RegSelect.PC, HiLo.HI)
REG_SP = RegRef(RegSelect.SP, HiLo.BOTH)
REG_BC = RegRef(RegSelect.BC, HiLo.BOTH)
REG_I = RegRef(RegSelect.IR, HiLo.HI)
