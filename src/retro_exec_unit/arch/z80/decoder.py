# retro_exec_unit/arch/z80/decoder.py
"""
Z80 参照用静的デコーダ。

命令レジスタの値とオペコード表（MAIN/CB/ED）からデコードベクトルを生成します。
制御ユニット本体の外部協調部品ですが、タイミングハーネスとテストが制御ユニットを駆動するために使用します。
"""
from typing import Dict, Optional

from retro_exec_unit.arch.z80.decode import InstructionClass as C, OpcodeTable, DecodeVector

# 0x40..0xBF, 0x00..0x3F の r フィールドで (HL) を表すコード
MEM_CODE = 0b110

_MAIN_FIXED: Dict[int, C] = {
    0x00: C.NOP,
    0x76: C.HALT,
    0x02: C.LD_MEM_PAIR_A, 0x12: C.LD_MEM_PAIR_A,
    0x0A: C.LD_A_MEM_PAIR, 0x1A: C.LD_A_MEM_PAIR,
    0x22: C.LD_NN_MEM_HL,
    0x2A: C.LD_HL_NN_MEM,
    0x32: C.LD_NN_MEM_A,
    0x3A: C.LD_A_NN_MEM,
    0x08: C.EXCHANGE, 0xD9: C.EXCHANGE, 0xEB: C.EXCHANGE,
    0x10: C.DJNZ,
    0x18: C.JR,
    0xC3: C.JP,
    0xCD: C.CALL,
    0xC9: C.RET,
    0xE3: C.EX_SP_HL,
    0xE9: C.JP_HL,
    0xF9: C.LD_SP_HL,
    0xD3: C.OUT_N_A,
    0xDB: C.IN_A_N,
    0xF3: C.DI_EI, 0xFB: C.DI_EI,
    0xCB: C.PREFIX_CB,
    0xED: C.PREFIX_ED,
    0xDD: C.PREFIX_IXY, 0xFD: C.PREFIX_IXY,
}


# @intent:utility_function 主オペコード表の命令クラスを返します。
def _decode_main(opcode: int) -> Optional[C]:
    if opcode in _MAIN_FIXED:
        return _MAIN_FIXED[opcode]

    x = opcode >> 6
    y = (opcode >> 3) & 0b111
    z = opcode & 0b111

    if x == 1:
        if y == MEM_CODE:
            return C.LD_MEM_R
        if z == MEM_CODE:
            return C.LD_R_MEM
        return C.LD_R_R
    if x == 2:
        return C.ALU_MEM if z == MEM_CODE else C.ALU_R
    if x == 0:
        if z == 0b000 and y >= 4:
            return C.JR_CC
        if z == 0b001:
            return C.ADD16 if y & 1 else C.LD_RP_NN
        if z == 0b011:
            return C.INC_DEC_RP
        if z in (0b100, 0b101):
            return C.INC_DEC_MEM if y == MEM_CODE else C.INC_DEC_R
        if z == 0b110:
            return C.LD_MEM_N if y == MEM_CODE else C.LD_R_N
        if z == 0b111:
            return C.ACC_OP
        return None
    # x == 3
    if z == 0b000:
        return C.RET_CC
    if z == 0b010:
        return C.JP_CC
    if z == 0b100:
        return C.CALL_CC
    if z == 0b110:
        return C.ALU_N
    if z == 0b111:
        return C.RST
    if z == 0b001 and not y & 1:
        return C.POP
    if z == 0b101 and not y & 1:
        return C.PUSH
    return None


def _decode_cb(opcode: int) -> C:
    memory = (opcode & 0b111) == MEM_CODE
    if (opcode >> 6) == 1:
        return C.CB_BIT_MEM if memory else C.CB_BIT_R
    return C.CB_MEM if memory else C.CB_R


_ED_FIXED: Dict[int, C] = {
    0x47: C.LD_IR_A, 0x4F: C.LD_IR_A,
    0x57: C.LD_A_IR, 0x5F: C.LD_A_IR,
    0x67: C.RLD_RRD, 0x6F: C.RLD_RRD,
}

_ED_BLOCK = {0b000: C.BLOCK_LD, 0b001: C.BLOCK_CP, 0b010: C.BLOCK_IN, 0b011: C.BLOCK_OUT}


def _decode_ed(opcode: int) -> Optional[C]:
    if opcode in _ED_FIXED:
        return _ED_FIXED[opcode]

    x = opcode >> 6
    y = (opcode >> 3) & 0b111
    z = opcode & 0b111

    if x == 1:
        if z == 0b000:
            return C.IN_R_C
        if z == 0b001:
            return C.OUT_C_R
        if z == 0b010:
            return C.ADD16
        if z == 0b011:
            return C.LD_HL_NN_MEM if y & 1 else C.LD_NN_MEM_HL
        if z == 0b100:
            return C.ACC_OP  # NEG
        if z == 0b101:
            return C.RETI_RETN
        if z == 0b110:
            return C.IM_SET
        return None
    if x == 2 and y >= 4 and z <= 0b011:
        return _ED_BLOCK[z]
    return None


# @intent:responsibility オペコードと表の種類からデコードベクトルを生成します。
# @intent:post-condition 一致するクラスがなければclassesが空のベクトルを返します。
def decode_opcode(opcode: int, table: OpcodeTable = OpcodeTable.MAIN) -> DecodeVector:
    """
    命令レジスタの値をデコードします。
    IX/IYの置き換えはデコーダではなくモードフラグ(use_ixiy)で表現されるため、ここでは扱いません。
    """
    opcode &= 0xFF
    if table is OpcodeTable.CB:
        instruction_class = _decode_cb(opcode)
    elif table is OpcodeTable.ED:
        instruction_class = _decode_ed(opcode)
    else:
        instruction_class = _decode_main(opcode)

    if instruction_class is None:
        return DecodeVector.of(opcode)
    return DecodeVector.of(opcode, instruction_class)
