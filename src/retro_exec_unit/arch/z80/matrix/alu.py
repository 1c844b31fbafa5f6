"""
Z80 算術/論理/ビット操作命令のタイムライン定義。

8ビットレジスタファイルはポートが1つしかないため、読み出しと書き込みが別のレジスタになる命令は
T3でALUの入力ラッチにオペランドを取り込み、T4で結果を書き戻します。
"""
from retro_exec_unit.common.types import AddrSource, IncMode, BusSource, HiLo, AluOp, REG_A
from retro_exec_unit.arch.z80.decode import InstructionClass as C
from .base import (
    Timeline, Variant, VariantKind, ClassSchedule, Operand,
    into_alu, into_wz, from_alu, writeback, compute_ixy_address,
)


def _operand_address(variant: Variant) -> AddrSource:
    return AddrSource.WZ if variant is Variant.IXY else AddrSource.HL


# @intent:utility_function T3でレジスタをALU入力にラッチし、T4で結果をレジスタに書き戻す4T命令の共通形。
def _register_op(name: str, src, dst, op: AluOp, write: bool = True) -> Timeline:
    timeline = Timeline(name)
    timeline.at(1, 3, reg=src, alu_in_src=BusSource.REG)
    if write:
        timeline.at(1, 4, reg=dst, reg_we=True, flags_we=True, **from_alu(op))
    else:
        timeline.at(1, 4, alu_op=op, flags_we=True)
    return timeline.finish(1, 4)


# @intent:responsibility ADD/ADC/SUB/SBC/AND/XOR/OR/CP A,r (4T)。CPの場合にAを変更しないのはALU側の責務です。
def alu_r() -> Timeline:
    return _register_op("ALU_R", Operand.R_SRC, REG_A, AluOp.OPCODE)


# @intent:responsibility ALU A,n (7T)。データピンの値を透過的にALUへ入力し、同じティックで結果をAに書き込みます。
def alu_n() -> Timeline:
    timeline = Timeline("ALU_N")
    timeline.next_cycle(1, 4)
    timeline.mem_read(2, AddrSource.PC, into_alu(reg=REG_A, reg_we=True, flags_we=True, **from_alu(AluOp.OPCODE)),
                      step=IncMode.INC)
    return timeline.finish(2, 3)


# @intent:responsibility ALU A,(HL) (7T) / ALU A,(IX+d) (19T)。
def alu_mem(variant: Variant) -> Timeline:
    timeline = Timeline(f"ALU_MEM/{variant.name}")
    if variant is Variant.IXY:
        m = timeline.indexed()
    else:
        timeline.next_cycle(1, 4)
        m = 2
    timeline.mem_read(m, _operand_address(variant),
                      into_alu(reg=REG_A, reg_we=True, flags_we=True, **from_alu(AluOp.OPCODE)))
    return timeline.finish(m, 3)


def inc_dec_r() -> Timeline:
    return _register_op("INC_DEC_R", Operand.R_DST, Operand.R_DST, AluOp.OPCODE)


# @intent:utility_function 読み出し(4T)→変更→書き戻し(3T)のメモリ操作。
def _read_modify_write(timeline: Timeline, m: int, addr, op: AluOp) -> int:
    timeline.mem_read(m, addr, into_alu())
    timeline.at(m, 4, alu_op=op, flags_we=True)
    timeline.next_cycle(m, 4)
    timeline.mem_write(m + 1, addr, from_alu(op))
    return m + 1


# @intent:responsibility INC/DEC (HL) (11T) / INC/DEC (IX+d) (23T)。
def inc_dec_mem(variant: Variant) -> Timeline:
    timeline = Timeline(f"INC_DEC_MEM/{variant.name}")
    if variant is Variant.IXY:
        m = timeline.indexed()
    else:
        timeline.next_cycle(1, 4)
        m = 2
    last = _read_modify_write(timeline, m, _operand_address(variant), AluOp.OPCODE)
    return timeline.finish(last, 3)


# @intent:responsibility INC/DEC rr (6T)。インクリメンタを通して16ビットペアを増減します。
def inc_dec_rp() -> Timeline:
    timeline = Timeline("INC_DEC_RP")
    timeline.at(1, 4, al_we=True, al_src=Operand.RP)
    timeline.at(1, 5, inc_mode=Operand.STEP, bus_lo=BusSource.INC, bus_hi=BusSource.INC, **writeback(Operand.RP))
    return timeline.finish(1, 6)


# @intent:responsibility ADD HL,rr (11T) と ED ADC/SBC HL,rr (15T)。下位→上位の順に8ビットずつ計算します。
def add16() -> Timeline:
    timeline = Timeline("ADD16")
    timeline.next_cycle(1, 4)
    timeline.at(2, 1, reg=Operand.RP_LO, alu_in_src=BusSource.REG)
    timeline.at(2, 2, reg=Operand.HL_LO, reg_we=True, **from_alu(AluOp.ARITH16_LO))
    timeline.at(2, 3, reg=Operand.RP_HI, alu_in_src=BusSource.REG)
    timeline.next_cycle(2, 4)
    timeline.at(3, 1, reg=Operand.HL_HI, reg_we=True, flags_we=True, **from_alu(AluOp.ARITH16_HI))
    return timeline.finish(3, 3)


# @intent:responsibility RLCA/RRCA/RLA/RRA/DAA/CPL/SCF/CCF と ED NEG (4T)。
def acc_op() -> Timeline:
    return _register_op("ACC_OP", REG_A, REG_A, AluOp.OPCODE)



# --- CB プリフィックス ---

# @intent:responsibility DD/FD CB d op 形式の前半部。M2でディスプレースメント、M3でオペコードを読みつつアドレスを計算します。
# @intent:invariant CBプリフィックスのフェッチ(M1)はPREFIX_CBクラスが担当するため、このタイムラインにM1の行はありません。
def indexed_cb_preamble(timeline: Timeline) -> int:
    timeline.mem_read(2, AddrSource.PC, into_wz(HiLo.LO), step=IncMode.INC)
    timeline.next_cycle(2, 3)
    timeline.mem_read(3, AddrSource.PC, {"bus_lo": BusSource.DATA_PIN, "ir_we": True}, step=IncMode.INC)
    compute_ixy_address(timeline, 3)
    return 4


def cb_r(variant: Variant) -> Timeline:
    if variant is Variant.IXY:
        return cb_mem(variant)
    return _register_op("CB_R", Operand.R_SRC, Operand.R_SRC, AluOp.CB)


def cb_bit_r(variant: Variant) -> Timeline:
    if variant is Variant.IXY:
        return cb_bit_mem(variant)
    return _register_op("CB_BIT_R", Operand.R_SRC, None, AluOp.CB, write=False)


# @intent:responsibility 回転/シフト/SET/RES (HL) (15T) / (IX+d) (23T)。
def cb_mem(variant: Variant) -> Timeline:
    timeline = Timeline(f"CB_MEM/{variant.name}")
    if variant is Variant.IXY:
        m = indexed_cb_preamble(timeline)
    else:
        timeline.next_cycle(1, 4)
        m = 2
    last = _read_modify_write(timeline, m, _operand_address(variant), AluOp.CB)
    return timeline.finish(last, 3)


# @intent:responsibility BIT b,(HL) (12T) / BIT b,(IX+d) (20T)。
def cb_bit_mem(variant: Variant) -> Timeline:
    timeline = Timeline(f"CB_BIT_MEM/{variant.name}")
    if variant is Variant.IXY:
        m = indexed_cb_preamble(timeline)
    else:
        timeline.next_cycle(1, 4)
        m = 2
    timeline.mem_read(m, _operand_address(variant), into_alu())
    timeline.at(m, 4, alu_op=AluOp.CB, flags_we=True)
    return timeline.finish(m, 4)


# @intent:responsibility RLD/RRD (18T)。M3でAの新しい値を、M4でメモリの新しい値を出力します。
def rld_rrd() -> Timeline:
    timeline = Timeline("RLD_RRD")
    timeline.next_cycle(1, 4)
    timeline.mem_read(2, AddrSource.HL, into_alu())
    timeline.next_cycle(2, 3)
    timeline.at(3, 3, reg=REG_A, reg_we=True, flags_we=True, **from_alu(AluOp.NIBBLE_A))
    timeline.next_cycle(3, 4)
    timeline.mem_write(4, AddrSource.HL, from_alu(AluOp.NIBBLE_MEM))
    return timeline.finish(4, 3)


def _indexed(builder):
    return {Variant.BASE: lambda: builder(Variant.BASE), Variant.IXY: lambda: builder(Variant.IXY)}


SCHEDULES = {
    C.ALU_R: ClassSchedule(VariantKind.NONE, {Variant.BASE: alu_r}, substitutes_hl=True),
    C.ALU_N: ClassSchedule(VariantKind.NONE, {Variant.BASE: alu_n}),
    C.ALU_MEM: ClassSchedule(VariantKind.INDEX, _indexed(alu_mem)),
    C.INC_DEC_R: ClassSchedule(VariantKind.NONE, {Variant.BASE: inc_dec_r}, substitutes_hl=True),
    C.INC_DEC_MEM: ClassSchedule(VariantKind.INDEX, _indexed(inc_dec_mem)),
    C.INC_DEC_RP: ClassSchedule(VariantKind.NONE, {Variant.BASE: inc_dec_rp}, substitutes_hl=True),
    C.ADD16: ClassSchedule(VariantKind.NONE, {Variant.BASE: add16}, substitutes_hl=True),
    C.ACC_OP: ClassSchedule(VariantKind.NONE, {Variant.BASE: acc_op}),
    C.CB_R: ClassSchedule(VariantKind.INDEX, _indexed(cb_r)),
    C.CB_BIT_R: ClassSchedule(VariantKind.INDEX, _indexed(cb_bit_r)),
    C.CB_MEM: ClassSchedule(VariantKind.INDEX, _indexed(cb_mem)),
    C.CB_BIT_MEM: ClassSchedule(VariantKind.INDEX, _indexed(cb_bit_mem)),
    C.RLD_RRD: ClassSchedule(VariantKind.NONE, {Variant.BASE: rld_rrd}),
}
