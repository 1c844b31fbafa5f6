"""
Z80 ロード/転送/スタック命令のタイムライン定義。
"""
from retro_exec_unit.common.types import AddrSource, IncMode, BusSource, HiLo, REG_A, REG_SP
from retro_exec_unit.arch.z80.decode import InstructionClass as C
from .base import (
    Timeline, Variant, VariantKind, ClassSchedule, Operand,
    into_reg, into_wz, into_alu, from_reg, from_alu, word_into,
)


def _body_start(timeline: Timeline, variant: Variant) -> int:
    if variant is Variant.IXY:
        return timeline.indexed()
    timeline.next_cycle(1, 4)
    return 2


def _indexed_addr(variant: Variant) -> AddrSource:
    return AddrSource.WZ if variant is Variant.IXY else AddrSource.HL


# @intent:responsibility LD r,r' (4T)。T3で転送元をALUラッチへ、T4で転送先へ書き込みます。
def ld_r_r() -> Timeline:
    timeline = Timeline("LD_R_R")
    timeline.at(1, 3, alu_in_src=BusSource.REG, reg=Operand.R_SRC)
    timeline.at(1, 4, reg=Operand.R_DST, reg_we=True, **from_alu())
    return timeline.finish(1, 4)


# @intent:responsibility LD r,n (7T)。
def ld_r_n() -> Timeline:
    timeline = Timeline("LD_R_N")
    timeline.next_cycle(1, 4)
    timeline.mem_read(2, AddrSource.PC, into_reg(Operand.R_DST), step=IncMode.INC)
    return timeline.finish(2, 3)


# @intent:responsibility LD r,(HL) (7T) / LD r,(IX+d) (19T)。
def ld_r_mem(variant: Variant) -> Timeline:
    timeline = Timeline(f"LD_R_MEM/{variant.name}")
    m = _body_start(timeline, variant)
    timeline.mem_read(m, _indexed_addr(variant), into_reg(Operand.R_DST))
    return timeline.finish(m, 3)


# @intent:responsibility LD (HL),r (7T) / LD (IX+d),r (19T)。
def ld_mem_r(variant: Variant) -> Timeline:
    timeline = Timeline(f"LD_MEM_R/{variant.name}")
    m = _body_start(timeline, variant)
    timeline.mem_write(m, _indexed_addr(variant), from_reg(Operand.R_SRC))
    return timeline.finish(m, 3)


# @intent:responsibility LD (HL),n (10T) / LD (IX+d),n (19T)。
# @intent:rationale IX/IY形式ではnの読み出しがアドレス計算の5ティックサイクル(M3)のT1..T3に重なります。
def ld_mem_n(variant: Variant) -> Timeline:
    timeline = Timeline(f"LD_MEM_N/{variant.name}")
    if variant is Variant.IXY:
        timeline.indexed()
        timeline.mem_read(3, AddrSource.PC, into_alu(), step=IncMode.INC)
        m = 4
    else:
        timeline.next_cycle(1, 4)
        timeline.mem_read(2, AddrSource.PC, into_alu(), step=IncMode.INC)
        timeline.next_cycle(2, 3)
        m = 3
    timeline.mem_write(m, _indexed_addr(variant), from_alu())
    return timeline.finish(m, 3)


# @intent:responsibility LD rr,nn (10T)。
def ld_rp_nn() -> Timeline:
    timeline = Timeline("LD_RP_NN")
    timeline.next_cycle(1, 4)
    timeline.mem_read(2, AddrSource.PC, into_wz(HiLo.LO), step=IncMode.INC)
    timeline.next_cycle(2, 3)
    timeline.mem_read(3, AddrSource.PC, word_into(Operand.RP), step=IncMode.INC)
    return timeline.finish(3, 3)


def ld_a_mem_pair() -> Timeline:
    timeline = Timeline("LD_A_MEM_PAIR")
    timeline.next_cycle(1, 4)
    timeline.mem_read(2, Operand.PAIR_BC_DE, into_reg(REG_A))
    return timeline.finish(2, 3)


def ld_mem_pair_a() -> Timeline:
    timeline = Timeline("LD_MEM_PAIR_A")
    timeline.next_cycle(1, 4)
    timeline.mem_write(2, Operand.PAIR_BC_DE, from_reg(REG_A))
    return timeline.finish(2, 3)


# @intent:utility_function 2バイトの即値アドレスをWZに読み込みます (M2, M3)。
def _address_operand(timeline: Timeline) -> None:
    timeline.next_cycle(1, 4)
    timeline.mem_read(2, AddrSource.PC, into_wz(HiLo.LO), step=IncMode.INC)
    timeline.next_cycle(2, 3)
    timeline.mem_read(3, AddrSource.PC, into_wz(HiLo.HI), step=IncMode.INC)
    timeline.next_cycle(3, 3)


# @intent:responsibility LD A,(nn) (13T)。
def ld_a_nn_mem() -> Timeline:
    timeline = Timeline("LD_A_NN_MEM")
    _address_operand(timeline)
    timeline.mem_read(4, AddrSource.WZ, into_reg(REG_A))
    return timeline.finish(4, 3)


# @intent:responsibility LD (nn),A (13T)。
def ld_nn_mem_a() -> Timeline:
    timeline = Timeline("LD_NN_MEM_A")
    _address_operand(timeline)
    timeline.mem_write(4, AddrSource.WZ, from_reg(REG_A))
    return timeline.finish(4, 3)


# @intent:responsibility LD HL,(nn) (16T) と ED LD rr,(nn) (20T)。
def ld_hl_nn_mem() -> Timeline:
    timeline = Timeline("LD_HL_NN_MEM")
    _address_operand(timeline)
    timeline.mem_read(4, AddrSource.WZ, into_reg(Operand.RP_LO), step=IncMode.INC)
    timeline.next_cycle(4, 3)
    timeline.mem_read(5, AddrSource.WZ, into_reg(Operand.RP_HI))
    return timeline.finish(5, 3)


# @intent:responsibility LD (nn),HL (16T) と ED LD (nn),rr (20T)。
def ld_nn_mem_hl() -> Timeline:
    timeline = Timeline("LD_NN_MEM_HL")
    _address_operand(timeline)
    timeline.mem_write(4, AddrSource.WZ, from_reg(Operand.RP_LO), step=IncMode.INC)
    timeline.next_cycle(4, 3)
    timeline.mem_write(5, AddrSource.WZ, from_reg(Operand.RP_HI))
    return timeline.finish(5, 3)


# @intent:responsibility LD SP,HL (6T)。HLをWZ経由でSPへ転送します。
def ld_sp_hl() -> Timeline:
    timeline = Timeline("LD_SP_HL")
    timeline.at(1, 4, reg=Operand.HL, bus_lo=BusSource.REG, bus_hi=BusSource.REG, wz_we=HiLo.BOTH)
    timeline.at(1, 5, reg=REG_SP, reg_we=True, bus_lo=BusSource.WZ, bus_hi=BusSource.WZ)
    return timeline.finish(1, 6)


# @intent:utility_function SPを1つ減らす2ティック (アドレスラッチへのロード → インクリメンタでの減算と書き戻し)。
def predecrement_sp(timeline: Timeline, m: int, t: int) -> None:
    timeline.at(m, t, al_we=True, al_src=AddrSource.SP)
    timeline.at(m, t + 1, inc_mode=IncMode.DEC, bus_lo=BusSource.INC, bus_hi=BusSource.INC,
                reg=REG_SP, reg_we=True)


# @intent:utility_function 16ビット値を上位→下位の順にスタックへ積む2つの書き込みサイクル。
def push_pair(timeline: Timeline, m: int, hi, lo) -> None:
    timeline.mem_write(m, AddrSource.SP, hi, step=IncMode.DEC)
    timeline.next_cycle(m, 3)
    timeline.mem_write(m + 1, AddrSource.SP, lo)


# @intent:responsibility PUSH qq (11T)。
def push() -> Timeline:
    timeline = Timeline("PUSH")
    predecrement_sp(timeline, 1, 4)
    timeline.next_cycle(1, 5)
    push_pair(timeline, 2, from_reg(Operand.QQ_HI), from_reg(Operand.QQ_LO))
    return timeline.finish(3, 3)


# @intent:responsibility POP qq (10T)。
def pop() -> Timeline:
    timeline = Timeline("POP")
    timeline.next_cycle(1, 4)
    timeline.mem_read(2, AddrSource.SP, into_reg(Operand.QQ_LO), step=IncMode.INC)
    timeline.next_cycle(2, 3)
    timeline.mem_read(3, AddrSource.SP, into_reg(Operand.QQ_HI), step=IncMode.INC)
    return timeline.finish(3, 3)


# @intent:responsibility EX (SP),HL (19T)。スタックの値をWZに読み、HLを書き戻した後、WZをHLに転送します。
def ex_sp_hl() -> Timeline:
    timeline = Timeline("EX_SP_HL")
    timeline.next_cycle(1, 4)
    timeline.mem_read(2, AddrSource.SP, into_wz(HiLo.LO), step=IncMode.INC)
    timeline.next_cycle(2, 3)
    timeline.mem_read(3, AddrSource.SP, into_wz(HiLo.HI))
    timeline.next_cycle(3, 4)
    timeline.mem_write(4, AddrSource.SP, from_reg(Operand.HL_HI), step=IncMode.DEC)
    timeline.next_cycle(4, 3)
    timeline.mem_write(5, AddrSource.SP, from_reg(Operand.HL_LO))
    timeline.at(5, 4, reg=Operand.HL, reg_we=True, bus_lo=BusSource.WZ, bus_hi=BusSource.WZ)
    return timeline.finish(5, 5)


def exchange() -> Timeline:
    timeline = Timeline("EXCHANGE")
    timeline.at(1, 4, ex_we=True)
    return timeline.finish(1, 4)


# @intent:responsibility LD I,A / LD R,A (9T)。
def ld_ir_a() -> Timeline:
    timeline = Timeline("LD_IR_A")
    timeline.at(1, 4, reg=REG_A, alu_in_src=BusSource.REG)
    timeline.at(1, 5, reg=Operand.IR_REG, reg_we=True, **from_alu())
    return timeline.finish(1, 5)


# @intent:responsibility LD A,I / LD A,R (9T)。フラグも更新します。
def ld_a_ir() -> Timeline:
    timeline = Timeline("LD_A_IR")
    timeline.at(1, 4, reg=Operand.IR_REG, alu_in_src=BusSource.REG)
    timeline.at(1, 5, reg=REG_A, reg_we=True, flags_we=True, **from_alu())
    return timeline.finish(1, 5)


def _indexed(builder):
    return {Variant.BASE: lambda: builder(Variant.BASE), Variant.IXY: lambda: builder(Variant.IXY)}


SCHEDULES = {
    C.LD_R_R: ClassSchedule(VariantKind.NONE, {Variant.BASE: ld_r_r}, substitutes_hl=True),
    C.LD_R_N: ClassSchedule(VariantKind.NONE, {Variant.BASE: ld_r_n}, substitutes_hl=True),
    C.LD_R_MEM: ClassSchedule(VariantKind.INDEX, _indexed(ld_r_mem)),
    C.LD_MEM_R: ClassSchedule(VariantKind.INDEX, _indexed(ld_mem_r)),
    C.LD_MEM_N: ClassSchedule(VariantKind.INDEX, _indexed(ld_mem_n)),
    C.LD_RP_NN: ClassSchedule(VariantKind.NONE, {Variant.BASE: ld_rp_nn}, substitutes_hl=True),
    C.LD_A_MEM_PAIR: ClassSchedule(VariantKind.NONE, {Variant.BASE: ld_a_mem_pair}),
    C.LD_MEM_PAIR_A: ClassSchedule(VariantKind.NONE, {Variant.BASE: ld_mem_pair_a}),
    C.LD_A_NN_MEM: ClassSchedule(VariantKind.NONE, {Variant.BASE: ld_a_nn_mem}),
    C.LD_NN_MEM_A: ClassSchedule(VariantKind.NONE, {Variant.BASE: ld_nn_mem_a}),
    C.LD_HL_NN_MEM: ClassSchedule(VariantKind.NONE, {Variant.BASE: ld_hl_nn_mem}, substitutes_hl=True),
    C.LD_NN_MEM_HL: ClassSchedule(VariantKind.NONE, {Variant.BASE: ld_nn_mem_hl}, substitutes_hl=True),
    C.LD_SP_HL: ClassSchedule(VariantKind.NONE, {Variant.BASE: ld_sp_hl}, substitutes_hl=True),
    C.PUSH: ClassSchedule(VariantKind.NONE, {Variant.BASE: push}, substitutes_hl=True),
    C.POP: ClassSchedule(VariantKind.NONE, {Variant.BASE: pop}, substitutes_hl=True),
    C.EX_SP_HL: ClassSchedule(VariantKind.NONE, {Variant.BASE: ex_sp_hl}, substitutes_hl=True),
    C.EXCHANGE: ClassSchedule(VariantKind.NONE, {Variant.BASE: exchange}),
    C.LD_IR_A: ClassSchedule(VariantKind.NONE, {Variant.BASE: ld_ir_a}),
    C.LD_A_IR: ClassSchedule(VariantKind.NONE, {Variant.BASE: ld_a_ir}),
}
