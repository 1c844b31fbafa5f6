"""
Z80 分岐/サブルーチン/I/O/CPU制御命令のタイムライン定義。

PCへの新しい値の書き込みは命令の最終ティックで行い、同じティックでCycle Boundary Reload規則が
アドレスラッチにPCをロードします（書き込み中の値がバイパスされる前提）。
"""
from retro_exec_unit.common.types import (
    AddrSource, IncMode, BusSource, HiLo, AluOp,
    REG_A, REG_B, REG_PC, REG_PC_LO, REG_PC_HI,
)
from retro_exec_unit.arch.z80.decode import InstructionClass as C
from .base import (
    Timeline, Variant, VariantKind, ClassSchedule, Operand,
    into_reg, into_wz, from_reg, from_alu, word_into,
)
from .load import predecrement_sp, push_pair

_FROM_WZ = {"bus_lo": BusSource.WZ, "bus_hi": BusSource.WZ}


def _single(builder, substitutes_hl: bool = False) -> ClassSchedule:
    return ClassSchedule(VariantKind.NONE, {Variant.BASE: builder}, substitutes_hl=substitutes_hl)


def _conditional(builder) -> ClassSchedule:
    return ClassSchedule(VariantKind.COND, {
        Variant.TAKEN: lambda: builder(Variant.TAKEN),
        Variant.NOT_TAKEN: lambda: builder(Variant.NOT_TAKEN),
    })


# @intent:utility_function M1 T4だけで完結する命令。追加の割り当てをT4に置きます。
def _one_cycle(name: str, **assignments):
    def build() -> Timeline:
        timeline = Timeline(name)
        if assignments:
            timeline.at(1, 4, **assignments)
        return timeline.finish(1, 4)
    build.__name__ = name.lower()
    return build


nop = _one_cycle("NOP")
halt = _one_cycle("HALT", halt_set=True)
di_ei = _one_cycle("DI_EI", iff_we=True)
im_set = _one_cycle("IM_SET", im_we=True)
prefix_ixy = _one_cycle("PREFIX_IXY", set_ixiy=True)
prefix_ed = _one_cycle("PREFIX_ED", set_cbed=True)


# @intent:responsibility CBプリフィックス。IX/IY有効時はM1で終了せず、同じ命令のままディスプレースメントの読み出しへ進みます。
def prefix_cb(variant: Variant) -> Timeline:
    timeline = Timeline(f"PREFIX_CB/{variant.name}")
    if variant is Variant.IXY:
        return timeline.at(1, 4, set_cbed=True, next_m=True)
    return timeline.finish(1, 4, set_cbed=True)


# --- ジャンプ ---

# @intent:utility_function 2バイトの即値をM2(Z), M3(W)に読み込みます。load_pcの場合はM3 T3でPC←WZとします。
def _immediate_word(timeline: Timeline, load_pc: bool) -> None:
    timeline.next_cycle(1, 4)
    timeline.mem_read(2, AddrSource.PC, into_wz(HiLo.LO), step=IncMode.INC)
    timeline.next_cycle(2, 3)
    capture = word_into(REG_PC) if load_pc else into_wz(HiLo.HI)
    timeline.mem_read(3, AddrSource.PC, capture, step=IncMode.INC)


# @intent:responsibility JP nn (10T)。
def jp() -> Timeline:
    timeline = Timeline("JP")
    _immediate_word(timeline, load_pc=True)
    return timeline.finish(3, 3)


# @intent:responsibility JP cc,nn (10T)。条件の成否に関わらずオペランドは読み、成立時のみPCを書き換えます。
def jp_cc(variant: Variant) -> Timeline:
    timeline = Timeline(f"JP_CC/{variant.name}")
    _immediate_word(timeline, load_pc=variant is Variant.TAKEN)
    return timeline.finish(3, 3)


# @intent:responsibility JP (HL) (4T)。HLをWZ経由でPCへ転送します。
def jp_hl() -> Timeline:
    timeline = Timeline("JP_HL")
    timeline.at(1, 3, reg=Operand.HL, bus_lo=BusSource.REG, bus_hi=BusSource.REG, wz_we=HiLo.BOTH)
    return timeline.finish(1, 4, reg=REG_PC, reg_we=True, **_FROM_WZ)


# @intent:utility_function ディスプレースメントeをZに読み込むM2サイクル。
def _read_displacement(timeline: Timeline, m: int) -> None:
    timeline.mem_read(m, AddrSource.PC, into_wz(HiLo.LO), step=IncMode.INC)


# @intent:utility_function 5TのマシンサイクルでWZ←PC+eを計算し、最終ティックでPCに書き込みます。
def _relative_jump(timeline: Timeline, m: int) -> Timeline:
    timeline.at(m, 2, reg=REG_PC_LO, alu_op=AluOp.REL_LO, bus_lo=BusSource.ALU, wz_we=HiLo.LO)
    timeline.at(m, 3, reg=REG_PC_HI, alu_op=AluOp.REL_HI, bus_hi=BusSource.ALU, wz_we=HiLo.HI)
    return timeline.finish(m, 5, reg=REG_PC, reg_we=True, **_FROM_WZ)


# @intent:responsibility JR e (12T)。
def jr() -> Timeline:
    timeline = Timeline("JR")
    timeline.next_cycle(1, 4)
    _read_displacement(timeline, 2)
    timeline.next_cycle(2, 3)
    return _relative_jump(timeline, 3)


# @intent:responsibility JR cc,e (成立12T / 不成立7T)。
def jr_cc(variant: Variant) -> Timeline:
    timeline = Timeline(f"JR_CC/{variant.name}")
    timeline.next_cycle(1, 4)
    _read_displacement(timeline, 2)
    if variant is Variant.NOT_TAKEN:
        return timeline.finish(2, 3)
    timeline.next_cycle(2, 3)
    return _relative_jump(timeline, 3)


# @intent:responsibility DJNZ e (成立13T / 不成立8T)。M1 T5でBを減算します。
# @intent:pre-condition 分岐の成否はcond_trueで与えられます（外部が減算後のB≠0を評価）。
def djnz(variant: Variant) -> Timeline:
    timeline = Timeline(f"DJNZ/{variant.name}")
    timeline.at(1, 5, reg=REG_B, reg_we=True, **from_alu(AluOp.DEC))
    timeline.next_cycle(1, 5)
    _read_displacement(timeline, 2)
    if variant is Variant.NOT_TAKEN:
        return timeline.finish(2, 3)
    timeline.next_cycle(2, 3)
    return _relative_jump(timeline, 3)


# --- サブルーチン ---

# @intent:responsibility CALL nn (17T)。M3 T3/T4でSPを先に減らし、PCの上位→下位の順に積んでからPC←WZとします。
def call() -> Timeline:
    timeline = Timeline("CALL")
    _immediate_word(timeline, load_pc=False)
    predecrement_sp(timeline, 3, 3)
    timeline.next_cycle(3, 4)
    push_pair(timeline, 4, from_reg(REG_PC_HI), from_reg(REG_PC_LO))
    return timeline.finish(5, 3, reg=REG_PC, reg_we=True, **_FROM_WZ)


# @intent:responsibility CALL cc,nn (成立17T / 不成立10T)。
def call_cc(variant: Variant) -> Timeline:
    if variant is Variant.TAKEN:
        timeline = call()
        timeline.name = "CALL_CC/TAKEN"
        return timeline
    timeline = Timeline("CALL_CC/NOT_TAKEN")
    _immediate_word(timeline, load_pc=False)
    return timeline.finish(3, 3)


# @intent:utility_function スタックからPCを取り出す2つの読み出しサイクル (mとm+1)。
def _pop_pc(timeline: Timeline, m: int) -> Timeline:
    timeline.mem_read(m, AddrSource.SP, into_wz(HiLo.LO), step=IncMode.INC)
    timeline.next_cycle(m, 3)
    timeline.mem_read(m + 1, AddrSource.SP, word_into(REG_PC), step=IncMode.INC)
    return timeline.finish(m + 1, 3)


# @intent:responsibility RET (10T)。
def ret() -> Timeline:
    timeline = Timeline("RET")
    timeline.next_cycle(1, 4)
    return _pop_pc(timeline, 2)


# @intent:responsibility RET cc (成立11T / 不成立5T)。
def ret_cc(variant: Variant) -> Timeline:
    timeline = Timeline(f"RET_CC/{variant.name}")
    if variant is Variant.NOT_TAKEN:
        return timeline.finish(1, 5)
    timeline.next_cycle(1, 5)
    return _pop_pc(timeline, 2)


# @intent:responsibility RETI/RETN (14T)。IFF2をIFF1に戻す要求をM1 T4で出します。
def reti_retn() -> Timeline:
    timeline = Timeline("RETI_RETN")
    timeline.at(1, 4, iff_we=True)
    timeline.next_cycle(1, 4)
    return _pop_pc(timeline, 2)


# @intent:responsibility RST p (11T)。
def rst() -> Timeline:
    timeline = Timeline("RST")
    predecrement_sp(timeline, 1, 4)
    timeline.next_cycle(1, 5)
    push_pair(timeline, 2, from_reg(REG_PC_HI), from_reg(REG_PC_LO))
    return timeline.finish(3, 3, reg=REG_PC, reg_we=True, bus_lo=BusSource.RST_VECTOR, bus_hi=BusSource.ZERO)


# --- I/O ---

# @intent:responsibility IN A,(n) (11T)。ポートアドレスは A:n です。
def in_a_n() -> Timeline:
    timeline = Timeline("IN_A_N")
    timeline.at(1, 4, reg=REG_A, bus_hi=BusSource.REG, wz_we=HiLo.HI)
    timeline.next_cycle(1, 4)
    timeline.mem_read(2, AddrSource.PC, into_wz(HiLo.LO), step=IncMode.INC)
    timeline.next_cycle(2, 3)
    timeline.io_read(3, AddrSource.WZ, into_reg(REG_A))
    return timeline.finish(3, 4)


# @intent:responsibility OUT (n),A (11T)。
def out_n_a() -> Timeline:
    timeline = Timeline("OUT_N_A")
    timeline.at(1, 4, reg=REG_A, bus_hi=BusSource.REG, wz_we=HiLo.HI)
    timeline.next_cycle(1, 4)
    timeline.mem_read(2, AddrSource.PC, into_wz(HiLo.LO), step=IncMode.INC)
    timeline.next_cycle(2, 3)
    timeline.io_write(3, AddrSource.WZ, from_reg(REG_A))
    return timeline.finish(3, 4)


# @intent:responsibility IN r,(C) (12T)。r=6のときはフラグのみ更新します。
def in_r_c() -> Timeline:
    timeline = Timeline("IN_R_C")
    timeline.next_cycle(1, 4)
    timeline.io_read(2, AddrSource.BC, dict(into_reg(Operand.R_DST), flags_we=True))
    return timeline.finish(2, 4)


def out_c_r() -> Timeline:
    timeline = Timeline("OUT_C_R")
    timeline.next_cycle(1, 4)
    timeline.io_write(2, AddrSource.BC, from_reg(Operand.R_DST))
    return timeline.finish(2, 4)


SCHEDULES = {
    C.NOP: _single(nop),
    C.HALT: _single(halt),
    C.DI_EI: _single(di_ei),
    C.IM_SET: _single(im_set),
    C.PREFIX_IXY: _single(prefix_ixy),
    C.PREFIX_ED: _single(prefix_ed),
    C.PREFIX_CB: ClassSchedule(VariantKind.INDEX, {
        Variant.BASE: lambda: prefix_cb(Variant.BASE),
        Variant.IXY: lambda: prefix_cb(Variant.IXY),
    }),
    C.JP: _single(jp),
    C.JP_CC: _conditional(jp_cc),
    C.JP_HL: _single(jp_hl, substitutes_hl=True),
    C.JR: _single(jr),
    C.JR_CC: _conditional(jr_cc),
    C.DJNZ: _conditional(djnz),
    C.CALL: _single(call),
    C.CALL_CC: _conditional(call_cc),
    C.RET: _single(ret),
    C.RET_CC: _conditional(ret_cc),
    C.RETI_RETN: _single(reti_retn),
    C.RST: _single(rst),
    C.IN_A_N: _single(in_a_n),
    C.OUT_N_A: _single(out_n_a),
    C.IN_R_C: _single(in_r_c),
    C.OUT_C_R: _single(out_c_r),
}
