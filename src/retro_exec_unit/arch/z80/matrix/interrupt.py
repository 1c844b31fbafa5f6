"""
モードフラグで選択される命令クラス（NMI, IM1, IM2, HALT状態）のタイムライン定義。

これらのクラスはデコードベクトルの代わりに選ばれ、オペコードフェッチはHOLDまたはINTACKバリアントになります。
IM0はデコードされた命令（通常はRST）をINTACKフェッチで実行するため、専用のクラスを持ちません。
"""
from retro_exec_unit.common.types import AddrSource, IncMode, BusSource, HiLo, REG_PC, REG_PC_LO, REG_PC_HI, REG_I
from retro_exec_unit.arch.z80.decode import InstructionClass as C
from .base import Timeline, Variant, VariantKind, ClassSchedule, into_reg, from_reg
from .load import predecrement_sp, push_pair

_PUSH_PC = (from_reg(REG_PC_HI), from_reg(REG_PC_LO))


# @intent:responsibility NMI受付 (11T)。PCを積んで0x0066へ分岐し、IFF1をクリアします。
def int_nmi() -> Timeline:
    timeline = Timeline("INT_NMI")
    timeline.at(1, 4, iff_we=True)
    predecrement_sp(timeline, 1, 4)
    timeline.next_cycle(1, 5)
    push_pair(timeline, 2, *_PUSH_PC)
    return timeline.finish(3, 3, reg=REG_PC, reg_we=True, bus_lo=BusSource.NMI_VECTOR, bus_hi=BusSource.ZERO)


# @intent:utility_function INTACKのM1を6Tに延長し、T5/T6でSPを減らします。
def _acknowledge(timeline: Timeline) -> None:
    timeline.at(1, 4, iff_we=True)
    predecrement_sp(timeline, 1, 5)
    timeline.next_cycle(1, 6)


# @intent:responsibility IM1割り込み (12T)。PCを積んで0x0038へ分岐します。
def int_im1() -> Timeline:
    timeline = Timeline("INT_IM1")
    _acknowledge(timeline)
    push_pair(timeline, 2, *_PUSH_PC)
    return timeline.finish(3, 3, reg=REG_PC, reg_we=True, bus_lo=BusSource.IM1_VECTOR, bus_hi=BusSource.ZERO)


# @intent:responsibility IM2割り込み (18T)。Iと割り込み元のバイトで作るテーブルアドレスからPCを読み込みます。
def int_im2() -> Timeline:
    timeline = Timeline("INT_IM2")
    _acknowledge(timeline)
    push_pair(timeline, 2, *_PUSH_PC)
    timeline.at(3, 3, reg=REG_I, bus_hi=BusSource.REG, bus_lo=BusSource.OPCODE, wz_we=HiLo.BOTH)
    timeline.next_cycle(3, 3)
    timeline.mem_read(4, AddrSource.WZ, into_reg(REG_PC_LO), step=IncMode.INC)
    timeline.next_cycle(4, 3)
    timeline.mem_read(5, AddrSource.WZ, into_reg(REG_PC_HI))
    return timeline.finish(5, 3)


# @intent:responsibility HALT状態 (4T)。NOPのフェッチを繰り返します。
def halt_state() -> Timeline:
    return Timeline("HALT_STATE").finish(1, 4)


SCHEDULES = {
    C.INT_NMI: ClassSchedule(VariantKind.NONE, {Variant.BASE: int_nmi}),
    C.INT_IM1: ClassSchedule(VariantKind.NONE, {Variant.BASE: int_im1}),
    C.INT_IM2: ClassSchedule(VariantKind.NONE, {Variant.BASE: int_im2}),
    C.HALT_STATE: ClassSchedule(VariantKind.NONE, {Variant.BASE: halt_state}),
}
