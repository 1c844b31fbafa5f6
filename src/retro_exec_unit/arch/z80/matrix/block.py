"""
Z80 ブロック転送/比較/I/O命令 (LDI/LDIR, CPI/CPIR, INI/INIR, OUTI/OTIR とその減算版) のタイムライン定義。

repeat_enがアサートされている場合はREPEATバリアントが選ばれ、PCを2つ戻す5Tサイクルを追加して
同じ命令を再実行します。BASEバリアントは最終ティックでnon_repを出します。
"""
from retro_exec_unit.common.types import AddrSource, IncMode, BusSource, AluOp, REG_B, REG_BC, REG_PC, REG_A
from retro_exec_unit.arch.z80.decode import InstructionClass as C
from .base import Timeline, Variant, VariantKind, ClassSchedule, Operand, into_alu, from_alu


# @intent:utility_function インクリメンタで16ビットペアを1つ減らす2ティック。
def _decrement(timeline: Timeline, m: int, t: int, addr: AddrSource, ref, **extra) -> None:
    timeline.at(m, t, al_we=True, al_src=addr)
    timeline.at(m, t + 1, inc_mode=IncMode.DEC, bus_lo=BusSource.INC, bus_hi=BusSource.INC,
                reg=ref, reg_we=True, **extra)


# @intent:utility_function ブロック命令の終端。BASEは命令を終え、REPEATはPCを2つ戻す5Tサイクルを追加します。
def _terminate(timeline: Timeline, variant: Variant, m: int, t: int) -> Timeline:
    if variant is not Variant.REPEAT:
        return timeline.finish(m, t, non_rep=True)
    timeline.next_cycle(m, t)
    _decrement(timeline, m + 1, 1, AddrSource.PC, REG_PC)
    _decrement(timeline, m + 1, 3, AddrSource.PC, REG_PC)
    return timeline.finish(m + 1, 5)


# @intent:responsibility LDI/LDD (16T) / LDIR/LDDR (21T)。
def block_ld(variant: Variant) -> Timeline:
    timeline = Timeline(f"BLOCK_LD/{variant.name}")
    timeline.next_cycle(1, 4)
    timeline.mem_read(2, AddrSource.HL, into_alu(), step=Operand.STEP)
    timeline.next_cycle(2, 3)
    timeline.mem_write(3, AddrSource.DE, from_alu(), step=Operand.STEP)
    _decrement(timeline, 3, 4, AddrSource.BC, REG_BC, alu_op=AluOp.BLOCK, flags_we=True)
    return _terminate(timeline, variant, 3, 5)


# @intent:responsibility CPI/CPD (16T) / CPIR/CPDR (21T)。M3の内部サイクルでAと比較し、BCを減らします。
def block_cp(variant: Variant) -> Timeline:
    timeline = Timeline(f"BLOCK_CP/{variant.name}")
    timeline.next_cycle(1, 4)
    timeline.mem_read(2, AddrSource.HL, into_alu(), step=Operand.STEP)
    timeline.next_cycle(2, 3)
    timeline.at(3, 1, reg=REG_A, alu_op=AluOp.BLOCK, flags_we=True)
    _decrement(timeline, 3, 4, AddrSource.BC, REG_BC, flags_we=True)
    return _terminate(timeline, variant, 3, 5)


# @intent:responsibility INI/IND (16T) / INIR/INDR (21T)。ポートアドレスにBCを使った後でBを減らします。
def block_in(variant: Variant) -> Timeline:
    timeline = Timeline(f"BLOCK_IN/{variant.name}")
    timeline.next_cycle(1, 5)
    timeline.io_read(2, AddrSource.BC, into_alu())
    timeline.at(2, 4, reg=REG_B, reg_we=True, flags_we=True, **from_alu(AluOp.DEC))
    timeline.next_cycle(2, 4)
    timeline.mem_write(3, AddrSource.HL, from_alu(), step=Operand.STEP)
    return _terminate(timeline, variant, 3, 3)


# @intent:responsibility OUTI/OUTD (16T) / OTIR/OTDR (21T)。Bを先に減らしてからポートへ出力します。
def block_out(variant: Variant) -> Timeline:
    timeline = Timeline(f"BLOCK_OUT/{variant.name}")
    timeline.at(1, 5, reg=REG_B, reg_we=True, flags_we=True, **from_alu(AluOp.DEC))
    timeline.next_cycle(1, 5)
    timeline.mem_read(2, AddrSource.HL, into_alu(), step=Operand.STEP)
    timeline.next_cycle(2, 3)
    timeline.io_write(3, AddrSource.BC, from_alu())
    return _terminate(timeline, variant, 3, 4)


def _repeating(builder) -> ClassSchedule:
    return ClassSchedule(VariantKind.REPEAT, {
        Variant.BASE: lambda: builder(Variant.BASE),
        Variant.REPEAT: lambda: builder(Variant.REPEAT),
    })


SCHEDULES = {
    C.BLOCK_LD: _repeating(block_ld),
    C.BLOCK_CP: _repeating(block_cp),
    C.BLOCK_IN: _repeating(block_in),
    C.BLOCK_OUT: _repeating(block_out),
}
