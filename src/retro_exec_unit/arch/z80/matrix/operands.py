"""
マトリクスエントリ中のシンボリックオペランドを、opビットとプリフィックス状態から具体的な選択値に解決します。
"""
from typing import Dict

from retro_exec_unit.common.types import (
    AddrSource, IncMode, RegSelect, HiLo, RegRef,
    REG_NONE, REG_A, REG_B, REG_C, REG_D, REG_E, REG_H, REG_L,
)
from .base import Override, Operand

# r フィールド (op5..3 / op2..0)。コード6((HL))はI/O命令の「レジスタなし」として扱います。
R_CODES = {
    0b000: REG_B, 0b001: REG_C, 0b010: REG_D, 0b011: REG_E,
    0b100: REG_H, 0b101: REG_L, 0b110: REG_NONE, 0b111: REG_A,
}

RP_CODES = {0b00: RegSelect.BC, 0b01: RegSelect.DE, 0b10: RegSelect.HL, 0b11: RegSelect.SP}
QQ_CODES = {0b00: RegSelect.BC, 0b01: RegSelect.DE, 0b10: RegSelect.HL, 0b11: RegSelect.AF}

_ADDR_OF = {
    RegSelect.PC: AddrSource.PC, RegSelect.SP: AddrSource.SP, RegSelect.HL: AddrSource.HL,
    RegSelect.DE: AddrSource.DE, RegSelect.BC: AddrSource.BC, RegSelect.IXY: AddrSource.IXY,
    RegSelect.IR: AddrSource.IR,
}


# @intent:utility_function 置き換えが有効な場合、HLをIX/IYに読み替えます。
def _substitute(ref: RegRef, substitute: bool) -> RegRef:
    if substitute and ref.sel is RegSelect.HL:
        return RegRef(RegSelect.IXY, ref.hilo)
    return ref


# @intent:responsibility レジスタオペランドを具体的なRegRefに解決します。
def resolve_reg(operand: Operand, op: int, substitute: bool) -> RegRef:
    if operand is Operand.R_DST:
        ref = R_CODES[(op >> 3) & 0b111]
    elif operand is Operand.R_SRC:
        ref = R_CODES[op & 0b111]
    elif operand is Operand.RP:
        ref = RegRef(RP_CODES[(op >> 4) & 0b11], HiLo.BOTH)
    elif operand is Operand.RP_LO:
        ref = RegRef(RP_CODES[(op >> 4) & 0b11], HiLo.LO)
    elif operand is Operand.RP_HI:
        ref = RegRef(RP_CODES[(op >> 4) & 0b11], HiLo.HI)
    elif operand is Operand.QQ_LO:
        ref = RegRef(QQ_CODES[(op >> 4) & 0b11], HiLo.LO)
    elif operand is Operand.QQ_HI:
        ref = RegRef(QQ_CODES[(op >> 4) & 0b11], HiLo.HI)
    elif operand is Operand.HL:
        ref = RegRef(RegSelect.HL, HiLo.BOTH)
    elif operand is Operand.HL_LO:
        ref = REG_L
    elif operand is Operand.HL_HI:
        ref = REG_H
    elif operand is Operand.PAIR_BC_DE:
        ref = RegRef(RegSelect.DE if op & 0b010000 else RegSelect.BC, HiLo.BOTH)
    elif operand is Operand.IR_REG:
        ref = RegRef(RegSelect.IR, HiLo.LO if op & 0b001000 else HiLo.HI)
    else:
        raise ValueError(f"Operand {operand} is not a register operand.")
    return _substitute(ref, substitute)


def resolve_addr(operand: Operand, op: int, substitute: bool) -> AddrSource:
    ref = resolve_reg(operand, op, substitute)
    if ref.hilo is not HiLo.BOTH:
        raise ValueError(f"Operand {operand} is not a 16-bit address source.")
    return _ADDR_OF[ref.sel]


def resolve_inc(operand: Operand, op: int) -> IncMode:
    if operand is not Operand.STEP:
        raise ValueError(f"Operand {operand} is not an incrementer mode.")
    return IncMode.DEC if op & 0b001000 else IncMode.INC


# @intent:responsibility Overrideを信号名→具体値の辞書に変換します。
# @intent:post-condition 戻り値のキーは全てControlSignalsのフィールド名です。
def resolve(row: Override, op: int, substitute: bool) -> Dict[str, object]:
    """
    substitute: このクラスでHL→IX/IYの置き換えが有効、かつプリフィックスがアクティブかどうか。
    """
    result = row.assigned()

    reg = result.pop("reg", None)
    if reg is not None:
        if isinstance(reg, Operand):
            reg = resolve_reg(reg, op, substitute)
        result["reg_sel"] = reg.sel
        result["reg_hilo"] = reg.hilo

    al_src = result.get("al_src")
    if isinstance(al_src, Operand):
        result["al_src"] = resolve_addr(al_src, op, substitute)

    inc_mode = result.get("inc_mode")
    if isinstance(inc_mode, Operand):
        result["inc_mode"] = resolve_inc(inc_mode, op)

    return result
