"""
Z80 命令マトリクス (Instruction Matrix) パッケージ。

デコードベクトル、サイクル位置、モードフラグから、そのティックで上書きする制御信号を求めます。
"""
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

from retro_exec_unit.arch.z80.decode import InstructionClass, DecodeVector, CLASS_ORDER
from retro_exec_unit.core.errors import MatrixConflictError
from retro_exec_unit.core.state import CyclePosition, ModeFlags
from .base import Variant, VariantKind, FetchVariant
from .operands import resolve
from .maps import MATRIX, FETCH_MATRIX, CLASS_INFO


# @intent:data_structure 命令マトリクスの評価結果。
@dataclass(frozen=True)
class MatrixResult:
    assignments: Dict[str, object] = field(default_factory=dict)
    valid_pla: bool = False


# @intent:responsibility モードフラグから共有フェッチスケジュールのバリアントを選びます。
def select_fetch_variant(flags: ModeFlags) -> FetchVariant:
    if flags.in_nmi:
        return FetchVariant.HOLD
    if flags.in_intr:
        return FetchVariant.INTACK
    if flags.in_halt:
        return FetchVariant.HOLD
    return FetchVariant.NORMAL


# @intent:responsibility デコードベクトルの代わりに実行するモード選択クラスを返します。該当しなければNoneです。
# @intent:rationale NMIはマスカブル割り込みより、割り込みはHALT状態より優先されます。IM0はデコードされた命令を実行します。
def select_mode_class(flags: ModeFlags) -> Optional[InstructionClass]:
    if flags.in_nmi:
        return InstructionClass.INT_NMI
    if flags.in_intr:
        if flags.im2:
            return InstructionClass.INT_IM2
        if flags.im1:
            return InstructionClass.INT_IM1
        return None
    if flags.in_halt:
        return InstructionClass.HALT_STATE
    return None


def select_variant(kind: VariantKind, flags: ModeFlags) -> Variant:
    if kind is VariantKind.INDEX:
        return Variant.IXY if flags.use_ixiy else Variant.BASE
    if kind is VariantKind.COND:
        return Variant.TAKEN if flags.cond_true else Variant.NOT_TAKEN
    if kind is VariantKind.REPEAT:
        return Variant.REPEAT if flags.repeat_en else Variant.BASE
    return Variant.BASE


# @intent:utility_function 評価対象のクラスを決まった順序で返します。
def active_classes(decode: DecodeVector, flags: ModeFlags) -> Tuple[InstructionClass, ...]:
    mode_class = select_mode_class(flags)
    if mode_class is not None:
        return (mode_class,)
    return tuple(c for c in CLASS_ORDER if c in decode.classes)


def _merge(result: Dict[str, object], owners: Dict[str, str], assignments: Dict[str, object], owner: str) -> None:
    for name, value in assignments.items():
        if name in result and result[name] != value:
            raise MatrixConflictError(f"{owners[name]} / {owner}", name, result[name], value)
        result[name] = value
        owners[name] = owner


# @intent:responsibility 命令マトリクスを評価します。
# @intent:post-condition 一致した全クラス（およびM1ではフェッチスケジュール）の行を統合した割り当てを返します。
def evaluate_matrix(decode: DecodeVector, position: CyclePosition, flags: ModeFlags) -> MatrixResult:
    """
    複数のクラスが同じ信号に異なる値を割り当てた場合はMatrixConflictErrorを送出します。
    """
    result: Dict[str, object] = {}
    owners: Dict[str, str] = {}
    m, t = position.m, position.t

    if m == 1:
        fetch_variant = select_fetch_variant(flags)
        fetch_row = FETCH_MATRIX.get((fetch_variant, m, t))
        if fetch_row is not None:
            _merge(result, owners, resolve(fetch_row, decode.op, False), f"FETCH/{fetch_variant.name}")

    classes = active_classes(decode, flags)
    for instruction_class in classes:
        info = CLASS_INFO[instruction_class]
        variant = select_variant(info.variant_kind, flags)
        row = MATRIX.get((instruction_class, variant, m, t))
        if row is None:
            continue
        assignments = resolve(row, decode.op, info.substitutes_hl and flags.use_ixiy)
        _merge(result, owners, assignments, f"{instruction_class.name}/{variant.name}")

    return MatrixResult(result, bool(classes))


__all__ = [
    "MatrixResult", "evaluate_matrix", "select_fetch_variant", "select_mode_class", "select_variant",
    "active_classes", "MATRIX", "FETCH_MATRIX", "CLASS_INFO", "Variant", "VariantKind", "FetchVariant",
]
