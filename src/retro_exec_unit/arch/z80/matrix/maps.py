"""
Z80 命令マトリクスの構築。
各ファミリーモジュールのスケジュールを集め、(命令クラス, バリアント, M, T) → Override の表を構築します。
表はインポート時に一度だけ構築され、同時に検証されます。
"""
import logging
from typing import Dict, Tuple

from retro_exec_unit.arch.z80.decode import InstructionClass
from .base import Override, Variant, VariantKind, FetchVariant, ClassSchedule
from .fetch import FETCH_BUILDERS
from . import load, alu, control, block, interrupt

logger = logging.getLogger(__name__)

MatrixKey = Tuple[InstructionClass, Variant, int, int]
FetchKey = Tuple[FetchVariant, int, int]

# @intent:constant バリアント種別ごとに定義が必要なバリアント。
REQUIRED_VARIANTS = {
    VariantKind.NONE: frozenset({Variant.BASE}),
    VariantKind.INDEX: frozenset({Variant.BASE, Variant.IXY}),
    VariantKind.COND: frozenset({Variant.TAKEN, Variant.NOT_TAKEN}),
    VariantKind.REPEAT: frozenset({Variant.BASE, Variant.REPEAT}),
}

# @intent:constant オペコードがまだ命令レジスタに入っていないティック。命令クラスの行を置くことはできません。
PRE_DECODE_TICKS = frozenset({(1, 1), (1, 2)})


def _collect_schedules() -> Dict[InstructionClass, ClassSchedule]:
    schedules: Dict[InstructionClass, ClassSchedule] = {}
    for family in (load, alu, control, block, interrupt):
        for instruction_class, schedule in family.SCHEDULES.items():
            if instruction_class in schedules:
                raise ValueError(f"{instruction_class.name} is scheduled by more than one family.")
            schedules[instruction_class] = schedule
    missing = [c.name for c in InstructionClass if c not in schedules]
    if missing:
        raise ValueError(f"No timeline defined for instruction classes: {missing}")
    return schedules


def _build_fetch() -> Dict[FetchKey, Override]:
    table: Dict[FetchKey, Override] = {}
    for fetch_variant, builder in FETCH_BUILDERS.items():
        for (m, t), row in builder().rows().items():
            table[(fetch_variant, m, t)] = row
    return table


# @intent:responsibility 命令クラスの行が全てのフェッチバリアントの行と衝突しないことを検証します。
# @intent:rationale 実行時のマージで衝突が起きないことを、構築時に全組み合わせで保証します。
def _check_against_fetch(where: str, m: int, t: int, row: Override, fetch: Dict[FetchKey, Override]) -> None:
    if m != 1:
        return
    if (m, t) in PRE_DECODE_TICKS:
        raise ValueError(f"{where}: rows at M{m}T{t} would be evaluated before the opcode is loaded.")
    for fetch_variant in FetchVariant:
        fetch_row = fetch.get((fetch_variant, m, t))
        if fetch_row is not None:
            fetch_row.merge(row, f"{where} M{m}T{t} with FETCH/{fetch_variant.name}")


def _build_matrix(schedules: Dict[InstructionClass, ClassSchedule],
                  fetch: Dict[FetchKey, Override]) -> Dict[MatrixKey, Override]:
    table: Dict[MatrixKey, Override] = {}
    for instruction_class, schedule in schedules.items():
        required = REQUIRED_VARIANTS[schedule.variant_kind]
        if set(schedule.builders) != required:
            raise ValueError(
                f"{instruction_class.name}: variants {sorted(v.name for v in schedule.builders)} "
                f"do not match {schedule.variant_kind.name}."
            )
        for variant, builder in schedule.builders.items():
            where = f"{instruction_class.name}/{variant.name}"
            for (m, t), row in builder().rows().items():
                _check_against_fetch(where, m, t, row, fetch)
                table[(instruction_class, variant, m, t)] = row
    return table


CLASS_INFO = _collect_schedules()
FETCH_MATRIX = _build_fetch()
MATRIX = _build_matrix(CLASS_INFO, FETCH_MATRIX)

logger.debug("Instruction matrix built: %d class rows, %d fetch rows, %d classes.",
             len(MATRIX), len(FETCH_MATRIX), len(CLASS_INFO))

__all__ = ["MATRIX", "FETCH_MATRIX", "CLASS_INFO", "REQUIRED_VARIANTS"]
