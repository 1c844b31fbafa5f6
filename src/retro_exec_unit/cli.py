"""
コマンドライン・トレーサ。

YAMLシナリオを読み込んでタイミングハーネスを実行し、ティックごとの制御信号を表として出力します。

Usage:
  retro-exec-trace SCENARIO [--signals a,b,...] [--max-ticks N] [--instructions N] [-v]
"""
import argparse
import logging
import sys
from typing import List, Optional, Sequence, TextIO

from retro_exec_unit.config.loader import ScenarioLoader
from retro_exec_unit.config.builder import ScenarioBuilder
from retro_exec_unit.core.errors import SequencerError, MatrixConflictError
from retro_exec_unit.core.signals import ControlSignals, SIGNAL_NAMES
from retro_exec_unit.core.snapshot import TickSnapshot, format_signal

logger = logging.getLogger(__name__)

_IDLE = ControlSignals()


# @intent:utility_function 既定値から変化している信号を "name=value" の並びにします。
def active_signals(signals: ControlSignals) -> str:
    values = signals.as_dict()
    idle = _IDLE.as_dict()
    parts = []
    for name in SIGNAL_NAMES:
        value = values[name]
        if value == idle[name] or name == "f_fetch":
            continue
        text = format_signal(value) or "0"
        parts.append(name if text == "1" else f"{name}={text}")
    return " ".join(parts)


# @intent:responsibility スナップショット1件を1行のテキストにします。
def format_row(snapshot: TickSnapshot, columns: Optional[Sequence[str]] = None) -> str:
    head = snapshot.describe()
    if snapshot.label:
        head += f" [{snapshot.label}]"
    if columns:
        values = snapshot.signals.as_dict()
        cells = [f"{format_signal(values[name]) or '.':>8}" for name in columns]
        return f"{head:<40}" + "".join(cells)
    body = active_signals(snapshot.signals)
    if snapshot.fired_rules:
        body += f"  <{','.join(snapshot.fired_rules)}>"
    return f"{head:<40}{body}"


def print_table(snapshots: Sequence[TickSnapshot], columns: Optional[Sequence[str]] = None,
                out: Optional[TextIO] = None) -> None:
    out = out or sys.stdout
    if columns:
        out.write(f"{'tick / position / IR / classes':<40}" + "".join(f"{name:>8}" for name in columns) + "\n")
    for snapshot in snapshots:
        out.write(format_row(snapshot, columns) + "\n")


def _parse_columns(text: Optional[str]) -> List[str]:
    if not text:
        return []
    columns = [name.strip() for name in text.split(",") if name.strip()]
    unknown = [name for name in columns if name not in SIGNAL_NAMES]
    if unknown:
        raise ValueError(f"Unknown control signal(s): {unknown}")
    return columns


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="retro-exec-trace",
        description="Trace the per-tick control signals of the Z80 execute control unit.",
    )
    parser.add_argument("scenario", help="YAML scenario file")
    parser.add_argument("--signals", type=str, default=None,
                        help="comma separated signal columns (default: active signals only)")
    parser.add_argument("--max-ticks", type=int, default=None, metavar="N",
                        help="stop after N ticks (default: scenario max_ticks)")
    parser.add_argument("--instructions", type=int, default=None, metavar="N",
                        help="run N whole instructions instead of a tick limit")
    parser.add_argument("-v", "--verbose", action="store_true", help="enable debug logging")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING,
                        format="%(levelname)s %(name)s: %(message)s")

    try:
        config = ScenarioLoader().load_from_file(args.scenario)
        columns = _parse_columns(args.signals) or config.signals
        _, tracer = ScenarioBuilder().build(config)
    except (OSError, ValueError) as e:
        logger.error("Failed to load scenario: %s", e)
        return 2

    try:
        if args.instructions is not None:
            snapshots = []
            for _ in range(args.instructions):
                snapshots.extend(tracer.run_instruction())
        else:
            snapshots = tracer.run(args.max_ticks)
    except (SequencerError, MatrixConflictError) as e:
        print_table(tracer.get_history(), columns)
        logger.error("%s", e)
        return 1

    print_table(snapshots, columns)
    return 0


if __name__ == "__main__":
    sys.exit(main())
