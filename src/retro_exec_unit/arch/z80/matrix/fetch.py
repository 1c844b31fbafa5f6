"""
全命令で共有されるオペコードフェッチ (M1 T1..T3) のスケジュール。

NORMAL以外のバリアントはHALTと割り込み受付で使用され、フェッチサイクルの形を借りたまま
PCのインクリメントを止め、命令レジスタへのロード元を差し替えます。
"""

from retro_exec_unit.common.types import AddrSource, IncMode, BusSource
from .base import Timeline, FetchVariant, writeback


def _refresh(timeline: Timeline) -> None:
    timeline.at(1, 3, al_we=True, al_src=AddrSource.IR)


# @intent:responsibility 通常のオペコードフェッチ。T1でPCを進め、T2でオペコードを命令レジスタにロードします。
def build_normal() -> Timeline:
    timeline = Timeline("FETCH/NORMAL")
    timeline.at(1, 1, inc_mode=IncMode.INC, bus_lo=BusSource.INC, bus_hi=BusSource.INC, **writeback(AddrSource.PC))
    timeline.at(1, 2, ir_we=True, bus_lo=BusSource.DATA_PIN)
    _refresh(timeline)
    return timeline


# @intent:responsibility HALT中およびNMI受付のフェッチ。PCを進めず、命令レジスタにはNOP(0)をロードします。
def build_hold() -> Timeline:
    timeline = Timeline("FETCH/HOLD")
    for t in range(1, 5):
        timeline.at(1, t, pc_inc=False)
    timeline.at(1, 2, ir_we=True, ir_clear=True)
    _refresh(timeline)
    return timeline


# @intent:responsibility マスカブル割り込みの受付サイクル。I/O読み出しとして割り込み元が置いたバイトを命令レジスタにロードします。
def build_intack() -> Timeline:
    timeline = Timeline("FETCH/INTACK")
    for t in range(1, 5):
        timeline.at(1, t, pc_inc=False)
    timeline.at(1, 1, f_ioread=True)
    timeline.at(1, 2, f_ioread=True, ir_we=True, bus_lo=BusSource.DATA_PIN)
    _refresh(timeline)
    return timeline


FETCH_BUILDERS = {
    FetchVariant.NORMAL: build_normal,
    FetchVariant.HOLD: build_hold,
    FetchVariant.INTACK: build_intack,
}
