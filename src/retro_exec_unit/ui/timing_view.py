# src/retro_exec_unit/ui/timing_view.py
"""
ティック × 制御信号のタイミング表を表示するウィジェット。
"""
from typing import List, Optional, Sequence

from PySide6.QtWidgets import QWidget, QVBoxLayout, QTableWidget, QTableWidgetItem, QHeaderView
from PySide6.QtGui import QColor, QBrush

from retro_exec_unit.core.signals import SIGNAL_NAMES
from retro_exec_unit.core.snapshot import TickSnapshot, format_signal
from retro_exec_unit.ui.fonts import get_monospace_font

FIXED_COLUMNS = ["Tick", "M/T", "IR", "Class", "Rules"]
ACTIVE_COLOR = QColor("#3A6EA5")
BOUNDARY_COLOR = QColor("#2A2A2A")


# @intent:responsibility TickSnapshotの列をタイミング表として表示します。
class TimingView(QWidget):
    """
    1行が1ティック、列が位置情報と各制御信号に対応する表。
    命令境界(set_m1)の行は背景色を変えて表示します。
    """
    def __init__(self, signals: Optional[Sequence[str]] = None, parent=None):
        super().__init__(parent)
        self.setStyleSheet("background-color: #121212; color: #BBBBBB;")

        self.layout = QVBoxLayout(self)
        self.layout.setContentsMargins(5, 5, 5, 5)

        self._signals: List[str] = list(signals) if signals else list(SIGNAL_NAMES)

        self.table = QTableWidget()
        self.table.setColumnCount(len(FIXED_COLUMNS) + len(self._signals))
        self.table.setHorizontalHeaderLabels(FIXED_COLUMNS + self._signals)
        self.table.horizontalHeader().setSectionResizeMode(QHeaderView.ResizeToContents)
        self.table.verticalHeader().setVisible(False)
        self.table.setEditTriggers(QTableWidget.NoEditTriggers)
        self.table.setSelectionBehavior(QTableWidget.SelectRows)
        self.table.setFont(get_monospace_font(9))
        self.table.setStyleSheet("""
            QTableWidget {
                background-color: #121212;
                color: #BBBBBB;
                gridline-color: #303030;
                border: none;
            }
            QHeaderView::section {
                background-color: #252525;
                color: #BBBBBB;
                border: 1px solid #333;
            }
        """)
        self.layout.addWidget(self.table)

    @property
    def signals(self) -> List[str]:
        return list(self._signals)

    def clear(self) -> None:
        self.table.setRowCount(0)

    # @intent:responsibility スナップショットを1行として末尾に追加します。
    def append_snapshot(self, snapshot: TickSnapshot) -> None:
        row = self.table.rowCount()
        self.table.insertRow(row)

        fixed = [
            str(snapshot.tick),
            str(snapshot.position),
            f"{snapshot.opcode:02X}",
            ",".join(snapshot.classes) or (snapshot.label or "-"),
            ",".join(snapshot.fired_rules),
        ]
        values = snapshot.signals.as_dict()
        boundary = snapshot.signals.set_m1

        for column, text in enumerate(fixed):
            item = QTableWidgetItem(text)
            if boundary:
                item.setBackground(QBrush(BOUNDARY_COLOR))
            self.table.setItem(row, column, item)

        for offset, name in enumerate(self._signals):
            text = format_signal(values[name])
            item = QTableWidgetItem(text)
            if text:
                item.setBackground(QBrush(ACTIVE_COLOR))
            elif boundary:
                item.setBackground(QBrush(BOUNDARY_COLOR))
            self.table.setItem(row, len(FIXED_COLUMNS) + offset, item)

    def set_snapshots(self, snapshots: Sequence[TickSnapshot]) -> None:
        self.clear()
        for snapshot in snapshots:
            self.append_snapshot(snapshot)
        if snapshots:
            self.table.scrollToBottom()
