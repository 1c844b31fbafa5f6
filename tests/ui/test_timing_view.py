import os
import sys
import tempfile
import unittest
from PySide6.QtWidgets import QApplication
from retro_exec_unit.ui.timing_view import TimingView, FIXED_COLUMNS, ACTIVE_COLOR
from retro_exec_unit.ui.main_window import MainWindow
from retro_exec_unit.core.signals import SIGNAL_NAMES
from retro_exec_unit.arch.z80.unit import Z80ExecUnit
from retro_exec_unit.debugger.tracer import TimingTracer


def _nop_snapshots():
    tracer = TimingTracer(Z80ExecUnit(), [0x00])
    return tracer.run_instruction()


class TestTimingView(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        if not QApplication.instance():
            cls.app = QApplication(sys.argv)
        else:
            cls.app = QApplication.instance()

    def test_columns(self):
        view = TimingView()
        self.assertEqual(view.table.columnCount(), len(FIXED_COLUMNS) + len(SIGNAL_NAMES))
        self.assertEqual(view.table.horizontalHeaderItem(0).text(), "Tick")
        self.assertEqual(view.table.horizontalHeaderItem(len(FIXED_COLUMNS)).text(), SIGNAL_NAMES[0])

    def test_set_snapshots(self):
        """
        1ティックが1行になり、アクティブな信号のセルに値が表示されることを検証します。
        """
        view = TimingView(["ir_we", "al_src"])
        view.set_snapshots(_nop_snapshots())
        self.assertEqual(view.table.rowCount(), 4)
        self.assertEqual(view.table.item(1, 1).text(), "M1T2")
        self.assertEqual(view.table.item(1, 2).text(), "00")
        self.assertEqual(view.table.item(1, len(FIXED_COLUMNS)).text(), "1")
        self.assertEqual(view.table.item(0, len(FIXED_COLUMNS)).text(), "")
        self.assertEqual(view.table.item(2, len(FIXED_COLUMNS) + 1).text(), "IR")
        self.assertEqual(view.table.item(1, len(FIXED_COLUMNS)).background().color(), ACTIVE_COLOR)
        self.assertIn("prefix_clear", view.table.item(3, 4).text())

    def test_clear(self):
        view = TimingView()
        for snapshot in _nop_snapshots():
            view.append_snapshot(snapshot)
        self.assertEqual(view.table.rowCount(), 4)
        view.clear()
        self.assertEqual(view.table.rowCount(), 0)
        self.assertEqual(view.signals, list(SIGNAL_NAMES))


class TestMainWindow(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        if not QApplication.instance():
            cls.app = QApplication(sys.argv)
        else:
            cls.app = QApplication.instance()

    def test_actions_disabled_without_scenario(self):
        window = MainWindow()
        self.assertIsNone(window.tracer)
        self.assertFalse(window.tick_action.isEnabled())

    def test_load_and_step(self):
        """
        シナリオを読み込み、ティック単位と命令単位で実行できることを検証します。
        """
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "scenario.yaml")
            with open(path, "w") as f:
                f.write("program: [0x06, 0x12, 0x76]\nsignals: [ir_we, halt_set]\n")
            window = MainWindow(path)

        self.assertTrue(window.tick_action.isEnabled())
        self.assertEqual(window.timing_view.signals, ["ir_we", "halt_set"])

        window.tick_action.trigger()
        self.assertEqual(window.timing_view.table.rowCount(), 1)

        window.instruction_action.trigger()
        self.assertEqual(window.timing_view.table.rowCount(), 7)

        window.reload_action.trigger()
        self.assertEqual(window.timing_view.table.rowCount(), 0)
        self.assertEqual(window.tracer.tick, 0)


if __name__ == '__main__':
    unittest.main()
