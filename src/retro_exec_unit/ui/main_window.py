# src/retro_exec_unit/ui/main_window.py
"""
タイミングビューアのメインウィンドウ。
シナリオを読み込んでハーネスを構築し、ティック単位/命令単位/ブレークポイントまでの実行を操作します。
"""
from typing import Optional

from PySide6.QtWidgets import QMainWindow, QToolBar, QLabel, QFileDialog, QMessageBox
from PySide6.QtGui import QAction
from PySide6.QtCore import Slot

from retro_exec_unit.config.loader import ScenarioLoader
from retro_exec_unit.config.builder import ScenarioBuilder
from retro_exec_unit.config.models import ScenarioConfig
from retro_exec_unit.core.errors import SequencerError
from retro_exec_unit.debugger.tracer import TimingTracer
from .timing_view import TimingView


# @intent:responsibility ツールバーとタイミング表を組み立て、ハーネスの実行操作を仲介します。
class MainWindow(QMainWindow):
    def __init__(self, scenario_path: Optional[str] = None, parent=None):
        super().__init__(parent)
        self.setWindowTitle("Retro Exec Unit - Timing Viewer")
        self.setGeometry(100, 100, 1400, 700)
        self.setStyleSheet("background-color: #121212; color: #BBBBBB;")

        self._config: Optional[ScenarioConfig] = None
        self.tracer: Optional[TimingTracer] = None
        self.timing_view = TimingView()
        self.setCentralWidget(self.timing_view)

        self.status_label = QLabel("No scenario loaded")
        self.statusBar().addWidget(self.status_label)

        self._create_toolbar()
        if scenario_path:
            self.load_scenario(scenario_path)
        self._update_ui_state()

    def _create_toolbar(self):
        toolbar = QToolBar("Main Toolbar")
        self.addToolBar(toolbar)

        self.open_action = QAction("Open...", self)
        self.open_action.triggered.connect(self._open_scenario)
        toolbar.addAction(self.open_action)

        self.reload_action = QAction("Reset", self)
        self.reload_action.triggered.connect(self._rebuild)
        toolbar.addAction(self.reload_action)

        self.tick_action = QAction("Step Tick", self)
        self.tick_action.triggered.connect(self._step_tick)
        toolbar.addAction(self.tick_action)

        self.instruction_action = QAction("Step Instruction", self)
        self.instruction_action.triggered.connect(self._step_instruction)
        toolbar.addAction(self.instruction_action)

        self.run_action = QAction("Run", self)
        self.run_action.triggered.connect(self._run)
        toolbar.addAction(self.run_action)

    def _update_ui_state(self):
        loaded = self.tracer is not None
        for action in (self.reload_action, self.tick_action, self.instruction_action, self.run_action):
            action.setEnabled(loaded)

    # @intent:responsibility シナリオファイルを読み込み、ハーネスを構築し直します。
    def load_scenario(self, path: str) -> None:
        self._config = ScenarioLoader().load_from_file(path)
        if self._config.signals:
            self.timing_view.deleteLater()
            self.timing_view = TimingView(self._config.signals)
            self.setCentralWidget(self.timing_view)
        self._rebuild()
        self.status_label.setText(f"Loaded {path}")

    @Slot()
    def _open_scenario(self):
        path, _ = QFileDialog.getOpenFileName(self, "Open Scenario", "", "YAML Files (*.yaml *.yml)")
        if not path:
            return
        try:
            self.load_scenario(path)
        except (OSError, ValueError) as e:
            QMessageBox.critical(self, "Error", f"Failed to load scenario: {e}")

    @Slot()
    def _rebuild(self):
        if self._config is None:
            return
        _, self.tracer = ScenarioBuilder().build(self._config)
        self.timing_view.clear()
        self._update_ui_state()

    def _refresh(self):
        self.timing_view.set_snapshots(self.tracer.get_history())
        self.status_label.setText(f"Tick {self.tracer.tick}  {self.tracer.state.position}")

    @Slot()
    def _step_tick(self):
        self.tracer.step_tick()
        self._refresh()

    @Slot()
    def _step_instruction(self):
        try:
            self.tracer.run_instruction()
        except SequencerError as e:
            QMessageBox.warning(self, "Sequencer", str(e))
        self._refresh()

    @Slot()
    def _run(self):
        try:
            self.tracer.run()
        except SequencerError as e:
            QMessageBox.warning(self, "Sequencer", str(e))
        self._refresh()
