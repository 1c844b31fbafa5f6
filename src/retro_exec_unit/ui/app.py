# src/retro_exec_unit/ui/app.py
"""
タイミングビューアのエントリポイント。
"""
import sys
from PySide6.QtWidgets import QApplication
from .main_window import MainWindow


# @intent:responsibility アプリケーションを起動し、引数で指定されたシナリオを開いた状態でメインウィンドウを表示します。
def main():
    app = QApplication(sys.argv)
    scenario = sys.argv[1] if len(sys.argv) > 1 else None
    main_win = MainWindow(scenario)
    main_win.show()
    sys.exit(app.exec())


if __name__ == '__main__':
    main()
