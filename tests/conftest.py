# tests/conftest.py
"""
テスト全体の共通設定。UIテストをディスプレイなしで実行できるようにします。
"""
import os

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")
