"""
タイミング表示用のフォント選択。

信号値の列が揃うように、利用可能な等幅フォントを環境ごとに選びます。
"""
from PySide6.QtGui import QFont, QFontDatabase

PREFERRED_FAMILIES = ("Consolas", "Menlo", "DejaVu Sans Mono", "Courier New")


# @intent:responsibility 利用可能な等幅フォントファミリー名を返します。候補がなければQtのシステム固定幅フォントを使います。
def get_monospace_font_family() -> str:
    available = set(QFontDatabase.families())
    for family in PREFERRED_FAMILIES:
        if family in available:
            return family
    return QFontDatabase.systemFont(QFontDatabase.FixedFont).family()


def get_monospace_font(size: int = 10) -> QFont:
    return QFont(get_monospace_font_family(), size)
