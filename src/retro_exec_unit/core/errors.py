# retro_exec_unit/core/errors.py
"""
制御ユニットとタイミングハーネスが送出する例外の定義。

未知のオペコードはエラーではなく（1命令分の無動作として扱う）、ここには含まれません。
"""


# @intent:responsibility 命令マトリクスの矛盾（同一サイクル・同一信号に異なる値）を表します。
# @intent:rationale 優先度で黙って解決してはならない設計上の欠陥であるため、構築時または評価時に必ず送出します。
class MatrixConflictError(ValueError):
    def __init__(self, where: str, signal: str, first, second):
        super().__init__(f"Conflicting assignment for '{signal}' at {where}: {first!r} vs {second!r}")
        self.where = where
        self.signal = signal
        self.values = (first, second)


# @intent:responsibility シーケンサが範囲外のサイクル位置へ進もうとしたことを表します。
class SequencerError(RuntimeError):
    pass
