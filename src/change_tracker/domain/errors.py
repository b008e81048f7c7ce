"""
例外定義

差分計算・正規化処理で送出される例外階層を定義します。
"""

from typing import Optional


class ChangeTrackerError(Exception):
    """change_tracker が送出する例外の基底クラス"""


class CyclicInputError(ChangeTrackerError):
    """
    再帰深度超過例外

    循環参照を含む入力や、極端に深いネストを持つ入力を検知した場合に送出されます。
    """

    def __init__(
        self,
        message: str,
        path: Optional[str] = None,
        max_depth: Optional[int] = None,
    ):
        """
        Args:
            message: エラーメッセージ
            path: 上限に達した時点のフィールドパス
            max_depth: 適用された最大深度
        """
        super().__init__(message)
        self.path = path
        self.max_depth = max_depth


class RecordTypeError(ChangeTrackerError, TypeError):
    """
    入力型エラー例外

    比較対象がマッピング・Pydantic モデル・None のいずれでもない場合に送出されます。
    """

    def __init__(self, message: str, value_type: Optional[type] = None):
        """
        Args:
            message: エラーメッセージ
            value_type: 受け取った値の型
        """
        super().__init__(message)
        self.value_type = value_type
