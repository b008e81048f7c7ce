"""
比較プリミティブ抽象基底クラス

2つのレコードの構造差分を取得するための抽象インターフェースを定義します。
比較ライブラリを差し替える場合は、このクラスを継承して具象アダプターを実装します。
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, List, Optional

from ..domain.errors import ChangeTrackerError
from ..domain.models import DEFAULT_MAX_DEPTH, RawDifference


class CompareError(ChangeTrackerError):
    """
    比較エラー例外

    比較ライブラリの内部エラーや、未対応の差分種別が報告された場合を表します。
    """

    def __init__(self, message: str, report_type: Optional[str] = None):
        """
        Args:
            message: エラーメッセージ
            report_type: 未対応だった差分種別（該当する場合）
        """
        super().__init__(message)
        self.report_type = report_type


class DeepCompareAdapter(ABC):
    """
    構造差分取得アダプター抽象基底クラス

    比較ライブラリごとに異なる差分表現を吸収し、
    RawDifference のリストとして統一的に返すための抽象クラスです。
    """

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    @abstractmethod
    def compare(
        self,
        old: Any,
        current: Any,
        max_depth: int = DEFAULT_MAX_DEPTH,
    ) -> List[RawDifference]:
        """
        2つのレコードの差分を取得

        Args:
            old: 変更前のレコード
            current: 変更後のレコード
            max_depth: 差分値の分類に許容する最大ネスト深度

        Returns:
            List[RawDifference]: 差分リスト（差分がない場合は空リスト）

        Raises:
            CompareError: 比較に失敗した時
            CyclicInputError: 差分値のネストが max_depth を超えた時
        """
        pass
