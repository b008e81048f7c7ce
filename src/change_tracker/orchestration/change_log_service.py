"""変更履歴作成オーケストレーションサービス"""

from collections import Counter
from typing import Any, Dict, List, Optional
import logging
import time
import uuid
from pydantic import BaseModel, ValidationError

from ..adapters.deepdiff_adapter import DeepDiffAdapter
from ..domain.errors import ChangeTrackerError
from ..domain.models import ChangeOperation, DiffOptions
from ..domain.normalizer import DiffNormalizer


class ChangeLogResult(BaseModel):
    """
    変更履歴作成結果

    Attributes:
        success: 作成が成功したか
        changes: 出力用の変更履歴 (changeTransform のキー名)
        created_count: 新規エントリ件数
        deleted_count: 削除エントリ件数
        edited_count: 編集エントリ件数
        errors: エラーメッセージリスト
        execution_time_seconds: 実行時間（秒）
        execution_id: 実行 ID
    """
    success: bool
    changes: List[Dict[str, Any]] = []
    created_count: int = 0
    deleted_count: int = 0
    edited_count: int = 0
    errors: List[str] = []
    execution_time_seconds: float = 0.0
    execution_id: str = ""


class ChangeLogService:
    """
    変更履歴作成のオーケストレーション

    Responsibilities:
    - 差分正規化の呼び出しと操作別件数の集計
    - エラーの記録（例外をスローせず結果に格納）
    - 構造化ログ出力
    """

    def __init__(self, normalizer: Optional[DiffNormalizer] = None):
        """
        ChangeLogService を初期化

        Args:
            normalizer: 差分正規化サービス。None の場合は deepdiff を使用する
        """
        self.normalizer = normalizer or DiffNormalizer(DeepDiffAdapter())
        self.logger = logging.getLogger(__name__)

    def build_change_log(
        self,
        old: Any,
        current: Any,
        schema: Any = None,
        options: Any = None,
    ) -> ChangeLogResult:
        """
        2つのバージョン間の変更履歴を作成

        Args:
            old: 変更前のレコード
            current: 変更後のレコード
            schema: スキーマ記述
            options: 比較オプション

        Returns:
            ChangeLogResult: 変更履歴と集計結果

        Note: 入力・オプション不正や深度超過は success=False として返す
        """
        start_time = time.time()
        execution_id = self._generate_execution_id()

        try:
            diff_options = DiffOptions.coerce(options)
            changes = self.normalizer.get_changes(old, current, schema, diff_options)

            counts = Counter(change.operation for change in changes)
            execution_time = time.time() - start_time
            self.logger.info(
                "Change log built",
                extra={
                    "execution_id": execution_id,
                    "changes_count": len(changes),
                    "execution_time_seconds": execution_time
                }
            )

            return ChangeLogResult(
                success=True,
                changes=[diff_options.change_transform.apply(change) for change in changes],
                created_count=counts[ChangeOperation.CREATED],
                deleted_count=counts[ChangeOperation.DELETED],
                edited_count=counts[ChangeOperation.EDITED],
                execution_time_seconds=execution_time,
                execution_id=execution_id
            )

        except (ChangeTrackerError, ValidationError) as e:
            self.logger.error(
                f"Change log failed: {str(e)}",
                exc_info=True,
                extra={"execution_id": execution_id}
            )
            return ChangeLogResult(
                success=False,
                errors=[str(e)],
                execution_time_seconds=time.time() - start_time,
                execution_id=execution_id
            )

    def _generate_execution_id(self) -> str:
        """
        実行 ID 生成（UUID）

        Returns:
            str: UUID 形式の実行 ID
        """
        return str(uuid.uuid4())


def get_diff(
    old: Any,
    current: Any,
    schema: Any = None,
    options: Any = None,
) -> List[Dict[str, Any]]:
    """
    deepdiff を使用して変更履歴を取得

    DiffNormalizer.get_diff のショートカットです。エラーは呼び出し元にそのまま送出されます。

    Examples:
        >>> get_diff({"name": "john"}, {"name": "jane"})
        [{'to': 'jane', 'from': 'john', 'path': 'name', 'operation': 'Edited', 'label': 'Name'}]
    """
    return DiffNormalizer(DeepDiffAdapter()).get_diff(old, current, schema, options)
