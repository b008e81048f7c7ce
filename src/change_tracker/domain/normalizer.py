"""
差分正規化ロジック

比較プリミティブが報告した差分 (RawDifference) を、表示用の変更履歴エントリ
(ChangeRecord) のフラットなリストに変換します。
ネストした値はフィールド単位に展開し、各エントリにラベルを付与します。
"""

import logging
from typing import Any, Dict, List, Literal, Mapping, Optional, TYPE_CHECKING

from pydantic import BaseModel

from .errors import CyclicInputError, RecordTypeError
from .label_resolver import LabelResolver
from .models import (
    DEFAULT_MAX_DEPTH,
    ChangeOperation,
    ChangeRecord,
    DiffOptions,
    DiffValue,
    NestedValue,
    RawDifference,
    SchemaDescription,
    to_plain,
)

if TYPE_CHECKING:
    from ..adapters.deep_compare_adapter import DeepCompareAdapter


class DiffNormalizer:
    """
    差分正規化クラス

    比較プリミティブから取得した差分をフラットな変更履歴に変換します。
    変更履歴は呼び出しごとに新しいリストへ蓄積されるため、
    同じインスタンスを複数の呼び出しで共有できます。
    """

    def __init__(self, compare_adapter: "DeepCompareAdapter"):
        """
        DiffNormalizer を初期化

        Args:
            compare_adapter: 構造差分を取得する比較アダプター
        """
        self.compare_adapter = compare_adapter
        self.logger = logging.getLogger(__name__)

    def get_diff(
        self,
        old: Any,
        current: Any,
        schema: Any = None,
        options: Any = None,
    ) -> List[Dict[str, Any]]:
        """
        変更履歴を出力用の辞書リストとして取得

        Args:
            old: 変更前のレコード (マッピング・Pydantic モデル・None)
            current: 変更後のレコード
            schema: スキーマ記述 (SchemaDescription または辞書)
            options: 比較オプション (DiffOptions または辞書)

        Returns:
            List[Dict[str, Any]]: changeTransform のキー名で出力した変更履歴

        Raises:
            RecordTypeError: 比較対象がレコードでない場合
            CyclicInputError: ネスト深度が maxDepth を超えた場合
            ValidationError: スキーマ・オプションが不正な場合
        """
        diff_options = DiffOptions.coerce(options)
        changes = self.get_changes(old, current, schema, diff_options)
        return [diff_options.change_transform.apply(change) for change in changes]

    def get_changes(
        self,
        old: Any,
        current: Any,
        schema: Any = None,
        options: Any = None,
    ) -> List[ChangeRecord]:
        """
        変更履歴を ChangeRecord のリストとして取得

        Args:
            old: 変更前のレコード
            current: 変更後のレコード
            schema: スキーマ記述
            options: 比較オプション

        Returns:
            List[ChangeRecord]: 比較プリミティブの報告順に並んだ変更履歴

        Note:
            - omitPaths と既定の除外パス (_id) は比較前に両方のレコードから取り除く
            - 差分がない場合は空リスト
        """
        diff_options = DiffOptions.coerce(options)
        schema_description = SchemaDescription.coerce(schema)
        omit_paths = diff_options.all_omit_paths

        old_record = self.prepare_record(old, omit_paths, diff_options.max_depth)
        current_record = self.prepare_record(current, omit_paths, diff_options.max_depth)

        differences = self.compare_adapter.compare(
            old_record,
            current_record,
            max_depth=diff_options.max_depth,
        )

        changes: List[ChangeRecord] = []
        for difference in differences:
            self._map_difference(difference, schema_description, diff_options.max_depth, changes)

        self.logger.debug(
            "Differences normalized",
            extra={
                "differences_count": len(differences),
                "changes_count": len(changes),
            }
        )
        return changes

    @staticmethod
    def prepare_record(
        record: Any,
        omit_paths: List[str],
        max_depth: int = DEFAULT_MAX_DEPTH,
    ) -> Dict[str, Any]:
        """
        比較用のレコードを作成し、除外パスを取り除く

        Args:
            record: 元のレコード (入力自体は変更しない)
            omit_paths: 除外パス (ドット区切りでネスト指定可)
            max_depth: 許容する最大ネスト深度

        Returns:
            Dict[str, Any]: 除外パスを取り除いたレコード

        Raises:
            RecordTypeError: マッピング・Pydantic モデル・None 以外が渡された場合
            CyclicInputError: ネスト深度が max_depth を超えた場合

        Note:
            - ネストした Pydantic モデルも辞書に変換するため、比較プリミティブはモデルを扱わない
        """
        if record is None:
            prepared: Dict[str, Any] = {}
        elif isinstance(record, (BaseModel, Mapping)):
            prepared = to_plain(record, max_depth)
        else:
            raise RecordTypeError(
                f"比較対象はマッピングまたは Pydantic モデルである必要があります: {type(record).__name__}",
                value_type=type(record),
            )

        for path in omit_paths:
            DiffNormalizer._omit_path(prepared, path)
        return prepared

    @staticmethod
    def _omit_path(record: Dict[str, Any], path: str) -> None:
        """
        レコードから1つのパスを削除

        パスと同名のキーがあればそれを削除し、なければドット区切りでネストをたどります。
        record は prepare_record が作成したコピーであることが前提です。
        """
        if path in record:
            del record[path]
            return

        *parents, leaf = path.split(".")
        container: Dict[str, Any] = record
        for segment in parents:
            child = container.get(segment)
            if not isinstance(child, dict):
                return
            container = child
        container.pop(leaf, None)

    def _map_difference(
        self,
        difference: RawDifference,
        schema: SchemaDescription,
        max_depth: int,
        changes: List[ChangeRecord],
    ) -> None:
        """
        1件の差分を変更履歴に追加

        変更後の値がネストしていれば変更後側、変更前の値がネストしていれば変更前側で展開し、
        どちらもスカラーなら1件のエントリを追加します。
        """
        path = difference.joined_path
        operation = difference.operation
        to_value = difference.new_value
        from_value = difference.old_value

        if isinstance(to_value, NestedValue):
            self._flatten_nested(to_value, path, operation, schema, "to", max_depth, changes)
            return
        if isinstance(from_value, NestedValue):
            self._flatten_nested(from_value, path, operation, schema, "from", max_depth, changes)
            return

        changes.append(
            ChangeRecord(
                path=path,
                from_=self._scalar(from_value),
                to=self._scalar(to_value),
                operation=operation,
                label=LabelResolver.resolve(path, schema),
            )
        )

    def _flatten_nested(
        self,
        value: NestedValue,
        path: str,
        operation: ChangeOperation,
        schema: SchemaDescription,
        side: Literal["to", "from"],
        max_depth: int,
        changes: List[ChangeRecord],
        depth: int = 1,
    ) -> None:
        """
        ネストした値をフィールド単位の変更履歴に展開

        Args:
            value: 展開するネスト値
            path: 基準パス
            operation: 操作名
            schema: スキーマ記述
            side: 値を設定する側 ("to" または "from")。反対側は空文字列
            max_depth: 許容する最大ネスト深度
            changes: 変更履歴の蓄積先

        Raises:
            CyclicInputError: ネスト深度が max_depth を超えた場合
        """
        if depth > max_depth:
            raise CyclicInputError(
                f"ネスト深度が上限 ({max_depth}) を超えました: {path}",
                path=path,
                max_depth=max_depth,
            )

        for field, entry in value.entries.items():
            field_path = f"{path}.{field}" if path else field

            if isinstance(entry, NestedValue):
                self._flatten_nested(
                    entry, field_path, operation, schema, side, max_depth, changes, depth + 1
                )
                continue

            changes.append(
                ChangeRecord(
                    path=field_path,
                    from_=entry.value if side == "from" else "",
                    to=entry.value if side == "to" else "",
                    operation=operation,
                    label=LabelResolver.resolve(field_path, schema),
                )
            )

    @staticmethod
    def _scalar(value: Optional[DiffValue]) -> Any:
        # 値が存在しない側は空文字列
        if value is None:
            return ""
        return value.value
