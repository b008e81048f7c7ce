"""
deepdiff による比較プリミティブ

deepdiff のツリービューを N (新規) / D (削除) / E (編集) / A (配列要素) の
RawDifference リストに変換します。
"""

from typing import Any, List, Mapping, Optional, Tuple, Union

from deepdiff import DeepDiff
from deepdiff.helper import notpresent

from ..domain.models import (
    DEFAULT_MAX_DEPTH,
    ArrayItem,
    DiffKind,
    DiffValue,
    RawDifference,
    to_diff_value,
)
from .deep_compare_adapter import CompareError, DeepCompareAdapter


class DeepDiffAdapter(DeepCompareAdapter):
    """
    deepdiff を使用した比較アダプター

    Note:
        - threshold_to_diff_deeper=0 により、共通キーが少ない辞書でもキー単位で報告させる
        - 配列要素の追加・削除は、配列自体のパスと要素位置 (index) に分けて保持する
        - 差分は current のフィールド順に並び、current にないキー (削除) は old の並び順で後に続く
    """

    # レポート種別 → 差分種別
    REPORT_KINDS = {
        "values_changed": DiffKind.EDITED,
        "type_changes": DiffKind.EDITED,
        "dictionary_item_added": DiffKind.CREATED,
        "dictionary_item_removed": DiffKind.DELETED,
        "iterable_item_added": DiffKind.CREATED,
        "iterable_item_removed": DiffKind.DELETED,
    }

    _ARRAY_REPORTS = {"iterable_item_added", "iterable_item_removed"}

    # 追加系のレポートは t2 側のパスを使う
    _ADDED_REPORTS = {"dictionary_item_added", "iterable_item_added"}

    def compare(
        self,
        old: Any,
        current: Any,
        max_depth: int = DEFAULT_MAX_DEPTH,
    ) -> List[RawDifference]:
        try:
            tree = DeepDiff(old, current, view="tree", threshold_to_diff_deeper=0)
        except (TypeError, ValueError, RecursionError) as e:
            raise CompareError(f"deepdiff による比較に失敗しました: {e}") from e

        unsupported = sorted(set(tree.keys()) - set(self.REPORT_KINDS))
        if unsupported:
            raise CompareError(
                f"未対応の差分種別です: {', '.join(unsupported)}",
                report_type=unsupported[0],
            )

        differences = []
        for report_type, kind in self.REPORT_KINDS.items():
            for level in tree.get(report_type, []):
                differences.append(
                    self._to_raw_difference(report_type, kind, level, max_depth)
                )

        # current のフィールド順、次に old にのみあるキーの順
        differences.sort(key=lambda difference: self._traversal_key(difference, old, current))

        self.logger.debug(
            "deepdiff comparison finished",
            extra={"differences_count": len(differences)}
        )
        return differences

    def _to_raw_difference(
        self,
        report_type: str,
        kind: DiffKind,
        level: Any,
        max_depth: int,
    ) -> RawDifference:
        """
        deepdiff の DiffLevel を RawDifference に変換

        Args:
            report_type: deepdiff のレポート種別
            kind: 対応する差分種別
            level: deepdiff の DiffLevel
            max_depth: 差分値の分類に許容する最大ネスト深度

        Returns:
            RawDifference: 変換後の差分

        Raises:
            CompareError: 配列要素の差分にパスが含まれない場合
        """
        path = [
            self._path_segment(segment)
            for segment in level.path(
                output_format="list",
                use_t2=report_type in self._ADDED_REPORTS,
            )
        ]
        joined_path = ".".join(str(segment) for segment in path)

        lhs = self._diff_value(level.t1, joined_path, max_depth)
        rhs = self._diff_value(level.t2, joined_path, max_depth)

        if report_type not in self._ARRAY_REPORTS:
            return RawDifference(kind=kind, path=path, lhs=lhs, rhs=rhs)

        if not path:
            raise CompareError(
                "配列要素の差分にパスがありません",
                report_type=report_type,
            )

        *array_path, index = path
        return RawDifference(
            kind=DiffKind.ARRAY,
            path=array_path,
            index=index if isinstance(index, int) else None,
            item=ArrayItem(kind=kind, lhs=lhs, rhs=rhs),
        )

    @staticmethod
    def _traversal_key(difference: RawDifference, old: Any, current: Any) -> List[Tuple[int, int]]:
        """
        差分の並べ替えキーを作成

        パスの各階層について、current のキーは (0, 位置)、current にない old のキーは (1, 位置)、
        配列の添字は (0, 添字) とします。

        Args:
            difference: 並べ替え対象の差分
            old: 比較した変更前の値
            current: 比較した変更後の値

        Returns:
            List[Tuple[int, int]]: 階層ごとの位置のリスト
        """
        path = list(difference.path)
        if difference.kind == DiffKind.ARRAY and difference.index is not None:
            path.append(difference.index)

        key = []
        old_node, current_node = old, current
        for segment in path:
            key.append(DeepDiffAdapter._segment_position(segment, old_node, current_node))
            old_node = DeepDiffAdapter._child(old_node, segment)
            current_node = DeepDiffAdapter._child(current_node, segment)
        return key

    @staticmethod
    def _segment_position(segment: Union[str, int], old_node: Any, current_node: Any) -> Tuple[int, int]:
        for rank, node in enumerate((current_node, old_node)):
            if isinstance(node, Mapping) and segment in node:
                return (rank, list(node).index(segment))
        if isinstance(segment, int):
            return (0, segment)
        return (2, 0)

    @staticmethod
    def _child(node: Any, segment: Union[str, int]) -> Any:
        if isinstance(node, Mapping):
            return node.get(segment)
        if isinstance(node, (list, tuple)) and isinstance(segment, int) and 0 <= segment < len(node):
            return node[segment]
        return None

    @staticmethod
    def _path_segment(segment: Any) -> Union[str, int]:
        # bool は int のサブクラスなので文字列として扱う
        if isinstance(segment, int) and not isinstance(segment, bool):
            return segment
        return str(segment)

    @staticmethod
    def _diff_value(value: Any, path: str, max_depth: int) -> Optional[DiffValue]:
        if value is notpresent:
            return None
        return to_diff_value(value, max_depth, path)
