"""
再帰的構造差分

2つのレコードをキー単位で再帰比較し、変更されたサブツリーのみを返します。
差分正規化 (DiffNormalizer) とは独立したエントリーポイントです。
"""

import math
from typing import Any, Dict, Mapping, Optional

from .errors import CyclicInputError
from .models import DEFAULT_MAX_DEPTH, to_plain


def deep_diff(old: Any, current: Any, max_depth: int = DEFAULT_MAX_DEPTH) -> Dict[Any, Any]:
    """
    current 側から見た変更サブツリーを計算

    Args:
        old: 変更前のレコード (マッピング・リスト・Pydantic モデル。ネストしたモデルも可)
        current: 変更後のレコード
        max_depth: 許容する最大ネスト深度

    Returns:
        Dict[Any, Any]: 変更されたキーのみを持つ辞書。
        リストは整数の添字をキーとする辞書として表されます。

    Raises:
        CyclicInputError: ネスト深度が max_depth を超えた場合

    Note:
        - old にのみ存在するキー (削除) はどの階層でも報告されない
        - 値の一致判定は包含関係: current 側の値がすべて old 側に含まれていれば一致
        - current がレコードでない場合は空辞書を返す

    Examples:
        >>> deep_diff({"a": {"x": 1, "y": 2}}, {"a": {"x": 1, "y": 3}})
        {'a': {'y': 3}}
    """
    return _changed_subtree(
        to_plain(old, max_depth), to_plain(current, max_depth), max_depth, "", 0
    )


def _fields(value: Any) -> Optional[Dict[Any, Any]]:
    """マッピングはそのまま、リストは添字をキーとする辞書に変換 (レコード以外は None)"""
    if isinstance(value, Mapping):
        return dict(value)
    if isinstance(value, (list, tuple)):
        return dict(enumerate(value))
    return None


def _same_record_kind(a: Any, b: Any) -> bool:
    return (
        (isinstance(a, Mapping) and isinstance(b, Mapping))
        or (isinstance(a, (list, tuple)) and isinstance(b, (list, tuple)))
    )


def _check_depth(path: str, max_depth: int, depth: int) -> None:
    if depth > max_depth:
        raise CyclicInputError(
            f"ネスト深度が上限 ({max_depth}) を超えました: {path}",
            path=path,
            max_depth=max_depth,
        )


def _changed_subtree(old: Any, current: Any, max_depth: int, path: str, depth: int) -> Dict[Any, Any]:
    _check_depth(path, max_depth, depth)

    current_fields = _fields(current)
    if current_fields is None:
        return {}
    old_fields = _fields(old) or {}

    result: Dict[Any, Any] = {}
    for key, value in current_fields.items():
        child_path = f"{path}.{key}" if path else str(key)

        if key not in old_fields:
            result[key] = value
            continue

        old_value = old_fields[key]
        if _matches(old_value, value, max_depth, child_path, depth + 1):
            continue

        if _same_record_kind(old_value, value):
            result[key] = _changed_subtree(old_value, value, max_depth, child_path, depth + 1)
        else:
            result[key] = value

    return result


def _matches(old: Any, current: Any, max_depth: int, path: str, depth: int) -> bool:
    """
    current が old に包含されるかを判定

    Returns:
        bool: current 側のキー・要素がすべて old 側に同じ値で存在すれば True
    """
    _check_depth(path, max_depth, depth)

    if isinstance(current, Mapping):
        return isinstance(old, Mapping) and all(
            key in old and _matches(old[key], value, max_depth, f"{path}.{key}", depth + 1)
            for key, value in current.items()
        )

    if isinstance(current, (list, tuple)):
        return (
            isinstance(old, (list, tuple))
            and len(current) <= len(old)
            and all(
                _matches(old_item, item, max_depth, f"{path}.{index}", depth + 1)
                for index, (old_item, item) in enumerate(zip(old, current))
            )
        )

    if isinstance(old, (Mapping, list, tuple)):
        return False

    return _scalars_equal(old, current)


def _scalars_equal(old: Any, current: Any) -> bool:
    # True == 1 を区別する
    if isinstance(old, bool) or isinstance(current, bool):
        return type(old) is type(current) and old == current

    if isinstance(old, float) and isinstance(current, float) and math.isnan(old) and math.isnan(current):
        return True

    return old == current
