"""
deep_diff のユニットテスト

current 側から見た変更サブツリーの計算を検証します。
"""

import pytest
from pydantic import BaseModel

from src.change_tracker.domain.deep_differ import deep_diff
from src.change_tracker.domain.errors import CyclicInputError


class Profile(BaseModel):
    name: str
    age: int


class TestDeepDiffEdits:
    """編集・追加の検知のテスト"""

    def test_scalar_edit(self):
        """スカラー値の変更を返すこと"""
        assert deep_diff({"a": 1}, {"a": 2}) == {"a": 2}

    def test_nested_edit_returns_changed_subtree(self):
        """ネストした変更は変更されたキーのみを返すこと"""
        assert deep_diff(
            {"a": {"x": 1, "y": 2}},
            {"a": {"x": 1, "y": 3}},
        ) == {"a": {"y": 3}}

    def test_new_top_level_key(self):
        """current にのみ存在するキーを返すこと"""
        assert deep_diff({"a": 1}, {"a": 1, "b": {"c": 2}}) == {"b": {"c": 2}}

    def test_new_nested_key(self):
        """ネストしたキーの追加を返すこと"""
        assert deep_diff({"a": {"x": 1}}, {"a": {"x": 1, "y": 2}}) == {"a": {"y": 2}}

    def test_type_change_stores_current_value(self):
        """レコードの種類が異なる場合は current の値をそのまま返すこと"""
        assert deep_diff({"a": {"x": 1}}, {"a": [1]}) == {"a": [1]}
        assert deep_diff({"a": 1}, {"a": {"x": 1}}) == {"a": {"x": 1}}

    def test_bool_and_int_are_distinct(self):
        """True と 1 は異なる値として扱うこと"""
        assert deep_diff({"flag": 1}, {"flag": True}) == {"flag": True}

    def test_nan_is_equal_to_nan(self):
        """NaN 同士は一致として扱うこと"""
        assert deep_diff({"v": float("nan")}, {"v": float("nan")}) == {}


class TestDeepDiffLists:
    """リストの比較のテスト"""

    def test_appended_item(self):
        """追加された要素を添字キーで返すこと"""
        assert deep_diff({"tags": ["a", "b"]}, {"tags": ["a", "b", "c"]}) == {"tags": {2: "c"}}

    def test_edited_item_in_list_of_records(self):
        """リスト内レコードの変更を添字とキーで返すこと"""
        assert deep_diff(
            {"items": [{"n": 1}, {"n": 2}]},
            {"items": [{"n": 1}, {"n": 3}]},
        ) == {"items": {1: {"n": 3}}}

    def test_removed_item_not_reported(self):
        """末尾の要素の削除は報告しないこと"""
        assert deep_diff({"tags": ["a", "b"]}, {"tags": ["a"]}) == {}


class TestDeepDiffDeletionBlindness:
    """削除が報告されないことのテスト"""

    def test_deleted_top_level_key(self):
        """old にのみ存在するキーは報告しないこと"""
        assert deep_diff({"a": 1, "b": 2}, {"a": 1}) == {}

    def test_deleted_nested_key(self):
        """ネストしたキーの削除も報告しないこと"""
        assert deep_diff({"a": {"x": 1, "y": 2}}, {"a": {"x": 1}}) == {}

    def test_edit_alongside_deletion(self):
        """削除と同時の編集は編集のみ返すこと"""
        assert deep_diff({"a": 1, "b": 2}, {"a": 5}) == {"a": 5}


class TestDeepDiffInputs:
    """入力の扱いのテスト"""

    def test_equal_records(self):
        """同一レコードは空辞書を返すこと"""
        record = {"a": {"b": [1, {"c": 2}]}}
        assert deep_diff(record, {"a": {"b": [1, {"c": 2}]}}) == {}

    def test_none_old_returns_current(self):
        """old が None の場合は current 全体を返すこと"""
        assert deep_diff(None, {"a": 1}) == {"a": 1}

    def test_non_record_current_returns_empty(self):
        """current がレコードでない場合は空辞書を返すこと"""
        assert deep_diff({"a": 1}, 5) == {}
        assert deep_diff({"a": 1}, None) == {}

    def test_pydantic_models(self):
        """Pydantic モデル同士を比較できること"""
        assert deep_diff(Profile(name="john", age=30), Profile(name="john", age=31)) == {"age": 31}

    def test_models_nested_in_records(self):
        """辞書の中の Pydantic モデルも辞書として比較すること"""
        assert deep_diff(
            {"owner": Profile(name="john", age=30)},
            {"owner": Profile(name="john", age=31), "guest": Profile(name="jane", age=20)},
        ) == {"owner": {"age": 31}, "guest": {"name": "jane", "age": 20}}

    def test_cyclic_input_raises(self):
        """循環参照を含む入力は CyclicInputError になること"""
        old_node = {"x": 1}
        old_node["self"] = old_node
        current_node = {"x": 2}
        current_node["self"] = current_node

        with pytest.raises(CyclicInputError) as exc_info:
            deep_diff({"node": old_node}, {"node": current_node}, max_depth=20)

        assert exc_info.value.max_depth == 20
        assert exc_info.value.path.startswith("node.self")
