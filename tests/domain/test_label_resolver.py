"""
LabelResolver のユニットテスト

スキーマ記述からのカスタムラベル取得と、フィールド名からのラベル生成を検証します。
"""

import pytest
from types import SimpleNamespace

from src.change_tracker.domain.label_resolver import LabelResolver
from src.change_tracker.domain.models import SchemaDescription


def label_meta(label):
    """テスト用のスキーマメタデータを作成するヘルパー"""
    return {"options": {"_label_": label}}


class TestCapitalizeKey:
    """フィールド名からのラベル生成のテスト"""

    @pytest.mark.parametrize("name,expected", [
        ("name", "Name"),
        ("user_first_name", "User First Name"),
        ("firstName", "First Name"),
        ("created-at", "Created At"),
        ("XMLHttpRequest", "Xml Http Request"),
        ("_id", "Id"),
        ("動物種別", "動物種別"),
        ("", ""),
        ("café_name", "Cafe Name"),
        ("straße", "Strasse"),
        ("über", "Uber"),
        ("crèmeBrûlée", "Creme Brulee"),
    ])
    def test_capitalize_key(self, name, expected):
        """単語ごとに先頭を大文字にしてスペースで連結すること"""
        assert LabelResolver.capitalize_key(name) == expected

    def test_deburr_keeps_kana(self):
        """濁点を含むかなは分解せずそのまま残すこと"""
        assert LabelResolver.deburr("ガソリン代") == "ガソリン代"
        assert LabelResolver.capitalize_key("ガソリン代") == "ガソリン代"


class TestFallbackLabel:
    """カスタムラベルがない場合のテスト"""

    def test_uses_last_segment(self):
        """パスの最後のセグメントからラベルを生成すること"""
        assert LabelResolver.resolve("address.zipCode") == "Zip Code"

    def test_trailing_index_uses_nearest_field_name(self):
        """添字で終わるパスは直前のフィールド名を使うこと"""
        assert LabelResolver.resolve("tags.2") == "Tags"
        assert LabelResolver.resolve("matrix.0.1") == "Matrix"

    def test_index_in_middle_is_removed(self):
        """途中の添字はラベルに影響しないこと"""
        assert LabelResolver.resolve("items.0.name") == "Name"

    def test_digits_inside_field_names_are_removed(self):
        """フィールド名中の数字も除去されること"""
        assert LabelResolver.resolve("address2") == "Address"

    def test_empty_path(self):
        """空のパスは空文字列を返すこと"""
        assert LabelResolver.resolve("") == ""
        assert LabelResolver.resolve("0.1") == ""

    def test_missing_schema_entry(self):
        """スキーマに該当エントリがなくても例外にならないこと"""
        schema = SchemaDescription(paths={"other": label_meta("その他")})
        assert LabelResolver.resolve("name", schema) == "Name"


class TestCustomLabel:
    """スキーマ記述からのカスタムラベル取得のテスト"""

    def test_label_from_paths(self):
        """paths のラベルを使うこと"""
        schema = SchemaDescription(paths={"name": label_meta("氏名")})
        assert LabelResolver.resolve("name", schema) == "氏名"

    def test_label_from_single_nested_paths(self):
        """singleNestedPaths のラベルを使うこと"""
        schema = SchemaDescription.coerce({
            "singleNestedPaths": {"address.city": label_meta("市区町村")}
        })
        assert LabelResolver.resolve("address.city", schema) == "市区町村"

    def test_label_from_subpaths_ignores_index(self):
        """subpaths は添字を除いたパスで探索すること"""
        schema = SchemaDescription(subpaths={"items.name": label_meta("品名")})
        assert LabelResolver.resolve("items.3.name", schema) == "品名"

    def test_paths_take_precedence(self):
        """paths が singleNestedPaths・subpaths より優先されること"""
        schema = SchemaDescription(
            paths={"a.b": label_meta("first")},
            single_nested_paths={"a.b": label_meta("second")},
            subpaths={"a.b": label_meta("third")},
        )
        assert LabelResolver.resolve("a.b", schema) == "first"

    def test_entry_without_label_falls_through(self):
        """ラベルを持たないエントリは次のマッピングを探索すること"""
        schema = SchemaDescription(
            paths={"a.b": {"type": "String"}},
            subpaths={"a.b": label_meta("third")},
        )
        assert LabelResolver.resolve("a.b", schema) == "third"

    def test_empty_label_uses_field_name(self):
        """空のラベルはフィールド名からの生成になること"""
        schema = SchemaDescription(
            paths={"first_name": label_meta("")},
            subpaths={"first_name": label_meta("名")},
        )
        assert LabelResolver.resolve("first_name", schema) == "First Name"

    def test_attribute_style_metadata(self):
        """属性アクセス形式のメタデータからもラベルを取得できること"""
        metadata = SimpleNamespace(options=SimpleNamespace(_label_="氏名"))
        schema = SchemaDescription(paths={"name": metadata})
        assert LabelResolver.resolve("name", schema) == "氏名"

    def test_non_string_label_is_stringified(self):
        """文字列以外のラベルは文字列化されること"""
        schema = SchemaDescription(paths={"year": label_meta(2026)})
        assert LabelResolver.resolve("year", schema) == "2026"
