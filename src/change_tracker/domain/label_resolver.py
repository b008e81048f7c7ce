"""
ラベル解決ロジック

ドット区切りのフィールドパスから、変更履歴に表示するラベルを解決します。
スキーマ記述にカスタムラベルがあればそれを使用し、なければフィールド名から生成します。
"""

import re
import unicodedata
from typing import Any, List, Mapping, Optional

from .models import LABEL_OPTION_KEY, SchemaDescription


class LabelResolver:
    """
    ラベル解決クラス

    パス → カスタムラベル → フィールド名の順にラベルを決定する静的メソッドを提供します。
    """

    # 配列の添字を除去するためのパターン
    _DIGIT_PATTERN = re.compile(r"[0-9]")

    # 単語分割パターン (区切り文字・大文字小文字の境界・連続大文字・非 ASCII 文字列)
    _WORD_PATTERN = re.compile(
        r"[A-Z]+(?=[A-Z][a-z])|[A-Z]?[a-z]+|[A-Z]+|[0-9]+|[^\W\d_A-Za-z]+"
    )

    # 分解しても基本文字にならないラテン文字の置換表
    _LATIN_LIGATURES = {
        "ß": "ss", "ẞ": "Ss", "æ": "ae", "Æ": "Ae", "œ": "oe", "Œ": "Oe",
        "ø": "o", "Ø": "O", "đ": "d", "Đ": "D", "ð": "d", "Ð": "D",
        "ł": "l", "Ł": "L", "þ": "th", "Þ": "Th",
    }

    # 発音区別符号を除去する対象 (Latin-1 Supplement 〜 Latin Extended-B)
    _LATIN_UPPER_BOUND = 0x250

    @staticmethod
    def resolve(path: str, schema: Optional[SchemaDescription] = None) -> str:
        """
        フィールドパスの表示ラベルを解決

        Args:
            path: ドット区切りのフィールドパス (例: "items.0.name")
            schema: スキーマ記述 (None の場合はフィールド名から生成)

        Returns:
            str: 表示ラベル。パスが空の場合は空文字列

        Note:
            - 数字はパスから除去してから探索する ("items.0.name" → "items.name")
            - 探索順は paths → singleNestedPaths → subpaths
        """
        segments = [
            segment
            for segment in LabelResolver._DIGIT_PATTERN.sub("", str(path or "")).split(".")
            if segment
        ]

        custom_label = LabelResolver._custom_label(segments, schema or SchemaDescription())
        if custom_label:
            return str(custom_label)

        return LabelResolver.capitalize_key(segments[-1] if segments else "")

    @staticmethod
    def _custom_label(segments: List[str], schema: SchemaDescription) -> Optional[Any]:
        """
        スキーマ記述からカスタムラベルを取得

        Args:
            segments: 数字除去済みのパスセグメント
            schema: スキーマ記述

        Returns:
            Optional[Any]: 最初に見つかったラベル。見つからない場合は None
        """
        key = ".".join(segments)

        for mapping in schema.lookup_order():
            label = LabelResolver._label_of(mapping.get(key))
            if label is not None:
                return label

        return None

    @staticmethod
    def _label_of(metadata: Any) -> Optional[Any]:
        """メタデータの options._label_ を取り出す (マッピング・属性の両対応)"""
        if metadata is None:
            return None

        if isinstance(metadata, Mapping):
            options = metadata.get("options")
        else:
            options = getattr(metadata, "options", None)

        if options is None:
            return None
        if isinstance(options, Mapping):
            return options.get(LABEL_OPTION_KEY)
        return getattr(options, LABEL_OPTION_KEY, None)

    @staticmethod
    def capitalize_key(name: str) -> str:
        """
        フィールド名を単語に分割し、各単語の先頭を大文字にして連結

        例:
        - "user_first_name" → "User First Name"
        - "firstName" → "First Name"
        - "XMLHttpRequest" → "Xml Http Request"
        - "café_name" → "Cafe Name"

        Args:
            name: フィールド名

        Returns:
            str: スペース区切りのラベル
        """
        words = LabelResolver._WORD_PATTERN.findall(LabelResolver.deburr(name or ""))
        return " ".join(word[0].upper() + word[1:].lower() for word in words)

    @staticmethod
    def deburr(name: str) -> str:
        """
        ラテン文字の発音区別符号を除去 ("straße" → "strasse")

        ラテン文字以外 (かな・漢字など) はそのまま残します。
        """
        chars = []
        for char in name:
            if char in LabelResolver._LATIN_LIGATURES:
                chars.append(LabelResolver._LATIN_LIGATURES[char])
            elif ord(char) < LabelResolver._LATIN_UPPER_BOUND:
                decomposed = unicodedata.normalize("NFKD", char)
                chars.append("".join(c for c in decomposed if not unicodedata.combining(c)))
            else:
                chars.append(char)
        return "".join(chars)
