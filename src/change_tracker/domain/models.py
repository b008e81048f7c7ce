"""
データモデル定義

このモジュールは change_tracker のドメイン層のデータモデルを定義します:
- RawDifference: 比較プリミティブが報告する正規化前の差分
- ChangeRecord: フラット化・ラベル付与済みの変更履歴エントリ
- SchemaDescription: ラベル解決に使用するスキーマ記述
- ChangeTransform / DiffOptions: 出力キー名の変換設定と比較オプション
"""

import types
from enum import Enum
from typing import Any, Dict, List, Literal, Mapping, Optional, Tuple, Type, Union, get_args, get_origin

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator, model_validator

from .errors import CyclicInputError

DEFAULT_MAX_DEPTH = 100

# 常に比較対象から除外される識別子フィールド
DEFAULT_OMIT_PATHS = ["_id"]

# スキーマのメタデータ内でラベルを保持するキー (options._label_)
LABEL_OPTION_KEY = "_label_"


class DiffKind(str, Enum):
    """差分種別 (比較プリミティブの判別子)"""
    CREATED = "N"
    DELETED = "D"
    EDITED = "E"
    ARRAY = "A"


class ChangeOperation(str, Enum):
    """変更履歴に表示する操作名"""
    CREATED = "Created"
    DELETED = "Deleted"
    EDITED = "Edited"


_OPERATIONS = {
    DiffKind.CREATED: ChangeOperation.CREATED,
    DiffKind.DELETED: ChangeOperation.DELETED,
    DiffKind.EDITED: ChangeOperation.EDITED,
}


class ScalarValue(BaseModel):
    """スカラー値 (マッピング・リスト以外の値。None を含む)"""

    model_config = ConfigDict(frozen=True)

    tag: Literal["scalar"] = "scalar"
    value: Any = None


class NestedValue(BaseModel):
    """
    ネストしたレコード値

    マッピングはキー、リストは添字 (文字列化) をフィールド名として保持します。
    """

    model_config = ConfigDict(frozen=True)

    tag: Literal["nested"] = "nested"
    entries: Dict[str, "DiffValue"] = Field(default_factory=dict)


DiffValue = Union[ScalarValue, NestedValue]

NestedValue.model_rebuild()


def to_diff_value(
    value: Any,
    max_depth: int = DEFAULT_MAX_DEPTH,
    path: str = "",
    _depth: int = 0,
) -> DiffValue:
    """
    任意の値をタグ付きバリアントに分類

    Args:
        value: 分類対象の値
        max_depth: 許容する最大ネスト深度
        path: エラー報告用のフィールドパス

    Returns:
        DiffValue: ScalarValue または NestedValue

    Raises:
        CyclicInputError: ネスト深度が max_depth を超えた場合
    """
    if _depth > max_depth:
        raise CyclicInputError(
            f"ネスト深度が上限 ({max_depth}) を超えました: {path}",
            path=path,
            max_depth=max_depth,
        )

    if isinstance(value, BaseModel):
        value = value.model_dump()

    if isinstance(value, Mapping):
        items = [(str(key), item) for key, item in value.items()]
    elif isinstance(value, (list, tuple)):
        items = [(str(index), item) for index, item in enumerate(value)]
    else:
        return ScalarValue(value=value)

    return NestedValue(
        entries={
            key: to_diff_value(item, max_depth, f"{path}.{key}" if path else key, _depth + 1)
            for key, item in items
        }
    )


def to_plain(
    value: Any,
    max_depth: int = DEFAULT_MAX_DEPTH,
    path: str = "",
    _depth: int = 0,
) -> Any:
    """
    Pydantic モデルを含む値を、辞書・リストのみからなる値に変換

    マッピング・リスト・タプルは新しいコンテナにコピーされるため、
    戻り値を変更しても入力には影響しません。

    Args:
        value: 変換対象の値 (どの階層に Pydantic モデルがあってもよい)
        max_depth: 許容する最大ネスト深度
        path: エラー報告用のフィールドパス

    Returns:
        Any: 変換後の値 (スカラーはそのまま)

    Raises:
        CyclicInputError: ネスト深度が max_depth を超えた場合
    """
    if _depth > max_depth:
        raise CyclicInputError(
            f"ネスト深度が上限 ({max_depth}) を超えました: {path}",
            path=path,
            max_depth=max_depth,
        )

    if isinstance(value, BaseModel):
        value = value.model_dump()

    if isinstance(value, Mapping):
        return {
            key: to_plain(item, max_depth, f"{path}.{key}" if path else str(key), _depth + 1)
            for key, item in value.items()
        }
    if isinstance(value, (list, tuple)):
        converted = [
            to_plain(item, max_depth, f"{path}.{index}" if path else str(index), _depth + 1)
            for index, item in enumerate(value)
        ]
        return converted if isinstance(value, list) else tuple(converted)
    return value


class ArrayItem(BaseModel):
    """配列差分 (A) の要素レベルの変更内容"""

    model_config = ConfigDict(frozen=True)

    kind: DiffKind
    lhs: Optional[DiffValue] = None
    rhs: Optional[DiffValue] = None


class RawDifference(BaseModel):
    """
    比較プリミティブが報告する1件の差分

    lhs / rhs が None の場合は「値が存在しない」ことを表します。
    値そのものが None の場合は ScalarValue(value=None) が入ります。
    """

    model_config = ConfigDict(frozen=True)

    kind: DiffKind = Field(..., description="差分種別 (N/D/E/A)")
    path: List[Union[str, int]] = Field(default_factory=list, description="フィールドパス")
    lhs: Optional[DiffValue] = Field(default=None, description="変更前の値")
    rhs: Optional[DiffValue] = Field(default=None, description="変更後の値")
    index: Optional[int] = Field(default=None, description="配列差分の要素位置")
    item: Optional[ArrayItem] = Field(default=None, description="配列差分の要素レベル変更")

    @model_validator(mode="after")
    def validate_array_item(self) -> "RawDifference":
        """
        配列差分と item の整合性チェック

        Raises:
            ValueError: A に item がない場合、または item の種別が A の場合
        """
        if self.kind == DiffKind.ARRAY and self.item is None:
            raise ValueError("配列差分 (A) には item が必要です")
        if self.item is not None and self.item.kind == DiffKind.ARRAY:
            raise ValueError("item の種別に A は指定できません")
        return self

    @property
    def operation(self) -> ChangeOperation:
        """表示用の操作名 (配列差分は要素レベルの種別から解決)"""
        if self.kind == DiffKind.ARRAY:
            return _OPERATIONS[self.item.kind]
        return _OPERATIONS[self.kind]

    @property
    def old_value(self) -> Optional[DiffValue]:
        if self.kind == DiffKind.ARRAY:
            return self.item.lhs
        return self.lhs

    @property
    def new_value(self) -> Optional[DiffValue]:
        if self.kind == DiffKind.ARRAY:
            return self.item.rhs
        return self.rhs

    @property
    def joined_path(self) -> str:
        """ドット区切りのフィールドパス"""
        return ".".join(str(segment) for segment in self.path)


class ChangeRecord(BaseModel):
    """
    変更履歴エントリ

    フラット化された1フィールド分の変更を表します。
    存在しない側の値は空文字列になります。
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    path: str = Field(..., description="ドット区切りのフィールドパス")
    from_: Any = Field(default="", alias="from", description="変更前の値")
    to: Any = Field(default="", description="変更後の値")
    operation: ChangeOperation = Field(..., description="操作名")
    label: str = Field(default="", description="表示用ラベル")


class SchemaDescription(BaseModel):
    """
    ラベル解決用スキーマ記述

    paths / singleNestedPaths / subpaths の3つのマッピングで、
    ドット区切りのパスからメタデータを引きます。
    メタデータの options._label_ がカスタムラベルとして使用されます。
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    paths: Dict[str, Any] = Field(default_factory=dict)
    single_nested_paths: Dict[str, Any] = Field(default_factory=dict, alias="singleNestedPaths")
    subpaths: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("paths", "single_nested_paths", "subpaths", mode="before")
    @classmethod
    def validate_mapping(cls, v: Any) -> Any:
        return {} if v is None else v

    def lookup_order(self) -> List[Dict[str, Any]]:
        """カスタムラベルの探索順 (paths → singleNestedPaths → subpaths)"""
        return [self.paths, self.single_nested_paths, self.subpaths]

    @classmethod
    def coerce(cls, schema: Any) -> "SchemaDescription":
        """None・辞書・SchemaDescription のいずれかから SchemaDescription を得る"""
        if schema is None:
            return cls()
        if isinstance(schema, cls):
            return schema
        return cls.model_validate(schema)

    @classmethod
    def from_model(cls, model_cls: Type[BaseModel]) -> "SchemaDescription":
        """
        Pydantic モデルからスキーマ記述を生成

        Field(title=...) をカスタムラベルとして扱います。
        - トップレベルのフィールド → paths
        - ネストしたモデルのフィールド → singleNestedPaths
        - リスト内モデルのフィールド → subpaths

        Args:
            model_cls: 対象の Pydantic モデルクラス

        Returns:
            SchemaDescription: 生成したスキーマ記述
        """
        paths: Dict[str, Any] = {}
        single_nested_paths: Dict[str, Any] = {}
        subpaths: Dict[str, Any] = {}

        def collect(current_cls: Type[BaseModel], prefix: str, target: Dict[str, Any], seen: Tuple[type, ...]) -> None:
            for name, field_info in current_cls.model_fields.items():
                path = f"{prefix}.{name}" if prefix else name
                if field_info.title:
                    target[path] = {"options": {LABEL_OPTION_KEY: field_info.title}}

                nested = _nested_model(field_info.annotation)
                # 自己参照モデルは展開しない
                if nested is None or nested[0] in seen:
                    continue
                nested_cls, in_list = nested
                collect(
                    nested_cls,
                    path,
                    subpaths if in_list else single_nested_paths,
                    seen + (nested_cls,),
                )

        collect(model_cls, "", paths, (model_cls,))
        return cls(paths=paths, single_nested_paths=single_nested_paths, subpaths=subpaths)


def _nested_model(annotation: Any) -> Optional[Tuple[Type[BaseModel], bool]]:
    """
    型注釈からネストした Pydantic モデルを取り出す

    Returns:
        Optional[Tuple[Type[BaseModel], bool]]: (モデルクラス, リスト内かどうか)。
        モデルを含まない場合は None
    """
    origin = get_origin(annotation)

    if origin is Union or origin is types.UnionType:
        for arg in get_args(annotation):
            if arg is type(None):
                continue
            nested = _nested_model(arg)
            if nested is not None:
                return nested
        return None

    if origin in (list, tuple):
        args = [arg for arg in get_args(annotation) if arg is not Ellipsis]
        if not args:
            return None
        nested = _nested_model(args[0])
        return (nested[0], True) if nested is not None else None

    if isinstance(annotation, type) and issubclass(annotation, BaseModel):
        return annotation, False

    return None


class ChangeTransform(BaseModel):
    """
    出力キー名の変換設定

    各キーは未指定・空文字の場合に既定名 (to / from / path / operation / label) になります。
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    to: str = "to"
    from_: str = Field(default="from", alias="from")
    path: str = "path"
    ops: str = "operation"
    label: str = "label"

    @field_validator("to", "from_", "path", "ops", "label", mode="before")
    @classmethod
    def validate_key_name(cls, v: Any, info: ValidationInfo) -> Any:
        if v is None or (isinstance(v, str) and not v.strip()):
            return cls.model_fields[info.field_name].default
        return v

    @model_validator(mode="after")
    def validate_unique_keys(self) -> "ChangeTransform":
        """
        出力キー名の重複チェック

        Raises:
            ValueError: 同じキー名が複数のフィールドに割り当てられた場合
        """
        keys = [self.to, self.from_, self.path, self.ops, self.label]
        duplicates = sorted({key for key in keys if keys.count(key) > 1})
        if duplicates:
            raise ValueError(f"出力キー名が重複しています: {', '.join(duplicates)}")
        return self

    def apply(self, record: ChangeRecord) -> Dict[str, Any]:
        """ChangeRecord を変換後のキー名を持つ辞書に変換"""
        return {
            self.to: record.to,
            self.from_: record.from_,
            self.path: record.path,
            self.ops: record.operation.value,
            self.label: record.label,
        }


class DiffOptions(BaseModel):
    """
    比較オプション

    omitPaths / changeTransform / maxDepth のキャメルケース名と
    スネークケース名のどちらでも指定できます。
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    omit_paths: List[str] = Field(
        default_factory=list,
        alias="omitPaths",
        description="比較から除外するパス (ドット区切りでネスト指定可)"
    )
    change_transform: ChangeTransform = Field(
        default_factory=ChangeTransform,
        alias="changeTransform",
        description="出力キー名の変換設定"
    )
    max_depth: int = Field(
        default=DEFAULT_MAX_DEPTH,
        ge=1,
        alias="maxDepth",
        description="再帰処理の最大深度"
    )

    @field_validator("omit_paths", mode="before")
    @classmethod
    def validate_omit_paths(cls, v: Any) -> Any:
        if v is None:
            return []
        if isinstance(v, str):
            return [v]
        return v

    @field_validator("change_transform", mode="before")
    @classmethod
    def validate_change_transform(cls, v: Any) -> Any:
        return {} if v is None else v

    @property
    def all_omit_paths(self) -> List[str]:
        """指定パスと既定の除外パスを合わせた一覧 (重複なし)"""
        return list(dict.fromkeys([*self.omit_paths, *DEFAULT_OMIT_PATHS]))

    @classmethod
    def coerce(cls, options: Any) -> "DiffOptions":
        """None・辞書・DiffOptions のいずれかから DiffOptions を得る"""
        if options is None:
            return cls()
        if isinstance(options, cls):
            return options
        return cls.model_validate(options)
