"""
ドメイン層

差分正規化・ラベル解決・再帰的構造差分のロジックを提供します。
"""

from .models import (
    ChangeOperation,
    ChangeRecord,
    ChangeTransform,
    DiffKind,
    DiffOptions,
    RawDifference,
    SchemaDescription,
)
from .errors import ChangeTrackerError, CyclicInputError, RecordTypeError
from .label_resolver import LabelResolver
from .normalizer import DiffNormalizer
from .deep_differ import deep_diff

__all__ = [
    "ChangeOperation",
    "ChangeRecord",
    "ChangeTransform",
    "DiffKind",
    "DiffOptions",
    "RawDifference",
    "SchemaDescription",
    "ChangeTrackerError",
    "CyclicInputError",
    "RecordTypeError",
    "LabelResolver",
    "DiffNormalizer",
    "deep_diff",
]
