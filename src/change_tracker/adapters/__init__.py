"""
アダプター層

比較ライブラリごとの差分表現を RawDifference に変換するロジックを提供します。
"""

from .deep_compare_adapter import DeepCompareAdapter, CompareError
from .deepdiff_adapter import DeepDiffAdapter

__all__ = ["DeepCompareAdapter", "CompareError", "DeepDiffAdapter"]
