# validator.py
# =============================================================================
# 目录校验错误定义与占位符检查。
#
# 目录缺陷（未知指标、重复 id、无法解析的占位符、结构错误）在加载期
# 直接失败，而不是在运行期静默生成永不匹配的触发器。
# =============================================================================

from __future__ import annotations

import re
from typing import Any, Iterable, Set


# -----------------------------------------------------------------------------
# 错误码
# -----------------------------------------------------------------------------
CATALOG_NOT_FOUND = "CATALOG_NOT_FOUND"
CATALOG_SCHEMA_INVALID = "CATALOG_SCHEMA_INVALID"
DUPLICATE_ID = "DUPLICATE_ID"
UNKNOWN_METRIC = "UNKNOWN_METRIC"
UNRESOLVED_TOKEN = "UNRESOLVED_TOKEN"


class CatalogValidationError(Exception):
    """目录校验错误，携带错误码与诊断信息。"""

    def __init__(self, code: str, message: str) -> None:
        self.code = code
        self.message = message
        super().__init__(f"[{code}] {message}")


# -----------------------------------------------------------------------------
# 占位符 / Placeholders
# -----------------------------------------------------------------------------
TOKEN_PATTERN = re.compile(r"\{([a-z_][a-z0-9_]*)\}")


def find_tokens(text: Any) -> Set[str]:
    """收集文本（或变体集合）中的所有占位符名。"""
    if text is None:
        return set()
    if isinstance(text, str):
        return set(TOKEN_PATTERN.findall(text))
    tokens: Set[str] = set()
    for variant in text:
        tokens |= find_tokens(variant)
    return tokens


def check_tokens(owner: str, text: Any, allowed: Iterable[str]) -> None:
    """加载期校验：文本只能引用允许的占位符。"""
    unknown = find_tokens(text) - set(allowed)
    if unknown:
        raise CatalogValidationError(
            UNRESOLVED_TOKEN,
            f"{owner} 引用了无法解析的占位符 {sorted(unknown)}",
        )
