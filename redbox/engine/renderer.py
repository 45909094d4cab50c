# renderer.py
# =============================================================================
# 变体渲染器：解析 {token} 占位符，并在多个措辞变体中均匀随机选择。
#
# 每个字段独立抽样（标题与正文各自变化），随机源由调用方注入。
# 未解析的占位符视为目录内容缺陷，抛出 CatalogValidationError。
# =============================================================================

"""Variant selection and placeholder substitution."""

from __future__ import annotations

import random
from typing import Any, Mapping, Optional

from redbox.catalog.validator import (
    TOKEN_PATTERN,
    UNRESOLVED_TOKEN,
    CatalogValidationError,
    find_tokens,
)


class VariantRenderer:
    """措辞变体选择 + 占位符替换。 / Variant picker and placeholder substitution."""

    def __init__(self, rng: Optional[random.Random] = None):
        self._rng = rng or random.Random()

    @property
    def rng(self) -> random.Random:
        return self._rng

    def choose(self, text: Any) -> str:
        """单一字符串原样返回；多个变体时均匀随机选择一个。"""
        if text is None:
            return ""
        if isinstance(text, str):
            return text
        variants = list(text)
        if not variants:
            return ""
        if len(variants) == 1:
            return variants[0]
        return self._rng.choice(variants)

    def render(
        self,
        text: Any,
        substitutions: Optional[Mapping[str, Any]] = None,
    ) -> str:
        """选择变体后执行替换。

        Raises:
            CatalogValidationError: 文本中存在替换表未提供的占位符。
        """
        chosen = self.choose(text)
        return substitute(chosen, substitutions or {})


def substitute(text: str, substitutions: Mapping[str, Any]) -> str:
    """替换所有 {token} 出现位置。"""
    missing = find_tokens(text) - set(substitutions)
    if missing:
        raise CatalogValidationError(
            UNRESOLVED_TOKEN,
            f"未解析的占位符 {sorted(missing)}: {text[:80]!r}",
        )
    return TOKEN_PATTERN.sub(lambda m: str(substitutions[m.group(1)]), text)
