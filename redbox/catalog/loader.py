# loader.py
# =============================================================================
# 模板目录的发现、加载与校验。
#
# 目录 = 一个包含 CATALOG.md 的文件夹，frontmatter 声明各数据文件：
#   ---
#   name: westminster
#   version: "0.1.0"
#   description: ...
#   files:
#     advisers: advisers.yaml
#     opinions: opinions.yaml
#     narratives: narratives.yaml
#     pm_messages: pm_messages.yaml
#     interactions: interactions.yaml
#   ---
#
# 生命周期：discover -> load -> validate -> freeze
# 所有目录缺陷（重复 id、未知指标、未知占位符、结构错误）在加载期失败。
# 加载完成后的 Catalog 为只读快照，可在进程内共享。
# =============================================================================

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Set, Tuple

import yaml

from redbox.catalog.validator import (
    CATALOG_NOT_FOUND,
    CATALOG_SCHEMA_INVALID,
    DUPLICATE_ID,
    UNKNOWN_METRIC,
    CatalogValidationError,
    check_tokens,
)
from redbox.primitives.models import (
    LIKELIHOODS,
    NARRATIVE_STYLES,
    OPERATORS,
    SEVERITIES,
    AdviserBias,
    AdviserProfile,
    OpinionTemplate,
    PredictionTemplate,
    Text,
    Trigger,
)
from redbox.primitives.mp_models import APPROACHES, OUTCOMES, InteractionTemplate
from redbox.primitives.pm_models import (
    DEMAND_CATEGORIES,
    FLAG_CONDITIONS,
    PM_MESSAGE_TYPES,
    PM_TONES,
    RANGE_CONDITIONS,
    MessageConditions,
    PMMessageTemplate,
    RangeCondition,
)

logger = logging.getLogger(__name__)

CATALOG_FILE = "CATALOG.md"
DEFAULT_CATALOG = "westminster"
DEFAULT_KEY = "default"

CATALOG_SECTIONS = ("advisers", "opinions", "narratives", "pm_messages", "interactions")

# -----------------------------------------------------------------------------
# 叙事主题与可用占位符 / Narrative topics and their placeholder vocabulary
# -----------------------------------------------------------------------------
NARRATIVE_TOPICS = (
    "deficit_title", "deficit_description", "deficit_reasoning",
    "deficit_warning_title", "deficit_warning_description", "deficit_consequences",
    "debt_title", "debt_description", "debt_recommendation", "debt_rationale",
    "growth_title", "growth_description", "growth_recommendation", "growth_rationale",
    "services_title", "services_description", "services_warning_title",
    "services_warning_description", "services_consequences",
    "political_title", "political_description", "political_recommendation",
    "political_rationale",
    "manifesto_warning_title", "manifesto_warning_description", "manifesto_consequences",
    "market_title", "market_description", "market_warning_title",
    "market_warning_description", "market_consequences",
    "fiscal_rules_title", "fiscal_rules_description", "fiscal_rules_consequences",
    "tax_rise_title", "tax_rise_description", "tax_rise_consequences",
    "spending_cut_title", "spending_cut_description", "spending_cut_consequences",
)
SUMMARY_KINDS = ("quiet", "concerns", "mild")

OPINION_TOKENS = frozenset({
    "name", "deficit", "tolerance", "debt", "debt_tolerance", "growth",
    "inflation", "unemployment", "nhs_quality", "approval", "pm_trust",
    "gilt_yield", "sentiment", "revenue_change", "spending_cut", "breaches",
})
SUMMARY_TOKENS = OPINION_TOKENS | {"concerns"}
PM_TOKENS = frozenset({
    "trust", "approval", "deficit", "growth", "backbench", "unemployment", "month",
})
INTERACTION_TOKENS = frozenset({"name", "constituency"})


# =============================================================================
# Catalog: 加载完成的目录快照
# =============================================================================


@dataclass(frozen=True)
class Catalog:
    """加载完成的模板目录，冻结后不应修改。"""

    name: str
    version: str
    description: str
    path: Path

    # 顾问画像（type -> profile），保持文件顺序
    advisers: Dict[str, AdviserProfile]

    opinion_templates: Tuple[OpinionTemplate, ...] = ()
    prediction_templates: Tuple[PredictionTemplate, ...] = ()

    # topic -> {adviser type | "default" -> text}
    narratives: Dict[str, Dict[str, Text]] = field(default_factory=dict)
    # overall assessment -> {adviser type | "default" -> text}
    headlines: Dict[str, Dict[str, Text]] = field(default_factory=dict)
    # quiet / concerns / mild -> {adviser type | "default" -> text}
    summaries: Dict[str, Dict[str, Text]] = field(default_factory=dict)

    pm_messages: Tuple[PMMessageTemplate, ...] = ()
    interactions: Tuple[InteractionTemplate, ...] = ()
    interaction_fallback: Optional[InteractionTemplate] = None

    # 数据文件 SHA256（用于缓存与审计）
    content_hashes: Dict[str, str] = field(default_factory=dict)

    meta: Dict[str, Any] = field(default_factory=dict)

    def adviser(self, adviser_type: str) -> Optional[AdviserProfile]:
        return self.advisers.get(adviser_type)

    def templates_for(self, persona: str) -> List[OpinionTemplate]:
        return [t for t in self.opinion_templates if t.persona == persona]

    def predictions_for(self, persona: str) -> List[PredictionTemplate]:
        return [t for t in self.prediction_templates if t.persona == persona]

    def messages_of_type(self, message_type: str) -> List[PMMessageTemplate]:
        return [t for t in self.pm_messages if t.type == message_type]

    def narrative(self, topic: str, persona: str) -> Text:
        return _keyed(self.narratives, topic, persona, "narrative")

    def headline(self, assessment: str, persona: str) -> Text:
        return _keyed(self.headlines, assessment, persona, "headline")

    def summary(self, kind: str, persona: str) -> Text:
        return _keyed(self.summaries, kind, persona, "summary")


def _keyed(table: Dict[str, Dict[str, Text]], key: str, persona: str, what: str) -> Text:
    entries = table.get(key)
    if entries is None:
        raise CatalogValidationError(CATALOG_SCHEMA_INVALID, f"目录缺少 {what} '{key}'")
    if persona in entries:
        return entries[persona]
    return entries[DEFAULT_KEY]


# =============================================================================
# CatalogLoader: 目录发现与加载
# =============================================================================


class CatalogLoader:
    """目录发现与加载。

    生命周期：discover -> load -> validate -> freeze
    """

    _DEFAULT_SEARCH_DIRS = (
        ".redbox/catalogs",
        "catalogs",
    )
    _HOME_SEARCH_DIRS = (
        ".config/redbox/catalogs",
    )
    # 随包分发的目录（westminster）位于本模块同级目录
    _BUNDLED_DIR = Path(__file__).resolve().parent

    def __init__(self, search_paths: Optional[List[Path]] = None) -> None:
        """初始化 CatalogLoader。

        Args:
            search_paths: 目录搜索路径列表。为 None 时使用默认扫描路径：
                  1. {cwd}/.redbox/catalogs
                  2. {cwd}/catalogs
                  3. ~/.config/redbox/catalogs
                  4. 随包分发的目录
        """
        self._search_paths: List[Path] = (
            [Path(p) for p in search_paths] if search_paths else self._build_default_paths()
        )
        self._discovered: Dict[str, Dict[str, Any]] = {}

    def _build_default_paths(self) -> List[Path]:
        paths: List[Path] = []
        cwd = Path.cwd()
        for subdir in self._DEFAULT_SEARCH_DIRS:
            paths.append(cwd / subdir)
        home = Path.home()
        for subdir in self._HOME_SEARCH_DIRS:
            paths.append(home / subdir)
        paths.append(self._BUNDLED_DIR)
        return paths

    # -------------------------------------------------------------------------
    # discover: 扫描目录查找 CATALOG.md
    # -------------------------------------------------------------------------

    def discover(self) -> List[Dict[str, Any]]:
        """发现所有可用目录。

        同名目录先扫描到者胜出，因此用户目录可覆盖随包目录。隐藏目录被忽略。

        Returns:
            [{"name": str, "description": str, "path": Path}, ...]
        """
        self._discovered.clear()
        results: List[Dict[str, Any]] = []

        for search_dir in self._search_paths:
            if not search_dir.is_dir():
                logger.debug("搜索路径不存在，跳过: %s", search_dir)
                continue

            for catalog_dir in sorted(search_dir.iterdir()):
                if not catalog_dir.is_dir() or catalog_dir.name.startswith((".", "_")):
                    continue
                if not (catalog_dir / CATALOG_FILE).is_file():
                    continue

                try:
                    fm = self._parse_frontmatter(catalog_dir)
                except CatalogValidationError as exc:
                    logger.warning("解析 %s 失败，跳过: %s", catalog_dir, exc)
                    continue

                name = fm.get("name", "")
                if not name:
                    logger.warning("CATALOG.md 缺少 name 字段，跳过: %s", catalog_dir)
                    continue

                if name in self._discovered:
                    logger.debug(
                        "目录 '%s' 已发现于 %s，忽略重复: %s",
                        name, self._discovered[name]["path"], catalog_dir,
                    )
                    continue

                entry = {
                    "name": name,
                    "description": fm.get("description", ""),
                    "path": catalog_dir,
                }
                self._discovered[name] = entry
                results.append(entry)
                logger.info("发现目录: %s @ %s", name, catalog_dir)

        return results

    # -------------------------------------------------------------------------
    # load: 加载指定目录
    # -------------------------------------------------------------------------

    def load(
        self,
        catalog_name: str = DEFAULT_CATALOG,
        catalog_path: Optional[Path] = None,
    ) -> Catalog:
        """加载指定目录。

        提供 catalog_path 时直接从该路径加载（跳过 discover），
        否则按 name 在已发现的目录中匹配。

        Raises:
            CatalogValidationError: 目录不存在或校验失败。
        """
        if catalog_path is not None:
            catalog_dir = Path(catalog_path)
        else:
            if not self._discovered:
                self.discover()
            if catalog_name not in self._discovered:
                raise CatalogValidationError(
                    CATALOG_NOT_FOUND,
                    f"未找到目录: '{catalog_name}'（已扫描路径: {self._search_paths}）",
                )
            catalog_dir = Path(self._discovered[catalog_name]["path"])

        if not catalog_dir.is_dir():
            raise CatalogValidationError(CATALOG_NOT_FOUND, f"目录不存在: {catalog_dir}")

        frontmatter = self._parse_frontmatter(catalog_dir)
        return self._load_catalog(frontmatter, catalog_dir)

    def _load_catalog(self, frontmatter: Dict[str, Any], catalog_dir: Path) -> Catalog:
        name = frontmatter.get("name", "")
        if not name:
            raise CatalogValidationError(CATALOG_SCHEMA_INVALID, "frontmatter 缺少 name 字段")

        files = frontmatter.get("files")
        if not isinstance(files, dict):
            raise CatalogValidationError(
                CATALOG_SCHEMA_INVALID, f"{catalog_dir}: frontmatter 缺少 files 映射"
            )

        documents: Dict[str, Dict[str, Any]] = {}
        hashes: Dict[str, str] = {}
        for section in CATALOG_SECTIONS:
            rel_path = files.get(section)
            if not isinstance(rel_path, str):
                raise CatalogValidationError(
                    CATALOG_SCHEMA_INVALID, f"{catalog_dir}: files 缺少 '{section}'"
                )
            text = self._read_text(catalog_dir / rel_path)
            documents[section] = _parse_yaml(text, rel_path)
            hashes[section] = self._compute_hash(text)

        seen_ids: Set[str] = set()
        advisers = _build_advisers(documents["advisers"])
        personas = set(advisers)

        opinions_doc = documents["opinions"]
        opinion_templates = tuple(
            _build_opinion_template(raw, personas, seen_ids)
            for raw in _as_list(opinions_doc, "opinion_templates")
        )
        prediction_templates = tuple(
            _build_prediction_template(raw, personas, seen_ids)
            for raw in _as_list(opinions_doc, "prediction_templates", required=False)
        )

        narratives_doc = documents["narratives"]
        narratives = _build_keyed_text(
            narratives_doc, "narratives", NARRATIVE_TOPICS, personas, OPINION_TOKENS
        )
        headlines = _build_keyed_text(
            narratives_doc, "headlines", SEVERITIES, personas, OPINION_TOKENS
        )
        summaries = _build_keyed_text(
            narratives_doc, "summaries", SUMMARY_KINDS, personas, SUMMARY_TOKENS
        )

        pm_messages = tuple(
            _build_pm_message(raw, seen_ids)
            for raw in _as_list(documents["pm_messages"], "pm_messages")
        )

        interactions_doc = documents["interactions"]
        interactions = tuple(
            _build_interaction(raw, seen_ids)
            for raw in _as_list(interactions_doc, "interactions")
        )
        fallback_raw = interactions_doc.get("fallback")
        if not isinstance(fallback_raw, dict):
            raise CatalogValidationError(
                CATALOG_SCHEMA_INVALID, "interactions 缺少 fallback 条目"
            )
        interaction_fallback = _build_interaction(
            {"approaches": list(APPROACHES), "outcomes": list(OUTCOMES), **fallback_raw},
            seen_ids,
        )

        catalog = Catalog(
            name=name,
            version=str(frontmatter.get("version", "0.1.0")),
            description=frontmatter.get("description", ""),
            path=catalog_dir,
            advisers=advisers,
            opinion_templates=opinion_templates,
            prediction_templates=prediction_templates,
            narratives=narratives,
            headlines=headlines,
            summaries=summaries,
            pm_messages=pm_messages,
            interactions=interactions,
            interaction_fallback=interaction_fallback,
            content_hashes=hashes,
            meta=frontmatter.get("meta", {}) or {},
        )

        logger.info(
            "目录 '%s' v%s 加载完成 (%d advisers, %d opinions, %d pm messages, %d interactions)",
            catalog.name, catalog.version, len(advisers), len(opinion_templates),
            len(pm_messages), len(interactions),
        )
        return catalog

    # -------------------------------------------------------------------------
    # 内部方法
    # -------------------------------------------------------------------------

    def _parse_frontmatter(self, catalog_dir: Path) -> Dict[str, Any]:
        """解析 CATALOG.md 的 YAML frontmatter。"""
        catalog_md = catalog_dir / CATALOG_FILE
        if not catalog_md.is_file():
            raise CatalogValidationError(CATALOG_NOT_FOUND, f"CATALOG.md 文件不存在: {catalog_md}")

        text = catalog_md.read_text(encoding="utf-8")
        if not text.startswith("---"):
            raise CatalogValidationError(
                CATALOG_SCHEMA_INVALID,
                f"CATALOG.md 缺少 YAML frontmatter（文件必须以 --- 开头）: {catalog_md}",
            )

        second_sep = text.find("---", 3)
        if second_sep == -1:
            raise CatalogValidationError(
                CATALOG_SCHEMA_INVALID,
                f"CATALOG.md YAML frontmatter 缺少结束标记 ---: {catalog_md}",
            )

        yaml_text = text[3:second_sep].strip()
        if not yaml_text:
            raise CatalogValidationError(
                CATALOG_SCHEMA_INVALID, f"CATALOG.md YAML frontmatter 为空: {catalog_md}"
            )
        return _parse_yaml(yaml_text, str(catalog_md))

    @staticmethod
    def _read_text(path: Path) -> str:
        if not path.is_file():
            raise CatalogValidationError(CATALOG_NOT_FOUND, f"数据文件不存在: {path}")
        return path.read_text(encoding="utf-8")

    @staticmethod
    def _compute_hash(content: str) -> str:
        return hashlib.sha256(content.encode("utf-8")).hexdigest()


# =============================================================================
# 进程级默认目录 / Process-wide default catalog
# =============================================================================

_loaded: Dict[Tuple[str, Optional[str]], Catalog] = {}


def load_catalog(
    catalog_name: str = DEFAULT_CATALOG,
    catalog_path: Optional[Path] = None,
) -> Catalog:
    """按名称（或路径）加载目录，同一进程内只加载一次。"""
    key = (catalog_name, str(catalog_path) if catalog_path is not None else None)
    catalog = _loaded.get(key)
    if catalog is None:
        catalog = CatalogLoader().load(catalog_name, catalog_path)
        _loaded[key] = catalog
    return catalog


def default_catalog() -> Catalog:
    return load_catalog(DEFAULT_CATALOG)


# =============================================================================
# 构建与校验 / Builders
# =============================================================================


def _parse_yaml(text: str, source: str) -> Dict[str, Any]:
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise CatalogValidationError(
            CATALOG_SCHEMA_INVALID, f"{source} YAML 解析失败: {exc}"
        ) from exc
    if not isinstance(data, dict):
        raise CatalogValidationError(
            CATALOG_SCHEMA_INVALID,
            f"{source} 顶层必须为字典，实际类型: {type(data).__name__}",
        )
    return data


def _as_list(document: Dict[str, Any], key: str, required: bool = True) -> List[Dict[str, Any]]:
    items = document.get(key)
    if items is None and not required:
        return []
    if not isinstance(items, list) or not all(isinstance(i, dict) for i in items):
        raise CatalogValidationError(CATALOG_SCHEMA_INVALID, f"'{key}' 必须为条目列表")
    return items


def _claim_id(raw: Dict[str, Any], seen_ids: Set[str], what: str) -> str:
    template_id = raw.get("id")
    if not template_id or not isinstance(template_id, str):
        raise CatalogValidationError(CATALOG_SCHEMA_INVALID, f"{what} 条目缺少 id: {raw!r}")
    if template_id in seen_ids:
        raise CatalogValidationError(DUPLICATE_ID, f"重复的模板 id: '{template_id}'")
    seen_ids.add(template_id)
    return template_id


def _text(value: Any, owner: str, required: bool = True) -> Text:
    """单一字符串原样保留；列表转为措辞变体元组。"""
    if value is None or value == "":
        if required:
            raise CatalogValidationError(CATALOG_SCHEMA_INVALID, f"{owner} 缺少文本")
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, list) and value and all(isinstance(v, str) for v in value):
        return tuple(value)
    raise CatalogValidationError(
        CATALOG_SCHEMA_INVALID, f"{owner} 文本必须为字符串或非空字符串列表"
    )


def _number(value: Any, owner: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise CatalogValidationError(CATALOG_SCHEMA_INVALID, f"{owner} 必须为数值: {value!r}")
    return float(value)


def _build_advisers(document: Dict[str, Any]) -> Dict[str, AdviserProfile]:
    advisers: Dict[str, AdviserProfile] = {}
    bias_fields = tuple(AdviserBias.__dataclass_fields__)
    weight_fields = AdviserBias.weight_fields()

    for raw in _as_list(document, "advisers"):
        adviser_type = raw.get("type")
        if not adviser_type:
            raise CatalogValidationError(CATALOG_SCHEMA_INVALID, f"顾问缺少 type: {raw!r}")
        if adviser_type in advisers:
            raise CatalogValidationError(DUPLICATE_ID, f"重复的顾问 type: '{adviser_type}'")

        raw_bias = raw.get("bias")
        if not isinstance(raw_bias, dict):
            raise CatalogValidationError(CATALOG_SCHEMA_INVALID, f"{adviser_type}: 缺少 bias")
        missing = [f for f in bias_fields if f not in raw_bias]
        unknown = sorted(set(raw_bias) - set(bias_fields))
        if missing or unknown:
            raise CatalogValidationError(
                CATALOG_SCHEMA_INVALID,
                f"{adviser_type}: bias 字段不匹配（缺少 {missing}，未知 {unknown}）",
            )
        values = {f: _number(raw_bias[f], f"{adviser_type}.bias.{f}") for f in bias_fields}
        for weight in weight_fields:
            if not 0.0 <= values[weight] <= 1.0:
                raise CatalogValidationError(
                    CATALOG_SCHEMA_INVALID,
                    f"{adviser_type}.bias.{weight} 超出 [0, 1]: {values[weight]}",
                )

        style = raw.get("narrative_style", "formal")
        if style not in NARRATIVE_STYLES:
            raise CatalogValidationError(
                CATALOG_SCHEMA_INVALID, f"{adviser_type}: 未知 narrative_style '{style}'"
            )

        advisers[adviser_type] = AdviserProfile(
            type=adviser_type,
            name=raw.get("name", adviser_type),
            title=raw.get("title", ""),
            bias=AdviserBias(**values),
            narrative_style=style,
            description=raw.get("description", ""),
            background=raw.get("background", ""),
            strengths=tuple(raw.get("strengths") or ()),
            weaknesses=tuple(raw.get("weaknesses") or ()),
        )

    if not advisers:
        raise CatalogValidationError(CATALOG_SCHEMA_INVALID, "目录至少需要一个顾问")
    return advisers


def _build_trigger(raw: Any, owner: str) -> Trigger:
    # 延迟导入：触发器求值器属于 engine 包
    from redbox.engine.triggers import KNOWN_METRICS

    if not isinstance(raw, dict):
        raise CatalogValidationError(CATALOG_SCHEMA_INVALID, f"{owner}: trigger 必须为字典")
    metric = raw.get("metric")
    if metric not in KNOWN_METRICS:
        raise CatalogValidationError(UNKNOWN_METRIC, f"{owner}: 未知指标 '{metric}'")
    operator = raw.get("operator")
    if operator not in OPERATORS:
        raise CatalogValidationError(
            CATALOG_SCHEMA_INVALID, f"{owner}: operator 必须为 {OPERATORS}，实际 {operator!r}"
        )

    bias = raw.get("bias")
    if bias is not None:
        if bias not in AdviserBias.__dataclass_fields__:
            raise CatalogValidationError(CATALOG_SCHEMA_INVALID, f"{owner}: 未知 bias '{bias}'")
        return Trigger(
            metric=metric,
            operator=operator,
            bias=bias,
            offset=_number(raw.get("offset", 0), f"{owner}.trigger.offset"),
        )
    if "threshold" not in raw:
        raise CatalogValidationError(
            CATALOG_SCHEMA_INVALID, f"{owner}: trigger 需要 threshold 或 bias"
        )
    return Trigger(
        metric=metric,
        operator=operator,
        threshold=_number(raw["threshold"], f"{owner}.trigger.threshold"),
    )


def _check_persona(persona: Any, personas: Set[str], owner: str) -> str:
    if persona not in personas:
        raise CatalogValidationError(
            CATALOG_SCHEMA_INVALID, f"{owner}: 未知顾问 '{persona}'"
        )
    return persona


def _build_opinion_template(
    raw: Dict[str, Any],
    personas: Set[str],
    seen_ids: Set[str],
) -> OpinionTemplate:
    template_id = _claim_id(raw, seen_ids, "opinion_templates")
    persona = _check_persona(raw.get("persona"), personas, template_id)

    texts = {
        "title": _text(raw.get("title"), f"{template_id}.title"),
        "body": _text(raw.get("body"), f"{template_id}.body", required=False),
    }
    for optional in ("consequences", "action", "rationale"):
        value = raw.get(optional)
        texts[optional] = _text(value, f"{template_id}.{optional}") if value is not None else None
    for key, value in texts.items():
        check_tokens(f"{template_id}.{key}", value, OPINION_TOKENS)

    try:
        return OpinionTemplate(
            id=template_id,
            persona=persona,
            trigger=_build_trigger(raw.get("trigger"), template_id),
            category=raw.get("category", ""),
            item_kind=raw.get("item_kind", ""),
            severity=raw.get("severity"),
            priority=raw.get("priority"),
            **texts,
        )
    except ValueError as exc:
        raise CatalogValidationError(CATALOG_SCHEMA_INVALID, str(exc)) from exc


def _build_prediction_template(
    raw: Dict[str, Any],
    personas: Set[str],
    seen_ids: Set[str],
) -> PredictionTemplate:
    template_id = _claim_id(raw, seen_ids, "prediction_templates")
    persona = _check_persona(raw.get("persona"), personas, template_id)
    likelihood = raw.get("likelihood")
    if likelihood not in LIKELIHOODS:
        raise CatalogValidationError(
            CATALOG_SCHEMA_INVALID, f"{template_id}: 未知 likelihood '{likelihood}'"
        )
    outcome = _text(raw.get("outcome"), f"{template_id}.outcome")
    check_tokens(f"{template_id}.outcome", outcome, OPINION_TOKENS)
    return PredictionTemplate(
        id=template_id,
        persona=persona,
        trigger=_build_trigger(raw.get("trigger"), template_id),
        timeframe=str(raw.get("timeframe", "")),
        likelihood=likelihood,
        outcome=outcome,
    )


def _build_keyed_text(
    document: Dict[str, Any],
    section: str,
    required_keys: Tuple[str, ...],
    personas: Set[str],
    allowed_tokens: frozenset,
) -> Dict[str, Dict[str, Text]]:
    """构建 key -> {顾问 | default -> 文本} 表，每个 key 必须有 default。"""
    raw_table = document.get(section)
    if not isinstance(raw_table, dict):
        raise CatalogValidationError(CATALOG_SCHEMA_INVALID, f"缺少 '{section}' 表")

    unknown = sorted(set(raw_table) - set(required_keys))
    if unknown:
        raise CatalogValidationError(CATALOG_SCHEMA_INVALID, f"{section}: 未知条目 {unknown}")

    table: Dict[str, Dict[str, Text]] = {}
    for key in required_keys:
        entries = raw_table.get(key)
        owner = f"{section}.{key}"
        if not isinstance(entries, dict) or DEFAULT_KEY not in entries:
            raise CatalogValidationError(CATALOG_SCHEMA_INVALID, f"{owner} 缺少 default 文本")
        resolved: Dict[str, Text] = {}
        for persona, value in entries.items():
            if persona != DEFAULT_KEY:
                _check_persona(persona, personas, owner)
            text = _text(value, f"{owner}.{persona}")
            check_tokens(f"{owner}.{persona}", text, allowed_tokens)
            resolved[persona] = text
        table[key] = resolved
    return table


def _build_conditions(raw: Any, owner: str) -> MessageConditions:
    if raw is None:
        return MessageConditions()
    if not isinstance(raw, dict):
        raise CatalogValidationError(CATALOG_SCHEMA_INVALID, f"{owner}: conditions 必须为字典")

    ranges: Dict[str, RangeCondition] = {}
    flags: Dict[str, bool] = {}
    for key, value in raw.items():
        if key in RANGE_CONDITIONS:
            if not isinstance(value, dict) or not value or set(value) - {"min", "max"}:
                raise CatalogValidationError(
                    CATALOG_SCHEMA_INVALID, f"{owner}: 条件 '{key}' 需要 min/max"
                )
            ranges[key] = RangeCondition(
                minimum=_number(value["min"], f"{owner}.{key}.min") if "min" in value else None,
                maximum=_number(value["max"], f"{owner}.{key}.max") if "max" in value else None,
            )
        elif key in FLAG_CONDITIONS:
            if not isinstance(value, bool):
                raise CatalogValidationError(
                    CATALOG_SCHEMA_INVALID, f"{owner}: 旗标条件 '{key}' 必须为布尔值"
                )
            flags[key] = value
        else:
            raise CatalogValidationError(CATALOG_SCHEMA_INVALID, f"{owner}: 未知条件 '{key}'")
    return MessageConditions(ranges=ranges, flags=flags)


def _build_pm_message(raw: Dict[str, Any], seen_ids: Set[str]) -> PMMessageTemplate:
    template_id = _claim_id(raw, seen_ids, "pm_messages")

    message_type = raw.get("type")
    if message_type not in PM_MESSAGE_TYPES:
        raise CatalogValidationError(
            CATALOG_SCHEMA_INVALID, f"{template_id}: 未知消息类型 '{message_type}'"
        )
    tone = raw.get("tone")
    if tone not in PM_TONES:
        raise CatalogValidationError(CATALOG_SCHEMA_INVALID, f"{template_id}: 未知语气 '{tone}'")
    demand_category = raw.get("demand_category")
    if demand_category is not None and demand_category not in DEMAND_CATEGORIES:
        raise CatalogValidationError(
            CATALOG_SCHEMA_INVALID, f"{template_id}: 未知要求类别 '{demand_category}'"
        )
    priority = raw.get("priority", 0)
    if isinstance(priority, bool) or not isinstance(priority, int):
        raise CatalogValidationError(CATALOG_SCHEMA_INVALID, f"{template_id}: priority 必须为整数")

    subject = _text(raw.get("subject"), f"{template_id}.subject")
    content = _text(raw.get("content"), f"{template_id}.content")
    check_tokens(f"{template_id}.subject", subject, PM_TOKENS)
    check_tokens(f"{template_id}.content", content, PM_TOKENS)

    return PMMessageTemplate(
        id=template_id,
        type=message_type,
        conditions=_build_conditions(raw.get("conditions"), template_id),
        subject=subject,
        content=content,
        tone=tone,
        priority=priority,
        demand_category=demand_category,
        demand_details=raw.get("demand_details"),
        consequence_warning=raw.get("consequence_warning"),
    )


def _build_interaction(raw: Dict[str, Any], seen_ids: Set[str]) -> InteractionTemplate:
    template_id = _claim_id(raw, seen_ids, "interactions")

    approaches = tuple(raw.get("approaches") or ())
    outcomes = tuple(raw.get("outcomes") or ())
    if not approaches or set(approaches) - set(APPROACHES):
        raise CatalogValidationError(
            CATALOG_SCHEMA_INVALID, f"{template_id}: approaches 必须取自 {APPROACHES}"
        )
    if not outcomes or set(outcomes) - set(OUTCOMES):
        raise CatalogValidationError(
            CATALOG_SCHEMA_INVALID, f"{template_id}: outcomes 必须取自 {OUTCOMES}"
        )

    text = raw.get("text")
    if not isinstance(text, str) or not text:
        raise CatalogValidationError(CATALOG_SCHEMA_INVALID, f"{template_id}: 缺少 text")
    check_tokens(f"{template_id}.text", text, INTERACTION_TOKENS)

    constraints: Dict[str, Any] = {}
    for key in ("min_rebelliousness", "max_rebelliousness", "min_ambition", "max_ambition"):
        if raw.get(key) is not None:
            constraints[key] = _number(raw[key], f"{template_id}.{key}")
    for key in ("party", "faction"):
        if raw.get(key) is not None:
            constraints[key] = str(raw[key])
    if raw.get("is_minister") is not None:
        if not isinstance(raw["is_minister"], bool):
            raise CatalogValidationError(
                CATALOG_SCHEMA_INVALID, f"{template_id}: is_minister 必须为布尔值"
            )
        constraints["is_minister"] = raw["is_minister"]

    return InteractionTemplate(
        id=template_id,
        approaches=approaches,
        outcomes=outcomes,
        text=text,
        **constraints,
    )
