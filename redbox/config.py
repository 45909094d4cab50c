# config.py
# =============================================================================
# 引擎配置加载 / Engine config loading
#
# 职责 / Responsibilities:
#   - 定义引擎运行参数（EngineConfig）：目录、随机种子、名册与消息节奏
#   - 两层优先级加载：代码传入 > 配置文件；YAML 中可用 ${VAR} 引用环境变量
#   - 取值非法时抛出 ConfigurationError
# =============================================================================

from __future__ import annotations

import logging
import os
import random
import re
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from redbox.advisers.roster import (
    MAX_HIRED_ADVISERS,
    RESIGNATION_IGNORED_THRESHOLD,
    RESIGNATION_PROBABILITY,
)
from redbox.catalog.loader import DEFAULT_CATALOG
from redbox.engine.pm_messages import FIRST_MESSAGE_TURN, SCHEDULED_MESSAGE_INTERVAL

logger = logging.getLogger(__name__)


class ConfigurationError(Exception):
    """引擎配置缺失或非法。 / Engine configuration missing or invalid."""


@dataclass(frozen=True)
class EngineConfig:
    catalog: str = DEFAULT_CATALOG
    catalog_path: Optional[str] = None
    random_seed: Optional[int] = None

    # --- 名册 / Roster ---
    max_hired_advisers: int = MAX_HIRED_ADVISERS
    resignation_probability: float = RESIGNATION_PROBABILITY
    resignation_ignored_threshold: int = RESIGNATION_IGNORED_THRESHOLD

    # --- 首相消息节奏 / PM message cadence ---
    scheduled_message_interval: int = SCHEDULED_MESSAGE_INTERVAL
    first_message_turn: int = FIRST_MESSAGE_TURN

    def make_rng(self) -> random.Random:
        """按 random_seed 创建随机源；未设种子时不可复现。"""
        return random.Random(self.random_seed)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> EngineConfig:
        """从字典构建配置，未知键被忽略。

        Raises:
            ConfigurationError: 类型无法转换或取值越界。
        """
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            logger.warning("忽略未知的引擎配置项: %s", ", ".join(unknown))

        try:
            seed = data.get("random_seed")
            config = cls(
                catalog=str(data.get("catalog") or DEFAULT_CATALOG),
                catalog_path=(
                    str(data["catalog_path"]) if data.get("catalog_path") else None
                ),
                random_seed=int(seed) if seed not in (None, "") else None,
                max_hired_advisers=int(data.get("max_hired_advisers", MAX_HIRED_ADVISERS)),
                resignation_probability=float(
                    data.get("resignation_probability", RESIGNATION_PROBABILITY)
                ),
                resignation_ignored_threshold=int(
                    data.get("resignation_ignored_threshold", RESIGNATION_IGNORED_THRESHOLD)
                ),
                scheduled_message_interval=int(
                    data.get("scheduled_message_interval", SCHEDULED_MESSAGE_INTERVAL)
                ),
                first_message_turn=int(data.get("first_message_turn", FIRST_MESSAGE_TURN)),
            )
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(f"引擎配置取值无效: {exc}") from exc

        config.validate()
        return config

    def validate(self) -> None:
        if self.max_hired_advisers < 1:
            raise ConfigurationError(
                f"max_hired_advisers 必须 >= 1，实际为 {self.max_hired_advisers}"
            )
        if not 0.0 <= self.resignation_probability <= 1.0:
            raise ConfigurationError(
                f"resignation_probability 必须在 [0, 1] 内，实际为 {self.resignation_probability}"
            )
        if self.resignation_ignored_threshold < 0:
            raise ConfigurationError("resignation_ignored_threshold 不能为负数")
        if self.scheduled_message_interval < 1:
            raise ConfigurationError("scheduled_message_interval 必须 >= 1")
        if self.first_message_turn < 0:
            raise ConfigurationError("first_message_turn 不能为负数")


class EngineConfigLoader:
    """引擎配置加载器。 / Engine config loader.

    优先级（高→低） / Priority (high→low):
    1. 代码传入（config 字典参数）
    2. 配置文件（YAML），其中 ${VAR} / ${VAR:-default} 展开为环境变量
    3. EngineConfig 默认值

    配置文件格式 / File format:
        redbox:
          catalog: westminster
          random_seed: ${REDBOX_SEED:-42}
          scheduled_message_interval: 6
    顶层 redbox 节可省略。
    """

    _CONFIG_SEARCH_PATHS = [
        "redbox_config.yaml",
        "redbox_config.yml",
        "config/redbox_config.yaml",
        "config/redbox_config.yml",
    ]

    def __init__(
        self,
        config: Optional[Dict[str, Any]] = None,
        config_file: Optional[str] = None,
    ):
        self._code_config = dict(config or {})
        self._file_config: Dict[str, Any] = {}
        self._load_config_file(config_file)

    def _load_config_file(self, config_file: Optional[str]) -> None:
        if config_file:
            path = Path(config_file)
            if path.exists():
                self._file_config = self._read_yaml(path)
                logger.info("引擎配置文件已加载: %s", path)
            else:
                logger.warning("指定的引擎配置文件不存在: %s", path)
            return

        for search_path in self._CONFIG_SEARCH_PATHS:
            path = Path(search_path)
            if path.exists():
                self._file_config = self._read_yaml(path)
                logger.info("自动发现引擎配置文件: %s", path)
                return

        logger.debug("未发现引擎配置文件，使用默认值")

    @staticmethod
    def _read_yaml(path: Path) -> Dict[str, Any]:
        with open(path, "r", encoding="utf-8") as f:
            try:
                raw = yaml.safe_load(f) or {}
            except yaml.YAMLError as exc:
                raise ConfigurationError(f"引擎配置文件解析失败 {path}: {exc}") from exc
        if not isinstance(raw, dict):
            raise ConfigurationError(f"引擎配置文件顶层必须是映射: {path}")
        section = raw.get("redbox", raw)
        if not isinstance(section, dict):
            raise ConfigurationError(f"引擎配置文件 redbox 节必须是映射: {path}")
        return _expand_env_vars(section)

    def resolve(self) -> EngineConfig:
        """合并文件与代码配置（None 值不覆盖）。

        Raises:
            ConfigurationError: 合并后的取值非法。
        """
        merged: Dict[str, Any] = {}
        for layer in (self._file_config, self._code_config):
            merged.update({k: v for k, v in layer.items() if v is not None})
        return EngineConfig.from_dict(merged)


def _expand_env_vars(obj: Any) -> Any:
    """递归展开字典/列表中的 ${ENV_VAR} 引用。

    - ${VAR_NAME}          → os.environ["VAR_NAME"]（未设置时保留原文）
    - ${VAR_NAME:-default} → os.environ.get("VAR_NAME", "default")
    """
    if isinstance(obj, str):
        def _replace(match):
            var_expr = match.group(1)
            if ":-" in var_expr:
                var_name, default = var_expr.split(":-", 1)
                return os.environ.get(var_name.strip(), default.strip())
            return os.environ.get(var_expr.strip(), match.group(0))

        return re.sub(r"\$\{([^}]+)\}", _replace, obj)

    if isinstance(obj, dict):
        return {k: _expand_env_vars(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_expand_env_vars(item) for item in obj]
    return obj
