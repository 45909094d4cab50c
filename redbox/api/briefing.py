# briefing.py
# =============================================================================
# 公共 API：一次调用得到本回合的顾问意见、首相消息、议员回应，
# 以及受配置约束的名册操作（聘用上限、辞职判定）。
#
# 每个入口都接受三种可选输入：
#   config：EngineConfig 或配置字典（交给 EngineConfigLoader 合并）
#   catalog：已加载的目录；不传则按 config.catalog / catalog_path 加载
#   rng：随机源；不传则由 config.random_seed 创建
# 宿主的状态字典会在此边界被转换为数据模型。
# =============================================================================

"""公共 API，redbox 每回合入口。"""

from __future__ import annotations

import logging
import random
from typing import Any, Dict, List, Optional, Tuple, Union

from redbox.advisers.roster import (
    Roster,
    can_hire,
    check_resignation,
    hire_adviser,
    normalize_roster,
)
from redbox.catalog.loader import Catalog, load_catalog
from redbox.config import EngineConfig, EngineConfigLoader
from redbox.engine.interactions import get_interaction_response
from redbox.engine.opinions import generate_adviser_opinions
from redbox.engine.pm_messages import process_pm_communications
from redbox.primitives.models import AdviserOpinion
from redbox.primitives.mp_models import MPTarget
from redbox.primitives.pm_models import PMCommunication, PMRelationshipState
from redbox.primitives.state import ProposedChanges, SimulationState

logger = logging.getLogger(__name__)

ConfigLike = Union[EngineConfig, Dict[str, Any], None]
StateLike = Union[SimulationState, Dict[str, Any]]


def _resolve(
    config: ConfigLike,
    catalog: Optional[Catalog],
    rng: Optional[random.Random],
    config_file: Optional[str] = None,
) -> Tuple[EngineConfig, Catalog, random.Random]:
    if not isinstance(config, EngineConfig):
        config = EngineConfigLoader(config, config_file).resolve()
    if catalog is None:
        catalog = load_catalog(config.catalog, config.catalog_path)
    return config, catalog, rng or config.make_rng()


def _as_state(state: StateLike) -> SimulationState:
    if isinstance(state, SimulationState):
        return state
    return SimulationState.from_dict(state)


def advise(
    state: StateLike,
    roster: Any,
    proposed: Union[ProposedChanges, Dict[str, Any], None] = None,
    config: ConfigLike = None,
    catalog: Optional[Catalog] = None,
    rng: Optional[random.Random] = None,
    config_file: Optional[str] = None,
) -> Dict[str, AdviserOpinion]:
    """本回合全部已聘顾问的意见。

    参数：
        state: SimulationState 或宿主的嵌套状态字典
        roster: 任意形态的名册（映射 / 键值对列表 / 序列化字典）
        proposed: 可选的预算草案，评估尚未提交的预算时提供
        config: EngineConfig 或配置字典（最高优先级）
        catalog: 已加载的目录（优先于 config 中的目录设置）
        rng: 措辞变体的随机源
        config_file: 配置文件路径（不传则自动搜索 redbox_config.yaml）

    返回：
        adviser type -> AdviserOpinion
    """
    _, catalog, rng = _resolve(config, catalog, rng, config_file)
    if isinstance(proposed, dict):
        proposed = ProposedChanges.from_dict(proposed)
    return generate_adviser_opinions(_as_state(state), roster, proposed, catalog, rng)


def pm_briefing(
    state: StateLike,
    relationship: Optional[PMRelationshipState] = None,
    turn: Optional[int] = None,
    config: ConfigLike = None,
    catalog: Optional[Catalog] = None,
    rng: Optional[random.Random] = None,
    config_file: Optional[str] = None,
) -> PMCommunication:
    """处理本回合的首相沟通，返回消息（可能为 None）与新的关系状态。"""
    config, catalog, rng = _resolve(config, catalog, rng, config_file)
    return process_pm_communications(
        _as_state(state),
        relationship or PMRelationshipState(),
        catalog=catalog,
        rng=rng,
        turn=turn,
        scheduled_interval=config.scheduled_message_interval,
        first_message_turn=config.first_message_turn,
    )


def mp_response(
    target: Union[MPTarget, Dict[str, Any]],
    approach: str,
    outcome: str,
    config: ConfigLike = None,
    catalog: Optional[Catalog] = None,
    rng: Optional[random.Random] = None,
    config_file: Optional[str] = None,
) -> str:
    """议员对一次游说的回应文本。"""
    _, catalog, rng = _resolve(config, catalog, rng, config_file)
    if isinstance(target, dict):
        target = MPTarget(**target)
    return get_interaction_response(target, approach, outcome, catalog, rng)


def hire(
    roster: Any,
    adviser_type: str,
    turn: int = 0,
    config: ConfigLike = None,
    catalog: Optional[Catalog] = None,
    config_file: Optional[str] = None,
) -> Roster:
    """聘用一位顾问，名册已满（config.max_hired_advisers）时原样返回归一化后的名册。"""
    config, catalog, _ = _resolve(config, catalog, None, config_file)
    records = normalize_roster(roster, catalog)
    if adviser_type not in records and not can_hire(records, config.max_hired_advisers):
        logger.info("名册已满（%d 人），无法聘用 '%s'", config.max_hired_advisers, adviser_type)
        return records
    return hire_adviser(records, adviser_type, turn, catalog)


def resignations(
    roster: Any,
    config: ConfigLike = None,
    catalog: Optional[Catalog] = None,
    rng: Optional[random.Random] = None,
    config_file: Optional[str] = None,
) -> List[str]:
    """本回合提出辞职的顾问 type，按名册顺序。

    概率与被忽视次数阈值取自 config.resignation_probability /
    config.resignation_ignored_threshold。
    """
    config, catalog, rng = _resolve(config, catalog, rng, config_file)
    return [
        adviser_type
        for adviser_type, record in normalize_roster(roster, catalog).items()
        if check_resignation(
            record,
            rng,
            probability=config.resignation_probability,
            ignored_threshold=config.resignation_ignored_threshold,
        )
    ]
