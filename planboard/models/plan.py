"""
planboard/models/plan.py

Operation plan documents and search models.

A plan is a user-submitted job description: a stage, the operators it uses,
an ordered list of in-battle actions and a short write-up. Documents keep any
extra fields clients send, so round-tripping through the store never drops
data the service does not know about.
"""

from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional
from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ActionType(str, Enum):
    """Recognized action discriminators."""
    DEPLOY = "Deploy"
    SKILL = "Skill"
    RETREAT = "Retreat"
    SPEED_UP = "SpeedUp"
    BULLET_TIME = "BulletTime"
    SKILL_USAGE = "SkillUsage"
    OUTPUT = "Output"
    SKILL_DAEMON = "SkillDaemon"
    MOVE_CAMERA = "MoveCamera"


# Accepted spellings per action type (exact, case-sensitive)
ACTION_TYPE_ALIASES: Dict[str, ActionType] = {
    "Deploy": ActionType.DEPLOY,
    "部署": ActionType.DEPLOY,
    "Skill": ActionType.SKILL,
    "技能": ActionType.SKILL,
    "Retreat": ActionType.RETREAT,
    "撤退": ActionType.RETREAT,
    "SpeedUp": ActionType.SPEED_UP,
    "二倍速": ActionType.SPEED_UP,
    "BulletTime": ActionType.BULLET_TIME,
    "子弹时间": ActionType.BULLET_TIME,
    "SkillUsage": ActionType.SKILL_USAGE,
    "技能用法": ActionType.SKILL_USAGE,
    "Output": ActionType.OUTPUT,
    "打印": ActionType.OUTPUT,
    "SkillDaemon": ActionType.SKILL_DAEMON,
    "摆完挂机": ActionType.SKILL_DAEMON,
    "MoveCamera": ActionType.MOVE_CAMERA,
    "移动镜头": ActionType.MOVE_CAMERA,
}


def resolve_action_type(raw: Optional[str]) -> Optional[ActionType]:
    """Map a raw `type` string to its ActionType, or None if unrecognized."""
    if raw is None:
        return None
    return ACTION_TYPE_ALIASES.get(raw)


class _Document(BaseModel):
    """camelCase on the wire, snake_case in code, unknown fields kept."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )


class Action(_Document):
    type: Optional[str] = None
    skill_usage: Optional[int] = None
    location: Optional[List[int]] = None

    @property
    def action_type(self) -> Optional[ActionType]:
        return resolve_action_type(self.type)


class OperatorRef(_Document):
    name: str


class PlanDocument(_Document):
    title: Optional[str] = None
    details: Optional[str] = None


class Plan(_Document):
    """
    Operation plan.

    `id`, `uploader_id`, `uploader_name`, `views` and the timestamps are owned
    by the service; whatever a client sends for them on upload is overwritten.
    """
    id: Optional[str] = None
    uploader_id: Optional[str] = None
    uploader_name: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("uploader", "uploaderName", "uploader_name"),
        serialization_alias="uploader",
    )
    stage_name: Optional[str] = None
    document: Optional[PlanDocument] = None
    operators: List[OperatorRef] = Field(default_factory=list)
    actions: Optional[List[Action]] = None
    views: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def operator_names(self) -> List[str]:
        return [op.name for op in self.operators]

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class PlanQuery(_Document):
    """Search criteria. All fields optional; defaults are applied by the service."""
    page: Optional[int] = None
    limit: Optional[int] = None
    level_keyword: Optional[str] = None
    document: Optional[str] = None
    operator: Optional[str] = None
    uploader: Optional[str] = None
    order_by: Optional[str] = None
    desc: Optional[bool] = None


class PlanPage(_Document):
    """
    One page of search results.

    `page` is the total number of pages for the query, not the index of the
    page returned.
    """
    total: int
    has_next: bool
    page: int
    data: List[Plan] = Field(default_factory=list)

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)
