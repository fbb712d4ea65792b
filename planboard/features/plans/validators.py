"""Structural checks for plan content."""

from planboard.core.errors import InvalidActionError
from planboard.models.plan import ActionType, Plan

MAX_LOCATION_COMPONENTS = 2


def validate_plan(plan: Plan) -> None:
    """Raise InvalidActionError if any embedded action is malformed.

    A skill-usage action must carry `skillUsage`; a `location`, when given,
    has at most two components.
    """
    for action in plan.actions or []:
        if action.action_type is ActionType.SKILL_USAGE and action.skill_usage is None:
            raise InvalidActionError("skill usage required")

        if action.location is not None and len(action.location) > MAX_LOCATION_COMPONENTS:
            raise InvalidActionError("invalid location format")
