"""
Tests for plan content validation.
"""

import pytest

from planboard.core.errors import InvalidActionError, ValidationError
from planboard.features.plans.validators import validate_plan
from planboard.models.plan import ActionType, resolve_action_type


def test_plan_without_actions_is_valid(make_plan):
    validate_plan(make_plan(actions=None))
    validate_plan(make_plan(actions=[]))


@pytest.mark.parametrize("action_type", ["SkillUsage", "技能用法"])
def test_skill_usage_requires_value(make_plan, action_type):
    plan = make_plan(actions=[{"type": action_type}])
    with pytest.raises(InvalidActionError) as exc:
        validate_plan(plan)
    assert exc.value.message == "skill usage required"
    assert exc.value.code == "invalid_action"


@pytest.mark.parametrize("action_type", ["SkillUsage", "技能用法"])
def test_skill_usage_with_value_is_valid(make_plan, action_type):
    validate_plan(make_plan(actions=[{"type": action_type, "skillUsage": 1}]))


def test_skill_usage_zero_counts_as_present(make_plan):
    validate_plan(make_plan(actions=[{"type": "SkillUsage", "skillUsage": 0}]))


@pytest.mark.parametrize("action_type", ["skillusage", "SKILLUSAGE", "Skill Usage", "Deploy", None])
def test_other_types_do_not_require_skill_usage(make_plan, action_type):
    validate_plan(make_plan(actions=[{"type": action_type}]))


def test_location_with_three_components_fails(make_plan):
    plan = make_plan(actions=[{"type": "Deploy", "location": [1, 2, 3]}])
    with pytest.raises(InvalidActionError) as exc:
        validate_plan(plan)
    assert exc.value.message == "invalid location format"


@pytest.mark.parametrize("location", [[], [4], [4, 2]])
def test_location_up_to_two_components_is_valid(make_plan, location):
    validate_plan(make_plan(actions=[{"type": "Deploy", "location": location}]))


def test_any_bad_action_fails_whole_plan(make_plan):
    plan = make_plan(actions=[
        {"type": "Deploy", "location": [1, 1]},
        {"type": "Retreat", "location": [1, 1, 1]},
    ])
    with pytest.raises(ValidationError):
        validate_plan(plan)


def test_invalid_action_is_a_validation_error():
    assert issubclass(InvalidActionError, ValidationError)
    assert InvalidActionError("x").status_code == 400


def test_action_type_aliases_resolve_exactly():
    assert resolve_action_type("SkillUsage") is ActionType.SKILL_USAGE
    assert resolve_action_type("技能用法") is ActionType.SKILL_USAGE
    assert resolve_action_type("部署") is ActionType.DEPLOY
    assert resolve_action_type("skillUsage") is None
    assert resolve_action_type(None) is None
