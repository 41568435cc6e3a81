import pytest

from escape_velocity.actions import ActionKind
from escape_velocity.config import Difficulty
from escape_velocity.engine import take_turn
from escape_velocity.progression import (BASE_MILESTONES, DIFFICULTY_MILESTONES, Reward, RewardKind, all_milestones,
                                         award_milestones, check_action_unlocks, check_progression_milestones,
                                         evaluate_escape_velocity, progression_level)
from escape_velocity.state import copy_state


def _ids(milestones):
    return [m.id for m in milestones]


def test_table_per_difficulty():
    for difficulty in Difficulty:
        table = all_milestones(difficulty)
        assert len(table) == len(BASE_MILESTONES) + 1
        assert table[-1] is DIFFICULTY_MILESTONES[difficulty]


def test_starting_milestones_have_no_cash(indie):
    for milestone in check_progression_milestones(indie):
        assert "cash" not in milestone.reward.value


def test_milestones_only_once(indie):
    indie.mrr = 2_000
    first = check_progression_milestones(indie)
    assert "first_revenue" in _ids(first)
    award_milestones(indie, first)
    assert "first_revenue" not in _ids(check_progression_milestones(indie))


def test_check_is_pure(indie):
    indie.mrr = 2_000
    before = copy_state(indie)
    check_progression_milestones(indie)
    assert indie == before


def test_funding_milestones_use_total_raised(vc):
    assert "first_funding" not in _ids(check_progression_milestones(vc))
    vc.total_raised = 1_500_000
    ids = _ids(check_progression_milestones(vc))
    assert "first_funding" in ids
    assert "series_a" in ids


def test_bonus_reward_lands_next_week(indie):
    indie.mrr = 2_000
    first_revenue = [m for m in check_progression_milestones(indie) if m.id == "first_revenue"]
    award_milestones(indie, first_revenue)
    assert indie.morale == 80
    assert [p.due_week for p in indie.pending_effects] == [indie.week + 1]


def test_modifier_and_unlock_rewards_apply_now(indie):
    indie.wau = 20_000
    indie.churn_rate = 4
    indie.week = 3
    found = [m for m in check_progression_milestones(indie) if m.id in ("product_market_fit", "scale_users")]
    award_milestones(indie, found)
    assert indie.modifiers["churn_reduction"] == 1.0
    assert ActionKind.PROCESS_IMPROVEMENT in indie.unlocked_actions
    assert "Unlocked action: ProcessImprovement" in indie.messages


def test_turn_awards_milestones(indie):
    new = take_turn(indie, [])
    assert "first_users" in new.achieved_milestones
    assert any(m.startswith("Milestone achieved: First Users") for m in new.messages)


def test_action_unlocks(indie):
    assert check_action_unlocks(indie) == []
    indie.week = 13
    unlocked = check_action_unlocks(indie)
    assert ActionKind.DEV_REL in unlocked
    assert ActionKind.COMPLIANCE_WORK not in unlocked
    indie.incident_count = 1
    assert ActionKind.INCIDENT_RESPONSE in check_action_unlocks(indie)


def test_progression_level(indie):
    assert progression_level(indie).name == "Startup"
    indie.achieved_milestones = [f"m{i}" for i in range(11)]
    level = progression_level(indie)
    assert level.level == 3
    assert level.name == "Established"
    assert level.next_level_threshold == 15


def test_escape_velocity_criteria(thriving):
    progress = evaluate_escape_velocity(thriving)
    assert progress.all_met()
    assert progress.streak_weeks == 12
    thriving.nps = 10
    progress = evaluate_escape_velocity(thriving)
    assert not progress.customer_love
    assert progress.streak_weeks == 0


@pytest.mark.parametrize("morale,healthy", [(40.0, False), (40.5, True)])
def test_founder_healthy_is_strict(thriving, morale, healthy):
    thriving.morale = morale
    assert evaluate_escape_velocity(thriving).founder_healthy is healthy


def test_rewards_compare_by_value():
    assert Reward(RewardKind.BONUS, "morale_boost", "x") == Reward(RewardKind.BONUS, "morale_boost", "x")
