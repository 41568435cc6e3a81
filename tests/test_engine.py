import math
import random

import pytest

from escape_velocity.actions import Action, ActionKind, Quality
from escape_velocity.config import DIFFICULTY_PRESETS, Difficulty
from escape_velocity.engine import (DefeatReason, GameStatus, check_game_status, get_available_actions, new_game,
                                    score, status_from_string, status_to_string, take_turn)
from escape_velocity.errors import CapacityExceededError, InvalidActionError, InvalidStateError
from escape_velocity.state import copy_state

from conftest import STARTED_AT


# ==================== New Game ====================

@pytest.mark.parametrize("difficulty,bank,burn,slots", [
    (Difficulty.INDIE_BOOTSTRAP, 50_000, 8_000, 3),
    (Difficulty.VC_TRACK, 1_000_000, 80_000, 5),
    (Difficulty.REGULATED_FINTECH, 500_000, 40_000, 4),
    (Difficulty.INFRA_DEV_TOOL, 300_000, 25_000, 4),
])
def test_new_game_presets(difficulty, bank, burn, slots):
    state = new_game(difficulty, seed=1, started_at=STARTED_AT)
    assert state.week == 0
    assert state.bank == bank
    assert state.burn == burn
    assert state.focus_slots == slots
    assert state.compliance_risk == DIFFICULTY_PRESETS[difficulty].compliance_risk
    assert state.wau == 100
    assert state.morale == 80
    assert state.reputation == 50
    assert state.founder_equity == 100
    assert state.runway_months == pytest.approx(bank / burn)


def test_new_game_accepts_string_difficulty():
    state = new_game("RegulatedFintech", seed=3, started_at=STARTED_AT)
    assert state.difficulty == Difficulty.REGULATED_FINTECH
    assert state.game_id == "ev-00000003"


def test_new_game_starting_world(indie):
    assert [c.name for c in indie.competitors] == ["TechCorp", "StartupXYZ"]
    assert len(indie.customer_segments) == 4
    assert len(indie.compounding_effects) == 14
    assert not any(e.active for e in indie.compounding_effects)
    assert set(indie.unlocked_actions) == {ActionKind.SHIP_FEATURE, ActionKind.FOUNDER_LED_SALES, ActionKind.HIRE,
                                           ActionKind.FUNDRAISE, ActionKind.TAKE_BREAK}


def test_new_game_unknown_difficulty():
    with pytest.raises(InvalidStateError):
        new_game("Unicorn", seed=1)


# ==================== Turn Basics ====================

def test_turn_advances_week(indie):
    new = take_turn(indie, [ActionKind.SHIP_FEATURE])
    assert new.week == indie.week + 1
    assert len(new.history) == 1
    assert new.history[-1].week == 1


def test_turn_does_not_mutate_input(indie):
    before = copy_state(indie)
    take_turn(indie, [ActionKind.SHIP_FEATURE, ActionKind.FOUNDER_LED_SALES, ActionKind.HIRE])
    assert indie == before


def test_turn_is_deterministic(indie):
    actions = [ActionKind.SHIP_FEATURE, ActionKind.FOUNDER_LED_SALES, ActionKind.HIRE]
    first = take_turn(indie, actions)
    second = take_turn(indie, actions)
    assert first == second


def test_explicit_rng_is_deterministic(indie):
    first = take_turn(indie, [ActionKind.FOUNDER_LED_SALES], rng=random.Random(5))
    second = take_turn(indie, [ActionKind.FOUNDER_LED_SALES], rng=random.Random(5))
    assert first == second


def test_actions_accept_ids_and_objects(indie):
    by_id = take_turn(indie, ["ShipFeature"])
    by_kind = take_turn(indie, [ActionKind.SHIP_FEATURE])
    by_action = take_turn(indie, [Action(ActionKind.SHIP_FEATURE, quality=Quality.BALANCED)])
    assert by_id == by_kind == by_action


def test_turn_clamps_bounded_metrics(indie):
    indie.morale = 99.0
    indie.reputation = 99.0
    new = take_turn(indie, [ActionKind.TAKE_BREAK, ActionKind.FOUNDER_LED_SALES])
    assert 0 <= new.morale <= 100
    assert 0 <= new.reputation <= 100
    assert -100 <= new.nps <= 100
    assert 0.1 <= new.velocity <= 3.0
    assert new.founder_equity + new.option_pool + new.investor_share == pytest.approx(100.0)


def test_messages_reset_each_turn(indie):
    first = take_turn(indie, [ActionKind.SHIP_FEATURE])
    second = take_turn(first, [ActionKind.TAKE_BREAK])
    assert any("feature" in m.lower() for m in first.messages)
    assert not any("feature" in m.lower() for m in second.messages)
    assert any("break" in m.lower() for m in second.messages)


def test_hire_adds_member_and_burn(indie):
    new = take_turn(indie, [ActionKind.HIRE])
    assert new.roster.headcount == 1
    assert new.burn > indie.burn
    assert ActionKind.FIRE in new.unlocked_actions


def test_hire_velocity_lands_later(indie):
    week1 = take_turn(indie, [ActionKind.HIRE])
    assert any(p.effect.source == "hire" for p in week1.pending_effects)
    week3 = take_turn(take_turn(week1, []), [])
    assert not any(p.effect.source == "hire" for p in week3.pending_effects)


def test_recent_actions_window(indie):
    state = indie
    for kind in (ActionKind.SHIP_FEATURE, ActionKind.HIRE, ActionKind.TAKE_BREAK, ActionKind.FOUNDER_LED_SALES):
        state = take_turn(state, [kind])
    assert state.recent_actions == [[ActionKind.HIRE], [ActionKind.TAKE_BREAK], [ActionKind.FOUNDER_LED_SALES]]
    assert len(state.action_log) == 4


def test_unlocks_after_week_five(indie):
    state = indie
    for _ in range(5):
        state = take_turn(state, [ActionKind.SHIP_FEATURE])
    for kind in (ActionKind.REFACTOR_CODE, ActionKind.CONTENT_LAUNCH, ActionKind.COACH):
        assert kind in state.unlocked_actions


# ==================== Validation ====================

def test_unknown_action_id(indie):
    with pytest.raises(InvalidActionError):
        take_turn(indie, ["Teleport"])


def test_duplicate_action(indie):
    with pytest.raises(InvalidActionError):
        take_turn(indie, [ActionKind.SHIP_FEATURE, ActionKind.SHIP_FEATURE])


def test_locked_action(indie):
    with pytest.raises(InvalidActionError):
        take_turn(indie, [ActionKind.DEV_REL])


def test_action_outside_catalog(indie):
    indie.unlocked_actions.append(ActionKind.COMPLIANCE_WORK)
    with pytest.raises(InvalidActionError):
        take_turn(indie, [ActionKind.COMPLIANCE_WORK])


def test_fire_needs_someone(indie):
    indie.unlocked_actions.append(ActionKind.FIRE)
    with pytest.raises(InvalidActionError):
        take_turn(indie, [ActionKind.FIRE])


def test_bad_parameters(indie):
    with pytest.raises(InvalidActionError):
        take_turn(indie, [Action(ActionKind.FOUNDER_LED_SALES, call_count=0)])
    with pytest.raises(InvalidActionError):
        take_turn(indie, [Action(ActionKind.FUNDRAISE, target=-1)])


def test_capacity_exceeded_leaves_state_unchanged(indie):
    before = copy_state(indie)
    with pytest.raises(CapacityExceededError) as err:
        take_turn(indie, [ActionKind.FUNDRAISE, ActionKind.SHIP_FEATURE, ActionKind.FOUNDER_LED_SALES])
    assert err.value.required == 4
    assert err.value.available == 3
    assert indie == before


def test_invalid_state_rejected(indie):
    indie.week = -1
    with pytest.raises(InvalidStateError):
        take_turn(indie, [])


def test_negative_burn_rejected(indie):
    indie.burn = -5
    with pytest.raises(InvalidStateError):
        take_turn(indie, [])


def test_non_finite_metric_rejected(indie):
    indie.morale = math.nan
    with pytest.raises(InvalidStateError):
        take_turn(indie, [])


def test_finished_game_rejected(indie):
    indie.bank = 0
    with pytest.raises(InvalidStateError):
        take_turn(indie, [])


# ==================== Status ====================

def test_defeat_priority(indie):
    indie.bank = 0
    indie.morale = 0
    indie.reputation = 0
    status = check_game_status(indie)
    assert status.game_over and not status.victory
    assert status.defeat_reason == DefeatReason.OUT_OF_MONEY


def test_burnout_before_reputation(indie):
    indie.morale = 0
    indie.reputation = 0
    assert check_game_status(indie).defeat_reason == DefeatReason.BURNOUT


def test_reputation_defeat(indie):
    indie.reputation = 0
    assert check_game_status(indie).defeat_reason == DefeatReason.REPUTATION


def test_indie_runs_out_of_money_in_week_seven(indie):
    state = indie
    while not check_game_status(state).game_over:
        state = take_turn(state, [])
    status = check_game_status(state)
    assert state.week == 7
    assert status.defeat_reason == DefeatReason.OUT_OF_MONEY
    assert status_to_string(status) == "defeat:out_of_money"


def test_victory_at_twelve_weeks(thriving):
    new = take_turn(thriving, [])
    assert new.escape_velocity.all_met()
    assert new.escape_velocity.streak_weeks == 12
    status = check_game_status(new)
    assert status.victory
    assert status_to_string(status) == "victory"


def test_streak_resets(thriving):
    thriving.morale = 30.0
    new = take_turn(thriving, [])
    assert not new.escape_velocity.founder_healthy
    assert new.escape_velocity.streak_weeks == 0
    assert not check_game_status(new).game_over


@pytest.mark.parametrize("text", ["in_progress", "victory", "defeat:out_of_money", "defeat:burnout",
                                  "defeat:reputation"])
def test_status_strings(text):
    assert status_to_string(status_from_string(text)) == text


def test_status_from_unknown_string():
    with pytest.raises(ValueError):
        status_from_string("paused")


def test_in_progress_status(indie):
    assert check_game_status(indie) == GameStatus(False, False, "In progress")


# ==================== Available Actions & Score ====================

def test_available_actions_new_game(indie):
    assert get_available_actions(indie) == [ActionKind.SHIP_FEATURE, ActionKind.FOUNDER_LED_SALES, ActionKind.HIRE,
                                            ActionKind.FUNDRAISE, ActionKind.TAKE_BREAK]


def test_available_actions_respect_focus(indie):
    indie.focus_slots = 1
    assert ActionKind.FUNDRAISE not in get_available_actions(indie)


def test_score_rewards_progress(indie, thriving):
    assert score(thriving) > score(new_game(Difficulty.INDIE_BOOTSTRAP, seed=42, started_at=STARTED_AT))
