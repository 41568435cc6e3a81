from escape_velocity.actions import ActionKind as K
from escape_velocity.engine import take_turn
from escape_velocity.synergies import (SYNERGY_RULES, SpecializationPath, check_action_synergies,
                                       detect_specialization_path, match_synergies)


def _ids(matches):
    return [m.id for m in matches]


def test_two_synergies_in_one_turn(vc):
    matches = check_action_synergies(vc, [K.SHIP_FEATURE, K.REFACTOR_CODE, K.FOUNDER_LED_SALES, K.CONTENT_LAUNCH], [])
    assert _ids(matches) == ["product_focus", "growth_engine"]


def test_both_synergies_applied_by_turn(vc):
    new = take_turn(vc, [K.SHIP_FEATURE, K.REFACTOR_CODE, K.FOUNDER_LED_SALES, K.CONTENT_LAUNCH])
    assert "Synergy: Product Development Focus" in new.messages
    assert "Synergy: Growth Engine" in new.messages


def _play(state, turns):
    for actions in turns:
        state = take_turn(state, actions)
    return state


def test_turn_honours_long_rule_window(vc):
    state = _play(vc, [[K.HIRE]] + [[K.TAKE_BREAK]] * 4 + [[K.COACH]])
    assert "Synergy: Team Building Momentum" in state.messages
    assert "Synergy: Recovery Mode" in state.messages


def test_turn_drops_actions_past_rule_window(vc):
    state = _play(vc, [[K.HIRE]] + [[K.TAKE_BREAK]] * 6 + [[K.COACH]])
    assert "Synergy: Team Building Momentum" not in state.messages
    assert "Synergy: Recovery Mode" in state.messages


def test_window_completes_combination(vc):
    matches = check_action_synergies(vc, [K.REFACTOR_CODE], [[K.SHIP_FEATURE]])
    assert "product_focus" in _ids(matches)


def test_window_expires():
    # team_building looks back six turns
    recent = [[K.HIRE]] + [[K.TAKE_BREAK]] * 6
    assert "team_building" not in _ids(match_synergies([K.COACH], recent, SYNERGY_RULES))
    assert "team_building" in _ids(match_synergies([K.COACH], recent[1:] + [[K.HIRE]], SYNERGY_RULES))


def test_needs_an_action_this_turn():
    recent = [[K.SHIP_FEATURE, K.REFACTOR_CODE]]
    assert match_synergies([K.TAKE_BREAK], recent, SYNERGY_RULES) == []


def test_exclusive_rules(vc):
    matches = check_action_synergies(vc, [K.FOUNDER_LED_SALES, K.PAID_ADS, K.HIRE, K.SHIP_FEATURE], [])
    ids = _ids(matches)
    assert "aggressive_growth" in ids
    assert "balanced_execution" not in ids


def test_flat_recent_list_is_one_turn(vc):
    matches = check_action_synergies(vc, [K.CONTENT_LAUNCH], ["FounderLedSales"])
    assert _ids(matches) == ["growth_engine"]


def test_custom_rule_table(vc):
    only = [r for r in SYNERGY_RULES if r.id == "recovery_mode"]
    matches = check_action_synergies(vc, [K.TAKE_BREAK, K.COACH, K.SHIP_FEATURE, K.REFACTOR_CODE], [], only)
    assert _ids(matches) == ["recovery_mode"]


def test_specialization_paths():
    assert detect_specialization_path([]) is None
    assert detect_specialization_path([[K.SHIP_FEATURE, K.REFACTOR_CODE]] * 3) == SpecializationPath.PRODUCT_EXCELLENCE
    assert detect_specialization_path([[K.FOUNDER_LED_SALES, K.PAID_ADS]] * 3) == SpecializationPath.GROWTH_HACKING
    assert detect_specialization_path([[K.PROCESS_IMPROVEMENT, K.COMPLIANCE_WORK]]) == \
        SpecializationPath.OPERATIONAL_EFFICIENCY
    assert detect_specialization_path([[K.SHIP_FEATURE, K.FOUNDER_LED_SALES, K.TAKE_BREAK]]) is None


def test_turn_records_specialization(indie):
    state = take_turn(indie, [K.SHIP_FEATURE])
    assert state.specialization == SpecializationPath.PRODUCT_EXCELLENCE.value
