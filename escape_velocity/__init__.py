"""Escape Velocity: a weekly turn-resolution engine for a startup simulation"""
from .actions import Action, ActionKind
from .competitors import update_competitors
from .config import Difficulty
from .customers import calculate_customer_metrics, update_customer_segments
from .effects import process_compounding_effects
from .engine import (DefeatReason, GameStatus, check_game_status, get_available_actions, new_game, score,
                     status_from_string, status_to_string, take_turn)
from .errors import CapacityExceededError, ChoiceNotFoundError, EngineError, InvalidActionError, InvalidStateError
from .events import apply_event_choice, check_for_events
from .insights import generate_insights, generate_warnings
from .market import get_market_status, update_market_conditions
from .progression import check_action_unlocks, check_progression_milestones
from .state import GameState
from .synergies import check_action_synergies, detect_specialization_path

__version__ = "0.1.0"

__all__ = [
    "Action", "ActionKind", "Difficulty", "GameState", "GameStatus", "DefeatReason",
    "EngineError", "InvalidActionError", "CapacityExceededError", "ChoiceNotFoundError", "InvalidStateError",
    "new_game", "take_turn", "check_game_status", "get_available_actions", "score",
    "status_to_string", "status_from_string",
    "process_compounding_effects", "check_action_synergies", "detect_specialization_path",
    "check_for_events", "apply_event_choice",
    "update_market_conditions", "get_market_status", "update_competitors",
    "update_customer_segments", "calculate_customer_metrics",
    "check_progression_milestones", "check_action_unlocks",
    "generate_insights", "generate_warnings",
]
