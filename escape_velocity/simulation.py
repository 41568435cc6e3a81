"""
Escape Velocity - Headless Simulation and Balance Analytics
===========================================================
Plays whole games with a rule-based autopilot so difficulty tuning can be
checked over thousands of seeds.
"""

import logging
from typing import Dict, List, Optional, Sequence, Union

import numpy as np
import pandas as pd
from scipy import stats

from .actions import ACTION_SPECS, ActionKind
from .config import Difficulty
from .engine import check_game_status, get_available_actions, new_game, score, status_to_string, take_turn
from .state import GameState

logger = logging.getLogger(__name__)

AUTOPILOT_START = "2024-01-01T00:00:00+00:00"


# ==================== Autopilot ====================

def _wanted_actions(state: GameState) -> List[ActionKind]:
    """Priority-ordered wish list for this week"""
    wanted = []
    recent_incident = any(state.week - w < 4 for w in state.incident_weeks)

    if state.morale < 35:
        wanted.append(ActionKind.TAKE_BREAK)
    if state.runway_months < 6 and state.burn > state.mrr:
        wanted.append(ActionKind.FUNDRAISE)
    if recent_incident:
        wanted.append(ActionKind.INCIDENT_RESPONSE)
    if state.compliance_risk > 70:
        wanted.append(ActionKind.COMPLIANCE_WORK)
    if state.tech_debt > 60:
        wanted.append(ActionKind.REFACTOR_CODE)

    wanted += [ActionKind.FOUNDER_LED_SALES, ActionKind.SHIP_FEATURE]

    if state.morale < 60:
        wanted.append(ActionKind.COACH)
    if state.runway_months > 12 and state.roster.headcount < 5:
        wanted.append(ActionKind.HIRE)
    wanted += [ActionKind.CONTENT_LAUNCH, ActionKind.RUN_EXPERIMENT, ActionKind.PROCESS_IMPROVEMENT]
    return wanted


def autopilot_actions(state: GameState) -> List[ActionKind]:
    """Pick this week's actions by fixed priority rules within the focus budget

    Args:
        state: Current snapshot

    Returns:
        Action kinds that take_turn will accept
    """
    available = set(get_available_actions(state))
    budget = state.focus_slots
    chosen = []
    for kind in _wanted_actions(state):
        if kind in chosen or kind not in available:
            continue
        cost = ACTION_SPECS[kind].cost
        if cost <= budget:
            chosen.append(kind)
            budget -= cost
    return chosen


# ==================== Single Run ====================

def run_one_simulation(seed: int, difficulty: Union[Difficulty, str] = Difficulty.INDIE_BOOTSTRAP,
                       max_weeks: int = 104) -> dict:
    """Run a single headless game

    Args:
        seed: Random seed for reproducibility
        difficulty: Starting scenario
        max_weeks: Stop here if the game has not ended

    Returns:
        Dictionary with simulation results
    """
    state = new_game(difficulty, seed=seed, started_at=AUTOPILOT_START)
    peak_streak = 0
    lowest_bank = state.bank

    for _ in range(max_weeks):
        if check_game_status(state).game_over:
            break
        state = take_turn(state, autopilot_actions(state))
        peak_streak = max(peak_streak, state.escape_velocity.streak_weeks)
        lowest_bank = min(lowest_bank, state.bank)

    status = check_game_status(state)
    return {
        'seed': seed,
        'difficulty': state.difficulty.value,
        'finished': status.game_over,
        'win': status.victory,
        'status': status_to_string(status),
        'defeat_reason': status.defeat_reason.value if status.defeat_reason else None,
        'weeks': state.week,
        'score': score(state),
        'final_bank': state.bank,
        'lowest_bank': lowest_bank,
        'final_mrr': state.mrr,
        'final_wau': state.wau,
        'final_morale': state.morale,
        'final_reputation': state.reputation,
        'peak_streak': peak_streak,
        'milestones': len(state.achieved_milestones),
        'headcount': state.roster.headcount,
        'incidents': state.incident_count,
        'competitors': len(state.competitors),
        'specialization': state.specialization,
    }


def run_monte_carlo(n: int, difficulty: Union[Difficulty, str] = Difficulty.INDIE_BOOTSTRAP,
                    max_weeks: int = 104, seed_offset: int = 0) -> dict:
    """Run n games on consecutive seeds

    Returns:
        Dictionary with headline numbers and the per-run results
    """
    results = [run_one_simulation(seed_offset + i, difficulty, max_weeks) for i in range(n)]
    wins = [r for r in results if r['win']]
    weeks = [r['weeks'] for r in results]
    logger.info("Monte Carlo %s: %d runs, %d wins", results[0]['difficulty'] if results else difficulty, n, len(wins))
    return {
        'n': len(results),
        'win_rate': len(wins) / len(results) if results else 0.0,
        'median_weeks': float(np.median(weeks)) if weeks else 0.0,
        'median_score': float(np.median([r['score'] for r in results])) if results else 0.0,
        'results': results,
    }


# ==================== Statistics ====================

def calc_stats(values: Sequence[float]) -> Optional[dict]:
    """Distribution summary (None for an empty sample)"""
    if not values:
        return None
    arr = np.array(values, dtype=float)
    return {
        'count': len(arr),
        'mean': float(np.mean(arr)),
        'median': float(np.median(arr)),
        'std': float(np.std(arr)),
        'skew': float(stats.skew(arr)) if len(arr) > 2 and np.ptp(arr) > 0 else 0.0,
        'kurtosis': float(stats.kurtosis(arr)) if len(arr) > 3 and np.ptp(arr) > 0 else 0.0,
        'min': float(np.min(arr)),
        'max': float(np.max(arr)),
        'p10': float(np.percentile(arr, 10)),
        'p25': float(np.percentile(arr, 25)),
        'p50': float(np.percentile(arr, 50)),
        'p75': float(np.percentile(arr, 75)),
        'p90': float(np.percentile(arr, 90)),
    }


def compute_detailed_stats(results: Sequence[dict]) -> Optional[dict]:
    """Compute comprehensive statistics from simulation results"""
    if not results:
        return None
    n = len(results)
    wins = [r for r in results if r['win']]
    losses = [r for r in results if r['finished'] and not r['win']]
    unfinished = n - len(wins) - len(losses)

    defeat_reasons: Dict[str, int] = {}
    for r in losses:
        reason = r['defeat_reason'] or 'other'
        defeat_reasons[reason] = defeat_reasons.get(reason, 0) + 1

    return {
        'n': n,
        'wins': len(wins),
        'losses': len(losses),
        'unfinished': unfinished,
        'win_rate': len(wins) / n * 100,
        'weeks': calc_stats([r['weeks'] for r in results]),
        'win_weeks': calc_stats([r['weeks'] for r in wins]),
        'score': calc_stats([r['score'] for r in results]),
        'final_mrr': calc_stats([r['final_mrr'] for r in results]),
        'defeat_reasons': defeat_reasons,
    }


def results_frame(results: Sequence[dict]) -> pd.DataFrame:
    """One row per run"""
    frame = pd.DataFrame(list(results))
    if not frame.empty:
        frame['outcome'] = frame['status'].str.replace('defeat:', '', regex=False)
    return frame


def summarize_by_difficulty(frame: pd.DataFrame) -> pd.DataFrame:
    """Win rate, survival and score per difficulty"""
    summary = frame.groupby('difficulty').agg(
        runs=('seed', 'count'),
        win_rate=('win', 'mean'),
        median_weeks=('weeks', 'median'),
        mean_score=('score', 'mean'),
        median_final_mrr=('final_mrr', 'median'),
    )
    summary['win_rate'] = summary['win_rate'] * 100
    return summary


def outcome_breakdown(frame: pd.DataFrame) -> pd.DataFrame:
    """Count of each outcome (victory, defeat reason, in_progress) per difficulty"""
    return pd.crosstab(frame['difficulty'], frame['outcome'])
