"""Balance analytics from the command line"""
import argparse
import logging
from typing import List, Optional

from .config import Difficulty
from .engine import check_game_status, describe, new_game, score, status_to_string, take_turn
from .simulation import (AUTOPILOT_START, autopilot_actions, compute_detailed_stats, outcome_breakdown,
                         results_frame, run_monte_carlo, summarize_by_difficulty)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Run Escape Velocity simulations with analytics')
    parser.add_argument('--sims', type=int, default=1000, help='Number of simulations per difficulty (default: 1000)')
    parser.add_argument('--difficulty', type=str, default=Difficulty.INDIE_BOOTSTRAP.value,
                        choices=[d.value for d in Difficulty], help='Starting scenario (default: IndieBootstrap)')
    parser.add_argument('--seed', type=int, default=123, help='Seed for single-run mode (default: 123)')
    parser.add_argument('--max-weeks', type=int, default=104, help='Stop unfinished games here (default: 104)')
    parser.add_argument('--single-run', action='store_true', help='Play one game and print every week')
    parser.add_argument('--all-difficulties', action='store_true', help='Compare every difficulty')
    parser.add_argument('--verbose', action='store_true', help='Show engine debug logging')
    return parser


def print_stats(title: str, stats: dict):
    print(f"\n{'='*80}")
    print(title)
    print(f"{'='*80}")
    print(f"Runs: {stats['n']}  Wins: {stats['wins']}  Losses: {stats['losses']}  Unfinished: {stats['unfinished']}")
    print(f"Win Rate: {stats['win_rate']:.1f}%")

    weeks = stats['weeks']
    print(f"\nWeeks Played:")
    print(f"  P10: {weeks['p10']:.0f}  P25: {weeks['p25']:.0f}  P50: {weeks['p50']:.0f}  "
          f"P75: {weeks['p75']:.0f}  P90: {weeks['p90']:.0f}")
    print(f"  Mean: {weeks['mean']:.1f}  Skew: {weeks['skew']:.2f}")

    sc = stats['score']
    print(f"\nScore: median {sc['median']:.1f}, mean {sc['mean']:.1f}, std {sc['std']:.1f}")

    if stats['defeat_reasons']:
        print(f"\nDefeat Reasons:")
        for reason, count in sorted(stats['defeat_reasons'].items(), key=lambda kv: -kv[1]):
            pct = count / stats['losses'] * 100
            print(f"  {reason}: {count} ({pct:.1f}%)")


def single_run(difficulty: str, seed: int, max_weeks: int):
    print(f"\n{'='*80}")
    print(f"SINGLE RUN ({difficulty}, seed {seed})")
    print(f"{'='*80}\n")

    state = new_game(difficulty, seed=seed, started_at=AUTOPILOT_START)
    while not check_game_status(state).game_over and state.week < max_weeks:
        actions = autopilot_actions(state)
        state = take_turn(state, actions)
        print(f"{describe(state)}  [{', '.join(a.value for a in actions) or 'rest'}]")
        for message in state.messages:
            print(f"    {message}")

    status = check_game_status(state)
    print(f"\nOUTCOME: {status_to_string(status)}")
    print(f"Score: {score(state):.1f}")
    print(f"Milestones: {', '.join(state.achieved_milestones) or 'none'}")


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format='%(name)s %(levelname)s %(message)s')

    if args.single_run:
        single_run(args.difficulty, args.seed, args.max_weeks)
        return 0

    if args.all_difficulties:
        results = []
        for difficulty in Difficulty:
            print(f"Running {args.sims} simulations for {difficulty.value}...")
            results += run_monte_carlo(args.sims, difficulty, args.max_weeks)['results']
        frame = results_frame(results)
        print(f"\n{'='*80}")
        print("DIFFICULTY COMPARISON")
        print(f"{'='*80}")
        print(summarize_by_difficulty(frame).round(1).to_string())
        print(f"\nOutcomes:")
        print(outcome_breakdown(frame).to_string())
        return 0

    print(f"Running {args.sims} simulations for {args.difficulty}...")
    mc = run_monte_carlo(args.sims, args.difficulty, args.max_weeks)
    stats = compute_detailed_stats(mc['results'])
    if stats is None:
        print("No simulations run.")
        return 0
    print_stats(f"RESULTS: {args.difficulty}", stats)
    return 0
