"""Shared fixtures; also makes the escape_velocity package importable for local pytest runs."""

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from escape_velocity.actions import ActionKind
from escape_velocity.config import Difficulty
from escape_velocity.engine import new_game

STARTED_AT = "2024-01-01T00:00:00+00:00"


@pytest.fixture
def indie():
    """Fresh IndieBootstrap game with a fixed seed"""
    return new_game(Difficulty.INDIE_BOOTSTRAP, seed=42, started_at=STARTED_AT)


@pytest.fixture
def vc():
    """Fresh VCTrack game with every catalog action unlocked"""
    state = new_game(Difficulty.VC_TRACK, seed=7, started_at=STARTED_AT)
    state.unlocked_actions = [k for k in ActionKind if k != ActionKind.FIRE]
    return state


@pytest.fixture
def thriving(indie):
    """Indie company already meeting all four escape-velocity criteria"""
    indie.week = 20
    indie.mrr = 200_000
    indie.burn = 8_000
    indie.wau = 5_000
    indie.wau_growth_rate = 25.0
    indie.nps = 60.0
    indie.morale = 90.0
    indie.reputation = 55.0
    indie.escape_velocity.streak_weeks = 11
    return indie
