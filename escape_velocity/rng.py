"""
Seedable random streams.

Every probabilistic subsystem draws from its own stream derived from the game
seed, the stream name and the week, so market and competitor rolls do not
shift when the player changes actions.
"""
import random
from typing import Optional


def derive_rng(seed: int, stream: str, week: int) -> random.Random:
    """Build the random source for one subsystem on one week"""
    return random.Random(f"{seed}:{stream}:{week}")


def fresh_seed(rng: Optional[random.Random] = None) -> int:
    """Pick a 32-bit seed, from `rng` when given"""
    source = rng if rng is not None else random.SystemRandom()
    return source.randrange(2 ** 32)
