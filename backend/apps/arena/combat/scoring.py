"""Match-end fitness awards."""
from dataclasses import dataclass
from typing import Optional

from .config import FitnessConfig
from .simulator import MatchOutcome, MatchStatus


@dataclass(frozen=True)
class MatchAwards:
    """Final fitness deltas for both sides of a finished match."""
    fitness_a: float
    fitness_b: float
    won_a: bool
    won_b: bool
    stalemate: bool


def score_outcome(
    outcome: MatchOutcome,
    fitness: Optional[FitnessConfig] = None,
) -> MatchAwards:
    """
    Turn a finished match into fitness deltas.

    Each side gets its shaped fitness, plus damage dealt and remaining
    health weighted by their multipliers. The winner gets the KO bonus
    or the smaller timeout bonus. A timed-out match in which less than
    ``stalemate_threshold`` total damage was exchanged penalizes both.

    Raises:
        ValueError: If the match is still running.
    """
    if not outcome.finished:
        raise ValueError("Cannot score a match that is still running")
    cfg = fitness or FitnessConfig()

    fitness_a = (
        outcome.shaped_fitness_a
        + outcome.damage_by_a * cfg.damage_multiplier
        + outcome.health_a * cfg.health_multiplier
    )
    fitness_b = (
        outcome.shaped_fitness_b
        + outcome.damage_by_b * cfg.damage_multiplier
        + outcome.health_b * cfg.health_multiplier
    )

    winner = outcome.winner
    bonus = cfg.ko_win_bonus if outcome.status == MatchStatus.KO else cfg.timeout_win_bonus
    if winner == 'a':
        fitness_a += bonus
    elif winner == 'b':
        fitness_b += bonus

    stalemate = (
        outcome.status == MatchStatus.TIMEOUT
        and outcome.total_damage < cfg.stalemate_threshold
    )
    if stalemate:
        fitness_a += cfg.stalemate_penalty
        fitness_b += cfg.stalemate_penalty

    return MatchAwards(
        fitness_a=fitness_a,
        fitness_b=fitness_b,
        won_a=winner == 'a',
        won_b=winner == 'b',
        stalemate=stalemate,
    )
