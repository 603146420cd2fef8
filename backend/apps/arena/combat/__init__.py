"""
Combat simulation for two fighters.

This package provides:
- CombatConfig / FitnessConfig: rule and reward constants
- Fighter, ActionState, InputState: per-match fighter state and controls
- CombatSimulator: the fixed-timestep match loop
- encode_inputs / decode_outputs: network feature encoding
- score_outcome: match-end fitness awards

Nothing here imports Django, so worker processes can use it directly.
"""
from .config import CombatConfig, FitnessConfig
from .fighter import (
    ActionState,
    Fighter,
    Hitbox,
    HitEvent,
    InputState,
    NEUTRAL_INPUT,
    shaping_delta,
)
from .features import FEATURE_COUNT, decode_outputs, encode_inputs
from .simulator import CombatSimulator, MatchOutcome, MatchStatus
from .scoring import MatchAwards, score_outcome

__all__ = [
    'CombatConfig',
    'FitnessConfig',
    'ActionState',
    'Fighter',
    'Hitbox',
    'HitEvent',
    'InputState',
    'NEUTRAL_INPUT',
    'shaping_delta',
    'FEATURE_COUNT',
    'decode_outputs',
    'encode_inputs',
    'CombatSimulator',
    'MatchOutcome',
    'MatchStatus',
    'MatchAwards',
    'score_outcome',
]
