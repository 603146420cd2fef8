"""
Translation between fighter state and network vectors.

Inputs (9 values, roughly in [-1, 1]):
- horizontal offset to the opponent / arena width
- vertical offset to the opponent / arena height
- own health, opponent health (fractions)
- opponent action state / 7
- own energy (fraction)
- facing direction (-1 or 1)
- opponent cooldown / 40
- opponent energy (fraction)

Outputs are indexed by ``ActionState``; any output above 0.5 switches
the matching control on, so several actions can be combined in a tick.
"""
from typing import List, Sequence

from .fighter import ActionState, Fighter, InputState

FEATURE_COUNT = 9
ACTIVATION_THRESHOLD = 0.5
COOLDOWN_SCALE = 40.0


def encode_inputs(fighter: Fighter, opponent: Fighter) -> List[float]:
    cfg = fighter.config
    return [
        (opponent.x - fighter.x) / cfg.arena_width,
        (opponent.y - fighter.y) / cfg.arena_height,
        fighter.health / cfg.max_health,
        opponent.health / cfg.max_health,
        int(opponent.state) / 7.0,
        fighter.energy / cfg.max_energy,
        float(fighter.direction),
        opponent.cooldown / COOLDOWN_SCALE,
        opponent.energy / cfg.max_energy,
    ]


def decode_outputs(outputs: Sequence[float]) -> InputState:
    def on(action: ActionState) -> bool:
        return outputs[action] > ACTIVATION_THRESHOLD

    return InputState(
        left=on(ActionState.MOVE_LEFT),
        right=on(ActionState.MOVE_RIGHT),
        up=on(ActionState.JUMP),
        down=on(ActionState.CROUCH),
        action1=on(ActionState.PUNCH),
        action2=on(ActionState.KICK),
        action3=on(ActionState.BLOCK),
    )
