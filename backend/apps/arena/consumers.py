"""
WebSocket consumer for arcade play against evolved fighters.
"""
import logging

from asgiref.sync import sync_to_async
from channels.db import database_sync_to_async
from channels.generic.websocket import AsyncJsonWebsocketConsumer

from apps.ai.conf import TrainingSettings
from apps.ai.exceptions import ConfigurationError
from apps.ai.players import HumanPlayer, NeuralPlayer, get_player
from apps.ai.training import InteractiveSession, SessionMode, TrainingController

logger = logging.getLogger(__name__)

MAX_FRAMES_PER_MESSAGE = 10
OPPONENTS = ('champion', 'heuristic', 'random')
MODES = ('arcade', 'training')


class ArenaConsumer(AsyncJsonWebsocketConsumer):
    """
    WebSocket consumer driving one session per connection.

    The client owns the frame clock. Messages:
    - ``{type: 'start', mode?: 'arcade'|'training', opponent?: 'champion'|'heuristic'|'random', seed?}``
    - ``{type: 'input', input: {left, right, up, down, action1, action2, action3}}`` (arcade)
    - ``{type: 'frame', frames?: n}``
    - ``{type: 'speed', value: n}`` (training)
    - ``{type: 'background', enabled: bool}`` (training)

    Each ``start`` and ``frame`` is answered with ``{type: 'snapshot', data}``;
    in training mode the snapshot also carries ``training`` status.
    """

    async def connect(self):
        """Handle WebSocket connection."""
        self.session = None
        self.human = None
        self.controller = None
        await self.accept()
        await self.send_json({
            'type': 'ready',
            'opponents': list(OPPONENTS),
            'modes': list(MODES),
        })

    async def disconnect(self, close_code):
        """Handle WebSocket disconnection."""
        await self.close_controller()
        self.session = None

    async def receive_json(self, content):
        """Handle incoming WebSocket messages."""
        message_type = content.get('type')

        if message_type == 'start':
            await self.handle_start(content)
        elif message_type == 'input':
            await self.handle_input(content)
        elif message_type == 'frame':
            await self.handle_frame(content)
        elif message_type == 'speed':
            await self.handle_speed(content)
        elif message_type == 'background':
            await self.handle_background(content)
        else:
            await self.send_error(f"Unknown message type: {message_type!r}")

    async def handle_start(self, content):
        """Start a new session, replacing any previous one."""
        mode = content.get('mode', 'arcade')
        if mode not in MODES:
            await self.send_error(f"Unknown mode: {mode!r}")
            return
        if mode == 'training':
            await self.start_training(content)
        else:
            await self.start_arcade(content)

    async def start_arcade(self, content):
        """The client is fighter A."""
        opponent_type = content.get('opponent', 'champion')
        if opponent_type not in OPPONENTS:
            await self.send_error(f"Unknown opponent: {opponent_type!r}")
            return

        await self.close_controller()
        opponent = await self.build_opponent(opponent_type, content.get('seed'))
        self.human = HumanPlayer('human', name='You')
        try:
            self.session = InteractiveSession(
                SessionMode.ARCADE,
                player_a=self.human,
                player_b=opponent,
                seed=content.get('seed'),
            )
        except ConfigurationError as e:
            await self.send_error(str(e))
            return

        logger.info(f"Arena session started against {opponent}")
        await self.send_snapshot(self.session.snapshot())

    async def start_training(self, content):
        """Evolve a fresh population configured from the NEUROFIGHT settings."""
        await self.close_controller()
        try:
            settings = TrainingSettings.from_django_settings()
            self.controller = await sync_to_async(TrainingController)(
                settings,
                seed=content.get('seed'),
            )
        except ConfigurationError as e:
            await self.send_error(str(e))
            return

        self.human = None
        self.session = self.controller.session
        logger.info(f"Training session started with {settings.population_size} genomes")
        await self.send_snapshot(self.session.snapshot())

    async def handle_input(self, content):
        """Replace the held controls."""
        if self.human is None:
            await self.send_error("No arcade match in progress. Send 'start' first.")
            return
        state = content.get('input')
        if not isinstance(state, dict):
            await self.send_error("'input' must be an object of booleans.")
            return
        self.human.press(state)

    async def handle_frame(self, content):
        """Advance the session and reply with the latest snapshot."""
        if self.session is None:
            await self.send_error("No match in progress. Send 'start' first.")
            return
        try:
            frames = int(content.get('frames', 1))
        except (TypeError, ValueError):
            await self.send_error("'frames' must be an integer.")
            return
        frames = max(1, min(frames, MAX_FRAMES_PER_MESSAGE))

        snapshot = await sync_to_async(self.advance)(frames)
        await self.send_snapshot(snapshot)

    def advance(self, frames: int):
        """Run ``frames`` frames off the event loop; returns the last snapshot."""
        snapshot = None
        for _ in range(frames):
            if self.controller is not None:
                snapshot = self.controller.frame()
            else:
                snapshot = self.session.frame()
        return snapshot

    async def handle_speed(self, content):
        """Change the training simulation speed (ticks per frame)."""
        if self.controller is None:
            await self.send_error("No training session. Send 'start' with mode 'training'.")
            return
        try:
            self.controller.set_simulation_speed(int(content.get('value', 1)))
        except (TypeError, ValueError) as e:
            await self.send_error(f"Invalid speed: {e}")

    async def handle_background(self, content):
        """Switch background training on or off."""
        if self.controller is None:
            await self.send_error("No training session. Send 'start' with mode 'training'.")
            return
        try:
            await sync_to_async(self.controller.set_background_training)(bool(content.get('enabled')))
        except (ConfigurationError, RuntimeError) as e:
            await self.send_error(f"Cannot switch background training: {e}")

    async def close_controller(self):
        if self.controller is not None:
            await sync_to_async(self.controller.close)()
            self.controller = None

    async def send_snapshot(self, snapshot):
        data = snapshot.to_dict()
        if self.controller is not None:
            data['training'] = self.controller.status()
        await self.send_json({
            'type': 'snapshot',
            'data': data,
        })

    async def send_error(self, message: str):
        """Send error message to client."""
        await self.send_json({
            'type': 'error',
            'message': message
        })

    async def build_opponent(self, opponent_type: str, seed=None):
        """The control source for fighter B; the champion falls back to the heuristic bot."""
        if opponent_type == 'champion':
            genome = await self.get_champion_genome()
            if genome is not None:
                return NeuralPlayer.from_genome(genome, copy=True)
            logger.info("No champion saved; using the heuristic opponent")
            opponent_type = 'heuristic'
        return get_player(opponent_type, f'cpu-{opponent_type}', seed=seed)

    @database_sync_to_async
    def get_champion_genome(self):
        """Load the saved champion genome, if there is one."""
        from apps.ai.models import SavedGenome

        saved = SavedGenome.champion()
        if saved is None:
            return None
        try:
            return saved.to_genome()
        except ValueError as e:
            logger.error(f"Saved champion {saved.pk} is unreadable: {e}")
            return None
