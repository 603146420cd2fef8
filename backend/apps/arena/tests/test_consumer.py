"""
Tests for the arena WebSocket consumer.
"""
import asyncio
import functools

import pytest
from asgiref.sync import async_to_sync
from channels.routing import URLRouter
from channels.testing import WebsocketCommunicator

from apps.arena.combat import CombatConfig
from apps.arena.consumers import ArenaConsumer
from apps.arena.routing import websocket_urlpatterns
from apps.ai.training import TrainingController

application = URLRouter(websocket_urlpatterns)

# Channels closes DB connections around every consumer call.
pytestmark = pytest.mark.django_db(transaction=True)


def converse(*messages, replies=None):
    """
    Connect, send ``messages`` in order and collect the replies.

    ``replies`` defaults to one per message; ``input`` messages are
    only answered on error, so pass an explicit count when sending them.
    """
    expected = len(messages) if replies is None else replies

    async def scenario():
        communicator = WebsocketCommunicator(application, '/ws/arena/')
        connected, _ = await communicator.connect()
        assert connected
        received = [await communicator.receive_json_from()]
        for message in messages:
            await communicator.send_json_to(message)
        for _ in range(expected):
            received.append(await communicator.receive_json_from(timeout=5))
        await communicator.disconnect()
        return received

    return async_to_sync(scenario)()


class TestArenaConsumer:
    """Tests for ArenaConsumer."""

    def test_ready_on_connect(self):
        (ready,) = converse()
        assert ready == {
            'type': 'ready',
            'opponents': ['champion', 'heuristic', 'random'],
            'modes': ['arcade', 'training'],
        }

    def test_start_sends_snapshot(self):
        _, reply = converse({'type': 'start', 'opponent': 'heuristic', 'seed': 4})
        assert reply['type'] == 'snapshot'
        data = reply['data']
        assert data['mode'] == 'arcade'
        assert data['roundStatus'] == 'fighting'
        assert data['match']['tick'] == 0

    def test_frames_advance_match(self):
        _, _, reply = converse(
            {'type': 'start', 'opponent': 'random', 'seed': 1},
            {'type': 'input', 'input': {'right': True}},
            {'type': 'frame', 'frames': 3},
            replies=2,
        )
        assert reply['data']['frame'] == 3
        assert reply['data']['match']['tick'] == 3
        assert reply['data']['match']['fighterA']['state'] == 'MOVE_RIGHT'

    def test_frames_run_off_the_event_loop(self, monkeypatch):
        """Test that simulation work is handed to a worker thread."""
        on_loop = []
        advance = ArenaConsumer.advance

        def recording_advance(consumer, frames):
            try:
                asyncio.get_running_loop()
                on_loop.append(True)
            except RuntimeError:
                on_loop.append(False)
            return advance(consumer, frames)

        monkeypatch.setattr(ArenaConsumer, 'advance', recording_advance)
        _, _, reply = converse(
            {'type': 'start', 'opponent': 'heuristic'},
            {'type': 'frame', 'frames': 2},
        )
        assert reply['data']['frame'] == 2
        assert on_loop == [False]

    def test_frames_are_capped(self):
        _, _, reply = converse(
            {'type': 'start', 'opponent': 'heuristic'},
            {'type': 'frame', 'frames': 500},
        )
        assert reply['data']['frame'] == 10

    def test_frame_before_start(self):
        _, reply = converse({'type': 'frame'})
        assert reply['type'] == 'error'
        assert "start" in reply['message']

    def test_unknown_message_type(self):
        _, reply = converse({'type': 'dance'})
        assert reply == {'type': 'error', 'message': "Unknown message type: 'dance'"}

    def test_unknown_opponent(self):
        _, reply = converse({'type': 'start', 'opponent': 'ghost'})
        assert reply['type'] == 'error'

    def test_bad_input(self):
        _, _, reply = converse(
            {'type': 'start', 'opponent': 'heuristic'},
            {'type': 'input', 'input': 'left'},
        )
        assert reply['type'] == 'error'

    def test_bad_frame_count(self):
        _, _, reply = converse(
            {'type': 'start', 'opponent': 'heuristic'},
            {'type': 'frame', 'frames': 'lots'},
        )
        assert reply['message'] == "'frames' must be an integer."


class TestChampionOpponent:
    """Tests for serving the saved champion."""

    def test_falls_back_without_champion(self):
        _, reply = converse({'type': 'start'})
        assert reply['type'] == 'snapshot'

    def test_plays_saved_champion(self, champion):
        _, _, reply = converse({'type': 'start'}, {'type': 'frame', 'frames': 2})
        assert reply['data']['match']['tick'] == 2


class TestTrainingMode:
    """Tests for training sessions over the socket (population of four from test settings)."""

    @pytest.fixture(autouse=True)
    def short_matches(self, monkeypatch):
        monkeypatch.setattr(
            'apps.arena.consumers.TrainingController',
            functools.partial(TrainingController, combat=CombatConfig(match_seconds=1)),
        )

    def test_start_training(self):
        _, reply = converse({'type': 'start', 'mode': 'training', 'seed': 2})
        data = reply['data']
        assert data['mode'] == 'training'
        assert data['matchesUntilEvolution'] == 2
        assert data['training']['backgroundTraining'] is False
        assert data['training']['settings']['population_size'] == 4

    def test_unknown_mode(self):
        _, reply = converse({'type': 'start', 'mode': 'tournament'})
        assert reply == {'type': 'error', 'message': "Unknown mode: 'tournament'"}

    def test_speed_evolves_population(self):
        """Test that one whole-match frame per pairing finishes a generation."""
        _, _, reply = converse(
            {'type': 'start', 'mode': 'training'},
            {'type': 'speed', 'value': 60},
            {'type': 'frame', 'frames': 2},
            replies=2,
        )
        assert reply['data']['generation'] == 1
        assert reply['data']['training']['settings']['simulation_speed'] == 60

    def test_invalid_speed(self):
        _, _, reply = converse(
            {'type': 'start', 'mode': 'training'},
            {'type': 'speed', 'value': 0},
        )
        assert reply['type'] == 'error'
        assert reply['message'].startswith('Invalid speed')

    def test_background_training(self):
        _, _, reply = converse(
            {'type': 'start', 'mode': 'training'},
            {'type': 'background', 'enabled': True},
            {'type': 'frame'},
            replies=2,
        )
        data = reply['data']
        assert data['mode'] == 'arcade'
        assert data['training']['backgroundTraining'] is True
        assert 'training' in data['training']

    def test_background_switched_off(self):
        _, _, reply = converse(
            {'type': 'start', 'mode': 'training'},
            {'type': 'background', 'enabled': True},
            {'type': 'background', 'enabled': False},
            {'type': 'frame'},
            replies=2,
        )
        assert reply['data']['mode'] == 'training'
        assert reply['data']['training']['backgroundTraining'] is False

    def test_training_messages_need_training_session(self):
        _, reply = converse({'type': 'speed', 'value': 5})
        assert reply['type'] == 'error'
        assert "training" in reply['message']

    def test_input_rejected_in_training(self):
        _, _, reply = converse(
            {'type': 'start', 'mode': 'training'},
            {'type': 'input', 'input': {'left': True}},
        )
        assert reply['type'] == 'error'
