"""
Training controller.

Owns everything one training screen needs: the population, the
interactive session shown to the viewer and, while background training
is on, the worker pool and the background trainer.

With background training off the session evolves the population in the
foreground (TRAINING mode). Switching it on hands the population to the
background thread and turns the session into an exhibition match
between the current best genome and the scripted bot; switching it off
stops the thread after its in-flight batch, terminates the pool and
returns to foreground training. Reaching the auto-stop generation also
terminates the pool but keeps showing the final champion.
"""
import logging
from typing import Any, Dict, Optional

from apps.arena.combat import CombatConfig, FitnessConfig

from ..conf import TrainingSettings
from ..evolution.population import Population
from ..players.heuristic import HeuristicPlayer
from ..players.neural import NeuralPlayer
from .background import BackgroundTrainer
from .interactive import FrameSnapshot, InteractiveSession, RoundStatus, SessionMode
from .worker_pool import WorkerPool

logger = logging.getLogger(__name__)


class TrainingController:
    """
    Switches a population between foreground and background training.

    Example:
        controller = TrainingController(TrainingSettings.from_django_settings())
        controller.set_background_training(True)
        while viewing:
            render(controller.frame().to_dict())
        controller.close()
    """

    def __init__(
        self,
        settings: Optional[TrainingSettings] = None,
        combat: Optional[CombatConfig] = None,
        fitness: Optional[FitnessConfig] = None,
        seed: Optional[int] = None,
    ):
        self.settings = settings or TrainingSettings()
        self.combat = combat
        self.fitness = fitness
        self.seed = seed
        self.population = Population(self.settings.evolution_config(seed=seed)).initialize()

        self.pool: Optional[WorkerPool] = None
        self.background: Optional[BackgroundTrainer] = None
        self._shown_generation = -1
        self.session = self._foreground_session()

        if self.settings.background_training_enabled:
            self.set_background_training(True)

    @property
    def background_training(self) -> bool:
        return self.background is not None

    def set_simulation_speed(self, speed: int) -> None:
        self.session.set_simulation_speed(speed)
        self.settings.simulation_speed = int(speed)

    def set_background_training(self, enabled: bool) -> None:
        """Turn background training on or off; a no-op if already in that state."""
        if enabled and self.background is None:
            self._start_background()
        elif not enabled and self.background is not None:
            self._stop_background()

    def _start_background(self) -> None:
        self.session.close()
        settings = self.settings
        self.pool = WorkerPool(
            settings.worker_count,
            backend=settings.worker_backend,
            combat=self.combat,
            fitness=self.fitness,
        )
        self.background = BackgroundTrainer(
            self.population,
            self.pool,
            auto_stop_generation=settings.auto_stop_generation,
        )
        # Built before the thread starts: from here on only the trainer touches the population.
        self.session = self._exhibition_session()
        self.background.start()
        self.settings.background_training_enabled = True

    def _stop_background(self, to_foreground: bool = True) -> None:
        self.background.stop(wait=True)
        if self.background.error is not None:
            logger.error(f"Background training ended with error: {self.background.error}")
        self.pool.terminate()
        self.background = None
        self.pool = None
        self.settings.background_training_enabled = False
        self.session = self._foreground_session() if to_foreground else self._exhibition_session()

    def frame(self) -> FrameSnapshot:
        """Advance the visible session by one frame."""
        if self.background is not None:
            if not self.background.is_running:
                logger.info("Background training finished; showing the final champion")
                self._stop_background(to_foreground=False)
            elif self._champion_changed() and self.session.round_status == RoundStatus.ROUND_END:
                self.session = self._exhibition_session()
        return self.session.frame()

    def status(self) -> Dict[str, Any]:
        status = {
            'settings': self.settings.to_dict(),
            'backgroundTraining': self.background_training,
            'generation': self.population.generation,
        }
        if self.background is not None:
            status['training'] = self.background.snapshot().to_dict()
        return status

    def close(self) -> None:
        """Stop background work and release the pool. Safe to call more than once."""
        if self.background is not None:
            self._stop_background()
        self.session.close()

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    def _foreground_session(self) -> InteractiveSession:
        return InteractiveSession(
            SessionMode.TRAINING,
            population=self.population,
            simulation_speed=self.settings.simulation_speed,
            combat=self.combat,
            fitness=self.fitness,
        )

    def _exhibition_session(self) -> InteractiveSession:
        if self.background is not None and self.background.is_running:
            champion = self.background.best_genome()
            if champion is None:
                return self.session
            self._shown_generation = self.background.snapshot().generation
        else:
            champion = self.population.get_best()
            self._shown_generation = self.population.generation
        if champion is None:
            champion = self.population.genomes[0].clone()

        return InteractiveSession(
            SessionMode.ARCADE,
            player_a=NeuralPlayer.from_genome(champion),
            player_b=HeuristicPlayer('sparring', seed=self.seed),
            combat=self.combat,
            fitness=self.fitness,
            seed=self.seed,
        )

    def _champion_changed(self) -> bool:
        return self.background.snapshot().generation != self._shown_generation
