"""
Tests for training infrastructure.

Tests the worker pool, the generation loop and the interactive session for:
- Batch dispatch and exactly-one-result-per-job collection
- Incomplete batch retries
- Background training with auto-stop
- Arcade and foreground training frames
- Genome export/import and population checkpoints
"""
import json
import threading

import pytest

from apps.arena.combat import CombatConfig
from apps.ai.evolution import EvolutionConfig, Phase, Population
from apps.ai.exceptions import (
    ConfigurationError,
    JobResultMismatchError,
    PoolBusyError,
    PoolClosedError,
)
from apps.ai.matches import MatchJob, MatchRunner
from apps.ai.networks import Architecture
from apps.ai.players import HumanPlayer, RandomPlayer
from apps.ai.training import (
    BackgroundTrainer,
    CheckpointManager,
    EvolutionTrainer,
    InteractiveSession,
    RoundStatus,
    SessionMode,
    WorkerPool,
    default_worker_count,
    export_genome,
    export_genome_json,
    import_genome,
    load_genome_file,
    save_genome_file,
)
from apps.ai.training.worker import MATCH_RESULTS, handle_request


class InlinePool:
    """Runs batches in the calling thread; drops results on request."""

    def __init__(self, combat, drop_last=0):
        self.runner = MatchRunner(combat)
        self.drop_last = drop_last
        self.calls = 0

    def run_matches(self, jobs):
        self.calls += 1
        results = self.runner.run_jobs(jobs)
        if self.drop_last:
            self.drop_last -= 1
            return results[:-1]
        return results


class BlockingPool(InlinePool):
    """Holds every batch until ``release`` is set."""

    def __init__(self, combat):
        super().__init__(combat)
        self.release = threading.Event()

    def run_matches(self, jobs):
        self.release.wait(30)
        return super().run_matches(jobs)


class BrokenPool:
    def run_matches(self, jobs):
        raise RuntimeError("worker crashed")


@pytest.fixture
def thread_pool(fast_combat):
    """Factory for thread-backed pools, terminated after the test."""
    pools = []

    def _make(worker_count=2):
        pool = WorkerPool(worker_count=worker_count, backend='thread', combat=fast_combat)
        pools.append(pool)
        return pool

    yield _make
    for pool in pools:
        pool.terminate()


class TestWorkerPool:
    """Tests for WorkerPool."""

    @pytest.mark.parametrize('worker_count', [1, 8])
    def test_one_result_per_job(self, thread_pool, population, worker_count):
        """Test that k jobs yield k results with distinct job ids."""
        pool = thread_pool(worker_count)
        jobs = population.create_jobs()
        results = pool.run_matches(jobs)
        assert len(results) == len(jobs)
        assert [r.job_id for r in results] == [j.job_id for j in jobs]
        assert len({r.job_id for r in results}) == len(jobs)

    def test_results_apply_to_population(self, thread_pool, population):
        pool = thread_pool(3)
        population.apply_results(pool.run_matches(population.create_jobs()))
        assert population.phase == Phase.SELECTING

    def test_empty_batch(self, thread_pool):
        assert thread_pool().run_matches([]) == []

    def test_ready(self, thread_pool):
        pool = thread_pool(2)
        pool.wait_until_ready(timeout=10)
        assert pool.is_ready
        assert not pool.is_busy

    def test_dead_worker_is_not_ready(self, thread_pool, population):
        """Test that a pool with an exited worker refuses batches instead of waiting on it."""
        pool = thread_pool(2)
        pool.wait_until_ready(timeout=10)
        pool._inboxes[1].put(None)
        pool._workers[1].join(10)

        assert not pool.is_ready
        with pytest.raises(RuntimeError, match="have exited"):
            pool.run_matches(population.create_jobs())
        assert not pool.is_busy

    def test_split(self, thread_pool):
        pool = thread_pool(3)
        assert [len(chunk) for chunk in pool.split(list(range(7)))] == [3, 3, 1]
        assert [len(chunk) for chunk in pool.split(list(range(2)))] == [1, 1]
        assert pool.split([]) == []

    def test_busy_pool_rejects_second_batch(self, thread_pool, population):
        pool = thread_pool()
        pool._busy = True
        with pytest.raises(PoolBusyError):
            pool.run_matches(population.create_jobs())

    def test_terminated_pool(self, thread_pool, population):
        pool = thread_pool()
        pool.terminate()
        pool.terminate()
        assert pool.is_closed
        assert not pool.is_ready
        with pytest.raises(PoolClosedError):
            pool.run_matches(population.create_jobs())

    def test_context_manager(self, fast_combat):
        with WorkerPool(worker_count=1, backend='thread', combat=fast_combat) as pool:
            assert not pool.is_closed
        assert pool.is_closed

    def test_invalid_configuration(self):
        with pytest.raises(ConfigurationError, match="backend"):
            WorkerPool(worker_count=1, backend='gpu')
        with pytest.raises(ConfigurationError, match="at least 1"):
            WorkerPool(worker_count=0, backend='thread')

    def test_default_worker_count(self):
        assert 1 <= default_worker_count() <= 8

    @pytest.mark.slow
    def test_process_backend(self, population):
        """Test a real batch across spawned worker processes."""
        with WorkerPool(worker_count=2, backend='process', combat=CombatConfig(match_seconds=1)) as pool:
            jobs = population.create_jobs()
            results = pool.run_matches(jobs)
        assert sorted(r.job_id for r in results) == sorted(j.job_id for j in jobs)


class TestWorkerRequests:
    """Tests for the worker request handler."""

    def test_failed_job_is_left_out(self, fast_combat, make_genome):
        """Test that a job that raises is dropped, not fatal."""
        good = MatchJob(1, make_genome('a'), make_genome('b'), 280.0, 470.0).to_message()
        bad = dict(good, jobId=2, genomeA={'id': 'broken'})
        reply = handle_request(MatchRunner(fast_combat), 3, {'batchId': 9, 'jobs': [bad, good]})
        assert reply['type'] == MATCH_RESULTS
        assert reply['workerId'] == 3
        assert reply['batchId'] == 9
        assert [r['jobId'] for r in reply['results']] == [1]


class TestEvolutionTrainer:
    """Tests for EvolutionTrainer."""

    def test_generation(self, population, fast_combat):
        trainer = EvolutionTrainer(population, InlinePool(fast_combat))
        stats = trainer.run_generation()
        assert stats.generation == 0
        assert population.generation == 1
        assert population.total_matches == 3

    def test_incomplete_batch_is_retried(self, population, fast_combat):
        pool = InlinePool(fast_combat, drop_last=1)
        trainer = EvolutionTrainer(population, pool)
        trainer.run_generation()
        assert pool.calls == 2
        assert trainer.retried_batches == 1
        assert population.generation == 1
        assert population.total_matches == 3

    def test_gives_up_after_retries(self, population, fast_combat):
        """Test that a persistently incomplete batch raises and applies nothing."""
        pool = InlinePool(fast_combat, drop_last=10)
        trainer = EvolutionTrainer(population, pool, max_batch_retries=2)
        with pytest.raises(JobResultMismatchError):
            trainer.run_generation()
        assert pool.calls == 3
        assert population.generation == 0
        assert population.phase == Phase.INITIALIZED
        assert all(g.fitness == 0.0 for g in population.genomes)

    def test_train_with_checkpoints(self, population, fast_combat, tmp_path):
        manager = CheckpointManager(tmp_path)
        trainer = EvolutionTrainer(
            population, InlinePool(fast_combat),
            checkpoint_manager=manager, checkpoint_interval=1,
        )
        seen = []
        result = trainer.train(generations=2, progress_callback=seen.append)
        assert result.generations == 2
        assert result.final_generation == 2
        assert [s.generation for s in seen] == [0, 1]
        assert len(result.history) == 2
        assert len(manager.list_checkpoints()) == 2
        assert result.checkpoint_path.endswith('population_000002.json.gz')

    def test_should_stop(self, population, fast_combat):
        trainer = EvolutionTrainer(population, InlinePool(fast_combat))
        result = trainer.train(generations=5, should_stop=lambda: True)
        assert result.generations == 1


class TestBackgroundTrainer:
    """Tests for BackgroundTrainer."""

    def test_auto_stop(self, population, fast_combat):
        """Test that training stops by itself at the configured generation."""
        stopped = threading.Event()
        snapshots = []
        trainer = BackgroundTrainer(
            population,
            InlinePool(fast_combat),
            auto_stop_generation=2,
            on_generation=snapshots.append,
            on_auto_stop=stopped.set,
        )
        trainer.start()
        assert stopped.wait(60)
        trainer.stop(wait=True, timeout=10)

        assert not trainer.is_running
        assert trainer.error is None
        assert population.generation == 2
        assert [s.generation for s in snapshots] == [1, 2]
        snapshot = trainer.snapshot()
        assert snapshot.generation == 2
        assert not snapshot.running
        assert len(snapshot.history) == 2
        assert snapshot.to_dict()['bestGenomeId'] == trainer.best_genome().id

    def test_start_twice_rejected(self, population, fast_combat):
        pool = BlockingPool(fast_combat)
        trainer = BackgroundTrainer(population, pool, auto_stop_generation=1)
        trainer.start()
        try:
            with pytest.raises(RuntimeError, match="already running"):
                trainer.start()
        finally:
            pool.release.set()
            trainer.stop(wait=True, timeout=30)
        assert not trainer.is_running

    def test_best_genome_is_a_copy(self, population, fast_combat):
        trainer = BackgroundTrainer(population, InlinePool(fast_combat), auto_stop_generation=1)
        trainer.start()
        trainer.stop(wait=True, timeout=60)
        first, second = trainer.best_genome(), trainer.best_genome()
        if first is not None:
            assert first is not second
            assert first.network is not second.network

    def test_error_is_recorded(self, population):
        trainer = BackgroundTrainer(population, BrokenPool())
        trainer.start()
        trainer.stop(wait=True, timeout=10)
        assert isinstance(trainer.error, RuntimeError)
        assert not trainer.snapshot().running


class TestInteractiveArcade:
    """Tests for ARCADE sessions."""

    @pytest.fixture
    def session(self, fast_combat):
        return InteractiveSession(
            SessionMode.ARCADE,
            player_a=RandomPlayer('a', seed=1),
            player_b=RandomPlayer('b', seed=2),
            combat=fast_combat,
            restart_delay_frames=3,
            seed=5,
        )

    def test_one_tick_per_frame(self, session):
        session.set_simulation_speed(10)
        snapshot = session.frame()
        assert snapshot.match['tick'] == 1
        assert snapshot.frame == 1

    def test_mirrored_spawn_jitter(self, session):
        a = session.simulator.fighter_a.x
        b = session.simulator.fighter_b.x
        assert a + b == pytest.approx(750.0)
        assert 250.0 <= a <= 310.0

    def test_round_end_and_restart(self, session):
        """Test that a finished match is held for the restart delay, then replaced."""
        for _ in range(200):
            if session.frame().round_status == RoundStatus.ROUND_END:
                break
        assert session.round_status == RoundStatus.ROUND_END
        assert session.stats.matches_played == 1

        session.frame()
        session.frame()
        assert session.round_status == RoundStatus.ROUND_END
        snapshot = session.frame()
        assert snapshot.round_status == RoundStatus.FIGHTING
        assert snapshot.match['tick'] == 0

    def test_hit_events(self, fast_combat):
        human = HumanPlayer('you')
        session = InteractiveSession(
            SessionMode.ARCADE,
            player_a=human,
            player_b=HumanPlayer('them'),
            combat=fast_combat,
        )
        fighter_a, fighter_b = session.simulator.fighter_a, session.simulator.fighter_b
        fighter_b.x = fighter_a.x + 60
        human.press({'action2': True})
        events = []
        for _ in range(20):
            events = session.frame().events
            if events:
                break
        assert events[0]['attacker'] == 'a'
        assert events[0]['attack'] == 'kick'
        assert events[0]['damage'] == 10.0

    def test_snapshot_dict(self, session):
        data = session.frame().to_dict()
        assert data['mode'] == 'arcade'
        assert data['roundStatus'] == 'fighting'
        assert data['matchesUntilEvolution'] == 0
        assert set(data['stats']) == {'matchesPlayed', 'winsA', 'winsB'}

    def test_missing_players(self):
        with pytest.raises(ConfigurationError, match="two players"):
            InteractiveSession(SessionMode.ARCADE, player_a=HumanPlayer('h'))

    def test_invalid_speed(self, session):
        with pytest.raises(ConfigurationError):
            session.set_simulation_speed(0)


class TestInteractiveTraining:
    """Tests for foreground TRAINING sessions."""

    @pytest.fixture
    def session(self, population, fast_combat):
        # 120 ticks per frame: every frame plays one whole two-second match.
        return InteractiveSession(
            SessionMode.TRAINING,
            population=population,
            simulation_speed=120,
            combat=fast_combat,
        )

    def test_requires_population(self):
        with pytest.raises(ConfigurationError, match="population"):
            InteractiveSession(SessionMode.TRAINING)

    def test_evolves_after_last_pairing(self, session, population):
        assert session.matches_until_evolution == 3
        session.frame()
        assert session.matches_until_evolution == 2
        session.frame()
        snapshot = session.frame()

        assert population.generation == 1
        assert snapshot.generation == 1
        assert snapshot.last_generation['generation'] == 0
        assert snapshot.matches_until_evolution == 3
        assert session.stats.matches_played == 3

    def test_next_match_starts_immediately(self, session):
        snapshot = session.frame()
        assert snapshot.round_status == RoundStatus.FIGHTING
        assert snapshot.match['tick'] == 0

    def test_close_abandons_batch(self, session, population):
        session.frame()
        session.close()
        assert population.phase == Phase.INITIALIZED
        assert population.create_jobs()


class TestGenomeExport:
    """Tests for genome export and import."""

    def test_round_trip(self, make_genome):
        genome = make_genome('gen12-0', fitness=88.0)
        imported = import_genome(export_genome_json(genome, generation=12))
        assert imported.compatible
        assert imported.generation == 12
        assert imported.genome.fitness == 88.0
        assert imported.genome.network.same_weights(genome.network)

    def test_export_layout(self, make_genome):
        record = export_genome(make_genome('g'), generation=3)
        assert record['generation'] == 3
        assert record['genome']['network']['architectureTag'] == '9-13-8'

    def test_architecture_mismatch_is_reported(self, make_genome):
        """Test that a foreign topology comes back as data, not an exception."""
        genome = make_genome('deep', architecture=Architecture(hidden_layers=(16, 8)))
        imported = import_genome(export_genome(genome, generation=1))
        assert not imported.compatible
        assert imported.mismatch.found.tag == '9-16-8-8'
        assert imported.genome.network.architecture.tag == '9-16-8-8'

    def test_expected_architecture_override(self, make_genome):
        arch = Architecture(hidden_layers=(16, 8))
        genome = make_genome('deep', architecture=arch)
        assert import_genome(export_genome(genome, 1), expected=arch).compatible

    def test_invalid_json(self):
        with pytest.raises(ValueError, match="not valid JSON"):
            import_genome('{nope')

    def test_not_an_export(self):
        with pytest.raises(ValueError, match="'genome'"):
            import_genome(json.dumps({'weights': []}))

    def test_file_round_trip(self, make_genome, tmp_path):
        genome = make_genome('g')
        path = save_genome_file(tmp_path / 'exports' / 'champ.json', genome, generation=4)
        imported = load_genome_file(path)
        assert imported.generation == 4
        assert imported.genome.network.same_weights(genome.network)


class TestCheckpointManager:
    """Tests for population checkpoints."""

    def test_save_and_restore(self, population, tmp_path):
        manager = CheckpointManager(tmp_path)
        manager.save(population, metadata={'note': 'first'})

        restored = Population(EvolutionConfig(population_size=6, seed=99))
        checkpoint = manager.load_latest()
        assert checkpoint['metadata'] == {'note': 'first'}
        assert manager.restore(checkpoint, restored) == 0
        for a, b in zip(population.genomes, restored.genomes):
            assert a.network.same_weights(b.network)

    def test_keeps_newest(self, population, tmp_path):
        manager = CheckpointManager(tmp_path, max_checkpoints=2)
        for generation in range(4):
            population.generation = generation
            manager.save(population)
        names = [p.name for p in manager.list_checkpoints()]
        assert names == ['population_000002.json.gz', 'population_000003.json.gz']

    def test_empty_directory(self, tmp_path):
        assert CheckpointManager(tmp_path).load_latest() is None

    def test_unreadable_checkpoint(self, tmp_path):
        path = tmp_path / 'population_000001.json.gz'
        path.write_text('not gzip')
        with pytest.raises(ValueError, match="Unreadable"):
            CheckpointManager(tmp_path).load(path)
