"""
Tests for the evolve management command.

Runs against the test NEUROFIGHT settings: four genomes, two
thread workers.
"""
from io import StringIO

import pytest
import torch
from django.core.management import CommandError, call_command

from apps.ai.evolution import Genome
from apps.ai.models import SavedGenome, TrainingRun
from apps.ai.networks import Architecture, FeedForwardNetwork
from apps.ai.training import load_genome_file, save_genome_file


def evolve(*args):
    out = StringIO()
    call_command('evolve', *args, stdout=out)
    return out.getvalue()


@pytest.mark.django_db
class TestEvolveCommand:
    """Tests for ``manage.py evolve``."""

    def test_single_generation(self):
        output = evolve('--generations', '1', '--seed', '3')
        assert 'Evolution completed!' in output
        run = TrainingRun.objects.get()
        assert run.status == TrainingRun.Status.COMPLETED
        assert run.generations_completed == 1
        assert run.population_size == 4
        assert len(run.history) == 1

    def test_save_and_export(self, tmp_path):
        path = tmp_path / 'champ.json'
        evolve('--generations', '1', '--seed', '5', '--save', '--name', 'first', '--export', str(path))

        champion = SavedGenome.champion()
        assert champion.name == 'first'
        assert TrainingRun.objects.get().champion == champion

        imported = load_genome_file(path)
        assert imported.compatible
        assert imported.genome.network.same_weights(champion.to_genome().network)

    def test_seed_genome(self, tmp_path):
        generator = torch.Generator().manual_seed(8)
        seed = Genome('seed', FeedForwardNetwork.random(Architecture(), generator=generator))
        path = save_genome_file(tmp_path / 'seed.json', seed, generation=30)
        output = evolve('--generations', '1', '--seed-genome', str(path))
        assert 'Seeded from seed (generation 30)' in output

    def test_incompatible_seed_genome(self, tmp_path):
        deep = Genome('deep', FeedForwardNetwork(Architecture(hidden_layers=(16, 8))))
        path = save_genome_file(tmp_path / 'deep.json', deep, generation=1)
        with pytest.raises(CommandError, match='9-16-8-8'):
            evolve('--generations', '1', '--seed-genome', str(path))
        assert not TrainingRun.objects.exists()

    def test_checkpoint_and_resume(self, tmp_path):
        evolve('--generations', '1', '--checkpoint-dir', str(tmp_path), '--checkpoint-interval', '1')
        assert (tmp_path / 'population_000001.json.gz').exists()

        output = evolve('--generations', '1', '--checkpoint-dir', str(tmp_path), '--resume')
        assert 'Resumed at generation 1' in output

    def test_resume_needs_checkpoint_dir(self):
        with pytest.raises(CommandError, match='--checkpoint-dir'):
            evolve('--resume')

    def test_invalid_population_size(self):
        with pytest.raises(CommandError, match='population_size'):
            evolve('--population-size', '1')
