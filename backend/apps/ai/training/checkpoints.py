"""
Genome export/import and population checkpoints.

Two on-disk formats:

- Genome export: a single genome as plain JSON,
  ``{generation, genome: {id, fitness, matchesWon, network}}`` where
  ``network`` is the portable network record. Importing checks the
  record's architecture against the running one and reports a
  difference as an ``ArchitectureMismatch`` value rather than failing.
- Population checkpoint: gzip-compressed JSON holding the whole
  population and training state, written every few generations so an
  evolution run can be resumed. Only the newest N files are kept.
"""
import gzip
import json
import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Union, TYPE_CHECKING

from ..evolution.genome import Genome
from ..networks.architectures import (
    Architecture,
    ArchitectureMismatch,
    check_architecture,
    default_architecture,
)

if TYPE_CHECKING:
    from ..evolution.population import Population

logger = logging.getLogger(__name__)

CHECKPOINT_VERSION = 1


# ----------------------------------------------------------------------
# Genome export / import
# ----------------------------------------------------------------------

def export_genome(genome: Genome, generation: int) -> Dict[str, Any]:
    """Portable export record for one genome."""
    return {
        'generation': generation,
        'genome': genome.to_dict(),
    }


def export_genome_json(genome: Genome, generation: int, indent: Optional[int] = 2) -> str:
    return json.dumps(export_genome(genome, generation), indent=indent)


@dataclass
class GenomeImport:
    """
    Result of importing an exported genome.

    Attributes:
        genome: The rebuilt genome (at the record's own architecture).
        generation: Generation recorded in the export.
        mismatch: Set when the record's architecture differs from the
            expected one; the caller decides whether to reject the
            genome or switch architectures.
    """
    genome: Genome
    generation: int
    mismatch: Optional[ArchitectureMismatch] = None

    @property
    def compatible(self) -> bool:
        return self.mismatch is None


def import_genome(
    source: Union[str, bytes, Dict[str, Any]],
    expected: Optional[Architecture] = None,
) -> GenomeImport:
    """
    Parse an exported genome.

    Args:
        source: JSON text or an already-decoded record.
        expected: Architecture of the running system; defaults to 9-13-8.

    Returns:
        A ``GenomeImport``; check ``mismatch`` before using the genome.

    Raises:
        ValueError: If the input is not valid JSON or not a genome export.
    """
    if isinstance(source, (str, bytes)):
        try:
            record = json.loads(source)
        except json.JSONDecodeError as e:
            raise ValueError(f"Genome export is not valid JSON: {e}")
    else:
        record = source

    if not isinstance(record, dict) or not isinstance(record.get('genome'), dict):
        raise ValueError("Genome export must contain a 'genome' object")

    genome = Genome.from_dict(record['genome'])
    generation = int(record.get('generation', 0))
    mismatch = check_architecture(
        expected or default_architecture(),
        genome.network.architecture,
    )
    if mismatch is not None:
        logger.warning(mismatch.message)
    return GenomeImport(genome=genome, generation=generation, mismatch=mismatch)


def load_genome_file(path: Union[str, Path], expected: Optional[Architecture] = None) -> GenomeImport:
    return import_genome(Path(path).read_text(), expected)


def save_genome_file(path: Union[str, Path], genome: Genome, generation: int) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(export_genome_json(genome, generation))
    return path


# ----------------------------------------------------------------------
# Population checkpoints
# ----------------------------------------------------------------------

class CheckpointManager:
    """
    Manage population checkpoints.

    Attributes:
        checkpoint_dir: Directory for storing checkpoints.
        max_checkpoints: Maximum number of checkpoints to keep (0 = unlimited).

    Example:
        manager = CheckpointManager('./checkpoints/run1', max_checkpoints=5)
        manager.save(population, metadata={'note': 'after tuning'})

        state = manager.load_latest()
        if state:
            manager.restore(state, population)
    """

    def __init__(self, checkpoint_dir: Union[str, Path], max_checkpoints: int = 5):
        self.checkpoint_dir = Path(checkpoint_dir)
        self.max_checkpoints = max_checkpoints
        self.checkpoint_dir.mkdir(parents=True, exist_ok=True)

    def save(
        self,
        population: 'Population',
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Path:
        """
        Write the population's state to a new checkpoint file.

        Returns:
            Path to the saved checkpoint.
        """
        checkpoint = {
            'version': CHECKPOINT_VERSION,
            'timestamp': datetime.now().isoformat(),
            'population': population.state_dict(),
            'metadata': metadata or {},
        }
        filepath = self.checkpoint_dir / f'population_{population.generation:06d}.json.gz'
        with gzip.open(filepath, 'wt', encoding='utf-8') as f:
            json.dump(checkpoint, f)

        logger.info(f"Saved checkpoint {filepath.name}")
        self._cleanup_old_checkpoints()
        return filepath

    def load(self, filepath: Union[str, Path]) -> Dict[str, Any]:
        """
        Raises:
            ValueError: If the file is not a readable checkpoint.
        """
        try:
            with gzip.open(filepath, 'rt', encoding='utf-8') as f:
                checkpoint = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ValueError(f"Unreadable checkpoint {filepath}: {e}")
        if checkpoint.get('version') != CHECKPOINT_VERSION or 'population' not in checkpoint:
            raise ValueError(f"Unsupported checkpoint format in {filepath}")
        return checkpoint

    def load_latest(self) -> Optional[Dict[str, Any]]:
        checkpoints = self.list_checkpoints()
        if not checkpoints:
            return None
        return self.load(checkpoints[-1])

    def restore(self, checkpoint: Dict[str, Any], population: 'Population') -> int:
        """
        Load a checkpoint into a population.

        Returns:
            The generation the population resumes at.
        """
        population.load_state_dict(checkpoint['population'])
        return population.generation

    def list_checkpoints(self) -> List[Path]:
        """Checkpoint files, oldest generation first."""
        checkpoints = list(self.checkpoint_dir.glob('population_*.json.gz'))
        checkpoints.sort(key=lambda p: int(p.name.split('_')[1].split('.')[0]))
        return checkpoints

    def _cleanup_old_checkpoints(self) -> None:
        if self.max_checkpoints <= 0:
            return
        checkpoints = self.list_checkpoints()
        while len(checkpoints) > self.max_checkpoints:
            oldest = checkpoints.pop(0)
            oldest.unlink()
            logger.debug(f"Removed old checkpoint {oldest.name}")
