"""
evoart/individual.py - Individual contract shared by every representation
"""
import random
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol, Tuple, runtime_checkable


@dataclass
class PresentationSettings:
    """Display options shared by the individuals of one run"""
    color_palette: str = 'viridis'


@runtime_checkable
class Visualizable(Protocol):
    """Individuals that can draw themselves onto an external canvas"""

    def visualize(self, canvas: Any) -> None:
        ...


@runtime_checkable
class MidiCapable(Protocol):
    """Individuals that can play through a MIDI-shaped sink with send(bytes)"""

    def set_midi_output(self, midi_output: Any) -> None:
        ...

    def play_midi(self) -> None:
        ...

    def stop_midi(self) -> None:
        ...


def new_individual_id() -> str:
    return uuid.uuid4().hex[:12]


class Individual(ABC):
    """One candidate: a genome plus the fitness/selection state the driver edits.

    Subclasses own the genome representation. Every operation that changes
    the genome must end with ``invalidate_caches()`` so that no phenotype or
    compiled function derived from an older genome survives.

    ``id`` is not unique across copies: ``clone()`` keeps it, so history
    snapshots can be matched back to the live population, while crossover
    children always get a fresh one. Clones and children keep the concrete
    class of the individual they came from.
    """

    def __init__(self, genome: Any = None, presentation: Optional[PresentationSettings] = None,
                 rng=None):
        self.rng = rng or random
        self.id = new_individual_id()
        self.fitness = 0
        self.selected = False
        self.presentation = presentation
        self.genome = genome if genome is not None else self.generate_random_genome()
        self.invalidate_caches()

    @abstractmethod
    def generate_random_genome(self) -> Any:
        pass

    @abstractmethod
    def get_phenotype(self) -> Any:
        pass

    @abstractmethod
    def mutate(self, rate: float = 0.1) -> None:
        pass

    @abstractmethod
    def crossover(self, other: 'Individual') -> Tuple['Individual', 'Individual']:
        pass

    @abstractmethod
    def clone(self) -> 'Individual':
        """Independent copy keeping id and fitness; selection is not copied"""
        pass

    def invalidate_caches(self) -> None:
        self._phenotype = None

    def _copy_state_to(self, clone: 'Individual') -> 'Individual':
        clone.id = self.id
        clone.fitness = self.fitness
        clone.presentation = self.presentation
        clone.rng = self.rng
        return clone

    def genome_key(self) -> str:
        return ','.join(str(gene) for gene in self.genome)

    def cache_key(self, settings: Optional[PresentationSettings] = None,
                  width: int = 0, height: int = 0) -> str:
        """Key for caching rendered output; settings are passed in, never looked up"""
        settings = settings or self.presentation or PresentationSettings()
        return f"{self.genome_key()}_{width}x{height}_{settings.color_palette}"

    def serialize_genome(self) -> Any:
        return list(self.genome)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'type': type(self).__name__,
            'id': self.id,
            'fitness': self.fitness,
            'genome': self.serialize_genome(),
            'phenotype': str(self.get_phenotype()),
        }

    def __repr__(self):
        return f"{type(self).__name__}(id={self.id!r}, fitness={self.fitness}, selected={self.selected})"


class BinaryPatternIndividual(Individual):
    """64-bit genome shown as an 8x8 on/off grid"""

    genome_length = 64

    def generate_random_genome(self) -> List[int]:
        return [1 if self.rng.random() < 0.5 else 0 for _ in range(self.genome_length)]

    def get_phenotype(self) -> List[int]:
        return self.genome

    def mutate(self, rate: float = 0.1) -> None:
        for i in range(len(self.genome)):
            if self.rng.random() < rate:
                self.genome[i] = 1 - self.genome[i]
        self.invalidate_caches()

    def crossover(self, other: 'BinaryPatternIndividual') -> Tuple['BinaryPatternIndividual', 'BinaryPatternIndividual']:
        genome1, genome2 = uniform_crossover(self.genome, other.genome, self.rng)
        return (type(self)(genome1, self.presentation, self.rng),
                type(self)(genome2, self.presentation, self.rng))

    def clone(self) -> 'BinaryPatternIndividual':
        return self._copy_state_to(type(self)(list(self.genome), self.presentation, self.rng))


def uniform_crossover(genome1: List[Any], genome2: List[Any], rng=None) -> Tuple[List[Any], List[Any]]:
    """Swap each aligned gene with probability 0.5; children keep genome1's length"""
    rng = rng or random
    child1, child2 = [], []
    for i, gene in enumerate(genome1):
        other_gene = genome2[i] if i < len(genome2) else gene
        if rng.random() < 0.5:
            child1.append(gene)
            child2.append(other_gene)
        else:
            child1.append(other_gene)
            child2.append(gene)
    return child1, child2
