"""
evoart/config.py - Evolution settings and the registry of individual variants
"""
from dataclasses import asdict, dataclass
from typing import Any, Dict, Type

from .exceptions import ConfigurationError
from .gp_individual import GPPatternIndividual
from .grammatical import GERadiusDrawingIndividual, GrammaticalEvolutionIndividual
from .individual import BinaryPatternIndividual, Individual
from .superformula import SuperFormulaIndividual


@dataclass
class EvolutionConfig:
    """Tunable parameters of the evolutionary algorithm"""
    population_size: int = 16
    mutation_rate: float = 0.1   # per-child rate handed to Individual.mutate
    elite_size: int = 2          # selected individuals copied unchanged
    tournament_size: int = 3
    min_selected: int = 2        # evolve() is rejected below this

    def __post_init__(self):
        if self.population_size < 1:
            raise ConfigurationError(f"population_size must be positive, got {self.population_size}")
        if not 0.0 <= self.mutation_rate <= 1.0:
            raise ConfigurationError(f"mutation_rate must be within [0, 1], got {self.mutation_rate}")
        if self.elite_size < 0:
            raise ConfigurationError(f"elite_size must not be negative, got {self.elite_size}")
        if self.tournament_size < 1:
            raise ConfigurationError(f"tournament_size must be positive, got {self.tournament_size}")
        if self.min_selected < 1:
            raise ConfigurationError(f"min_selected must be positive, got {self.min_selected}")

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


VARIANTS: Dict[str, Type[Individual]] = {
    'pattern': GrammaticalEvolutionIndividual,
    'radius': GERadiusDrawingIndividual,
    'gp': GPPatternIndividual,
    'superformula': SuperFormulaIndividual,
    'binary': BinaryPatternIndividual,
}


def get_variant(name: str) -> Type[Individual]:
    try:
        return VARIANTS[name]
    except KeyError:
        raise ConfigurationError(f"Unknown variant {name!r}; choose from {', '.join(VARIANTS)}") from None
