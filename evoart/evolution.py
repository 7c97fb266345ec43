"""
evoart/evolution.py - Interactive evolutionary algorithm driver

The user raises the fitness of the individuals they like; every individual
with positive fitness joins the selected pool. evolve() breeds the next
generation from that pool only, and every generation is kept in an in-memory
history that can be replayed.
"""
import logging
import random
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple, Type

import numpy as np

from .config import EvolutionConfig
from .exceptions import SelectionError
from .individual import Individual, MidiCapable, PresentationSettings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GenerationSnapshot:
    """Cloned population and selection of one generation"""
    generation: int
    population: Tuple[Individual, ...]
    selected: Tuple[Individual, ...]


class EvolutionaryAlgorithm:
    """Owns the live population, the selected pool and the generation history"""

    def __init__(self, individual_class: Type[Individual], population_size: Optional[int] = None,
                 midi_output: Any = None, config: Optional[EvolutionConfig] = None,
                 presentation: Optional[PresentationSettings] = None, rng=None):
        if config is None:
            config = EvolutionConfig() if population_size is None else EvolutionConfig(population_size=population_size)
        self.config = config
        self.individual_class = individual_class
        self.population_size = config.population_size
        self.midi_output = midi_output
        self.presentation = presentation
        self.rng = rng or random

        self.population: List[Individual] = []
        self.generation = 0
        self.history: List[GenerationSnapshot] = []
        self.selected_individuals: List[Individual] = []
        self.last_error: Optional[SelectionError] = None

        self.initialize_population()

    def _new_individual(self) -> Individual:
        return self.individual_class(presentation=self.presentation, rng=self.rng)

    def _attach_midi(self, individual: Individual) -> None:
        if self.midi_output is not None and isinstance(individual, MidiCapable):
            individual.set_midi_output(self.midi_output)

    def initialize_population(self) -> None:
        self.population = []
        for _ in range(self.population_size):
            individual = self._new_individual()
            self._attach_midi(individual)
            self.population.append(individual)
        self.save_generation()

    def stop_all_playback(self) -> None:
        for individual in self.population:
            if isinstance(individual, MidiCapable):
                individual.stop_midi()

    def check_selection(self) -> None:
        """Raise SelectionError if too few individuals are selected to evolve"""
        if len(self.selected_individuals) < self.config.min_selected:
            raise SelectionError(len(self.selected_individuals), self.config.min_selected)

    def evolve(self) -> bool:
        """Breed the next generation from the selected individuals.

        Returns False, leaving every piece of state untouched, when fewer
        than ``min_selected`` individuals are selected; the reason is kept in
        ``last_error``.
        """
        try:
            self.check_selection()
        except SelectionError as e:
            logger.warning("Evolution rejected: %s", e)
            self.last_error = e
            return False
        self.last_error = None

        logger.info("Evolving generation %d from %d selected %s individuals",
                    self.generation, len(self.selected_individuals), self.individual_class.__name__)

        self.stop_all_playback()

        # Elites keep their selection order
        new_population = [individual.clone()
                          for individual in self.selected_individuals[:self.config.elite_size]]
        new_population = new_population[:self.population_size]
        for elite in new_population:
            self._attach_midi(elite)

        while len(new_population) < self.population_size:
            parent1 = self.tournament_selection(self.selected_individuals)
            parent2 = self.tournament_selection(self.selected_individuals)

            child1, child2 = parent1.crossover(parent2)
            child1.mutate(self.config.mutation_rate)
            child2.mutate(self.config.mutation_rate)

            for child in (child1, child2):
                self._attach_midi(child)

            new_population.append(child1)
            if len(new_population) < self.population_size:
                new_population.append(child2)

        self.population = new_population
        self.generation += 1
        self.selected_individuals = []
        self.save_generation()
        return True

    def tournament_selection(self, candidates: Sequence[Individual],
                             tournament_size: Optional[int] = None) -> Individual:
        """Fittest of tournament_size draws with replacement; ties keep the earliest draw"""
        tournament_size = tournament_size or self.config.tournament_size
        tournament = [self.rng.choice(candidates) for _ in range(tournament_size)]
        best = tournament[0]
        for current in tournament[1:]:
            if current.fitness > best.fitness:
                best = current
        return best

    def increment_fitness(self, individual: Individual) -> None:
        individual.fitness += 1
        if individual.fitness > 0 and not individual.selected:
            individual.selected = True
            self.selected_individuals.append(individual)

    def decrement_fitness(self, individual: Individual) -> None:
        individual.fitness = max(0, individual.fitness - 1)
        if individual.fitness == 0 and individual.selected:
            individual.selected = False
            self.selected_individuals = [selected for selected in self.selected_individuals
                                         if selected.id != individual.id]

    def save_generation(self) -> None:
        self.history.append(GenerationSnapshot(
            generation=self.generation,
            population=tuple(individual.clone() for individual in self.population),
            selected=tuple(individual.clone() for individual in self.selected_individuals),
        ))

    def load_generation(self, index: int) -> bool:
        """Restore a history entry as the live population; False if index is out of range"""
        if not 0 <= index < len(self.history):
            logger.warning("No generation at history index %d (history has %d entries)",
                           index, len(self.history))
            return False

        snapshot = self.history[index]
        self.generation = snapshot.generation
        self.population = [individual.clone() for individual in snapshot.population]

        live = {individual.id: individual for individual in self.population}
        self.selected_individuals = [live.get(selected.id) or selected.clone()
                                     for selected in snapshot.selected]

        selected_ids = {individual.id for individual in self.selected_individuals}
        for individual in self.population:
            individual.selected = individual.id in selected_ids
        for individual in self.selected_individuals:
            individual.selected = True

        logger.info("Loaded generation %d from history index %d", self.generation, index)
        return True

    def undo(self) -> bool:
        """Go back to the most recent snapshot of the previous generation"""
        for index in reversed(range(len(self.history))):
            if self.history[index].generation == self.generation - 1:
                return self.load_generation(index)
        return False

    def reset(self) -> None:
        self.stop_all_playback()
        self.generation = 0
        self.history = []
        self.selected_individuals = []
        self.last_error = None
        self.initialize_population()
        logger.info("Population reset")

    def get_average_fitness(self) -> float:
        return float(np.mean([individual.fitness for individual in self.population]))

    def get_best(self, n: int = 1) -> List[Individual]:
        return sorted(self.population, key=lambda individual: individual.fitness, reverse=True)[:n]

    def get_stats(self) -> Dict[str, Any]:
        """Get population statistics"""
        fitnesses = [individual.fitness for individual in self.population]
        return {
            'generation': self.generation,
            'population_size': len(self.population),
            'selected': len(self.selected_individuals),
            'history_length': len(self.history),
            'fitness': {
                'min': min(fitnesses),
                'max': max(fitnesses),
                'mean': float(np.mean(fitnesses)),
                'std': float(np.std(fitnesses))
            }
        }
