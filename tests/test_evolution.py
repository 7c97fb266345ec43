import random

import pytest

from evoart.config import VARIANTS, EvolutionConfig
from evoart.evolution import EvolutionaryAlgorithm, GenerationSnapshot
from evoart.exceptions import SelectionError
from evoart.individual import BinaryPatternIndividual


class ScriptedRng:
    """Returns the scripted candidates from choice() in order"""

    def __init__(self, picks):
        self.picks = list(picks)

    def choice(self, candidates):
        return self.picks.pop(0)


class PlayableIndividual(BinaryPatternIndividual):
    stopped = []

    def set_midi_output(self, midi_output):
        self.midi_output = midi_output

    def play_midi(self):
        pass

    def stop_midi(self):
        PlayableIndividual.stopped.append(self.id)


@pytest.fixture
def ea():
    return EvolutionaryAlgorithm(BinaryPatternIndividual, config=EvolutionConfig(population_size=6),
                                 rng=random.Random(1))


def test_initial_state(ea):
    assert len(ea.population) == 6
    assert ea.generation == 0
    assert len(ea.history) == 1
    assert isinstance(ea.history[0], GenerationSnapshot)
    assert ea.history[0].generation == 0
    assert ea.selected_individuals == []


def test_population_size_argument():
    assert len(EvolutionaryAlgorithm(BinaryPatternIndividual, population_size=3).population) == 3


def test_evolve_rejected_without_enough_selection(ea):
    before = ea.population
    ea.increment_fitness(ea.population[0])
    assert ea.evolve() is False
    assert isinstance(ea.last_error, SelectionError)
    assert 'at least 2' in str(ea.last_error)
    assert ea.population is before
    assert ea.generation == 0
    assert len(ea.history) == 1
    assert ea.selected_individuals == [ea.population[0]]


def test_check_selection_raises(ea):
    with pytest.raises(SelectionError):
        ea.check_selection()


def test_evolve_keeps_elites_in_selection_order(ea):
    first, second = ea.population[5], ea.population[2]
    ea.increment_fitness(first)
    ea.increment_fitness(second)
    ea.increment_fitness(first)

    assert ea.evolve() is True
    assert ea.last_error is None
    assert ea.generation == 1
    assert len(ea.population) == 6
    assert len(ea.history) == 2

    elite1, elite2 = ea.population[:2]
    assert (elite1.id, elite1.fitness, elite1.genome) == (first.id, 2, first.genome)
    assert (elite2.id, elite2.fitness, elite2.genome) == (second.id, 1, second.genome)
    assert elite1 is not first
    assert all(child.fitness == 0 for child in ea.population[2:])
    assert ea.selected_individuals == []
    assert not any(individual.selected for individual in ea.population)


def test_odd_population_size():
    ea = EvolutionaryAlgorithm(BinaryPatternIndividual, population_size=5, rng=random.Random(3))
    ea.increment_fitness(ea.population[0])
    ea.increment_fitness(ea.population[1])
    assert ea.evolve()
    assert len(ea.population) == 5


def test_fitness_round_trip(ea):
    individual = ea.population[3]
    ea.increment_fitness(individual)
    ea.increment_fitness(individual)
    assert individual.selected
    assert ea.selected_individuals == [individual]

    ea.decrement_fitness(individual)
    assert individual.fitness == 1 and individual.selected

    ea.decrement_fitness(individual)
    assert individual.fitness == 0
    assert not individual.selected
    assert ea.selected_individuals == []

    ea.decrement_fitness(individual)
    assert individual.fitness == 0


def test_tournament_ties_keep_first_draw(ea):
    a, b, c = ea.population[:3]
    a.fitness, b.fitness, c.fitness = 1, 1, 2
    ea.rng = ScriptedRng([b, a, b])
    assert ea.tournament_selection([a, b, c]) is b
    ea.rng = ScriptedRng([a, c, b])
    assert ea.tournament_selection([a, b, c]) is c
    ea.rng = ScriptedRng([a])
    assert ea.tournament_selection([a, b, c], tournament_size=1) is a


def test_history_is_isolated_from_live_population(ea):
    saved = list(ea.history[0].population[0].genome)
    ea.population[0].mutate(1.0)
    assert ea.history[0].population[0].genome == saved
    assert ea.population[0].genome != saved


def test_load_generation(ea):
    genomes = [list(individual.genome) for individual in ea.population]
    ea.increment_fitness(ea.population[0])
    ea.increment_fitness(ea.population[1])
    ea.evolve()

    assert ea.load_generation(0)
    assert ea.generation == 0
    assert [individual.genome for individual in ea.population] == genomes
    assert all(live is not saved for live, saved in zip(ea.population, ea.history[0].population))
    assert ea.selected_individuals == []


def test_load_generation_restores_selection(ea):
    ea.increment_fitness(ea.population[1])
    ea.increment_fitness(ea.population[3])
    ids = [ea.population[1].id, ea.population[3].id]
    ea.save_generation()

    ea.decrement_fitness(ea.population[1])
    assert ea.load_generation(1)
    assert [individual.id for individual in ea.selected_individuals] == ids
    assert ea.selected_individuals[0] is ea.population[1]
    assert ea.selected_individuals[1] is ea.population[3]
    assert [individual.selected for individual in ea.population] == [False, True, False, True, False, False]


@pytest.mark.parametrize('index', [-1, 1, 10])
def test_load_generation_out_of_range(ea, index):
    population = ea.population
    assert ea.load_generation(index) is False
    assert ea.population is population


def test_undo(ea):
    assert ea.undo() is False
    ea.increment_fitness(ea.population[0])
    ea.increment_fitness(ea.population[1])
    ea.evolve()
    assert ea.undo()
    assert ea.generation == 0


def test_reset_stops_playback():
    sink = object()
    ea = EvolutionaryAlgorithm(PlayableIndividual, population_size=4, midi_output=sink, rng=random.Random(2))
    assert all(individual.midi_output is sink for individual in ea.population)

    old_ids = [individual.id for individual in ea.population]
    ea.increment_fitness(ea.population[0])
    PlayableIndividual.stopped.clear()
    ea.reset()

    assert PlayableIndividual.stopped == old_ids
    assert ea.generation == 0
    assert len(ea.history) == 1
    assert ea.selected_individuals == []
    assert not set(old_ids) & {individual.id for individual in ea.population}


def test_evolve_stops_playback():
    ea = EvolutionaryAlgorithm(PlayableIndividual, population_size=4, rng=random.Random(2))
    ea.increment_fitness(ea.population[0])
    ea.increment_fitness(ea.population[1])
    PlayableIndividual.stopped.clear()
    ea.evolve()
    assert len(PlayableIndividual.stopped) == 4


def test_statistics(ea):
    for individual, fitness in zip(ea.population, [0, 1, 2, 3, 0, 0]):
        individual.fitness = fitness
    assert ea.get_average_fitness() == pytest.approx(1.0)
    assert ea.get_best()[0] is ea.population[3]
    assert [individual.fitness for individual in ea.get_best(2)] == [3, 2]

    stats = ea.get_stats()
    assert stats['generation'] == 0
    assert stats['population_size'] == 6
    assert stats['fitness']['max'] == 3
    assert stats['fitness']['mean'] == pytest.approx(1.0)


@pytest.mark.parametrize('variant', sorted(VARIANTS))
def test_every_variant_evolves(variant):
    individual_class = VARIANTS[variant]
    ea = EvolutionaryAlgorithm(individual_class, population_size=6, rng=random.Random(5))
    ea.increment_fitness(ea.population[0])
    ea.increment_fitness(ea.population[1])
    assert ea.evolve()
    assert len(ea.population) == 6
    assert all(isinstance(individual, individual_class) for individual in ea.population)


def test_evolved_population_keeps_subclass():
    sink = object()
    ea = EvolutionaryAlgorithm(PlayableIndividual, population_size=6, midi_output=sink, rng=random.Random(4))
    ea.increment_fitness(ea.population[0])
    ea.increment_fitness(ea.population[1])
    assert ea.evolve()

    assert all(type(individual) is PlayableIndividual for individual in ea.population)
    assert all(type(individual) is PlayableIndividual for individual in ea.history[-1].population)
    assert all(individual.midi_output is sink for individual in ea.population)

    PlayableIndividual.stopped.clear()
    ea.reset()
    assert len(PlayableIndividual.stopped) == 6
