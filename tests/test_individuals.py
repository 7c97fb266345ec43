import math
import random

import pytest

from evoart.gp_nodes import FunctionNode, TerminalNode
from evoart.grammar import Grammar
from evoart.grammatical import FALLBACK_EXPRESSION, GERadiusDrawingIndividual, GrammaticalEvolutionIndividual
from evoart.gp_individual import GPPatternIndividual
from evoart.individual import (
    BinaryPatternIndividual, Individual, MidiCapable, PresentationSettings, Visualizable
)
from evoart.superformula import SuperFormulaIndividual


@pytest.fixture
def rng():
    return random.Random(42)


class TestGrammaticalEvolution:

    def test_random_genome(self, rng):
        individual = GrammaticalEvolutionIndividual(rng=rng)
        assert len(individual.genome) == 100
        assert all(0 <= codon < 256 for codon in individual.genome)
        assert individual.fitness == 0
        assert not individual.selected

    def test_phenotype_is_a_compiled_expression(self, rng):
        individual = GrammaticalEvolutionIndividual(rng=rng)
        assert '<' not in individual.get_phenotype()
        assert individual.compiled.valid
        assert math.isfinite(individual.evaluate(0.3, -0.2))

    def test_mutation_invalidates_caches(self, rng):
        individual = GrammaticalEvolutionIndividual(rng=rng)
        individual.get_phenotype()
        individual.compiled
        individual.mutate(1.0)
        assert individual._phenotype is None
        assert individual._compiled is None
        fresh = GrammaticalEvolutionIndividual(list(individual.genome), rng=rng)
        assert individual.get_phenotype() == fresh.get_phenotype()

    def test_clone_is_independent(self, rng):
        individual = GrammaticalEvolutionIndividual(rng=rng)
        individual.fitness = 3
        phenotype = individual.get_phenotype()
        clone = individual.clone()
        assert clone.id == individual.id
        assert clone.fitness == 3
        assert clone.genome == individual.genome and clone.genome is not individual.genome
        clone.mutate(1.0)
        assert individual.get_phenotype() == phenotype

    def test_crossover(self, rng):
        a = GrammaticalEvolutionIndividual(rng=rng)
        b = GrammaticalEvolutionIndividual(rng=rng)
        a.fitness = 2
        for child in a.crossover(b):
            assert len(child.genome) == 100
            assert child.fitness == 0
            assert child.id not in (a.id, b.id)
            for i, codon in enumerate(child.genome):
                assert codon in (a.genome[i], b.genome[i])

    def test_overlong_expression_is_replaced(self, rng):
        grammar = Grammar({'<pattern>': [['x', '+'] * 150 + ['x']]})
        individual = GrammaticalEvolutionIndividual([0], grammar=grammar, rng=rng)
        assert individual.get_phenotype() == FALLBACK_EXPRESSION
        # t is not bound for patterns
        assert individual.evaluate(0.5, 0.5) == 0.0

    def test_readable_expression(self, rng):
        grammar = Grammar({'<pattern>': [['x', '+'] * 20 + ['x']]})
        individual = GrammaticalEvolutionIndividual([0], grammar=grammar, rng=rng)
        assert individual.get_readable_expression(10) == 'x+x+x+x+x+...'


class TestRadiusDrawing:

    def test_radius_is_clamped(self, rng):
        individual = GERadiusDrawingIndividual([0], grammar=Grammar({'<polar>': [['1000']]}), rng=rng)
        assert individual.evaluate(1.0) == 50.0

    def test_failures_fall_back_to_unit_radius(self, rng):
        grammar = Grammar({'<polar>': [['log', '(', '0-1', ')']]})
        individual = GERadiusDrawingIndividual([0], grammar=grammar, rng=rng)
        assert individual.evaluate(2.0) == 1.0

    def test_polar_points(self, rng):
        individual = GERadiusDrawingIndividual(rng=rng)
        points = individual.polar_points()
        assert len(points) == individual.num_points + 1
        assert points[0][0] == 0.0
        assert points[-1][0] == pytest.approx(10 * math.pi)
        assert all(-50.0 <= r <= 50.0 for _, r in points)


class TestGPPattern:

    def test_random_tree(self, rng):
        individual = GPPatternIndividual(rng=rng)
        assert individual.genome.depth() <= individual.max_depth
        assert len(individual.terminals) == 14
        assert math.isfinite(individual.evaluate(0.1, 0.9))

    def test_mutation_rate_zero_keeps_tree(self, rng):
        individual = GPPatternIndividual(rng=rng)
        before = str(individual.genome)
        individual.mutate(0.0)
        assert str(individual.genome) == before

    def test_mutation_respects_shape(self, rng):
        individual = GPPatternIndividual(rng=rng)
        for _ in range(20):
            individual.mutate(1.0)
            assert individual.genome.size() >= 1
            assert individual.genome.depth() >= 1

    def test_crossover_with_single_node_parent(self, rng):
        a = GPPatternIndividual(TerminalNode('x'), rng=rng)
        b = GPPatternIndividual(FunctionNode('+', [TerminalNode('x'), TerminalNode('y')]), rng=rng)
        child1, child2 = a.crossover(b)
        assert str(child1.genome) == 'x'
        assert str(child2.genome) == '(x + y)'
        assert child1.id != a.id and child2.id != b.id

    def test_crossover_children_are_independent(self, rng):
        a = GPPatternIndividual(rng=rng)
        b = GPPatternIndividual(rng=rng)
        before_a, before_b = str(a.genome), str(b.genome)
        for child in a.crossover(b):
            for _ in range(10):
                child.mutate(1.0)
        assert str(a.genome) == before_a
        assert str(b.genome) == before_b

    def test_to_dict(self, rng):
        individual = GPPatternIndividual(TerminalNode('r'), terminals=['x', 'r'], rng=rng)
        data = individual.to_dict()
        assert data['type'] == 'GPPatternIndividual'
        assert data['genome'] == {'type': 'TerminalNode', 'value': 'r'}
        assert data['terminals'] == ['x', 'r']


class TestSuperFormula:

    def test_random_genome(self, rng):
        individual = SuperFormulaIndividual(rng=rng)
        assert len(individual.genome) == 7
        params = individual.get_parameters()
        assert 1 <= params['m_numerator'] <= 20
        assert params['m_denominator'] in (1, 2, 3, 4, 5, 6, 8, 10, 12)

    def test_parameters_are_clamped(self, rng):
        individual = SuperFormulaIndividual([99.0, 0.0, -1.0, 30.0, 5.0, 9.0, 0.0], rng=rng)
        params = individual.get_parameters()
        assert params['m_numerator'] == 50
        assert params['m_denominator'] == 1
        assert params['n1'] == 0.01 and params['n2'] == 20
        assert params['a'] == 5 and params['b'] == 0.01

    def test_circle(self, rng):
        individual = SuperFormulaIndividual([4.0, 1.0, 2.0, 2.0, 2.0, 1.0, 1.0], rng=rng)
        params = individual.get_parameters()
        for phi in (0.1, 0.7, 2.0):
            assert SuperFormulaIndividual.calculate_radius(phi, params) == pytest.approx(1.0)

    @pytest.mark.parametrize('numerator,denominator,periods', [(5, 1, 8), (4, 1, 2), (3, 2, 16)])
    def test_phi_range(self, rng, numerator, denominator, periods):
        individual = SuperFormulaIndividual([float(numerator), float(denominator), 1.0, 1.0, 1.0, 1.0, 1.0], rng=rng)
        assert individual.phi_range() == pytest.approx(periods * math.pi)

    def test_polar_points_are_positive(self, rng):
        individual = SuperFormulaIndividual(rng=rng)
        points = individual.polar_points()
        assert len(points) == individual.num_points
        assert all(r > 0 and math.isfinite(r) for _, r in points)

    def test_crossover_keeps_integer_genes(self, rng):
        a = SuperFormulaIndividual(rng=rng)
        b = SuperFormulaIndividual(rng=rng)
        for child in a.crossover(b):
            assert child.genome[0] in (a.genome[0], b.genome[0])
            assert child.genome[1] in (a.genome[1], b.genome[1])
            assert all(0.01 <= gene <= 20 for gene in child.genome[2:5])

    def test_mutation_invalidates_phenotype(self, rng):
        individual = SuperFormulaIndividual([4.0, 1.0, 2.0, 2.0, 2.0, 1.0, 1.0], rng=rng)
        assert individual.get_phenotype().startswith('m=4/1')
        individual.genome[0] = 6.0
        individual.mutate(0.0)
        assert individual.get_phenotype().startswith('m=6/1')


class TestBinaryPattern:

    def test_full_mutation_flips_every_bit(self, rng):
        individual = BinaryPatternIndividual(rng=rng)
        before = list(individual.genome)
        individual.mutate(1.0)
        assert individual.genome == [1 - bit for bit in before]

    def test_crossover_keeps_aligned_genes(self, rng):
        a = BinaryPatternIndividual([0] * 64, rng=rng)
        b = BinaryPatternIndividual([1] * 64, rng=rng)
        child1, child2 = a.crossover(b)
        assert all(x + y == 1 for x, y in zip(child1.genome, child2.genome))


class TestContract:

    def test_incomplete_individual_cannot_be_created(self):
        class Incomplete(Individual):
            def generate_random_genome(self):
                return []

        with pytest.raises(TypeError):
            Incomplete()

    def test_optional_capabilities(self, rng):
        class Player(BinaryPatternIndividual):
            def set_midi_output(self, midi_output):
                pass

            def play_midi(self):
                pass

            def stop_midi(self):
                pass

        assert isinstance(Player(rng=rng), MidiCapable)
        assert not isinstance(BinaryPatternIndividual(rng=rng), MidiCapable)
        assert not isinstance(BinaryPatternIndividual(rng=rng), Visualizable)

    def test_cache_key_depends_on_settings(self, rng):
        individual = BinaryPatternIndividual([1, 0, 1], rng=rng)
        assert individual.cache_key(width=8, height=8) == '1,0,1_8x8_viridis'
        assert individual.cache_key(PresentationSettings('magma'), 8, 8) == '1,0,1_8x8_magma'


class CustomBinary(BinaryPatternIndividual):
    pass


class CustomGP(GPPatternIndividual):
    pass


class CustomSuperFormula(SuperFormulaIndividual):
    pass


@pytest.mark.parametrize('individual_class', [CustomBinary, CustomGP, CustomSuperFormula])
def test_copies_keep_the_concrete_class(rng, individual_class):
    a = individual_class(rng=rng)
    b = individual_class(rng=rng)
    assert type(a.clone()) is individual_class
    assert all(type(child) is individual_class for child in a.crossover(b))
