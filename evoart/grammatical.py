"""
evoart/grammatical.py - Grammatical evolution individuals

A byte genome drives a grammar derivation; the derived expression is
compiled once per genome and evaluated as a pattern f(x, y) or as a polar
radius r(t).
"""
import logging
import math
from typing import List, Optional, Tuple

from .expression import CompiledExpression, compile_expression
from .grammar import Grammar, image_pattern_grammar, polar_drawing_grammar
from .individual import Individual, PresentationSettings, uniform_crossover

logger = logging.getLogger(__name__)

MAX_EXPRESSION_LENGTH = 200
FALLBACK_EXPRESSION = '1.0 + 0.5 * sin(t)'


class GrammaticalEvolutionIndividual(Individual):
    """Pattern individual: genome of bytes -> expression in x and y"""

    default_genome_length = 100
    start_symbol = '<pattern>'
    max_derivations = 1000
    max_depth = 15
    variables = ('x', 'y')
    fallback = 0.0

    def __init__(self, genome: Optional[List[int]] = None, genome_length: Optional[int] = None,
                 grammar: Optional[Grammar] = None,
                 presentation: Optional[PresentationSettings] = None, rng=None):
        self.genome_length = genome_length or (len(genome) if genome else self.default_genome_length)
        self.grammar = grammar or self.create_grammar()
        super().__init__(genome, presentation, rng)

    def create_grammar(self) -> Grammar:
        return image_pattern_grammar()

    def generate_random_genome(self) -> List[int]:
        return [self.rng.randrange(256) for _ in range(self.genome_length)]

    def invalidate_caches(self) -> None:
        super().invalidate_caches()
        self._compiled: Optional[CompiledExpression] = None

    def get_phenotype(self) -> str:
        if self._phenotype is None:
            self._phenotype = self.derive_phenotype()
        return self._phenotype

    def derive_phenotype(self) -> str:
        derivation = self.grammar.derive(self.start_symbol, self.genome,
                                         self.max_derivations, self.max_depth)
        expression = self.grammar.derives_to_string(derivation)

        if len(expression) > MAX_EXPRESSION_LENGTH:
            logger.warning("Expression too complex, using fallback: %s...", expression[:50])
            expression = FALLBACK_EXPRESSION

        return expression

    @property
    def compiled(self) -> CompiledExpression:
        if self._compiled is None:
            self._compiled = compile_expression(self.get_phenotype(), self.variables, self.fallback)
        return self._compiled

    def evaluate(self, x: float, y: float) -> float:
        return self.compiled(x, y)

    def mutate(self, rate: float = 0.1) -> None:
        for i in range(len(self.genome)):
            if self.rng.random() < rate:
                self.genome[i] = self.rng.randrange(256)
        self.invalidate_caches()

    def crossover(self, other: 'GrammaticalEvolutionIndividual') -> Tuple['GrammaticalEvolutionIndividual', 'GrammaticalEvolutionIndividual']:
        genome1, genome2 = uniform_crossover(self.genome, other.genome, self.rng)
        return self._offspring(genome1), self._offspring(genome2)

    def _offspring(self, genome: List[int]) -> 'GrammaticalEvolutionIndividual':
        # Grammars are never mutated, so children share the parent's
        return type(self)(genome, self.genome_length, self.grammar, self.presentation, self.rng)

    def clone(self) -> 'GrammaticalEvolutionIndividual':
        return self._copy_state_to(self._offspring(list(self.genome)))

    def get_readable_expression(self, limit: int = 100) -> str:
        expression = self.get_phenotype()
        return expression[:limit] + '...' if len(expression) > limit else expression


class GERadiusDrawingIndividual(GrammaticalEvolutionIndividual):
    """Polar drawing individual: genome -> radius expression r(t)"""

    start_symbol = '<polar>'
    max_derivations = 100
    variables = ('t',)
    fallback = 1.0
    radius_limit = 50.0

    t_min = 0.0
    t_max = 10 * math.pi
    num_points = 500

    def create_grammar(self) -> Grammar:
        return polar_drawing_grammar()

    def evaluate(self, t: float) -> float:
        radius = self.compiled(t)
        return max(-self.radius_limit, min(self.radius_limit, radius))

    def polar_points(self) -> List[Tuple[float, float]]:
        """(t, r) samples over [t_min, t_max], both ends included"""
        step = (self.t_max - self.t_min) / self.num_points
        points = []
        for i in range(self.num_points + 1):
            t = self.t_min + i * step
            points.append((t, self.evaluate(t)))
        return points
