"""
evoart/gp_individual.py - Tree-based GP pattern individual
"""
from typing import Any, Dict, List, Optional, Tuple

from .gp_nodes import TerminalValue, TreeNode, create_random_tree, default_terminals, replace_node
from .individual import Individual, PresentationSettings, new_individual_id


class GPPatternIndividual(Individual):
    """Pattern individual whose genome is an expression tree over x, y, r, theta"""

    max_depth = 6
    max_mutation_depth = 3

    def __init__(self, genome: Optional[TreeNode] = None, terminals: Optional[List[TerminalValue]] = None,
                 presentation: Optional[PresentationSettings] = None, rng=None):
        self.terminals = list(terminals) if terminals is not None else default_terminals(rng)
        super().__init__(genome, presentation, rng)

    def generate_random_genome(self) -> TreeNode:
        return create_random_tree(self.max_depth, self.terminals, 'grow', self.rng)

    def get_phenotype(self) -> TreeNode:
        return self.genome

    def evaluate(self, x: float, y: float) -> float:
        return self.genome.evaluate(x, y)

    def mutate(self, rate: float = 0.1) -> None:
        """With probability rate, regrow one uniformly chosen subtree"""
        if self.rng.random() < rate:
            index = self.rng.randrange(self.genome.size())
            depth = self.rng.randint(1, self.max_mutation_depth)
            new_subtree = create_random_tree(depth, self.terminals, 'grow', self.rng)
            self.genome = replace_node(self.genome, index, new_subtree)
        self.invalidate_caches()

    def crossover(self, other: 'GPPatternIndividual') -> Tuple['GPPatternIndividual', 'GPPatternIndividual']:
        """Swap one non-root subtree between copies of both parents"""
        child1 = self.clone()
        child2 = other.clone()
        size1 = child1.genome.size()
        size2 = child2.genome.size()

        if size1 > 1 and size2 > 1:
            index1 = self.rng.randrange(1, size1)
            index2 = self.rng.randrange(1, size2)
            subtree1 = child1.genome.get_all_nodes()[index1]
            subtree2 = child2.genome.get_all_nodes()[index2]
            child1.genome = replace_node(child1.genome, index1, subtree2.copy())
            child2.genome = replace_node(child2.genome, index2, subtree1.copy())

        for child in (child1, child2):
            child.fitness = 0
            child.id = new_individual_id()
            child.invalidate_caches()
        return child1, child2

    def clone(self) -> 'GPPatternIndividual':
        clone = type(self)(self.genome.copy(), self.terminals, self.presentation, self.rng)
        return self._copy_state_to(clone)

    def genome_key(self) -> str:
        return str(self.genome)

    def serialize_genome(self) -> Dict[str, Any]:
        return self.genome.to_dict()

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data['terminals'] = list(self.terminals)
        return data
