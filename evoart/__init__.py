"""
evoart - Interactive evolution of generative expressions

Genomes (byte strings, real vectors or expression trees) are turned into
numeric phenotypes through grammar derivation and safe expression
compilation, and bred generation by generation from the individuals a user
marks as favourites.
"""

__version__ = "0.1.0"
__author__ = "evoart Project"

from .grammar import (
    Grammar, image_pattern_grammar, math_expression_grammar, polar_drawing_grammar,
    DEFAULT_TERMINALS
)
from .expression import CompiledExpression, compile_expression, parse_expression
from .gp_nodes import (
    TreeNode, TerminalNode, FunctionNode,
    create_random_tree, replace_node, node_from_dict,
    VARIABLES, UNARY_FUNCTIONS, BINARY_FUNCTIONS, TERNARY_FUNCTIONS
)
from .individual import (
    Individual, BinaryPatternIndividual, PresentationSettings,
    Visualizable, MidiCapable
)
from .grammatical import GrammaticalEvolutionIndividual, GERadiusDrawingIndividual
from .gp_individual import GPPatternIndividual
from .superformula import SuperFormulaIndividual
from .config import EvolutionConfig, VARIANTS, get_variant
from .evolution import EvolutionaryAlgorithm, GenerationSnapshot
from .exceptions import EvoArtError, ConfigurationError, ExpressionSyntaxError, SelectionError

__all__ = [
    'Grammar', 'image_pattern_grammar', 'math_expression_grammar', 'polar_drawing_grammar',
    'DEFAULT_TERMINALS',
    'CompiledExpression', 'compile_expression', 'parse_expression',
    'TreeNode', 'TerminalNode', 'FunctionNode',
    'create_random_tree', 'replace_node', 'node_from_dict',
    'VARIABLES', 'UNARY_FUNCTIONS', 'BINARY_FUNCTIONS', 'TERNARY_FUNCTIONS',
    'Individual', 'BinaryPatternIndividual', 'PresentationSettings',
    'Visualizable', 'MidiCapable',
    'GrammaticalEvolutionIndividual', 'GERadiusDrawingIndividual',
    'GPPatternIndividual',
    'SuperFormulaIndividual',
    'EvolutionConfig', 'VARIANTS', 'get_variant',
    'EvolutionaryAlgorithm', 'GenerationSnapshot',
    'EvoArtError', 'ConfigurationError', 'ExpressionSyntaxError', 'SelectionError'
]
