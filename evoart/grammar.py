"""
evoart/grammar.py - Context-free grammars and genome-driven derivation
"""
import logging
from typing import Dict, List, Sequence

logger = logging.getLogger(__name__)

Production = List[str]

# Terminal used for a non-terminal left over when a derivation is cut short
DEFAULT_TERMINALS = {
    '<expr>': '1.0',
    '<polar>': '1.0',
    '<pattern>': '1.0',
    '<op>': '+',
    '<func>': 'sin',
    '<var>': 't',
    '<const>': '1.0',
}
FALLBACK_TERMINAL = '1.0'


class Grammar:
    """Mapping of non-terminal symbols to ordered production lists"""

    def __init__(self, rules: Dict[str, List[Production]] = None):
        self.rules = rules if rules is not None else {}

    def add_rule(self, non_terminal: str, productions: List[Production]) -> None:
        self.rules[non_terminal] = productions

    def get_productions(self, non_terminal: str) -> List[Production]:
        return self.rules.get(non_terminal, [])

    @staticmethod
    def is_non_terminal(symbol: str) -> bool:
        return symbol.startswith('<') and symbol.endswith('>')

    def get_all_non_terminals(self) -> List[str]:
        return list(self.rules.keys())

    def has_non_terminals(self, derivation: Sequence[str]) -> bool:
        return any(self.is_non_terminal(symbol) for symbol in derivation)

    def derive(self, start_symbol: str, genome: Sequence[int],
               max_derivations: int = 1000, max_depth: int = 15,
               wrap: bool = True) -> List[str]:
        """Expand start_symbol left-most first, choosing productions from the genome.

        The genome is read cyclically: codon ``genome[i % len(genome)]`` picks
        production ``codon % len(productions)``. Expansion stops when no
        non-terminal is left, after ``max_derivations`` steps, or once the
        estimated nesting depth reaches ``max_depth``. With ``wrap=False`` the
        genome is read once and expansion also stops when it runs out of
        codons. Whatever non-terminals remain are then replaced with default
        terminals, so the result never contains a non-terminal.
        """
        derivation = [start_symbol]

        if len(genome) == 0:
            return self.replace_non_terminals_with_defaults(derivation)

        genome_index = 0
        steps = 0
        depth = 0

        while steps < max_derivations and depth < max_depth:
            if not wrap and genome_index >= len(genome):
                break

            position = self._first_non_terminal(derivation)
            if position < 0:
                break

            productions = self.get_productions(derivation[position])
            if not productions:
                break

            codon = genome[genome_index % len(genome)]
            production = productions[codon % len(productions)]
            derivation[position:position + 1] = production

            genome_index += 1
            steps += 1
            depth = self.estimate_depth(derivation)

        if self.has_non_terminals(derivation):
            logger.debug("Derivation cut short after %d steps (depth %d)", steps, depth)
            derivation = self.replace_non_terminals_with_defaults(derivation)

        return derivation

    def _first_non_terminal(self, derivation: Sequence[str]) -> int:
        for i, symbol in enumerate(derivation):
            if self.is_non_terminal(symbol):
                return i
        return -1

    @staticmethod
    def estimate_depth(derivation: Sequence[str]) -> int:
        """Maximum nesting of literal '(' / ')' symbols.

        This is a textual heuristic, not the depth of the expression tree:
        parentheses embedded inside longer terminals such as ``(x+y)`` are
        not counted.
        """
        depth = 0
        level = 0
        for symbol in derivation:
            if symbol == '(':
                level += 1
                depth = max(depth, level)
            elif symbol == ')':
                level -= 1
        return depth

    def replace_non_terminals_with_defaults(self, derivation: Sequence[str]) -> List[str]:
        return [
            DEFAULT_TERMINALS.get(symbol, FALLBACK_TERMINAL) if self.is_non_terminal(symbol) else symbol
            for symbol in derivation
        ]

    @staticmethod
    def derives_to_string(derivation: Sequence[str]) -> str:
        return ''.join(derivation)

    def __str__(self):
        lines = ['Grammar Rules:']
        for non_terminal, productions in self.rules.items():
            alternatives = ' | '.join(' '.join(production) for production in productions)
            lines.append(f"{non_terminal} ::= {alternatives}")
        return '\n'.join(lines)


def math_expression_grammar() -> Grammar:
    """Plain arithmetic over x and y"""
    return Grammar({
        '<expr>': [
            ['<expr>', '<op>', '<expr>'],
            ['<func>', '(', '<expr>', ')'],
            ['<var>'],
            ['<const>'],
        ],
        '<op>': [['+'], ['-'], ['*'], ['/']],
        '<func>': [['sin'], ['cos'], ['exp'], ['log'], ['sqrt'], ['abs']],
        '<var>': [['x'], ['y']],
        '<const>': [['0.1'], ['0.5'], ['1.0'], ['2.0'], ['-1.0'], ['3.14159']],
    })


def image_pattern_grammar() -> Grammar:
    """Pattern expressions over x, y and the polar pair r / theta"""
    return Grammar({
        '<pattern>': [['<expr>']],
        '<expr>': [
            ['<expr>', '<op>', '<expr>'],
            ['<func>', '(', '<expr>', ')'],
            ['ifpos', '(', '<expr>', ',', '<expr>', ',', '<expr>', ')'],
            ['<var>'],
            ['<const>'],
        ],
        '<op>': [['+'], ['-'], ['*'], ['/'], ['%']],
        '<func>': [
            ['sin'], ['cos'], ['tan'], ['exp'], ['log'],
            ['sqrt'], ['abs'], ['floor'], ['ceil'],
        ],
        '<var>': [
            ['x'], ['y'], ['r'], ['theta'],
            ['(x+y)'], ['(x-y)'], ['(x*y)'],
        ],
        '<const>': [
            ['0.1'], ['0.5'], ['1.0'], ['2.0'], ['3.0'],
            ['-1.0'], ['-0.5'], ['3.14159'], ['6.28318'],
        ],
    })


def polar_drawing_grammar() -> Grammar:
    """Radius as a function of the angle t"""
    return Grammar({
        '<polar>': [['<expr>']],
        '<expr>': [
            ['<expr>', '<op>', '<expr>'],
            ['<func>', '(', '<expr>', ')'],
            ['<var>'],
            ['<const>'],
        ],
        '<op>': [['+'], ['-'], ['*'], ['/']],
        '<func>': [['sin'], ['cos'], ['tan'], ['exp'], ['log'], ['sqrt'], ['abs']],
        '<var>': [['t'], ['(t*2)'], ['(t/2)'], ['(t*3)'], ['(t/3)']],
        '<const>': [
            ['1.0'], ['2.0'], ['3.0'], ['0.5'], ['0.1'],
            ['5.0'], ['10.0'], ['3.14159'], ['6.28318'],
        ],
    })
