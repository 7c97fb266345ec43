"""
evoart/expression.py - Safe compilation of derived expression strings

Expressions produced by the grammars are parsed into a small AST by a
recursive-descent parser and evaluated by walking that tree. No source text
is ever executed. Every division and modulo is guarded, and evaluation errors
or non-finite results collapse to a per-consumer fallback value.
"""
import logging
import math
import re
from abc import ABC, abstractmethod
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from .exceptions import ExpressionSyntaxError

logger = logging.getLogger(__name__)

DIVISION_EPSILON = 1e-6

FUNCTIONS: Dict[str, Callable[[float], float]] = {
    'sin': math.sin,
    'cos': math.cos,
    'tan': math.tan,
    'exp': math.exp,
    'log': math.log,
    'sqrt': math.sqrt,
    'abs': abs,
    'floor': lambda v: float(math.floor(v)),
    'ceil': lambda v: float(math.ceil(v)),
}

# Literal placeholders the grammars use for pi and 2*pi
NAMED_CONSTANTS = {
    '3.14159': math.pi,
    '6.28318': 2 * math.pi,
}

# Errors a well-formed expression can still raise while being evaluated
EVALUATION_ERRORS = (ArithmeticError, ValueError, KeyError, RecursionError)

_TOKEN_RE = re.compile(r"""
    \s*(?:
        (?P<number>(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)
      | (?P<name>[A-Za-z_]\w*)
      | (?P<op>[-+*/%(),])
    )""", re.VERBOSE)


def tokenize(text: str) -> List[Tuple[str, str]]:
    """Split an expression into (kind, text) tokens"""
    tokens = []
    position = 0
    text = text.rstrip()
    while position < len(text):
        match = _TOKEN_RE.match(text, position)
        if match is None:
            raise ExpressionSyntaxError(f"Unexpected character {text[position]!r} at {position}")
        kind = match.lastgroup
        tokens.append((kind, match.group(kind)))
        position = match.end()
    return tokens


class ExprNode(ABC):
    """Base class for parsed expression nodes"""

    @abstractmethod
    def evaluate(self, env: Dict[str, float]) -> float:
        pass


class Number(ExprNode):

    def __init__(self, value: float):
        self.value = value

    def evaluate(self, env: Dict[str, float]) -> float:
        return self.value

    def __str__(self):
        return repr(self.value)


class Name(ExprNode):

    def __init__(self, name: str):
        self.name = name

    def evaluate(self, env: Dict[str, float]) -> float:
        return env[self.name]

    def __str__(self):
        return self.name


class Negate(ExprNode):

    def __init__(self, operand: ExprNode):
        self.operand = operand

    def evaluate(self, env: Dict[str, float]) -> float:
        return -self.operand.evaluate(env)

    def __str__(self):
        return f"-{self.operand}"


class BinaryOp(ExprNode):
    """Arithmetic with guarded division and modulo"""

    def __init__(self, op: str, left: ExprNode, right: ExprNode):
        self.op = op
        self.left = left
        self.right = right

    def evaluate(self, env: Dict[str, float]) -> float:
        a = self.left.evaluate(env)
        b = self.right.evaluate(env)

        if self.op == '+':
            return a + b
        elif self.op == '-':
            return a - b
        elif self.op == '*':
            return a * b

        # Near-zero divisors are replaced by 1.0
        divisor = b if abs(b) > DIVISION_EPSILON else 1.0
        if self.op == '/':
            return a / divisor
        return math.fmod(a, divisor)

    def __str__(self):
        return f"({self.left} {self.op} {self.right})"


class Call(ExprNode):

    def __init__(self, func: str, argument: ExprNode):
        self.func = func
        self.argument = argument

    def evaluate(self, env: Dict[str, float]) -> float:
        return FUNCTIONS[self.func](self.argument.evaluate(env))

    def __str__(self):
        return f"{self.func}({self.argument})"


class IfPos(ExprNode):
    """ifpos(cond, a, b): a when cond > 0, else b"""

    def __init__(self, condition: ExprNode, when_positive: ExprNode, otherwise: ExprNode):
        self.condition = condition
        self.when_positive = when_positive
        self.otherwise = otherwise

    def evaluate(self, env: Dict[str, float]) -> float:
        if self.condition.evaluate(env) > 0:
            return self.when_positive.evaluate(env)
        return self.otherwise.evaluate(env)

    def __str__(self):
        return f"ifpos({self.condition}, {self.when_positive}, {self.otherwise})"


class Parser:
    """Recursive-descent parser.

    expr    := term (('+' | '-') term)*
    term    := unary (('*' | '/' | '%') unary)*
    unary   := ('-' | '+') unary | primary
    primary := number | name | name '(' args ')' | '(' expr ')'
    """

    def __init__(self, text: str):
        self.text = text
        self.tokens = tokenize(text)
        self.position = 0

    def parse(self) -> ExprNode:
        if not self.tokens:
            raise ExpressionSyntaxError("Empty expression")
        node = self._expr()
        if self.position != len(self.tokens):
            raise ExpressionSyntaxError(f"Unexpected token {self._peek()[1]!r} in {self.text!r}")
        return node

    def _peek(self) -> Tuple[Optional[str], Optional[str]]:
        if self.position < len(self.tokens):
            return self.tokens[self.position]
        return None, None

    def _advance(self) -> Tuple[str, str]:
        token = self._peek()
        if token[0] is None:
            raise ExpressionSyntaxError(f"Unexpected end of expression {self.text!r}")
        self.position += 1
        return token

    def _expect(self, op: str) -> None:
        kind, text = self._advance()
        if kind != 'op' or text != op:
            raise ExpressionSyntaxError(f"Expected {op!r}, got {text!r} in {self.text!r}")

    def _expr(self) -> ExprNode:
        node = self._term()
        while self._peek() in (('op', '+'), ('op', '-')):
            op = self._advance()[1]
            node = BinaryOp(op, node, self._term())
        return node

    def _term(self) -> ExprNode:
        node = self._unary()
        while self._peek() in (('op', '*'), ('op', '/'), ('op', '%')):
            op = self._advance()[1]
            node = BinaryOp(op, node, self._unary())
        return node

    def _unary(self) -> ExprNode:
        if self._peek() == ('op', '-'):
            self._advance()
            return Negate(self._unary())
        if self._peek() == ('op', '+'):
            self._advance()
            return self._unary()
        return self._primary()

    def _primary(self) -> ExprNode:
        kind, text = self._advance()

        if kind == 'number':
            if text in NAMED_CONSTANTS:
                return Number(NAMED_CONSTANTS[text])
            return Number(float(text))

        if kind == 'name':
            if self._peek() != ('op', '('):
                return Name(text)
            self._advance()
            args = self._arguments()
            if text == 'ifpos':
                if len(args) != 3:
                    raise ExpressionSyntaxError(f"ifpos takes 3 arguments, got {len(args)}")
                return IfPos(*args)
            if text not in FUNCTIONS:
                raise ExpressionSyntaxError(f"Unknown function {text!r}")
            if len(args) != 1:
                raise ExpressionSyntaxError(f"{text} takes 1 argument, got {len(args)}")
            return Call(text, args[0])

        if (kind, text) == ('op', '('):
            node = self._expr()
            self._expect(')')
            return node

        raise ExpressionSyntaxError(f"Unexpected token {text!r} in {self.text!r}")

    def _arguments(self) -> List[ExprNode]:
        args = [self._expr()]
        while self._peek() == ('op', ','):
            self._advance()
            args.append(self._expr())
        self._expect(')')
        return args


def parse_expression(text: str) -> ExprNode:
    return Parser(text).parse()


class CompiledExpression:
    """Callable wrapper around a parsed expression.

    Called with one positional value per entry in ``variables``. When both
    ``x`` and ``y`` are bound, ``r = sqrt(x^2 + y^2)`` and
    ``theta = atan2(y, x)`` are available too. The call never raises for
    numeric reasons and always returns a finite float.
    """

    def __init__(self, expression: str, tree: Optional[ExprNode],
                 variables: Sequence[str], fallback: float):
        self.expression = expression
        self.tree = tree
        self.variables = tuple(variables)
        self.fallback = fallback

    @property
    def valid(self) -> bool:
        return self.tree is not None

    def bind(self, *values: float) -> Dict[str, float]:
        if len(values) != len(self.variables):
            raise TypeError(f"Expected {len(self.variables)} values for {self.variables}, got {len(values)}")
        env = dict(zip(self.variables, values))
        if 'x' in env and 'y' in env:
            x, y = env['x'], env['y']
            env.setdefault('r', math.sqrt(x * x + y * y))
            env.setdefault('theta', math.atan2(y, x))
        return env

    def __call__(self, *values: float) -> float:
        try:
            env = self.bind(*values)
            if self.tree is None:
                return self.fallback
            result = float(self.tree.evaluate(env))
        except EVALUATION_ERRORS:
            return self.fallback
        return result if math.isfinite(result) else self.fallback

    def __repr__(self):
        return f"CompiledExpression({self.expression!r}, variables={self.variables}, fallback={self.fallback})"


def compile_expression(expression: str, variables: Sequence[str] = ('x', 'y'),
                       fallback: float = 0.0) -> CompiledExpression:
    """Compile an expression string; parse failures give a constant fallback"""
    try:
        tree = parse_expression(expression)
    except (ExpressionSyntaxError, RecursionError) as e:
        logger.debug("Could not compile %r: %s", expression, e)
        tree = None
    return CompiledExpression(expression, tree, variables, fallback)
