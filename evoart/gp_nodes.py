"""
evoart/gp_nodes.py - Expression tree nodes for the GP representation
"""
import math
import random
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple, Union

TerminalValue = Union[float, str]

# Variable tags a terminal can carry
VARIABLES = ['x', 'y', 'r', 'theta']

BINARY_FUNCTIONS = ['+', '-', '*', '/', 'max', 'min', 'mod']
UNARY_FUNCTIONS = ['sin', 'cos', 'exp', 'log', 'sqrt', 'abs']
TERNARY_FUNCTIONS = ['ifpos']

ARITY = {}
ARITY.update({f: 2 for f in BINARY_FUNCTIONS})
ARITY.update({f: 1 for f in UNARY_FUNCTIONS})
ARITY.update({f: 3 for f in TERNARY_FUNCTIONS})

PROTECTED_EPSILON = 1e-6
EXP_LIMIT = 10.0
# Returned whenever a function node fails or produces a non-finite value
NUMERIC_FALLBACK = 1.0


class TreeNode(ABC):
    """Base class for all tree nodes"""

    @abstractmethod
    def evaluate(self, x: float, y: float) -> float:
        """Evaluate the subtree at a point"""
        pass

    @abstractmethod
    def copy(self) -> 'TreeNode':
        """Create a deep copy of this node"""
        pass

    @abstractmethod
    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dictionary"""
        pass

    def depth(self) -> int:
        if not self.children:
            return 1
        return 1 + max(child.depth() for child in self.children)

    def size(self) -> int:
        return 1 + sum(child.size() for child in self.children)

    def get_all_nodes(self) -> List['TreeNode']:
        """All nodes of this subtree in pre-order"""
        nodes = [self]
        for child in self.children:
            nodes.extend(child.get_all_nodes())
        return nodes

    def iter_nodes(self, parent: Optional['FunctionNode'] = None,
                   index: Optional[int] = None) -> Iterator[Tuple['TreeNode', Optional['FunctionNode'], Optional[int]]]:
        """Pre-order (node, parent, child index) triples; the root has no parent"""
        yield self, parent, index
        for child_index, child in enumerate(self.children):
            yield from child.iter_nodes(self, child_index)


class TerminalNode(TreeNode):
    """Variable tag or numeric constant"""

    def __init__(self, value: TerminalValue):
        self.value = value
        self.children = []

    def evaluate(self, x: float, y: float) -> float:
        if self.value == 'x':
            return x
        elif self.value == 'y':
            return y
        try:
            if self.value == 'r':
                return math.sqrt(x * x + y * y)
            elif self.value == 'theta':
                # Measured from the top, clockwise
                return math.atan2(x, -y)
        except (ArithmeticError, ValueError):
            return NUMERIC_FALLBACK
        return self.value

    def copy(self) -> 'TerminalNode':
        return TerminalNode(self.value)

    def to_dict(self) -> Dict[str, Any]:
        return {'type': 'TerminalNode', 'value': self.value}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TerminalNode':
        return cls(data['value'])

    def __str__(self):
        if isinstance(self.value, str):
            return self.value
        return f"{self.value:.3f}"


class FunctionNode(TreeNode):
    """Operator applied to one, two or three children"""

    def __init__(self, func: str, children: Sequence[TreeNode]):
        self.func = func
        self.children = list(children)
        expected = ARITY.get(func)
        if expected is not None and expected != len(self.children):
            raise ValueError(f"{func} takes {expected} children, got {len(self.children)}")

    def evaluate(self, x: float, y: float) -> float:
        try:
            values = [child.evaluate(x, y) for child in self.children]
            result = float(self._apply(values))
        except (ArithmeticError, ValueError):
            return NUMERIC_FALLBACK
        return result if math.isfinite(result) else NUMERIC_FALLBACK

    def _apply(self, values: List[float]) -> float:
        f = self.func
        if f == '+':
            return values[0] + values[1]
        elif f == '-':
            return values[0] - values[1]
        elif f == '*':
            return values[0] * values[1]
        elif f == '/':
            if abs(values[1]) > PROTECTED_EPSILON:
                return values[0] / values[1]
            return 1.0
        elif f == 'max':
            return max(values[0], values[1])
        elif f == 'min':
            return min(values[0], values[1])
        elif f == 'mod':
            if abs(values[1]) > PROTECTED_EPSILON:
                return math.fmod(values[0], values[1])
            return values[0]
        elif f == 'sin':
            return math.sin(values[0])
        elif f == 'cos':
            return math.cos(values[0])
        elif f == 'exp':
            return math.exp(min(values[0], EXP_LIMIT))
        elif f == 'log':
            return math.log(abs(values[0]) + PROTECTED_EPSILON)
        elif f == 'sqrt':
            return math.sqrt(abs(values[0]))
        elif f == 'abs':
            return abs(values[0])
        elif f == 'ifpos':
            return values[1] if values[0] > 0 else values[2]
        return values[0] if values else 0.0

    def copy(self) -> 'FunctionNode':
        return FunctionNode(self.func, [child.copy() for child in self.children])

    def to_dict(self) -> Dict[str, Any]:
        return {
            'type': 'FunctionNode',
            'func': self.func,
            'children': [child.to_dict() for child in self.children]
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'FunctionNode':
        return cls(data['func'], [node_from_dict(child) for child in data['children']])

    def __str__(self):
        if len(self.children) == 1:
            return f"{self.func}({self.children[0]})"
        elif len(self.children) == 2:
            return f"({self.children[0]} {self.func} {self.children[1]})"
        return f"{self.func}({', '.join(str(child) for child in self.children)})"


def node_from_dict(data: Dict[str, Any]) -> TreeNode:
    """Create node from dictionary representation"""
    node_type = data['type']

    if node_type == 'TerminalNode':
        return TerminalNode.from_dict(data)
    elif node_type == 'FunctionNode':
        return FunctionNode.from_dict(data)
    else:
        raise ValueError(f"Unknown node type: {node_type}")


def default_terminals(rng=None, constants: int = 10) -> List[TerminalValue]:
    """Variable tags plus a handful of random constants in [-2, 2)"""
    rng = rng or random
    return VARIABLES + [(rng.random() - 0.5) * 4 for _ in range(constants)]


def create_random_tree(max_depth: int, terminals: Sequence[TerminalValue],
                       method: str = 'grow', rng=None) -> TreeNode:
    """Build a random tree no deeper than max_depth.

    'grow' stops early with probability 0.3 at every level; 'full' only
    stops when max_depth is used up.
    """
    rng = rng or random
    if max_depth <= 1 or (method == 'grow' and rng.random() < 0.3):
        return TerminalNode(rng.choice(terminals))

    choice = rng.random()
    if choice < 0.6:
        func = rng.choice(BINARY_FUNCTIONS)
    elif choice < 0.9:
        func = rng.choice(UNARY_FUNCTIONS)
    else:
        func = rng.choice(TERNARY_FUNCTIONS)

    children = [create_random_tree(max_depth - 1, terminals, method, rng) for _ in range(ARITY[func])]
    return FunctionNode(func, children)


def replace_node(root: TreeNode, index: int, new_subtree: TreeNode) -> TreeNode:
    """Replace the node at a pre-order index and return the resulting root"""
    for position, (node, parent, child_index) in enumerate(root.iter_nodes()):
        if position == index:
            if parent is None:
                return new_subtree
            parent.children[child_index] = new_subtree
            return root
    raise IndexError(f"Tree of size {root.size()} has no node {index}")
