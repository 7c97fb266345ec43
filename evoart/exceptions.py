"""
evoart/exceptions.py - Error types raised across the package
"""


class EvoArtError(Exception):
    """Base class for evoart errors"""


class ConfigurationError(EvoArtError, ValueError):
    """Invalid evolution settings"""


class ExpressionSyntaxError(EvoArtError, ValueError):
    """An expression string could not be parsed.

    Only raised by the parser itself; compile_expression always turns it
    into a constant fallback callable.
    """


class SelectionError(EvoArtError):
    """Evolution was requested without enough selected individuals"""

    def __init__(self, selected: int, required: int):
        super().__init__(f"Please select at least {required} individuals for evolution "
                         f"({selected} selected)")
        self.selected = selected
        self.required = required
