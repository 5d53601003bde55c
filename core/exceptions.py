"""
Exception types raised by the collapse model.

Two failure families exist:
- ConfigurationError: the caller supplied something the model cannot run
  with (bad time grid, zero intensity, malformed initial state). Raised
  before any evaluation happens.
- NumericDegeneracy: a division by zero or non-finite value showed up
  during evaluation. Only raised in strict mode; by default such values
  are carried through the trajectory as data.
"""


class CollapseModelError(Exception):
    """Base class for all model errors."""


class ConfigurationError(CollapseModelError, ValueError):
    """Invalid parameters, initial state or time grid."""


class NumericDegeneracy(CollapseModelError, ArithmeticError):
    """Non-finite result or unguarded division during model evaluation."""

    def __init__(self, message: str, time: float = None, quantities=()):
        super().__init__(message)
        self.time = time
        self.quantities = tuple(quantities)
