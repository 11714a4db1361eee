"""
exceptions.py
~~~~~~~~~~~~~

Error types raised by the network engine.
"""


class NeuralNetError(Exception):
    """Base class for all errors raised by the neuralnet package."""


class ConfigurationError(NeuralNetError, ValueError):
    """
    Raised when a network or training configuration is invalid.

    Examples: a shape with fewer than 2 layers, a non-positive layer size,
    an unknown activation name or a negative learning rate.
    """


class DimensionMismatchError(NeuralNetError, ValueError):
    """
    Raised when an input or target vector does not match the size of the
    layer it is applied to.
    """

    def __init__(self, what: str, expected: int, actual: int):
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"The number of {what} must match the number of nodes in the "
            f"{'input' if what == 'inputs' else 'output'} layer: "
            f"expected {expected}, got {actual}"
        )
