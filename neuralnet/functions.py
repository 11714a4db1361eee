"""
functions.py
~~~~~~~~~~~~

Catalogs of the pure numeric functions used by the network engine:

- Activation functions applied to a node's total input
- Output error (loss) functions applied to the output layer
- Regularization penalties applied to link weights

Every catalog is a closed enum mapped to a named tuple of functions, so
each entry can be looked up by name and tested in isolation.
"""

from enum import Enum
from typing import Callable, Dict, NamedTuple, Optional, Sequence, Union

import numpy as np

from neuralnet.exceptions import ConfigurationError, DimensionMismatchError


# ============================================================================
# ACTIVATION
# ============================================================================

class ActivationType(str, Enum):
    TANH = "Tanh"
    RELU = "ReLU"
    SIGMOID = "Sigmoid"
    LINEAR = "Linear"


class ActivationFunction(NamedTuple):
    """Activation output and its derivative, both taking the total input."""
    output: Callable[[float], float]
    der: Callable[[float], float]


def _tanh(x: float) -> float:
    # np.tanh saturates to +/-1 instead of overflowing
    return float(np.tanh(x))


def _sigmoid(x: float) -> float:
    if x >= 0:
        return float(1.0 / (1.0 + np.exp(-x)))
    # exp(-x) overflows for large negative x
    z = np.exp(x)
    return float(z / (1.0 + z))


def _sigmoid_der(x: float) -> float:
    s = _sigmoid(x)
    return s * (1.0 - s)


ACTIVATIONS: Dict[ActivationType, ActivationFunction] = {
    ActivationType.TANH: ActivationFunction(
        output=_tanh,
        der=lambda x: 1.0 - _tanh(x) ** 2
    ),
    ActivationType.RELU: ActivationFunction(
        output=lambda x: max(0.0, x),
        der=lambda x: 0.0 if x <= 0 else 1.0
    ),
    ActivationType.SIGMOID: ActivationFunction(
        output=_sigmoid,
        der=_sigmoid_der
    ),
    ActivationType.LINEAR: ActivationFunction(
        output=lambda x: x,
        der=lambda x: 1.0
    ),
}


# ============================================================================
# OUTPUT ERROR
# ============================================================================

class OutputErrorType(str, Enum):
    SQUARE = "Square sum"
    MEAN_SQUARE = "Mean square"


class OutputErrorFunction(NamedTuple):
    """
    Loss over a whole output vector and its per-output derivative.

    ``der(output, target, output_length)`` always receives the size of the
    output layer, even when the loss does not depend on it.
    """
    error: Callable[[Sequence[float], Sequence[float]], float]
    der: Callable[[float, float, int], float]


def _squared_sum(outputs: Sequence[float], targets: Sequence[float]) -> float:
    diff = np.asarray(outputs, dtype=float) - np.asarray(targets, dtype=float)
    return float(np.sum(diff * diff))


OUTPUT_ERRORS: Dict[OutputErrorType, OutputErrorFunction] = {
    OutputErrorType.SQUARE: OutputErrorFunction(
        error=lambda outputs, targets: _squared_sum(outputs, targets) / 2,
        der=lambda output, target, output_length: output - target
    ),
    OutputErrorType.MEAN_SQUARE: OutputErrorFunction(
        error=lambda outputs, targets: (
            _squared_sum(outputs, targets) / len(outputs) if len(outputs) else 0.0
        ),
        der=lambda output, target, output_length: (
            (2 / output_length) * (output - target)
        )
    ),
}


# ============================================================================
# REGULARIZATION
# ============================================================================

class RegularizationType(str, Enum):
    L1 = "L1"
    L2 = "L2"


class RegularizationFunction(NamedTuple):
    """Penalty for a weight and its derivative with respect to the weight."""
    output: Callable[[float], float]
    der: Callable[[float], float]


REGULARIZATIONS: Dict[RegularizationType, RegularizationFunction] = {
    RegularizationType.L1: RegularizationFunction(
        output=lambda w: abs(w),
        der=lambda w: -1.0 if w < 0 else (1.0 if w > 0 else 0.0)
    ),
    RegularizationType.L2: RegularizationFunction(
        output=lambda w: 0.5 * w * w,
        der=lambda w: w
    ),
}


# ============================================================================
# LOOKUP
# ============================================================================

def _coerce(enum_cls, value, label: str):
    """Resolve an enum member from a member, its value or its name."""
    if isinstance(value, enum_cls):
        return value
    if isinstance(value, str):
        wanted = value.strip().lower()
        for member in enum_cls:
            if wanted in (member.value.lower(), member.name.lower()):
                return member
    choices = ", ".join(member.value for member in enum_cls)
    raise ConfigurationError(f"Unknown {label} {value!r}; expected one of: {choices}")


def activation_type(value: Union[ActivationType, str]) -> ActivationType:
    return _coerce(ActivationType, value, "activation")


def output_error_type(value: Union[OutputErrorType, str]) -> OutputErrorType:
    return _coerce(OutputErrorType, value, "output error")


def regularization_type(
    value: Union[RegularizationType, str, None]
) -> Optional[RegularizationType]:
    """Like :func:`activation_type`, but ``None`` (or "none") means no regularization."""
    if value is None or (isinstance(value, str) and value.strip().lower() in ("", "none")):
        return None
    return _coerce(RegularizationType, value, "regularization")


def get_activation(value: Union[ActivationType, str]) -> ActivationFunction:
    return ACTIVATIONS[activation_type(value)]


def get_output_error(value: Union[OutputErrorType, str]) -> OutputErrorFunction:
    return OUTPUT_ERRORS[output_error_type(value)]


def get_regularization(
    value: Union[RegularizationType, str, None]
) -> Optional[RegularizationFunction]:
    kind = regularization_type(value)
    return None if kind is None else REGULARIZATIONS[kind]


def output_error(
    outputs: Sequence[float],
    targets: Sequence[float],
    kind: Union[OutputErrorType, str] = OutputErrorType.SQUARE
) -> float:
    """
    Compute the aggregate error of an output vector against its targets.

    Args:
        outputs: Values produced by the output layer
        targets: Expected values, same length as outputs
        kind: Which output error function to use

    Returns:
        float: The loss, used for loss curves only

    Raises:
        DimensionMismatchError: If the vectors differ in length
    """
    if len(outputs) != len(targets):
        raise DimensionMismatchError("targets", len(outputs), len(targets))
    return get_output_error(kind).error(outputs, targets)
