"""
config.py
~~~~~~~~~

Network and learning configuration.

A :class:`NetworkConfig` holds every parameter needed to build a network
and to train it. Construction parameters (shape, activations, ...) require
a rebuild when they change; learning parameters (rates) do not.
"""

import os
import logging
from dataclasses import dataclass, field, fields, replace as dc_replace
from typing import Any, Dict, List, Mapping, Optional

from neuralnet.exceptions import ConfigurationError
from neuralnet.functions import (
    ActivationType,
    OutputErrorType,
    RegularizationType,
    activation_type,
    output_error_type,
    regularization_type
)
from neuralnet.network import validate_shape

# Configure module logger
logger = logging.getLogger(__name__)

# Fields that change the graph itself
CONSTRUCTION_FIELDS = (
    'shape',
    'randomize',
    'activation',
    'output_activation',
    'output_error',
    'regularization',
    'seed'
)

# Keys used by the browser UI state
_CAMEL_CASE_KEYS = {
    'outputActivation': 'output_activation',
    'outputError': 'output_error',
    'regularizationRate': 'regularization_rate',
    'learningRate': 'learning_rate'
}


def _default_shape() -> List[int]:
    return [30, 24, 22, 10]


@dataclass(frozen=True)
class NetworkConfig:
    shape: List[int] = field(default_factory=_default_shape)
    randomize: bool = True
    activation: ActivationType = ActivationType.RELU
    output_activation: ActivationType = ActivationType.TANH
    output_error: OutputErrorType = OutputErrorType.SQUARE
    regularization: Optional[RegularizationType] = None
    regularization_rate: float = 0.0
    learning_rate: float = 0.03
    seed: Optional[int] = None

    def __post_init__(self):
        # Normalise names to enum members; frozen, so go through object
        object.__setattr__(self, 'activation', activation_type(self.activation))
        object.__setattr__(self, 'output_activation', activation_type(self.output_activation))
        object.__setattr__(self, 'output_error', output_error_type(self.output_error))
        object.__setattr__(self, 'regularization', regularization_type(self.regularization))
        object.__setattr__(self, 'shape', validate_shape(self.shape))
        self.validate()

    def validate(self) -> None:
        """
        Check the learning parameters.

        The shape and the function names are already checked on creation.

        Raises:
            ConfigurationError: If a rate is negative or not a number, if
                randomize is not a bool or if seed is not a non-negative integer
        """
        for name in ('learning_rate', 'regularization_rate'):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ConfigurationError(f"{name} must be a number, got {value!r}")
            if value < 0:
                raise ConfigurationError(f"{name} must be >= 0, got {value}")
        if not isinstance(self.randomize, bool):
            raise ConfigurationError(f"randomize must be true or false, got {self.randomize!r}")
        if self.seed is not None and (
            isinstance(self.seed, bool) or not isinstance(self.seed, int) or self.seed < 0
        ):
            raise ConfigurationError(f"seed must be a non-negative integer, got {self.seed!r}")

    def replace(self, **changes: Any) -> "NetworkConfig":
        """Return a validated copy with ``changes`` applied."""
        unknown = set(changes) - {f.name for f in fields(self)}
        if unknown:
            raise ConfigurationError(f"Unknown configuration field(s): {sorted(unknown)}")
        return dc_replace(self, **changes)

    def requires_rebuild(self, other: "NetworkConfig") -> bool:
        """Whether moving from this config to ``other`` needs a new network."""
        return any(getattr(self, name) != getattr(other, name) for name in CONSTRUCTION_FIELDS)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'shape': list(self.shape),
            'randomize': self.randomize,
            'activation': self.activation.value,
            'output_activation': self.output_activation.value,
            'output_error': self.output_error.value,
            'regularization': self.regularization.value if self.regularization else None,
            'regularization_rate': self.regularization_rate,
            'learning_rate': self.learning_rate,
            'seed': self.seed
        }

    @staticmethod
    def normalize_keys(payload: Mapping[str, Any]) -> Dict[str, Any]:
        """Map UI-style camelCase keys onto field names; reject unknown keys."""
        if not isinstance(payload, Mapping):
            raise ConfigurationError(f"Configuration must be an object, got {type(payload).__name__}")
        known = {f.name for f in fields(NetworkConfig)}
        changes = {}
        for key, value in payload.items():
            name = _CAMEL_CASE_KEYS.get(key, key)
            if name not in known:
                raise ConfigurationError(f"Unknown configuration field {key!r}")
            changes[name] = value
        return changes

    @classmethod
    def from_dict(cls, payload: Optional[Mapping[str, Any]] = None) -> "NetworkConfig":
        """
        Build a config from a JSON-like mapping.

        Missing keys fall back to the defaults.

        Example:
            >>> NetworkConfig.from_dict({'shape': [2, 3, 1], 'learningRate': 0.1})
        """
        if payload is None:
            return cls()
        return cls(**cls.normalize_keys(payload))

    @classmethod
    def from_env(cls) -> "NetworkConfig":
        """
        Build a config from ``NN_*`` environment variables.

        Recognised: NN_SHAPE (e.g. "2,4,1"), NN_ACTIVATION,
        NN_OUTPUT_ACTIVATION, NN_REGULARIZATION, NN_REGULARIZATION_RATE,
        NN_LEARNING_RATE.
        """
        changes: Dict[str, Any] = {}

        shape = os.getenv('NN_SHAPE')
        if shape:
            try:
                changes['shape'] = [int(size) for size in shape.split(',')]
            except ValueError:
                raise ConfigurationError(f"NN_SHAPE must be comma-separated integers, got {shape!r}")

        for env_name, name in (('NN_ACTIVATION', 'activation'),
                               ('NN_OUTPUT_ACTIVATION', 'output_activation'),
                               ('NN_REGULARIZATION', 'regularization')):
            value = os.getenv(env_name)
            if value is not None:
                changes[name] = value

        for env_name, name in (('NN_LEARNING_RATE', 'learning_rate'),
                               ('NN_REGULARIZATION_RATE', 'regularization_rate')):
            value = os.getenv(env_name)
            if value is not None:
                try:
                    changes[name] = float(value)
                except ValueError:
                    raise ConfigurationError(f"{env_name} must be a number, got {value!r}")

        if changes:
            logger.debug(f"Configuration from environment: {changes}")
        return cls(**changes)
