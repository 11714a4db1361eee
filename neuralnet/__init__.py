"""
neuralnet package
~~~~~~~~~~~~~~~~~

From-scratch feed-forward neural network engine for interactive,
visual training. Contains the activation/error/regularization catalogs,
the node/link graph, the network engine, a training session wrapper
and a small JSON API for presentation layers.
"""

from neuralnet.exceptions import (
    NeuralNetError,
    ConfigurationError,
    DimensionMismatchError
)
from neuralnet.functions import (
    ActivationType,
    OutputErrorType,
    RegularizationType
)
from neuralnet.graph import Node, Link
from neuralnet.network import Network
from neuralnet.config import NetworkConfig
from neuralnet.session import TrainingSession

__version__ = "1.0.0"

__all__ = [
    "NeuralNetError",
    "ConfigurationError",
    "DimensionMismatchError",
    "ActivationType",
    "OutputErrorType",
    "RegularizationType",
    "Node",
    "Link",
    "Network",
    "NetworkConfig",
    "TrainingSession",
]
