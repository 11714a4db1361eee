"""
session.py
~~~~~~~~~~

A training session couples one :class:`~neuralnet.config.NetworkConfig`
with the :class:`~neuralnet.network.Network` built from it.

The session is what a presentation layer talks to: it rebuilds the
network whenever a construction parameter changes, runs single training
steps with the configured rates and keeps the step counter and loss
history used for loss curves. It does not schedule epochs or produce
data.
"""

import logging
import threading
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from neuralnet.config import NetworkConfig
from neuralnet.exceptions import ConfigurationError, DimensionMismatchError
from neuralnet.network import Network

# Configure module logger
logger = logging.getLogger(__name__)

Example = Tuple[Sequence[float], Sequence[float]]


class TrainingSession:
    """
    Owns a network and its configuration.

    All public methods hold the session lock, so a multi-threaded host
    (e.g. the API server) can share one session between requests.
    """

    def __init__(self, config: Optional[NetworkConfig] = None):
        self.config = config or NetworkConfig()
        self._lock = threading.RLock()
        self.network = self._build()
        self.step = 0
        self.loss_history: List[Dict[str, float]] = []

    def _build(self) -> Network:
        config = self.config
        return Network.build(
            config.shape,
            randomize=config.randomize,
            activation=config.activation,
            output_activation=config.output_activation,
            regularization=config.regularization,
            output_error=config.output_error,
            rng=config.seed
        )

    def rebuild(self) -> Network:
        """Replace the network with a fresh one built from the current config."""
        with self._lock:
            self.network = self._build()
            self.step = 0
            self.loss_history = []
            return self.network

    def configure(self, **changes: Any) -> bool:
        """
        Apply configuration changes.

        Returns:
            bool: True if the network was rebuilt, False if only the
            learning parameters changed

        Raises:
            ConfigurationError: If the new configuration is invalid; the
                session keeps its previous configuration and network
        """
        with self._lock:
            new_config = self.config.replace(**changes)
            needs_rebuild = self.config.requires_rebuild(new_config)
            self.config = new_config
            if needs_rebuild:
                logger.info(f"Configuration changed, rebuilding network: {sorted(changes)}")
                self.rebuild()
            return needs_rebuild

    # ------------------------------------------------------------------------
    # Training steps
    # ------------------------------------------------------------------------

    def forward_prop(self, inputs: Sequence[float]) -> List[float]:
        with self._lock:
            return self.network.forward_prop(inputs)

    def back_prop(self, targets: Sequence[float]) -> float:
        """Back propagate ``targets`` and return the error of the last forward pass."""
        with self._lock:
            self.network.back_prop(targets)
            return self.network.error(targets)

    def update_weights(
        self,
        learning_rate: Optional[float] = None,
        regularization_rate: Optional[float] = None
    ) -> int:
        """
        Apply accumulated derivatives using the configured rates, unless
        overridden. Returns the new step count.
        """
        with self._lock:
            self.network.update_weights(
                self.config.learning_rate if learning_rate is None else learning_rate,
                self.config.regularization_rate if regularization_rate is None else regularization_rate
            )
            self.step += 1
            return self.step

    def _check_example(self, inputs: Sequence[float], targets: Sequence[float]) -> None:
        num_inputs = len(self.network.input_layer)
        num_outputs = len(self.network.output_layer)
        if len(inputs) != num_inputs:
            raise DimensionMismatchError("inputs", num_inputs, len(inputs))
        if len(targets) != num_outputs:
            raise DimensionMismatchError("targets", num_outputs, len(targets))

    def train_example(self, inputs: Sequence[float], targets: Sequence[float]) -> float:
        """
        One stochastic gradient descent step. Returns the example's error.

        Both vectors are checked before the forward pass, so a rejected
        example leaves the network untouched.
        """
        with self._lock:
            self._check_example(inputs, targets)
            self.forward_prop(inputs)
            error = self.back_prop(targets)
            self.update_weights()
            return error

    def train_batch(self, examples: Iterable[Example]) -> float:
        """
        Accumulate derivatives over ``examples``, then update once.

        Returns:
            float: Mean error over the batch

        Raises:
            ConfigurationError: If the batch is empty
            DimensionMismatchError: If any example has the wrong size; no
                derivative is accumulated in that case
        """
        with self._lock:
            examples = list(examples)
            if not examples:
                raise ConfigurationError("Cannot train on an empty batch")
            for inputs, targets in examples:
                self._check_example(inputs, targets)

            errors = []
            for inputs, targets in examples:
                self.network.forward_prop(inputs)
                errors.append(self.back_prop(targets))
            self.update_weights()
            return sum(errors) / len(errors)

    def record_loss(self, training: float, test: float) -> None:
        with self._lock:
            self.loss_history.append({'training': float(training), 'test': float(test)})

    def snapshot(self) -> Dict[str, Any]:
        """Configuration, progress and the whole network graph, JSON-ready."""
        with self._lock:
            return {
                'config': self.config.to_dict(),
                'step': self.step,
                'loss_history': list(self.loss_history),
                'dead_links': self.network.num_dead_links(),
                'network': self.network.as_dict()
            }
