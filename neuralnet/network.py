"""
network.py
~~~~~~~~~~

The network engine: builds a fully connected layered graph of
:class:`~neuralnet.graph.Node` and :class:`~neuralnet.graph.Link` objects
and trains it one step at a time.

A training cycle is::

    outputs = net.forward_prop(inputs)
    net.back_prop(targets)
    net.update_weights(learning_rate, regularization_rate)

Calling ``forward_prop``/``back_prop`` several times before a single
``update_weights`` averages the accumulated derivatives, which gives
mini-batch gradient descent. Batching, epochs and datasets are the
caller's business.

The engine is synchronous and not thread-safe; a multi-threaded host must
serialise all calls on one network (see :class:`~neuralnet.session.TrainingSession`).
"""

import logging
from typing import Any, Callable, Dict, List, Sequence, Union

import numpy as np

from neuralnet.exceptions import ConfigurationError, DimensionMismatchError
from neuralnet.functions import (
    ActivationType,
    OutputErrorType,
    RegularizationType,
    ACTIVATIONS,
    OUTPUT_ERRORS,
    REGULARIZATIONS,
    activation_type,
    output_error_type,
    regularization_type
)
from neuralnet.graph import Node, Link

# Configure module logger
logger = logging.getLogger(__name__)

RandomSource = Union[np.random.Generator, int, None]


def validate_shape(shape: Sequence[int]) -> List[int]:
    """
    Check a network shape and return it as a list of ints.

    Raises:
        ConfigurationError: If there are fewer than 2 layers or a layer
            size is not a positive integer
    """
    try:
        sizes = list(shape)
    except TypeError:
        raise ConfigurationError(f"Network shape must be a sequence, got {shape!r}")

    if len(sizes) < 2:
        raise ConfigurationError(
            f"Network shape needs at least an input and an output layer, got {sizes}"
        )
    for i, size in enumerate(sizes):
        if isinstance(size, bool) or not isinstance(size, (int, np.integer)) or size <= 0:
            raise ConfigurationError(
                f"Layer {i} size must be a positive integer, got {size!r}"
            )
    return [int(size) for size in sizes]


class Network:
    """
    A feed-forward network made of fully connected layers.

    Args:
        shape: Number of nodes per layer, input layer first. E.g. ``[2, 3, 1]``
            is 2 inputs, one hidden layer of 3 nodes and a single output.
        randomize: Seed biases to 0.1 and weights uniformly in [-0.5, 0.5).
            When False every bias and weight starts at 0.
        activation: Activation of every hidden node.
        output_activation: Activation of the output nodes.
        regularization: Penalty applied to every link, or None.
        output_error: Loss used by back propagation.
        rng: numpy Generator or integer seed used for weight seeding.

    Raises:
        ConfigurationError: If the shape or a function name is invalid
    """

    def __init__(
        self,
        shape: Sequence[int],
        randomize: bool = True,
        activation: Union[ActivationType, str] = ActivationType.RELU,
        output_activation: Union[ActivationType, str] = ActivationType.TANH,
        regularization: Union[RegularizationType, str, None] = None,
        output_error: Union[OutputErrorType, str] = OutputErrorType.SQUARE,
        rng: RandomSource = None
    ):
        sizes = validate_shape(shape)
        self.activation = activation_type(activation)
        self.output_activation = activation_type(output_activation)
        self.regularization = regularization_type(regularization)
        self.output_error = output_error_type(output_error)
        self.randomize = bool(randomize)

        self.layers: List[List[Node]] = []
        self.nodes: List[Node] = []
        self.links: List[Link] = []
        self._nodes_by_id: Dict[str, Node] = {}
        self._links_by_id: Dict[str, Link] = {}

        self._build(sizes, np.random.default_rng(rng))

        logger.info(
            f"Built network {sizes}: activation={self.activation.value}, "
            f"output_activation={self.output_activation.value}, "
            f"regularization={self.regularization.value if self.regularization else None}, "
            f"randomize={self.randomize}, links={len(self.links)}"
        )

    @classmethod
    def build(
        cls,
        shape: Sequence[int],
        randomize: bool = True,
        activation: Union[ActivationType, str] = ActivationType.RELU,
        output_activation: Union[ActivationType, str] = ActivationType.TANH,
        regularization: Union[RegularizationType, str, None] = None,
        output_error: Union[OutputErrorType, str] = OutputErrorType.SQUARE,
        rng: RandomSource = None
    ) -> "Network":
        """Build a new network; same arguments as the constructor."""
        return cls(
            shape,
            randomize=randomize,
            activation=activation,
            output_activation=output_activation,
            regularization=regularization,
            output_error=output_error,
            rng=rng
        )

    def _build(self, sizes: List[int], rng: np.random.Generator) -> None:
        last = len(sizes) - 1
        for l, num_nodes in enumerate(sizes):
            kind = self.output_activation if l == last else self.activation
            current_layer: List[Node] = []
            self.layers.append(current_layer)

            for n in range(num_nodes):
                node = Node(f"{l}-{n}", kind, bias=0.1 if self.randomize else 0.0)
                current_layer.append(node)
                self.nodes.append(node)
                self._nodes_by_id[node.id] = node

                if l == 0:
                    continue
                # Links from every node of the previous layer to this node
                for prev_node in self.layers[l - 1]:
                    weight = float(rng.uniform(-0.5, 0.5)) if self.randomize else 0.0
                    link = Link(prev_node, node, self.regularization, weight)
                    prev_node.outputs.append(link)
                    node.inputs.append(link)
                    self.links.append(link)
                    self._links_by_id[link.id] = link

    # ------------------------------------------------------------------------
    # Read surface
    # ------------------------------------------------------------------------

    @property
    def shape(self) -> List[int]:
        return [len(layer) for layer in self.layers]

    @property
    def input_layer(self) -> List[Node]:
        return self.layers[0]

    @property
    def output_layer(self) -> List[Node]:
        return self.layers[-1]

    def get_output_node(self) -> Node:
        """Return the first output node (the only one in single-output networks)."""
        return self.layers[-1][0]

    def get_node(self, node_id: str) -> Node:
        return self._nodes_by_id[node_id]

    def get_link(self, link_id: str) -> Link:
        return self._links_by_id[link_id]

    def outputs(self) -> List[float]:
        """Outputs of the output layer as of the last forward pass."""
        return [node.output for node in self.output_layer]

    def error(self, targets: Sequence[float]) -> float:
        """Loss of the last forward pass against ``targets``."""
        output_layer = self.output_layer
        if len(targets) != len(output_layer):
            raise DimensionMismatchError("targets", len(output_layer), len(targets))
        return OUTPUT_ERRORS[self.output_error].error(self.outputs(), targets)

    def num_dead_links(self) -> int:
        return sum(1 for link in self.links if link.is_dead)

    def for_each(
        self,
        visit: Callable[[Node, int, int], Any],
        skip_input_layer: bool = False
    ) -> None:
        """
        Call ``visit(node, layer_index, index_in_layer)`` for every node in
        layer order, then node order.
        """
        for l in range(1 if skip_input_layer else 0, len(self.layers)):
            for i, node in enumerate(self.layers[l]):
                visit(node, l, i)

    def as_dict(self) -> Dict[str, Any]:
        return {
            'shape': self.shape,
            'activation': self.activation.value,
            'output_activation': self.output_activation.value,
            'output_error': self.output_error.value,
            'regularization': self.regularization.value if self.regularization else None,
            'layers': [[node.as_dict() for node in layer] for layer in self.layers],
            'links': [link.as_dict() for link in self.links]
        }

    # ------------------------------------------------------------------------
    # Training primitives
    # ------------------------------------------------------------------------

    def forward_prop(self, inputs: Sequence[float]) -> List[float]:
        """
        Run the inputs through the network.

        Updates ``total_input`` and ``output`` of every node. Input nodes
        take the input values as their output directly.

        Args:
            inputs: One value per input node

        Returns:
            list: Outputs of the output layer, in node order

        Raises:
            DimensionMismatchError: If ``len(inputs)`` differs from the input
                layer size. The network is left untouched.
        """
        input_layer = self.input_layer
        if len(inputs) != len(input_layer):
            raise DimensionMismatchError("inputs", len(input_layer), len(inputs))

        for node, value in zip(input_layer, inputs):
            node.output = value
        for layer in self.layers[1:]:
            for node in layer:
                node.update_output()

        return self.outputs()

    def back_prop(self, targets: Sequence[float]) -> None:
        """
        Accumulate error derivatives for the outputs of the last forward pass.

        Dead links neither receive nor propagate a derivative.

        Raises:
            DimensionMismatchError: If ``len(targets)`` differs from the
                output layer size. The network is left untouched.
        """
        output_layer = self.output_layer
        output_length = len(output_layer)
        if len(targets) != output_length:
            raise DimensionMismatchError("targets", output_length, len(targets))

        # The output layer uses the loss derivative directly.
        error_der = OUTPUT_ERRORS[self.output_error].der
        for node, target in zip(output_layer, targets):
            node.output_der = error_der(node.output, target, output_length)

        for l in range(len(self.layers) - 1, 0, -1):
            current_layer = self.layers[l]

            # Derivative with respect to each node's total input.
            for node in current_layer:
                node.input_der = node.output_der * ACTIVATIONS[node.activation].der(node.total_input)
                node.acc_input_der += node.input_der
                node.num_accumulated_ders += 1

            # Derivative with respect to each weight coming into the node.
            for node in current_layer:
                for link in node.inputs:
                    if link.is_dead:
                        continue
                    link.error_der = node.input_der * link.source.output
                    link.acc_error_der += link.error_der
                    link.num_accumulated_ders += 1

            if l == 1:
                continue
            # Must run after the current layer consumed its output_der.
            for node in self.layers[l - 1]:
                node.output_der = 0.0
                for link in node.outputs:
                    if link.is_dead:
                        continue
                    node.output_der += link.weight * link.dest.input_der

    def update_weights(self, learning_rate: float, regularization_rate: float = 0.0) -> None:
        """
        Apply the accumulated derivatives to biases and weights, then reset
        the accumulators.

        Under L1 regularization a weight whose sign would flip because of the
        penalty is snapped to 0 and its link is killed for good.

        Extreme learning rates can make weights non-finite; that is a
        configuration problem of the caller and is not checked here.

        Args:
            learning_rate: Step size, >= 0. A rate of 0 changes nothing
                except resetting the accumulators.
            regularization_rate: Strength of the regularization penalty, >= 0

        Raises:
            ConfigurationError: If either rate is negative
        """
        if learning_rate < 0:
            raise ConfigurationError(f"learning_rate must be >= 0, got {learning_rate}")
        if regularization_rate < 0:
            raise ConfigurationError(
                f"regularization_rate must be >= 0, got {regularization_rate}"
            )

        killed = 0
        for layer in self.layers[1:]:
            for node in layer:
                if node.num_accumulated_ders > 0:
                    node.bias -= learning_rate * node.acc_input_der / node.num_accumulated_ders
                    node.reset_accumulators()

                for link in node.inputs:
                    if link.is_dead or link.num_accumulated_ders == 0:
                        continue
                    if self._update_link(link, learning_rate, regularization_rate):
                        killed += 1

        if killed:
            logger.info(
                f"L1 regularization pruned {killed} link(s); "
                f"{self.num_dead_links()} of {len(self.links)} links are dead"
            )

    @staticmethod
    def _update_link(link: Link, learning_rate: float, regularization_rate: float) -> bool:
        """Gradient and regularization step for one link. Returns True if it died."""
        link.weight -= (learning_rate / link.num_accumulated_ders) * link.acc_error_der
        link.reset_accumulators()

        if link.regularization is None:
            return False

        regul_der = REGULARIZATIONS[link.regularization].der(link.weight)
        new_weight = link.weight - learning_rate * regularization_rate * regul_der
        if link.regularization is RegularizationType.L1 and link.weight * new_weight < 0:
            # The penalty pushed the weight across 0.
            link.weight = 0.0
            link.is_dead = True
            logger.debug(f"Link {link.id} killed by L1 regularization")
            return True

        link.weight = new_weight
        return False

    def __repr__(self):
        return f"Network(shape={self.shape}, links={len(self.links)})"
