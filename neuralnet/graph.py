"""
graph.py
~~~~~~~~

Node and link entities of the layered network graph.

Each node keeps the state produced by the last forward and backward pass
(total input, output and their error derivatives) plus accumulators that
collect derivatives until the next weight update. Links are shared between
the ``outputs`` of their source node and the ``inputs`` of their destination
node; the owning :class:`~neuralnet.network.Network` keeps the flat list.
"""

from typing import Any, Dict, List, Optional

from neuralnet.functions import (
    ActivationType,
    RegularizationType,
    ACTIVATIONS
)


class Node:
    """A single unit of one layer of the network."""

    def __init__(self, id: str, activation: ActivationType, bias: float = 0.0):
        self.id = id
        self.activation = activation
        self.inputs: List["Link"] = []
        self.outputs: List["Link"] = []
        self.bias = bias
        self.total_input = 0.0
        self.output = 0.0
        # Error derivative with respect to this node's output.
        self.output_der = 0.0
        # Error derivative with respect to this node's total input.
        self.input_der = 0.0
        # dE/db summed since the last update.
        self.acc_input_der = 0.0
        self.num_accumulated_ders = 0

    def update_output(self) -> float:
        """Recompute the node's total input and output and return the output."""
        total = self.bias
        for link in self.inputs:
            total += link.weight * link.source.output
        self.total_input = total
        self.output = ACTIVATIONS[self.activation].output(total)
        return self.output

    def reset_accumulators(self) -> None:
        self.acc_input_der = 0.0
        self.num_accumulated_ders = 0

    def as_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'activation': self.activation.value,
            'bias': float(self.bias),
            'total_input': float(self.total_input),
            'output': float(self.output),
            'output_der': float(self.output_der),
            'input_der': float(self.input_der),
            'acc_input_der': float(self.acc_input_der),
            'num_accumulated_ders': self.num_accumulated_ders,
            'inputs': [link.id for link in self.inputs],
            'outputs': [link.id for link in self.outputs]
        }

    def __repr__(self):
        return f"Node(id={self.id!r}, bias={self.bias:.3f}, output={self.output:.3f})"


class Link:
    """
    A weighted edge from a node in one layer to a node in the next.

    A link killed by L1 regularization keeps ``weight == 0`` and
    ``is_dead == True`` for the rest of the network's life.
    """

    def __init__(
        self,
        source: Node,
        dest: Node,
        regularization: Optional[RegularizationType] = None,
        weight: float = 0.0
    ):
        self.id = f"{source.id}->{dest.id}"
        self.source = source
        self.dest = dest
        self.weight = weight
        self.is_dead = False
        # Error derivative with respect to this weight.
        self.error_der = 0.0
        self.acc_error_der = 0.0
        self.num_accumulated_ders = 0
        self.regularization = regularization

    def reset_accumulators(self) -> None:
        self.acc_error_der = 0.0
        self.num_accumulated_ders = 0

    def as_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'source': self.source.id,
            'dest': self.dest.id,
            'weight': float(self.weight),
            'is_dead': self.is_dead,
            'error_der': float(self.error_der),
            'acc_error_der': float(self.acc_error_der),
            'num_accumulated_ders': self.num_accumulated_ders,
            'regularization': (
                self.regularization.value if self.regularization else None
            )
        }

    def __repr__(self):
        status = "dead" if self.is_dead else f"w={self.weight:.3f}"
        return f"Link({self.id}, {status})"
