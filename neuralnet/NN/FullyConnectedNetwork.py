"""
FullyConnectedNetwork.py
~~~~~~~~~~~~~~~~~~~~~~~~

Dense feed-forward network grown one layer at a time.

Layer ``i`` owns ``weights[i]`` of shape (nodes[i+1], nodes[i]) and
``biases[i]`` of length nodes[i+1]. The first descriptor only declares the
input width, so there is always one fewer parameter pair than descriptors.
"""

import logging
import threading
from contextlib import contextmanager

from ..activations import NonLinearFunction, run_activation
from ..errors import ConfigurationError, ShapeMismatchError
from ..helpers.Backend import backend
from ..layers import FullyConnectedLayer

logger = logging.getLogger(__name__)


class FullyConnectedNetwork:
    """
    Ordered weight matrices, bias vectors and per-layer activations.

    Descriptor ``i`` carries the activation applied to ``W_i . a + b_i``, so
    the activation passed to :meth:`add_layer` shapes the output of the weights
    leaving that layer. The last layer's activation is never used.
    """

    def __init__(self, input_size=None, rng=None):
        """
        Args:
            input_size: optional input width; same as calling ``add_layer(input_size)``
            rng: optional ``numpy.random.Generator`` for parameter initialisation,
                defaults to the process-scoped backend generator
        """
        self.layer_information = []
        self._weights = []
        self._biases = []
        self._rng = rng
        self._ownership = threading.Lock()
        if input_size is not None:
            self.add_layer(input_size)

    # ------------------------------------------------------------------ shape
    @property
    def layer_count(self):
        return len(self._weights)

    @property
    def nodes_per_layer(self):
        return [info.node_count for info in self.layer_information]

    @property
    def input_size(self):
        if not self.layer_information:
            return None
        return self.layer_information[0].node_count

    @property
    def output_size(self):
        if not self.layer_information:
            return None
        return self.layer_information[-1].node_count

    @property
    def activation_functions(self):
        # one per parameter layer, taken from the layer the weights leave
        return [info.activation for info in self.layer_information[:-1]]

    # ------------------------------------------------------------- snapshots
    @property
    def weights(self):
        """Nested-list copy of every weight matrix."""
        return [backend.to_list(w) for w in self._weights]

    @property
    def biases(self):
        """Nested-list copy of every bias vector."""
        return [backend.to_list(b) for b in self._biases]

    def params(self):
        # Live [weights, bias] arrays per layer, for the optimizer
        return [[w, b] for w, b in zip(self._weights, self._biases)]

    def load_parameters(self, weights, biases):
        """
        Replace every weight matrix and bias vector, e.g. from a snapshot.

        Raises:
            ShapeMismatchError: if any shape differs from the current parameters
        """
        if len(weights) != self.layer_count or len(biases) != self.layer_count:
            raise ShapeMismatchError(
                f"Expected {self.layer_count} weight/bias pairs, got {len(weights)}/{len(biases)}"
            )
        new_weights = [backend.ensure_array(w, copy=True) for w in weights]
        new_biases = [backend.ensure_array(b, copy=True) for b in biases]
        for i, (w, b) in enumerate(zip(new_weights, new_biases)):
            if w.shape != self._weights[i].shape or b.shape != self._biases[i].shape:
                raise ShapeMismatchError(
                    f"Layer {i}: expected {self._weights[i].shape}/{self._biases[i].shape}, "
                    f"got {w.shape}/{b.shape}"
                )
        for i, (w, b) in enumerate(zip(new_weights, new_biases)):
            self._weights[i][...] = w
            self._biases[i][...] = b

    # ---------------------------------------------------------- construction
    def add_layer(self, node_count, activation=NonLinearFunction.SIGMOID):
        """
        Append a layer of ``node_count`` nodes.

        Every layer after the first also gets a random normal bias vector
        (node_count,) and weight matrix (node_count, previous node_count).
        """
        info = FullyConnectedLayer(node_count, activation)
        if self.layer_information:
            previous = self.layer_information[-1].node_count
            self._biases.append(backend.normal((info.node_count,), rng=self._rng))
            self._weights.append(backend.normal((info.node_count, previous), rng=self._rng))
            logger.debug(
                "Added layer %d: %d -> %d (%s)",
                self.layer_count, previous, info.node_count, info.activation.name,
            )
        else:
            logger.debug("Input layer declared with %d nodes", info.node_count)
        self.layer_information.append(info)
        return info

    # ------------------------------------------------------------- inference
    def run_activation(self, vector, function, derivative=False):
        return run_activation(vector, function, derivative=derivative)

    def check_input(self, activation):
        """Coerce ``activation`` to a vector of the input width."""
        if self.layer_count == 0:
            raise ConfigurationError("Network needs at least two layers before it can run")
        activation = backend.as_vector(activation)
        if activation.size != self.input_size:
            raise ShapeMismatchError(
                f"Input has {activation.size} values, network expects {self.input_size}"
            )
        return activation

    def activate(self, activation):
        """
        Run the network on one input vector.

        Returns:
            ndarray of length ``output_size``
        """
        a = self.check_input(activation)
        for w, b, function in zip(self._weights, self._biases, self.activation_functions):
            a = self.run_activation(backend.matmul(w, a) + b, function)
        return a

    def feed_forward(self, activation):
        return self.activate(activation)

    def predict(self, activation):
        """Arg-max index of the output layer."""
        return int(backend.argmax(self.activate(activation)))

    # ------------------------------------------------------------- ownership
    @contextmanager
    def exclusive_access(self):
        """
        Mark the parameters as borrowed for the duration of a training run.

        Raises:
            ConfigurationError: if another training run already holds them
        """
        if not self._ownership.acquire(blocking=False):
            raise ConfigurationError("Network is already being trained")
        try:
            yield self
        finally:
            self._ownership.release()

    def __repr__(self):
        return f"{type(self).__name__}(nodes_per_layer={self.nodes_per_layer})"
