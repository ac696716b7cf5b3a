from ..activations import NonLinearFunction
from .FullyConnectedNetwork import FullyConnectedNetwork


class Network(FullyConnectedNetwork):
    """
    Fully-connected classifier whose whole shape is declared up front.

    ``Network(784, [30], 10)`` builds the 784-30-10 network with every weight
    and bias allocated immediately. :meth:`feed_forward` answers with the
    predicted class; use :meth:`activate` for the raw output vector.
    """

    def __init__(self, num_features, hidden_nodes, num_outputs,
                 activation=NonLinearFunction.SIGMOID, rng=None):
        hidden_nodes = list(hidden_nodes)
        super().__init__(rng=rng)
        self.add_layer(num_features, activation)
        for nodes in hidden_nodes:
            self.add_layer(nodes, activation)
        self.add_layer(num_outputs, activation)

    @property
    def input_node_count(self):
        return self.input_size

    @property
    def output_node_count(self):
        return self.output_size

    def feed_forward(self, activation):
        """Predicted class index for one input vector."""
        return self.predict(activation)
