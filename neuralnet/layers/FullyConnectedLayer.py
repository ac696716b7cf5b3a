from .Layer import Layer, LayerType
from ..activations import NonLinearFunction
from ..errors import ConfigurationError


class FullyConnectedLayer(Layer):
    layer_type = LayerType.FULLY_CONNECTED

    def __init__(self, node_count, activation=NonLinearFunction.SIGMOID):
        # node_count: width of this layer
        # activation: applied to W . a + b of the weights leaving this layer (unused on the output layer)
        if int(node_count) != node_count or node_count < 1:
            raise ConfigurationError(f"node_count must be a positive integer, got {node_count!r}")
        self.node_count = int(node_count)
        self.activation = NonLinearFunction.coerce(activation)

    def describe(self):
        return {"node_count": self.node_count, "activation": self.activation.name}
