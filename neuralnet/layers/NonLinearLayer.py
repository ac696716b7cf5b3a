from .Layer import Layer, LayerType
from ..activations import NonLinearFunction, run_activation
from ..helpers.Backend import backend


class NonLinearLayer(Layer):
    layer_type = LayerType.NON_LINEAR

    def __init__(self, function):
        self.function = NonLinearFunction.coerce(function)

    def forward(self, images):
        images = backend.ensure_array(images)
        return run_activation(images, self.function)

    def describe(self):
        return {"function": self.function.name}
