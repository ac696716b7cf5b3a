import logging

from ..activations import NonLinearFunction
from ..errors import ConfigurationError, ShapeMismatchError
from ..helpers.Backend import backend
from ..helpers.masking import image_side, output_side
from ..layers import (
    ConvolutionalLayer,
    LayerType,
    NonLinearLayer,
    PoolingLayer,
    PoolingType,
)
from ..NN.FullyConnectedNetwork import FullyConnectedNetwork

logger = logging.getLogger(__name__)


class ConvolutionalNetwork:
    """
    Convolution / pooling / non-linear front-end feeding a fully-connected tail.

    Layers must be added in pipeline order::

        (convolutional | pooling | non-linear)*  ->  fully-connected+

    Images travel between layers as a matrix with one row per channel, each
    row a square image flattened row-major.
    """

    def __init__(self, input_dimensions, rng=None):
        # input_dimensions: channels of the raw image (1 for grayscale, 3 for RGB)
        if int(input_dimensions) != input_dimensions or input_dimensions < 1:
            raise ConfigurationError(f"input_dimensions must be a positive integer, got {input_dimensions!r}")
        self.input_dimensions = int(input_dimensions)
        self.layer_information = []
        self.fully_connected_network = FullyConnectedNetwork(rng=rng)
        self._rng = rng

    # ================== construction ==================
    def add_convolutional_layer(self, filter_count, kernel_size, stride):
        self._check_front_end_open("convolutional")
        layer = ConvolutionalLayer(
            filter_count, kernel_size, stride,
            input_channels=self.channels_after(len(self.layer_information)),
            rng=self._rng,
        )
        return self._append(layer)

    def add_pooling_layer(self, kernel_size, stride, pooling_type=PoolingType.MAX_POOLING):
        self._check_front_end_open("pooling")
        return self._append(PoolingLayer(kernel_size, stride, pooling_type))

    def add_non_linear_layer(self, function):
        self._check_front_end_open("non-linear")
        return self._append(NonLinearLayer(function))

    def add_fully_connected_layer(self, node_count, activation=NonLinearFunction.SIGMOID):
        """
        Append to the fully-connected tail. The first call declares the tail's
        input width, which must equal the flattened feature count
        (see :meth:`feature_shape`). Its activation maps the flattened features
        into the next tail layer.
        """
        return self.fully_connected_network.add_layer(node_count, activation)

    # ================== inference ==================
    def feed_forward(self, image):
        """
        Args:
            image: flat array of input_dimensions * side**2 values, or a
                (input_dimensions, side**2) matrix

        Returns:
            output vector of the fully-connected tail
        """
        features = backend.ravel(self.extract_features(image))
        return self.fully_connected_network.feed_forward(features)

    def extract_features(self, image):
        """The front-end output as a (channels, side**2) matrix, before flattening."""
        images = self._as_images(image)
        for layer in self.layer_information:
            images = layer.forward(images)
        return images

    def feature_shape(self, image_side_length):
        """
        Shape (channels, pixels) of the front-end output for square input images
        of side ``image_side_length``, computed without running any arithmetic.
        """
        channels, side = self.input_dimensions, int(image_side_length)
        for layer in self.layer_information:
            if layer.layer_type is LayerType.CONVOLUTIONAL:
                side = output_side(side, layer.kernel_size, layer.stride)
                channels = layer.filter_count
            elif layer.layer_type is LayerType.POOLING:
                side = output_side(side, layer.kernel_size, layer.stride)
        return channels, side * side

    def channels_after(self, index):
        # channel depth produced by the first ``index`` layers
        for layer in reversed(self.layer_information[:index]):
            if layer.layer_type is LayerType.CONVOLUTIONAL:
                return layer.filter_count
        return self.input_dimensions

    # ================== helpers ==================
    def _as_images(self, image):
        pixels = backend.as_vector(image)
        if pixels.size == 0 or pixels.size % self.input_dimensions != 0:
            raise ShapeMismatchError(
                f"Input of {pixels.size} values cannot be split into {self.input_dimensions} channel(s)"
            )
        images = backend.reshape(pixels, (self.input_dimensions, -1))
        image_side(images.shape[1])  # square check
        return images

    def _check_front_end_open(self, kind):
        if self.fully_connected_network.layer_information:
            raise ConfigurationError(
                f"Cannot add a {kind} layer after the fully-connected tail has started"
            )

    def _append(self, layer):
        self.layer_information.append(layer)
        logger.debug("Added %r", layer)
        return layer

    def __repr__(self):
        layers = ", ".join(repr(layer) for layer in self.layer_information)
        return (
            f"{type(self).__name__}(input_dimensions={self.input_dimensions}, "
            f"layers=[{layers}], tail={self.fully_connected_network.nodes_per_layer})"
        )
