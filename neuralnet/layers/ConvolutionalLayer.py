from .Layer import Layer, LayerType
from ..helpers.Backend import backend
from ..helpers.masking import create_masking_map
from ..errors import ConfigurationError, ShapeMismatchError


class ConvolutionalLayer(Layer):
    layer_type = LayerType.CONVOLUTIONAL

    def __init__(self, filter_count, kernel_size, stride, input_channels, rng=None):
        # filter_count -> the number of filters/kernels, one output feature map each
        # input_channels -> rows of the incoming image matrix (1 for grayscale, or
        #                   the previous convolution's filter_count)
        # filters: (filter_count, input_channels, kernel_size*kernel_size)
        for name, value in (("filter_count", filter_count), ("kernel_size", kernel_size),
                            ("stride", stride), ("input_channels", input_channels)):
            if int(value) != value or value < 1:
                raise ConfigurationError(f"{name} must be a positive integer, got {value!r}")

        self.filter_count = int(filter_count)
        self.kernel_size = int(kernel_size)
        self.stride = int(stride)
        self.input_channels = int(input_channels)

        # N(0, 1) like every other parameter in the package
        self.filters = backend.normal(
            (self.filter_count, self.input_channels, self.kernel_size ** 2), rng=rng
        )

    @property
    def flattened_filters(self):
        # one (input_channels, k*k) matrix per filter
        return [f for f in self.filters]

    def forward(self, images):
        # images: (input_channels, side*side)
        # return: (filter_count, out_side*out_side)
        images = backend.ensure_array(images)
        if images.ndim != 2 or images.shape[0] != self.input_channels:
            raise ShapeMismatchError(
                f"Convolution expects {self.input_channels} input channel(s), got array of shape {images.shape}"
            )

        # stack every channel's masking map: (input_channels*k*k, out*out)
        cols = backend.concatenate(
            [create_masking_map(row, self.kernel_size, self.stride) for row in images], axis=0
        )

        # each filter is flattened into a row vector
        # shape: (filter_count, input_channels*k*k)
        W_col = backend.reshape(self.filters, (self.filter_count, -1))

        # every filter over every channel in one multiply; the channel sum
        # falls out of the inner product
        return backend.matmul(W_col, cols)

    def params(self):
        return [self.filters]

    def describe(self):
        return {
            "filter_count": self.filter_count,
            "kernel_size": self.kernel_size,
            "stride": self.stride,
            "input_channels": self.input_channels,
        }
