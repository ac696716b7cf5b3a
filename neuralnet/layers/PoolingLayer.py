import enum

from .Layer import Layer, LayerType
from ..helpers.Backend import backend
from ..helpers.masking import create_masking_map
from ..errors import ConfigurationError, UnknownSelectorError


class PoolingType(enum.Enum):
    MAX_POOLING = "max"

    @classmethod
    def coerce(cls, value):
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            key = value.strip().lower()
            for member in cls:
                if key in (member.value, member.name.lower()):
                    return member
        raise UnknownSelectorError(f"Unknown pooling type: {value!r}")


class PoolingLayer(Layer):
    layer_type = LayerType.POOLING

    def __init__(self, kernel_size=2, stride=2, pooling_type=PoolingType.MAX_POOLING):
        if int(kernel_size) != kernel_size or kernel_size < 1 or int(stride) != stride or stride < 1:
            raise ConfigurationError(
                f"kernel_size and stride must be positive integers, got {kernel_size!r} and {stride!r}"
            )
        self.kernel_size = int(kernel_size)
        self.stride = int(stride)
        self.pooling_type = PoolingType.coerce(pooling_type)

    def forward(self, images):
        # images: (rows, side*side)
        # return: (rows, out_side*out_side), one pooled image per input row
        images = backend.ensure_array(images)
        if images.ndim == 1:
            images = images[None, :]

        # (rows, k*k, out*out)
        cols = backend.stack(
            [create_masking_map(row, self.kernel_size, self.stride) for row in images], axis=0
        )

        if self.pooling_type is PoolingType.MAX_POOLING:
            # column infinity-norm: largest magnitude in each window
            return backend.max(backend.abs(cols), axis=1)
        raise UnknownSelectorError(f"Unknown pooling type: {self.pooling_type!r}")

    def describe(self):
        return {
            "kernel_size": self.kernel_size,
            "stride": self.stride,
            "pooling_type": self.pooling_type.name,
        }
