import enum


class LayerType(enum.Enum):
    CONVOLUTIONAL = "convolutional"
    POOLING = "pooling"
    NON_LINEAR = "non_linear"
    FULLY_CONNECTED = "fully_connected"


class Layer:
    # Subclasses override as needed
    layer_type = None

    def forward(self, images):
        # images: (rows, side*side) -> transformed feature maps
        raise NotImplementedError

    def params(self):
        # Return list of parameter ndarrays (e.g., [filters])
        return []

    def __repr__(self):
        fields = ", ".join(f"{k}={v!r}" for k, v in self.describe().items())
        return f"{type(self).__name__}({fields})"

    def describe(self):
        # hyperparameters only, no arrays
        return {}
