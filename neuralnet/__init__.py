"""
neuralnet
~~~~~~~~~

Fully-connected and convolutional neural networks written from scratch on
NumPy, trained with mini-batch stochastic gradient descent.
"""

from .activations import NonLinearFunction, run_activation
from .errors import (
    NeuralNetError,
    ConfigurationError,
    ShapeMismatchError,
    UnknownSelectorError,
)
from .helpers.Backend import backend
from .helpers.logger import RunLogger
from .layers import PoolingType
from .NN import FullyConnectedNetwork, Network, NetworkTrainer
from .CNN import ConvolutionalNetwork
from .early_stopping import EarlyStopping
from .optimizer import SGDOptimizer

__version__ = "1.0.0"

__all__ = [
    "NonLinearFunction",
    "run_activation",
    "NeuralNetError",
    "ConfigurationError",
    "ShapeMismatchError",
    "UnknownSelectorError",
    "backend",
    "RunLogger",
    "PoolingType",
    "FullyConnectedNetwork",
    "Network",
    "NetworkTrainer",
    "ConvolutionalNetwork",
    "EarlyStopping",
    "SGDOptimizer",
]
