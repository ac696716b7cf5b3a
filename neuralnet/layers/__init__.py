from .Layer import Layer, LayerType
from .ConvolutionalLayer import ConvolutionalLayer
from .PoolingLayer import PoolingLayer, PoolingType
from .NonLinearLayer import NonLinearLayer
from .FullyConnectedLayer import FullyConnectedLayer

__all__ = [
    "Layer",
    "LayerType",
    "ConvolutionalLayer",
    "PoolingLayer",
    "PoolingType",
    "NonLinearLayer",
    "FullyConnectedLayer",
]
